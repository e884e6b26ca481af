"""
Field Validators

Pure checks for each field family. A validator returns None when the value
is acceptable and a human-readable reason otherwise. Validators never raise,
whatever they are given.

The same functions back the wizard's step rules and the intake endpoint's
request schemas.
"""

import re

MOBILE_NUMBER_PATTERN = re.compile(r"(\+27|0)[6-8][0-9]{8}")
EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
ACCOUNT_NUMBER_PATTERN = re.compile(r"[0-9]{8,13}")
BRANCH_CODE_PATTERN = re.compile(r"[0-9]{6}")
LEADING_INTEGER_PATTERN = re.compile(r"^\s*([+-]?[0-9]+)")

MIN_LOAD_CAPACITY_TONS = 1
MAX_LOAD_CAPACITY_TONS = 15

MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024

ALLOWED_CONTENT_TYPES = frozenset(
    {
        "application/pdf",
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/webp",
    }
)

MIN_ACCOUNT_HOLDER_LENGTH = 2


def is_blank(value: object) -> bool:
    """True for None, non-strings and whitespace-only strings."""
    return not isinstance(value, str) or not value.strip()


def validate_mobile_number(value: object) -> str | None:
    """South African mobile number, spaces allowed (e.g. +27 82 123 4567)."""
    if is_blank(value):
        return "Mobile number is required"
    clean = re.sub(r"\s", "", value)
    if not MOBILE_NUMBER_PATTERN.fullmatch(clean):
        return (
            "Invalid South African phone number format "
            "(e.g., +27 82 123 4567 or 082 123 4567)"
        )
    return None


def validate_email(value: object) -> str | None:
    if is_blank(value):
        return "Email is required"
    if not EMAIL_PATTERN.fullmatch(value):
        return "Invalid email format"
    return None


def validate_account_number(value: object) -> str | None:
    if is_blank(value):
        return "Account number is required"
    if not ACCOUNT_NUMBER_PATTERN.fullmatch(value):
        return "Account number must be 8-13 digits"
    return None


def validate_branch_code(value: object) -> str | None:
    if is_blank(value):
        return "Branch code is required"
    if not BRANCH_CODE_PATTERN.fullmatch(value):
        return "Branch code must be exactly 6 digits"
    return None


def validate_account_holder_name(value: object) -> str | None:
    if is_blank(value):
        return "Account holder name is required"
    if len(value) < MIN_ACCOUNT_HOLDER_LENGTH:
        return "Account holder name must be at least 2 characters"
    return None


def parse_load_capacity(value: object) -> int | None:
    """
    Leading integer of a "<N> Ton(s)" label.

    Returns None when the label does not start with an integer.
    """
    if not isinstance(value, str):
        return None
    match = LEADING_INTEGER_PATTERN.match(value)
    if match is None:
        return None
    return int(match.group(1))


def validate_load_capacity(value: object, truck_number: int = 1) -> str | None:
    """
    Load capacity in [1, 15] tons.

    The value comes from a fixed selector, but out-of-range or unparseable
    labels are still rejected.
    """
    if is_blank(value):
        return f"Load capacity is required for truck {truck_number}"
    capacity = parse_load_capacity(value)
    if capacity is None or not MIN_LOAD_CAPACITY_TONS <= capacity <= MAX_LOAD_CAPACITY_TONS:
        return (
            f"Truck {truck_number} capacity must be between "
            f"{MIN_LOAD_CAPACITY_TONS} and {MAX_LOAD_CAPACITY_TONS} tons"
        )
    return None


def validate_file_size(size: object, label: str = "File") -> str | None:
    """At most 10 MiB. `label` names the file in the message."""
    if not isinstance(size, int) or isinstance(size, bool) or size < 0:
        return f"{label} size is invalid"
    if size > MAX_FILE_SIZE_BYTES:
        return f"{label} size must be less than 10MB"
    return None


def validate_content_type(content_type: object, file_name: str = "File") -> str | None:
    if not isinstance(content_type, str) or content_type.lower() not in ALLOWED_CONTENT_TYPES:
        return (
            f"File {file_name} is not a supported format. "
            "Please upload PDF, JPEG, PNG, or WebP files."
        )
    return None
