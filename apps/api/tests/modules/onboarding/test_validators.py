"""
Unit tests for onboarding field validators.

These tests cover:
- South African mobile numbers
- Email shape
- Bank account number and branch code formats
- Load capacity parsing and range
- File size and content type checks
"""

import pytest

from hauler_portal.modules.onboarding.validators import (
    MAX_FILE_SIZE_BYTES,
    parse_load_capacity,
    validate_account_holder_name,
    validate_account_number,
    validate_branch_code,
    validate_content_type,
    validate_email,
    validate_file_size,
    validate_load_capacity,
    validate_mobile_number,
)


class TestValidateMobileNumber:
    """Tests for validate_mobile_number."""

    @pytest.mark.parametrize(
        "value",
        ["+27821234567", "0821234567", "082 123 4567", "+27 72 123 4567", "0612345678"],
    )
    def test_valid_numbers(self, value):
        assert validate_mobile_number(value) is None

    @pytest.mark.parametrize(
        "value",
        ["0921234567", "08212345", "082123456789", "+2782123456", "27821234567", "082-123-4567"],
    )
    def test_invalid_numbers(self, value):
        assert validate_mobile_number(value).startswith("Invalid South African phone number")

    def test_blank_is_required(self):
        assert validate_mobile_number("   ") == "Mobile number is required"

    def test_non_string_never_raises(self):
        assert validate_mobile_number(None) == "Mobile number is required"
        assert validate_mobile_number(821234567) == "Mobile number is required"


class TestValidateEmail:
    """Tests for validate_email."""

    def test_valid_email(self):
        assert validate_email("thabo@example.co.za") is None

    @pytest.mark.parametrize("value", ["thabo", "thabo@example", "thabo @example.com", "@x.com"])
    def test_invalid_email(self, value):
        assert validate_email(value) == "Invalid email format"

    def test_blank_email(self):
        assert validate_email("") == "Email is required"


class TestBankingValidators:
    """Tests for account number, branch code and account holder checks."""

    def test_account_number_lengths(self):
        assert validate_account_number("12345678") is None
        assert validate_account_number("1234567890123") is None
        assert validate_account_number("1234567") == "Account number must be 8-13 digits"
        assert validate_account_number("12345678901234") == "Account number must be 8-13 digits"

    def test_account_number_digits_only(self):
        assert validate_account_number("1234-5678") == "Account number must be 8-13 digits"

    def test_branch_code_exactly_six_digits(self):
        assert validate_branch_code("470010") is None
        assert validate_branch_code("47001") == "Branch code must be exactly 6 digits"
        assert validate_branch_code("4700100") == "Branch code must be exactly 6 digits"
        assert validate_branch_code("") == "Branch code is required"

    def test_trailing_newline_rejected(self):
        assert validate_account_number("12345678\n") == "Account number must be 8-13 digits"
        assert validate_branch_code("470010\n") == "Branch code must be exactly 6 digits"
        assert validate_email("thabo@example.co.za\n") == "Invalid email format"

    def test_account_holder_min_length(self):
        assert validate_account_holder_name("TN") is None
        assert (
            validate_account_holder_name("T")
            == "Account holder name must be at least 2 characters"
        )
        assert validate_account_holder_name(" ") == "Account holder name is required"


class TestLoadCapacity:
    """Tests for load capacity parsing and range checks."""

    def test_parse_leading_integer(self):
        assert parse_load_capacity("1 Ton") == 1
        assert parse_load_capacity("15 Tons") == 15
        assert parse_load_capacity("Tons") is None
        assert parse_load_capacity(None) is None

    def test_range_boundaries(self):
        assert validate_load_capacity("1 Ton") is None
        assert validate_load_capacity("15 Tons") is None
        assert validate_load_capacity("16 Tons", 2) == "Truck 2 capacity must be between 1 and 15 tons"
        assert validate_load_capacity("0 Tons") == "Truck 1 capacity must be between 1 and 15 tons"

    def test_unparseable_label_is_invalid(self):
        assert validate_load_capacity("Heavy") == "Truck 1 capacity must be between 1 and 15 tons"

    def test_missing_capacity_names_truck(self):
        assert validate_load_capacity("", 3) == "Load capacity is required for truck 3"


class TestFileChecks:
    """Tests for file size and content type checks."""

    def test_size_limit_is_inclusive(self):
        assert validate_file_size(MAX_FILE_SIZE_BYTES) is None
        assert validate_file_size(MAX_FILE_SIZE_BYTES + 1, "Document 2") == (
            "Document 2 size must be less than 10MB"
        )

    def test_invalid_sizes(self):
        assert validate_file_size(-1) == "File size is invalid"
        assert validate_file_size("large") == "File size is invalid"
        assert validate_file_size(True) == "File size is invalid"

    @pytest.mark.parametrize(
        "content_type", ["application/pdf", "image/jpeg", "image/png", "image/webp", "IMAGE/PNG"]
    )
    def test_accepted_content_types(self, content_type):
        assert validate_content_type(content_type, "scan") is None

    def test_rejected_content_type(self):
        assert validate_content_type("application/zip", "docs.zip") == (
            "File docs.zip is not a supported format. "
            "Please upload PDF, JPEG, PNG, or WebP files."
        )
