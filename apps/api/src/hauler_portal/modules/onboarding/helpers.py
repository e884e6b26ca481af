"""
Onboarding Shared Helpers

Rendering helpers used to build the notification variables bag and the
applicant-facing summary. Shared by the submission pipeline and the intake
service so both produce the same text.
"""

from collections.abc import Sequence
from datetime import UTC, datetime

from hauler_portal.modules.onboarding.schemas import ApplicationDraft, DocumentRef, Truck

TRUCKS_TABLE_HEADER = "# | Vehicle Type | Load Capacity | Horse Reg | Trailer 1 | Trailer 2"

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


def format_file_size(size: int) -> str:
    """Human readable size, e.g. 1536 -> "1.5 KB"."""
    if size <= 0:
        return "0 Bytes"
    exponent = 0
    while size >= 1024 ** (exponent + 1) and exponent < len(_SIZE_UNITS) - 1:
        exponent += 1
    value = round(size / 1024**exponent, 2)
    return f"{value:g} {_SIZE_UNITS[exponent]}"


def yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def render_trucks_table(trucks: Sequence[Truck]) -> str:
    """
    One row per truck, numbered from 1.

    Missing trailer registrations render as "-".
    """
    rows = [TRUCKS_TABLE_HEADER]
    for number, truck in enumerate(trucks, start=1):
        rows.append(
            " | ".join(
                [
                    str(number),
                    truck.vehicle_type,
                    truck.load_capacity,
                    truck.horse_registration,
                    truck.trailer1_registration or "-",
                    truck.trailer2_registration or "-",
                ]
            )
        )
    return "\n".join(rows)


def describe_document(ref: DocumentRef) -> str:
    label = ref.document_type.label if ref.document_type else "Untyped Document"
    return f"{label}: {ref.file_name} ({format_file_size(ref.file_size)})"


def render_documents_summary(draft: ApplicationDraft) -> str:
    """One line per attached file, or "None" when nothing is attached."""
    lines: list[str] = []

    if draft.vehicle_documents:
        lines.append(f"Vehicle Documents: {len(draft.vehicle_documents)} files")
        lines.extend(
            f"- {ref.file_name} ({format_file_size(ref.file_size)})"
            for ref in draft.vehicle_documents
        )
    if draft.proof_of_bank_account is not None:
        proof = draft.proof_of_bank_account
        lines.append(
            f"Banking Document: {proof.file_name} ({format_file_size(proof.file_size)})"
        )
    lines.extend(describe_document(ref) for ref in draft.documents)

    return "\n".join(lines) if lines else "None"


def build_notification_variables(
    draft: ApplicationDraft,
    application_number: str,
    submitted_at: datetime | None = None,
) -> dict[str, str]:
    """
    Flat variables bag for the `hauler_application_received` template.

    Contains the application number, every applicant field, the truck table,
    banking fields, a documents summary and the consent flags.
    """
    submitted_at = submitted_at or datetime.now(UTC)
    is_business = draft.entity_type == "business"

    return {
        "application_number": application_number,
        "submitted_at": submitted_at.strftime("%Y-%m-%d %H:%M:%S %Z").strip(),
        # Applicant
        "full_name": draft.full_name,
        "id_number": draft.id_number,
        "entity_type": draft.entity_type,
        "business_name": draft.business_name if is_business else "",
        "beee_level": draft.beee_level if is_business else "",
        "cipc_registration": draft.cipc_registration if is_business else "",
        "mobile_number": draft.mobile_number,
        "email": draft.email,
        "physical_address": draft.physical_address,
        "province": draft.province,
        # Vehicles
        "truck_count": str(len(draft.trucks)),
        "trucks_table": render_trucks_table(draft.trucks),
        # Banking
        "bank_name": draft.bank_name,
        "account_holder_name": draft.account_holder_name,
        "account_number": draft.account_number,
        "account_type": draft.account_type,
        "branch_code": draft.branch_code,
        # Documents
        "document_count": str(len(draft.attachments())),
        "documents_summary": render_documents_summary(draft),
        # Consent
        "accept_terms": yes_no(draft.accept_terms),
        "consent_to_store": yes_no(draft.consent_to_store),
        "consent_to_contact": yes_no(draft.consent_to_contact),
    }
