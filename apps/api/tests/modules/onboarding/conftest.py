"""
Fixtures for onboarding tests.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from hauler_portal.modules.onboarding.schemas import (
    ApplicationDraft,
    DocumentRef,
    DocumentType,
    Truck,
)
from hauler_portal.modules.onboarding.submission import IntakeReceipt

PDF_BYTES = b"%PDF-1.4 test document"


class FakeClock:
    """Settable clock for draft expiry tests."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2025, 3, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def build_document(
    document_type: DocumentType | None = DocumentType.VEHICLE_REGISTRATION,
    file_name: str = "registration.pdf",
    content: bytes | None = PDF_BYTES,
    content_type: str = "application/pdf",
    file_size: int | None = None,
) -> DocumentRef:
    return DocumentRef(
        document_type=document_type,
        file_name=file_name,
        file_size=len(content or b"") if file_size is None else file_size,
        content_type=content_type,
        content=content,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def valid_truck():
    return Truck(
        vehicle_type="Truck (Rigid)",
        load_capacity="8 Tons",
        horse_registration="CA 123-456",
    )


@pytest.fixture
def valid_draft(valid_truck):
    """A draft that passes every step of both registries."""
    return ApplicationDraft(
        full_name="Thabo Nkosi",
        id_number="8001015009087",
        entity_type="individual",
        mobile_number="082 123 4567",
        email="thabo@example.co.za",
        physical_address="12 Main Road, Bellville",
        province="Western Cape",
        trucks=[valid_truck],
        vehicle_documents=[build_document()],
        bank_name="Capitec Bank",
        account_holder_name="Thabo Nkosi",
        account_number="1234567890",
        account_type="Savings Account",
        branch_code="470010",
        proof_of_bank_account=build_document(
            DocumentType.BANK_CONFIRMATION, "bank-letter.pdf"
        ),
        documents=[build_document(DocumentType.ID_DOCUMENT, "id.pdf")],
        accept_terms=True,
        consent_to_store=True,
        consent_to_contact=True,
    )


@pytest.fixture
def business_draft(valid_draft):
    return valid_draft.model_copy(
        update={
            "entity_type": "business",
            "business_name": "Nkosi Haulage (Pty) Ltd",
            "beee_level": "Level 1 (135% B-BBEE recognition)",
            "cipc_registration": "2019/123456/07",
        }
    )


@pytest.fixture
def mock_endpoint():
    """Intake endpoint that accepts everything as application 1."""
    endpoint = AsyncMock()
    endpoint.create_application = AsyncMock(
        return_value=IntakeReceipt(application_id=1, application_number="HAU-000001")
    )
    return endpoint


@pytest.fixture
def mock_notifier():
    notifier = AsyncMock()
    notifier.notify = AsyncMock(return_value=True)
    return notifier


@pytest.fixture
def make_document():
    """Factory for attached files, PDF by default."""
    return build_document
