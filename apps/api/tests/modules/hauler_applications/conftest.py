"""
Fixtures for hauler applications tests.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from hauler_portal.modules.hauler_applications.models import (
    ApplicationStatus,
    EntityType,
    HaulerApplication,
    HaulerDocument,
    HaulerTruck,
)
from hauler_portal.modules.hauler_applications.schemas import HaulerApplicationCreate
from hauler_portal.modules.hauler_applications.service import UploadedFile


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.refresh = AsyncMock()
    db.flush = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def application_payload():
    """Raw intake payload as the onboarding wizard sends it."""
    return {
        "application_data": {
            "full_name": "Thabo Nkosi",
            "id_number": "8001015009087",
            "entity_type": "individual",
            "business_name": None,
            "beee_level": None,
            "cipc_registration": None,
            "mobile_number": "082 123 4567",
            "email": "thabo@example.co.za",
            "physical_address": "12 Main Road, Bellville",
            "province": "Western Cape",
            "bank_name": "Capitec Bank",
            "account_holder_name": "Thabo Nkosi",
            "account_number": "1234567890",
            "account_type": "Savings Account",
            "branch_code": "470010",
            "accept_terms": True,
            "consent_to_store": True,
            "consent_to_contact": True,
        },
        "trucks": [
            {
                "truck_number": 1,
                "vehicle_type": "Truck (Rigid)",
                "load_capacity": "5 Tons",
                "horse_registration": "ABC123GP",
                "trailer1_registration": None,
                "trailer2_registration": None,
            }
        ],
        "documents": [
            {
                "document_type": "id_document",
                "file_name": "id.pdf",
                "file_size": 22,
                "content_type": "application/pdf",
            }
        ],
    }


@pytest.fixture
def sample_application_create(application_payload):
    return HaulerApplicationCreate.model_validate(application_payload)


@pytest.fixture
def sample_upload():
    return UploadedFile(
        file_name="id.pdf",
        content_type="application/pdf",
        content=b"%PDF-1.4 test document",
    )


@pytest.fixture
def sample_application_model():
    """A stored application with one truck and one document."""
    now = datetime(2025, 3, 1, 9, 0, tzinfo=UTC)
    application = HaulerApplication(
        id=1,
        application_number="HAU-000001",
        full_name="Thabo Nkosi",
        id_number="8001015009087",
        entity_type=EntityType.INDIVIDUAL,
        mobile_number="0821234567",
        email="thabo@example.co.za",
        physical_address="12 Main Road, Bellville",
        province="Western Cape",
        bank_name="Capitec Bank",
        account_holder_name="Thabo Nkosi",
        account_number="1234567890",
        account_type="Savings Account",
        branch_code="470010",
        accept_terms=True,
        consent_to_store=True,
        consent_to_contact=True,
        status=ApplicationStatus.PENDING,
        created_at=now,
        updated_at=now,
    )
    application.trucks = [
        HaulerTruck(
            id=1,
            truck_number=1,
            vehicle_type="Truck (Rigid)",
            load_capacity="5 Tons",
            horse_registration="ABC123GP",
        )
    ]
    application.documents = [
        HaulerDocument(
            id=1,
            document_type="id_document",
            file_name="id.pdf",
            file_size=22,
            content_type="application/pdf",
            uploaded_at=now,
        )
    ]
    return application
