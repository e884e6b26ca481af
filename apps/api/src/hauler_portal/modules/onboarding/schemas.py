"""
Onboarding Schemas

Data model of the onboarding wizard: the accumulated draft, its repeated
sub-entities, structured error keys and the persisted draft snapshot.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class DocumentType(str, enum.Enum):
    """Closed set of supporting document types."""

    VEHICLE_REGISTRATION = "vehicle_registration"
    DRIVERS_LICENSE = "drivers_license"
    VEHICLE_INSURANCE = "vehicle_insurance"
    ROADWORTHY_CERTIFICATE = "roadworthy_certificate"
    BANK_STATEMENT = "bank_statement"
    BANK_CONFIRMATION = "bank_confirmation"
    ID_DOCUMENT = "id_document"
    BUSINESS_REGISTRATION = "business_registration"
    TAX_CLEARANCE = "tax_clearance"
    OTHER = "other"

    @property
    def label(self) -> str:
        return DOCUMENT_TYPE_LABELS[self]


DOCUMENT_TYPE_LABELS: dict[DocumentType, str] = {
    DocumentType.VEHICLE_REGISTRATION: "Vehicle Registration Certificate",
    DocumentType.DRIVERS_LICENSE: "Driver's License",
    DocumentType.VEHICLE_INSURANCE: "Vehicle Insurance Certificate",
    DocumentType.ROADWORTHY_CERTIFICATE: "Roadworthy Certificate",
    DocumentType.BANK_STATEMENT: "Bank Statement",
    DocumentType.BANK_CONFIRMATION: "Bank Account Confirmation Letter",
    DocumentType.ID_DOCUMENT: "ID Document / Passport",
    DocumentType.BUSINESS_REGISTRATION: "Business Registration (CIPC)",
    DocumentType.TAX_CLEARANCE: "Tax Clearance Certificate",
    DocumentType.OTHER: "Other Supporting Document",
}


EntityType = Literal["", "individual", "business"]


class Truck(BaseModel):
    """One vehicle combination: the horse plus up to two trailers."""

    model_config = ConfigDict(frozen=True)

    vehicle_type: str = ""
    load_capacity: str = ""
    horse_registration: str = ""
    trailer1_registration: str = ""
    trailer2_registration: str = ""


class DocumentRef(BaseModel):
    """
    An attached file.

    `content` is the binary handle. It is excluded from every dump, so a
    persisted snapshot only carries the metadata and a restored reference
    has `content=None` until the user selects the file again.
    """

    model_config = ConfigDict(frozen=True)

    document_type: DocumentType | None = None
    file_name: str
    file_size: int = Field(..., ge=0)
    content_type: str = "application/octet-stream"
    content: bytes | None = Field(default=None, exclude=True, repr=False)

    @property
    def has_content(self) -> bool:
        return self.content is not None


class ApplicationDraft(BaseModel):
    """
    Everything the wizard collects, across all steps.

    Never mutated in place; the wizard replaces it with `model_copy(update=...)`.
    """

    model_config = ConfigDict(frozen=True)

    # Basic information
    full_name: str = ""
    id_number: str = ""
    entity_type: EntityType = ""
    business_name: str = ""
    beee_level: str = ""
    cipc_registration: str = ""
    mobile_number: str = ""
    email: str = ""
    physical_address: str = ""
    province: str = ""

    # Vehicles
    trucks: list[Truck] = Field(default_factory=lambda: [Truck()])
    vehicle_documents: list[DocumentRef] = Field(default_factory=list)

    # Banking
    bank_name: str = ""
    account_holder_name: str = ""
    account_number: str = ""
    account_type: str = ""
    branch_code: str = ""
    proof_of_bank_account: DocumentRef | None = None

    # Typed uploads
    documents: list[DocumentRef] = Field(default_factory=list)

    # Consent
    accept_terms: bool = False
    consent_to_store: bool = False
    consent_to_contact: bool = False

    # Set once the intake has accepted the application
    application_id: int | None = None
    application_number: str | None = None

    def attachments(self) -> list[DocumentRef]:
        """All attached files, in payload order."""
        files = [*self.vehicle_documents]
        if self.proof_of_bank_account is not None:
            files.append(self.proof_of_bank_account)
        files.extend(self.documents)
        return files


# Repeated sub-entities and the draft field that owns them
ENTITY_OWNERS: dict[str, str] = {
    "truck": "trucks",
    "vehicle_document": "vehicle_documents",
    "document": "documents",
}


@dataclass(frozen=True)
class ErrorKey:
    """
    Key into the wizard's error map.

    A plain field error is `ErrorKey("email")`. An error on one entry of a
    repeated list carries the entity kind and its position, for example
    `ErrorKey("vehicle_type", "truck", 0)`.
    """

    field: str
    entity: str | None = None
    index: int | None = None

    def __str__(self) -> str:
        if self.entity is None:
            return self.field
        return f"{self.entity}-{self.index}-{self.field}"

    @property
    def owner(self) -> str:
        """Top-level draft field this error belongs to."""
        if self.entity is None:
            return self.field
        return ENTITY_OWNERS.get(self.entity, self.entity)


ErrorMap = dict[ErrorKey, str]


@dataclass(frozen=True)
class WizardState:
    """Immutable view of the wizard at one point in time."""

    current_step: int = 1
    data: ApplicationDraft = field(default_factory=ApplicationDraft)
    errors: ErrorMap = field(default_factory=dict)
    submit_error: str | None = None

    def errors_by_name(self) -> dict[str, str]:
        """Errors keyed by their rendered string form."""
        return {str(key): message for key, message in self.errors.items()}


class DraftSnapshot(BaseModel):
    """What Draft Persistence writes to the store."""

    data: ApplicationDraft
    current_step: int = Field(..., ge=1)
    timestamp: datetime
