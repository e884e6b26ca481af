"""
Hauler Applications Schemas

Pydantic schemas for the intake request and the public and admin responses.

The intake request is validated again here with the same field validators the
onboarding wizard uses, so a client that skips the wizard gets the same
answers.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from hauler_portal.modules.hauler_applications.models import ApplicationStatus, EntityType
from hauler_portal.modules.onboarding import validators
from hauler_portal.modules.onboarding.schemas import DocumentType


def _raise_if(reason: str | None) -> None:
    if reason is not None:
        raise ValueError(reason)


# ============================================
# Intake Request Schemas
# ============================================


class ApplicationDataIn(BaseModel):
    """Applicant, contact, banking and consent fields of a submission."""

    full_name: str = Field(..., min_length=1, max_length=200)
    id_number: str = Field(..., min_length=1, max_length=50)
    entity_type: EntityType
    business_name: str | None = Field(None, max_length=200)
    beee_level: str | None = Field(None, max_length=100)
    cipc_registration: str | None = Field(None, max_length=100)
    mobile_number: str
    email: str = Field(..., max_length=255)
    physical_address: str = Field(..., min_length=1)
    province: str = Field(..., min_length=1, max_length=50)
    bank_name: str = Field(..., min_length=1, max_length=100)
    account_holder_name: str = Field(..., max_length=200)
    account_number: str
    account_type: str = Field(..., min_length=1, max_length=50)
    branch_code: str
    accept_terms: bool
    consent_to_store: bool
    consent_to_contact: bool

    @field_validator("full_name", "id_number", "physical_address", "bank_name")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("mobile_number")
    @classmethod
    def check_mobile_number(cls, value: str) -> str:
        _raise_if(validators.validate_mobile_number(value))
        return value.strip()

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        _raise_if(validators.validate_email(value))
        return value

    @field_validator("account_holder_name")
    @classmethod
    def check_account_holder_name(cls, value: str) -> str:
        _raise_if(validators.validate_account_holder_name(value))
        return value.strip()

    @field_validator("account_number")
    @classmethod
    def check_account_number(cls, value: str) -> str:
        _raise_if(validators.validate_account_number(value))
        return value

    @field_validator("branch_code")
    @classmethod
    def check_branch_code(cls, value: str) -> str:
        _raise_if(validators.validate_branch_code(value))
        return value

    @model_validator(mode="after")
    def validate_application(self) -> "ApplicationDataIn":
        """Business fields and consents."""

        if self.entity_type == EntityType.BUSINESS:
            if validators.is_blank(self.business_name):
                raise ValueError("Business name is required")
            if validators.is_blank(self.beee_level):
                raise ValueError("BEEE Level is required for business entities")
            if validators.is_blank(self.cipc_registration):
                raise ValueError("CIPC Registration Number is required for business entities")
        else:
            self.business_name = None
            self.beee_level = None
            self.cipc_registration = None

        if not self.accept_terms:
            raise ValueError("You must accept the terms of use to continue")
        if not self.consent_to_store:
            raise ValueError("You must consent to data storage to continue")
        if not self.consent_to_contact:
            raise ValueError("You must consent to be contacted to continue")

        return self


class TruckIn(BaseModel):
    truck_number: int = Field(..., ge=1)
    vehicle_type: str = Field(..., min_length=1, max_length=100)
    load_capacity: str = Field(..., max_length=20)
    horse_registration: str = Field(..., min_length=1, max_length=20)
    trailer1_registration: str | None = Field(None, max_length=20)
    trailer2_registration: str | None = Field(None, max_length=20)

    @model_validator(mode="after")
    def check_capacity(self) -> "TruckIn":
        _raise_if(validators.validate_load_capacity(self.load_capacity, self.truck_number))
        return self


class DocumentIn(BaseModel):
    document_type: DocumentType
    file_name: str = Field(..., min_length=1, max_length=255)
    file_size: int = Field(..., ge=0)
    content_type: str

    @model_validator(mode="after")
    def check_file(self) -> "DocumentIn":
        _raise_if(validators.validate_content_type(self.content_type, self.file_name))
        _raise_if(validators.validate_file_size(self.file_size, f"File {self.file_name}"))
        return self


class HaulerApplicationCreate(BaseModel):
    """
    The `payload` part of POST /hauler-applications.

    Trucks must be numbered 1..n in order. Documents describe the uploaded
    files in upload order.
    """

    application_data: ApplicationDataIn
    trucks: list[TruckIn] = Field(..., min_length=1)
    documents: list[DocumentIn] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_trucks(self) -> "HaulerApplicationCreate":
        numbers = [truck.truck_number for truck in self.trucks]
        if numbers != list(range(1, len(self.trucks) + 1)):
            raise ValueError("Trucks must be numbered consecutively from 1")
        return self


# ============================================
# Response Schemas
# ============================================


class ApplicationCreatedResponse(BaseModel):
    """Response for POST /hauler-applications."""

    application_id: int
    application_number: str
    message: str = "Application submitted successfully."


class TruckResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    truck_number: int
    vehicle_type: str
    load_capacity: str
    horse_registration: str
    trailer1_registration: str | None = None
    trailer2_registration: str | None = None


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    document_type: str
    file_name: str
    file_size: int
    content_type: str | None = None
    uploaded_at: datetime


class PublicApplicationResponse(BaseModel):
    """
    Response for GET /hauler-applications/{application_number}.

    Leaves out identity and banking details.
    """

    model_config = ConfigDict(from_attributes=True)

    application_number: str
    full_name: str
    entity_type: EntityType
    business_name: str | None = None
    province: str
    status: ApplicationStatus
    status_label: str
    created_at: datetime
    trucks: list[TruckResponse]
    documents: list[DocumentResponse]


# ============================================
# Admin Dashboard Schemas
# ============================================


class ApplicationListItem(BaseModel):
    """Application summary row for the admin list."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    application_number: str | None
    full_name: str
    business_name: str | None = None
    entity_type: EntityType
    email: str
    mobile_number: str
    province: str
    status: ApplicationStatus
    created_at: datetime
    truck_count: int = Field(0, ge=0)
    document_count: int = Field(0, ge=0)


class ApplicationListResponse(BaseModel):
    applications: list[ApplicationListItem]
    total: int = Field(..., ge=0, description="Number of applications returned")


class DashboardStats(BaseModel):
    """Application counts by status."""

    total_applications: int = Field(..., ge=0)
    pending_review: int = Field(..., ge=0)
    under_review: int = Field(..., ge=0)
    approved: int = Field(..., ge=0)
    rejected: int = Field(..., ge=0)
    requires_documents: int = Field(..., ge=0)


class RecentApplication(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    application_number: str | None
    full_name: str
    business_name: str | None = None
    entity_type: EntityType
    status: ApplicationStatus
    created_at: datetime


class ApplicationDetailResponse(BaseModel):
    """Every stored field of an application, for admin review."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    application_number: str | None

    # Applicant
    full_name: str
    id_number: str
    entity_type: EntityType
    business_name: str | None = None
    beee_level: str | None = None
    cipc_registration: str | None = None
    mobile_number: str
    email: str
    physical_address: str
    province: str

    # Banking
    bank_name: str
    account_holder_name: str
    account_number: str
    account_type: str
    branch_code: str

    # Consent
    accept_terms: bool
    consent_to_store: bool
    consent_to_contact: bool

    # Review
    status: ApplicationStatus
    notes: str | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    trucks: list[TruckResponse]
    documents: list[DocumentResponse]


class StatusUpdateRequest(BaseModel):
    """Request body for PATCH /admin/applications/{id}/status."""

    status: ApplicationStatus
    notes: str | None = Field(
        None,
        max_length=2000,
        description="Reviewer notes, stored on the application",
        json_schema_extra={"example": "Roadworthy certificate has expired, please re-upload."},
    )


class StatusUpdateResponse(BaseModel):
    success: bool = True
    application: ApplicationDetailResponse
    message: str
