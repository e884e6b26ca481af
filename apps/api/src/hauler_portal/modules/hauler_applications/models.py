"""
Hauler Applications Models

Database models for submitted hauler applications, their trucks and the
supporting documents uploaded with them.
"""

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hauler_portal.core.database import Base


class EntityType(str, enum.Enum):
    INDIVIDUAL = "individual"
    BUSINESS = "business"


class ApplicationStatus(str, enum.Enum):
    """Review status of a hauler application."""

    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    REQUIRES_DOCUMENTS = "requires_documents"


STATUS_LABELS: dict[ApplicationStatus, str] = {
    ApplicationStatus.PENDING: "Pending Review",
    ApplicationStatus.UNDER_REVIEW: "Under Review",
    ApplicationStatus.APPROVED: "Approved",
    ApplicationStatus.REJECTED: "Rejected",
    ApplicationStatus.REQUIRES_DOCUMENTS: "Requires Documents",
}


class HaulerApplication(Base):
    """
    A submitted hauler onboarding application.

    `application_number` is derived from the id once the row exists
    (HAU-000001 for id 1).
    """

    __tablename__ = "hauler_applications"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    application_number: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)

    # Applicant
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    id_number: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_type: Mapped[EntityType] = mapped_column(
        Enum(EntityType, name="hauler_entity_type"), nullable=False
    )
    business_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    beee_level: Mapped[str | None] = mapped_column(String(100), nullable=True)
    cipc_registration: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Contact and address
    mobile_number: Mapped[str] = mapped_column(String(20), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    physical_address: Mapped[str] = mapped_column(Text, nullable=False)
    province: Mapped[str] = mapped_column(String(50), nullable=False)

    # Banking
    bank_name: Mapped[str] = mapped_column(String(100), nullable=False)
    account_holder_name: Mapped[str] = mapped_column(String(200), nullable=False)
    account_number: Mapped[str] = mapped_column(String(20), nullable=False)
    account_type: Mapped[str] = mapped_column(String(50), nullable=False)
    branch_code: Mapped[str] = mapped_column(String(10), nullable=False)

    # Consent
    accept_terms: Mapped[bool] = mapped_column(Boolean, nullable=False)
    consent_to_store: Mapped[bool] = mapped_column(Boolean, nullable=False)
    consent_to_contact: Mapped[bool] = mapped_column(Boolean, nullable=False)

    # Review
    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus, name="hauler_application_status"),
        nullable=False,
        default=ApplicationStatus.PENDING,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Audit timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    trucks: Mapped[list["HaulerTruck"]] = relationship(
        "HaulerTruck",
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="HaulerTruck.truck_number",
        lazy="selectin",
    )
    documents: Mapped[list["HaulerDocument"]] = relationship(
        "HaulerDocument",
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="HaulerDocument.id",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_hauler_applications_status", "status"),
        Index("ix_hauler_applications_email", "email"),
        Index("ix_hauler_applications_created_at", "created_at"),
    )


class HaulerTruck(Base):
    """One truck listed on an application, numbered from 1."""

    __tablename__ = "hauler_trucks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("hauler_applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    truck_number: Mapped[int] = mapped_column(Integer, nullable=False)
    vehicle_type: Mapped[str] = mapped_column(String(100), nullable=False)
    load_capacity: Mapped[str] = mapped_column(String(20), nullable=False)
    horse_registration: Mapped[str] = mapped_column(String(20), nullable=False)
    trailer1_registration: Mapped[str | None] = mapped_column(String(20), nullable=True)
    trailer2_registration: Mapped[str | None] = mapped_column(String(20), nullable=True)

    application: Mapped["HaulerApplication"] = relationship(
        "HaulerApplication", back_populates="trucks"
    )

    __table_args__ = (Index("ix_hauler_trucks_application_id", "application_id"),)


class HaulerDocument(Base):
    """
    A supporting document.

    The file itself lives on disk under the upload directory; `file_path` is
    relative to it.
    """

    __tablename__ = "hauler_documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("hauler_applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    document_type: Mapped[str] = mapped_column(String(50), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    content_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    file_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    application: Mapped["HaulerApplication"] = relationship(
        "HaulerApplication", back_populates="documents"
    )

    __table_args__ = (Index("ix_hauler_documents_application_id", "application_id"),)
