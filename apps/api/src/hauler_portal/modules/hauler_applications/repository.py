"""
Hauler Applications Repository

Database operations for hauler applications, their trucks and documents.
Only data access lives here; validation, file storage and notifications are
handled by the service layer.
"""

from datetime import UTC, datetime

from sqlalchemy import case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import ApplicationStatus, HaulerApplication, HaulerDocument, HaulerTruck
from .schemas import HaulerApplicationCreate

ADMIN_LIST_LIMIT = 100
RECENT_LIMIT = 5
PENDING_STATUSES = (ApplicationStatus.PENDING, ApplicationStatus.UNDER_REVIEW)
# Largest value the Integer primary key can hold
MAX_APPLICATION_ID = 2**31 - 1


def format_application_number(application_id: int) -> str:
    """HAU- plus the id zero-padded to six digits."""
    return f"HAU-{application_id:06d}"


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so `%` and `_` match literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def create(
    db: AsyncSession,
    data: HaulerApplicationCreate,
    documents: list[dict] | None = None,
) -> HaulerApplication:
    """
    Insert an application with its trucks and document rows.

    `documents` are plain dicts of HaulerDocument column values (the service
    fills in file_path after writing the files). The application number is
    assigned from the generated id inside the same transaction.
    """
    fields = data.application_data

    new_application = HaulerApplication(
        # Applicant
        full_name=fields.full_name,
        id_number=fields.id_number,
        entity_type=fields.entity_type,
        business_name=fields.business_name,
        beee_level=fields.beee_level,
        cipc_registration=fields.cipc_registration,
        mobile_number=fields.mobile_number,
        email=fields.email,
        physical_address=fields.physical_address,
        province=fields.province,
        # Banking
        bank_name=fields.bank_name,
        account_holder_name=fields.account_holder_name,
        account_number=fields.account_number,
        account_type=fields.account_type,
        branch_code=fields.branch_code,
        # Consent
        accept_terms=fields.accept_terms,
        consent_to_store=fields.consent_to_store,
        consent_to_contact=fields.consent_to_contact,
        status=ApplicationStatus.PENDING,
        trucks=[
            HaulerTruck(
                truck_number=truck.truck_number,
                vehicle_type=truck.vehicle_type,
                load_capacity=truck.load_capacity,
                horse_registration=truck.horse_registration,
                trailer1_registration=truck.trailer1_registration,
                trailer2_registration=truck.trailer2_registration,
            )
            for truck in data.trucks
        ],
        documents=[HaulerDocument(**document) for document in documents or []],
    )

    db.add(new_application)
    await db.flush()

    new_application.application_number = format_application_number(new_application.id)

    await db.commit()
    await db.refresh(new_application)

    return new_application


async def set_document_paths(
    db: AsyncSession,
    application: HaulerApplication,
    paths: list[str | None],
) -> HaulerApplication:
    """Record where each document was stored, in document order."""
    for document, path in zip(application.documents, paths, strict=False):
        document.file_path = path

    await db.commit()
    await db.refresh(application)

    return application


async def get_by_id(db: AsyncSession, id: int) -> HaulerApplication | None:
    """Get application by id, with trucks and documents loaded."""
    result = await db.execute(
        select(HaulerApplication).where(HaulerApplication.id == id)
    )
    return result.scalar_one_or_none()


async def get_by_number(db: AsyncSession, application_number: str) -> HaulerApplication | None:
    """Get application by application number, with trucks and documents loaded."""
    result = await db.execute(
        select(HaulerApplication).where(HaulerApplication.application_number == application_number)
    )
    return result.scalar_one_or_none()


async def get_by_id_or_number(db: AsyncSession, id_or_number: str) -> HaulerApplication | None:
    """Numeric strings are looked up as ids, anything else as application numbers."""
    if id_or_number.isascii() and id_or_number.isdigit():
        application_id = int(id_or_number)
        if application_id > MAX_APPLICATION_ID:
            return None
        return await get_by_id(db, application_id)
    return await get_by_number(db, id_or_number)


async def update_status(
    db: AsyncSession,
    application: HaulerApplication,
    status: ApplicationStatus,
    notes: str | None = None,
    reviewed_by: str | None = None,
) -> HaulerApplication:
    """
    Set the review status and notes.

    reviewed_at is stamped for every status except pending, which clears it.
    """
    application.status = status
    application.notes = notes
    application.reviewed_by = reviewed_by if status != ApplicationStatus.PENDING else None
    application.reviewed_at = datetime.now(UTC) if status != ApplicationStatus.PENDING else None

    await db.commit()
    await db.refresh(application)

    return application


# ============================================
# Admin Dashboard Repository Methods
# ============================================


def _counts_query():
    """Applications with their truck and document counts."""
    truck_count = (
        select(func.count(HaulerTruck.id))
        .where(HaulerTruck.application_id == HaulerApplication.id)
        .correlate(HaulerApplication)
        .scalar_subquery()
    )
    document_count = (
        select(func.count(HaulerDocument.id))
        .where(HaulerDocument.application_id == HaulerApplication.id)
        .correlate(HaulerApplication)
        .scalar_subquery()
    )
    return select(
        HaulerApplication,
        truck_count.label("truck_count"),
        document_count.label("document_count"),
    )


async def get_applications_for_admin(
    db: AsyncSession,
    *,
    status: ApplicationStatus | None = None,
    search: str | None = None,
    limit: int = ADMIN_LIST_LIMIT,
) -> list[tuple[HaulerApplication, int, int]]:
    """
    Newest applications first, optionally filtered.

    `search` matches name, application number or email, case-insensitively.

    Returns:
        (application, truck_count, document_count) tuples
    """
    query = _counts_query()

    if status is not None:
        query = query.where(HaulerApplication.status == status)

    if search:
        pattern = f"%{escape_like(search)}%"
        query = query.where(
            or_(
                HaulerApplication.full_name.ilike(pattern, escape="\\"),
                HaulerApplication.application_number.ilike(pattern, escape="\\"),
                HaulerApplication.email.ilike(pattern, escape="\\"),
            )
        )

    query = query.order_by(HaulerApplication.created_at.desc()).limit(limit)
    result = await db.execute(query)
    return [(row[0], row[1], row[2]) for row in result.all()]


async def get_pending_applications(db: AsyncSession) -> list[tuple[HaulerApplication, int, int]]:
    """Pending and under-review applications, oldest first."""
    query = (
        _counts_query()
        .where(HaulerApplication.status.in_(PENDING_STATUSES))
        .order_by(HaulerApplication.created_at.asc())
    )
    result = await db.execute(query)
    return [(row[0], row[1], row[2]) for row in result.all()]


async def get_recent_applications(
    db: AsyncSession, limit: int = RECENT_LIMIT
) -> list[HaulerApplication]:
    result = await db.execute(
        select(HaulerApplication).order_by(HaulerApplication.created_at.desc()).limit(limit)
    )
    return list(result.scalars().all())


async def get_dashboard_stats(db: AsyncSession) -> dict[str, int]:
    """Total applications and counts per status."""

    def count_status(status: ApplicationStatus):
        return func.count(case((HaulerApplication.status == status, 1)))

    result = await db.execute(
        select(
            func.count(HaulerApplication.id).label("total_applications"),
            count_status(ApplicationStatus.PENDING).label("pending_review"),
            count_status(ApplicationStatus.UNDER_REVIEW).label("under_review"),
            count_status(ApplicationStatus.APPROVED).label("approved"),
            count_status(ApplicationStatus.REJECTED).label("rejected"),
            count_status(ApplicationStatus.REQUIRES_DOCUMENTS).label("requires_documents"),
        )
    )
    row = result.one()

    return {
        "total_applications": row.total_applications or 0,
        "pending_review": row.pending_review or 0,
        "under_review": row.under_review or 0,
        "approved": row.approved or 0,
        "rejected": row.rejected or 0,
        "requires_documents": row.requires_documents or 0,
    }
