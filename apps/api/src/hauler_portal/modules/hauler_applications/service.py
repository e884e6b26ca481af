"""
Hauler Applications Service Layer

Business logic behind the intake API and the admin review dashboard.

This module implements:
1. Intake:
   - Check the uploaded files against the declared documents
   - Create the application with its trucks and document rows
   - Store the files under the upload directory, one folder per application

2. Public lookup:
   - Status of an application by its application number

3. Admin review:
   - Listing, search, pending queue, recent activity and counts
   - Status changes with reviewer notes, followed by an applicant email

File storage and emails are best-effort: a failure is logged and the
application record is kept.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession

from hauler_portal.core.config import settings
from hauler_portal.core.email import TEMPLATE_STATUS_UPDATE, send_template_email
from hauler_portal.modules.hauler_applications import repository
from hauler_portal.modules.hauler_applications.models import (
    STATUS_LABELS,
    ApplicationStatus,
    HaulerApplication,
)
from hauler_portal.modules.hauler_applications.schemas import (
    ApplicationCreatedResponse,
    HaulerApplicationCreate,
    PublicApplicationResponse,
)
from hauler_portal.modules.onboarding.validators import MAX_FILE_SIZE_BYTES

logger = logging.getLogger(__name__)

_UNSAFE_FILE_NAME = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass
class UploadedFile:
    """A file part read from the multipart request."""

    file_name: str
    content_type: str
    content: bytes


class ApplicationServiceError(Exception):
    """Base exception for application service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class ApplicationNotFoundError(ApplicationServiceError):
    """Raised when an application is not found."""

    def __init__(self, reference: str | None = None):
        message = f"Application {reference} not found" if reference else "Application not found"
        super().__init__(
            message=message,
            error_code="APPLICATION_NOT_FOUND",
            status_code=404,
        )


class InvalidUploadError(ApplicationServiceError):
    """Raised when the uploaded files don't match the declared documents."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="INVALID_UPLOAD",
            status_code=400,
        )


# ============================================
# Intake
# ============================================


def safe_file_name(file_name: str) -> str:
    """Reduce a client-supplied file name to a safe single path segment."""
    name = _UNSAFE_FILE_NAME.sub("_", Path(file_name).name).strip("._")
    return name or "file"


def _check_uploads(data: HaulerApplicationCreate, files: list[UploadedFile]) -> None:
    if len(files) != len(data.documents):
        raise InvalidUploadError(
            f"Expected {len(data.documents)} files but received {len(files)}"
        )

    for document, upload in zip(data.documents, files, strict=True):
        if upload.content_type != document.content_type:
            raise InvalidUploadError(
                f"File {document.file_name} was declared as {document.content_type} "
                f"but uploaded as {upload.content_type}"
            )
        if len(upload.content) > MAX_FILE_SIZE_BYTES:
            raise InvalidUploadError(
                f"File {document.file_name} is too large. Maximum file size is 10MB."
            )
        if len(upload.content) != document.file_size:
            raise InvalidUploadError(
                f"File {document.file_name} was declared as {document.file_size} bytes "
                f"but {len(upload.content)} bytes were uploaded"
            )


def _write_files(folder: Path, files: list[UploadedFile]) -> list[str]:
    """Write files to `folder`, returning paths relative to the upload dir."""
    folder.mkdir(parents=True, exist_ok=True)
    paths = []
    for position, upload in enumerate(files, start=1):
        target = folder / f"{position}-{safe_file_name(upload.file_name)}"
        target.write_bytes(upload.content)
        paths.append(str(target.relative_to(settings.upload_dir)))
    return paths


async def submit_application(
    db: AsyncSession,
    data: HaulerApplicationCreate,
    files: list[UploadedFile],
) -> ApplicationCreatedResponse:
    """
    Create a hauler application from a validated intake request.

    Args:
        db: Database session
        data: Validated payload
        files: Uploaded files, in the same order as data.documents

    Returns:
        ApplicationCreatedResponse with the new id and application number

    Raises:
        InvalidUploadError: If the files don't match the declared documents
    """
    _check_uploads(data, files)

    documents = [
        {
            "document_type": document.document_type.value,
            "file_name": document.file_name,
            "file_size": len(upload.content),
            "content_type": upload.content_type,
        }
        for document, upload in zip(data.documents, files, strict=True)
    ]

    application = await repository.create(db, data, documents)
    logger.info(
        f"Created hauler application {application.application_number} "
        f"with {len(data.trucks)} trucks and {len(documents)} documents"
    )

    if files:
        folder = settings.upload_dir / application.application_number
        try:
            paths = await asyncio.to_thread(_write_files, folder, files)
            await repository.set_document_paths(db, application, paths)
        except OSError as e:
            logger.error(
                f"Failed to store documents for application {application.application_number}: {e}"
            )

    return ApplicationCreatedResponse(
        application_id=application.id,
        application_number=application.application_number,
    )


# ============================================
# Public lookup
# ============================================


async def get_public_application(
    db: AsyncSession,
    application_number: str,
) -> PublicApplicationResponse:
    """Applicant-facing view of an application, by application number."""
    application = await repository.get_by_number(db, application_number)

    if not application:
        logger.warning(f"Application not found: {application_number}")
        raise ApplicationNotFoundError(application_number)

    return PublicApplicationResponse(
        application_number=application.application_number,
        full_name=application.full_name,
        entity_type=application.entity_type,
        business_name=application.business_name,
        province=application.province,
        status=application.status,
        status_label=STATUS_LABELS[application.status],
        created_at=application.created_at,
        trucks=application.trucks,
        documents=application.documents,
    )


# ============================================
# Admin Dashboard Service Methods
# ============================================


def _list_items(rows: list[tuple[HaulerApplication, int, int]]) -> list[dict]:
    items = []
    for application, truck_count, document_count in rows:
        items.append(
            {
                "id": application.id,
                "application_number": application.application_number,
                "full_name": application.full_name,
                "business_name": application.business_name,
                "entity_type": application.entity_type,
                "email": application.email,
                "mobile_number": application.mobile_number,
                "province": application.province,
                "status": application.status,
                "created_at": application.created_at,
                "truck_count": truck_count or 0,
                "document_count": document_count or 0,
            }
        )
    return items


async def admin_list_applications(
    db: AsyncSession,
    *,
    status: ApplicationStatus | None = None,
    search: str | None = None,
) -> dict:
    """
    Applications for the admin list, newest first.

    Returns:
        Dict with applications list and total
    """
    search = search.strip() if search else None
    logger.info(f"Admin listing applications: status={status}, search={search}")

    rows = await repository.get_applications_for_admin(db, status=status, search=search or None)
    items = _list_items(rows)

    return {"applications": items, "total": len(items)}


async def admin_get_dashboard_stats(db: AsyncSession) -> dict:
    logger.info("Getting dashboard stats")
    stats = await repository.get_dashboard_stats(db)
    logger.info(f"Dashboard stats: {stats}")
    return stats


async def admin_get_pending(db: AsyncSession) -> dict:
    """Review queue: pending and under-review applications, oldest first."""
    items = _list_items(await repository.get_pending_applications(db))
    return {"applications": items, "total": len(items)}


async def admin_get_recent(db: AsyncSession) -> list[HaulerApplication]:
    return await repository.get_recent_applications(db)


async def admin_get_application_detail(
    db: AsyncSession,
    id_or_number: str,
) -> HaulerApplication:
    """
    Complete application for admin review, including identity and banking.

    Raises:
        ApplicationNotFoundError: If application doesn't exist
    """
    logger.info(f"Admin getting application detail: {id_or_number}")

    application = await repository.get_by_id_or_number(db, id_or_number)

    if not application:
        logger.warning(f"Application not found: {id_or_number}")
        raise ApplicationNotFoundError(id_or_number)

    return application


async def admin_update_status(
    db: AsyncSession,
    id_or_number: str,
    status: ApplicationStatus,
    notes: str | None,
    reviewed_by: str,
) -> HaulerApplication:
    """
    Change the review status of an application and email the applicant.

    Raises:
        ApplicationNotFoundError: If application doesn't exist
    """
    application = await admin_get_application_detail(db, id_or_number)
    previous = application.status

    notes = notes.strip() if notes else None
    updated = await repository.update_status(db, application, status, notes or None, reviewed_by)
    logger.info(
        f"Application {updated.application_number} moved from {previous.value} "
        f"to {status.value} by {reviewed_by}"
    )

    # Notify applicant (non-blocking - log error but don't fail the request)
    try:
        email_sent = await send_template_email(
            TEMPLATE_STATUS_UPDATE,
            {
                "full_name": updated.full_name,
                "application_number": updated.application_number or "",
                "status_label": STATUS_LABELS[status],
                "notes": updated.notes or "",
            },
            to_email=updated.email,
        )
        if not email_sent:
            logger.error(f"Failed to send status email for application {updated.id}")
    except Exception as e:
        logger.error(f"Exception sending status email for application {updated.id}: {e}")

    return updated
