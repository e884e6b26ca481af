"""
Hauler Applications Admin Router

Review endpoints for the operations team.
All endpoints require the admin password as a Bearer token.

Endpoints:
- GET /admin/applications - List applications (status filter, search)
- GET /admin/applications/stats - Counts by status
- GET /admin/applications/pending - Review queue, oldest first
- GET /admin/applications/recent - Latest submissions
- GET /admin/applications/{id_or_number} - Full application details
- PATCH /admin/applications/{id_or_number}/status - Change status, add notes
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from hauler_portal.core.auth import require_admin
from hauler_portal.core.database import get_db
from hauler_portal.modules.hauler_applications import service
from hauler_portal.modules.hauler_applications.models import STATUS_LABELS, ApplicationStatus
from hauler_portal.modules.hauler_applications.schemas import (
    ApplicationDetailResponse,
    ApplicationListResponse,
    DashboardStats,
    RecentApplication,
    StatusUpdateRequest,
    StatusUpdateResponse,
)
from hauler_portal.modules.hauler_applications.service import ApplicationServiceError

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])

UNAUTHORIZED_RESPONSE = {401: {"description": "Missing or invalid admin password"}}


def _handle_service_error(e: ApplicationServiceError) -> None:
    """Convert service errors to HTTP exceptions."""
    logger.warning(f"Admin service error: {e.message}")
    raise HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
        },
    ) from e


@router.get(
    "",
    response_model=ApplicationListResponse,
    summary="List Applications",
    description="""
Applications, newest first.

**Filters:**
- `status`: Filter by application status
- `search`: Matches applicant name, application number or email
""",
    responses=UNAUTHORIZED_RESPONSE,
)
async def list_applications(
    status: ApplicationStatus | None = Query(None, description="Filter by application status"),
    search: str | None = Query(
        None,
        max_length=100,
        description="Search term for name, application number or email",
    ),
    db: AsyncSession = Depends(get_db),
) -> ApplicationListResponse:
    result = await service.admin_list_applications(db, status=status, search=search)
    return ApplicationListResponse(**result)


@router.get(
    "/stats",
    response_model=DashboardStats,
    summary="Get Dashboard Statistics",
    responses=UNAUTHORIZED_RESPONSE,
)
async def get_stats(db: AsyncSession = Depends(get_db)) -> DashboardStats:
    stats = await service.admin_get_dashboard_stats(db)
    return DashboardStats(**stats)


@router.get(
    "/pending",
    response_model=ApplicationListResponse,
    summary="Review Queue",
    description="Pending and under-review applications, oldest first.",
    responses=UNAUTHORIZED_RESPONSE,
)
async def list_pending(db: AsyncSession = Depends(get_db)) -> ApplicationListResponse:
    result = await service.admin_get_pending(db)
    return ApplicationListResponse(**result)


@router.get(
    "/recent",
    response_model=list[RecentApplication],
    summary="Recent Applications",
    responses=UNAUTHORIZED_RESPONSE,
)
async def list_recent(db: AsyncSession = Depends(get_db)) -> list[RecentApplication]:
    applications = await service.admin_get_recent(db)
    return [RecentApplication.model_validate(application) for application in applications]


@router.get(
    "/{id_or_number}",
    response_model=ApplicationDetailResponse,
    summary="Get Application Details",
    description="""
Complete application including identity, banking, trucks and documents.

Accepts the numeric id or the application number (HAU-000001).
""",
    responses={**UNAUTHORIZED_RESPONSE, 404: {"description": "Application not found"}},
)
async def get_application_detail(
    id_or_number: str,
    db: AsyncSession = Depends(get_db),
) -> ApplicationDetailResponse:
    try:
        application = await service.admin_get_application_detail(db, id_or_number)
        return ApplicationDetailResponse.model_validate(application)
    except ApplicationServiceError as e:
        _handle_service_error(e)


@router.patch(
    "/{id_or_number}/status",
    response_model=StatusUpdateResponse,
    summary="Update Application Status",
    description="""
Set the review status and reviewer notes.

The applicant is emailed the new status. Email failures don't fail the
request.
""",
    responses={**UNAUTHORIZED_RESPONSE, 404: {"description": "Application not found"}},
)
async def update_status(
    id_or_number: str,
    request: StatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
    reviewer: str = Depends(require_admin),
) -> StatusUpdateResponse:
    try:
        application = await service.admin_update_status(
            db,
            id_or_number,
            status=request.status,
            notes=request.notes,
            reviewed_by=reviewer,
        )
    except ApplicationServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Error updating status of application {id_or_number}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "INTERNAL_ERROR",
                "message": "An unexpected error occurred.",
            },
        ) from e

    return StatusUpdateResponse(
        application=ApplicationDetailResponse.model_validate(application),
        message=f"Application status updated to {STATUS_LABELS[request.status]}.",
    )
