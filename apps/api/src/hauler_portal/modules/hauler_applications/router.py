"""
Hauler Applications Router

Public intake API used by the onboarding wizard.

Endpoints:
- POST /hauler-applications - Submit an application (multipart)
- GET /hauler-applications/{application_number} - Look up an application

The submission is multipart form data: a `payload` part holding the JSON
record (application_data, trucks, documents) and one `files` part per
document, in the order the documents are listed.
"""

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from hauler_portal.core.database import get_db
from hauler_portal.modules.hauler_applications import service
from hauler_portal.modules.hauler_applications.schemas import (
    ApplicationCreatedResponse,
    HaulerApplicationCreate,
    PublicApplicationResponse,
)
from hauler_portal.modules.hauler_applications.service import (
    ApplicationServiceError,
    UploadedFile,
)
from hauler_portal.modules.onboarding.validators import MAX_FILE_SIZE_BYTES

logger = logging.getLogger(__name__)

router = APIRouter()


def _handle_service_error(e: ApplicationServiceError) -> None:
    """Convert service errors to HTTP exceptions."""
    logger.warning(f"Application service error: {e.message}")
    raise HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
        },
    ) from e


def _validation_message(e: ValidationError) -> str:
    """First validation problem, e.g. "application_data.email: Invalid email format"."""
    error = e.errors()[0]
    message = error["msg"].removeprefix("Value error, ")
    location = ".".join(str(part) for part in error["loc"])
    return f"{location}: {message}" if location else message


async def _read_upload(upload: UploadFile) -> UploadedFile:
    """Read a file part, stopping one byte past the size limit."""
    return UploadedFile(
        file_name=upload.filename or "file",
        content_type=upload.content_type or "application/octet-stream",
        content=await upload.read(MAX_FILE_SIZE_BYTES + 1),
    )


@router.post(
    "",
    response_model=ApplicationCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit Hauler Application",
    description="""
Submit a completed hauler onboarding application.

**Request (multipart/form-data):**
- `payload`: JSON with `application_data`, `trucks` and `documents`
- `files`: one part per entry in `documents`, same order

The record is validated with the same rules as the onboarding form.

**Response:**
Returns the new application id and its application number (HAU-000001).
""",
    responses={
        201: {
            "description": "Application created successfully",
            "model": ApplicationCreatedResponse,
        },
        400: {
            "description": "Uploaded files don't match the declared documents",
            "content": {
                "application/json": {
                    "example": {
                        "detail": {
                            "error": "INVALID_UPLOAD",
                            "message": "Expected 2 files but received 1",
                        }
                    }
                }
            },
        },
        422: {"description": "Payload failed validation"},
    },
)
async def submit_application(
    payload: str = Form(..., description="Application record as JSON"),
    files: list[UploadFile] = File(default=[]),
    db: AsyncSession = Depends(get_db),
) -> ApplicationCreatedResponse:
    """
    Submit a new hauler application.
    """
    try:
        data = HaulerApplicationCreate.model_validate_json(payload)
    except ValidationError as e:
        message = _validation_message(e)
        logger.info(f"Rejected hauler application payload: {message}")
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "error": "VALIDATION_ERROR",
                "message": message,
            },
        ) from e

    uploads = [await _read_upload(upload) for upload in files]

    try:
        return await service.submit_application(db, data, uploads)
    except ApplicationServiceError as e:
        _handle_service_error(e)
    except Exception as e:
        logger.exception(f"Unexpected error submitting hauler application: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "INTERNAL_ERROR",
                "message": "An unexpected error occurred. Please try again later.",
            },
        ) from e


@router.get(
    "/{application_number}",
    response_model=PublicApplicationResponse,
    summary="Get Application",
    description="""
Look up an application by its application number.

Identity and banking details are not included.
""",
    responses={
        404: {
            "description": "Application not found",
            "content": {
                "application/json": {
                    "example": {
                        "detail": {
                            "error": "APPLICATION_NOT_FOUND",
                            "message": "Application HAU-000042 not found",
                        }
                    }
                }
            },
        },
    },
)
async def get_application(
    application_number: str,
    db: AsyncSession = Depends(get_db),
) -> PublicApplicationResponse:
    try:
        return await service.get_public_application(db, application_number)
    except ApplicationServiceError as e:
        _handle_service_error(e)
