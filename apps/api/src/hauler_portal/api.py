from fastapi import APIRouter

from hauler_portal.modules.hauler_applications import admin_router as admin_applications_router
from hauler_portal.modules.hauler_applications import router as hauler_applications_router

api_router = APIRouter()

api_router.include_router(
    hauler_applications_router, prefix="/hauler-applications", tags=["Hauler Applications"]
)

api_router.include_router(
    admin_applications_router,
    prefix="/admin/applications",
    tags=["Admin - Applications"],
)
