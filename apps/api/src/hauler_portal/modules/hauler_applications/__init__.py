"""
Hauler Applications Module

Server side of hauler onboarding:
1. Intake of submitted applications with trucks and supporting documents
2. Public lookup by application number
3. Admin review with status changes, notes and applicant emails

API Endpoints:
- POST /hauler-applications - Submit an application
- GET /hauler-applications/{application_number} - Look up an application
- /admin/applications/... - Admin review (see admin_router)
"""

from .admin_router import router as admin_router
from .router import router

__all__ = ["router", "admin_router"]
