from fastapi import APIRouter

from admission_portal.modules.applications.router import router as applications_router
from admission_portal.modules.auth import router as auth_router
from admission_portal.modules.backend.router import router as courses_router
from admission_portal.modules.payments.router import router as payments_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])

api_router.include_router(applications_router, prefix="/session", tags=["Application Session"])

api_router.include_router(courses_router, prefix="/courses", tags=["Courses"])

api_router.include_router(payments_router, tags=["Payments"])
