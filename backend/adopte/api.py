"""API router: every JSON endpoint under /api."""

from fastapi import APIRouter

from .admin.routes import router as admin_router
from .adoption_requests.routes import router as adoption_requests_router
from .applications.routes import router as applications_router
from .auth.routes import router as auth_router
from .blog.routes import router as blog_router
from .companies.routes import router as companies_router
from .messaging.routes import router as messaging_router
from .offers.routes import router as offers_router
from .profiles.routes import router as profiles_router
from .skills.routes import router as skills_router
from .students.routes import router as students_router
from .two_factor.routes import router as two_factor_router

api_router = APIRouter()

api_router.include_router(auth_router)
api_router.include_router(two_factor_router)
api_router.include_router(profiles_router)
api_router.include_router(students_router)
api_router.include_router(companies_router)
api_router.include_router(skills_router)
api_router.include_router(offers_router)
api_router.include_router(applications_router)
api_router.include_router(adoption_requests_router)
api_router.include_router(messaging_router)
api_router.include_router(blog_router)
api_router.include_router(admin_router)
