"""
REST API router.

All resource endpoints are prefixed with /api. The OAuth2 login routes live
at the application root (see app.api.auth).
"""

from fastapi import APIRouter

from . import projects, tasks, users
from .auth import logout_router

router = APIRouter()

router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(tasks.router, tags=["Tasks"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(logout_router, tags=["Authentication"])
