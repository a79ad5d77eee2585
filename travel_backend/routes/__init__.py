"""
HTTP routes for the travel site API, grouped by concern.
"""

from __future__ import annotations

from fastapi import APIRouter

from travel_backend.routes import admin, auth, catalog, cookies, uploads, user

router = APIRouter()
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(user.router, prefix="/user", tags=["user"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
router.include_router(cookies.router, prefix="/cookies", tags=["cookies"])
router.include_router(uploads.router, tags=["uploads"])
router.include_router(catalog.router, tags=["catalog"])
