"""HTTP routes: the public API under /api and the admin back office under /auth and /admin."""

from fastapi import APIRouter

from imagegen.api import admin_auth, admin_users, auth, health, images, users

api_router = APIRouter(prefix="/api")
api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/user", tags=["user"])
api_router.include_router(images.router, tags=["images"])

admin_router = APIRouter()
admin_router.include_router(admin_auth.router, prefix="/auth", tags=["admin-auth"])
admin_router.include_router(admin_users.router, prefix="/admin/users", tags=["admin-users"])
