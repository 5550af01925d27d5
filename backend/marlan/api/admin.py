"""Admin dashboard and user management"""
from typing import List

from fastapi import APIRouter, Depends

from ..auth import AuthUser, require_admin
from ..db import database
from ..db.models import DashboardStats
from ..errors import api_error
from ..utils.structured_logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/admin")


@router.get("/dashboard", response_model=DashboardStats)
async def api_dashboard(admin: AuthUser = Depends(require_admin)):
    return await database.get_dashboard_stats()


@router.get("/users", response_model=List[dict])
async def api_list_users(admin: AuthUser = Depends(require_admin)):
    return await database.list_users()


@router.post("/users/{user_id}/grant-admin")
async def api_grant_admin(user_id: str, admin: AuthUser = Depends(require_admin)):
    if not await database.set_admin(user_id, True):
        raise api_error(404, "Not Found", "User not found")
    logger.info("Admin role granted", target_user=user_id, granted_by=admin.id)
    return {"success": True, "user_id": user_id, "is_admin": True}


@router.post("/users/{user_id}/revoke-admin")
async def api_revoke_admin(user_id: str, admin: AuthUser = Depends(require_admin)):
    if user_id == admin.id:
        raise api_error(400, "Bad Request", "You cannot revoke your own admin access")
    if not await database.set_admin(user_id, False):
        raise api_error(404, "Not Found", "User not found")
    logger.info("Admin role revoked", target_user=user_id, revoked_by=admin.id)
    return {"success": True, "user_id": user_id, "is_admin": False}


@router.delete("/users/{user_id}")
async def api_delete_user(user_id: str, admin: AuthUser = Depends(require_admin)):
    if user_id == admin.id:
        raise api_error(400, "Bad Request", "You cannot delete your own account")
    if not await database.delete_user(user_id):
        raise api_error(404, "Not Found", "User not found")
    logger.info("User deleted", target_user=user_id, deleted_by=admin.id)
    return {"success": True, "user_id": user_id}
