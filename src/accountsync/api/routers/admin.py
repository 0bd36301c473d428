"""
Admin API Router.

Endpoints:
    GET /api/admin/users             - Directory listing merged with local users
    GET /api/admin/users/{clerk_id}  - Local user record

All endpoints require an authenticated caller whose identity provider
private metadata has `role == "admin"`.
"""

from typing import Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from loguru import logger

from ...auth import AuthContext
from ...services.identity import IdentityProviderError
from ...services.user_service import DirectoryPage, DirectoryQuery, UserService
from ..deps import get_user_service, require_admin

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/users", response_model=DirectoryPage, response_model_by_alias=False)
async def list_users(
    admin: AuthContext = Depends(require_admin),
    service: UserService = Depends(get_user_service),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str = "",
    role: str = "",
    plan: str = "",
    status: str = "",
    subscription: str = "",
    sort_by: Literal["name", "role", "status", "subscription", "joinDate"] = Query(
        default="joinDate", alias="sortBy"
    ),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
):
    """
    List identity provider users with filtering, sorting and pagination.

    Each entry carries the local User document when one exists.
    """
    logger.info(f"Admin {admin.user_id} listing users (page {page})")
    query = DirectoryQuery(
        page=page,
        limit=limit,
        search=search,
        role=role,
        plan=plan,
        status=status,
        subscription=subscription,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    try:
        return await service.list_directory(query)
    except IdentityProviderError as e:
        logger.error(f"Directory listing failed: {e}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


@router.get("/users/{clerk_id}")
async def get_user(
    clerk_id: str,
    admin: AuthContext = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    user = await service.get_by_clerk_id(clerk_id)
    if user is None:
        return JSONResponse(status_code=404, content={"error": "User not found in database"})
    return user.model_dump(mode="json")
