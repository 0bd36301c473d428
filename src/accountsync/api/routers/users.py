"""
User self-service endpoints.

Endpoints:
    PUT    /api/user   - Partial update of the caller's own record
    DELETE /api/user   - Delete the caller's account (provider + local)

Both require a valid session token and, being state-changing, a CSRF token.
"""

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError

from ...auth import AuthContext
from ...services.identity import IdentityProviderError
from ...services.user_service import UserService, UserUpdate, field_errors
from ..deps import get_user_service, require_auth

router = APIRouter(prefix="/api/user", tags=["user"])


@router.put("")
async def update_current_user(
    request: Request,
    auth: AuthContext = Depends(require_auth),
    service: UserService = Depends(get_user_service),
):
    """
    Update the authenticated user's profile.

    Accepts any subset of email, name, role, plan and status; unknown
    fields are rejected.
    """
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(
            status_code=400,
            content={"message": "validation error", "errors": {"body": ["Invalid JSON"]}},
        )

    try:
        update = UserUpdate.model_validate(body)
    except ValidationError as e:
        return JSONResponse(
            status_code=400,
            content={"message": "validation error", "errors": field_errors(e)},
        )

    try:
        user = await service.update_profile(auth.user_id, update)
    except DuplicateKeyError:
        return JSONResponse(status_code=409, content={"error": "Email already in use"})

    if user is None:
        return JSONResponse(status_code=404, content={"error": "User not found"})

    return {"message": "User updated successfully", "user": user.model_dump(mode="json")}


@router.delete("", status_code=204)
async def delete_current_user(
    auth: AuthContext = Depends(require_auth),
    service: UserService = Depends(get_user_service),
):
    """Delete the authenticated user at the identity provider and locally."""
    try:
        await service.delete_account(auth.user_id)
    except IdentityProviderError as e:
        logger.error(f"Account deletion failed for {auth.user_id}: {e}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
    return Response(status_code=204)
