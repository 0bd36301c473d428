"""CSRF token endpoint: GET /api/csrf."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ...security.csrf import create_timestamped_token, set_csrf_cookie

router = APIRouter(prefix="/api", tags=["security"])


@router.get("/csrf")
async def issue_csrf_token():
    """
    Issue a CSRF token.

    The token is returned in the body and set as the `__csrf-token` cookie;
    clients echo it in the `X-CSRF-Token` header on POST/PUT/PATCH/DELETE.
    """
    token = create_timestamped_token()
    response = JSONResponse(
        content={
            "success": True,
            "token": token,
            "message": "CSRF token generated successfully",
        }
    )
    set_csrf_cookie(response, token)
    return response
