"""
Admin authentication endpoints.

Admins sign in with username and password; the server-side session then
carries ``admin_id`` and ``admin_username`` for the back-office routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status

from service_hub.api.deps import CurrentAdmin, get_auth_service
from service_hub.core.logging import get_logger
from service_hub.core.rate_limit import LOGIN_RATE_LIMIT, limiter
from service_hub.schemas.auth import AdminLoginRequest, AdminResponse, MessageResponse
from service_hub.services.auth.service import AuthService, LoginError

logger = get_logger(__name__)
router = APIRouter(tags=["admin-auth"])


@router.post(
    "/login",
    response_model=AdminResponse,
    summary="Admin login",
    description="Verify admin credentials and start an admin session.",
)
@limiter.limit(LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    credentials: AdminLoginRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> AdminResponse:
    try:
        admin = await auth_service.authenticate_admin(
            credentials.username, credentials.password
        )
    except LoginError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": e.code, "message": e.message},
        ) from e

    # New session id on privilege change.
    request.session.regenerate()
    request.session["admin_id"] = admin["id"]
    request.session["admin_username"] = admin["username"]

    return AdminResponse(**admin)


@router.post("/logout", response_model=MessageResponse)
async def logout(request: Request) -> MessageResponse:
    admin_id = request.session.get("admin_id")
    request.session.clear()
    if admin_id:
        logger.info("Admin logged out", admin_id=admin_id)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=AdminResponse)
async def get_current_admin_profile(admin: CurrentAdmin) -> AdminResponse:
    return AdminResponse(**admin)
