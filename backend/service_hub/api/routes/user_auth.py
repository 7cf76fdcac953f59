"""
Customer authentication endpoints.

Registration and login return a JWT pair. Logging in also moves any cart
built while anonymous from the session into the customer's stored cart.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status

from service_hub.api.deps import (
    SESSION_CART_KEY,
    CartRepoDep,
    CurrentUser,
    UserRepoDep,
    get_auth_service,
)
from service_hub.core.logging import get_logger
from service_hub.core.rate_limit import LOGIN_RATE_LIMIT, limiter
from service_hub.schemas.auth import (
    AccessTokenResponse,
    TokenRefreshRequest,
    TokenResponse,
    UserLoginRequest,
    UserProfileUpdate,
    UserRegisterRequest,
    UserResponse,
)
from service_hub.services.auth.service import (
    AuthenticationError,
    AuthService,
    LoginError,
    RegistrationError,
)
from service_hub.services.cart.service import CartService

logger = get_logger(__name__)
router = APIRouter(tags=["user-auth"])

AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


async def _merge_session_cart(request: Request, carts: CartRepoDep, user_id: str) -> None:
    session_items = request.session.pop(SESSION_CART_KEY, None)
    if not session_items:
        return
    stored = await carts.get_items(user_id)
    await carts.save_items(user_id, CartService.merge_items(stored, session_items))
    logger.info("Session cart merged", user_id=user_id, merged_lines=len(session_items))


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register customer account",
)
async def register(
    request: Request,
    payload: UserRegisterRequest,
    auth_service: AuthServiceDep,
    carts: CartRepoDep,
) -> TokenResponse:
    try:
        user, tokens = await auth_service.register_user(
            name=payload.name,
            email=payload.email,
            password=payload.password,
            phone=payload.phone,
        )
    except RegistrationError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": e.code, "message": e.message},
        ) from e

    await _merge_session_cart(request, carts, user["id"])
    return TokenResponse(**tokens, user=UserResponse(**user))


@router.post("/login", response_model=TokenResponse, summary="Customer login")
@limiter.limit(LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    credentials: UserLoginRequest,
    auth_service: AuthServiceDep,
    carts: CartRepoDep,
) -> TokenResponse:
    try:
        user, tokens = await auth_service.login_user(credentials.email, credentials.password)
    except LoginError as e:
        status_code = (
            status.HTTP_403_FORBIDDEN
            if e.code == "ACCOUNT_INACTIVE"
            else status.HTTP_401_UNAUTHORIZED
        )
        raise HTTPException(
            status_code=status_code,
            detail={"code": e.code, "message": e.message},
        ) from e

    await _merge_session_cart(request, carts, user["id"])
    return TokenResponse(**tokens, user=UserResponse(**user))


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh_token(
    payload: TokenRefreshRequest,
    auth_service: AuthServiceDep,
) -> AccessTokenResponse:
    try:
        access_token = await auth_service.refresh_access_token(payload.refresh_token)
    except AuthenticationError as e:
        status_code = (
            status.HTTP_403_FORBIDDEN
            if e.code == "ACCOUNT_INACTIVE"
            else status.HTTP_401_UNAUTHORIZED
        )
        raise HTTPException(
            status_code=status_code,
            detail={"code": e.code, "message": e.message},
        ) from e
    return AccessTokenResponse(access_token=access_token)


@router.get("/me", response_model=UserResponse)
async def get_profile(user: CurrentUser) -> UserResponse:
    return UserResponse(**user)


@router.put("/me", response_model=UserResponse)
async def update_profile(
    payload: UserProfileUpdate,
    user: CurrentUser,
    users: UserRepoDep,
) -> UserResponse:
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        return UserResponse(**user)

    updated = await users.update_profile(user["id"], changes)
    if updated is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "USER_NOT_FOUND", "message": "User not found"},
        )
    logger.info("Profile updated", user_id=user["id"], fields=sorted(changes))
    return UserResponse(**updated)
