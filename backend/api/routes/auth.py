"""Authentication endpoints — register, login, refresh, me."""

from fastapi import APIRouter, status, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from api.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    RefreshRequest,
    UserResponse,
)
from app.dependencies import get_db, get_current_active_user
from core.security import CurrentUser
from services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["authentication"])


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """
    Register a new account. Every account is a BUYER; ``as_seller``
    also grants DEVELOPER and queues a seller verification.

    Returns access and refresh tokens for the new user.
    """
    auth_svc = AuthService(db)
    user = await auth_svc.register(
        email=request.email,
        password=request.password,
        name=request.name,
        as_seller=request.as_seller,
    )
    logger.info(f"New user registered: {user.email} roles={user.roles}")
    return TokenResponse(**auth_svc.issue_tokens(user))


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """Authenticate with email and password."""
    result = await AuthService(db).login(email=request.email, password=request.password)
    return TokenResponse(**result)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    request: RefreshRequest,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """Exchange a refresh token for a new token pair."""
    result = await AuthService(db).refresh(request.refresh_token)
    return TokenResponse(**result)


@router.get("/me", response_model=UserResponse)
async def me(
    current_user: CurrentUser = Depends(get_current_active_user),
) -> UserResponse:
    """The signed-in user with their current roles."""
    return UserResponse(
        id=current_user.id,
        email=current_user.email,
        name=current_user.name,
        roles=current_user.roles,
    )
