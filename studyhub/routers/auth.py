"""
Account endpoints.

Route summary
-------------
POST /api/auth/register   — create account, returns user + token
POST /api/auth/login      — exchange credentials for a token
GET  /api/auth/me         — current user
PUT  /api/auth/settings   — merge feature toggles into user settings
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studyhub.database import get_db
from studyhub.dependencies.auth import (
    create_access_token,
    get_current_user,
    hash_password,
    verify_password,
)
from studyhub.models.database_models import DEFAULT_USER_SETTINGS, User
from studyhub.models.schemas import (
    AuthResponse,
    Envelope,
    LoginRequest,
    RegisterRequest,
    SettingsUpdateRequest,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _auth_payload(user: User) -> AuthResponse:
    return AuthResponse(
        **UserResponse.from_model(user).model_dump(),
        token=create_access_token(user.id),
    )


@router.post("/register", response_model=Envelope[AuthResponse], status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> Envelope[AuthResponse]:
    email = body.email.lower()
    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists")

    user = User(
        name=body.name,
        email=email,
        password_hash=hash_password(body.password),
        settings=dict(DEFAULT_USER_SETTINGS),
    )
    db.add(user)
    await db.flush()

    logger.info("Registered user id=%d email=%s", user.id, user.email)
    return Envelope(data=_auth_payload(user))


@router.post("/login", response_model=Envelope[AuthResponse])
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> Envelope[AuthResponse]:
    result = await db.execute(select(User).where(User.email == body.email.lower()))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    return Envelope(data=_auth_payload(user))


@router.get("/me", response_model=Envelope[UserResponse])
async def me(user: User = Depends(get_current_user)) -> Envelope[UserResponse]:
    return Envelope(data=UserResponse.from_model(user))


@router.put("/settings", response_model=Envelope[UserResponse])
async def update_settings(
    body: SettingsUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Envelope[UserResponse]:
    # Reassign so the JSON column is flagged dirty
    user.settings = {**(user.settings or {}), **body.settings}
    await db.flush()
    return Envelope(data=UserResponse.from_model(user))
