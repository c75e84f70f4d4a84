"""
DevDoc Backend — Auth Route Handlers
======================================

What:  POST /api/auth/register, POST /api/auth/login, GET /api/auth/me.
How:   Thin handlers: validate the body with pydantic, delegate to
       AuthService, return its response model.
Who:   Called by the SPA's login/register page and by app.client.AuthStore.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from app.schemas.common import ErrorResponse
from app.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=AuthResponse,
    responses={
        400: {"description": "Missing fields or email already in use", "model": ErrorResponse},
    },
    summary="Create an account",
    description="Registers a new user and returns a bearer token valid for 7 days.",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    return await auth_service.register(db, email=body.email, password=body.password)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={
        400: {"description": "Invalid credentials", "model": ErrorResponse},
    },
    summary="Log in",
    description=(
        "Exchanges email and password for a bearer token. Unknown emails and "
        "wrong passwords produce the same error."
    ),
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    return await auth_service.login(db, email=body.email, password=body.password)


@router.get(
    "/me",
    response_model=UserResponse,
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="Current user",
)
async def me(user: User = Depends(get_current_user)) -> UserResponse:
    return auth_service.current_user(user)
