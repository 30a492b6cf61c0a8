"""
Authentication endpoints: registration, login, token refresh and password management.
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.api.deps import AuditRecorder, get_audit_recorder
from tour_booking.core.config import get_settings
from tour_booking.core.security import REFRESH_TOKEN_COOKIE, get_current_user
from tour_booking.db.session import get_db
from tour_booking.models.user import User
from tour_booking.schemas.common import ApiResponse, success_response
from tour_booking.schemas.user import (
    AccessTokenPayload,
    AuthPayload,
    ChangePasswordRequest,
    ForgotPasswordPayload,
    ForgotPasswordRequest,
    RefreshRequest,
    ResetPasswordRequest,
    UserCreate,
    UserLogin,
    UserResponse,
)
from tour_booking.services import auth_service, email_service
from tour_booking.services.audit_service import AuditActions

router = APIRouter(prefix="/auth", tags=["Authentication"])
settings = get_settings()


def _set_refresh_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        token,
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def _presented_refresh_token(request: Request, body: Optional[RefreshRequest]) -> Optional[str]:
    if body and body.refresh_token:
        return body.refresh_token
    return request.cookies.get(REFRESH_TOKEN_COOKIE)


@router.post("/register", response_model=ApiResponse[AuthPayload], status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    response: Response,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """Register a new user account and sign it in."""
    user, access_token, refresh_token = await auth_service.register(db, user_data)

    _set_refresh_cookie(response, refresh_token)
    audit.record(user.id, AuditActions.USER_REGISTERED, "User", user.id, {"email": user.email})
    background_tasks.add_task(email_service.send_welcome_email, user)

    return success_response(
        {"user": user, "access_token": access_token, "refresh_token": refresh_token},
        "Registration successful",
    )


@router.post("/login", response_model=ApiResponse[AuthPayload])
async def login(
    login_data: UserLogin,
    response: Response,
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """Authenticate and receive an access token plus a refresh token."""
    user, access_token, refresh_token = await auth_service.login(db, login_data)

    _set_refresh_cookie(response, refresh_token)
    audit.record(user.id, AuditActions.USER_LOGIN, "User", user.id)

    return success_response(
        {"user": user, "access_token": access_token, "refresh_token": refresh_token},
        "Login successful",
    )


@router.post("/refresh", response_model=ApiResponse[AccessTokenPayload])
async def refresh(
    request: Request,
    body: Optional[RefreshRequest] = None,
    db: AsyncSession = Depends(get_db),
):
    """Exchange a refresh token (body or cookie) for a new access token."""
    access_token = await auth_service.refresh(db, _presented_refresh_token(request, body))
    return success_response({"access_token": access_token}, "Token refreshed successfully")


@router.post("/logout", response_model=ApiResponse[None])
async def logout(
    request: Request,
    response: Response,
    body: Optional[RefreshRequest] = None,
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    token = _presented_refresh_token(request, body)
    await auth_service.logout(db, token)

    response.delete_cookie(REFRESH_TOKEN_COOKIE)
    if token:
        audit.record(None, AuditActions.USER_LOGOUT, "RefreshToken")
    return success_response(None, "Logout successful")


@router.post("/forgot-password", response_model=ApiResponse[ForgotPasswordPayload])
async def forgot_password(
    body: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    """Always answers the same way, whether or not the email is registered."""
    token = await auth_service.forgot_password(db, body.email)

    payload = {"message": auth_service.FORGOT_PASSWORD_MESSAGE}
    if token:
        background_tasks.add_task(email_service.send_password_reset_email, body.email, token)
        if settings.ENVIRONMENT == "development":
            payload["reset_token"] = token
    return success_response(payload, auth_service.FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=ApiResponse[None])
async def reset_password(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    user = await auth_service.reset_password(db, body.token, body.new_password)
    audit.record(user.id, AuditActions.PASSWORD_RESET, "User", user.id)
    return success_response(None, "Password reset successful")


@router.post("/change-password", response_model=ApiResponse[None])
async def change_password(
    body: ChangePasswordRequest,
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """Change password. Every refresh token of the user is revoked."""
    await auth_service.change_password(db, user, body.current_password, body.new_password)

    response.delete_cookie(REFRESH_TOKEN_COOKIE)
    audit.record(user.id, AuditActions.PASSWORD_CHANGED, "User", user.id)
    return success_response(None, "Password changed successfully")


@router.get("/me", response_model=ApiResponse[UserResponse])
async def me(user: User = Depends(get_current_user)):
    return success_response(user, "User profile retrieved")
