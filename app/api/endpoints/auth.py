# app/api/endpoints/auth.py

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession

# Schemas
from app.schemas.auth import (
    LoginRequest,
    TokenWithUser,
    ForgotPasswordRequest,
    VerifyOTPRequest,
    ResetPasswordRequest
)
from app.schemas.user import UserRead

# Models
from app.models.user import User
from app.core.config import settings
from app.core.policy import Actor
from app.core.rate_limiter import limiter

# Services
from app.services.auth_service import (
    authenticate_user,
    create_login_response,
    request_password_reset,
    verify_reset_otp,
    finalize_password_reset
)
from app.services.email_service import send_password_reset_email

# Deps
from app.api.deps import get_db_session, get_current_user, get_current_actor

router = APIRouter(prefix="/api/auth", tags=["Auth"])


# -------------------------------------------------------------------
# LOGIN
# -------------------------------------------------------------------
@router.post("/login", response_model=TokenWithUser)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db_session)
):
    user = await authenticate_user(session, payload.email, payload.password)

    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    return create_login_response(user)


# -------------------------------------------------------------------
# CURRENT USER
# -------------------------------------------------------------------
@router.get("/me", response_model=UserRead)
async def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.get("/verify-token")
async def verify_token(actor: Actor = Depends(get_current_actor)):
    return {"valid": True, "user": actor.model_dump(mode="json")}


# -------------------------------------------------------------------
# PUBLIC FORGOT PASSWORD ENDPOINTS
# -------------------------------------------------------------------
@router.post("/forgot-password", tags=["Password Reset"])
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def forgot_password(
    request: Request,
    payload: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session)
):
    """
    Initiates password reset. Explicitly informs if user is not found.
    """
    try:
        otp = await request_password_reset(session, payload.email)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    background_tasks.add_task(send_password_reset_email, payload.email.lower(), otp)
    return {"message": "OTP sent successfully. Please check your mail."}


@router.post("/verify-reset-otp", tags=["Password Reset"])
async def verify_reset_otp_endpoint(
    payload: VerifyOTPRequest,
    session: AsyncSession = Depends(get_db_session)
):
    """
    Verifies the 6-digit OTP sent to the user's email.
    """
    try:
        await verify_reset_otp(session, payload.email, payload.otp)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"message": "OTP verified successfully"}


@router.post("/reset-password", tags=["Password Reset"])
async def reset_password(
    payload: ResetPasswordRequest,
    session: AsyncSession = Depends(get_db_session)
):
    """
    Finalizes the password reset process by setting a new password.
    """
    try:
        await finalize_password_reset(
            session,
            payload.email,
            payload.otp,
            payload.new_password
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"message": "Password updated successfully"}
