# app/services/auth_service.py

from sqlmodel import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from loguru import logger
import uuid
from datetime import datetime

from app.core.config import settings
from app.models.user import User, UserRole
from app.core.security import (
    hash_password,
    verify_password,
    create_access_token,
)
from app.schemas.auth import TokenWithUser
from app.schemas.user import UserRead
from app.services.otp_service import create_otp, verify_otp, consume_otp


class DuplicateUserError(ValueError):
    """Raised when the unique email / faculty ID constraint rejects a write."""


# ============================================================================
# FETCH USER BY EMAIL
# ============================================================================
async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


# ============================================================================
# FETCH USER BY ID
# ============================================================================
async def get_user_by_id(session: AsyncSession, user_id) -> User | None:
    try:
        user_uuid = user_id if isinstance(user_id, uuid.UUID) else uuid.UUID(str(user_id))
    except ValueError:
        return None
    result = await session.execute(select(User).where(User.id == user_uuid))
    return result.scalar_one_or_none()


# ============================================================================
# CREATE USER
# ============================================================================
async def create_user(
    session: AsyncSession,
    full_name: str,
    email: str,
    password: str,
    role: UserRole,
    faculty_id: str = "N/A",
    college: str = "N/A",
    institute: str = "N/A",
    department: str = "N/A",
    created_by: uuid.UUID | None = None,
) -> User:

    # ---- VALIDATION RULES ----
    # Super admins sit outside the hierarchy and own no publications
    if role == UserRole.SuperAdmin:
        faculty_id = college = institute = department = "N/A"
    elif not faculty_id or faculty_id == "N/A":
        raise ValueError(f"{role.value} accounts must have a faculty_id")

    user = User(
        id=uuid.uuid4(),
        full_name=full_name.strip(),
        email=email.strip().lower(),
        password_hash=hash_password(password),
        role=role,
        faculty_id=faculty_id.strip(),
        college=college,
        institute=institute,
        department=department,
        created_by=created_by,
    )

    session.add(user)

    try:
        await session.commit()
        await session.refresh(user)
    except IntegrityError:
        await session.rollback()
        raise DuplicateUserError("User with this email or faculty ID already exists")

    logger.info(f"Created {role.value} account {user.email}")
    return user


# ============================================================================
# AUTHENTICATE
# ============================================================================
async def authenticate_user(session: AsyncSession, email: str, password: str) -> User | None:
    user = await get_user_by_email(session, email)
    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    if not user.is_active:
        return None

    user.last_login = datetime.utcnow()
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


# ============================================================================
# CREATE LOGIN RESPONSE
# ============================================================================
def create_login_response(user: User) -> TokenWithUser:
    # Scope claims let clients run the same policy checks offline
    token = create_access_token(
        subject=str(user.id),
        data={
            "role": user.role.value,
            "college": user.college,
            "institute": user.institute,
            "faculty_id": user.faculty_id,
        },
    )

    return TokenWithUser(
        access_token=token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserRead.model_validate(user),
    )


# ============================================================================
# FORGOT PASSWORD LOGIC
# ============================================================================
async def request_password_reset(session: AsyncSession, email: str) -> str:
    """
    Creates a fresh OTP for an existing account and returns it so the caller
    can hand it to the mailer.
    """
    user = await get_user_by_email(session, email)
    if not user:
        raise ValueError("User with this email does not exist")

    return await create_otp(session, user.email)


async def verify_reset_otp(session: AsyncSession, email: str, otp: str) -> None:
    await verify_otp(session, email.strip().lower(), otp)


async def finalize_password_reset(session: AsyncSession, email: str, otp: str, new_password: str):
    """
    Consumes the OTP, updates the password hash.
    """
    if len(new_password) < settings.MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long")

    user = await get_user_by_email(session, email)
    if not user:
        raise ValueError("Invalid or expired OTP")

    await consume_otp(session, user.email, otp)

    user.password_hash = hash_password(new_password)
    user.updated_at = datetime.utcnow()
    session.add(user)
    await session.commit()
    logger.info(f"Password reset completed for {user.email}")
    return True
