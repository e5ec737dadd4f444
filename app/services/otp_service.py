# app/services/otp_service.py

import secrets
from datetime import datetime, timedelta

from sqlmodel import select
from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.otp import Otp


def _generate_code() -> str:
    return f"{secrets.randbelow(900000) + 100000}"


async def create_otp(session: AsyncSession, email: str) -> str:
    """Replaces any earlier code for this email with a fresh one."""
    await session.execute(delete(Otp).where(Otp.email == email))

    code = _generate_code()
    session.add(
        Otp(
            email=email,
            otp=code,
            expires_at=datetime.utcnow() + timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
        )
    )
    await session.commit()
    return code


def _active_conditions(email: str):
    return (
        (Otp.email == email)
        & (Otp.expires_at > datetime.utcnow())
        & (Otp.is_used == False)  # noqa: E712
        & (Otp.attempts < settings.OTP_MAX_ATTEMPTS)
    )


def _latest_active_id(email: str):
    return (
        select(Otp.id)
        .where(_active_conditions(email))
        .order_by(Otp.created_at.desc())
        .limit(1)
        .correlate(None)
        .scalar_subquery()
    )


async def verify_otp(session: AsyncSession, email: str, otp: str) -> None:
    """
    Counts an attempt, then checks the code. Does not mark it used.

    The attempt is counted by a single conditional UPDATE, so concurrent
    guesses cannot push ``attempts`` past OTP_MAX_ATTEMPTS.
    """
    result = await session.execute(
        update(Otp)
        .where((Otp.id == _latest_active_id(email)) & _active_conditions(email))
        .values(attempts=Otp.attempts + 1)
        .returning(Otp.otp)
        .execution_options(synchronize_session=False)
    )
    code = result.scalar_one_or_none()
    await session.commit()

    if code is None:
        raise ValueError("No active OTP found or maximum attempts reached")
    if code != otp:
        raise ValueError("Invalid OTP")


async def consume_otp(session: AsyncSession, email: str, otp: str) -> None:
    # Marking used in the same statement that matches the code keeps it single use
    result = await session.execute(
        update(Otp)
        .where((Otp.id == _latest_active_id(email)) & _active_conditions(email) & (Otp.otp == otp))
        .values(is_used=True)
        .returning(Otp.id)
        .execution_options(synchronize_session=False)
    )
    used = result.scalar_one_or_none()
    await session.commit()

    if used is None:
        raise ValueError("Invalid or expired OTP")
