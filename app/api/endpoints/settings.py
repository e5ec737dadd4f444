# app/api/endpoints/settings.py
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession
from loguru import logger

from app.api.deps import get_current_user, get_db_session, require_author_id_owner
from app.core.college_data import NOT_APPLICABLE, departments_of
from app.core.config import settings
from app.core.policy import Actor, author_id_status, can_upload
from app.core.security import verify_password, hash_password
from app.models.user import User
from app.schemas.settings import (
    AuthorIdStatus,
    AuthorIdUpdate,
    ChangePasswordRequest,
    ProfileUpdate,
)
from app.schemas.user import UserRead

router = APIRouter(prefix="/api/settings", tags=["Settings"])


async def _save(session: AsyncSession, user: User) -> User:
    user.updated_at = datetime.utcnow()
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@router.get("/", response_model=UserRead)
async def get_profile(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/profile", response_model=UserRead)
async def update_profile(
    payload: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session)
):
    # Only the display name is self-service; scope and role go through /api/users
    current_user.full_name = payload.full_name
    return await _save(session, current_user)


@router.post("/change-password")
async def change_password(
    payload: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session)
):
    if not verify_password(payload.current_password, current_user.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    if payload.new_password != payload.confirm_password:
        raise HTTPException(status_code=400, detail="New passwords do not match")

    if len(payload.new_password) < settings.MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long"
        )

    if payload.current_password == payload.new_password:
        raise HTTPException(status_code=400, detail="New password must be different")

    current_user.password_hash = hash_password(payload.new_password)
    await _save(session, current_user)
    logger.info(f"Password changed for {current_user.email}")

    return {"detail": "Password changed successfully"}


@router.put("/author-ids", response_model=UserRead)
async def update_author_ids(
    payload: AuthorIdUpdate,
    current_user: User = Depends(require_author_id_owner),
    session: AsyncSession = Depends(get_db_session)
):
    """
    Replaces all three identifiers; an omitted or blank field clears it.
    """
    current_user.scopus_id = payload.scopus_id
    current_user.sci_id = payload.sci_id
    current_user.web_of_science_id = payload.web_of_science_id
    return await _save(session, current_user)


@router.get("/departments", response_model=List[str])
async def my_departments(current_user: User = Depends(get_current_user)):
    if not current_user.college or current_user.college == NOT_APPLICABLE:
        return [NOT_APPLICABLE]
    return departments_of(current_user.college, current_user.institute)


@router.get("/author-id-status", response_model=AuthorIdStatus)
async def upload_status(current_user: User = Depends(get_current_user)):
    actor = Actor.from_user(current_user)
    allowed = can_upload(actor)
    return AuthorIdStatus(
        can_upload_papers=allowed,
        author_ids=author_id_status(actor),
        message=(
            "You can upload papers."
            if allowed
            else "Add at least one author ID (Scopus, SCI or Web of Science) to upload papers."
        ),
    )
