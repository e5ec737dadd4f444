# app/services/audit_service.py

from typing import Optional, Dict, Any
from uuid import UUID
from loguru import logger

from app.models.user import User
from app.models.user_log import UserLog
from app.core.database import AsyncSessionLocal


def user_snapshot(user: User) -> Dict[str, Any]:
    """JSON-safe copy of the fields an audit reader cares about."""
    return {
        "id": str(user.id),
        "full_name": user.full_name,
        "email": user.email,
        "role": user.role.value,
        "faculty_id": user.faculty_id,
        "college": user.college,
        "institute": user.institute,
        "department": user.department,
        "is_active": user.is_active,
    }


def _as_uuid(value) -> Optional[UUID]:
    if value is None or isinstance(value, UUID):
        return value
    return UUID(str(value))


# This function manages its own session so it can run in BackgroundTasks
async def log_user_action(
    action: str,
    actor: Dict[str, Any],
    target: Dict[str, Any],
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
):
    """
    Writes one user_logs row. ``actor`` and ``target`` are user snapshots.
    Failures are logged and never reach the request that triggered them.
    """
    async with AsyncSessionLocal() as session:
        try:
            entry = UserLog(
                actor_id=_as_uuid(actor.get("id")),
                actor_name=actor.get("full_name"),
                actor_email=actor.get("email"),
                actor_role=actor.get("role"),
                action=action,
                target_id=_as_uuid(target.get("id")),
                target_name=target.get("full_name"),
                target_email=target.get("email"),
                target_role=target.get("role"),
                target_college=target.get("college"),
                before=before,
                after=after,
            )
            session.add(entry)
            await session.commit()

        except Exception:
            logger.exception(f"Failed to write user log ({action})")
            await session.rollback()
