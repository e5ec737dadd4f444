#app/models/user_log.py

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, JSON
from typing import Optional, Dict, Any
from uuid import UUID, uuid4
from datetime import datetime

class UserLog(SQLModel, table=True):
    __tablename__ = "user_logs"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    # Actor snapshot (who did it)
    actor_id: Optional[UUID] = Field(default=None, index=True)
    actor_name: Optional[str] = None
    actor_email: Optional[str] = None
    actor_role: Optional[str] = None

    # "create" | "update" | "delete"
    action: str = Field(index=True)

    # Target snapshot (on whom). Not a foreign key: deleted users keep their log.
    target_id: Optional[UUID] = Field(default=None, index=True)
    target_name: Optional[str] = None
    target_email: Optional[str] = None
    target_role: Optional[str] = None
    target_college: Optional[str] = Field(default=None, index=True)

    # None for create (before) and delete (after)
    before: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    after: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False, index=True),
    )
