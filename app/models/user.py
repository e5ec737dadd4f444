# app/models/user.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import Boolean, DateTime, Index, String, text
from sqlalchemy import Enum as SAEnum
from datetime import datetime
import uuid
from enum import Enum
from typing import Optional

class UserRole(str, Enum):
    SuperAdmin = "super_admin"
    CampusAdmin = "campus_admin"
    Admin = "admin"
    Faculty = "faculty"

class User(SQLModel, table=True):
    __tablename__ = "users"
    __table_args__ = (
        Index(
            "uq_users_faculty_id",
            "faculty_id",
            unique=True,
            postgresql_where=text("faculty_id <> 'N/A'"),
            sqlite_where=text("faculty_id <> 'N/A'"),
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    full_name: str = Field(nullable=False)
    email: str = Field(
        sa_column=Column(String, nullable=False, unique=True, index=True)
    )
    password_hash: str = Field(nullable=False)

    # Stored by value ("campus_admin"), not by member name
    role: UserRole = Field(
        sa_column=Column(
            SAEnum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
            nullable=False,
        )
    )

    # Owner key for publications. "N/A" for super admins, unique otherwise.
    faculty_id: str = Field(
        default="N/A",
        sa_column=Column(String, nullable=False)
    )

    # Scope inside the college -> institute -> department hierarchy
    college: str = Field(default="N/A", sa_column=Column(String, nullable=False, default="N/A"))
    institute: str = Field(default="N/A", sa_column=Column(String, nullable=False, default="N/A"))
    department: str = Field(default="N/A", sa_column=Column(String, nullable=False, default="N/A"))

    # External author identifiers (gate publication uploads for faculty)
    scopus_id: Optional[str] = Field(default=None, sa_column=Column(String, nullable=True))
    sci_id: Optional[str] = Field(default=None, sa_column=Column(String, nullable=True))
    web_of_science_id: Optional[str] = Field(default=None, sa_column=Column(String, nullable=True))

    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, default=True, nullable=False)
    )

    # Kept when the creator is deleted
    created_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", ondelete="SET NULL")

    last_login: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime, nullable=True)
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False)
    )
