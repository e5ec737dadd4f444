from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, String
from typing import Optional
from datetime import datetime


class Otp(SQLModel, table=True):
    __tablename__ = "otps"

    id: Optional[int] = Field(default=None, primary_key=True)

    email: str = Field(sa_column=Column(String, nullable=False, index=True))
    otp: str = Field(sa_column=Column(String(6), nullable=False))

    expires_at: datetime = Field(sa_column=Column(DateTime, nullable=False))
    attempts: int = Field(default=0)
    is_used: bool = Field(default=False)

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False)
    )
