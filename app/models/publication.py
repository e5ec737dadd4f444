# app/models/publication.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy import Enum as SAEnum
from typing import Optional, Dict, Any
from uuid import UUID, uuid4
from datetime import datetime

from app.models.enums import PublicationKind


class Publication(SQLModel, table=True):
    __tablename__ = "publications"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    kind: PublicationKind = Field(
        sa_column=Column(
            SAEnum(PublicationKind, name="publication_kind", values_callable=lambda e: [m.value for m in e]),
            nullable=False,
            index=True,
        )
    )

    # Owner. Set from the uploader's token, never from the request body.
    faculty_id: str = Field(sa_column=Column(String, nullable=False, index=True))

    # Snapshot of the owner's scope at upload time
    college: str = Field(sa_column=Column(String, nullable=False, index=True))
    institute: str = Field(sa_column=Column(String, nullable=False))
    department: str = Field(sa_column=Column(String, nullable=False))

    title: str = Field(sa_column=Column(String, nullable=False))
    year: int = Field(sa_column=Column(Integer, nullable=False, index=True))

    # Book chapters may be published without a DOI
    doi: Optional[str] = Field(
        default=None,
        sa_column=Column(String, nullable=True, unique=True)
    )

    # Type-specific fields: journal, publisher, q_rating, authors, ...
    details: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime, nullable=False)
    )
