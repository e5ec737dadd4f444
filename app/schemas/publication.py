from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from uuid import UUID
from datetime import datetime

from app.models.enums import PublicationKind


class PublicationCreate(BaseModel):
    kind: PublicationKind
    title: str = Field(min_length=1)
    year: int = Field(ge=1900, le=3000)
    doi: Optional[str] = None
    # journal / publisher / q_rating / authors ... depending on kind
    details: Dict[str, Any] = {}


class PublicationUpdate(BaseModel):
    # Owner and scope columns are not updatable
    title: Optional[str] = Field(default=None, min_length=1)
    year: Optional[int] = Field(default=None, ge=1900, le=3000)
    doi: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class PublicationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    kind: PublicationKind
    faculty_id: str
    college: str
    institute: str
    department: str
    title: str
    year: int
    doi: Optional[str] = None
    details: Dict[str, Any] = {}
    created_at: datetime
    updated_at: datetime


class PublicationListItem(PublicationRead):
    is_owner: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_select: bool = False
    badge: str = "View Only"


class PublicationPage(BaseModel):
    items: List[PublicationListItem]
    total: int
    page: int
    pages: int


class PublicationStats(BaseModel):
    total: int
    by_kind: Dict[str, int] = {}
    by_year: Dict[str, int] = {}
    by_department: Dict[str, int] = {}
    active_faculty: int = 0
