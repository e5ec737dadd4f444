from pydantic import BaseModel
from typing import Optional, Dict, Any
from uuid import UUID
from datetime import datetime

class UserLogRead(BaseModel):
    id: UUID
    action: str

    actor_id: Optional[UUID] = None
    actor_name: Optional[str] = None
    actor_email: Optional[str] = None
    actor_role: Optional[str] = None

    target_id: Optional[UUID] = None
    target_name: Optional[str] = None
    target_email: Optional[str] = None
    target_role: Optional[str] = None
    target_college: Optional[str] = None

    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None
    timestamp: datetime

    class Config:
        from_attributes = True
