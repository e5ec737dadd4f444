from typing import Dict, List, Optional
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field
from app.models.user import UserRole


# ---------------------------------------------------------
# BASE
# ---------------------------------------------------------
class UserBase(BaseModel):
    full_name: str
    email: EmailStr


# ---------------------------------------------------------
# CREATE USER (scope fields are resolved by the policy engine)
# ---------------------------------------------------------
class UserCreate(UserBase):
    password: str
    role: UserRole
    faculty_id: Optional[str] = None      # required for every role except super_admin
    college: Optional[str] = None
    institute: Optional[str] = None
    department: Optional[str] = None

    class Config:
        json_schema_extra = {
            "examples": [
                {
                    "full_name": "Faculty User",
                    "email": "faculty@srmist.edu.in",
                    "password": "password123",
                    "role": "faculty",
                    "faculty_id": "FAC-1001",
                    "college": "SRMIST RAMAPURAM",
                    "institute": "Engineering and Technology",
                    "department": "Computer Science"
                },
                {
                    "full_name": "Campus Admin",
                    "email": "campus@srmtrichy.edu.in",
                    "password": "password123",
                    "role": "campus_admin",
                    "faculty_id": "CA-0001",
                    "college": "SRM TRICHY",
                    "institute": "Science and Humanities"
                }
            ]
        }


# ---------------------------------------------------------
# UPDATE USER (admin path; self-edits go through /api/settings)
# ---------------------------------------------------------
class UserUpdate(BaseModel):
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    faculty_id: Optional[str] = None
    college: Optional[str] = None
    institute: Optional[str] = None
    department: Optional[str] = None
    is_active: Optional[bool] = None


# ---------------------------------------------------------
# READ USER (response)
# ---------------------------------------------------------
class UserRead(UserBase):
    id: UUID
    role: UserRole
    faculty_id: str
    college: str
    institute: str
    department: str
    scopus_id: Optional[str] = None
    sci_id: Optional[str] = None
    web_of_science_id: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserListItem(UserRead):
    # Whether the caller may edit / delete this row
    can_modify: bool = False


class UserPage(BaseModel):
    items: List[UserListItem]
    total: int
    page: int
    pages: int


# ---------------------------------------------------------
# UNIQUENESS SNAPSHOT
# ---------------------------------------------------------
class UserKeys(BaseModel):
    emails: List[str] = []
    faculty_ids: List[str] = []


# ---------------------------------------------------------
# CREATION FORM GUIDANCE
# ---------------------------------------------------------
class ScopeFieldRead(BaseModel):
    visible: bool
    editable: bool
    value: Optional[str] = None
    options: List[str] = []


class CreationOptions(BaseModel):
    creatable_roles: List[UserRole]
    role: Optional[UserRole] = None
    college: Optional[ScopeFieldRead] = None
    institute: Optional[ScopeFieldRead] = None
    department: Optional[ScopeFieldRead] = None
    email_domains: List[str] = []


# ---------------------------------------------------------
# BULK UPLOAD (rows arrive already parsed from the spreadsheet)
# ---------------------------------------------------------
class BulkUserRow(BaseModel):
    full_name: str
    email: str
    password: str
    faculty_id: str
    role: Optional[UserRole] = None
    college: Optional[str] = None
    institute: Optional[str] = None
    department: Optional[str] = None


class BulkUploadRequest(BaseModel):
    # Applied to rows that leave "role" empty
    default_role: UserRole = UserRole.Faculty
    rows: List[BulkUserRow] = Field(min_length=1, max_length=1000)


class BulkRowError(BaseModel):
    row: int
    email: Optional[str] = None
    errors: Dict[str, str]


class BulkUploadResult(BaseModel):
    success: int
    failed: int
    errors: List[BulkRowError] = []
