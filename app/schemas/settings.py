import re
from pydantic import BaseModel, field_validator
from typing import Dict, Optional

SCOPUS_PATTERN = re.compile(r"^\d{10,11}$")
RESEARCHER_ID_PATTERN = re.compile(r"^[A-Z]-\d{4}-\d{4}$")


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str


class ProfileUpdate(BaseModel):
    full_name: str

    @field_validator("full_name")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Full name cannot be empty")
        return v.strip()


class AuthorIdUpdate(BaseModel):
    scopus_id: Optional[str] = None
    sci_id: Optional[str] = None
    web_of_science_id: Optional[str] = None

    @field_validator("scopus_id", "sci_id", "web_of_science_id", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    @field_validator("scopus_id")
    @classmethod
    def check_scopus(cls, v):
        if v is not None and not SCOPUS_PATTERN.match(v):
            raise ValueError("Scopus Author ID must be 10-11 digits")
        return v

    @field_validator("sci_id")
    @classmethod
    def check_sci(cls, v):
        if v is not None and not RESEARCHER_ID_PATTERN.match(v):
            raise ValueError("SCI Author ID must be in format X-XXXX-XXXX")
        return v

    @field_validator("web_of_science_id")
    @classmethod
    def check_wos(cls, v):
        if v is not None and not RESEARCHER_ID_PATTERN.match(v):
            raise ValueError("Web of Science ResearcherID must be in format X-XXXX-XXXX")
        return v


class AuthorIdStatus(BaseModel):
    can_upload_papers: bool
    author_ids: Dict[str, bool] = {}
    message: str
