from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from pydantic import BaseModel

from app.api.deps import get_current_actor
from app.core.college_data import (
    COLLEGES,
    departments_of,
    email_domain_for,
    institutes_of,
)
from app.core.policy import Actor

router = APIRouter(
    prefix="/api/scope",
    tags=["Scope / Hierarchy"]
)

# ----------------------------------------------------------
# SCHEMAS (Simple Data for Dropdowns)
# ----------------------------------------------------------
class CollegeOption(BaseModel):
    name: str
    has_institutes: bool
    email_domain: Optional[str] = None

# ----------------------------------------------------------
# 1. GET ALL COLLEGES
# ----------------------------------------------------------
@router.get("/colleges", response_model=List[CollegeOption])
async def get_colleges(_: Actor = Depends(get_current_actor)):
    return [
        CollegeOption(
            name=c["name"],
            has_institutes=c["has_institutes"],
            email_domain=email_domain_for(c["name"]),
        )
        for c in COLLEGES
    ]

# ----------------------------------------------------------
# 2. GET INSTITUTES OF A COLLEGE
# ----------------------------------------------------------
@router.get("/institutes", response_model=List[str])
async def get_institutes(
    college: str = Query(..., description="College name"),
    _: Actor = Depends(get_current_actor),
):
    return institutes_of(college)

# ----------------------------------------------------------
# 3. GET DEPARTMENTS OF A COLLEGE / INSTITUTE
# ----------------------------------------------------------
@router.get("/departments", response_model=List[str])
async def get_departments(
    college: str = Query(..., description="College name"),
    institute: Optional[str] = Query(None, description="Ignored for colleges without institutes"),
    _: Actor = Depends(get_current_actor),
):
    return departments_of(college, institute)
