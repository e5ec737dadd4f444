# app/api/endpoints/publications.py

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession
from typing import Optional
from uuid import UUID
from datetime import datetime
from loguru import logger

from app.api.deps import get_db_session, get_current_user, get_current_actor
from app.core.college_data import NOT_APPLICABLE
from app.core.policy import Actor, PublicationRef, can_upload, publication_visibility
from app.core.rbac import AllowRoles
from app.models.enums import PublicationKind
from app.models.publication import Publication
from app.models.user import User, UserRole
from app.schemas.publication import (
    PublicationCreate,
    PublicationListItem,
    PublicationPage,
    PublicationStats,
    PublicationUpdate,
)
from app.services.publication_service import (
    DuplicateDOIError,
    all_publications_for,
    create_publication,
    delete_publication,
    doi_exists,
    export_csv,
    get_publication,
    list_publications_for,
    publication_stats,
    to_list_item,
    update_publication,
)

router = APIRouter(prefix="/api/publications", tags=["Publications"])


async def _load_visible(session: AsyncSession, actor: Actor, publication_id: UUID) -> Publication:
    """404 for publications that do not exist or sit outside the caller's view."""
    publication = await get_publication(session, publication_id)
    if not publication or not publication_visibility(actor).matches(
        PublicationRef.model_validate(publication)
    ):
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Publication not found")
    return publication


# -------------------------------------------------------------------
# UPLOAD
# -------------------------------------------------------------------
@router.post("/", response_model=PublicationListItem, status_code=status.HTTP_201_CREATED)
async def upload_publication(
    data: PublicationCreate,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
):
    actor = Actor.from_user(current_user)

    if not can_upload(actor):
        logger.warning(f"Upload blocked for {actor.email}: no author ID on file")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "message": "Add at least one author ID (Scopus, SCI or Web of Science) before uploading papers.",
                "settings_url": "/api/settings/author-ids",
            },
        )

    try:
        publication = await create_publication(session, current_user, data)
    except DuplicateDOIError as e:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(e))

    return to_list_item(actor, publication)


# -------------------------------------------------------------------
# OWN PUBLICATIONS
# -------------------------------------------------------------------
@router.get("/my", response_model=PublicationPage)
async def my_publications(
    kind: Optional[PublicationKind] = Query(None),
    year: Optional[int] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_db_session),
    actor: Actor = Depends(get_current_actor),
):
    if not actor.faculty_id or actor.faculty_id == NOT_APPLICABLE:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Account has no faculty ID")

    items, total, pages = await list_publications_for(
        session, actor, page=page, limit=limit,
        kind=kind, year=year, faculty_id=actor.faculty_id, search=search,
    )
    return PublicationPage(items=items, total=total, page=page, pages=pages)


# -------------------------------------------------------------------
# LIST (scoped by role)
# -------------------------------------------------------------------
@router.get("/", response_model=PublicationPage)
async def list_publications(
    kind: Optional[PublicationKind] = Query(None),
    year: Optional[int] = Query(None),
    department: Optional[str] = Query(None),
    faculty_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_db_session),
    actor: Actor = Depends(get_current_actor),
):
    items, total, pages = await list_publications_for(
        session, actor, page=page, limit=limit,
        kind=kind, year=year, department=department, faculty_id=faculty_id, search=search,
    )
    return PublicationPage(items=items, total=total, page=page, pages=pages)


@router.get("/doi-exists")
async def check_doi(
    doi: str = Query(..., min_length=1),
    session: AsyncSession = Depends(get_db_session),
    _: Actor = Depends(get_current_actor),
):
    return {"doi": doi.strip(), "exists": await doi_exists(session, doi)}


# -------------------------------------------------------------------
# STATS (oversight roles)
# -------------------------------------------------------------------
@router.get("/stats", response_model=PublicationStats)
async def stats(
    year: Optional[int] = Query(None),
    department: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_db_session),
    actor: Actor = Depends(AllowRoles(UserRole.CampusAdmin, UserRole.Admin)),
):
    publications = await all_publications_for(session, actor, year=year, department=department)
    return publication_stats(publications)


# -------------------------------------------------------------------
# EXPORT (CSV of the visible list)
# -------------------------------------------------------------------
@router.get("/export")
async def export_publications(
    kind: Optional[PublicationKind] = Query(None),
    year: Optional[int] = Query(None),
    department: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_db_session),
    actor: Actor = Depends(get_current_actor),
):
    publications = await all_publications_for(
        session, actor, kind=kind, year=year, department=department, search=search
    )
    filename = f"publications_{datetime.utcnow():%Y%m%d}.csv"
    return Response(
        content=export_csv(publications),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


# -------------------------------------------------------------------
# EDIT / DELETE
# -------------------------------------------------------------------
@router.put("/{publication_id}", response_model=PublicationListItem)
async def edit_publication(
    publication_id: UUID,
    data: PublicationUpdate,
    session: AsyncSession = Depends(get_db_session),
    actor: Actor = Depends(get_current_actor),
):
    publication = await _load_visible(session, actor, publication_id)
    try:
        publication = await update_publication(session, actor, publication, data)
    except PermissionError as e:
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail=str(e))
    except DuplicateDOIError as e:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=str(e))

    return to_list_item(actor, publication)


@router.delete("/{publication_id}")
async def remove_publication(
    publication_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    actor: Actor = Depends(get_current_actor),
):
    publication = await _load_visible(session, actor, publication_id)
    try:
        await delete_publication(session, actor, publication)
    except PermissionError as e:
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail=str(e))

    return {"detail": "Publication deleted successfully"}
