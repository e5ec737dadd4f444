# app/services/publication_service.py

import csv
import io
import math
from collections import Counter
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from loguru import logger
from sqlmodel import select
from sqlalchemy import false, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.policy import (
    Actor,
    PublicationRef,
    PublicationVisibility,
    can_delete_paper,
    can_edit_paper,
    paper_permissions,
    publication_visibility,
)
from app.models.enums import PublicationKind
from app.models.publication import Publication
from app.models.user import User
from app.schemas.publication import (
    PublicationCreate,
    PublicationListItem,
    PublicationStats,
    PublicationUpdate,
)


class DuplicateDOIError(ValueError):
    pass


def _normalize_doi(doi: Optional[str]) -> Optional[str]:
    if doi is None:
        return None
    doi = doi.strip()
    return doi or None


# ============================================================================
# VISIBILITY -> SQL
# ============================================================================
def apply_publication_visibility(query, visibility: PublicationVisibility):
    if visibility.deny_all:
        return query.where(false())
    if visibility.faculty_id is not None:
        query = query.where(Publication.faculty_id == visibility.faculty_id)
    if visibility.college is not None:
        query = query.where(Publication.college == visibility.college)
    if visibility.institute is not None:
        query = query.where(Publication.institute == visibility.institute)
    return query


def build_publication_query(
    actor: Actor,
    kind: Optional[PublicationKind] = None,
    year: Optional[int] = None,
    department: Optional[str] = None,
    faculty_id: Optional[str] = None,
    search: Optional[str] = None,
):
    query = apply_publication_visibility(select(Publication), publication_visibility(actor))

    if kind is not None:
        query = query.where(Publication.kind == kind)
    if year is not None:
        query = query.where(Publication.year == year)
    if department:
        query = query.where(Publication.department == department)
    if faculty_id:
        query = query.where(Publication.faculty_id == faculty_id)
    if search:
        query = query.where(Publication.title.ilike(f"%{search.strip()}%"))

    return query.order_by(Publication.created_at.desc())


def to_list_item(actor: Actor, publication: Publication) -> PublicationListItem:
    item = PublicationListItem.model_validate(publication)
    perms = paper_permissions(actor, PublicationRef.model_validate(publication))
    return item.model_copy(update=perms.model_dump())


# ============================================================================
# READ
# ============================================================================
async def get_publication(session: AsyncSession, publication_id) -> Publication | None:
    try:
        pub_uuid = publication_id if isinstance(publication_id, UUID) else UUID(str(publication_id))
    except ValueError:
        return None
    result = await session.execute(select(Publication).where(Publication.id == pub_uuid))
    return result.scalar_one_or_none()


async def doi_exists(session: AsyncSession, doi: str) -> bool:
    doi = _normalize_doi(doi)
    if not doi:
        return False
    result = await session.execute(select(Publication.id).where(Publication.doi == doi))
    return result.first() is not None


async def list_publications_for(
    session: AsyncSession,
    actor: Actor,
    page: int = 1,
    limit: int = 20,
    **filters,
) -> Tuple[List[PublicationListItem], int, int]:
    query = build_publication_query(actor, **filters)

    total = (await session.execute(
        select(func.count()).select_from(query.subquery())
    )).scalar_one()

    result = await session.execute(query.offset((page - 1) * limit).limit(limit))
    items = [to_list_item(actor, p) for p in result.scalars().all()]
    return items, total, max(1, math.ceil(total / limit))


async def all_publications_for(session: AsyncSession, actor: Actor, **filters) -> List[Publication]:
    result = await session.execute(build_publication_query(actor, **filters))
    return result.scalars().all()


# ============================================================================
# CREATE
# ============================================================================
async def create_publication(
    session: AsyncSession,
    owner: User,
    data: PublicationCreate,
) -> Publication:
    """
    The owner and scope columns come from the uploader's account, never from
    the payload, and do not change afterwards.
    """
    if not owner.faculty_id or owner.faculty_id == "N/A":
        raise ValueError("Only accounts with a faculty ID can upload publications")

    doi = _normalize_doi(data.doi)
    if doi and await doi_exists(session, doi):
        raise DuplicateDOIError("A publication with this DOI already exists")

    publication = Publication(
        kind=data.kind,
        faculty_id=owner.faculty_id,
        college=owner.college,
        institute=owner.institute,
        department=owner.department,
        title=data.title.strip(),
        year=data.year,
        doi=doi,
        details=data.details,
    )
    session.add(publication)

    try:
        await session.commit()
        await session.refresh(publication)
    except IntegrityError:
        await session.rollback()
        raise DuplicateDOIError("A publication with this DOI already exists")

    logger.info(f"{owner.faculty_id} uploaded {data.kind.value} '{publication.title}'")
    return publication


# ============================================================================
# UPDATE / DELETE
# ============================================================================
async def update_publication(
    session: AsyncSession,
    actor: Actor,
    publication: Publication,
    data: PublicationUpdate,
) -> Publication:
    if not can_edit_paper(actor, PublicationRef.model_validate(publication)):
        raise PermissionError("Not authorized to edit this publication")

    if data.title is not None:
        publication.title = data.title.strip()
    if data.year is not None:
        publication.year = data.year
    if data.doi is not None:
        doi = _normalize_doi(data.doi)
        if doi and doi != publication.doi and await doi_exists(session, doi):
            raise DuplicateDOIError("A publication with this DOI already exists")
        publication.doi = doi
    if data.details is not None:
        publication.details = data.details

    publication.updated_at = datetime.utcnow()
    session.add(publication)

    try:
        await session.commit()
        await session.refresh(publication)
    except IntegrityError:
        await session.rollback()
        raise DuplicateDOIError("A publication with this DOI already exists")

    logger.info(f"{actor.email} updated publication {publication.id}")
    return publication


async def delete_publication(session: AsyncSession, actor: Actor, publication: Publication) -> None:
    if not can_delete_paper(actor, PublicationRef.model_validate(publication)):
        raise PermissionError("Not authorized to delete this publication")

    await session.delete(publication)
    await session.commit()
    logger.info(f"{actor.email} deleted publication {publication.id}")


# ============================================================================
# STATS / EXPORT
# ============================================================================
def publication_stats(publications: List[Publication]) -> PublicationStats:
    return PublicationStats(
        total=len(publications),
        by_kind=dict(Counter(p.kind.value for p in publications)),
        by_year={str(k): v for k, v in Counter(p.year for p in publications).items()},
        by_department=dict(Counter(p.department for p in publications)),
        active_faculty=len({p.faculty_id for p in publications}),
    )


EXPORT_COLUMNS = [
    "kind", "title", "year", "doi", "faculty_id",
    "college", "institute", "department", "created_at",
]


def export_csv(publications: List[Publication]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_COLUMNS)
    for p in publications:
        writer.writerow([
            p.kind.value,
            p.title,
            p.year,
            p.doi or "",
            p.faculty_id,
            p.college,
            p.institute,
            p.department,
            p.created_at.isoformat(),
        ])
    return buffer.getvalue()
