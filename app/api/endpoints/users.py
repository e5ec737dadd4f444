# app/api/endpoints/users.py

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession
from typing import List, Optional
from uuid import UUID

from app.api.deps import (
    get_db_session,
    get_current_user,
    require_campus_oversight,
    require_user_manager,
)
from app.core.policy import (
    Actor,
    TargetUser,
    creatable_roles,
    domain_hints,
    scope_assignment,
    user_visibility,
)
from app.models.enums import UserLogAction
from app.models.user import User, UserRole
from app.schemas.audit import UserLogRead
from app.schemas.user import (
    BulkUploadRequest,
    BulkUploadResult,
    CreationOptions,
    ScopeFieldRead,
    UserCreate,
    UserKeys,
    UserPage,
    UserRead,
    UserUpdate,
)
from app.services.audit_service import log_user_action, user_snapshot
from app.services.auth_service import DuplicateUserError, get_user_by_id
from app.services.email_service import send_user_welcome_email
from app.services.user_service import (
    bulk_create_users,
    create_user_for,
    delete_user_for,
    get_user_keys,
    list_user_logs,
    list_users_for,
    update_user_for,
)

router = APIRouter(prefix="/api/users", tags=["Users"])


def _raise_for(e: Exception):
    """Map service exceptions onto HTTP errors."""
    if isinstance(e, PermissionError):
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail=str(e))
    if isinstance(e, DuplicateUserError):
        raise HTTPException(status.HTTP_409_CONFLICT, detail=str(e))
    detail = e.args[0] if e.args else str(e)
    raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=detail)


async def _load_target(session: AsyncSession, user_id: UUID) -> User:
    user = await get_user_by_id(session, user_id)
    if not user:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


# -------------------------------------------------------------------
# List users visible to the caller
# -------------------------------------------------------------------
@router.get("/", response_model=UserPage)
async def list_users(
    role: Optional[UserRole] = Query(None),
    college: Optional[str] = Query(None),
    institute: Optional[str] = Query(None),
    department: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(require_user_manager),
):
    items, total, pages = await list_users_for(
        session,
        Actor.from_user(current_user),
        role=role,
        college=college,
        institute=institute,
        department=department,
        search=search,
        page=page,
        limit=limit,
    )
    return UserPage(items=items, total=total, page=page, pages=pages)


# -------------------------------------------------------------------
# Form guidance: which roles / scope fields / email domains apply
# -------------------------------------------------------------------
@router.get("/creation-options", response_model=CreationOptions)
async def creation_options(
    role: Optional[UserRole] = Query(None),
    college: Optional[str] = Query(None),
    institute: Optional[str] = Query(None),
    current_user: User = Depends(require_user_manager),
):
    actor = Actor.from_user(current_user)
    options = CreationOptions(creatable_roles=creatable_roles(actor))
    if role is None:
        return options

    assignment = scope_assignment(actor, role, college, institute)
    resolved = assignment.resolve(college, institute, None)

    options.role = role
    options.college = ScopeFieldRead(**assignment.college.model_dump())
    options.institute = ScopeFieldRead(**assignment.institute.model_dump())
    options.department = ScopeFieldRead(**assignment.department.model_dump())
    options.email_domains = domain_hints(resolved.college, resolved.institute, actor)
    return options


# -------------------------------------------------------------------
# Uniqueness snapshot for client-side pre-checks
# -------------------------------------------------------------------
@router.get("/keys", response_model=UserKeys)
async def user_keys(
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(require_campus_oversight),
):
    college = current_user.college if current_user.role == UserRole.CampusAdmin else None
    return await get_user_keys(session, college=college)


# -------------------------------------------------------------------
# Audit trail of user changes
# -------------------------------------------------------------------
@router.get("/logs", response_model=List[UserLogRead])
async def user_logs(
    action: Optional[UserLogAction] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(require_campus_oversight),
):
    return await list_user_logs(
        session, Actor.from_user(current_user), action=action.value if action else None, limit=limit
    )


# -------------------------------------------------------------------
# Create a user
# -------------------------------------------------------------------
@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_new_user(
    data: UserCreate,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(require_user_manager),
):
    actor_snapshot = user_snapshot(current_user)
    try:
        user = await create_user_for(
            session,
            Actor.from_user(current_user),
            full_name=data.full_name,
            email=data.email,
            password=data.password,
            role=data.role,
            faculty_id=data.faculty_id,
            college=data.college,
            institute=data.institute,
            department=data.department,
        )
    except (PermissionError, ValueError) as e:
        _raise_for(e)

    after = user_snapshot(user)
    background_tasks.add_task(log_user_action, UserLogAction.Create.value, actor_snapshot, after, None, after)
    background_tasks.add_task(send_user_welcome_email, after)
    return user


# -------------------------------------------------------------------
# Bulk create (rows parsed from the spreadsheet by the client)
# -------------------------------------------------------------------
@router.post("/bulk", response_model=BulkUploadResult)
async def bulk_upload(
    request: BulkUploadRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(require_campus_oversight),
):
    actor_snapshot = user_snapshot(current_user)
    result, created = await bulk_create_users(session, Actor.from_user(current_user), request)

    for after in created:
        background_tasks.add_task(log_user_action, UserLogAction.Create.value, actor_snapshot, after, None, after)
        background_tasks.add_task(send_user_welcome_email, after)

    return result


# -------------------------------------------------------------------
# Update a user
# -------------------------------------------------------------------
@router.put("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: UUID,
    data: UserUpdate,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(require_user_manager),
):
    actor_snapshot = user_snapshot(current_user)
    user = await _load_target(session, user_id)
    before = user_snapshot(user)

    try:
        user = await update_user_for(session, Actor.from_user(current_user), user, data)
    except (PermissionError, ValueError) as e:
        _raise_for(e)

    after = user_snapshot(user)
    background_tasks.add_task(log_user_action, UserLogAction.Update.value, actor_snapshot, after, before, after)
    return user


# -------------------------------------------------------------------
# Delete a user
# -------------------------------------------------------------------
@router.delete("/{user_id}")
async def delete_user(
    user_id: UUID,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(require_user_manager),
):
    actor_snapshot = user_snapshot(current_user)
    user = await _load_target(session, user_id)
    before = user_snapshot(user)

    try:
        await delete_user_for(session, Actor.from_user(current_user), user)
    except PermissionError as e:
        _raise_for(e)

    background_tasks.add_task(log_user_action, UserLogAction.Delete.value, actor_snapshot, before, before, None)
    return {"detail": "User deleted successfully"}


# -------------------------------------------------------------------
# Fetch one user (same visibility as the list)
# -------------------------------------------------------------------
@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
):
    user = await _load_target(session, user_id)
    if user.id != current_user.id and not user_visibility(Actor.from_user(current_user)).matches(
        TargetUser.model_validate(user)
    ):
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail="Not authorized to view this user")
    return user
