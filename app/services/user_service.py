# app/services/user_service.py

import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from sqlmodel import select
from sqlalchemy import false, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.college_data import NOT_APPLICABLE, normalize_college_name
from app.core.config import settings
from app.core.policy import (
    Actor,
    ResolvedScope,
    TargetUser,
    UserVisibility,
    can_create_role,
    can_modify_user,
    domain_hints,
    is_duplicate,
    scope_assignment,
    user_visibility,
    validate_email_domain,
)
from app.models.user import User, UserRole
from app.models.user_log import UserLog
from app.schemas.user import (
    BulkRowError,
    BulkUploadRequest,
    BulkUploadResult,
    UserKeys,
    UserListItem,
    UserUpdate,
)
from app.services.auth_service import DuplicateUserError, create_user
from app.services.audit_service import user_snapshot


# ============================================================================
# VISIBILITY -> SQL
# ============================================================================
def apply_user_visibility(query, visibility: UserVisibility):
    if visibility.deny_all:
        return query.where(false())
    if visibility.college is not None:
        query = query.where(User.college == visibility.college)
    if visibility.institute is not None:
        query = query.where(User.institute == visibility.institute)
    if visibility.role is not None:
        query = query.where(User.role == visibility.role)
    return query


# ============================================================================
# LIST USERS
# ============================================================================
async def list_users_for(
    session: AsyncSession,
    actor: Actor,
    role: Optional[UserRole] = None,
    college: Optional[str] = None,
    institute: Optional[str] = None,
    department: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[UserListItem], int, int]:
    """
    Users the actor may see, narrowed by the optional filters.
    Returns (items, total, pages).
    """
    query = apply_user_visibility(select(User), user_visibility(actor))

    if role is not None:
        query = query.where(User.role == role)
    if college:
        query = query.where(User.college == college)
    if institute:
        query = query.where(User.institute == institute)
    if department:
        query = query.where(User.department == department)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(
                User.full_name.ilike(pattern),
                User.email.ilike(pattern),
                User.faculty_id.ilike(pattern),
            )
        )

    total = (await session.execute(
        select(func.count()).select_from(query.subquery())
    )).scalar_one()

    result = await session.execute(
        query.order_by(User.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )

    items = []
    for user in result.scalars().all():
        item = UserListItem.model_validate(user)
        item.can_modify = can_modify_user(actor, TargetUser.model_validate(user))
        items.append(item)

    return items, total, max(1, math.ceil(total / limit))


# ============================================================================
# UNIQUENESS SNAPSHOT
# ============================================================================
async def get_user_keys(session: AsyncSession, college: Optional[str] = None) -> UserKeys:
    query = select(User.email, User.faculty_id)
    if college:
        query = query.where(User.college == college)

    rows = (await session.execute(query)).all()
    return UserKeys(
        emails=[e.lower() for e, _ in rows if e],
        faculty_ids=[f.lower() for _, f in rows if f and f != NOT_APPLICABLE],
    )


# ============================================================================
# FIELD VALIDATION (shared by single create, edit and bulk upload)
# ============================================================================
def validate_user_fields(
    actor: Actor,
    role: UserRole,
    email: str,
    faculty_id: Optional[str],
    college: Optional[str],
    institute: Optional[str],
    department: Optional[str],
    keys: UserKeys,
    original: Optional[User] = None,
) -> Tuple[ResolvedScope, Dict[str, str]]:
    """
    Resolves the scope through the policy engine and collects field errors.
    Never raises; an empty error dict means the write may proceed.
    """
    scope = scope_assignment(actor, role, college, institute).resolve(college, institute, department)
    errors = dict(scope.errors)

    if not validate_email_domain(email, scope.college, scope.institute, actor):
        hints = domain_hints(scope.college, scope.institute, actor)
        errors["email"] = f"Email must use one of the domains: {', '.join(hints)}" if hints else "Invalid email"
    elif is_duplicate(email, keys.emails, original.email if original else None):
        errors["email"] = "Email already exists"

    if role != UserRole.SuperAdmin:
        if not faculty_id or not faculty_id.strip() or faculty_id.strip() == NOT_APPLICABLE:
            errors["faculty_id"] = "Faculty ID is required"
        elif is_duplicate(faculty_id, keys.faculty_ids, original.faculty_id if original else None):
            errors["faculty_id"] = "Faculty ID already exists"

    return scope, errors


# ============================================================================
# CREATE
# ============================================================================
async def create_user_for(
    session: AsyncSession,
    actor: Actor,
    full_name: str,
    email: str,
    password: str,
    role: UserRole,
    faculty_id: Optional[str] = None,
    college: Optional[str] = None,
    institute: Optional[str] = None,
    department: Optional[str] = None,
    keys: Optional[UserKeys] = None,
) -> User:
    """
    Raises PermissionError for a role the actor may not assign, ValueError
    (with a field -> message dict as its argument) for invalid input, and
    DuplicateUserError when the database rejects the write.
    """
    if not can_create_role(actor, role):
        raise PermissionError(f"Role '{actor.role.value}' cannot create '{role.value}' users")

    if len(password) < settings.MIN_PASSWORD_LENGTH:
        raise ValueError({"password": f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long"})

    if keys is None:
        keys = await get_user_keys(session)

    scope, errors = validate_user_fields(
        actor, role, email, faculty_id, college, institute, department, keys
    )
    if errors:
        raise ValueError(errors)

    return await create_user(
        session,
        full_name=full_name,
        email=email,
        password=password,
        role=role,
        faculty_id=faculty_id or NOT_APPLICABLE,
        college=scope.college,
        institute=scope.institute,
        department=scope.department,
        created_by=actor.user_id,
    )


# ============================================================================
# UPDATE
# ============================================================================
async def update_user_for(
    session: AsyncSession,
    actor: Actor,
    user: User,
    data: UserUpdate,
) -> User:
    if not can_modify_user(actor, TargetUser.model_validate(user)):
        raise PermissionError("Not authorized to modify this user")

    role = data.role or user.role
    if role != user.role and not can_create_role(actor, role):
        raise PermissionError(f"Role '{actor.role.value}' cannot assign '{role.value}'")

    email = (data.email or user.email).lower()
    faculty_id = data.faculty_id if data.faculty_id is not None else user.faculty_id

    # Omitted scope fields keep their current values
    college = data.college if data.college is not None else user.college
    institute = data.institute if data.institute is not None else user.institute
    department = data.department if data.department is not None else user.department

    keys = await get_user_keys(session)
    scope, errors = validate_user_fields(
        actor, role, email, faculty_id, college, institute, department, keys, original=user
    )
    if errors:
        raise ValueError(errors)

    if data.full_name:
        user.full_name = data.full_name.strip()
    if data.is_active is not None:
        user.is_active = data.is_active

    user.email = email
    user.role = role
    user.faculty_id = NOT_APPLICABLE if role == UserRole.SuperAdmin else faculty_id.strip()
    user.college = scope.college
    user.institute = scope.institute
    user.department = scope.department
    user.updated_at = datetime.utcnow()

    session.add(user)
    try:
        await session.commit()
        await session.refresh(user)
    except IntegrityError:
        await session.rollback()
        raise DuplicateUserError("User with this email or faculty ID already exists")

    logger.info(f"{actor.email} updated user {user.email}")
    return user


# ============================================================================
# DELETE
# ============================================================================
async def delete_user_for(session: AsyncSession, actor: Actor, user: User) -> None:
    if not can_modify_user(actor, TargetUser.model_validate(user)):
        raise PermissionError("Not authorized to delete this user")

    await session.delete(user)
    await session.commit()
    logger.info(f"{actor.email} deleted user {user.email}")


# ============================================================================
# BULK UPLOAD
# ============================================================================
async def bulk_create_users(
    session: AsyncSession,
    actor: Actor,
    request: BulkUploadRequest,
) -> Tuple[BulkUploadResult, List[Dict[str, Any]]]:
    """
    Validates every row with the single-create rules. Rows are checked
    against the database snapshot and against earlier rows of the same file.
    Returns snapshots of the created users, since a later row's rollback
    expires the ORM instances.
    """
    keys = await get_user_keys(session)
    created: List[Dict[str, Any]] = []
    errors: List[BulkRowError] = []

    for index, row in enumerate(request.rows, start=1):
        role = row.role or request.default_role
        try:
            user = await create_user_for(
                session,
                actor,
                full_name=row.full_name,
                email=row.email,
                password=row.password,
                role=role,
                faculty_id=row.faculty_id,
                # Spreadsheet cells arrive in any case
                college=normalize_college_name(row.college),
                institute=row.institute,
                department=row.department,
                keys=keys,
            )
        except PermissionError as e:
            errors.append(BulkRowError(row=index, email=row.email, errors={"role": str(e)}))
            continue
        except DuplicateUserError as e:
            errors.append(BulkRowError(row=index, email=row.email, errors={"email": str(e)}))
            continue
        except ValueError as e:
            detail = e.args[0] if e.args and isinstance(e.args[0], dict) else {"row": str(e)}
            errors.append(BulkRowError(row=index, email=row.email, errors=detail))
            continue

        snapshot = user_snapshot(user)
        keys.emails.append(snapshot["email"])
        keys.faculty_ids.append(snapshot["faculty_id"].lower())
        created.append(snapshot)

    logger.info(f"Bulk upload by {actor.email}: {len(created)} created, {len(errors)} failed")
    return BulkUploadResult(success=len(created), failed=len(errors), errors=errors), created


# ============================================================================
# LOGS
# ============================================================================
async def list_user_logs(
    session: AsyncSession,
    actor: Actor,
    action: Optional[str] = None,
    limit: int = 100,
) -> List[UserLog]:
    query = select(UserLog)

    if actor.role == UserRole.CampusAdmin:
        query = query.where(UserLog.target_college == actor.college)
    if action:
        query = query.where(UserLog.action == action)

    result = await session.execute(query.order_by(UserLog.timestamp.desc()).limit(limit))
    return result.scalars().all()


