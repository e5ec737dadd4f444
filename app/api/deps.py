# app/api/deps.py

from typing import AsyncGenerator
import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import decode_token
from app.core.database import get_session
from app.core.policy import Actor
from app.services.auth_service import get_user_by_id
from app.models.user import User, UserRole


# ------------------------------------------------------------
# HTTP Bearer Authentication
# ------------------------------------------------------------
bearer_scheme = HTTPBearer(auto_error=True)


# ------------------------------------------------------------
# DB Session
# ------------------------------------------------------------
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


# ------------------------------------------------------------
# Get current logged-in user from JWT
# ------------------------------------------------------------
async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_db_session),
) -> User:

    token = credentials.credentials

    try:
        payload = decode_token(token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Token has expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Could not validate credentials")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token payload")

    user = await get_user_by_id(session, user_id)

    if not user:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "User not found")

    if not user.is_active:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Account is deactivated")

    return user


# ------------------------------------------------------------
# Actor snapshot handed to the policy engine
# ------------------------------------------------------------
async def get_current_actor(current_user: User = Depends(get_current_user)) -> Actor:
    return Actor.from_user(current_user)


# ------------------------------------------------------------
# Role-based access control (CASE-SAFE, enum-safe)
# ------------------------------------------------------------
def role_required(*allowed_roles: UserRole):
    """
    Enforces that the current user has one of the allowed roles.
    Works with enum values and displays proper role in error messages.
    """

    def normalize_role(role):
        if isinstance(role, UserRole):
            return role.value.strip().lower()
        return str(role).strip().lower()

    normalized_allowed = set(normalize_role(r) for r in allowed_roles)

    async def checker(current_user: User = Depends(get_current_user)):

        if normalize_role(current_user.role) not in normalized_allowed:
            readable_role = (
                current_user.role.value if isinstance(current_user.role, UserRole)
                else str(current_user.role)
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied for role '{readable_role}'"
            )

        return current_user

    return checker


# ------------------------------------------------------------
# Exposed dependencies for routers
# ------------------------------------------------------------

require_super_admin = role_required(UserRole.SuperAdmin)
require_campus_oversight = role_required(UserRole.SuperAdmin, UserRole.CampusAdmin)
require_user_manager = role_required(UserRole.SuperAdmin, UserRole.CampusAdmin, UserRole.Admin)
require_author_id_owner = role_required(UserRole.Faculty, UserRole.CampusAdmin)
