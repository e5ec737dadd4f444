# app/core/rbac.py

from fastapi import Depends, HTTPException, status
from app.api.deps import get_current_user
from app.core.policy import Actor
from app.models.user import User, UserRole

def AllowRoles(*allowed_roles):
    """
    Flexible RBAC that hands the route a policy ``Actor``:
    - Accepts UserRole values or raw strings
    - Case-insensitive
    - Super admin bypasses everything
    """

    def normalize(role) -> str:
        if isinstance(role, UserRole):
            return role.value.lower().strip()
        return str(role).lower().strip()

    normalized_allowed = {normalize(r) for r in allowed_roles}

    async def role_checker(current_user: User = Depends(get_current_user)) -> Actor:
        if not current_user:
            raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Unauthenticated")

        user_role = normalize(current_user.role)

        # Super admin bypass
        if user_role == UserRole.SuperAdmin.value:
            return Actor.from_user(current_user)

        if user_role not in normalized_allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied for role '{user_role}'"
            )

        return Actor.from_user(current_user)

    return role_checker
