# app/core/policy.py
"""
Role / scope policy engine.

Every function here is a pure decision over an ``Actor`` snapshot, a target
(user or publication) and the static hierarchy in ``college_data``. Nothing
reads the database or the request; nothing raises. Routers call these before
touching the database and build list queries from the visibility filters.
"""

from typing import Dict, Iterable, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.core.college_data import (
    NOT_APPLICABLE,
    RESEARCH_EMAIL_DOMAINS,
    RESEARCH_INSTITUTE,
    all_college_names,
    departments_of,
    email_domain_for,
    get_college,
    has_institutes,
    institutes_of,
    is_research_college,
    is_valid_department_selection,
    is_valid_research_selection,
    research_department_for,
)
from app.models.user import UserRole


# ==========================================================
# SNAPSHOTS
# ==========================================================
class Actor(BaseModel):
    """The authenticated caller, rebuilt per request from the token + user row."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    role: UserRole
    college: str = NOT_APPLICABLE
    institute: str = NOT_APPLICABLE
    department: str = NOT_APPLICABLE
    faculty_id: str = NOT_APPLICABLE
    user_id: Optional[UUID] = None
    email: Optional[str] = None

    scopus_id: Optional[str] = None
    sci_id: Optional[str] = None
    web_of_science_id: Optional[str] = None

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(
            role=user.role,
            college=user.college or NOT_APPLICABLE,
            institute=user.institute or NOT_APPLICABLE,
            department=user.department or NOT_APPLICABLE,
            faculty_id=user.faculty_id or NOT_APPLICABLE,
            user_id=user.id,
            email=user.email,
            scopus_id=user.scopus_id,
            sci_id=user.sci_id,
            web_of_science_id=user.web_of_science_id,
        )


class TargetUser(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: Optional[UUID] = None
    email: Optional[str] = None
    role: UserRole
    college: str = NOT_APPLICABLE
    institute: str = NOT_APPLICABLE
    department: str = NOT_APPLICABLE
    faculty_id: str = NOT_APPLICABLE


class PublicationRef(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    faculty_id: str
    college: str = NOT_APPLICABLE
    institute: str = NOT_APPLICABLE
    department: str = NOT_APPLICABLE


def _coerce_role(role) -> Optional[UserRole]:
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(str(role).strip().lower())
    except ValueError:
        return None


def _institute_scoped(college: str) -> bool:
    # Only a known college without institutes drops the institute check
    return not (get_college(college) is not None and not has_institutes(college))


# ==========================================================
# ROLE CREATION
# ==========================================================
ROLE_CREATION_TABLE = {
    UserRole.SuperAdmin: (UserRole.SuperAdmin, UserRole.CampusAdmin, UserRole.Admin, UserRole.Faculty),
    UserRole.CampusAdmin: (UserRole.Admin, UserRole.Faculty),
    UserRole.Admin: (UserRole.Faculty,),
    UserRole.Faculty: (),
}


def creatable_roles(actor: Actor) -> List[UserRole]:
    return list(ROLE_CREATION_TABLE.get(actor.role, ()))


def can_create_role(actor: Actor, role) -> bool:
    target_role = _coerce_role(role)
    if target_role is None:
        return False
    return target_role in ROLE_CREATION_TABLE.get(actor.role, ())


# ==========================================================
# SCOPE ASSIGNMENT
# ==========================================================
class ScopeField(BaseModel):
    model_config = ConfigDict(frozen=True)

    visible: bool
    editable: bool
    # Forced value when not editable; None while the actor still has to choose
    value: Optional[str] = None
    options: List[str] = []

    @classmethod
    def hidden(cls) -> "ScopeField":
        return cls(visible=False, editable=False, value=NOT_APPLICABLE, options=[NOT_APPLICABLE])

    @classmethod
    def fixed(cls, value: str, visible: bool = True) -> "ScopeField":
        return cls(visible=visible, editable=False, value=value, options=[value])

    @classmethod
    def choice(cls, options: List[str]) -> "ScopeField":
        return cls(visible=True, editable=True, value=None, options=options)


class ResolvedScope(BaseModel):
    college: str = NOT_APPLICABLE
    institute: str = NOT_APPLICABLE
    department: str = NOT_APPLICABLE
    errors: Dict[str, str] = {}

    @property
    def ok(self) -> bool:
        return not self.errors


class ScopeAssignment(BaseModel):
    model_config = ConfigDict(frozen=True)

    college: ScopeField
    institute: ScopeField
    department: ScopeField

    def resolve(
        self,
        college: Optional[str] = None,
        institute: Optional[str] = None,
        department: Optional[str] = None,
    ) -> ResolvedScope:
        """
        Apply forced values and check the actor's choices against the options.
        Missing or unknown choices become field errors, never exceptions.
        """
        chosen = {"college": college, "institute": institute, "department": department}
        values: Dict[str, str] = {}
        errors: Dict[str, str] = {}

        for name in ("college", "institute", "department"):
            field: ScopeField = getattr(self, name)
            if not field.editable:
                values[name] = field.value or NOT_APPLICABLE
                continue

            picked = chosen[name]
            if not picked or picked == NOT_APPLICABLE:
                errors[name] = f"{name.capitalize()} is required"
                values[name] = NOT_APPLICABLE
            elif not self._valid_choice(name, picked, values):
                errors[name] = f"'{picked}' is not a valid {name}"
                values[name] = NOT_APPLICABLE
            else:
                values[name] = picked

        return ResolvedScope(errors=errors, **values)

    def _valid_choice(self, name: str, picked: str, values: Dict[str, str]) -> bool:
        # Departments and the research institute are checked against the
        # college/institute already resolved above them
        if name == "department":
            return is_valid_department_selection(values["college"], values["institute"], picked)
        if picked not in getattr(self, name).options:
            return False
        if name == "institute":
            return is_valid_research_selection(values["college"], picked)
        return True


def scope_assignment(
    actor: Actor,
    target_role,
    college: Optional[str] = None,
    institute: Optional[str] = None,
) -> ScopeAssignment:
    """
    Which scope fields the actor picks and which are forced, in rule order:

    1. a super_admin target has no scope at all;
    2. campus admins (and admins) place users inside their own college and
       institute, choosing only a faculty member's department;
    3. super admins choose the college, the institute when the college has
       institutes, and the department for faculty;
    4. the research institute of a research-enabled college forces its single
       research department, shown read-only.
    """
    role = _coerce_role(target_role)

    if role is None or role == UserRole.SuperAdmin:
        hidden = ScopeField.hidden()
        return ScopeAssignment(college=hidden, institute=hidden, department=hidden)

    if actor.role in (UserRole.CampusAdmin, UserRole.Admin):
        college = actor.college
        institute = actor.institute
        college_field = ScopeField.fixed(college)
        institute_field = ScopeField.fixed(institute, visible=has_institutes(college))
        if role == UserRole.Faculty:
            department_field = ScopeField.choice(departments_of(college, institute))
        else:
            department_field = ScopeField.hidden()

    elif actor.role == UserRole.SuperAdmin:
        college_field = ScopeField.choice(
            [c for c in all_college_names() if c != NOT_APPLICABLE]
        )
        if has_institutes(college):
            institute_field = ScopeField.choice(institutes_of(college))
        else:
            institute = NOT_APPLICABLE
            institute_field = ScopeField.hidden()
        if role == UserRole.Faculty:
            department_field = ScopeField.choice(departments_of(college, institute))
        else:
            department_field = ScopeField.hidden()

    else:
        # Faculty create nobody; everything stays pinned to their own scope
        college = actor.college
        institute = actor.institute
        college_field = ScopeField.fixed(actor.college, visible=False)
        institute_field = ScopeField.fixed(actor.institute, visible=False)
        department_field = ScopeField.fixed(actor.department, visible=False)

    if institute == RESEARCH_INSTITUTE and is_research_college(college):
        department_field = ScopeField.fixed(research_department_for(college))

    return ScopeAssignment(
        college=college_field,
        institute=institute_field,
        department=department_field,
    )


# ==========================================================
# EMAIL DOMAINS
# ==========================================================
def _research_context(institute: Optional[str], actor: Optional[Actor]) -> bool:
    if institute == RESEARCH_INSTITUTE:
        return True
    return getattr(actor, "institute", None) == RESEARCH_INSTITUTE


def domain_hints(college: Optional[str], institute: Optional[str], actor: Optional[Actor] = None) -> List[str]:
    if _research_context(institute, actor):
        return list(RESEARCH_EMAIL_DOMAINS)
    domain = email_domain_for(college)
    return [domain] if domain else []


def validate_email_domain(
    email: Optional[str],
    college: Optional[str],
    institute: Optional[str],
    actor: Optional[Actor] = None,
) -> bool:
    if not email or email.count("@") != 1:
        return False

    local, domain = email.strip().split("@")
    if not local or not domain:
        return False

    allowed = domain_hints(college, institute, actor)
    if not allowed:
        # No college picked ("N/A"): nothing to enforce
        return True
    return domain.lower() in allowed


# ==========================================================
# UNIQUENESS PRE-CHECK
# ==========================================================
def exists(value: Optional[str], values: Iterable[str]) -> bool:
    if not value:
        return False
    needle = value.strip().lower()
    return any(needle == (v or "").strip().lower() for v in values)


def is_duplicate(value: Optional[str], values: Iterable[str], original: Optional[str] = None) -> bool:
    """Advisory only: the unique constraint on write has the final word."""
    if original is not None and value is not None:
        if value.strip().lower() == original.strip().lower():
            return False
    return exists(value, values)


# ==========================================================
# USERS: MODIFY / VISIBILITY
# ==========================================================
def is_self(actor: Actor, target: TargetUser) -> bool:
    if actor.user_id is not None and target.id is not None:
        return actor.user_id == target.id
    if actor.email and target.email:
        return actor.email.strip().lower() == target.email.strip().lower()
    return False


def can_modify_user(actor: Actor, target: TargetUser) -> bool:
    if is_self(actor, target):
        return False

    if actor.role == UserRole.SuperAdmin:
        return True

    if actor.role == UserRole.CampusAdmin:
        if target.college != actor.college:
            return False
        return not _institute_scoped(actor.college) or target.institute == actor.institute

    if actor.role == UserRole.Admin:
        return (
            target.college == actor.college
            and target.institute == actor.institute
            and target.role == UserRole.Faculty
        )

    return False


class UserVisibility(BaseModel):
    """Equality filters a user listing must apply. ``None`` means unrestricted."""

    model_config = ConfigDict(frozen=True)

    deny_all: bool = False
    college: Optional[str] = None
    institute: Optional[str] = None
    role: Optional[UserRole] = None

    def matches(self, target: TargetUser) -> bool:
        if self.deny_all:
            return False
        if self.college is not None and target.college != self.college:
            return False
        if self.institute is not None and target.institute != self.institute:
            return False
        if self.role is not None and target.role != self.role:
            return False
        return True


def user_visibility(actor: Actor) -> UserVisibility:
    if actor.role == UserRole.SuperAdmin:
        return UserVisibility()

    if actor.role == UserRole.CampusAdmin:
        return UserVisibility(
            college=actor.college,
            institute=actor.institute if _institute_scoped(actor.college) else None,
        )

    if actor.role == UserRole.Admin:
        return UserVisibility(
            college=actor.college,
            institute=actor.institute,
            role=UserRole.Faculty,
        )

    return UserVisibility(deny_all=True)


# ==========================================================
# PUBLICATIONS
# ==========================================================
OWN_PAPER_BADGE = "Your Paper"
VIEW_ONLY_BADGE = "View Only"


def is_owner(actor: Actor, publication: PublicationRef) -> bool:
    if not actor.faculty_id or actor.faculty_id == NOT_APPLICABLE:
        return False
    return actor.faculty_id == publication.faculty_id


def _oversees(actor: Actor, publication: PublicationRef) -> bool:
    if actor.role == UserRole.SuperAdmin:
        return True
    if actor.role == UserRole.CampusAdmin:
        if publication.college != actor.college:
            return False
        return not _institute_scoped(actor.college) or publication.institute == actor.institute
    return False


def can_edit_paper(actor: Actor, publication: PublicationRef) -> bool:
    return is_owner(actor, publication) or _oversees(actor, publication)


def can_delete_paper(actor: Actor, publication: PublicationRef) -> bool:
    return is_owner(actor, publication) or _oversees(actor, publication)


def can_select_paper(actor: Actor, publication: PublicationRef) -> bool:
    # Bulk selection stays open on other people's rows for oversight roles
    return is_owner(actor, publication) or _oversees(actor, publication)


def ownership_badge(actor: Actor, publication: PublicationRef) -> str:
    return OWN_PAPER_BADGE if is_owner(actor, publication) else VIEW_ONLY_BADGE


class PaperPermissions(BaseModel):
    is_owner: bool
    can_edit: bool
    can_delete: bool
    can_select: bool
    badge: str


def paper_permissions(actor: Actor, publication: PublicationRef) -> PaperPermissions:
    return PaperPermissions(
        is_owner=is_owner(actor, publication),
        can_edit=can_edit_paper(actor, publication),
        can_delete=can_delete_paper(actor, publication),
        can_select=can_select_paper(actor, publication),
        badge=ownership_badge(actor, publication),
    )


class PublicationVisibility(BaseModel):
    model_config = ConfigDict(frozen=True)

    deny_all: bool = False
    faculty_id: Optional[str] = None
    college: Optional[str] = None
    institute: Optional[str] = None

    def matches(self, publication: PublicationRef) -> bool:
        if self.deny_all:
            return False
        if self.faculty_id is not None and publication.faculty_id != self.faculty_id:
            return False
        if self.college is not None and publication.college != self.college:
            return False
        if self.institute is not None and publication.institute != self.institute:
            return False
        return True


def publication_visibility(actor: Actor) -> PublicationVisibility:
    if actor.role == UserRole.SuperAdmin:
        return PublicationVisibility()

    if actor.role in (UserRole.CampusAdmin, UserRole.Admin):
        return PublicationVisibility(
            college=actor.college,
            institute=actor.institute if _institute_scoped(actor.college) else None,
        )

    if not actor.faculty_id or actor.faculty_id == NOT_APPLICABLE:
        return PublicationVisibility(deny_all=True)
    return PublicationVisibility(faculty_id=actor.faculty_id)


# ==========================================================
# UPLOAD ELIGIBILITY
# ==========================================================
def author_id_status(actor: Actor) -> Dict[str, bool]:
    return {
        "scopus": bool(actor.scopus_id and actor.scopus_id.strip()),
        "sci": bool(actor.sci_id and actor.sci_id.strip()),
        "web_of_science": bool(actor.web_of_science_id and actor.web_of_science_id.strip()),
    }


def can_upload(actor: Actor) -> bool:
    if actor.role != UserRole.Faculty:
        return True
    return any(author_id_status(actor).values())
