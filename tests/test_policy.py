import uuid

import pytest

from app.core.college_data import RESEARCH_EMAIL_DOMAINS, RESEARCH_INSTITUTE
from app.core.policy import (
    Actor,
    PublicationRef,
    TargetUser,
    can_create_role,
    can_delete_paper,
    can_edit_paper,
    can_modify_user,
    can_select_paper,
    can_upload,
    creatable_roles,
    domain_hints,
    is_duplicate,
    ownership_badge,
    paper_permissions,
    publication_visibility,
    scope_assignment,
    user_visibility,
    validate_email_domain,
)
from app.models.user import UserRole

SUPER = Actor(role=UserRole.SuperAdmin, user_id=uuid.uuid4(), email="root@srmist.edu.in")


def campus_admin(college="SRMIST RAMAPURAM", institute="Engineering and Technology"):
    return Actor(
        role=UserRole.CampusAdmin,
        college=college,
        institute=institute,
        faculty_id="CA-1",
        user_id=uuid.uuid4(),
        email="ca@srmist.edu.in",
    )


def faculty(faculty_id="F1", **kwargs):
    return Actor(
        role=UserRole.Faculty,
        college="SRMIST RAMAPURAM",
        institute="Engineering and Technology",
        department="Computer Science",
        faculty_id=faculty_id,
        user_id=uuid.uuid4(),
        **kwargs,
    )


# ---------------------------------------------------------
# ROLE CREATION
# ---------------------------------------------------------
EXPECTED_CREATION = {
    UserRole.SuperAdmin: {UserRole.SuperAdmin, UserRole.CampusAdmin, UserRole.Admin, UserRole.Faculty},
    UserRole.CampusAdmin: {UserRole.Admin, UserRole.Faculty},
    UserRole.Admin: {UserRole.Faculty},
    UserRole.Faculty: set(),
}


@pytest.mark.parametrize("actor_role", list(UserRole))
@pytest.mark.parametrize("target_role", list(UserRole))
def test_role_creation_table(actor_role, target_role):
    actor = Actor(role=actor_role)
    assert can_create_role(actor, target_role) == (target_role in EXPECTED_CREATION[actor_role])


def test_creatable_roles_and_raw_strings():
    assert creatable_roles(Actor(role=UserRole.Faculty)) == []
    assert can_create_role(Actor(role=UserRole.CampusAdmin), "FACULTY")
    assert not can_create_role(Actor(role=UserRole.CampusAdmin), "dean")


# ---------------------------------------------------------
# EMAIL DOMAINS
# ---------------------------------------------------------
def test_college_domain_enforced():
    assert validate_email_domain("a@srmist.edu.in", "SRMIST RAMAPURAM", "N/A", None)
    assert not validate_email_domain("a@gmail.com", "SRMIST RAMAPURAM", "N/A", None)


@pytest.mark.parametrize("college", ["SRMIST RAMAPURAM", "SRM TRICHY", "EASWARI ENGINEERING COLLEGE", "N/A"])
@pytest.mark.parametrize("domain", RESEARCH_EMAIL_DOMAINS)
def test_research_institute_accepts_every_research_domain(college, domain):
    assert validate_email_domain(f"someone@{domain}", college, RESEARCH_INSTITUTE, None)


def test_malformed_emails_rejected():
    assert not validate_email_domain("a@b@srmist.edu.in", "SRMIST RAMAPURAM", "N/A")
    assert not validate_email_domain("@srmist.edu.in", "SRMIST RAMAPURAM", "N/A")
    assert not validate_email_domain(None, "SRMIST RAMAPURAM", "N/A")


def test_no_college_means_unrestricted():
    assert validate_email_domain("boss@gmail.com", "N/A", "N/A", SUPER)
    assert domain_hints("N/A", "N/A", SUPER) == []


# ---------------------------------------------------------
# SCOPE ASSIGNMENT
# ---------------------------------------------------------
def test_campus_admin_in_research_institute_forces_research_department():
    actor = campus_admin(institute=RESEARCH_INSTITUTE)
    assignment = scope_assignment(actor, UserRole.Faculty)

    assert assignment.college.value == "SRMIST RAMAPURAM"
    assert not assignment.college.editable
    assert assignment.department.value == "Ramapuram Research"
    assert assignment.department.visible
    assert not assignment.department.editable

    resolved = assignment.resolve(None, None, "Computer Science")
    assert resolved.ok
    assert resolved.department == "Ramapuram Research"
    assert validate_email_domain("x@trp.srmtrichy.edu.in", resolved.college, resolved.institute, actor)


def test_super_admin_target_has_no_scope():
    assignment = scope_assignment(SUPER, UserRole.SuperAdmin, "SRM TRICHY", "Science and Humanities")
    resolved = assignment.resolve("SRM TRICHY", "Science and Humanities", "Physics")

    assert not assignment.college.visible
    assert (resolved.college, resolved.institute, resolved.department) == ("N/A", "N/A", "N/A")
    assert resolved.ok
    assert can_create_role(SUPER, UserRole.SuperAdmin)


def test_super_admin_picks_flat_college_without_institute():
    assignment = scope_assignment(SUPER, UserRole.Faculty, "EASWARI ENGINEERING COLLEGE")
    assert not assignment.institute.visible
    assert "Civil" in assignment.department.options

    resolved = assignment.resolve("EASWARI ENGINEERING COLLEGE", "ignored", "Civil")
    assert resolved.ok
    assert resolved.institute == "N/A"


def test_super_admin_creating_admin_skips_department():
    assignment = scope_assignment(SUPER, UserRole.CampusAdmin, "SRM TRICHY", "Science and Humanities")
    resolved = assignment.resolve("SRM TRICHY", "Science and Humanities", "Physics")
    assert resolved.ok
    assert resolved.department == "N/A"


def test_missing_and_invalid_choices_become_field_errors():
    resolved = scope_assignment(SUPER, UserRole.Faculty).resolve(None, None, None)
    assert resolved.errors["college"] == "College is required"

    resolved = scope_assignment(SUPER, UserRole.Faculty, "SRM TRICHY", "Science and Humanities").resolve(
        "SRM TRICHY", "Science and Humanities", "Civil"
    )
    assert resolved.errors == {"department": "'Civil' is not a valid department"}


def test_department_must_belong_to_resolved_institute():
    assignment = scope_assignment(SUPER, UserRole.Faculty, "SRMIST RAMAPURAM", "Management")
    resolved = assignment.resolve("SRMIST RAMAPURAM", "Management", "Commerce")
    assert resolved.ok

    resolved = assignment.resolve("SRMIST RAMAPURAM", "Management", "Civil")
    assert resolved.errors == {"department": "'Civil' is not a valid department"}

    # A bad institute leaves nothing for the department to belong to
    resolved = scope_assignment(SUPER, UserRole.Faculty, "SRMIST RAMAPURAM", "Fine Arts").resolve(
        "SRMIST RAMAPURAM", "Fine Arts", "Civil"
    )
    assert set(resolved.errors) == {"institute", "department"}


def test_campus_admin_payload_cannot_move_user_to_other_college():
    actor = campus_admin()
    resolved = scope_assignment(actor, UserRole.Faculty, "SRM TRICHY").resolve(
        "SRM TRICHY", "Science and Humanities", "Civil"
    )
    assert resolved.ok
    assert (resolved.college, resolved.institute) == ("SRMIST RAMAPURAM", "Engineering and Technology")


def test_faculty_scope_is_pinned_and_hidden():
    assignment = scope_assignment(faculty(), UserRole.Faculty)
    assert not any(f.visible or f.editable for f in (assignment.college, assignment.institute, assignment.department))


# ---------------------------------------------------------
# UNIQUENESS
# ---------------------------------------------------------
def test_duplicate_check_is_case_insensitive_and_allows_original():
    emails = ["a@srmist.edu.in", "b@srmist.edu.in"]
    assert is_duplicate(" A@SRMIST.edu.in", emails)
    assert not is_duplicate("A@srmist.edu.in", emails, original="a@srmist.edu.in")
    assert not is_duplicate("c@srmist.edu.in", emails)


# ---------------------------------------------------------
# USER MODIFICATION / VISIBILITY
# ---------------------------------------------------------
def test_campus_admin_modifies_only_own_institute():
    actor = Actor(role=UserRole.CampusAdmin, college="X", institute="Y", user_id=uuid.uuid4())

    same = TargetUser(id=uuid.uuid4(), role=UserRole.Faculty, college="X", institute="Y")
    other = TargetUser(id=uuid.uuid4(), role=UserRole.Faculty, college="X", institute="Z")
    me = TargetUser(id=actor.user_id, role=UserRole.CampusAdmin, college="X", institute="Y")

    assert can_modify_user(actor, same)
    assert not can_modify_user(actor, other)
    assert not can_modify_user(actor, me)


def test_campus_admin_of_flat_college_covers_whole_college():
    actor = campus_admin(college="EASWARI ENGINEERING COLLEGE", institute="N/A")
    target = TargetUser(role=UserRole.Faculty, college="EASWARI ENGINEERING COLLEGE", institute="N/A")
    assert can_modify_user(actor, target)
    assert user_visibility(actor).institute is None


def test_admin_modifies_only_faculty():
    actor = Actor(role=UserRole.Admin, college="SRM TRICHY", institute="Science and Humanities", email="adm@srmtrichy.edu.in")
    fac = TargetUser(email="f@srmtrichy.edu.in", role=UserRole.Faculty, college="SRM TRICHY", institute="Science and Humanities")
    peer = TargetUser(email="p@srmtrichy.edu.in", role=UserRole.Admin, college="SRM TRICHY", institute="Science and Humanities")

    assert can_modify_user(actor, fac)
    assert not can_modify_user(actor, peer)
    assert user_visibility(actor).matches(fac)
    assert not user_visibility(actor).matches(peer)


def test_self_detected_by_email_without_ids():
    actor = Actor(role=UserRole.SuperAdmin, email="Root@srmist.edu.in")
    assert not can_modify_user(actor, TargetUser(email="root@srmist.edu.in", role=UserRole.SuperAdmin))


def test_faculty_sees_no_users():
    visibility = user_visibility(faculty())
    assert visibility.deny_all
    assert not visibility.matches(TargetUser(role=UserRole.Faculty, college="SRMIST RAMAPURAM"))


# ---------------------------------------------------------
# PUBLICATIONS
# ---------------------------------------------------------
def test_faculty_edits_only_own_papers():
    actor = faculty("F1")
    own = PublicationRef(faculty_id="F1", college="SRMIST RAMAPURAM", institute="Engineering and Technology")
    other = PublicationRef(faculty_id="F2", college="SRMIST RAMAPURAM", institute="Engineering and Technology")

    assert can_edit_paper(actor, own)
    assert not can_edit_paper(actor, other)
    assert not can_delete_paper(actor, other)
    assert ownership_badge(actor, own) == "Your Paper"
    assert ownership_badge(actor, other) == "View Only"


def test_campus_admin_oversees_papers_in_scope():
    actor = campus_admin()
    inside = PublicationRef(faculty_id="F9", college="SRMIST RAMAPURAM", institute="Engineering and Technology")
    outside = PublicationRef(faculty_id="F9", college="SRMIST RAMAPURAM", institute="Management")

    perms = paper_permissions(actor, inside)
    assert perms.can_edit and perms.can_delete and perms.can_select
    assert not perms.is_owner
    assert perms.badge == "View Only"
    assert not can_select_paper(actor, outside)


def test_super_admin_edits_any_paper_but_owns_none():
    paper = PublicationRef(faculty_id="N/A", college="SRM TRICHY")
    assert can_edit_paper(SUPER, paper)
    assert ownership_badge(SUPER, paper) == "View Only"


def test_admin_is_owner_only():
    actor = Actor(role=UserRole.Admin, college="SRM TRICHY", institute="Science and Humanities", faculty_id="ADM-1")
    paper = PublicationRef(faculty_id="F5", college="SRM TRICHY", institute="Science and Humanities")
    assert not can_edit_paper(actor, paper)
    assert publication_visibility(actor).matches(paper)


def test_publication_visibility_by_role():
    assert publication_visibility(SUPER).matches(PublicationRef(faculty_id="X", college="Anywhere"))
    assert publication_visibility(faculty("F1")).faculty_id == "F1"
    assert publication_visibility(Actor(role=UserRole.Faculty)).deny_all


# ---------------------------------------------------------
# UPLOAD GATE
# ---------------------------------------------------------
def test_upload_requires_author_id_for_faculty():
    assert not can_upload(faculty())
    assert not can_upload(faculty(scopus_id="   "))
    assert can_upload(faculty(sci_id="A-1234-5678"))
    assert can_upload(campus_admin())


# ---------------------------------------------------------
# PURITY
# ---------------------------------------------------------
def test_identical_inputs_give_identical_outputs():
    actor = campus_admin(institute=RESEARCH_INSTITUTE)
    target = TargetUser(role=UserRole.Faculty, college="SRMIST RAMAPURAM", institute=RESEARCH_INSTITUTE)

    assert scope_assignment(actor, UserRole.Faculty) == scope_assignment(actor, UserRole.Faculty)
    assert can_modify_user(actor, target) == can_modify_user(actor, target)
    assert domain_hints("SRM TRICHY", "N/A", actor) == domain_hints("SRM TRICHY", "N/A", actor)
