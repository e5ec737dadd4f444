# app/core/college_data.py
#
# Static college / institute / department hierarchy and lookups over it.
# Lookups never raise: unknown input degrades to the "N/A" sentinel.

from typing import List, Optional

NOT_APPLICABLE = "N/A"

# ==========================================================
# RESEARCH INSTITUTE
# ==========================================================
RESEARCH_INSTITUTE = "SRM RESEARCH"

# Research-enabled colleges and the single department their research
# institute maps to.
RESEARCH_DEPARTMENTS = {
    "SRMIST RAMAPURAM": "Ramapuram Research",
    "SRM TRICHY": "Trichy Research",
}

# ==========================================================
# EMAIL DOMAINS
# ==========================================================
COLLEGE_EMAIL_DOMAINS = {
    "SRMIST RAMAPURAM": "srmist.edu.in",
    "SRM TRICHY": "srmtrichy.edu.in",
    "EASWARI ENGINEERING COLLEGE": "eec.srmrmp.edu.in",
    "TRP ENGINEERING COLLEGE": "trp.srmtrichy.edu.in",
}

RESEARCH_EMAIL_DOMAINS = [
    "srmist.edu.in",
    "srmtrichy.edu.in",
    "eec.srmrmp.edu.in",
    "trp.srmtrichy.edu.in",
]

# ==========================================================
# HIERARCHY
# ==========================================================
_ENGINEERING_DEPARTMENTS = [
    "Computer Science",
    "Information Technology",
    "Electronics",
    "Mechanical",
    "Civil",
]

_SCIENCE_DEPARTMENTS = ["Mathematics", "Physics", "Chemistry", "English"]

COLLEGES = [
    {
        "name": "SRMIST RAMAPURAM",
        "has_institutes": True,
        "institutes": [
            {"name": "Science and Humanities", "departments": _SCIENCE_DEPARTMENTS},
            {"name": "Engineering and Technology", "departments": _ENGINEERING_DEPARTMENTS},
            {"name": "Management", "departments": ["Business Administration", "Commerce"]},
            {"name": "Dental", "departments": ["General Dentistry", "Orthodontics"]},
            {"name": RESEARCH_INSTITUTE, "departments": ["Ramapuram Research"]},
        ],
    },
    {
        "name": "SRM TRICHY",
        "has_institutes": True,
        "institutes": [
            {"name": "Science and Humanities", "departments": _SCIENCE_DEPARTMENTS},
            {"name": "Engineering and Technology", "departments": _ENGINEERING_DEPARTMENTS},
            {"name": RESEARCH_INSTITUTE, "departments": ["Trichy Research"]},
        ],
    },
    {
        "name": "EASWARI ENGINEERING COLLEGE",
        "has_institutes": False,
        "departments": _ENGINEERING_DEPARTMENTS,
    },
    {
        "name": "TRP ENGINEERING COLLEGE",
        "has_institutes": False,
        "departments": _ENGINEERING_DEPARTMENTS,
    },
]


def get_college(college: Optional[str]) -> Optional[dict]:
    for entry in COLLEGES:
        if entry["name"] == college:
            return entry
    return None


def all_college_names() -> List[str]:
    return [c["name"] for c in COLLEGES]


def normalize_college_name(college: Optional[str]) -> str:
    if not college or college == NOT_APPLICABLE:
        return NOT_APPLICABLE
    upper = college.strip().upper()
    return upper if upper in all_college_names() else NOT_APPLICABLE


def has_institutes(college: Optional[str]) -> bool:
    data = get_college(college)
    return bool(data and data["has_institutes"])


def institutes_of(college: Optional[str]) -> List[str]:
    data = get_college(college)
    if not data or not data["has_institutes"]:
        return [NOT_APPLICABLE]
    return [i["name"] for i in data["institutes"]]


def departments_of(college: Optional[str], institute: Optional[str]) -> List[str]:
    """
    Departments for a college/institute pair.

    Colleges without institutes ignore ``institute`` and return their flat
    list. Any pair that does not resolve returns ``["N/A"]``.
    """
    data = get_college(college)
    if not data:
        return [NOT_APPLICABLE]

    if not data["has_institutes"]:
        return list(data["departments"])

    for inst in data["institutes"]:
        if inst["name"] == institute:
            return list(inst["departments"])
    return [NOT_APPLICABLE]


def is_valid_department_selection(college: Optional[str], institute: Optional[str], department: Optional[str]) -> bool:
    # "N/A" is a placeholder, never an assignable department
    if not department or department == NOT_APPLICABLE:
        return False
    return department in departments_of(college, institute)


def is_research_college(college: Optional[str]) -> bool:
    return college in RESEARCH_DEPARTMENTS


def is_valid_research_selection(college: Optional[str], institute: Optional[str]) -> bool:
    if institute != RESEARCH_INSTITUTE:
        return True
    return is_research_college(college)


def research_department_for(college: Optional[str]) -> Optional[str]:
    return RESEARCH_DEPARTMENTS.get(college)


def email_domain_for(college: Optional[str]) -> Optional[str]:
    return COLLEGE_EMAIL_DOMAINS.get(college)
