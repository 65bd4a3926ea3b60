from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    RECRUITER = "recruiter"
    APPLICANT = "applicant"


@dataclass(frozen=True, slots=True)
class Identity:
    subject_id: str
    role: Role


def parse_role(value: str | None) -> Role | None:
    if not value:
        return None
    try:
        return Role(value.strip().lower())
    except ValueError:
        return None
