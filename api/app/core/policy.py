"""Authorization decisions.

Every mutation or scoped read is described by an :class:`Action`. Each action
declares the role it requires and whether the caller must own the resource;
``allow`` applies every declared predicate and only passes when all hold.
Ownership is compared by subject id alone, so an admin never implicitly owns
a recruiter's job.
"""

from dataclasses import dataclass
from enum import Enum

from app.core.auth import Identity, Role


class Action(str, Enum):
    CREATE_JOB = "job:create"
    UPDATE_JOB = "job:update"
    DELETE_JOB = "job:delete"
    CHANGE_JOB_STATUS = "job:change_status"
    LIST_OWN_JOBS = "job:list_own"
    APPLY = "application:apply"
    LIST_OWN_APPLICATIONS = "application:list_own"
    LIST_RECRUITER_APPLICATIONS = "application:list_recruiter"
    UPDATE_APPLICATION_STATUS = "application:update_status"
    LIST_USERS = "user:list"
    VIEW_STATS = "stats:view"


@dataclass(frozen=True, slots=True)
class Rule:
    role: Role | None = None
    owner_only: bool = False


RULES: dict[Action, Rule] = {
    Action.CREATE_JOB: Rule(role=Role.RECRUITER),
    Action.UPDATE_JOB: Rule(role=Role.RECRUITER, owner_only=True),
    Action.DELETE_JOB: Rule(role=Role.RECRUITER, owner_only=True),
    Action.CHANGE_JOB_STATUS: Rule(role=Role.RECRUITER, owner_only=True),
    Action.LIST_OWN_JOBS: Rule(role=Role.RECRUITER),
    Action.APPLY: Rule(role=Role.APPLICANT),
    Action.LIST_OWN_APPLICATIONS: Rule(role=Role.APPLICANT),
    Action.LIST_RECRUITER_APPLICATIONS: Rule(role=Role.RECRUITER),
    Action.UPDATE_APPLICATION_STATUS: Rule(role=Role.RECRUITER, owner_only=True),
    Action.LIST_USERS: Rule(role=Role.ADMIN),
    Action.VIEW_STATS: Rule(role=Role.ADMIN),
}


def allow(identity: Identity | None, action: Action, resource_owner_id: str | None = None) -> bool:
    if identity is None:
        return False

    rule = RULES[action]
    if rule.role is not None and identity.role != rule.role:
        return False
    if rule.owner_only and (resource_owner_id is None or identity.subject_id != resource_owner_id):
        return False
    return True
