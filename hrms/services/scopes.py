"""Role-scoped row filters.

A ``Scope`` is a disjunction of conjunctions of column equalities. It renders to a
SQLAlchemy criterion for queries and can test a serialized row dict, which is how
the realtime hub decides whether a change is visible to a subscriber.
"""
import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple

from sqlalchemy import and_, or_, false

from .identity import Identity, ADMIN_ROLES, MANAGER_ROLES, Role


Clause = Tuple[Tuple[str, str], ...]


@dataclass(frozen=True)
class Scope:
    entity: str
    clauses: Tuple[Clause, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.clauses

    def criterion(self, model):
        if self.is_empty:
            return false()
        return or_(*[
            and_(*[getattr(model, column) == _coerce(model, column, value) for column, value in clause])
            for clause in self.clauses
        ])

    def matches(self, row: Optional[Mapping[str, Any]]) -> bool:
        if not row or self.is_empty:
            return False
        for clause in self.clauses:
            if all(row.get(column) is not None and str(row.get(column)) == value for column, value in clause):
                return True
        return False

    def describe(self) -> list:
        return [dict(clause) for clause in self.clauses]


def _coerce(model, column: str, value: str):
    # UUID columns compare against UUID objects; other columns take the raw string
    try:
        python_type = getattr(model, column).type.python_type
    except NotImplementedError:
        python_type = None
    if python_type is uuid.UUID:
        return uuid.UUID(value)
    return value


# entity -> role group -> (column, identity attribute)
_POLICY = {
    "tasks": {
        "employee": ("assigned_to", "user_id"),
        "manager": ("branch_id", "branch_id"),
        "admin": ("company_id", "company_id"),
    },
    "daily_reports": {
        "employee": ("user_id", "user_id"),
        "manager": ("branch_id", "branch_id"),
        "admin": ("company_id", "company_id"),
    },
    "user_roles": {
        "employee": ("company_id", "company_id"),
        "manager": ("branch_id", "branch_id"),
        "admin": ("company_id", "company_id"),
    },
    "branches": {
        "employee": ("company_id", "company_id"),
        "manager": ("company_id", "company_id"),
        "admin": ("company_id", "company_id"),
    },
    "companies": {
        "employee": ("id", "company_id"),
        "manager": ("id", "company_id"),
        "admin": ("id", "company_id"),
    },
}
ENTITY_ALIASES = {"employees": "user_roles", "reports": "daily_reports"}
SCOPED_ENTITIES = tuple(_POLICY) + ("messages",)


def _role_group(role: Optional[str]) -> Optional[str]:
    if role == Role.EMPLOYEE.value:
        return "employee"
    if role in MANAGER_ROLES:
        return "manager"
    if role in ADMIN_ROLES:
        return "admin"
    return None


def scope(entity: str, identity: Identity) -> Scope:
    entity = ENTITY_ALIASES.get(entity, entity)
    if entity == "messages":
        if not identity.user_id:
            return Scope(entity)
        me = str(identity.user_id)
        return Scope(entity, ((("sender_id", me),), (("recipient_id", me),)))
    if entity not in _POLICY:
        raise ValueError(f"Unknown entity: {entity}")

    group = _role_group(identity.role)
    if group is None:
        # job_seeker, unknown or no role
        return Scope(entity)
    column, attr = _POLICY[entity][group]
    value = getattr(identity, attr)
    if not value:
        return Scope(entity)
    return Scope(entity, (((column, str(value)),),))


def message_thread_scope(identity: Identity, contact_id: str) -> Scope:
    me, other = str(identity.user_id), str(contact_id)
    return Scope(
        "messages",
        (
            (("sender_id", me), ("recipient_id", other)),
            (("sender_id", other), ("recipient_id", me)),
        ),
    )
