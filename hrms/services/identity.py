import uuid
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.models import User, Profile, RoleAssignment, Company, Branch


log = structlog.get_logger(__name__)


class Role(str, Enum):
    ADMIN = "admin"
    COMPANY_ADMIN = "company_admin"
    MANAGER = "manager"
    ASSISTANT_MANAGER = "assistant_manager"
    EMPLOYEE = "employee"
    JOB_SEEKER = "job_seeker"


ADMIN_ROLES = (Role.ADMIN.value, Role.COMPANY_ADMIN.value)
MANAGER_ROLES = (Role.MANAGER.value, Role.ASSISTANT_MANAGER.value)
PRIVILEGED_ROLES = ADMIN_ROLES + MANAGER_ROLES
ALL_ROLES = tuple(r.value for r in Role)


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None
    company_id: Optional[str] = None
    branch_id: Optional[str] = None
    company_name: Optional[str] = None
    branch_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def is_platform_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    @property
    def is_manager(self) -> bool:
        return self.role in MANAGER_ROLES

    @property
    def is_employee(self) -> bool:
        return self.role == Role.EMPLOYEE.value

    @property
    def is_privileged(self) -> bool:
        return self.is_admin or self.is_manager

    @property
    def user_uuid(self) -> uuid.UUID:
        return uuid.UUID(self.user_id)

    @property
    def company_uuid(self) -> Optional[uuid.UUID]:
        return uuid.UUID(self.company_id) if self.company_id else None

    @property
    def branch_uuid(self) -> Optional[uuid.UUID]:
        return uuid.UUID(self.branch_id) if self.branch_id else None

    def flags(self) -> dict:
        return {
            "is_admin": self.is_admin,
            "is_platform_admin": self.is_platform_admin,
            "is_manager": self.is_manager,
            "is_employee": self.is_employee,
        }

    def to_dict(self) -> dict:
        data = asdict(self)
        data.update(self.flags())
        return data


def primary_assignment(db: Session, user_id: uuid.UUID) -> Optional[RoleAssignment]:
    """Earliest-created role assignment of the user, if any."""
    return (
        db.query(RoleAssignment)
        .filter(RoleAssignment.user_id == user_id)
        .order_by(RoleAssignment.created_at.asc(), RoleAssignment.id.asc())
        .first()
    )


def resolve_identity(db: Session, user: User) -> Identity:
    profile = db.query(Profile).filter(Profile.id == user.id).first()
    base = dict(
        user_id=str(user.id),
        email=user.email,
        first_name=profile.first_name if profile else None,
        last_name=profile.last_name if profile else None,
    )
    try:
        assignment = primary_assignment(db, user.id)
        if assignment is None:
            return Identity(**base)
        company = db.get(Company, assignment.company_id) if assignment.company_id else None
        branch = db.get(Branch, assignment.branch_id) if assignment.branch_id else None
    except SQLAlchemyError as e:
        # Authenticated, but without elevated capabilities
        log.warning("role_lookup_failed", user_id=str(user.id), error=str(e))
        db.rollback()
        return Identity(**base)
    return Identity(
        **base,
        role=assignment.role,
        company_id=str(assignment.company_id) if assignment.company_id else None,
        branch_id=str(assignment.branch_id) if assignment.branch_id else None,
        company_name=company.name if company else None,
        branch_name=branch.name if branch else None,
    )
