import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..auth.security import get_identity, get_password_hash, require_roles
from ..db import get_db
from ..models.models import Branch, Company, Profile, RoleAssignment
from ..schemas.org import EmployeeCreate, EmployeeUpdate
from ..services.accounts import create_account, find_user_by_email
from ..services.identity import Identity, Role, ADMIN_ROLES, ALL_ROLES
from ..services.realtime import revoke_session_from_thread
from ..services.scopes import scope
from ..services.serializers import serialize_assignment
from .common import get_scoped, parse_uuid, publish
import structlog


router = APIRouter(prefix="/employees", tags=["employees"])
log = structlog.get_logger(__name__)


def _serialize(db: Session, a: RoleAssignment) -> dict:
    profile = db.query(Profile).filter(Profile.id == a.user_id).first()
    branch = db.get(Branch, a.branch_id) if a.branch_id else None
    return serialize_assignment(a, profile, branch.name if branch else None)


def _check_role(identity: Identity, role: str) -> None:
    if role not in ALL_ROLES:
        raise HTTPException(status_code=400, detail=f"Unknown role: {role}")
    if role == Role.ADMIN.value and not identity.is_platform_admin:
        raise HTTPException(status_code=403, detail="Only platform admins can grant the admin role")


def _check_target(identity: Identity, a: RoleAssignment) -> None:
    if a.role == Role.ADMIN.value and not identity.is_platform_admin:
        raise HTTPException(status_code=403, detail="Only platform admins can change an admin role")


def _check_branch(db: Session, company_id: uuid.UUID, branch_id: Optional[str]) -> Optional[uuid.UUID]:
    if not branch_id:
        return None
    bid = parse_uuid(branch_id, "branch id")
    branch = db.query(Branch).filter(Branch.id == bid).first()
    if not branch or branch.company_id != company_id:
        raise HTTPException(status_code=400, detail="Branch does not belong to this company")
    return bid


def _target_company(db: Session, identity: Identity, company_id: Optional[str]) -> Company:
    if company_id and identity.is_platform_admin:
        cid = parse_uuid(company_id, "company id")
    elif company_id and company_id != identity.company_id:
        raise HTTPException(status_code=403, detail="Cannot manage employees of another company")
    elif identity.company_id:
        cid = identity.company_uuid
    else:
        raise HTTPException(status_code=400, detail="No company assigned to this account")
    company = db.query(Company).filter(Company.id == cid).first()
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


def _notify_session(user_id: uuid.UUID, reason: str) -> None:
    # live subscriptions carry the old scope; clients resubscribe on this event
    revoke_session_from_thread(str(user_id), reason)


@router.get("")
def list_employees(
    q: Optional[str] = None,
    role: Optional[str] = None,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    s = scope("user_roles", identity)
    if s.is_empty:
        return []
    query = (
        db.query(RoleAssignment, Profile, Branch)
        .outerjoin(Profile, Profile.id == RoleAssignment.user_id)
        .outerjoin(Branch, Branch.id == RoleAssignment.branch_id)
        .filter(s.criterion(RoleAssignment))
    )
    if role:
        query = query.filter(RoleAssignment.role == role)
    if q:
        like = f"%{q.strip().lower()}%"
        query = query.filter(
            or_(
                func.lower(Profile.first_name).like(like),
                func.lower(Profile.last_name).like(like),
                func.lower(Profile.email).like(like),
            )
        )
    rows = query.order_by(Profile.first_name.asc(), Profile.last_name.asc()).all()
    return [serialize_assignment(a, p, b.name if b else None) for a, p, b in rows]


@router.get("/{employee_id}")
def get_employee(employee_id: str, db: Session = Depends(get_db), identity: Identity = Depends(get_identity)):
    a = get_scoped(db, RoleAssignment, "user_roles", employee_id, identity, "Employee")
    return _serialize(db, a)


@router.post("", status_code=201)
def create_employee(
    payload: EmployeeCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(*ADMIN_ROLES)),
):
    company = _target_company(db, identity, payload.company_id)
    _check_role(identity, payload.role)
    branch_id = _check_branch(db, company.id, payload.branch_id)

    headcount = db.query(func.count(RoleAssignment.id)).filter(RoleAssignment.company_id == company.id).scalar() or 0
    if headcount >= company.employees_limit:
        raise HTTPException(
            status_code=409,
            detail=f"Employee limit reached ({company.employees_limit}) for the {company.subscription_type} plan",
        )

    user = find_user_by_email(db, payload.email)
    if user is None:
        if not payload.password:
            raise HTTPException(status_code=400, detail="Password is required for a new account")
        user = create_account(
            db,
            email=payload.email,
            password_hash=get_password_hash(payload.password),
            first_name=payload.first_name,
            last_name=payload.last_name,
            phone=payload.phone,
        )
    else:
        dup = (
            db.query(RoleAssignment.id)
            .filter(RoleAssignment.user_id == user.id, RoleAssignment.company_id == company.id)
            .first()
        )
        if dup:
            raise HTTPException(status_code=409, detail="This user already has a role in the company")
        if db.query(Profile).filter(Profile.id == user.id).first() is None:
            db.add(Profile(id=user.id, first_name=payload.first_name, last_name=payload.last_name, email=user.email, phone=payload.phone))

    assignment = RoleAssignment(user_id=user.id, role=payload.role, company_id=company.id, branch_id=branch_id)
    db.add(assignment)
    db.commit()
    db.refresh(assignment)
    log.info("employee_added", user_id=str(user.id), company_id=str(company.id), role=assignment.role)
    out = _serialize(db, assignment)
    publish("user_roles", "INSERT", row=out)
    _notify_session(user.id, "role_assigned")
    return out


@router.patch("/{employee_id}")
def update_employee(
    employee_id: str,
    payload: EmployeeUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(*ADMIN_ROLES)),
):
    a = get_scoped(db, RoleAssignment, "user_roles", employee_id, identity, "Employee")
    _check_target(identity, a)
    data = payload.model_dump(exclude_unset=True)
    before = _serialize(db, a)

    profile = db.query(Profile).filter(Profile.id == a.user_id).first()
    if profile is None:
        profile = Profile(id=a.user_id)
        db.add(profile)
    for field in ("first_name", "last_name", "phone"):
        if field in data and (data[field] is not None or field == "phone"):
            setattr(profile, field, data[field])

    session_changed = False
    if data.get("role") and data["role"] != a.role:
        _check_role(identity, data["role"])
        a.role = data["role"]
        session_changed = True
    if "branch_id" in data:
        new_branch = _check_branch(db, a.company_id, data["branch_id"])
        if new_branch != a.branch_id:
            a.branch_id = new_branch
            session_changed = True

    db.commit()
    db.refresh(a)
    out = _serialize(db, a)
    publish("user_roles", "UPDATE", row=out, old_row=before)
    if session_changed:
        _notify_session(a.user_id, "role_changed")
    return out


@router.delete("/{employee_id}")
def delete_employee(
    employee_id: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(*ADMIN_ROLES)),
):
    a = get_scoped(db, RoleAssignment, "user_roles", employee_id, identity, "Employee")
    _check_target(identity, a)
    if str(a.user_id) == identity.user_id:
        raise HTTPException(status_code=400, detail="You cannot remove your own role")
    before = _serialize(db, a)
    user_id = a.user_id
    # the profile stays; only the role in this company goes
    db.delete(a)
    db.commit()
    log.info("employee_removed", user_id=str(user_id), company_id=before["company_id"])
    publish("user_roles", "DELETE", old_row=before)
    _notify_session(user_id, "role_removed")
    return {"ok": True}
