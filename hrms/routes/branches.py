from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth.security import get_identity, require_roles
from ..db import get_db
from ..models.models import Branch, Company
from ..schemas.org import BranchCreate, BranchUpdate
from ..services.branches import branch_count, set_headquarters
from ..services.identity import Identity, ADMIN_ROLES
from ..services.scopes import scope
from ..services.serializers import serialize_branch
from .common import get_scoped, parse_uuid, publish
import structlog


router = APIRouter(prefix="/branches", tags=["branches"])
log = structlog.get_logger(__name__)


def _target_company(db: Session, identity: Identity, company_id: Optional[str]) -> Company:
    """Company a write goes to: the caller's own, or any company for platform admins."""
    if company_id and identity.is_platform_admin:
        cid = parse_uuid(company_id, "company id")
    elif company_id and company_id != identity.company_id:
        raise HTTPException(status_code=403, detail="Cannot manage branches of another company")
    elif identity.company_id:
        cid = identity.company_uuid
    else:
        raise HTTPException(status_code=400, detail="No company assigned to this account")
    company = db.query(Company).filter(Company.id == cid).first()
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


def _get_branch(branch_id: str, db: Session, identity: Identity) -> Branch:
    if identity.is_platform_admin:
        branch = db.query(Branch).filter(Branch.id == parse_uuid(branch_id, "branch id")).first()
        if not branch:
            raise HTTPException(status_code=404, detail="Branch not found")
        return branch
    return get_scoped(db, Branch, "branches", branch_id, identity, "Branch")


@router.get("")
def list_branches(
    company_id: Optional[str] = None,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    q = db.query(Branch)
    if company_id and identity.is_platform_admin:
        q = q.filter(Branch.company_id == parse_uuid(company_id, "company id"))
    else:
        s = scope("branches", identity)
        if s.is_empty:
            return []
        q = q.filter(s.criterion(Branch))
    rows = q.order_by(Branch.is_headquarters.desc(), Branch.name.asc()).all()
    return [serialize_branch(b) for b in rows]


@router.get("/{branch_id}")
def get_branch(branch_id: str, db: Session = Depends(get_db), identity: Identity = Depends(get_identity)):
    return serialize_branch(_get_branch(branch_id, db, identity))


@router.post("", status_code=201)
def create_branch(
    payload: BranchCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(*ADMIN_ROLES)),
):
    company = _target_company(db, identity, payload.company_id)
    existing = branch_count(db, company.id)
    if existing >= company.branches_limit:
        raise HTTPException(
            status_code=409,
            detail=f"Branch limit reached ({company.branches_limit}) for the {company.subscription_type} plan",
        )
    data = payload.model_dump(exclude={"company_id", "is_headquarters"})
    branch = Branch(company_id=company.id, is_headquarters=False, **data)
    db.add(branch)
    db.flush()
    # the first branch of a company is always its headquarters
    if payload.is_headquarters or existing == 0:
        set_headquarters(db, company.id, branch.id)
    db.commit()
    db.refresh(branch)
    log.info("branch_created", branch_id=str(branch.id), company_id=str(company.id), headquarters=branch.is_headquarters)
    out = serialize_branch(branch)
    publish("branches", "INSERT", row=out)
    return out


@router.patch("/{branch_id}")
def update_branch(
    branch_id: str,
    payload: BranchUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(*ADMIN_ROLES)),
):
    branch = _get_branch(branch_id, db, identity)
    data = payload.model_dump(exclude_unset=True)
    make_hq = data.pop("is_headquarters", None)
    if make_hq is False and branch.is_headquarters:
        raise HTTPException(status_code=409, detail="A company needs a headquarters; mark another branch as headquarters instead")
    before = serialize_branch(branch)
    for field, value in data.items():
        if value is None and field in ("name", "city", "active"):
            continue
        setattr(branch, field, value)
    if make_hq and not branch.is_headquarters:
        set_headquarters(db, branch.company_id, branch.id)
    db.commit()
    db.refresh(branch)
    out = serialize_branch(branch)
    publish("branches", "UPDATE", row=out, old_row=before)
    return out


@router.post("/{branch_id}/headquarters")
def make_headquarters(
    branch_id: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(*ADMIN_ROLES)),
):
    branch = _get_branch(branch_id, db, identity)
    before = serialize_branch(branch)
    set_headquarters(db, branch.company_id, branch.id)
    db.commit()
    db.refresh(branch)
    out = serialize_branch(branch)
    publish("branches", "UPDATE", row=out, old_row=before)
    return out


@router.delete("/{branch_id}")
def delete_branch(
    branch_id: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(*ADMIN_ROLES)),
):
    branch = _get_branch(branch_id, db, identity)
    if branch_count(db, branch.company_id) <= 1:
        raise HTTPException(status_code=409, detail="Cannot delete the only branch of a company")
    if branch.is_headquarters:
        raise HTTPException(status_code=409, detail="Cannot delete the headquarters branch; mark another branch as headquarters first")
    before = serialize_branch(branch)
    db.delete(branch)
    db.commit()
    log.info("branch_deleted", branch_id=before["id"], company_id=before["company_id"])
    publish("branches", "DELETE", old_row=before)
    return {"ok": True}
