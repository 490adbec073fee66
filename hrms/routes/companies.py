from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth.security import get_identity, require_roles
from ..db import get_db
from ..models.models import Branch, Company, DailyReport, RoleAssignment, Task
from ..schemas.org import CompanyCreate, CompanyUpdate
from ..services.identity import Identity, Role
from ..services.plans import plan_defaults
from ..services.scopes import scope
from ..services.serializers import serialize_company
from .common import get_scoped, parse_uuid, publish
import structlog


router = APIRouter(prefix="/companies", tags=["companies"])
log = structlog.get_logger(__name__)


def _get_company(company_id: str, db: Session, identity: Identity) -> Company:
    if identity.is_platform_admin:
        company = db.query(Company).filter(Company.id == parse_uuid(company_id, "company id")).first()
        if not company:
            raise HTTPException(status_code=404, detail="Company not found")
        return company
    return get_scoped(db, Company, "companies", company_id, identity, "Company")


@router.get("")
def list_companies(db: Session = Depends(get_db), identity: Identity = Depends(get_identity)):
    q = db.query(Company)
    if not identity.is_platform_admin:
        s = scope("companies", identity)
        if s.is_empty:
            return []
        q = q.filter(s.criterion(Company))
    return [serialize_company(c) for c in q.order_by(Company.name.asc()).all()]


@router.get("/{company_id}")
def get_company(company_id: str, db: Session = Depends(get_db), identity: Identity = Depends(get_identity)):
    return serialize_company(_get_company(company_id, db, identity))


@router.post("", status_code=201)
def create_company(
    payload: CompanyCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(Role.ADMIN.value)),
):
    data = payload.model_dump()
    defaults = plan_defaults(data.pop("subscription_type"))
    company = Company(
        name=data["name"],
        description=data.get("description"),
        active=data.get("active", True),
        subscription_type=defaults["subscription_type"],
        branches_limit=data.get("branches_limit") or defaults["branches_limit"],
        employees_limit=data.get("employees_limit") or defaults["employees_limit"],
    )
    db.add(company)
    db.commit()
    db.refresh(company)
    log.info("company_created", company_id=str(company.id), by=identity.user_id)
    out = serialize_company(company)
    publish("companies", "INSERT", row=out)
    return out


@router.patch("/{company_id}")
def update_company(
    company_id: str,
    payload: CompanyUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(Role.ADMIN.value, Role.COMPANY_ADMIN.value)),
):
    company = _get_company(company_id, db, identity)
    # description is the only column that may be cleared
    data = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None or k == "description"}
    before = serialize_company(company)
    for field, value in data.items():
        setattr(company, field, value)
    db.commit()
    db.refresh(company)
    out = serialize_company(company)
    publish("companies", "UPDATE", row=out, old_row=before)
    return out


@router.delete("/{company_id}")
def delete_company(
    company_id: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(Role.ADMIN.value)),
):
    company = _get_company(company_id, db, identity)
    members = db.query(func.count(RoleAssignment.id)).filter(RoleAssignment.company_id == company.id).scalar() or 0
    if members:
        raise HTTPException(status_code=409, detail="Company still has employees; remove their roles first")
    before = serialize_company(company)
    db.query(Task).filter(Task.company_id == company.id).delete(synchronize_session=False)
    db.query(DailyReport).filter(DailyReport.company_id == company.id).delete(synchronize_session=False)
    db.query(Branch).filter(Branch.company_id == company.id).delete(synchronize_session=False)
    db.delete(company)
    db.commit()
    log.info("company_deleted", company_id=before["id"], by=identity.user_id)
    publish("companies", "DELETE", old_row=before)
    return {"ok": True}
