"""Role dashboards.

Every number here is computed locally from rows fetched through the same scopes
the panels use, so a dashboard never shows data its viewer could not list.
"""
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from ..models.models import Branch, Company, DailyReport, Profile, RoleAssignment, Task
from .aggregates import role_counts, status_histogram, usage_percent
from .identity import Identity, Role
from .scopes import scope
from .serializers import serialize_branch, serialize_company, serialize_report, serialize_task
from .time_rules import business_today


PANELS = ["overview", "company", "branches", "tasks", "reports", "messages"]
_MEMBER_PANELS = ["overview", "tasks", "reports", "messages"]

RECENT_LIMIT = 5


def compose_panels(identity: Identity) -> List[str]:
    if identity.is_admin:
        return list(PANELS)
    if identity.is_manager or identity.is_employee:
        return list(_MEMBER_PANELS)
    return []


def _scoped(db: Session, entity: str, model, identity: Identity):
    s = scope(entity, identity)
    if s.is_empty:
        return None
    return db.query(model).filter(s.criterion(model))


def _admin_overview(db: Session, identity: Identity) -> Dict[str, Any]:
    q = _scoped(db, "companies", Company, identity)
    company = q.first() if q is not None else None
    bq = _scoped(db, "branches", Branch, identity)
    branches = bq.order_by(Branch.is_headquarters.desc(), Branch.name.asc()).all() if bq is not None else []
    rq = _scoped(db, "user_roles", RoleAssignment, identity)
    assignments = rq.all() if rq is not None else []
    branches_limit = company.branches_limit if company else None
    employees_limit = company.employees_limit if company else None
    return {
        "company": serialize_company(company) if company else None,
        "branches": [serialize_branch(b) for b in branches],
        "branch_count": len(branches),
        "branches_limit": branches_limit,
        "branch_usage_percent": usage_percent(len(branches), branches_limit),
        "employee_count": len(assignments),
        "employees_limit": employees_limit,
        "employee_usage_percent": usage_percent(len(assignments), employees_limit),
        "role_counts": role_counts(assignments),
    }


def _manager_overview(db: Session, identity: Identity) -> Dict[str, Any]:
    s = scope("user_roles", identity)
    team = []
    if not s.is_empty:
        rows = (
            db.query(RoleAssignment, Profile)
            .outerjoin(Profile, Profile.id == RoleAssignment.user_id)
            .filter(s.criterion(RoleAssignment), RoleAssignment.role == Role.EMPLOYEE.value)
            .all()
        )
        team = [
            {
                "user_id": str(a.user_id),
                "first_name": p.first_name if p else None,
                "last_name": p.last_name if p else None,
                "email": p.email if p else None,
            }
            for a, p in rows
        ]
    tq = _scoped(db, "tasks", Task, identity)
    tasks = tq.all() if tq is not None else []
    return {
        "team": team,
        "team_size": len(team),
        "task_total": len(tasks),
        "status_histogram": status_histogram(tasks),
    }


def _employee_overview(db: Session, identity: Identity) -> Dict[str, Any]:
    tq = _scoped(db, "tasks", Task, identity)
    tasks = tq.order_by(Task.created_at.desc()).limit(RECENT_LIMIT).all() if tq is not None else []
    rq = _scoped(db, "daily_reports", DailyReport, identity)
    reports = rq.order_by(DailyReport.date.desc(), DailyReport.created_at.desc()).limit(RECENT_LIMIT).all() if rq is not None else []
    today = business_today()
    return {
        "recent_tasks": [serialize_task(t) for t in tasks],
        "recent_reports": [serialize_report(r) for r in reports],
        "today_report_submitted": any(r.date == today for r in reports),
    }


def build_overview(db: Session, identity: Identity) -> Dict[str, Any]:
    if identity.is_admin:
        return {"kind": "admin", **_admin_overview(db, identity)}
    if identity.is_manager:
        return {"kind": "manager", **_manager_overview(db, identity)}
    if identity.is_employee:
        return {"kind": "employee", **_employee_overview(db, identity)}
    return {"kind": "none"}


def build_dashboard(db: Session, identity: Identity) -> Dict[str, Any]:
    panels = compose_panels(identity)
    if not panels:
        return {
            "identity": identity.to_dict(),
            "panels": [],
            "overview": None,
            "message": "Your account does not have access to a dashboard.",
        }
    return {
        "identity": identity.to_dict(),
        "panels": panels,
        "overview": build_overview(db, identity),
    }
