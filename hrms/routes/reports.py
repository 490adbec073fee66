from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth.security import get_identity, require_roles
from ..db import get_db
from ..models.models import DailyReport
from ..schemas.work import ReportCreate, ReportUpdate, TeamRange
from ..services.identity import Identity, PRIVILEGED_ROLES
from ..services.scopes import scope
from ..services.serializers import serialize_report
from ..services.time_rules import business_today, team_window
from .common import get_scoped, parse_uuid, publish
import structlog


router = APIRouter(prefix="/reports", tags=["reports"])
log = structlog.get_logger(__name__)


def _own_report_for(db: Session, identity: Identity, day) -> Optional[DailyReport]:
    return (
        db.query(DailyReport)
        .filter(DailyReport.user_id == identity.user_uuid, DailyReport.date == day)
        .first()
    )


@router.get("")
def list_reports(
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    s = scope("daily_reports", identity)
    if s.is_empty:
        return []
    rows = (
        db.query(DailyReport)
        .filter(s.criterion(DailyReport))
        .order_by(DailyReport.date.desc(), DailyReport.created_at.desc())
        .limit(limit)
        .all()
    )
    return [serialize_report(r) for r in rows]


@router.get("/today")
def today_report(db: Session = Depends(get_db), identity: Identity = Depends(get_identity)):
    today = business_today()
    report = _own_report_for(db, identity, today)
    return {
        "date": today.isoformat(),
        "submitted": report is not None,
        "can_submit": report is None and bool(identity.company_id),
        "report": serialize_report(report) if report else None,
    }


@router.get("/team")
def team_reports(
    member_id: Optional[str] = None,
    range_: TeamRange = Query(default=TeamRange.week, alias="range"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(*PRIVILEGED_ROLES)),
):
    s = scope("daily_reports", identity)
    start, end = team_window(range_.value)
    if s.is_empty:
        return {"range": range_.value, "start": start.isoformat(), "end": end.isoformat(), "total_hours": 0, "reports": []}
    q = db.query(DailyReport).filter(s.criterion(DailyReport), DailyReport.date >= start, DailyReport.date <= end)
    if member_id:
        q = q.filter(DailyReport.user_id == parse_uuid(member_id, "member id"))
    rows = q.order_by(DailyReport.date.desc(), DailyReport.created_at.desc()).all()
    return {
        "range": range_.value,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "total_hours": sum(r.hours_worked or 0 for r in rows),
        "reports": [serialize_report(r) for r in rows],
    }


@router.post("", status_code=201)
def create_report(payload: ReportCreate, db: Session = Depends(get_db), identity: Identity = Depends(get_identity)):
    if not identity.company_id:
        raise HTTPException(status_code=403, detail="You need a role in a company to submit reports")
    today = business_today()
    if _own_report_for(db, identity, today) is not None:
        raise HTTPException(status_code=409, detail="You have already submitted a report for today")
    report = DailyReport(
        user_id=identity.user_uuid,
        company_id=identity.company_uuid,
        branch_id=identity.branch_uuid,
        date=today,
        summary=payload.summary,
        hours_worked=payload.hours_worked,
        tasks_completed=payload.tasks_completed,
        challenges=payload.challenges,
        plans_for_tomorrow=payload.plans_for_tomorrow,
    )
    db.add(report)
    db.commit()
    db.refresh(report)
    log.info("report_submitted", report_id=str(report.id), user_id=identity.user_id, date=today.isoformat())
    out = serialize_report(report)
    publish("daily_reports", "INSERT", row=out)
    return out


@router.get("/{report_id}")
def get_report(report_id: str, db: Session = Depends(get_db), identity: Identity = Depends(get_identity)):
    return serialize_report(get_scoped(db, DailyReport, "daily_reports", report_id, identity, "Report"))


@router.patch("/{report_id}")
def update_report(
    report_id: str,
    payload: ReportUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    report = get_scoped(db, DailyReport, "daily_reports", report_id, identity, "Report")
    if report.user_id != identity.user_uuid:
        raise HTTPException(status_code=403, detail="Only the author can edit a report")
    before = serialize_report(report)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field in ("summary", "hours_worked"):
            continue
        setattr(report, field, value)
    db.commit()
    db.refresh(report)
    out = serialize_report(report)
    publish("daily_reports", "UPDATE", row=out, old_row=before)
    return out


@router.delete("/{report_id}")
def delete_report(report_id: str, db: Session = Depends(get_db), identity: Identity = Depends(get_identity)):
    report = get_scoped(db, DailyReport, "daily_reports", report_id, identity, "Report")
    if report.user_id != identity.user_uuid and not identity.is_privileged:
        raise HTTPException(status_code=403, detail="You do not have permission to delete this report")
    before = serialize_report(report)
    db.delete(report)
    db.commit()
    log.info("report_deleted", report_id=before["id"], by=identity.user_id)
    publish("daily_reports", "DELETE", old_row=before)
    return {"ok": True}
