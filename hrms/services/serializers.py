from typing import Any, Dict, Optional

from ..models.models import Company, Branch, RoleAssignment, Profile, Task, DailyReport, Message


def _s(value) -> Optional[str]:
    return str(value) if value is not None else None


def _dt(value) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_company(c: Company) -> Dict[str, Any]:
    return {
        "id": str(c.id),
        "name": c.name,
        "description": c.description,
        "subscription_type": c.subscription_type,
        "branches_limit": c.branches_limit,
        "employees_limit": c.employees_limit,
        "active": c.active,
        "created_at": _dt(c.created_at),
        "updated_at": _dt(c.updated_at),
    }


def serialize_branch(b: Branch) -> Dict[str, Any]:
    return {
        "id": str(b.id),
        "company_id": str(b.company_id),
        "name": b.name,
        "address": b.address,
        "city": b.city,
        "state": b.state,
        "country": b.country,
        "zip_code": b.zip_code,
        "phone": b.phone,
        "email": b.email,
        "is_headquarters": bool(b.is_headquarters),
        "active": b.active,
        "created_at": _dt(b.created_at),
        "updated_at": _dt(b.updated_at),
    }


def serialize_assignment(a: RoleAssignment, profile: Optional[Profile] = None, branch_name: Optional[str] = None) -> Dict[str, Any]:
    """An employee row: the role assignment joined with its profile."""
    return {
        "id": str(a.id),
        "user_id": str(a.user_id),
        "role": a.role,
        "company_id": _s(a.company_id),
        "branch_id": _s(a.branch_id),
        "branch_name": branch_name,
        "first_name": profile.first_name if profile else None,
        "last_name": profile.last_name if profile else None,
        "email": profile.email if profile else None,
        "phone": profile.phone if profile else None,
        "avatar_url": profile.avatar_url if profile else None,
        "created_at": _dt(a.created_at),
    }


def serialize_task(t: Task) -> Dict[str, Any]:
    return {
        "id": str(t.id),
        "title": t.title,
        "description": t.description,
        "status": t.status,
        "priority": t.priority,
        "due_date": _dt(t.due_date),
        "assigned_to": _s(t.assigned_to),
        "assigned_by": _s(t.assigned_by),
        "company_id": str(t.company_id),
        "branch_id": _s(t.branch_id),
        "recurring": t.recurring,
        "created_at": _dt(t.created_at),
        "updated_at": _dt(t.updated_at),
    }


def serialize_report(r: DailyReport) -> Dict[str, Any]:
    return {
        "id": str(r.id),
        "user_id": str(r.user_id),
        "company_id": str(r.company_id),
        "branch_id": _s(r.branch_id),
        "date": _dt(r.date),
        "summary": r.summary,
        "hours_worked": r.hours_worked,
        "tasks_completed": list(r.tasks_completed or []),
        "challenges": r.challenges,
        "plans_for_tomorrow": r.plans_for_tomorrow,
        "created_at": _dt(r.created_at),
        "updated_at": _dt(r.updated_at),
    }


def serialize_message(m: Message) -> Dict[str, Any]:
    return {
        "id": str(m.id),
        "sender_id": str(m.sender_id),
        "recipient_id": str(m.recipient_id),
        "content": m.content,
        "read": bool(m.read),
        "created_at": _dt(m.created_at),
    }
