from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth.security import get_identity, require_roles
from ..db import get_db
from ..models.models import RoleAssignment, Task
from ..schemas.work import TaskCreate, TaskStatus, TaskStatusUpdate, TaskUpdate
from ..services.identity import Identity, Role, PRIVILEGED_ROLES
from ..services.scopes import scope
from ..services.serializers import serialize_task
from .common import get_scoped, parse_uuid, publish
import structlog


router = APIRouter(prefix="/tasks", tags=["tasks"])
log = structlog.get_logger(__name__)


def _get_task(task_id: str, db: Session, identity: Identity) -> Task:
    return get_scoped(db, Task, "tasks", task_id, identity, "Task")


def _check_assignee(db: Session, identity: Identity, assigned_to: str) -> RoleAssignment:
    """Assignment of the would-be assignee, if the caller may hand them work."""
    if not identity.company_id:
        raise HTTPException(status_code=400, detail="No company assigned to this account")
    assignee_id = parse_uuid(assigned_to, "assignee id")
    assignment = (
        db.query(RoleAssignment)
        .filter(RoleAssignment.user_id == assignee_id, RoleAssignment.company_id == identity.company_uuid)
        .first()
    )
    if assignment is None:
        raise HTTPException(status_code=400, detail="Assignee is not a member of your company")
    if identity.is_manager and (
        assignment.role != Role.EMPLOYEE.value or not identity.branch_id or assignment.branch_id != identity.branch_uuid
    ):
        raise HTTPException(status_code=403, detail="Managers can only assign tasks to employees of their branch")
    return assignment


@router.get("")
def list_tasks(
    status: Optional[TaskStatus] = None,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    s = scope("tasks", identity)
    if s.is_empty:
        return []
    q = db.query(Task).filter(s.criterion(Task))
    if status:
        q = q.filter(Task.status == status.value)
    return [serialize_task(t) for t in q.order_by(Task.created_at.desc()).all()]


@router.get("/{task_id}")
def get_task(task_id: str, db: Session = Depends(get_db), identity: Identity = Depends(get_identity)):
    return serialize_task(_get_task(task_id, db, identity))


@router.post("", status_code=201)
def create_task(
    payload: TaskCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(*PRIVILEGED_ROLES)),
):
    assignment = _check_assignee(db, identity, payload.assigned_to)
    task = Task(
        title=payload.title,
        description=payload.description,
        status=TaskStatus.pending.value,
        priority=payload.priority.value,
        due_date=payload.due_date,
        recurring=payload.recurring.value if payload.recurring else None,
        assigned_to=assignment.user_id,
        assigned_by=identity.user_uuid,
        company_id=identity.company_uuid,
        branch_id=identity.branch_uuid or assignment.branch_id,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    log.info("task_created", task_id=str(task.id), assigned_to=str(task.assigned_to), by=identity.user_id)
    out = serialize_task(task)
    publish("tasks", "INSERT", row=out)
    return out


@router.patch("/{task_id}")
def update_task(
    task_id: str,
    payload: TaskUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(*PRIVILEGED_ROLES)),
):
    task = _get_task(task_id, db, identity)
    data = payload.model_dump(exclude_unset=True)
    before = serialize_task(task)
    assigned_to = data.pop("assigned_to", None)
    if assigned_to:
        assignment = _check_assignee(db, identity, assigned_to)
        task.assigned_to = assignment.user_id
        task.branch_id = identity.branch_uuid or assignment.branch_id
    for field, value in data.items():
        if value is None and field in ("title", "status", "priority"):
            continue
        setattr(task, field, value.value if hasattr(value, "value") else value)
    db.commit()
    db.refresh(task)
    out = serialize_task(task)
    publish("tasks", "UPDATE", row=out, old_row=before)
    return out


@router.patch("/{task_id}/status")
def update_task_status(
    task_id: str,
    payload: TaskStatusUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_identity),
):
    task = _get_task(task_id, db, identity)
    if not identity.is_privileged and task.assigned_to != identity.user_uuid:
        raise HTTPException(status_code=403, detail="Only the assignee or a manager can change this task")
    before = serialize_task(task)
    task.status = payload.status.value
    db.commit()
    db.refresh(task)
    out = serialize_task(task)
    publish("tasks", "UPDATE", row=out, old_row=before)
    return out


@router.delete("/{task_id}")
def delete_task(task_id: str, db: Session = Depends(get_db), identity: Identity = Depends(get_identity)):
    task = _get_task(task_id, db, identity)
    if not (identity.is_admin or identity.is_manager or task.assigned_by == identity.user_uuid):
        raise HTTPException(status_code=403, detail="You do not have permission to delete this task")
    before = serialize_task(task)
    db.delete(task)
    db.commit()
    log.info("task_deleted", task_id=before["id"], by=identity.user_id)
    publish("tasks", "DELETE", old_row=before)
    return {"ok": True}
