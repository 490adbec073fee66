import uuid
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ..services.identity import Identity
from ..services.realtime import publish_from_thread
from ..services.scopes import scope


def parse_uuid(value: Optional[str], label: str = "id") -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid {label}") from exc


def get_scoped(db: Session, model, entity: str, row_id: str, identity: Identity, label: str):
    """Fetch one row through the caller's scope; rows outside it read as missing."""
    rid = parse_uuid(row_id, f"{label.lower()} id")
    s = scope(entity, identity)
    row = None
    if not s.is_empty:
        row = db.query(model).filter(model.id == rid, s.criterion(model)).first()
    if row is None:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return row


def publish(table: str, type_: str, row: Optional[dict] = None, old_row: Optional[dict] = None) -> None:
    publish_from_thread(table, type_, row=row, old_row=old_row)
