import uuid
from typing import Any, Dict, List, Tuple

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from ..models.models import Message, Profile, RoleAssignment
from .identity import Identity
from .scopes import message_thread_scope


def list_contacts(db: Session, identity: Identity) -> List[Dict[str, Any]]:
    """Everyone holding a role in the caller's company, except the caller."""
    if not identity.company_id:
        return []
    me = identity.user_uuid
    rows = (
        db.query(RoleAssignment, Profile)
        .outerjoin(Profile, Profile.id == RoleAssignment.user_id)
        .filter(RoleAssignment.company_id == identity.company_uuid, RoleAssignment.user_id != me)
        .order_by(Profile.first_name.asc(), Profile.last_name.asc())
        .all()
    )
    unread = dict(
        db.query(Message.sender_id, func.count(Message.id))
        .filter(Message.recipient_id == me, Message.read.is_(False))
        .group_by(Message.sender_id)
        .all()
    )
    out, seen = [], set()
    for a, p in rows:
        if a.user_id in seen:
            continue
        seen.add(a.user_id)
        out.append({
            "user_id": str(a.user_id),
            "first_name": p.first_name if p else None,
            "last_name": p.last_name if p else None,
            "email": p.email if p else None,
            "avatar_url": p.avatar_url if p else None,
            "role": a.role,
            "unread": int(unread.get(a.user_id, 0)),
        })
    return out


def is_colleague(db: Session, identity: Identity, contact_id: uuid.UUID) -> bool:
    if not identity.company_id:
        return False
    return (
        db.query(RoleAssignment.id)
        .filter(RoleAssignment.user_id == contact_id, RoleAssignment.company_id == identity.company_uuid)
        .first()
        is not None
    )


def load_thread(db: Session, identity: Identity, contact_id: uuid.UUID) -> List[Message]:
    s = message_thread_scope(identity, str(contact_id))
    return db.query(Message).filter(s.criterion(Message)).order_by(Message.created_at.asc()).all()


def mark_thread_read(db: Session, identity: Identity, contact_id: uuid.UUID) -> List[uuid.UUID]:
    """Mark every unread message from ``contact_id`` to the caller as read, in one statement.

    Returns the ids that flipped. The caller commits.
    """
    me = identity.user_uuid
    ids = [
        row.id for row in db.query(Message.id).filter(
            Message.sender_id == contact_id, Message.recipient_id == me, Message.read.is_(False)
        ).all()
    ]
    if ids:
        db.execute(
            update(Message)
            .where(Message.id.in_(ids))
            .values(read=True)
            .execution_options(synchronize_session="fetch")
        )
    return ids


def open_thread(db: Session, identity: Identity, contact_id: uuid.UUID) -> Tuple[List[Message], List[uuid.UUID]]:
    marked = mark_thread_read(db, identity, contact_id)
    if marked:
        db.commit()
    return load_thread(db, identity, contact_id), marked


def send_message(db: Session, identity: Identity, contact_id: uuid.UUID, content: str) -> Message:
    msg = Message(sender_id=identity.user_uuid, recipient_id=contact_id, content=content, read=False)
    db.add(msg)
    db.commit()
    db.refresh(msg)
    return msg


def unread_count(db: Session, identity: Identity) -> int:
    return int(
        db.query(func.count(Message.id))
        .filter(Message.recipient_id == identity.user_uuid, Message.read.is_(False))
        .scalar()
        or 0
    )
