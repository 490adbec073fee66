from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth.security import get_identity
from ..db import get_db
from ..schemas.work import MessageCreate
from ..services import messaging
from ..services.identity import Identity
from ..services.serializers import serialize_message
from .common import parse_uuid, publish
import structlog


router = APIRouter(prefix="/messages", tags=["messages"])
log = structlog.get_logger(__name__)


@router.get("/contacts")
def contacts(db: Session = Depends(get_db), identity: Identity = Depends(get_identity)):
    return messaging.list_contacts(db, identity)


@router.get("/unread_count")
def unread_count(db: Session = Depends(get_db), identity: Identity = Depends(get_identity)):
    return {"total": messaging.unread_count(db, identity)}


@router.get("/thread/{contact_id}")
def get_thread(contact_id: str, db: Session = Depends(get_db), identity: Identity = Depends(get_identity)):
    contact = parse_uuid(contact_id, "contact id")
    rows, marked = messaging.open_thread(db, identity, contact)
    out = [serialize_message(m) for m in rows]
    # read receipts: one change per flipped message so the sender's thread refreshes
    marked_ids = {str(i) for i in marked}
    for m in out:
        if m["id"] in marked_ids:
            publish("messages", "UPDATE", row=m)
    return out


@router.post("/thread/{contact_id}", status_code=201)
def send(contact_id: str, payload: MessageCreate, db: Session = Depends(get_db), identity: Identity = Depends(get_identity)):
    contact = parse_uuid(contact_id, "contact id")
    content = (payload.content or "").strip()
    if not content:
        raise HTTPException(status_code=400, detail="Empty message")
    if str(contact) == identity.user_id:
        raise HTTPException(status_code=400, detail="Cannot message yourself")
    if not messaging.is_colleague(db, identity, contact):
        raise HTTPException(status_code=403, detail="You can only message people in your company")
    msg = messaging.send_message(db, identity, contact, content)
    log.info("message_sent", message_id=str(msg.id), sender_id=identity.user_id, recipient_id=str(contact))
    publish("messages", "INSERT", row=serialize_message(msg))
    return [serialize_message(m) for m in messaging.load_thread(db, identity, contact)]
