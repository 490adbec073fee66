from typing import Dict, Optional

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect
import structlog

from ..auth.security import user_from_token
from ..db import SessionLocal
from ..services.identity import Identity, resolve_identity
from ..services.realtime import Change, hub
from ..services.scopes import SCOPED_ENTITIES, ENTITY_ALIASES, message_thread_scope, scope


router = APIRouter(tags=["realtime"])
log = structlog.get_logger(__name__)


def _authenticate(token: Optional[str]) -> Optional[Identity]:
    if not token:
        return None
    db = SessionLocal()
    try:
        user = user_from_token(token, db)
        return resolve_identity(db, user)
    except HTTPException:
        return None
    finally:
        db.close()


def _scope_for(identity: Identity, table: str, contact_id: Optional[str]):
    if table == "messages" and contact_id:
        return message_thread_scope(identity, contact_id)
    return scope(table, identity)


@router.websocket("/realtime/ws")
async def ws_realtime(websocket: WebSocket, token: Optional[str] = None):
    identity = _authenticate(token)
    if identity is None:
        await websocket.close(code=4401)
        return

    await websocket.accept()
    await hub.connect(identity.user_id, websocket)
    handles: Dict[str, str] = {}

    async def _forward(change: Change) -> None:
        await websocket.send_json({"event": "change", "data": change.payload()})

    try:
        while True:
            msg = await websocket.receive_json()
            if not isinstance(msg, dict):
                await websocket.send_json({"event": "error", "data": {"detail": "Expected a JSON object"}})
                continue
            action = msg.get("action")
            if action == "ping":
                await websocket.send_json({"event": "pong"})
            elif action == "subscribe":
                raw = msg.get("table")
                table = ENTITY_ALIASES.get(raw, raw) if isinstance(raw, str) else None
                if table not in SCOPED_ENTITIES:
                    await websocket.send_json({"event": "error", "data": {"detail": f"Unknown table: {raw}"}})
                    continue
                # roles may have changed since connect
                current = _authenticate(token)
                if current is None:
                    await websocket.close(code=4401)
                    break
                s = _scope_for(current, table, msg.get("contact_id"))
                handle = await hub.subscribe(table, s, _forward, user_id=current.user_id)
                handles[handle] = table
                await websocket.send_json({"event": "subscribed", "data": {"handle": handle, "table": table, "empty": s.is_empty}})
            elif action == "unsubscribe":
                handle = msg.get("handle")
                if handle in handles:
                    handles.pop(handle)
                    await hub.unsubscribe(handle)
                await websocket.send_json({"event": "unsubscribed", "data": {"handle": handle}})
            else:
                await websocket.send_json({"event": "error", "data": {"detail": "Unknown action"}})
    except WebSocketDisconnect:
        pass
    finally:
        for handle in list(handles):
            await hub.unsubscribe(handle)
        await hub.disconnect(identity.user_id, websocket)
        log.info("realtime_disconnected", user_id=identity.user_id, dropped=len(handles))
