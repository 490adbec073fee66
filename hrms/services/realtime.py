import asyncio
import itertools
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Set

import structlog
from fastapi import WebSocket

from .scopes import Scope


log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Change:
    table: str
    type: str
    row: Optional[Dict[str, Any]] = None
    old_row: Optional[Dict[str, Any]] = None

    def payload(self) -> dict:
        # Subscribers re-fetch; only the identifying bits travel
        ref = self.row or self.old_row or {}
        return {"table": self.table, "type": self.type, "id": ref.get("id")}


OnChange = Callable[[Change], Awaitable[None]]


@dataclass
class Subscription:
    handle: str
    table: str
    scope: Scope
    on_change: OnChange
    user_id: Optional[str] = None


class RealtimeHub:
    """Scope-filtered change fan-out plus user-addressed pushes."""

    def __init__(self) -> None:
        # handle -> subscription
        self._subscriptions: Dict[str, Subscription] = {}
        # user_id (str) -> set of WebSocket connections
        self._user_connections: Dict[str, Set[WebSocket]] = {}
        self._lock = asyncio.Lock()
        self._ids = itertools.count(1)

    async def subscribe(self, table: str, scope: Scope, on_change: OnChange, user_id: Optional[str] = None) -> str:
        async with self._lock:
            handle = f"sub-{next(self._ids)}"
            self._subscriptions[handle] = Subscription(handle, table, scope, on_change, user_id)
        return handle

    async def unsubscribe(self, handle: str) -> bool:
        async with self._lock:
            return self._subscriptions.pop(handle, None) is not None

    async def unsubscribe_user(self, user_id: str) -> int:
        """Drop every subscription owned by ``user_id``; their scopes are stale."""
        async with self._lock:
            stale = [h for h, s in self._subscriptions.items() if s.user_id == user_id]
            for handle in stale:
                del self._subscriptions[handle]
        return len(stale)

    async def publish(self, change: Change) -> int:
        async with self._lock:
            targets = [
                s for s in self._subscriptions.values()
                if s.table == change.table and (s.scope.matches(change.row) or s.scope.matches(change.old_row))
            ]
        delivered = 0
        for sub in targets:
            try:
                await sub.on_change(change)
                delivered += 1
            except Exception as e:
                # a dead subscriber must not block the others
                log.warning("realtime_delivery_failed", handle=sub.handle, table=change.table, error=str(e))
        return delivered

    async def connect(self, user_id: str, ws: WebSocket) -> None:
        async with self._lock:
            conns = self._user_connections.setdefault(user_id, set())
            conns.add(ws)

    async def disconnect(self, user_id: str, ws: WebSocket) -> None:
        async with self._lock:
            conns = self._user_connections.get(user_id)
            if conns is not None:
                conns.discard(ws)
                if not conns:
                    self._user_connections.pop(user_id, None)

    async def send_to_user(self, user_id: str, event: str, payload: Any) -> None:
        data = {"event": event, "data": payload}
        async with self._lock:
            targets = list(self._user_connections.get(user_id, set()))
        for ws in targets:
            try:
                await ws.send_json(data)
            except Exception as e:
                log.warning("realtime_push_failed", user_id=user_id, event=event, error=str(e))

    def subscription_count(self, table: Optional[str] = None) -> int:
        return sum(1 for s in self._subscriptions.values() if table is None or s.table == table)


# Global singleton hub
hub = RealtimeHub()


def publish_from_thread(table: str, type_: str, row: Optional[dict] = None, old_row: Optional[dict] = None) -> None:
    """Publish from a sync route handler (runs inside the anyio worker thread)."""
    import anyio

    change = Change(table=table, type=type_, row=row, old_row=old_row)

    async def _publish():
        await hub.publish(change)

    anyio.from_thread.run(_publish)  # type: ignore


def revoke_session_from_thread(user_id: str, reason: str) -> int:
    """Drop the user's subscriptions, then tell their sockets to re-resolve the session."""
    import anyio

    async def _revoke():
        dropped = await hub.unsubscribe_user(user_id)
        await hub.send_to_user(user_id, "session", {"reason": reason})
        return dropped

    dropped = anyio.from_thread.run(_revoke)  # type: ignore
    log.info("realtime_session_revoked", user_id=user_id, reason=reason, dropped=dropped)
    return dropped
