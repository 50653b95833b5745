"""In-process broadcast of "stock changed" notices.

Every committed stock mutation publishes an ``InventoryChange`` naming the
materials it touched. Clients that cache material quantities either poll
``replay_since`` with the last id they saw or hold an SSE stream open and
receive changes as they happen. Ids restart at 1 with the process, so a
client holding an id the feed no longer knows is told to reset.
"""

from __future__ import annotations

import itertools
import json
import queue
import threading
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Deque, Iterable, Optional

from ..core.config import settings
from ..core.dates import utcnow_iso


@dataclass
class InventoryChange:
    id: int
    material_ids: list[int]
    source: str
    timestamp: str = field(default_factory=utcnow_iso)

    def as_payload(self) -> dict:
        return {"type": "inventory", **asdict(self)}


class InventoryChangeFeed:
    def __init__(self, history_size: int = 500, queue_size: int = 100) -> None:
        self._subscribers: set[queue.Queue[InventoryChange]] = set()
        self._history: Deque[InventoryChange] = deque(maxlen=history_size)
        self._ids = itertools.count(1)
        self._queue_size = queue_size
        self._lock = threading.Lock()

    def subscribe(self) -> queue.Queue[InventoryChange]:
        q: queue.Queue[InventoryChange] = queue.Queue(maxsize=self._queue_size)
        with self._lock:
            self._subscribers.add(q)
        return q

    def unsubscribe(self, q: queue.Queue[InventoryChange]) -> None:
        with self._lock:
            self._subscribers.discard(q)

    @property
    def last_id(self) -> int:
        with self._lock:
            return self._history[-1].id if self._history else 0

    def publish(self, material_ids: Iterable[int], source: str) -> Optional[InventoryChange]:
        ids = sorted({int(material_id) for material_id in material_ids})
        if not ids:
            return None
        with self._lock:
            change = InventoryChange(id=next(self._ids), material_ids=ids, source=source)
            self._history.append(change)
            subscribers = list(self._subscribers)
        for q in subscribers:
            try:
                q.put_nowait(change)
            except queue.Full:
                # Slow consumer: drop its oldest notice to make room.
                try:
                    q.get_nowait()
                    q.put_nowait(change)
                except (queue.Empty, queue.Full):
                    pass
        return change

    def replay_since(self, after_id: int = 0) -> tuple[list[InventoryChange], bool]:
        """Changes newer than ``after_id`` and whether the caller must resync.

        The second value is ``True`` when changes after ``after_id`` were
        already evicted, or when ``after_id`` is newer than anything this
        feed has issued (the process restarted). Either way the caller
        should refetch everything it caches.
        """

        with self._lock:
            history = list(self._history)
        if not history:
            return [], after_id > 0
        if after_id > history[-1].id:
            return [], True
        replay = [change for change in history if change.id > after_id]
        truncated = after_id < history[0].id - 1
        return replay, truncated

    def materials_changed_since(self, after_id: int = 0) -> set[int]:
        changes, _ = self.replay_since(after_id)
        return {material_id for change in changes for material_id in change.material_ids}


feed = InventoryChangeFeed(history_size=settings.CHANGE_FEED_HISTORY)


def publish_inventory_change(material_ids: Iterable[int], source: str) -> Optional[InventoryChange]:
    return feed.publish(material_ids, source)


def _sse_frame(event: str, payload: dict, event_id: Optional[int] = None) -> str:
    # Payloads are compact JSON, so one data line always suffices.
    head = f"id: {event_id}\n" if event_id is not None else ""
    return f"{head}event: {event}\ndata: {json.dumps(payload, separators=(',', ':'))}\n\n"


def change_event(change: InventoryChange) -> str:
    """An ``inventory`` event; its id lets the browser resume via Last-Event-ID."""

    return _sse_frame("inventory", change.as_payload(), event_id=change.id)


def reset_event(after_id: int, last_id: int) -> str:
    return _sse_frame("reset", {"type": "reset", "after": after_id, "last_id": last_id})


def heartbeat_event(last_id: int) -> str:
    return _sse_frame("heartbeat", {"type": "heartbeat", "last_id": last_id, "timestamp": utcnow_iso()})


__all__ = [
    "InventoryChange",
    "InventoryChangeFeed",
    "change_event",
    "feed",
    "heartbeat_event",
    "publish_inventory_change",
    "reset_event",
]
