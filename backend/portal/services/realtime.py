from __future__ import annotations
"""In-process change notification hub.

Writers (the row store) publish one ChangeEvent per inserted/updated/deleted record;
subscribers register a callback for a logical table with an optional equality filter
such as {'user_id': 7}. Event streams bridge a subscription to a server-sent event
response and release it when the client goes away.
"""
import itertools
import json
import logging
import queue
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Callable, Dict, Iterator, Optional

from portal.utils.scheduling import iso_utc

logger = logging.getLogger(__name__)

EVENT_INSERT = 'INSERT'
EVENT_UPDATE = 'UPDATE'
EVENT_DELETE = 'DELETE'
ALL_EVENTS = (EVENT_INSERT, EVENT_UPDATE, EVENT_DELETE)


def _json_default(value: Any):
    if isinstance(value, datetime):
        return iso_utc(value)
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value)


@dataclass
class ChangeEvent:
    table: str
    type: str
    record: Dict[str, Any]
    old: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'table': self.table, 'type': self.type, 'record': self.record, 'old': self.old}

    def to_sse(self) -> str:
        data = json.dumps(self.to_dict(), default=_json_default)
        return f"event: {self.type.lower()}\ndata: {data}\n\n"


_ids = itertools.count(1)


@dataclass
class Subscription:
    hub: 'ChangeHub'
    table: str
    callback: Callable[[ChangeEvent], None]
    filter: Dict[str, Any] = field(default_factory=dict)
    id: int = field(default_factory=lambda: next(_ids))

    def matches(self, event: ChangeEvent) -> bool:
        if event.table != self.table:
            return False
        if not self.filter:
            return True
        # deletes only carry the old record
        source = event.record or event.old or {}
        return all(source.get(k) == v for k, v in self.filter.items())

    def unsubscribe(self) -> bool:
        return self.hub.unsubscribe(self)


class ChangeHub:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions: Dict[int, Subscription] = {}

    def subscribe(self, table: str, callback: Callable[[ChangeEvent], None], filter: Optional[Dict[str, Any]] = None) -> Subscription:
        sub = Subscription(hub=self, table=table, callback=callback, filter=dict(filter or {}))
        with self._lock:
            self._subscriptions[sub.id] = sub
        logger.debug('subscribed #%s to %s filter=%s', sub.id, table, sub.filter)
        return sub

    def unsubscribe(self, sub: Subscription) -> bool:
        with self._lock:
            removed = self._subscriptions.pop(sub.id, None) is not None
        if removed:
            logger.debug('unsubscribed #%s from %s', sub.id, sub.table)
        return removed

    def subscriber_count(self, table: Optional[str] = None) -> int:
        with self._lock:
            if table is None:
                return len(self._subscriptions)
            return sum(1 for s in self._subscriptions.values() if s.table == table)

    def publish(self, table: str, event_type: str, record: Dict[str, Any], old: Optional[Dict[str, Any]] = None) -> int:
        """Deliver an event to every matching subscriber; returns the delivery count."""
        if event_type not in ALL_EVENTS:
            raise ValueError(f'Unknown event type {event_type}')
        event = ChangeEvent(table=table, type=event_type, record=record, old=old)
        with self._lock:
            targets = [s for s in self._subscriptions.values() if s.matches(event)]
        delivered = 0
        for sub in targets:
            try:
                sub.callback(event)
                delivered += 1
            except Exception:
                # one broken subscriber must not fail the write that triggered it
                logger.exception('Change subscriber #%s failed for %s %s', sub.id, table, event_type)
        return delivered


class EventStream:
    """Server-sent event bridge for one subscription.

    Iterating subscribes and yields SSE frames; the subscription is released when
    iteration stops (client disconnect closes the generator) or `close()` is called.
    """

    def __init__(self, hub: ChangeHub, table: str, filter: Optional[Dict[str, Any]] = None,
                 maxsize: int = 100, keepalive: float = 15.0):
        self.hub = hub
        self.table = table
        self.filter = dict(filter or {})
        self.keepalive = keepalive
        self._queue: 'queue.Queue[ChangeEvent]' = queue.Queue(maxsize=maxsize)
        self.subscription: Optional[Subscription] = None

    def _enqueue(self, event: ChangeEvent):
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            # clients re-fetch on every event, so the oldest pending one is expendable
            try:
                self._queue.get_nowait()
            except queue.Empty:
                pass
            self._queue.put_nowait(event)

    def __iter__(self) -> Iterator[str]:
        self.subscription = self.hub.subscribe(self.table, self._enqueue, self.filter)
        try:
            yield f"retry: {int(self.keepalive * 1000)}\n: subscribed {self.table}\n\n"
            while True:
                try:
                    event = self._queue.get(timeout=self.keepalive)
                except queue.Empty:
                    yield ': keep-alive\n\n'
                    continue
                yield event.to_sse()
        finally:
            self.close()

    def close(self):
        if self.subscription is not None:
            self.subscription.unsubscribe()


def get_hub() -> ChangeHub:
    from flask import current_app
    return current_app.extensions['realtime']


__all__ = ['ChangeHub', 'ChangeEvent', 'Subscription', 'EventStream', 'get_hub', 'EVENT_INSERT', 'EVENT_UPDATE', 'EVENT_DELETE']
