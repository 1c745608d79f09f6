from __future__ import annotations
from typing import Any, Dict, Optional
from flask import g
from portal import get_db
from portal.models.audit import AuditLog

SYSTEM_ACTOR = 0


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[Any] = None, meta: Optional[Dict[str, Any]] = None) -> AuditLog:
    """Stage an audit row on the current session; the caller commits.

    The actor is the session resolved by the auth decorators (SYSTEM_ACTOR outside a request).
    `meta` must be JSON-safe and is copied.
    """
    auth = getattr(g, 'auth', None)
    entry = AuditLog(
        actor_user_id=auth.user_id if auth else SYSTEM_ACTOR,
        action=action,
        entity=entity,
        entity_id=None if entity_id is None else str(entity_id),
        meta=dict(meta or {}),
    )
    get_db().add(entry)
    return entry
