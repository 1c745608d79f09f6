from __future__ import annotations
"""Audit logging decorator for state-changing admin endpoints.

Usage:

@audit_log('REQUEST.STATUS.UPDATE', entity='ServiceRequest', entity_id_arg='request_id',
           diff_keys=['status', 'scheduled_date'], pre_fetch=lambda a, kw: _snapshot(kw['request_id']))
def update_status(request_id): ...

Parameters:
  action: required audit action code
  entity: optional entity label
  entity_id_key: key in the returned JSON record whose value becomes entity_id.
  entity_id_arg: name of the path parameter to use for entity_id (fallback if entity_id_key absent).
  payload_key: when the view wraps the record (e.g. {'data': {...}}), the key holding it.
  meta_keys: keys projected from the record into meta.
  diff_keys / pre_fetch: pre_fetch(args, kwargs) snapshots the record before the view runs;
    changed diff_keys are stored as meta['changes'] = {key: {'before', 'after'}}.

Only successful (status < 400) responses are audited. Audit failures are logged and never
change the endpoint's response.
"""

import logging
from functools import wraps
from typing import Any, Callable, Dict, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from portal.services.audit import add_audit
from portal import get_db

logger = logging.getLogger(__name__)


def _extract_payload(rv: Any):
    """Return (data, status) for dict / (dict, status) / (dict, status, headers) returns."""
    if isinstance(rv, tuple) and rv:
        status = rv[1] if len(rv) > 1 and isinstance(rv[1], int) else 200
        return rv[0], status
    return rv, 200


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = 'id',
    entity_id_arg: Optional[str] = None,
    payload_key: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before_snapshot = pre_fetch(args, kwargs) if (diff_keys and pre_fetch) else None
            rv = fn(*args, **kwargs)
            data, status = _extract_payload(rv)
            if status >= 400:
                return rv
            record = data.get(payload_key) if (payload_key and isinstance(data, dict)) else data
            if not isinstance(record, dict):
                record = {}
            entity_id = None
            if entity_id_key and entity_id_key in record:
                entity_id = record.get(entity_id_key)
            elif entity_id_arg and entity_id_arg in kwargs:
                entity_id = kwargs.get(entity_id_arg)
            meta: Dict[str, Any] = {}
            if meta_keys:
                meta.update({k: record.get(k) for k in meta_keys if k in record})
            if diff_keys and isinstance(before_snapshot, dict):
                changes = {}
                for k in diff_keys:
                    if k in before_snapshot and k in record and before_snapshot.get(k) != record.get(k):
                        changes[k] = {'before': before_snapshot.get(k), 'after': record.get(k)}
                if changes:
                    meta['changes'] = changes
            try:
                add_audit(action, entity, entity_id, meta)
                get_db().commit()
            except SQLAlchemyError:
                get_db().rollback()
                logger.exception('Audit write failed for %s', action)
            return rv
        return wrapper
    return outer
