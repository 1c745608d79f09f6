from __future__ import annotations
"""Row storage API over the portal's logical tables.

Screens never touch ORM objects directly; they select/insert/update plain dicts through
`Table(name)`. Any database failure surfaces as BackendError carrying a readable message,
and every successful write is fanned out through the change hub.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from portal import get_db
from portal.errors import BackendError
from portal.models.identity import Profile, UserRole
from portal.models.service_request import ServiceRequest
from portal.services.realtime import get_hub, EVENT_INSERT, EVENT_UPDATE
from portal.utils.sorting import apply_multi_sort

logger = logging.getLogger(__name__)

TABLES = {
    'service_requests': ServiceRequest,
    'profiles': Profile,
    'user_roles': UserRole,
}


def _message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, 'orig', None)
    return str(orig or exc).splitlines()[0]


class Table:
    def __init__(self, name: str):
        model = TABLES.get(name)
        if model is None:
            raise BackendError(f'relation "{name}" does not exist', 404)
        self.name = name
        self.model = model
        self.columns = {c.key: getattr(model, c.key) for c in model.__table__.columns}

    def _column(self, key: str):
        col = self.columns.get(key)
        if col is None:
            raise BackendError(f'column {self.name}.{key} does not exist')
        return col

    def _to_dict(self, obj, columns: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        keys = list(columns) if columns else list(self.columns)
        return {k: getattr(obj, k) for k in keys}

    def select(self, *columns: str, filters: Optional[Dict[str, Any]] = None,
               in_filters: Optional[Dict[str, Iterable[Any]]] = None, order: Optional[str] = None) -> List[Dict[str, Any]]:
        """Return rows as dicts.

        filters: column -> value equality; in_filters: column -> allowed values;
        order: comma separated columns, '-' prefix for descending (ties broken by id).
        """
        for c in columns:
            self._column(c)
        q = select(self.model)
        for key, value in (filters or {}).items():
            q = q.where(self._column(key) == value)
        for key, values in (in_filters or {}).items():
            q = q.where(self._column(key).in_(list(values)))
        id_col = self.columns.get('id')
        descending = bool(order) and order.strip().startswith('-')
        tie = id_col.desc() if descending else id_col.asc()
        try:
            q = apply_multi_sort(q, order, self.columns, tie)
        except ValueError as e:
            raise BackendError(str(e))
        session = get_db()
        try:
            rows = session.execute(q).scalars().all()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error('select on %s failed: %s', self.name, e)
            raise BackendError(_message(e), 500)
        return [self._to_dict(r, columns) for r in rows]

    def maybe_single(self, *columns: str, filters: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        rows = self.select(*columns, filters=filters)
        return rows[0] if rows else None

    def insert(self, values: Dict[str, Any]) -> Dict[str, Any]:
        for key in values:
            self._column(key)
        session = get_db()
        obj = self.model(**values)
        try:
            session.add(obj)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error('insert into %s failed: %s', self.name, e)
            raise BackendError(_message(e))
        record = self._to_dict(obj)
        get_hub().publish(self.name, EVENT_INSERT, record)
        return record

    def update(self, values: Dict[str, Any], id: Any) -> List[Dict[str, Any]]:
        """Update the row matched by id; returns the updated rows (empty when none matched)."""
        for key in values:
            if key == 'id':
                raise BackendError('column id cannot be updated')
            self._column(key)
        session = get_db()
        obj = session.get(self.model, id)
        if obj is None:
            return []
        old = self._to_dict(obj)
        try:
            for key, value in values.items():
                setattr(obj, key, value)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error('update of %s #%s failed: %s', self.name, id, e)
            raise BackendError(_message(e))
        record = self._to_dict(obj)
        get_hub().publish(self.name, EVENT_UPDATE, record, old=old)
        return [record]


__all__ = ['Table', 'TABLES']
