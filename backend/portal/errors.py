from __future__ import annotations
"""Error types shared by the blueprints and the backend collaborators.

HTTP-facing errors subclass werkzeug's HTTPException so the app-wide handler in
`portal/__init__.py` renders them in the standard `{'error': {...}}` shape, with
any `extra` keys (field messages, redirect target, notice) merged in.
"""
from typing import Any, Dict, Optional
from werkzeug.exceptions import HTTPException


class PortalHTTPException(HTTPException):
    def __init__(self, description: Optional[str] = None, **extra: Any):
        super().__init__(description=description)
        self.extra: Dict[str, Any] = {k: v for k, v in extra.items() if v is not None}


class FieldValidationError(PortalHTTPException):
    """Client input failed validation; `fields` maps field name -> message."""
    code = 400

    def __init__(self, fields: Dict[str, str], description: str = 'Please correct the highlighted fields'):
        super().__init__(description, fields=fields)
        self.fields = fields


class SessionRequired(PortalHTTPException):
    code = 401


class AccessDenied(PortalHTTPException):
    code = 403


class BackendError(Exception):
    """Failure reported by a backend collaborator (row store, session API, blob storage).

    `message` is human readable and is surfaced to the user as-is.
    """

    def __init__(self, message: str, status: int = 400, notice: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.notice = notice

    def with_notice(self, notice: str) -> 'BackendError':
        self.notice = notice
        return self


__all__ = ['PortalHTTPException', 'FieldValidationError', 'SessionRequired', 'AccessDenied', 'BackendError']
