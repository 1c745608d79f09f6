from __future__ import annotations
import logging
from portal.errors import BackendError
from portal.models.identity import ROLE_ADMIN
from portal.services.rows import Table

logger = logging.getLogger(__name__)


def has_role(user_id: int, role: str) -> bool:
    rows = Table('user_roles').select('role', filters={'user_id': user_id, 'role': role})
    return bool(rows)


def is_admin(user_id: int) -> bool:
    """Admin entitlement check; a failed lookup counts as no entitlement."""
    try:
        return has_role(user_id, ROLE_ADMIN)
    except BackendError as e:
        logger.warning('Role lookup failed for user #%s: %s', user_id, e.message)
        return False


def role_of(user_id: int) -> str:
    return ROLE_ADMIN if is_admin(user_id) else 'customer'
