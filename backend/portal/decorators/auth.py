from functools import wraps
from flask import g
from portal.errors import AccessDenied, SessionRequired
from portal.services.policy import is_admin
from portal.services.session import get_session, sign_out

CUSTOMER_LOGIN_PATH = '/auth/login'
ADMIN_LOGIN_PATH = '/auth/admin/login'


def require_session(login_path: str = CUSTOMER_LOGIN_PATH):
    """Verify the session on entry; the resolved AuthSession is exposed as g.auth."""
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            auth = get_session()
            if auth is None:
                raise SessionRequired('Please sign in to continue', redirect=login_path)
            g.auth = auth
            return fn(*args, **kwargs)
        return wrapper
    return outer


def require_admin(fn):
    """Session + admin role check. Failing the role check signs the session out."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        auth = get_session()
        if auth is None:
            raise SessionRequired('Please sign in to continue', redirect=ADMIN_LOGIN_PATH)
        if not is_admin(auth.user_id):
            sign_out(auth.jti, auth.user_id)
            raise AccessDenied(
                'Admin privileges required',
                redirect=ADMIN_LOGIN_PATH,
                notice={'title': 'Access denied', 'description': 'Admin privileges required', 'variant': 'destructive'},
            )
        g.auth = auth
        return fn(*args, **kwargs)
    return wrapper
