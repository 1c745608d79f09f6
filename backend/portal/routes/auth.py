from __future__ import annotations
from flask import Blueprint, current_app, request
from portal.decorators.auth import ADMIN_LOGIN_PATH
from portal.errors import AccessDenied, BackendError
from portal.schemas import LoginForm, SignupForm
from portal.services.policy import is_admin, role_of
from portal.services.session import get_session, sign_in, sign_out, sign_up
from portal.utils.validation import parse_form

auth_bp = Blueprint('auth', __name__)

CUSTOMER_DASHBOARD_PATH = '/customer/dashboard'
ADMIN_DASHBOARD_PATH = '/admin/dashboard'


def _form_data() -> dict:
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


@auth_bp.post('/signup')
def signup():
    form = parse_form(SignupForm, _form_data())
    try:
        auth = sign_up(form.email, form.password, {'full_name': form.fullName, 'phone': form.phone})
    except BackendError as e:
        raise e.with_notice('Signup failed')
    current_app.logger.info('New customer account #%s', auth.user_id)
    return {
        'session': auth.to_dict(),
        'redirect': CUSTOMER_DASHBOARD_PATH,
        'notice': {
            'title': 'Account created successfully!',
            'description': 'Welcome to AMP Tech. Redirecting to your dashboard...',
        },
    }, 201


@auth_bp.post('/login')
def login():
    form = parse_form(LoginForm, _form_data())
    try:
        auth = sign_in(form.email, form.password)
    except BackendError as e:
        raise e.with_notice('Login failed')
    return {
        'session': auth.to_dict(),
        'redirect': CUSTOMER_DASHBOARD_PATH,
        'notice': {'title': 'Welcome back!'},
    }


@auth_bp.post('/admin/login')
def admin_login():
    form = parse_form(LoginForm, _form_data())
    try:
        auth = sign_in(form.email, form.password)
    except BackendError as e:
        raise e.with_notice('Login failed')
    if not is_admin(auth.user_id):
        # the freshly issued session must not outlive a failed entitlement check
        sign_out(auth.jti, auth.user_id)
        current_app.logger.warning('Admin login denied for user #%s', auth.user_id)
        raise AccessDenied(
            'Access denied. Admin privileges required.',
            redirect=ADMIN_LOGIN_PATH,
            notice={'title': 'Login failed', 'description': 'Access denied. Admin privileges required.', 'variant': 'destructive'},
        )
    return {
        'session': auth.to_dict(),
        'redirect': ADMIN_DASHBOARD_PATH,
        'notice': {'title': 'Admin access granted', 'description': 'Welcome back to the dashboard'},
    }


@auth_bp.post('/logout')
def logout():
    auth = get_session()
    if auth is not None:
        sign_out(auth.jti, auth.user_id)
    return {'redirect': '/', 'notice': {'title': 'Logged out successfully'}}


@auth_bp.get('/session')
def current_session():
    auth = get_session()
    if auth is None:
        return {'session': None, 'role': None}
    return {'session': auth.to_dict(), 'role': role_of(auth.user_id)}
