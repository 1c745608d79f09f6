from __future__ import annotations
from flask import Blueprint, Response, current_app, g, request
from portal.decorators.audit import audit_log
from portal.decorators.auth import require_admin
from portal.errors import BackendError
from portal.schemas import StatusUpdate
from portal.services.realtime import EventStream, get_hub
from portal.services.requests import (
    STATUS_OPTIONS, change_status, get_request, latest_update, list_all_requests, request_json, request_stats,
)
from portal.services.rows import Table
from portal.utils.listing import handle_conditional, make_cached_list_response
from portal.utils.scheduling import iso_utc
from portal.utils.validation import parse_form

admin_bp = Blueprint('admin', __name__)


@admin_bp.get('/dashboard')
@require_admin
def dashboard():
    auth = g.auth
    profile = Table('profiles').maybe_single('full_name', 'email', 'phone', filters={'id': auth.user_id})
    try:
        stats = request_stats()
    except BackendError as e:
        raise e.with_notice('Could not load statistics')
    return {
        'user': {'id': auth.user_id, 'email': auth.email},
        'profile': profile,
        'stats': stats,
        'requests_endpoint': '/admin/requests',
    }


@admin_bp.get('/stats')
@require_admin
def stats():
    return request_stats()


@admin_bp.get('/requests')
@require_admin
def list_requests():
    rows = list_all_requests()
    data = [request_json(r, r['profile']) for r in rows]
    latest_ts = latest_update(rows)
    resp, etag = make_cached_list_response(
        data, latest_ts, empty_message='No service requests yet', extra={'status_options': STATUS_OPTIONS},
    )
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


def _snapshot(request_id):
    row = Table('service_requests').maybe_single('status', 'scheduled_date', filters={'id': request_id})
    if not row:
        return {}
    return {'status': row['status'], 'scheduled_date': iso_utc(row['scheduled_date'])}


@admin_bp.patch('/requests/<int:request_id>/status')
@require_admin
@audit_log(
    'REQUEST.STATUS.UPDATE',
    entity='ServiceRequest',
    payload_key='data',
    diff_keys=['status', 'scheduled_date'],
    pre_fetch=lambda a, kw: _snapshot(kw.get('request_id')),
    meta_keys=['status'],
)
def update_status(request_id: int):
    form = parse_form(StatusUpdate, request.get_json(silent=True))
    try:
        row = change_status(request_id, form.status)
        stats = request_stats()
    except BackendError as e:
        raise e.with_notice('Update failed')
    current_app.logger.info('Admin #%s marked request #%s as %s', g.auth.user_id, request_id, form.status)
    return {
        'data': request_json(row),
        'stats': stats,
        'notice': {'title': 'Status updated', 'description': f'Request marked as {form.status}'},
    }


@admin_bp.get('/requests/<int:request_id>')
@require_admin
def get_single_request(request_id: int):
    row = get_request(request_id)
    profile = Table('profiles').maybe_single('full_name', 'email', 'phone', filters={'id': row['user_id']})
    return request_json(row, profile or {})


@admin_bp.get('/requests/events')
@require_admin
def request_events():
    cfg = current_app.config
    stream = EventStream(
        get_hub(), 'service_requests',
        maxsize=cfg['REALTIME_QUEUE_SIZE'], keepalive=cfg['REALTIME_KEEPALIVE_SECONDS'],
    )
    return Response(iter(stream), mimetype='text/event-stream', headers={'Cache-Control': 'no-cache', 'X-Accel-Buffering': 'no'})
