from __future__ import annotations
from flask import Blueprint, Response, current_app, g, request
from pydantic import ValidationError
from portal.decorators.auth import require_session
from portal.errors import BackendError, FieldValidationError
from portal.schemas import ServiceRequestForm
from portal.services.realtime import EventStream, get_hub
from portal.services.requests import latest_update, list_customer_requests, request_json, submit_request
from portal.services.rows import Table
from portal.utils.listing import handle_conditional, make_cached_list_response
from portal.utils.scheduling import local_today
from portal.utils.validation import ALLOWED_IMAGE_MIME_TYPES, check_image, field_errors

customer_bp = Blueprint('customer', __name__)


@customer_bp.get('/dashboard')
@require_session()
def dashboard():
    auth = g.auth
    profile = Table('profiles').maybe_single('full_name', 'email', 'phone', filters={'id': auth.user_id})
    return {
        'user': {'id': auth.user_id, 'email': auth.email},
        'profile': profile,
        'tabs': [
            {'key': 'requests', 'label': 'My Requests', 'endpoint': '/customer/requests'},
            {'key': 'new', 'label': 'New Request', 'endpoint': '/customer/requests/form'},
        ],
    }


@customer_bp.get('/requests')
@require_session()
def list_requests():
    rows = list_customer_requests(g.auth.user_id)
    data = [request_json(r) for r in rows]
    latest_ts = latest_update(rows)
    resp, etag = make_cached_list_response(
        data, latest_ts, empty_message="You haven't submitted any service requests yet",
    )
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    return resp


@customer_bp.get('/requests/form')
@require_session()
def request_form():
    max_bytes = current_app.config['MAX_IMAGE_BYTES']
    return {
        'fields': ['machineModel', 'issueDescription', 'image', 'preferredDate', 'preferredTime'],
        'min_preferred_date': local_today(current_app.config.get('APP_TIMEZONE')).isoformat(),
        'image': {'accept': list(ALLOWED_IMAGE_MIME_TYPES), 'max_bytes': max_bytes, 'required': False},
    }


@customer_bp.post('/requests')
@require_session()
def create_request():
    data = (request.get_json(silent=True) or {}) if request.is_json else request.form.to_dict()
    image = request.files.get('image')
    errors = {}
    form = None
    try:
        form = ServiceRequestForm.model_validate(data)
    except ValidationError as e:
        errors.update(field_errors(e))
    image_error = check_image(image, current_app.config['MAX_IMAGE_BYTES'])
    if image_error:
        errors['image'] = image_error
    if errors:
        raise FieldValidationError(errors)
    try:
        row = submit_request(g.auth.user_id, form, image)
    except BackendError as e:
        raise e.with_notice('Submission failed')
    return {
        'data': request_json(row),
        'reset': True,
        'notice': {
            'title': 'Request submitted successfully!',
            'description': 'Our team will review your request and get back to you soon.',
        },
    }, 201


@customer_bp.get('/requests/events')
@require_session()
def request_events():
    cfg = current_app.config
    stream = EventStream(
        get_hub(), 'service_requests', filter={'user_id': g.auth.user_id},
        maxsize=cfg['REALTIME_QUEUE_SIZE'], keepalive=cfg['REALTIME_KEEPALIVE_SECONDS'],
    )
    return Response(iter(stream), mimetype='text/event-stream', headers={'Cache-Control': 'no-cache', 'X-Accel-Buffering': 'no'})
