from __future__ import annotations
"""Service request workflows shared by the customer and admin blueprints.

All reads and writes go through the row storage API (`Table`) so every write reaches
the change hub.
"""
import logging
import time as _time
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional

from flask import abort, current_app
from werkzeug.datastructures import FileStorage

from portal.errors import BackendError
from portal.models.service_request import ServiceRequest
from portal.schemas import ServiceRequestForm
from portal.services.rows import Table
from portal.services.storage import get_storage
from portal.utils.fsm import TransitionValidator
from portal.utils.scheduling import combine_preferred_slot, iso_utc, as_utc
from portal.utils.validation import file_extension, validate_status

logger = logging.getLogger(__name__)

REQUESTS_TABLE = 'service_requests'
NEWEST_FIRST = '-created_at'

REQUEST_FSM = TransitionValidator({
    ServiceRequest.STATUS_PENDING: {ServiceRequest.STATUS_ACCEPTED, ServiceRequest.STATUS_REJECTED},
    ServiceRequest.STATUS_ACCEPTED: {ServiceRequest.STATUS_SCHEDULED, ServiceRequest.STATUS_REJECTED},
    ServiceRequest.STATUS_SCHEDULED: {ServiceRequest.STATUS_COMPLETED},
    ServiceRequest.STATUS_COMPLETED: set(),
    ServiceRequest.STATUS_REJECTED: set(),
})

STATUS_COLORS = {
    ServiceRequest.STATUS_PENDING: 'yellow',
    ServiceRequest.STATUS_ACCEPTED: 'blue',
    ServiceRequest.STATUS_SCHEDULED: 'green',
    ServiceRequest.STATUS_COMPLETED: 'gray',
    ServiceRequest.STATUS_REJECTED: 'red',
}

STATUS_OPTIONS = [{'value': s, 'label': s.capitalize()} for s in ServiceRequest.ALL_STATUSES]

EMPTY_PROFILE = {'full_name': '', 'email': '', 'phone': ''}


def request_json(row: Dict[str, Any], profile: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    status = row['status']
    preferred_time = row.get('preferred_time')
    out = {
        'id': row['id'],
        'user_id': row['user_id'],
        'machine_model': row['machine_model'],
        'issue_description': row['issue_description'],
        'image_url': row.get('image_url'),
        'status': status,
        'status_label': status.capitalize(),
        'status_color': STATUS_COLORS.get(status, 'gray'),
        'preferred_date': row['preferred_date'].isoformat() if row.get('preferred_date') else None,
        'preferred_time': preferred_time.strftime('%H:%M') if preferred_time else None,
        'scheduled_date': iso_utc(row.get('scheduled_date')),
        'created_at': iso_utc(row.get('created_at')),
    }
    if profile is not None:
        out['profile'] = {k: profile.get(k) or '' for k in EMPTY_PROFILE}
    return out


def latest_update(rows: List[Dict[str, Any]]) -> Optional[datetime]:
    stamps = [as_utc(r.get('updated_at')) for r in rows if r.get('updated_at')]
    return max(stamps) if stamps else None


# ---------- Customer side ---------- #

def list_customer_requests(user_id: int) -> List[Dict[str, Any]]:
    return Table(REQUESTS_TABLE).select(filters={'user_id': user_id}, order=NEWEST_FIRST)


def image_object_name(user_id: int, filename: str) -> str:
    return f"{user_id}-{int(_time.time() * 1000)}.{file_extension(filename) or 'jpg'}"


def submit_request(user_id: int, form: ServiceRequestForm, image: Optional[FileStorage] = None) -> Dict[str, Any]:
    """Upload the optional image, then insert the request as pending.

    Callers validate the form and image first; nothing here is retried. When the insert
    fails the uploaded image is deleted again, so a failed submission leaves nothing behind.
    """
    image_url = None
    uploaded = None
    storage = get_storage()
    if image is not None and image.filename:
        bucket = current_app.config['IMAGE_BUCKET']
        name = image_object_name(user_id, image.filename)
        storage.upload(bucket, name, image.read(), image.mimetype)
        uploaded = (bucket, name)
        image_url = storage.get_public_url(bucket, name)
    try:
        row = Table(REQUESTS_TABLE).insert({
            'user_id': user_id,
            'machine_model': form.machineModel,
            'issue_description': form.issueDescription,
            'image_url': image_url,
            'preferred_date': form.preferredDate,
            'preferred_time': form.preferredTime,
            'status': ServiceRequest.STATUS_PENDING,
        })
    except BackendError:
        if uploaded:
            try:
                storage.delete(*uploaded)
            except BackendError as e:
                logger.error('Orphaned image %s/%s after failed insert: %s', uploaded[0], uploaded[1], e.message)
        raise
    logger.info('Service request #%s submitted by user #%s', row['id'], user_id)
    return row


# ---------- Admin side ---------- #

def load_owner_profiles(rows: List[Dict[str, Any]]) -> Dict[int, Dict[str, Any]]:
    """One batched lookup for the distinct owners of `rows`."""
    owner_ids = sorted({r['user_id'] for r in rows})
    if not owner_ids:
        return {}
    profiles = Table('profiles').select('id', 'full_name', 'email', 'phone', in_filters={'id': owner_ids})
    return {p['id']: p for p in profiles}


def list_all_requests() -> List[Dict[str, Any]]:
    """All requests newest first, each paired with its owner's profile."""
    rows = Table(REQUESTS_TABLE).select(order=NEWEST_FIRST)
    profiles = load_owner_profiles(rows)
    for row in rows:
        row['profile'] = profiles.get(row['user_id'], EMPTY_PROFILE)
    return rows


def get_request(request_id: int) -> Dict[str, Any]:
    row = Table(REQUESTS_TABLE).maybe_single(filters={'id': request_id})
    if row is None:
        abort(404, description='Service request not found')
    return row


def change_status(request_id: int, new_status: str) -> Dict[str, Any]:
    """Set a request's status; moving to scheduled stamps scheduled_date from the preferred slot.

    scheduled_date is never cleared by later moves. Transitions are unrestricted unless
    ENFORCE_STATUS_TRANSITIONS is enabled.
    """
    validate_status(new_status, ServiceRequest.ALL_STATUSES)
    current = get_request(request_id)
    if current_app.config.get('ENFORCE_STATUS_TRANSITIONS'):
        REQUEST_FSM.assert_can_transition(current['status'], new_status)
    values: Dict[str, Any] = {'status': new_status}
    if new_status == ServiceRequest.STATUS_SCHEDULED:
        values['scheduled_date'] = combine_preferred_slot(
            current['preferred_date'], current['preferred_time'], current_app.config.get('APP_TIMEZONE'),
        )
    updated = Table(REQUESTS_TABLE).update(values, id=request_id)
    if not updated:
        abort(404, description='Service request not found')
    logger.info('Service request #%s: %s -> %s', request_id, current['status'], new_status)
    return updated[0]


def request_stats() -> Dict[str, Any]:
    statuses = Counter(r['status'] for r in Table(REQUESTS_TABLE).select('status'))
    by_status = {s: statuses.get(s, 0) for s in ServiceRequest.ALL_STATUSES}
    return {
        'total': sum(statuses.values()),
        'pending': by_status[ServiceRequest.STATUS_PENDING],
        'completed': by_status[ServiceRequest.STATUS_COMPLETED],
        'by_status': by_status,
    }


__all__ = [
    'REQUEST_FSM', 'STATUS_OPTIONS', 'request_json', 'latest_update', 'list_customer_requests', 'submit_request',
    'load_owner_profiles', 'list_all_requests', 'get_request', 'change_status', 'request_stats',
]
