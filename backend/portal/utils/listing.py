from __future__ import annotations
"""List responses for the request screens.

Lists are never paginated; each response carries the full set, an `ETag` computed from
the rendered rows and, when rows exist, `Last-Modified` from the newest `updated_at`.
Clients that re-fetch after a change event send the ETag back in If-None-Match and
get a bodyless 304 while nothing changed; Last-Modified is informational only.
"""
import hashlib
import json
from datetime import datetime
from email.utils import format_datetime
from typing import Any, Dict, List, Optional

from flask import make_response, request

from portal.utils.scheduling import as_utc


def to_second(dt: datetime) -> datetime:
    return as_utc(dt).replace(microsecond=0)


def compute_etag(rows: List[Dict[str, Any]]) -> str:
    # any rendered field (status, schedule, owner profile) changes the tag
    digest = hashlib.sha256(json.dumps(rows, sort_keys=True, default=str).encode())
    return digest.hexdigest()[:32]


def build_list_payload(rows: list, empty_message: str, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {'data': rows, 'total': len(rows)}
    if not rows:
        payload['empty_message'] = empty_message
    payload.update(extra or {})
    return payload


def _stamp(resp, etag: str, latest_ts: Optional[datetime]):
    resp.headers['ETag'] = etag
    if latest_ts is not None:
        latest = to_second(latest_ts)
        resp.headers['Last-Modified'] = format_datetime(latest, usegmt=True)
        resp.headers['X-Last-Modified-ISO'] = latest.isoformat().replace('+00:00', 'Z')
    return resp


def make_cached_list_response(rows: list, latest_ts: Optional[datetime] = None, empty_message: str = 'Nothing here yet',
                              extra: Optional[Dict[str, Any]] = None):
    etag = compute_etag(rows)
    resp = make_response(build_list_payload(rows, empty_message, extra))
    return _stamp(resp, etag, latest_ts), etag


def handle_conditional(etag: str, latest_ts: Optional[datetime]):
    """Return a 304 response when If-None-Match names the current ETag, else None.

    If-Modified-Since is ignored: a change within the same second as Last-Modified
    would otherwise be hidden from a client re-fetching after a change event.
    """
    tags = request.headers.get('If-None-Match')
    if not tags:
        return None
    sent = {t.strip().strip('"') for t in tags.split(',')}
    if etag not in sent and '*' not in sent:
        return None
    return _stamp(make_response('', 304), etag, latest_ts)


__all__ = ['compute_etag', 'build_list_payload', 'make_cached_list_response', 'handle_conditional']
