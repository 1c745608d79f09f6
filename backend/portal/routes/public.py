from __future__ import annotations
import os
from flask import Blueprint, abort, send_file
from werkzeug.utils import safe_join
from portal.decorators.auth import ADMIN_LOGIN_PATH, CUSTOMER_LOGIN_PATH
from portal.services.storage import LocalBlobStorage, get_storage

public_bp = Blueprint('public', __name__)


@public_bp.get('/')
def landing():
    return {
        'name': 'AMP Tech Service Portal',
        'tagline': 'Book machine service appointments and track every request',
        'links': {
            'signup': '/auth/signup',
            'customer_login': CUSTOMER_LOGIN_PATH,
            'admin_login': ADMIN_LOGIN_PATH,
            'docs': '/docs',
        },
    }


@public_bp.route('/healthz')
def health():
    return {'status': 'ok'}


@public_bp.get('/storage/<bucket>/<path:name>')
def public_object(bucket: str, name: str):
    storage = get_storage()
    if not isinstance(storage, LocalBlobStorage):
        abort(404)
    path = safe_join(storage.root, bucket, name)
    if path is None or not os.path.isfile(path):
        abort(404)
    return send_file(path)
