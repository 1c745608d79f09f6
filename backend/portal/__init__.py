from flask import Flask
from werkzeug.exceptions import HTTPException
from werkzeug.http import HTTP_STATUS_CODES
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()

REDOC_BUNDLE = 'https://cdn.jsdelivr.net/npm/redoc@2/bundles/redoc.standalone.js'
DOCS_PAGE = (
    '<!DOCTYPE html><html><head><meta charset="utf-8"><title>AMP Tech Service Portal API</title></head>'
    f"<body><redoc spec-url='/openapi.json'></redoc><script src='{REDOC_BUNDLE}'></script></body></html>"
)


def _error_payload(status: int, title: str, detail: Optional[str], extra: Optional[Dict[str, Any]] = None):
    body = {'status': status, 'title': title, 'detail': detail}
    if extra:
        body.update(extra)
    return {'error': body}


@jwt.token_in_blocklist_loader
def _token_revoked(jwt_header, jwt_payload):
    from .services.session import is_token_revoked
    return is_token_revoked(jwt_payload.get('jti'))


@jwt.unauthorized_loader
def _missing_token(reason):
    return _error_payload(401, 'Unauthorized', reason), 401


@jwt.invalid_token_loader
def _invalid_token(reason):
    return _error_payload(401, 'Unauthorized', reason), 401


@jwt.expired_token_loader
def _expired_token(jwt_header, jwt_payload):
    return _error_payload(401, 'Unauthorized', 'Session expired'), 401


@jwt.revoked_token_loader
def _revoked_token(jwt_header, jwt_payload):
    return _error_payload(401, 'Unauthorized', 'Session has been signed out'), 401


def _build_engine(db_url: str):
    if db_url.endswith(':memory:'):
        # every session must see the same in-memory database, from any thread
        return create_engine(db_url, future=True, poolclass=StaticPool, connect_args={'check_same_thread': False})
    return create_engine(db_url, future=True, pool_pre_ping=True)


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    from .config.settings import load_settings
    app = Flask(__name__)

    app.config.update(load_settings())

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    db_engine = _build_engine(app.config['DATABASE_URL'])
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    @app.teardown_appcontext
    def remove_session(exc):  # type: ignore
        if SessionLocal is not None:
            SessionLocal.remove()

    jwt.init_app(app)

    # Backend collaborators
    from .services.realtime import ChangeHub
    from .services.storage import build_storage
    app.extensions['realtime'] = ChangeHub()
    app.extensions['blob_storage'] = build_storage(app.config)

    from .routes.public import public_bp  # landing, health, local blobs
    from .routes.auth import auth_bp  # signup / login screens
    from .routes.customer import customer_bp  # customer dashboard, intake form, own requests
    from .routes.admin import admin_bp  # admin dashboard, triage list
    app.register_blueprint(public_bp)
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(customer_bp, url_prefix='/customer')
    app.register_blueprint(admin_bp, url_prefix='/admin')

    # Unified error handler producing standardized JSON shape
    from .errors import BackendError

    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, BackendError):
            app.logger.warning('Backend request failed: %s', e.message)
            extra = {'notice': {'title': e.notice or 'Request failed', 'description': e.message, 'variant': 'destructive'}}
            return _error_payload(e.status, HTTP_STATUS_CODES.get(e.status, 'Unknown Error'), e.message, extra), e.status
        if isinstance(e, HTTPException):
            return _error_payload(e.code, e.name, e.description, getattr(e, 'extra', None)), e.code
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        return _error_payload(500, 'Internal Server Error', 'Unexpected error'), 500

    from .openapi import build_openapi_spec

    @app.route('/openapi.json')
    def openapi_spec():
        return build_openapi_spec()

    @app.route('/docs')
    def docs_index():
        return DOCS_PAGE

    return app


def get_db():
    return SessionLocal()
