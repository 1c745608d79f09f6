from __future__ import annotations
"""Session API: account creation, password sign-in, sign-out and session lookup.

Sessions are flask-jwt-extended access tokens (identity = user id as string). Sign-out
records the token's jti in `revoked_tokens`; the blocklist loader in `portal/__init__.py`
rejects revoked tokens on every later request.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from flask_jwt_extended import create_access_token, decode_token, get_jwt, get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from portal import get_db
from portal.errors import BackendError
from portal.models.identity import User, Profile, RevokedToken

logger = logging.getLogger(__name__)


@dataclass
class AuthSession:
    user_id: int
    email: str
    jti: Optional[str] = None
    access_token: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out = {'user': {'id': self.user_id, 'email': self.email}}
        if self.access_token:
            out['access_token'] = self.access_token
            out['token_type'] = 'bearer'
        return out


def _issue(user: User) -> AuthSession:
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    token = create_access_token(identity=str(user.id), additional_claims={'email': user.email})
    jti = decode_token(token)['jti']
    return AuthSession(user_id=user.id, email=user.email, jti=jti, access_token=token)


def _create_profile(session, user: User, metadata: Dict[str, Any]) -> Profile:
    """Profile row mirrors the signup metadata and shares the user's id."""
    profile = Profile(
        id=user.id,
        full_name=metadata.get('full_name') or '',
        email=user.email,
        phone=metadata.get('phone'),
    )
    session.add(profile)
    return profile


def sign_up(email: str, password: str, metadata: Optional[Dict[str, Any]] = None) -> AuthSession:
    session = get_db()
    email = email.strip().lower()
    if session.execute(select(User).where(User.email == email)).scalar_one_or_none():
        raise BackendError('User already registered', 422)
    user = User(email=email, password_hash='')
    user.set_password(password)
    try:
        session.add(user)
        session.flush()
        _create_profile(session, user, metadata or {})
        session.commit()
    except IntegrityError:
        session.rollback()
        raise BackendError('User already registered', 422)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error('sign up failed for %s: %s', email, e)
        raise BackendError('Database error saving new user', 500)
    logger.info('Created account #%s', user.id)
    return _issue(user)


def sign_in(email: str, password: str) -> AuthSession:
    session = get_db()
    user = session.execute(select(User).where(User.email == email.strip().lower())).scalar_one_or_none()
    if not user or not user.verify_password(password):
        raise BackendError('Invalid login credentials', 401)
    return _issue(user)


def sign_out(jti: Optional[str] = None, user_id: Optional[int] = None) -> bool:
    """Revoke the given token id (defaults to the verified token of the current request)."""
    if jti is None:
        claims = get_jwt()
        jti = claims.get('jti')
        if user_id is None and claims.get('sub') is not None:
            user_id = int(claims['sub'])
    if not jti:
        return False
    session = get_db()
    if is_token_revoked(jti):
        return False
    try:
        session.add(RevokedToken(jti=jti, user_id=user_id))
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error('sign out failed: %s', e)
        raise BackendError('Sign out failed', 500)
    return True


def get_session() -> Optional[AuthSession]:
    """Resolve the caller's session from the request, or None when absent/invalid/revoked."""
    try:
        verify_jwt_in_request(optional=True)
    except (JWTExtendedException, PyJWTError) as e:
        logger.info('Rejected session token: %s', e)
        return None
    identity = get_jwt_identity()
    if identity is None:
        return None
    user = get_db().get(User, int(identity))
    if user is None:
        return None
    return AuthSession(user_id=user.id, email=user.email, jti=get_jwt().get('jti'))


def is_token_revoked(jti: Optional[str]) -> bool:
    if not jti:
        return False
    session = get_db()
    return session.execute(select(RevokedToken.id).where(RevokedToken.jti == jti)).first() is not None


__all__ = ['AuthSession', 'sign_up', 'sign_in', 'sign_out', 'get_session', 'is_token_revoked']
