"""Environment driven settings for `create_app`.

Values are read once per app instance; callers (tests, scripts) override any key by
passing a dict to `create_app(config=...)`.
"""
from __future__ import annotations
from datetime import timedelta
from typing import Any, Dict
import os

DEFAULT_IMAGE_BUCKET = 'machine-images'
DEFAULT_MAX_IMAGE_BYTES = 10 * 1024 * 1024


def _flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f'{name} must be an integer')


def load_settings() -> Dict[str, Any]:
    max_image = _int('MAX_IMAGE_BYTES', DEFAULT_MAX_IMAGE_BYTES)
    return {
        'JWT_SECRET_KEY': os.getenv('JWT_SECRET_KEY', 'dev-secret'),
        'JWT_ACCESS_TOKEN_EXPIRES': timedelta(seconds=_int('JWT_ACCESS_TOKEN_EXPIRES', 3600)),
        # query string lets EventSource clients authenticate the change streams
        'JWT_TOKEN_LOCATION': ['headers', 'query_string'],
        'DATABASE_URL': os.getenv('DATABASE_URL', 'sqlite:///dev.db'),
        'APP_TIMEZONE': os.getenv('APP_TIMEZONE', 'UTC'),
        'ENFORCE_STATUS_TRANSITIONS': _flag('ENFORCE_STATUS_TRANSITIONS'),
        'LOG_LEVEL': os.getenv('LOG_LEVEL', 'INFO').upper(),
        # Blob storage
        'STORAGE_BACKEND': os.getenv('STORAGE_BACKEND', 'local').lower(),
        'STORAGE_ROOT': os.getenv('STORAGE_ROOT', os.path.abspath('storage')),
        'STORAGE_PUBLIC_BASE_URL': os.getenv('STORAGE_PUBLIC_BASE_URL', '/storage'),
        'S3_BUCKET': os.getenv('S3_BUCKET'),
        'S3_ENDPOINT_URL': os.getenv('S3_ENDPOINT_URL'),
        'S3_REGION': os.getenv('S3_REGION', 'us-east-1'),
        'S3_ACCESS_KEY_ID': os.getenv('S3_ACCESS_KEY_ID'),
        'S3_SECRET_ACCESS_KEY': os.getenv('S3_SECRET_ACCESS_KEY'),
        'S3_PUBLIC_BASE_URL': os.getenv('S3_PUBLIC_BASE_URL'),
        'IMAGE_BUCKET': os.getenv('IMAGE_BUCKET', DEFAULT_IMAGE_BUCKET),
        'MAX_IMAGE_BYTES': max_image,
        # leave headroom so oversized images reach the field validator instead of a bare 413
        'MAX_CONTENT_LENGTH': max_image + 2 * 1024 * 1024,
        # Change streams
        'REALTIME_KEEPALIVE_SECONDS': float(os.getenv('REALTIME_KEEPALIVE_SECONDS', '15')),
        'REALTIME_QUEUE_SIZE': _int('REALTIME_QUEUE_SIZE', 100),
    }


__all__ = ['load_settings', 'DEFAULT_IMAGE_BUCKET', 'DEFAULT_MAX_IMAGE_BYTES']
