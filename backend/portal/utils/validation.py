from __future__ import annotations
"""Reusable validation helpers for form input and status values.

Form schemas (see `portal/schemas.py`) raise pydantic errors; `parse_form` turns them into
a single FieldValidationError keyed by the field names the client submitted.
"""
import os
import re
from typing import Dict, Iterable, Optional, Type, TypeVar
from flask import abort
from pydantic import BaseModel, ValidationError
from werkzeug.datastructures import FileStorage

from portal.errors import FieldValidationError

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

ALLOWED_IMAGE_MIME_TYPES = ('image/jpeg', 'image/png', 'image/jpg')
ALLOWED_IMAGE_EXTENSIONS = ('jpg', 'jpeg', 'png')

M = TypeVar('M', bound=BaseModel)


def validate_status(new_status: str, allowed: Iterable[str], field_name: str = 'status') -> str:
    """Validate that new_status is inside allowed.

    Returns the status (to enable inline usage) or aborts with 400.
    """
    if new_status not in allowed:
        abort(400, description=f"{field_name} invalid")
    return new_status


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value) and EMAIL_RE.match(value) is not None


def field_errors(exc: ValidationError) -> Dict[str, str]:
    """Map pydantic errors to {field: message}; first message per field wins."""
    out: Dict[str, str] = {}
    for err in exc.errors():
        loc = err.get('loc') or ()
        key = str(loc[0]) if loc else 'form'
        if key not in out:
            out[key] = err.get('msg', 'Invalid value')
    return out


def parse_form(model: Type[M], data: Optional[dict]) -> M:
    try:
        return model.model_validate(data or {})
    except ValidationError as e:
        raise FieldValidationError(field_errors(e))


def file_size(upload: FileStorage) -> int:
    stream = upload.stream
    pos = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(pos)
    return size


def file_extension(filename: Optional[str]) -> str:
    if not filename or '.' not in filename:
        return ''
    return filename.rsplit('.', 1)[1].lower()


def check_image(upload: Optional[FileStorage], max_bytes: int) -> Optional[str]:
    """Return an error message for an unacceptable image, None when acceptable or absent."""
    if upload is None or not upload.filename:
        return None
    if upload.mimetype not in ALLOWED_IMAGE_MIME_TYPES or file_extension(upload.filename) not in ALLOWED_IMAGE_EXTENSIONS:
        return 'Image must be a JPEG or PNG file'
    if file_size(upload) >= max_bytes:
        return f'Image must be less than {max_bytes // (1024 * 1024)}MB'
    return None


__all__ = [
    'validate_status', 'is_valid_email', 'field_errors', 'parse_form', 'check_image', 'file_extension',
    'ALLOWED_IMAGE_MIME_TYPES', 'ALLOWED_IMAGE_EXTENSIONS',
]
