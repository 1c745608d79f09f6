"""Form schemas - Pydantic models for client input validation.

Field names match the form fields the portal submits (camelCase). Messages are the ones
shown next to each field.
"""

from datetime import date, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from portal.utils.validation import is_valid_email


def _min_length(value: Optional[str], n: int, message: str) -> str:
    if value is None or len(value) < n:
        raise PydanticCustomError('too_short', message)
    return value


def _required(value, message: str):
    if value is None or (isinstance(value, str) and not value.strip()):
        raise PydanticCustomError('required', message)
    return value


class SignupForm(BaseModel):
    model_config = ConfigDict(validate_default=True)

    fullName: str = ''
    email: str = ''
    phone: str = ''
    password: str = ''
    confirmPassword: str = ''

    @field_validator('fullName')
    @classmethod
    def validate_full_name(cls, v):
        return _min_length(v, 2, 'Name must be at least 2 characters')

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        v = (v or '').strip()
        if not is_valid_email(v):
            raise PydanticCustomError('email', 'Invalid email address')
        return v.lower()

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return _min_length(v, 10, 'Phone must be at least 10 digits')

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        return _min_length(v, 6, 'Password must be at least 6 characters')

    @field_validator('confirmPassword')
    @classmethod
    def passwords_match(cls, v, info: ValidationInfo):
        # only comparable once password itself passed validation
        password = info.data.get('password')
        if password is not None and v != password:
            raise PydanticCustomError('mismatch', "Passwords don't match")
        return v


class LoginForm(BaseModel):
    model_config = ConfigDict(validate_default=True)

    email: str = ''
    password: str = ''

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return _required(v, 'Email is required').strip()

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        return _required(v, 'Password is required')


class ServiceRequestForm(BaseModel):
    """Intake form. Any client-supplied status is ignored; new requests are always pending."""

    model_config = ConfigDict(validate_default=True)

    machineModel: str = ''
    issueDescription: str = ''
    preferredDate: Optional[date] = None
    preferredTime: Optional[time] = None

    @field_validator('machineModel')
    @classmethod
    def validate_machine_model(cls, v):
        return _min_length(v, 2, 'Machine model is required')

    @field_validator('issueDescription')
    @classmethod
    def validate_issue_description(cls, v):
        return _min_length(v, 10, 'Please provide more details about the issue')

    @field_validator('preferredDate', mode='before')
    @classmethod
    def validate_preferred_date(cls, v):
        return _required(v, 'Please select a preferred date')

    @field_validator('preferredTime', mode='before')
    @classmethod
    def validate_preferred_time(cls, v):
        return _required(v, 'Please select a preferred time')


class StatusUpdate(BaseModel):
    model_config = ConfigDict(validate_default=True)

    status: str = ''

    @field_validator('status')
    @classmethod
    def validate_status(cls, v):
        return _required(v, 'Please select a status').strip().lower()
