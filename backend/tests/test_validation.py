import io
import pytest
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import HTTPException
from portal.errors import FieldValidationError
from portal.schemas import ServiceRequestForm, SignupForm, StatusUpdate
from portal.utils.validation import check_image, file_extension, is_valid_email, parse_form, validate_status


def _upload(data: bytes, filename: str, mimetype: str) -> FileStorage:
    return FileStorage(stream=io.BytesIO(data), filename=filename, content_type=mimetype)


def test_validate_status():
    assert validate_status('pending', ('pending', 'accepted')) == 'pending'
    with pytest.raises(HTTPException) as exc:
        validate_status('archived', ('pending',))
    assert exc.value.code == 400


def test_email_pattern():
    assert is_valid_email('a@b.co')
    assert not is_valid_email('a@b')
    assert not is_valid_email('')
    assert not is_valid_email(None)


def test_file_extension():
    assert file_extension('Photo.JPEG') == 'jpeg'
    assert file_extension('noext') == ''
    assert file_extension(None) == ''


def test_check_image_limits():
    assert check_image(None, 10) is None
    assert check_image(_upload(b'123', 'a.png', 'image/png'), 10) is None
    assert check_image(_upload(b'1' * 10, 'a.png', 'image/png'), 10 * 1024 * 1024) is None
    assert check_image(_upload(b'1' * 11, 'a.gif', 'image/gif'), 1024) == 'Image must be a JPEG or PNG file'
    big = _upload(b'1' * (2 * 1024 * 1024), 'a.jpg', 'image/jpeg')
    assert check_image(big, 2 * 1024 * 1024) == 'Image must be less than 2MB'
    # size probing leaves the stream where it was
    assert big.stream.tell() == 0


def test_parse_form_collects_field_messages():
    with pytest.raises(FieldValidationError) as exc:
        parse_form(ServiceRequestForm, {'machineModel': 'AB', 'issueDescription': 'too short'})
    assert exc.value.fields == {
        'issueDescription': 'Please provide more details about the issue',
        'preferredDate': 'Please select a preferred date',
        'preferredTime': 'Please select a preferred time',
    }


def test_signup_form_normalizes_email():
    form = parse_form(SignupForm, {
        'fullName': 'Al', 'email': ' Al@Example.COM ', 'phone': '0123456789', 'password': 'abc123', 'confirmPassword': 'abc123',
    })
    assert form.email == 'al@example.com'


def test_status_update_normalizes_value():
    assert parse_form(StatusUpdate, {'status': ' Scheduled '}).status == 'scheduled'
