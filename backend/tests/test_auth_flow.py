from sqlalchemy import select
from portal import get_db
from portal.models.identity import User, Profile, RevokedToken
from tests.test_utils_seed import ensure_user, login_headers

SIGNUP = {
    'fullName': 'Jane Customer',
    'email': 'Jane.Signup@Example.com',
    'phone': '5551234567',
    'password': 'abc123',
    'confirmPassword': 'abc123',
}


def test_signup_creates_account_profile_and_session(client):
    resp = client.post('/auth/signup', json=SIGNUP)
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    assert body['redirect'] == '/customer/dashboard'
    assert body['notice']['title'] == 'Account created successfully!'
    assert body['session']['user']['email'] == 'jane.signup@example.com'
    assert body['session']['access_token']

    session = get_db()
    user = session.execute(select(User).where(User.email == 'jane.signup@example.com')).scalar_one()
    profile = session.get(Profile, user.id)
    assert profile.full_name == 'Jane Customer'
    assert profile.phone == '5551234567'

    headers = {'Authorization': f"Bearer {body['session']['access_token']}"}
    dash = client.get('/customer/dashboard', headers=headers)
    assert dash.status_code == 200
    assert dash.get_json()['profile']['full_name'] == 'Jane Customer'


def test_signup_password_mismatch_rejected_before_account_creation(client):
    payload = {**SIGNUP, 'email': 'mismatch@example.com', 'password': 'abc123', 'confirmPassword': 'abc124'}
    resp = client.post('/auth/signup', json=payload)
    assert resp.status_code == 400
    err = resp.get_json()['error']
    assert err['fields'] == {'confirmPassword': "Passwords don't match"}
    assert get_db().execute(select(User).where(User.email == 'mismatch@example.com')).scalar_one_or_none() is None


def test_signup_field_messages(client):
    resp = client.post('/auth/signup', json={'fullName': 'J', 'email': 'nope', 'phone': '123', 'password': 'abc', 'confirmPassword': 'abc'})
    assert resp.status_code == 400
    fields = resp.get_json()['error']['fields']
    assert fields['fullName'] == 'Name must be at least 2 characters'
    assert fields['email'] == 'Invalid email address'
    assert fields['phone'] == 'Phone must be at least 10 digits'
    assert fields['password'] == 'Password must be at least 6 characters'


def test_signup_duplicate_email_reports_backend_message(client):
    ensure_user('dup@example.com')
    resp = client.post('/auth/signup', json={**SIGNUP, 'email': 'dup@example.com'})
    assert resp.status_code == 422
    err = resp.get_json()['error']
    assert err['detail'] == 'User already registered'
    assert err['notice']['title'] == 'Signup failed'


def test_login_and_session(client):
    ensure_user('login@example.com')
    resp = client.post('/auth/login', json={'email': 'LOGIN@example.com', 'password': 'secret123'})
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body['redirect'] == '/customer/dashboard'
    headers = {'Authorization': f"Bearer {body['session']['access_token']}"}
    current = client.get('/auth/session', headers=headers).get_json()
    assert current['session']['user']['email'] == 'login@example.com'
    assert current['role'] == 'customer'


def test_login_wrong_password(client):
    ensure_user('wrongpw@example.com')
    resp = client.post('/auth/login', json={'email': 'wrongpw@example.com', 'password': 'nope-nope'})
    assert resp.status_code == 401
    err = resp.get_json()['error']
    assert err['detail'] == 'Invalid login credentials'
    assert err['notice']['title'] == 'Login failed'


def test_login_missing_fields(client):
    resp = client.post('/auth/login', json={})
    assert resp.status_code == 400
    assert set(resp.get_json()['error']['fields']) == {'email', 'password'}


def test_session_absent_without_token(client):
    assert client.get('/auth/session').get_json() == {'session': None, 'role': None}


def test_logout_revokes_token(client):
    ensure_user('logout@example.com')
    headers = login_headers(client, 'logout@example.com')
    resp = client.post('/auth/logout', headers=headers)
    assert resp.status_code == 200
    assert resp.get_json() == {'redirect': '/', 'notice': {'title': 'Logged out successfully'}}
    assert get_db().execute(select(RevokedToken)).scalars().first() is not None

    again = client.get('/customer/dashboard', headers=headers)
    assert again.status_code == 401
    err = again.get_json()['error']
    assert err['redirect'] == '/auth/login'
    assert client.get('/auth/session', headers=headers).get_json() == {'session': None, 'role': None}


def test_logout_without_session_is_noop(client):
    resp = client.post('/auth/logout')
    assert resp.status_code == 200
    assert resp.get_json()['redirect'] == '/'
