from tests.test_utils_seed import ensure_admin, ensure_user, login_headers


def test_non_admin_loading_admin_dashboard_is_signed_out(client):
    ensure_user('not-admin@example.com')
    headers = login_headers(client, 'not-admin@example.com')
    resp = client.get('/admin/dashboard', headers=headers)
    assert resp.status_code == 403
    err = resp.get_json()['error']
    assert err['redirect'] == '/auth/admin/login'
    assert err['notice']['title'] == 'Access denied'
    assert err['notice']['description'] == 'Admin privileges required'
    # the session was cleared: even customer screens now require signing in
    assert client.get('/customer/dashboard', headers=headers).status_code == 401


def test_admin_screens_require_session(client):
    resp = client.get('/admin/requests')
    assert resp.status_code == 401
    assert resp.get_json()['error']['redirect'] == '/auth/admin/login'


def test_admin_login_rejects_customer_account(client):
    ensure_user('cust-admin-login@example.com')
    resp = client.post('/auth/admin/login', json={'email': 'cust-admin-login@example.com', 'password': 'secret123'})
    assert resp.status_code == 403
    err = resp.get_json()['error']
    assert err['detail'] == 'Access denied. Admin privileges required.'
    assert err['notice']['title'] == 'Login failed'


def test_admin_login_grants_dashboard(client):
    ensure_admin('boss@example.com', full_name='Boss')
    headers = login_headers(client, 'boss@example.com', path='/auth/admin/login')
    resp = client.get('/admin/dashboard', headers=headers)
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body['profile']['full_name'] == 'Boss'
    assert set(body['stats']) >= {'total', 'pending', 'completed', 'by_status'}


def test_admin_login_response(client):
    ensure_admin('boss2@example.com')
    resp = client.post('/auth/admin/login', json={'email': 'boss2@example.com', 'password': 'secret123'})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['redirect'] == '/admin/dashboard'
    assert body['notice']['title'] == 'Admin access granted'


def test_session_reports_admin_role(client):
    ensure_admin('role-check@example.com')
    headers = login_headers(client, 'role-check@example.com', path='/auth/admin/login')
    body = client.get('/auth/session', headers=headers).get_json()
    assert body['role'] == 'admin'


def test_redirect_targets_are_real_login_routes(client):
    for url in ('/customer/dashboard', '/admin/dashboard'):
        target = client.get(url).get_json()['error']['redirect']
        # the login endpoints answer an empty form with field errors, not 404/405
        resp = client.post(target, json={})
        assert resp.status_code == 400
        assert set(resp.get_json()['error']['fields']) == {'email', 'password'}
    assert client.get('/').get_json()['links']['customer_login'] == '/auth/login'
