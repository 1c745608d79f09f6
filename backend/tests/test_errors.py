from portal.errors import BackendError
from tests.test_utils_seed import ensure_admin, login_headers


def test_unknown_path_returns_error_json(client):
    resp = client.get('/non-existent-path')
    # Flask default 404 should be wrapped by error handler
    assert resp.status_code == 404
    body = resp.get_json()
    assert body['error']['status'] == 404
    assert 'detail' in body['error']


def test_backend_error_carries_notice(client, monkeypatch):
    ensure_admin('err-admin@example.com')
    headers = login_headers(client, 'err-admin@example.com', path='/auth/admin/login')
    import portal.routes.admin as admin_mod

    def unavailable():
        raise BackendError('connection refused', 503)
    monkeypatch.setattr(admin_mod, 'request_stats', unavailable)
    resp = client.get('/admin/dashboard', headers=headers)
    assert resp.status_code == 503
    err = resp.get_json()['error']
    assert err['detail'] == 'connection refused'
    assert err['notice'] == {'title': 'Could not load statistics', 'description': 'connection refused', 'variant': 'destructive'}


def test_internal_error_shape(client, monkeypatch):
    ensure_admin('err-admin2@example.com')
    headers = login_headers(client, 'err-admin2@example.com', path='/auth/admin/login')
    import portal.routes.admin as admin_mod

    def explode():
        raise RuntimeError('explode')
    monkeypatch.setattr(admin_mod, 'request_stats', explode)
    resp = client.get('/admin/stats', headers=headers)
    assert resp.status_code == 500
    body = resp.get_json()
    assert body['error'] == {'status': 500, 'title': 'Internal Server Error', 'detail': 'Unexpected error'}


def test_invalid_token_is_unauthorized(client):
    resp = client.get('/customer/dashboard', headers={'Authorization': 'Bearer not-a-jwt'})
    assert resp.status_code == 401
