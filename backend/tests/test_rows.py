from datetime import date, time
import pytest
from flask import Flask
from portal.errors import BackendError
from portal.services.rows import Table
from tests.test_utils_seed import ensure_user


@pytest.fixture()
def app_context(app_instance):
    with app_instance.app_context():
        yield app_instance


def _values(user_id, model='Row-1'):
    return {
        'user_id': user_id, 'machine_model': model, 'issue_description': 'Display flickers on boot',
        'status': 'pending', 'preferred_date': date(2025, 6, 3), 'preferred_time': time(14, 30),
    }


def test_unknown_table_and_column(app_context: Flask):
    with pytest.raises(BackendError) as exc:
        Table('invoices')
    assert exc.value.message == 'relation "invoices" does not exist'
    with pytest.raises(BackendError) as exc:
        Table('service_requests').select('colour')
    assert exc.value.message == 'column service_requests.colour does not exist'
    with pytest.raises(BackendError):
        Table('service_requests').select(order='-colour')


def test_insert_and_update_publish_changes(app_context: Flask):
    user = ensure_user('rows-owner@example.com')
    hub = app_context.extensions['realtime']
    events = []
    sub = hub.subscribe('service_requests', events.append, {'user_id': user.id})
    try:
        table = Table('service_requests')
        row = table.insert(_values(user.id))
        assert row['id'] and row['status'] == 'pending'
        updated = table.update({'status': 'accepted'}, id=row['id'])
        assert updated[0]['status'] == 'accepted'
        assert table.update({'status': 'accepted'}, id=10 ** 9) == []
    finally:
        sub.unsubscribe()
    assert [e.type for e in events] == ['INSERT', 'UPDATE']
    assert events[1].old['status'] == 'pending'


def test_update_refuses_id_change(app_context: Flask):
    with pytest.raises(BackendError):
        Table('service_requests').update({'id': 5}, id=1)


def test_select_filters_and_order(app_context: Flask):
    user = ensure_user('rows-select@example.com')
    table = Table('service_requests')
    first = table.insert(_values(user.id, 'Sel-A'))
    second = table.insert(_values(user.id, 'Sel-B'))
    rows = table.select('id', 'machine_model', filters={'user_id': user.id}, order='-created_at')
    assert [r['id'] for r in rows] == [second['id'], first['id']]
    assert set(rows[0]) == {'id', 'machine_model'}
    only = table.select('id', in_filters={'id': [first['id']]})
    assert only == [{'id': first['id']}]
    assert table.maybe_single(filters={'id': 10 ** 9}) is None


def test_constraint_violation_becomes_backend_error(app_context: Flask):
    user = ensure_user('rows-dup-role@example.com')
    roles = Table('user_roles')
    roles.insert({'user_id': user.id, 'role': 'admin'})
    with pytest.raises(BackendError) as exc:
        roles.insert({'user_id': user.id, 'role': 'admin'})
    assert 'UNIQUE' in exc.value.message.upper()
