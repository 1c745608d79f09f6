import json
from portal.services.realtime import ChangeHub, EventStream, EVENT_INSERT, EVENT_UPDATE, EVENT_DELETE
from tests.test_utils_seed import ensure_admin, ensure_user, login_headers


def test_hub_filters_by_table_and_equality():
    hub = ChangeHub()
    mine, everything = [], []
    hub.subscribe('service_requests', mine.append, {'user_id': 7})
    hub.subscribe('service_requests', everything.append)
    hub.subscribe('profiles', lambda e: None)
    assert hub.publish('service_requests', EVENT_INSERT, {'id': 1, 'user_id': 7}) == 2
    assert hub.publish('service_requests', EVENT_INSERT, {'id': 2, 'user_id': 8}) == 1
    assert [e.record['id'] for e in mine] == [1]
    assert [e.record['id'] for e in everything] == [1, 2]
    assert hub.subscriber_count('service_requests') == 2
    assert hub.subscriber_count() == 3


def test_delete_events_match_on_old_record():
    hub = ChangeHub()
    got = []
    hub.subscribe('service_requests', got.append, {'user_id': 3})
    hub.publish('service_requests', EVENT_DELETE, {}, old={'id': 5, 'user_id': 3})
    assert got[0].old == {'id': 5, 'user_id': 3}


def test_unsubscribe_stops_delivery():
    hub = ChangeHub()
    got = []
    sub = hub.subscribe('service_requests', got.append)
    assert sub.unsubscribe() is True
    assert sub.unsubscribe() is False
    hub.publish('service_requests', EVENT_UPDATE, {'id': 1})
    assert got == []


def test_failing_subscriber_does_not_break_others():
    hub = ChangeHub()
    got = []

    def broken(event):
        raise RuntimeError('boom')
    hub.subscribe('service_requests', broken)
    hub.subscribe('service_requests', got.append)
    assert hub.publish('service_requests', EVENT_INSERT, {'id': 1}) == 1
    assert len(got) == 1


def test_unknown_event_type_rejected():
    hub = ChangeHub()
    try:
        hub.publish('service_requests', 'UPSERT', {})
    except ValueError as e:
        assert 'UPSERT' in str(e)
    else:
        raise AssertionError('expected ValueError')


def test_event_stream_subscribes_lazily_and_releases_on_close():
    hub = ChangeHub()
    stream = EventStream(hub, 'service_requests', {'user_id': 1}, keepalive=0.01)
    assert hub.subscriber_count() == 0
    frames = iter(stream)
    assert next(frames).startswith('retry: 10\n: subscribed service_requests')
    assert hub.subscriber_count() == 1
    assert next(frames) == ': keep-alive\n\n'
    hub.publish('service_requests', EVENT_UPDATE, {'id': 4, 'user_id': 1, 'status': 'accepted'}, old={'id': 4, 'status': 'pending'})
    frame = next(frames)
    assert frame.startswith('event: update\ndata: ')
    payload = json.loads(frame.split('data: ', 1)[1])
    assert payload['record']['status'] == 'accepted'
    assert payload['old']['status'] == 'pending'
    frames.close()
    assert hub.subscriber_count() == 0


def test_event_stream_drops_oldest_when_full():
    hub = ChangeHub()
    stream = EventStream(hub, 'service_requests', maxsize=2, keepalive=0.01)
    frames = iter(stream)
    next(frames)
    for i in range(3):
        hub.publish('service_requests', EVENT_INSERT, {'id': i})
    ids = [json.loads(next(frames).split('data: ', 1)[1])['record']['id'] for _ in range(2)]
    assert ids == [1, 2]
    stream.close()
    assert hub.subscriber_count() == 0


def test_customer_stream_receives_own_inserts(client, app_instance):
    ensure_user('stream-customer@example.com')
    headers = login_headers(client, 'stream-customer@example.com')
    hub = app_instance.extensions['realtime']
    resp = client.get('/customer/requests/events', headers=headers)
    assert resp.status_code == 200
    assert resp.mimetype == 'text/event-stream'
    frames = iter(resp.response)
    assert b'subscribed service_requests' in next(frames)
    baseline = hub.subscriber_count('service_requests')
    client.post('/customer/requests', json={
        'machineModel': 'Stream-1', 'issueDescription': 'Leaking oil near the pump',
        'preferredDate': '2025-06-02', 'preferredTime': '09:30',
    }, headers=headers)
    frame = next(frames)
    assert frame.startswith(b'event: insert')
    assert b'Stream-1' in frame
    resp.close()
    assert hub.subscriber_count('service_requests') == baseline - 1


def test_admin_stream_sees_status_changes(client, app_instance):
    from tests.test_utils_seed import create_request
    ensure_admin('stream-admin@example.com')
    owner = ensure_user('stream-owner@example.com')
    req = create_request(owner)
    headers = login_headers(client, 'stream-admin@example.com', path='/auth/admin/login')
    resp = client.get('/admin/requests/events', headers=headers)
    frames = iter(resp.response)
    next(frames)
    client.patch(f'/admin/requests/{req.id}/status', json={'status': 'accepted'}, headers=headers)
    frame = next(frames).decode()
    assert frame.startswith('event: update')
    payload = json.loads(frame.split('data: ', 1)[1])
    assert payload['record']['id'] == req.id
    assert payload['record']['status'] == 'accepted'
    assert payload['old']['status'] == 'pending'
    resp.close()
