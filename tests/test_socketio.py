def _flush(sio_client):
    sio_client.get_received('/ws')


def _named(packets, name):
    return [pkt for pkt in packets if pkt['name'] == name]


def test_socket_connect_and_join(sio_client):
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')
    _flush(sio_client)

    sio_client.emit('join_race', {'code': '123456'}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert _named(received, 'joined')[0]['args'][0] == {'room': 'race:123456'}
    # unknown race: no state to sync
    assert _named(received, 'state_update') == []


def test_join_without_code_reports_error(sio_client):
    _flush(sio_client)
    sio_client.emit('join_race', {}, namespace='/ws')
    assert _named(sio_client.get_received('/ws'), 'error')


def test_join_race_syncs_current_state(sio_client, register):
    host_client, _ = register('sensei', role='teacher')
    code = host_client.post('/api/races', json={}).get_json()['code']
    _flush(sio_client)

    sio_client.emit('join_race', {'code': code}, namespace='/ws')
    updates = _named(sio_client.get_received('/ws'), 'state_update')
    assert updates[0]['args'][0]['event'] == 'sync'
    assert updates[0]['args'][0]['game']['code'] == code


def test_state_changes_are_broadcast_to_the_room(flask_app, sio_client, register):
    host_client, _ = register('sensei', role='teacher')
    code = host_client.post('/api/races', json={}).get_json()['code']
    sio_client.emit('join_race', {'code': code}, namespace='/ws')
    _flush(sio_client)

    guest_client, _ = register('kana')
    guest_client.post(f'/api/races/{code}/join')
    updates = _named(sio_client.get_received('/ws'), 'state_update')
    assert [u['args'][0]['event'] for u in updates] == ['player_joined']
    assert len(updates[0]['args'][0]['game']['players']) == 2

    # timer-driven transitions broadcast too
    host_client.post(f'/api/races/{code}/start')
    _flush(sio_client)
    flask_app.extensions['race_engine'].scheduler.advance(5)
    events = [u['args'][0]['event'] for u in _named(sio_client.get_received('/ws'), 'state_update')]
    assert events == ['question', 'answering']


def test_discarded_race_is_announced(sio_client, register):
    host_client, _ = register('sensei', role='teacher')
    code = host_client.post('/api/races', json={}).get_json()['code']
    sio_client.emit('join_race', {'code': code}, namespace='/ws')
    _flush(sio_client)

    host_client.post(f'/api/races/{code}/leave')
    discarded = _named(sio_client.get_received('/ws'), 'race_discarded')
    assert discarded[0]['args'][0]['code'] == code


def test_leave_race_stops_updates(sio_client, register):
    host_client, _ = register('sensei', role='teacher')
    code = host_client.post('/api/races', json={}).get_json()['code']
    sio_client.emit('join_race', {'code': code}, namespace='/ws')
    sio_client.emit('leave_race', {'code': code}, namespace='/ws')
    assert _named(sio_client.get_received('/ws'), 'left')

    guest_client, _ = register('kana')
    guest_client.post(f'/api/races/{code}/join')
    assert _named(sio_client.get_received('/ws'), 'state_update') == []
