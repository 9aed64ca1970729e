def _engine(flask_app):
    return flask_app.extensions['race_engine']


def test_register_login_and_check(client):
    res = client.post('/register', json={'username': 'aiko', 'password': 'secret'})
    assert res.status_code == 201
    assert res.get_json()['user']['role'] == 'student'
    assert client.post('/logout').status_code == 200
    assert client.get('/check_login').status_code == 401

    bad = client.post('/login', json={'username': 'aiko', 'password': 'nope'})
    assert bad.status_code == 401
    res = client.post('/login', json={'username': 'aiko', 'password': 'secret'})
    assert res.get_json()['success'] is True
    assert client.get('/check_login').get_json()['user']['username'] == 'aiko'


def test_each_client_keeps_its_own_login(register):
    host_client, _ = register('sensei', role='teacher')
    guest_client, _ = register('kana')
    assert host_client.get('/check_login').get_json()['user']['username'] == 'sensei'
    assert guest_client.get('/check_login').get_json()['user']['username'] == 'kana'


def test_duplicate_username_is_rejected(client):
    client.post('/register', json={'username': 'aiko', 'password': 'secret'})
    res = client.post('/register', json={'username': 'aiko', 'password': 'other'})
    assert res.status_code == 400


def test_races_require_login(client):
    assert client.post('/api/races', json={}).status_code == 401
    assert client.get('/api/races/rooms').status_code == 401


def test_create_and_join_race(register):
    host_client, host_user = register('sensei', role='teacher')
    res = host_client.post('/api/races', json={'settings': {'question_count': 3, 'title': 'Friday race'}})
    assert res.status_code == 201
    race = res.get_json()
    assert race['status'] == 'waiting'
    assert race['title'] == 'Friday race'
    assert race['host_id'] == str(host_user['id'])
    assert race['total_questions'] == 3

    guest_client, guest_user = register('kana')
    rooms = guest_client.get('/api/races/rooms').get_json()
    assert [r['code'] for r in rooms] == [race['code']]

    res = guest_client.post(f"/api/races/{race['code']}/join", json={'vehicle_id': 'boat_sail'})
    assert res.status_code == 200
    players = res.get_json()['players']
    assert players[str(guest_user['id'])]['vehicle']['id'] == 'boat_sail'


def test_unknown_race_and_empty_pool(register):
    host_client, _ = register('sensei', role='teacher')
    res = host_client.get('/api/races/999999/state')
    assert res.status_code == 404
    assert 'not found' in res.get_json()['error']

    res = host_client.post('/api/races', json={'settings': {'jlpt_level': 'N1'}})
    assert res.status_code == 400
    assert 'error' in res.get_json()


def test_full_race_over_http(flask_app, register):
    host_client, _ = register('sensei', role='teacher')
    code = host_client.post('/api/races', json={'settings': {'question_count': 2, 'mystery_box_frequency': 0}}).get_json()['code']
    guest_client, guest_user = register('kana')
    guest_client.post(f'/api/races/{code}/join')

    assert guest_client.post(f'/api/races/{code}/start').status_code == 403
    started = host_client.post(f'/api/races/{code}/start').get_json()
    assert started['status'] == 'starting'

    _engine(flask_app).scheduler.advance(5)
    state = guest_client.get(f'/api/races/{code}/state').get_json()
    assert state['status'] == 'answering'
    assert state['current_question']['correct_index'] is None

    assert guest_client.post(f'/api/races/{code}/answer', json={'option_index': 9}).status_code == 400
    assert guest_client.post(f'/api/races/{code}/answer', json={}).status_code == 400
    res = guest_client.post(f'/api/races/{code}/answer', json={'option_index': 0})
    assert res.get_json()['players'][str(guest_user['id'])]['current_answer'] == 0

    assert guest_client.get(f'/api/races/{code}/results').status_code == 400
    revealed = host_client.post(f'/api/races/{code}/reveal').get_json()
    assert revealed['status'] == 'revealing'
    assert revealed['current_question']['correct_index'] is not None

    host_client.post(f'/api/races/{code}/next')
    _engine(flask_app).scheduler.advance(2)
    finished = host_client.post(f'/api/races/{code}/next').get_json()
    assert finished['status'] == 'finished'

    results = guest_client.get(f'/api/races/{code}/results').get_json()
    assert len(results['rankings']) == 2
    assert results['total_questions'] == 2


def test_bots_and_kick_are_host_only(register):
    host_client, _ = register('sensei', role='teacher')
    code = host_client.post('/api/races', json={}).get_json()['code']
    guest_client, guest_user = register('kana')
    guest_client.post(f'/api/races/{code}/join')

    assert guest_client.post(f'/api/races/{code}/bots', json={'count': 2}).status_code == 403
    race = host_client.post(f'/api/races/{code}/bots', json={'count': 2}).get_json()
    assert sum(1 for p in race['players'].values() if p['is_bot']) == 2

    race = host_client.post(f'/api/races/{code}/kick', json={'player_id': guest_user['id']}).get_json()
    assert str(guest_user['id']) not in race['players']


def test_host_leaving_alone_discards_race(flask_app, register):
    host_client, _ = register('sensei', role='teacher')
    code = host_client.post('/api/races', json={}).get_json()['code']
    assert host_client.post(f'/api/races/{code}/leave').get_json() == {'discarded': True}
    assert host_client.get(f'/api/races/{code}/state').status_code == 404
    assert _engine(flask_app).games == {}


def test_team_race_assignment(register):
    host_client, host_user = register('sensei', role='teacher')
    race = host_client.post('/api/races', json={'settings': {'game_mode': 'team', 'team_count': 2}}).get_json()
    assert set(race['teams']) == {'team-red', 'team-blue'}
    assert race['teams']['team-red']['members'] == [str(host_user['id'])]

    race = host_client.post(f"/api/races/{race['code']}/teams", json={'team_id': 'team-blue'}).get_json()
    assert race['teams']['team-blue']['members'] == [str(host_user['id'])]
    assert race['teams']['team-red']['members'] == []


def test_vocabulary_crud(register):
    teacher, _ = register('sensei', role='teacher')
    student, _ = register('kana')

    assert student.post('/api/vocabulary', json={'word': '海', 'meaning': 'sea'}).status_code == 403
    res = teacher.post('/api/vocabulary', json={'word': '海', 'reading': 'うみ', 'meaning': 'sea', 'jlpt_level': 'n5'})
    assert res.status_code == 201
    entry = res.get_json()
    assert entry['jlpt_level'] == 'N5'

    assert teacher.post('/api/vocabulary', json={'word': '海', 'meaning': 'sea', 'jlpt_level': 'N9'}).status_code == 400
    assert teacher.post('/api/vocabulary', json={'word': '', 'meaning': 'sea'}).status_code == 400

    updated = teacher.put(f"/api/vocabulary/{entry['id']}", json={'meaning': 'ocean'}).get_json()
    assert updated['meaning'] == 'ocean'

    n4 = student.get('/api/vocabulary?level=N4').get_json()
    assert n4 and all(v['jlpt_level'] == 'N4' for v in n4)

    assert teacher.delete(f"/api/vocabulary/{entry['id']}").status_code == 200
    assert teacher.delete(f"/api/vocabulary/{entry['id']}").status_code == 404


def test_bad_race_settings_are_rejected(flask_app, register):
    host_client, _ = register('sensei', role='teacher')
    res = host_client.post('/api/races', json={'settings': {'track_length': 0}})
    assert res.status_code == 400
    assert 'track_length' in res.get_json()['error']

    assert host_client.post('/api/races', json={'settings': {'jlpt_level': 5}}).status_code == 400
    assert host_client.post('/api/races', json={'settings': ['N5']}).status_code == 400
    assert _engine(flask_app).games == {}
