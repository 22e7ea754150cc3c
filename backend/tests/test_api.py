def test_health(client):
    res = client.get('/api/health')
    assert res.status_code == 200
    assert res.get_json() == {'ok': True}


def test_unknown_room(client):
    res = client.get('/api/rooms/nope')
    assert res.status_code == 404
    assert res.get_json() == {'error': 'room_not_found'}


def test_room_state_after_join(flask_app, socketio, client):
    test_client = socketio.test_client(flask_app)
    test_client.emit('joinRoom', {'roomId': 'party', 'playerName': 'Alice'})

    res = client.get('/api/rooms/party')
    assert res.status_code == 200
    state = res.get_json()
    assert state['roomId'] == 'party'
    assert state['state'] == 'lobby'
    assert state['round'] == 0
    assert state['totalRounds'] == 3
    assert [p['name'] for p in state['players']] == ['Alice']
    assert state['hostId'] == state['players'][0]['id']
