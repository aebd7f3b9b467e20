def _post(client, op, **payload):
    return client.post(f'/api/scores/{op}', json=payload)


def _scores(client):
    return {s['team']: s['score'] for s in client.get('/api/scores').get_json()['scores']}


def test_list_scores(client):
    res = client.get('/api/scores')
    assert res.status_code == 200
    rows = res.get_json()['scores']
    assert [r['team'] for r in rows] == ['blue', 'green', 'red', 'yellow']
    assert all(r['score'] == 0 and r['updated_at'] for r in rows)


def test_increment_and_history(client):
    res = _post(client, 'increment', team='blue', client_id='c1', amount=5)
    assert res.status_code == 200
    body = res.get_json()
    assert body['success'] is True
    assert body['team'] == 'blue'
    assert (body['prev_score'], body['new_score']) == (0, 5)

    history = client.get('/api/scores/actions').get_json()['actions']
    assert len(history) == 1
    assert history[0]['id'] == body['action_id']
    assert history[0]['delta'] == 5
    assert history[0]['action_type'] == 'increment'
    assert history[0]['undone'] is False


def test_amount_defaults_to_one(client):
    body = _post(client, 'increment', team='green', client_id='c1').get_json()
    assert body['new_score'] == 1


def test_amount_must_be_integer(client):
    res = _post(client, 'increment', team='green', client_id='c1', amount='lots')
    assert res.status_code == 400
    assert res.get_json()['error'] == 'bad_request'
    res = _post(client, 'decrement', team='green', client_id='c1', amount=2.5)
    assert res.status_code == 400


def test_missing_fields_are_rejected(client):
    assert _post(client, 'increment', team='blue').status_code == 400
    assert _post(client, 'reset', client_id='c1').status_code == 400
    assert _post(client, 'reset_all').status_code == 400
    assert _post(client, 'undo').status_code == 400


def test_unknown_team_is_404(client):
    res = _post(client, 'increment', team='purple', client_id='c1')
    assert res.status_code == 404
    assert res.get_json() == {'success': False, 'error': 'not_found', 'message': 'Team not found'}


def test_decrement_at_zero_is_409(client):
    res = _post(client, 'decrement', team='red', client_id='c1', amount=3)
    assert res.status_code == 409
    assert res.get_json()['error'] == 'no_op'


def test_reset_flow(client):
    _post(client, 'increment', team='yellow', client_id='c1', amount=9)
    res = _post(client, 'reset', team='yellow', client_id='c1')
    assert res.status_code == 200
    assert res.get_json()['new_score'] == 0

    again = _post(client, 'reset', team='yellow', client_id='c1')
    assert again.status_code == 200
    assert again.get_json()['message'] == 'Score is already 0'


def test_reset_all_and_undo(client):
    _post(client, 'increment', team='blue', client_id='setup-1', amount=5)
    _post(client, 'increment', team='yellow', client_id='setup-2', amount=3)

    res = _post(client, 'reset_all', client_id='c1')
    assert res.status_code == 200
    assert res.get_json() == {'success': True, 'teams_reset': 2}
    assert set(_scores(client).values()) == {0}

    undo = _post(client, 'undo', client_id='c1')
    assert undo.status_code == 200
    body = undo.get_json()
    assert body['reverted_action_id']
    assert body['undo_action_id']
    history = client.get('/api/scores/actions').get_json()['actions']
    assert history[0]['id'] == body['undo_action_id']
    assert history[0]['reverts_action_id'] == body['reverted_action_id']
    reverted = next(a for a in history if a['id'] == body['reverted_action_id'])
    assert reverted['undone'] is True
    assert reverted['undone_at']


def test_undo_without_history_is_409(client):
    res = _post(client, 'undo', client_id='nobody')
    assert res.status_code == 409
    assert res.get_json()['error'] == 'no_undoable_action'


def test_rate_limited_is_429(client):
    for _ in range(5):
        assert _post(client, 'increment', team='blue', client_id='spammer').status_code == 200
    res = _post(client, 'increment', team='blue', client_id='spammer')
    assert res.status_code == 429
    body = res.get_json()
    assert body['error'] == 'rate_limited'
    assert body['message'] == 'Rate limited. Please wait a few seconds.'
    assert _scores(client)['blue'] == 5


def test_history_limit(client):
    for i in range(4):
        _post(client, 'increment', team='blue', client_id=f'c{i}')
    assert len(client.get('/api/scores/actions?limit=2').get_json()['actions']) == 2
    assert len(client.get('/api/scores/actions?limit=0').get_json()['actions']) == 1
    actions = client.get('/api/scores/actions').get_json()['actions']
    assert [a['new_score'] for a in actions] == [4, 3, 2, 1]
