def join(client, room_id, player_id, username):
    return client.post(f'/api/rooms/{room_id}/join', json={'player': {'id': player_id, 'username': username}})


def act(client, room_id, action_type, player_id, **payload):
    return client.post(f'/api/rooms/{room_id}/action', json={'type': action_type, 'playerId': player_id, **payload})


def current_movie_id(room):
    return room['movies'][room['currentRoundIndex']]['id']


def test_index_and_health(client):
    assert client.get('/').status_code == 200
    res = client.get('/api/health')
    assert res.status_code == 200
    assert res.get_json() == {'status': 'ok', 'database': 'connected'}


def test_list_movies(client, catalog):
    movies = client.get('/api/movies').get_json()
    assert len(movies) == 20
    assert {'id', 'title', 'imageUrl', 'year', 'genre'} <= set(movies[0])


def test_create_room_code(client):
    res = client.post('/api/rooms')
    assert res.status_code == 201
    code = res.get_json()['roomId']
    assert len(code) == 6
    assert code == code.upper()
    # Codes are handed out, rooms only appear on first join
    assert client.get(f'/api/rooms/{code}').status_code == 404


def test_get_missing_room(client):
    res = client.get('/api/rooms/NOPE00')
    assert res.status_code == 404
    assert 'error' in res.get_json()


def test_join_creates_room(client, catalog):
    res = join(client, 'ABC123', 'p1', 'Alice')
    assert res.status_code == 200
    room = res.get_json()
    assert room['id'] == 'ABC123'
    assert room['hostId'] == 'p1'
    assert room['status'] == 'waiting'
    assert room['currentRoundIndex'] == 0
    assert room['timer'] == 10
    assert len(room['movies']) == 10
    assert len({m['id'] for m in room['movies']}) == 10
    assert room['players'] == [{
        'id': 'p1',
        'username': 'Alice',
        'score': 0,
        'isReady': False,
        'lastAnswerCorrect': None,
        'results': [],
    }]


def test_join_is_idempotent(client, catalog):
    first = join(client, 'ABC123', 'p1', 'Alice').get_json()
    again = join(client, 'ABC123', 'p1', 'Alice').get_json()
    assert len(again['players']) == 1
    assert again['movies'] == first['movies']


def test_second_player_joins_in_order(client, catalog):
    join(client, 'ABC123', 'p1', 'Alice')
    room = join(client, 'ABC123', 'p2', 'Bob').get_json()
    assert [p['id'] for p in room['players']] == ['p1', 'p2']
    assert room['hostId'] == 'p1'


def test_room_ids_are_normalized(client, catalog):
    join(client, 'abc123', 'p1', 'Alice')
    assert client.get('/api/rooms/ABC123').status_code == 200


def test_join_requires_player(client, catalog):
    res = client.post('/api/rooms/ABC123/join', json={})
    assert res.status_code == 400
    res = client.post('/api/rooms/ABC123/join', json={'player': {'id': 'p1', 'username': '   '}})
    assert res.status_code == 400
    assert client.get('/api/rooms/ABC123').status_code == 404


def test_join_fails_when_catalog_too_small(client, flask_app):
    from cineguess import db
    from cineguess.models import Movie
    for i in range(5):
        db.session.add(Movie(id=str(i), title=f'Movie {i}', image_url='x', year=2000, genre='Drama'))
    db.session.commit()

    res = join(client, 'ABC123', 'p1', 'Alice')
    assert res.status_code == 409
    assert 'catalog' in res.get_json()['error']
    assert client.get('/api/rooms/ABC123').status_code == 404


def test_action_on_missing_room(client):
    assert act(client, 'NOPE00', 'READY', 'p1').status_code == 404


def test_action_from_non_member_is_forbidden(client, catalog):
    join(client, 'ABC123', 'p1', 'Alice')
    for action_type in ('READY', 'RENAME', 'SUBMIT_ANSWER'):
        assert act(client, 'ABC123', action_type, 'intruder', username='x').status_code == 403


def test_action_requires_type_and_player(client, catalog):
    join(client, 'ABC123', 'p1', 'Alice')
    assert client.post('/api/rooms/ABC123/action', json={'type': 'READY'}).status_code == 400
    assert act(client, 'ABC123', 'DANCE', 'p1').status_code == 400


def test_ready_waits_for_every_player(client, catalog, clock):
    join(client, 'ABC123', 'p1', 'Alice')
    join(client, 'ABC123', 'p2', 'Bob')

    room = act(client, 'ABC123', 'READY', 'p1').get_json()
    assert room['status'] == 'waiting'
    assert [p['isReady'] for p in room['players']] == [True, False]

    room = act(client, 'ABC123', 'READY', 'p2').get_json()
    assert room['status'] == 'playing'
    assert room['currentRoundIndex'] == 0
    assert room['timer'] == 10
    assert room['roundStartTime'] == clock.now_ms


def test_single_player_room_starts(client, catalog):
    join(client, 'SOLO01', 'p1', 'Alice')
    room = act(client, 'SOLO01', 'READY', 'p1').get_json()
    assert room['status'] == 'playing'


def test_ready_after_start_is_rejected(client, catalog, clock):
    join(client, 'ABC123', 'p1', 'Alice')
    act(client, 'ABC123', 'READY', 'p1')
    clock.advance(4)
    res = act(client, 'ABC123', 'READY', 'p1')
    assert res.status_code == 409
    # The round clock was not restarted by the rejected READY
    assert client.get('/api/rooms/ABC123').get_json()['timer'] == 6


def test_rename(client, catalog):
    join(client, 'ABC123', 'p1', 'Alice')
    room = act(client, 'ABC123', 'RENAME', 'p1', username='  Alicia ').get_json()
    assert room['players'][0]['username'] == 'Alicia'
    # Blank names are ignored
    room = act(client, 'ABC123', 'RENAME', 'p1', username='   ').get_json()
    assert room['players'][0]['username'] == 'Alicia'


def test_submit_answer_before_start_is_rejected(client, catalog):
    room = join(client, 'ABC123', 'p1', 'Alice').get_json()
    res = act(client, 'ABC123', 'SUBMIT_ANSWER', 'p1', isCorrect=True, movieId=current_movie_id(room))
    assert res.status_code == 409


def test_submit_answer_counts_once_per_movie(client, catalog, clock):
    join(client, 'ABC123', 'p1', 'Alice')
    room = act(client, 'ABC123', 'READY', 'p1').get_json()
    movie_id = current_movie_id(room)

    room = act(client, 'ABC123', 'SUBMIT_ANSWER', 'p1', isCorrect=True, movieId=movie_id).get_json()
    room = act(client, 'ABC123', 'SUBMIT_ANSWER', 'p1', isCorrect=True, movieId=movie_id).get_json()
    room = act(client, 'ABC123', 'SUBMIT_ANSWER', 'p1', isCorrect=False, movieId=movie_id).get_json()

    player = room['players'][0]
    assert player['score'] == 1
    assert player['lastAnswerCorrect'] is True
    assert player['results'] == [{'movieId': movie_id, 'isCorrect': True}]


def test_late_answer_for_previous_movie_is_ignored(client, catalog, clock):
    join(client, 'ABC123', 'p1', 'Alice')
    room = act(client, 'ABC123', 'READY', 'p1').get_json()
    first_movie = current_movie_id(room)
    clock.advance(10)
    client.get('/api/rooms/ABC123')

    room = act(client, 'ABC123', 'SUBMIT_ANSWER', 'p1', isCorrect=True, movieId=first_movie).get_json()
    assert room['currentRoundIndex'] == 1
    assert room['players'][0]['results'] == []
    assert room['players'][0]['score'] == 0


def test_submit_answer_graded_by_title(client, catalog, clock):
    join(client, 'ABC123', 'p1', 'Alice')
    join(client, 'ABC123', 'p2', 'Bob')
    act(client, 'ABC123', 'READY', 'p1')
    room = act(client, 'ABC123', 'READY', 'p2').get_json()
    movie = room['movies'][0]

    act(client, 'ABC123', 'SUBMIT_ANSWER', 'p1', title=movie['title'].upper(), movieId=movie['id'])
    room = act(client, 'ABC123', 'SUBMIT_ANSWER', 'p2', title='Not A Real Movie', movieId=movie['id']).get_json()
    alice, bob = room['players']
    assert (alice['score'], alice['lastAnswerCorrect']) == (1, True)
    assert (bob['score'], bob['lastAnswerCorrect']) == (0, False)


def test_exit_by_host_reassigns_host(client, catalog):
    join(client, 'ABC123', 'p1', 'Alice')
    join(client, 'ABC123', 'p2', 'Bob')
    join(client, 'ABC123', 'p3', 'Cara')
    room = act(client, 'ABC123', 'EXIT', 'p1').get_json()
    assert room['hostId'] == 'p2'
    assert [p['id'] for p in room['players']] == ['p2', 'p3']


def test_exit_by_non_member_is_noop(client, catalog):
    join(client, 'ABC123', 'p1', 'Alice')
    res = act(client, 'ABC123', 'EXIT', 'ghost')
    assert res.status_code == 200
    assert [p['id'] for p in res.get_json()['players']] == ['p1']


def test_exit_last_player_deletes_room(client, catalog):
    join(client, 'ABC123', 'p1', 'Alice')
    res = act(client, 'ABC123', 'EXIT', 'p1')
    assert res.get_json() == {'status': 'deleted'}
    assert client.get('/api/rooms/ABC123').status_code == 404


def test_poll_counts_down_timer(client, catalog, clock):
    join(client, 'ABC123', 'p1', 'Alice')
    act(client, 'ABC123', 'READY', 'p1')
    clock.advance(3.5)
    room = client.get('/api/rooms/ABC123').get_json()
    assert room['timer'] == 7
    assert room['currentRoundIndex'] == 0


def test_expired_round_advances_exactly_once(client, catalog, clock):
    join(client, 'ABC123', 'p1', 'Alice')
    act(client, 'ABC123', 'READY', 'p1')
    clock.advance(10)

    reads = [client.get('/api/rooms/ABC123').get_json() for _ in range(3)]
    assert [r['currentRoundIndex'] for r in reads] == [1, 1, 1]
    assert all(r['timer'] == 10 for r in reads)
    assert reads[0]['roundStartTime'] == clock.now_ms


def test_end_to_end_single_player_round(client, catalog, clock):
    room = join(client, 'ABC123', 'p1', 'Alice').get_json()
    assert room['status'] == 'waiting'

    room = act(client, 'ABC123', 'READY', 'p1').get_json()
    assert room['status'] == 'playing'
    assert room['currentRoundIndex'] == 0
    assert room['timer'] == 10

    movie_id = current_movie_id(room)
    room = act(client, 'ABC123', 'SUBMIT_ANSWER', 'p1', isCorrect=True, movieId=movie_id).get_json()
    player = room['players'][0]
    assert player['score'] == 1
    assert player['results'] == [{'movieId': movie_id, 'isCorrect': True}]
    assert player['lastAnswerCorrect'] is True

    clock.advance(10)
    room = client.get('/api/rooms/ABC123').get_json()
    assert room['currentRoundIndex'] == 1
    assert room['timer'] == 10
    assert room['players'][0]['lastAnswerCorrect'] is None
    assert room['players'][0]['score'] == 1


def test_last_round_finishes_game(client, catalog, clock):
    join(client, 'ABC123', 'p1', 'Alice')
    act(client, 'ABC123', 'READY', 'p1')
    for expected in range(1, 10):
        clock.advance(10)
        room = client.get('/api/rooms/ABC123').get_json()
        assert room['currentRoundIndex'] == expected
        assert room['status'] == 'playing'

    clock.advance(10)
    room = client.get('/api/rooms/ABC123').get_json()
    assert room['status'] == 'finished'
    assert room['timer'] == 0
    assert room['currentRoundIndex'] == len(room['movies'])

    for _ in range(3):
        clock.advance(10)
        again = client.get('/api/rooms/ABC123').get_json()
        assert again['status'] == 'finished'
        assert again['currentRoundIndex'] == room['currentRoundIndex']

    res = act(client, 'ABC123', 'SUBMIT_ANSWER', 'p1', isCorrect=True)
    assert res.status_code == 409


def test_score_always_matches_results(client, catalog, clock):
    join(client, 'ABC123', 'p1', 'Alice')
    join(client, 'ABC123', 'p2', 'Bob')
    act(client, 'ABC123', 'READY', 'p1')
    room = act(client, 'ABC123', 'READY', 'p2').get_json()
    while room['status'] == 'playing':
        movie_id = current_movie_id(room)
        index = room['currentRoundIndex']
        act(client, 'ABC123', 'SUBMIT_ANSWER', 'p1', isCorrect=index % 2 == 0, movieId=movie_id)
        act(client, 'ABC123', 'SUBMIT_ANSWER', 'p1', isCorrect=True, movieId=movie_id)
        if index % 3 == 0:
            act(client, 'ABC123', 'SUBMIT_ANSWER', 'p2', isCorrect=True, movieId=movie_id)
        clock.advance(10)
        room = client.get('/api/rooms/ABC123').get_json()

    alice, bob = room['players']
    for player in (alice, bob):
        assert player['score'] == sum(1 for r in player['results'] if r['isCorrect'])
    assert alice['score'] == 5
    assert len(alice['results']) == 10
    assert bob['score'] == 4
