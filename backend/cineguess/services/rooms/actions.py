"""Player actions applied to an in-memory ``Room``.

These functions only mutate the room they are given. Loading, retrying
and persisting are the service's job. Each returns True when the room
changed and needs to be saved.
"""
from cineguess.exceptions import InvalidAction, InvalidRoomState, PlayerNotInRoom

from .state import MAX_USERNAME_LENGTH, PLAYING, WAITING, Player

READY = 'READY'
RENAME = 'RENAME'
SUBMIT_ANSWER = 'SUBMIT_ANSWER'
EXIT = 'EXIT'
ACTION_TYPES = (READY, RENAME, SUBMIT_ANSWER, EXIT)


def clean_username(username):
    return str(username or '').strip()[:MAX_USERNAME_LENGTH]


def _member(room, player_id):
    player = room.find_player(player_id)
    if player is None:
        raise PlayerNotInRoom(room.id, player_id)
    return player


def join(room, player_id, username):
    if room.find_player(player_id) is not None:
        return False
    name = clean_username(username)
    if not player_id or not name:
        raise InvalidAction('player id and username are required')
    room.players.append(Player(id=player_id, username=name))
    return True


def ready(room, player_id, now_ms, round_seconds):
    """Mark a player ready; start the first round once everyone is."""
    player = _member(room, player_id)
    if room.status != WAITING:
        raise InvalidRoomState(f"Room {room.id} is {room.status}, not waiting")
    player.is_ready = True
    if room.players and all(p.is_ready for p in room.players):
        room.status = PLAYING
        room.current_round_index = 0
        room.timer = round_seconds
        room.round_start_time = now_ms
    return True


def rename(room, player_id, username):
    player = _member(room, player_id)
    name = clean_username(username)
    if not name or name == player.username:
        return False
    player.username = name
    return True


def grade_title(room, title):
    movie = room.current_movie
    if movie is None or title is None:
        return False
    return str(title).strip().casefold() == str(movie['title']).strip().casefold()


def submit_answer(room, player_id, movie_id=None, is_correct=None, title=None):
    """Record the first answer a player gives for the current movie.

    Answers for any other movie (a late click after the round moved on)
    and repeat answers for the same movie are ignored.
    """
    player = _member(room, player_id)
    if room.status != PLAYING:
        raise InvalidRoomState(f"Room {room.id} is not playing")
    movie = room.current_movie
    if movie is None:
        return False
    if movie_id is not None and str(movie_id) != str(movie['id']):
        return False
    if player.result_for(movie['id']) is not None:
        return False
    if is_correct is None:
        if title is None:
            raise InvalidAction('SUBMIT_ANSWER needs isCorrect or title')
        is_correct = grade_title(room, title)
    elif not isinstance(is_correct, bool):
        raise InvalidAction('isCorrect must be a boolean')

    if is_correct:
        player.score += 1
    player.last_answer_correct = is_correct
    player.results.append({'movieId': movie['id'], 'isCorrect': is_correct})
    return True


def exit_room(room, player_id):
    """Remove a player. Leaves ``room.players`` empty when the last one goes."""
    player = room.find_player(player_id)
    if player is None:
        return False
    room.players.remove(player)
    if room.players and room.host_id == player_id:
        room.host_id = room.players[0].id
    return True
