import threading
from collections import namedtuple

from flask import current_app, request
from flask_socketio import emit, join_room, leave_room

from cineguess import get_room_service, socketio
from cineguess.exceptions import InvalidAction, RoomError
from cineguess.services.rooms.actions import EXIT, READY, RENAME, SUBMIT_ANSWER
from cineguess.services.rooms.state import normalize_room_id

NAMESPACE = '/ws'

Connection = namedtuple('Connection', ['room_id', 'player_id'])


def channel(room_id: str) -> str:
    return f"room:{room_id}"


class ConnectionRegistry:
    """Which room and player each live socket belongs to."""

    def __init__(self):
        self._by_sid = {}
        self._lock = threading.Lock()

    def bind(self, sid, room_id, player_id):
        with self._lock:
            self._by_sid[sid] = Connection(room_id, player_id)

    def get(self, sid):
        return self._by_sid.get(sid)

    def pop(self, sid):
        with self._lock:
            return self._by_sid.pop(sid, None)

    def is_connected(self, room_id, player_id):
        with self._lock:
            return Connection(room_id, player_id) in self._by_sid.values()

    def __len__(self):
        return len(self._by_sid)


class SocketPublisher:
    """Pushes the full room snapshot to every socket in the room."""

    def __init__(self, sio):
        self.socketio = sio

    def publish(self, room):
        self.socketio.emit('ROOM_UPDATE', {'room': room.to_dict()}, to=channel(room.id), namespace=NAMESPACE)


def _registry() -> ConnectionRegistry:
    return current_app.extensions['room_connections']


def _get_sid() -> str:
    return request.sid  # type: ignore[attr-defined]


def _emit_error(exc: RoomError) -> None:
    emit('ERROR', {'message': exc.message, 'status': exc.status_code})


def _leave(conn: Connection) -> None:
    """Run EXIT for a connection unless the same player is still connected elsewhere."""
    leave_room(channel(conn.room_id))
    if _registry().is_connected(conn.room_id, conn.player_id):
        return
    try:
        get_room_service().exit(conn.room_id, conn.player_id)
    except RoomError as exc:
        current_app.logger.warning(f"[ws-exit] room={conn.room_id} player={conn.player_id} {exc}")


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_disconnect(*args):
    conn = _registry().pop(_get_sid())
    if conn:
        _leave(conn)


def handle_join_room(data):
    data = data or {}
    room_id = normalize_room_id(data.get('roomId'))
    player = data.get('player') or {}
    if not room_id or not isinstance(player, dict) or not player.get('id'):
        _emit_error(InvalidAction('roomId and player are required'))
        return
    player_id = str(player['id'])

    sid = _get_sid()
    previous = _registry().get(sid)
    if previous and previous != (room_id, player_id):
        _registry().pop(sid)
        _leave(previous)

    try:
        room = get_room_service().join(room_id, player_id, player.get('username'))
    except RoomError as exc:
        _emit_error(exc)
        return
    # The join broadcast went to the others; the joiner gets its own copy
    join_room(channel(room_id))
    _registry().bind(sid, room_id, player_id)
    emit('ROOM_UPDATE', {'room': room.to_dict()})


def _handle_action(action_type, data):
    sid = _get_sid()
    conn = _registry().get(sid)
    if conn is None:
        _emit_error(InvalidAction('Join a room first'))
        return
    try:
        room = get_room_service().apply(conn.room_id, action_type, conn.player_id, data or {})
    except RoomError as exc:
        _emit_error(exc)
        return
    if action_type == EXIT:
        _registry().pop(sid)
        leave_room(channel(conn.room_id))
        if room is None:
            emit('ROOM_DELETED', {'roomId': conn.room_id})


def handle_ready(data=None):
    _handle_action(READY, data)


def handle_rename(data=None):
    _handle_action(RENAME, data)


def handle_submit_answer(data=None):
    _handle_action(SUBMIT_ANSWER, data)


def handle_exit(data=None):
    _handle_action(EXIT, data)


def handle_ping(data=None):
    emit('pong', data or {})


_HANDLERS = {
    'connect': handle_connect,
    'disconnect': handle_disconnect,
    'JOIN_ROOM': handle_join_room,
    READY: handle_ready,
    RENAME: handle_rename,
    SUBMIT_ANSWER: handle_submit_answer,
    EXIT: handle_exit,
    'ping': handle_ping,
}


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    for event, handler in _HANDLERS.items():
        socketio.on_event(event, handler, namespace=NAMESPACE)
    if testing:
        for event, handler in _HANDLERS.items():
            socketio.on_event(event, handler, namespace='/')
