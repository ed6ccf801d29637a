from flask import Blueprint, jsonify, request, current_app

from cineguess import get_room_service
from cineguess.exceptions import InvalidAction, RoomError
from cineguess.services.rooms.state import generate_room_code, normalize_room_id


rooms = Blueprint('rooms', __name__)


@rooms.errorhandler(RoomError)
def handle_room_error(exc):
    if exc.status_code >= 500:
        current_app.logger.error(f"[room-error] {request.method} {request.path}: {exc}")
    return jsonify(exc.to_dict()), exc.status_code


@rooms.route('', methods=['POST'])
def create_room_code():
    """Hand out an unused room code for an invite link.

    The room itself is created by the first join.
    """
    service = get_room_service()
    code = generate_room_code()
    while service.store.get(code) is not None:
        current_app.logger.warning(f"Room code collision detected, regenerating: {code}")
        code = generate_room_code()
    return jsonify({'roomId': code}), 201


@rooms.route('/<string:room_id>', methods=['GET'])
def get_room(room_id):
    # Every poll runs the round clock before answering
    room = get_room_service().get(normalize_room_id(room_id))
    return jsonify(room.to_dict())


@rooms.route('/<string:room_id>/join', methods=['POST'])
def join_room(room_id):
    data = request.get_json(silent=True) or {}
    player = data.get('player') or {}
    if not isinstance(player, dict) or not player.get('id') or not player.get('username'):
        raise InvalidAction('player.id and player.username are required')
    room = get_room_service().join(normalize_room_id(room_id), str(player['id']), player['username'])
    return jsonify(room.to_dict())


@rooms.route('/<string:room_id>/action', methods=['POST'])
def room_action(room_id):
    data = dict(request.get_json(silent=True) or {})
    action_type = data.pop('type', None)
    player_id = data.pop('playerId', None)
    if not action_type or not player_id:
        raise InvalidAction('type and playerId are required')
    room = get_room_service().apply(normalize_room_id(room_id), action_type, str(player_id), data)
    if room is None:
        return jsonify({'status': 'deleted'})
    return jsonify(room.to_dict())
