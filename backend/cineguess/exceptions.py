"""Room engine errors.

Every error a caller can see carries the HTTP status it maps to, so the
HTTP blueprint and the Socket.IO handlers render them the same way.
"""


class RoomError(Exception):
    """Base class for all room engine errors."""
    status_code = 400

    def __init__(self, message=None):
        super().__init__(message or self.__doc__)
        self.message = message or self.__doc__

    def to_dict(self):
        return {'error': self.message}


class RoomNotFound(RoomError):
    """Room not found"""
    status_code = 404

    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__(f"Room {room_id} not found")


class PlayerNotInRoom(RoomError):
    """Player not in room"""
    status_code = 403

    def __init__(self, room_id, player_id):
        self.room_id = room_id
        self.player_id = player_id
        super().__init__(f"Player {player_id} is not in room {room_id}")


class InsufficientMovies(RoomError):
    """Not enough movies in the catalog to create a room"""
    status_code = 409

    def __init__(self, needed, available):
        self.needed = needed
        self.available = available
        super().__init__(f"Need {needed} movies to create a room, catalog has {available}")


class InvalidRoomState(RoomError):
    """Action not allowed in the room's current status"""
    status_code = 409


class RoomConflict(RoomError):
    """Room was modified concurrently, retry the request"""
    status_code = 409


class InvalidAction(RoomError):
    """Malformed or unknown action"""
    status_code = 400


class RoomStoreUnavailable(RoomError):
    """Room store is unreachable"""
    status_code = 503


class StaleRoomVersion(Exception):
    """Raised by a store when a snapshot was saved from an outdated version."""

    def __init__(self, room_id, expected):
        self.room_id = room_id
        self.expected = expected
        super().__init__(f"Room {room_id} changed since version {expected}")
