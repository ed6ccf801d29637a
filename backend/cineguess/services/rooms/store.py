"""Room stores.

Both stores keep full snapshots and enforce compare-and-swap on the
snapshot ``version``: saving a room read at version *v* succeeds only while
the stored version is still *v*, and bumps it to *v + 1*.
"""
import json
import threading
from datetime import datetime, timezone
from functools import wraps

from sqlalchemy.exc import IntegrityError, OperationalError

from cineguess import db
from cineguess.exceptions import RoomStoreUnavailable, StaleRoomVersion
from cineguess.models import RoomRecord

from .state import PLAYING, WAITING, Room


class RoomStore:
    """get / create / save / delete over full room snapshots."""

    def get(self, room_id):
        raise NotImplementedError

    def create(self, room_id, host, movies, timer):
        """Store a new room with its host already seated, in one write."""
        room = Room(
            id=room_id, host_id=host.id, movies=list(movies), status=WAITING,
            timer=timer, players=[host],
        )
        self.save(room)
        return room

    def save(self, room):
        raise NotImplementedError

    def delete(self, room_id, version=None):
        raise NotImplementedError

    def playing_room_ids(self):
        """Ids of rooms stored with status ``playing``."""
        raise NotImplementedError


class MemoryRoomStore(RoomStore):
    """Process-local store. Rooms are lost when the process exits."""

    def __init__(self):
        self._rooms = {}
        self._lock = threading.Lock()

    def get(self, room_id):
        with self._lock:
            entry = self._rooms.get(room_id)
        if entry is None:
            return None
        version, state = entry
        return Room.from_dict(json.loads(state), version=version)

    def save(self, room):
        with self._lock:
            stored = self._rooms.get(room.id)
            current = stored[0] if stored else 0
            if current != room.version:
                raise StaleRoomVersion(room.id, room.version)
            room.version = current + 1
            self._rooms[room.id] = (room.version, json.dumps(room.to_dict()))

    def delete(self, room_id, version=None):
        with self._lock:
            stored = self._rooms.get(room_id)
            if stored is None:
                return
            if version is not None and stored[0] != version:
                raise StaleRoomVersion(room_id, version)
            del self._rooms[room_id]

    def playing_room_ids(self):
        with self._lock:
            snapshots = list(self._rooms.items())
        return [room_id for room_id, (_, state) in snapshots if json.loads(state)['status'] == PLAYING]

    def __len__(self):
        return len(self._rooms)


def surface_io_errors(func):
    """Roll back and re-raise database outages as ``RoomStoreUnavailable``."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except OperationalError as exc:
            db.session.rollback()
            raise RoomStoreUnavailable(f"Room store unavailable: {exc.orig or exc}") from exc
    return wrapper


class SqlRoomStore(RoomStore):
    """Durable store: one ``room`` row per room, snapshot in a text column."""

    @surface_io_errors
    def get(self, room_id):
        record = db.session.get(RoomRecord, room_id, populate_existing=True)
        if record is None:
            return None
        return Room.from_dict(json.loads(record.state), version=record.version)

    @surface_io_errors
    def save(self, room):
        state = room.to_dict()
        state['version'] = room.version + 1
        payload = json.dumps(state)

        if room.version == 0:
            try:
                db.session.execute(RoomRecord.__table__.insert().values(
                    id=room.id, state=payload, version=1, updated_at=datetime.now(timezone.utc),
                ))
                db.session.commit()
            except IntegrityError as exc:
                db.session.rollback()
                raise StaleRoomVersion(room.id, room.version) from exc
            room.version = 1
            return

        updated = RoomRecord.query.filter_by(id=room.id, version=room.version).update(
            {
                'state': payload,
                'version': room.version + 1,
                'updated_at': datetime.now(timezone.utc),
            },
            synchronize_session=False,
        )
        if updated != 1:
            db.session.rollback()
            raise StaleRoomVersion(room.id, room.version)
        db.session.commit()
        room.version += 1

    @surface_io_errors
    def delete(self, room_id, version=None):
        query = RoomRecord.query.filter_by(id=room_id)
        if version is not None:
            query = query.filter_by(version=version)
        deleted = query.delete(synchronize_session=False)
        if version is not None and deleted != 1 and db.session.get(RoomRecord, room_id) is not None:
            db.session.rollback()
            raise StaleRoomVersion(room_id, version)
        db.session.commit()

    @surface_io_errors
    def playing_room_ids(self):
        records = RoomRecord.query.order_by(RoomRecord.id).all()
        return [r.id for r in records if json.loads(r.state)['status'] == PLAYING]


def build_room_store(kind):
    if kind == 'memory':
        return MemoryRoomStore()
    if kind == 'sql':
        return SqlRoomStore()
    raise ValueError(f"Unknown ROOM_STORE {kind!r}")
