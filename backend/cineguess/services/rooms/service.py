import time

from flask import current_app

from cineguess.exceptions import InvalidAction, RoomConflict, RoomNotFound, StaleRoomVersion

from . import actions, timing
from .state import FINISHED, PLAYING, Player


def now_ms():
    return int(time.time() * 1000)


class RoomService:
    """Loads, mutates and persists rooms.

    Every write is read-modify-write of a full snapshot with compare-and-swap
    on the snapshot version. A stale write is retried from a fresh read up to
    ``max_retries`` times, then reported as ``RoomConflict``.
    """

    def __init__(self, store, catalog, clock, publisher=None, round_seconds=10,
                 movies_per_room=10, max_retries=3, now=None):
        self.store = store
        self.catalog = catalog
        self.clock = clock
        self.publisher = publisher
        self.round_seconds = round_seconds
        self.movies_per_room = movies_per_room
        self.max_retries = max(1, max_retries)
        self.now = now or now_ms

    # ---- reads ----

    def get(self, room_id):
        room = self._load(room_id)
        if room is None:
            raise RoomNotFound(room_id)
        return room

    def _load(self, room_id):
        """Read a room and let the clock catch it up, saving any progress."""
        for _ in range(self.max_retries):
            room = self.store.get(room_id)
            if room is None:
                return None
            before = (room.status, room.current_round_index)
            if not self.clock.catch_up(room, self.now()):
                return room
            try:
                self.store.save(room)
            except StaleRoomVersion:
                # Another request already saved this progress
                continue
            self._log_progress(room, before)
            self._publish(room)
            return room
        raise RoomConflict(f"Room {room_id} kept changing while being read")

    # ---- actions ----

    def join(self, room_id, player_id, username):
        if not player_id or not str(username or '').strip():
            raise InvalidAction('player id and username are required')
        for attempt in range(1, self.max_retries + 1):
            room = self._load(room_id)
            if room is None:
                movies = self.catalog.sample(self.movies_per_room)
                host = Player(id=player_id, username=actions.clean_username(username))
                try:
                    room = self.store.create(room_id, host, movies, self.round_seconds)
                except StaleRoomVersion:
                    continue
                current_app.logger.info(f"[room-create] room={room_id} host={player_id} movies={len(movies)}")
                self._publish(room)
                return room
            if not actions.join(room, player_id, username):
                return room
            try:
                self.store.save(room)
            except StaleRoomVersion:
                self._log_conflict(room_id, attempt)
                continue
            current_app.logger.info(f"[room-join] room={room_id} player={player_id} players={len(room.players)}")
            self._publish(room)
            return room
        raise RoomConflict(f"Could not join room {room_id}, retry")

    def ready(self, room_id, player_id):
        return self._mutate(
            room_id, lambda room: actions.ready(room, player_id, self.now(), self.round_seconds)
        )

    def rename(self, room_id, player_id, username):
        return self._mutate(room_id, lambda room: actions.rename(room, player_id, username))

    def submit_answer(self, room_id, player_id, movie_id=None, is_correct=None, title=None):
        return self._mutate(
            room_id,
            lambda room: actions.submit_answer(
                room, player_id, movie_id=movie_id, is_correct=is_correct, title=title
            ),
        )

    def exit(self, room_id, player_id):
        """Remove a player. Returns None when that emptied and deleted the room."""
        room = self._mutate(room_id, lambda room: actions.exit_room(room, player_id))
        return room if room.players else None

    def apply(self, room_id, action_type, player_id, payload=None):
        payload = payload or {}
        if action_type == actions.READY:
            return self.ready(room_id, player_id)
        if action_type == actions.RENAME:
            return self.rename(room_id, player_id, payload.get('username'))
        if action_type == actions.SUBMIT_ANSWER:
            return self.submit_answer(
                room_id, player_id,
                movie_id=payload.get('movieId'),
                is_correct=payload.get('isCorrect'),
                title=payload.get('title'),
            )
        if action_type == actions.EXIT:
            return self.exit(room_id, player_id)
        raise InvalidAction(f"Unknown action type {action_type!r}")

    def tick(self, room_id):
        """Advance an actively ticking room by one second.

        Returns the room, or None once it no longer exists.
        """
        for attempt in range(1, self.max_retries + 1):
            room = self.store.get(room_id)
            if room is None:
                return None
            before = (room.status, room.current_round_index)
            if not timing.tick(room, self.now(), self.round_seconds):
                return room
            try:
                self.store.save(room)
            except StaleRoomVersion:
                self._log_conflict(room_id, attempt)
                continue
            self._log_progress(room, before)
            self._publish(room)
            return room
        raise RoomConflict(f"Room {room_id} kept changing during tick")

    def resume_playing(self):
        """Hand every stored ``playing`` room back to the clock after a restart."""
        room_ids = self.store.playing_room_ids()
        for room_id in room_ids:
            self.clock.round_started(room_id)
        if room_ids:
            current_app.logger.info(f"[room-resume] rooms={len(room_ids)} clock={self.clock.name}")
        return room_ids

    def shutdown(self):
        self.clock.shutdown()

    # ---- internals ----

    def _mutate(self, room_id, mutator):
        for attempt in range(1, self.max_retries + 1):
            room = self._load(room_id)
            if room is None:
                raise RoomNotFound(room_id)
            status_before = room.status
            if not mutator(room):
                return room
            try:
                if room.players:
                    self.store.save(room)
                else:
                    self.store.delete(room.id, version=room.version)
            except StaleRoomVersion:
                self._log_conflict(room_id, attempt)
                continue
            self._after_write(room, status_before)
            return room
        raise RoomConflict(f"Room {room_id} was modified concurrently, retry")

    def _after_write(self, room, status_before):
        if not room.players:
            current_app.logger.info(f"[room-delete] room={room.id} last player left")
            self.clock.room_closed(room.id)
            return
        if status_before != PLAYING and room.status == PLAYING:
            current_app.logger.info(f"[room-start] room={room.id} players={len(room.players)} clock={self.clock.name}")
            self.clock.round_started(room.id)
        self._publish(room)

    def _log_progress(self, room, before):
        status_before, index_before = before
        if room.status == FINISHED and status_before != FINISHED:
            current_app.logger.info(f"[room-finish] room={room.id} rounds={len(room.movies)}")
        elif room.current_round_index != index_before:
            current_app.logger.info(
                f"[room-advance] room={room.id} round {index_before} -> {room.current_round_index}"
            )

    def _log_conflict(self, room_id, attempt):
        current_app.logger.info(f"[room-conflict] room={room_id} attempt={attempt}/{self.max_retries}")

    def _publish(self, room):
        if self.publisher is not None:
            self.publisher.publish(room)
