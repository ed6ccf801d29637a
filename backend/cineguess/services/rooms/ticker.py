import itertools
import threading

from cineguess.exceptions import RoomError

from .state import PLAYING


class RoomTicker:
    """Owns the once-per-second tick loop of every actively ticking room.

    - At most one loop per room; a second ``start`` is skipped
    - A loop ends when its room finishes, disappears, or is cancelled
    - No-ops in TESTING mode unless ENABLE_TICKER_IN_TESTS is set
    """

    def __init__(self, app, socketio, interval=1.0):
        self.app = app
        self.socketio = socketio
        self.interval = interval
        self.service = None
        self._tokens = {}
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def bind(self, service):
        self.service = service

    def is_running(self, room_id):
        return room_id in self._tokens

    def start(self, room_id):
        if self.app.config.get('TESTING') and not self.app.config.get('ENABLE_TICKER_IN_TESTS'):
            return False
        with self._lock:
            if room_id in self._tokens:
                self.app.logger.info(f"[ticker-skip] room={room_id} already ticking")
                return False
            token = next(self._counter)
            self._tokens[room_id] = token
        self.app.logger.info(f"[ticker-start] room={room_id} interval={self.interval}s")
        self.socketio.start_background_task(self.run, room_id, token)
        return True

    def cancel(self, room_id):
        with self._lock:
            token = self._tokens.pop(room_id, None)
        if token is not None:
            self.app.logger.info(f"[ticker-stop] room={room_id} cancelled")

    def shutdown(self):
        with self._lock:
            room_ids = list(self._tokens)
            self._tokens.clear()
        for room_id in room_ids:
            self.app.logger.info(f"[ticker-stop] room={room_id} shutdown")

    def _owns(self, room_id, token):
        return self._tokens.get(room_id) == token

    def run(self, room_id, token):
        """Tick loop body; runs until the room stops playing or the token is revoked."""
        try:
            while self._owns(room_id, token):
                self.socketio.sleep(self.interval)
                if not self._owns(room_id, token):
                    break
                with self.app.app_context():
                    try:
                        room = self.service.tick(room_id)
                    except RoomError as exc:
                        self.app.logger.warning(f"[ticker-error] room={room_id} {exc}")
                        continue
                if room is None or room.status != PLAYING:
                    self.app.logger.info(
                        f"[ticker-stop] room={room_id} status={room.status if room else 'deleted'}"
                    )
                    break
        finally:
            with self._lock:
                if self._tokens.get(room_id) == token:
                    del self._tokens[room_id]
