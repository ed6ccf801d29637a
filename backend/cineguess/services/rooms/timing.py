"""Round clocks.

Two interchangeable ways of moving a ``playing`` room through its rounds:

- ``DerivedClock`` recomputes the countdown from ``round_start_time`` every
  time the room is read. No background work; the first read after expiry
  advances the round.
- ``TickingClock`` leaves reads alone and relies on a ``RoomTicker`` loop
  calling :func:`tick` once per second per playing room.

Both advance through :func:`advance_round`, so round length, ordering and
the final ``finished`` transition are identical.
"""
from .state import PLAYING, FINISHED


def advance_round(room, now_ms, round_seconds):
    """Move to the next movie, or finish the room after the last one."""
    room.current_round_index += 1
    if room.current_round_index < len(room.movies):
        room.timer = round_seconds
        room.round_start_time = now_ms
        for player in room.players:
            player.last_answer_correct = None
    else:
        room.current_round_index = len(room.movies)
        room.status = FINISHED
        room.timer = 0


def derive_progress(room, now_ms, round_seconds):
    """Bring ``room.timer`` in line with wall-clock time.

    Advances at most one round per call. Advancing only happens while the
    stored timer is still positive, so repeated reads of an expired round
    do not skip ahead twice. Returns True when the room changed.
    """
    if room.status != PLAYING or room.round_start_time is None:
        return False
    elapsed = (now_ms - room.round_start_time) // 1000
    remaining = max(0, round_seconds - elapsed)
    if remaining == 0 and room.timer > 0:
        advance_round(room, now_ms, round_seconds)
        return True
    if remaining != room.timer:
        room.timer = remaining
        return True
    return False


def tick(room, now_ms, round_seconds):
    """One second of an actively ticking room. Returns True when changed."""
    if room.status != PLAYING:
        return False
    room.timer = max(0, room.timer - 1)
    if room.timer <= 0:
        advance_round(room, now_ms, round_seconds)
    return True


class DerivedClock:
    name = 'derived'

    def __init__(self, round_seconds):
        self.round_seconds = round_seconds

    def catch_up(self, room, now_ms):
        return derive_progress(room, now_ms, self.round_seconds)

    def round_started(self, room_id):
        pass

    def room_closed(self, room_id):
        pass

    def shutdown(self):
        pass


class TickingClock:
    name = 'ticking'

    def __init__(self, round_seconds, ticker):
        self.round_seconds = round_seconds
        self.ticker = ticker

    def catch_up(self, room, now_ms):
        # The ticker owns the countdown; reads never move it
        return False

    def round_started(self, room_id):
        self.ticker.start(room_id)

    def room_closed(self, room_id):
        self.ticker.cancel(room_id)

    def shutdown(self):
        self.ticker.shutdown()
