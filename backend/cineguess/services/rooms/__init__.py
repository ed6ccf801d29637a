"""Multiplayer room engine.

Transport-free room logic shared by the HTTP polling endpoints and the
Socket.IO handlers: snapshot types, stores, round clocks, player actions
and the service tying them together.
"""
from .catalog import MovieCatalog
from .service import RoomService
from .store import build_room_store
from .ticker import RoomTicker
from .timing import DerivedClock, TickingClock


def build_room_service(app, socketio, publisher=None):
    """Assemble the room service selected by ROOM_STORE and ROOM_CLOCK."""
    cfg = app.config
    round_seconds = int(cfg.get('ROUND_SECONDS', 10))
    clock_kind = cfg.get('ROOM_CLOCK', 'derived')
    if clock_kind == 'derived':
        clock = DerivedClock(round_seconds)
        ticker = None
    elif clock_kind == 'ticking':
        ticker = RoomTicker(app, socketio, interval=float(cfg.get('TICK_INTERVAL_SEC', 1)))
        clock = TickingClock(round_seconds, ticker)
    else:
        raise ValueError(f"Unknown ROOM_CLOCK {clock_kind!r}")

    service = RoomService(
        store=build_room_store(cfg.get('ROOM_STORE', 'sql')),
        catalog=MovieCatalog(),
        clock=clock,
        publisher=publisher,
        round_seconds=round_seconds,
        movies_per_room=int(cfg.get('MOVIES_PER_ROOM', 10)),
        max_retries=int(cfg.get('ROOM_SAVE_RETRIES', 3)),
    )
    if ticker is not None:
        ticker.bind(service)
    app.logger.info(
        f"[rooms] store={cfg.get('ROOM_STORE', 'sql')} clock={clock_kind} round={round_seconds}s"
    )
    return service
