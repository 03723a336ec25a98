from __future__ import annotations

from .models import Effect, Outbound, Room, Scheduled
from ..realtime import events

TICK_INTERVAL_SEC = 1.0


def start_round_timer(room: Room, duration_sec: int) -> list[Effect]:
    stop_round_timer(room)
    room.timer_active = True
    room.time_left = duration_sec
    return [
        Outbound(events.ROUND_TIMER, {"timeLeft": room.time_left}, room.code),
        Scheduled("timer", room.code, room.timer_token, TICK_INTERVAL_SEC),
    ]


def stop_round_timer(room: Room) -> None:
    room.timer_token += 1
    room.timer_active = False


def timer_is_current(room: Room, token: int) -> bool:
    return room.timer_active and room.timer_token == token


def tick(room: Room, token: int) -> tuple[list[Effect], bool]:
    """Count one second down. Returns (effects, expired).

    A stale token yields no effects and never expires.
    """
    if not timer_is_current(room, token):
        return [], False

    room.time_left = max(0, room.time_left - 1)
    out: list[Effect] = [Outbound(events.ROUND_TIMER, {"timeLeft": room.time_left}, room.code)]
    if room.time_left > 0:
        return out, False

    stop_round_timer(room)
    return out, True
