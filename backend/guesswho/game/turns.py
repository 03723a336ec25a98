from __future__ import annotations

from .models import Room


def reset_round_tracking(room: Room) -> None:
    room.round_turn_counts = {}
    room.last_turn_id = None


def mark_turn_start(room: Room, player_id: str | None, advanced: bool = False) -> None:
    """Count a new attempt for ``player_id``.

    The counter moves when the turn changes hands or when the turn was
    explicitly advanced (a pass or wrong guess with a single guesser left
    hands the turn straight back to the same player).
    """
    if not player_id:
        return
    room.round_turn_counts.setdefault(player_id, 0)
    if advanced or room.last_turn_id != player_id:
        room.round_turn_counts[player_id] += 1
        room.last_turn_id = player_id


def active_guessers(room: Room) -> list[str]:
    return [pid for pid in room.active_order if pid not in room.guessed_correct]


def advance_turn(room: Room, force: bool = False) -> bool:
    """Move the turn to the next guesser still in play.

    Returns False without touching the room when nobody is left to guess;
    the caller must finish the round in that case.
    """
    active = active_guessers(room)
    if not active:
        return False

    prev_turn_id = room.turn_id
    if room.turn_id not in active:
        room.turn_id = active[0]
    elif force:
        idx = active.index(room.turn_id)
        room.turn_id = active[(idx + 1) % len(active)]

    mark_turn_start(room, room.turn_id, advanced=force or prev_turn_id != room.turn_id)
    room.round_phase = "awaitingQuestion"
    return True
