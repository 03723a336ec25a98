"""Points, chooser adjustments and the leaderboard.

Guessers earn fewer points the more attempts they needed; the chooser
earns half of every guesser's points, plus a flat pity bonus when nobody
found the character or minus a flat penalty when everybody did.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal

from .models import Room


TURN_POINT_TABLE = [1000, 800, 600, 400, 300, 200]
TURN_MIN_POINTS = 100
CHOOSER_BONUS_RATIO = 0.5
CHOOSER_PITY_BONUS = 200
CHOOSER_TOO_EASY_PENALTY = 200


def points_for_attempt(attempt: int) -> int:
    if attempt <= 0:
        return TURN_POINT_TABLE[0]
    if attempt <= len(TURN_POINT_TABLE):
        return TURN_POINT_TABLE[attempt - 1]
    deduction = (attempt - len(TURN_POINT_TABLE)) * 100
    return max(TURN_MIN_POINTS, TURN_POINT_TABLE[-1] - deduction)


def chooser_bonus_for(points: int) -> int:
    # Half-up, not Python's banker's rounding.
    return int(Decimal(points * CHOOSER_BONUS_RATIO).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def record_correct_guess(room: Room, player_id: str) -> tuple[int, int, int] | None:
    """Credit a correct guess. Returns (attempt, points, chooser_bonus).

    Returns None and changes nothing if the player already guessed
    correctly this round.
    """
    if player_id in room.guessed_correct:
        return None

    room.guessed_correct.add(player_id)
    room.correct_guess_order.append(player_id)

    attempt = room.round_turn_counts.get(player_id) or 1
    points = points_for_attempt(attempt)

    stats = room.ensure_stats(player_id)
    stats.score += points
    stats.correct_guesses += 1
    stats.total_turn_count += attempt
    if attempt == 1:
        stats.first_turn_wins += 1

    bonus = 0
    if room.chooser_id:
        bonus = chooser_bonus_for(points)
        chooser_stats = room.ensure_stats(room.chooser_id)
        chooser_stats.score += bonus
        chooser_stats.chooser_bonus += bonus

    return attempt, points, bonus


def apply_chooser_round_adjustments(room: Room) -> int:
    """Apply the end-of-round pity bonus or too-easy penalty to the chooser."""
    if not room.chooser_id:
        return 0
    total_guessers = room.guesser_count()
    if total_guessers <= 0:
        return 0

    guessed_count = len(room.guessed_correct)
    if guessed_count == 0:
        adjustment = CHOOSER_PITY_BONUS
    elif guessed_count == total_guessers:
        adjustment = -CHOOSER_TOO_EASY_PENALTY
    else:
        return 0

    room.ensure_stats(room.chooser_id).score += adjustment
    return adjustment


def _rounded_average(value: float | None) -> float | None:
    if value is None:
        return None
    return round(value, 2)


def player_public_stats(room: Room, player_id: str) -> dict:
    stats = room.ensure_stats(player_id)
    return {
        "score": stats.score,
        "correctGuesses": stats.correct_guesses,
        "avgTurn": _rounded_average(stats.average_turn),
        "totalTurnCount": stats.total_turn_count,
        "firstTurnWins": stats.first_turn_wins,
        "chooserBonus": stats.chooser_bonus,
        "joinIndex": room.join_index(player_id),
    }


def leaderboard_key(room: Room, player_id: str) -> tuple:
    stats = room.ensure_stats(player_id)
    average = stats.average_turn
    return (
        -stats.score,
        math.inf if average is None else average,
        -stats.first_turn_wins,
        -stats.chooser_bonus,
        room.join_index(player_id),
    )


def make_leaderboard(room: Room) -> list[dict]:
    ordered = sorted(room.players, key=lambda p: leaderboard_key(room, p.id))
    entries = []
    for p in ordered:
        stats = room.ensure_stats(p.id)
        entries.append(
            {
                "id": p.id,
                "name": p.name,
                "score": stats.score,
                "correctGuesses": stats.correct_guesses,
                "avgTurn": _rounded_average(stats.average_turn),
                "firstTurnWins": stats.first_turn_wins,
                "chooserBonus": stats.chooser_bonus,
            }
        )
    return entries
