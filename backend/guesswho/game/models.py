from __future__ import annotations

from dataclasses import dataclass, field
from threading import RLock
from typing import Any, Literal, Union


RoomStatus = Literal["waiting", "choosing", "playing", "over"]
RoundPhase = Literal["awaitingQuestion", "awaitingAnswer", "awaitingDecision", "betweenRounds"]


@dataclass
class Player:
    id: str
    name: str
    is_host: bool = False


@dataclass
class PlayerStats:
    score: int = 0
    correct_guesses: int = 0
    total_turn_count: int = 0
    first_turn_wins: int = 0
    chooser_bonus: int = 0

    def reset(self) -> None:
        self.score = 0
        self.correct_guesses = 0
        self.total_turn_count = 0
        self.first_turn_wins = 0
        self.chooser_bonus = 0

    @property
    def average_turn(self) -> float | None:
        if self.correct_guesses <= 0:
            return None
        return self.total_turn_count / self.correct_guesses


@dataclass
class Room:
    code: str
    status: RoomStatus = "waiting"
    current_round: int = 1
    total_rounds: int = 0
    current_set: int = 1
    total_sets: int = 1
    chooser_id: str | None = None
    turn_id: str | None = None
    round_phase: RoundPhase = "awaitingQuestion"
    secret_character_id: str | None = None
    has_chosen: set[str] = field(default_factory=set)
    active_order: list[str] = field(default_factory=list)
    guessed_correct: set[str] = field(default_factory=set)
    correct_guess_order: list[str] = field(default_factory=list)
    category: str | None = None
    characters: list[dict] = field(default_factory=list)
    time_left: int = 0
    players: list[Player] = field(default_factory=list)
    stats: dict[str, PlayerStats] = field(default_factory=dict)
    # Arrival number per player id; numbers are never reused.
    join_order: dict[str, int] = field(default_factory=dict)
    joins: int = 0
    # Attempt counters for the current round, keyed by player id.
    round_turn_counts: dict[str, int] = field(default_factory=dict)
    last_turn_id: str | None = None
    # Scheduled tasks carry one of these; bumping a token cancels the task.
    timer_token: int = 0
    timer_active: bool = False
    pause_token: int = 0
    lock: RLock = field(default_factory=RLock, repr=False, compare=False)

    def get_player(self, player_id: str | None) -> Player | None:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def player_name(self, player_id: str | None) -> str:
        p = self.get_player(player_id)
        return p.name if p else "Player"

    def ensure_stats(self, player_id: str) -> PlayerStats:
        stats = self.stats.get(player_id)
        if stats is None:
            stats = PlayerStats()
            self.stats[player_id] = stats
        return stats

    def record_join(self, player_id: str) -> int:
        if player_id not in self.join_order:
            self.join_order[player_id] = self.joins
            self.joins += 1
        return self.join_order[player_id]

    def join_index(self, player_id: str) -> int:
        return self.join_order.get(player_id, self.joins)

    def guesser_count(self) -> int:
        return len([p for p in self.players if p.id != self.chooser_id])

    @property
    def round_live(self) -> bool:
        return self.status == "playing" and self.round_phase != "betweenRounds"


@dataclass
class Outbound:
    """A Socket.IO event to emit; ``to`` is a room code or a session id."""

    event: str
    payload: Any
    to: str


@dataclass
class Scheduled:
    """A deferred callback for the room's serialized execution.

    ``kind`` is ``"timer"`` (tick every ``delay`` seconds while the token is
    current) or ``"next_chooser"`` (fire once after ``delay`` seconds).
    """

    kind: Literal["timer", "next_chooser"]
    room_code: str
    token: int
    delay: float


Effect = Union[Outbound, Scheduled]
