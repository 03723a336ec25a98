from __future__ import annotations

import logging
import random
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from ..config import Config
from ..realtime import events
from . import timer
from .categories import build_characters, pick_category
from .errors import GameError
from .models import Effect, Outbound, Player, Room, Scheduled
from .registry import RoomRegistry
from .scoring import (
    apply_chooser_round_adjustments,
    make_leaderboard,
    player_public_stats,
    record_correct_guess,
)
from .turns import advance_turn, mark_turn_start, reset_round_tracking

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 16


def room_public_state(room: Room) -> dict:
    # The secret character never leaves the server.
    return {
        "code": room.code,
        "status": room.status,
        "currentRound": room.current_round,
        "totalRounds": room.total_rounds,
        "currentSet": room.current_set,
        "totalSets": room.total_sets,
        "players": [
            {"id": p.id, "name": p.name, "isHost": p.is_host, **player_public_stats(room, p.id)}
            for p in room.players
        ],
        "chooserId": room.chooser_id,
        "turnId": room.turn_id,
        "roundPhase": room.round_phase,
        "timeLeft": room.time_left,
        "category": room.category,
    }


def _clean_name(raw: Any, default: str) -> str:
    name = str(raw or "").strip()
    if not name:
        return default
    if len(name) > MAX_NAME_LENGTH:
        raise GameError("Invalid name.")
    # Avoid obvious HTML/script injection and control characters.
    if "<" in name or ">" in name or any(ord(ch) < 32 for ch in name):
        raise GameError("Invalid name.")
    return name


def _coerce_total_sets(raw: Any) -> int:
    try:
        total_sets = int(raw or 1)
    except (TypeError, ValueError):
        total_sets = 1
    return max(1, total_sets)


def normalize_code(raw: Any) -> str:
    return str(raw or "").strip().upper()


class GameService:
    """Per-room game state machine.

    Every command runs under the room's lock and returns the effects it
    produced (events to emit, tasks to schedule); the caller dispatches them.
    """

    def __init__(
        self,
        registry: RoomRegistry | None = None,
        *,
        round_duration_sec: int = Config.ROUND_DURATION_SEC,
        next_chooser_delay_sec: float = Config.NEXT_CHOOSER_DELAY_SEC,
        characters_per_set: int = Config.CHARACTERS_PER_SET,
        min_players: int = Config.MIN_PLAYERS,
        rng: random.Random | None = None,
    ):
        self._rng = rng or random.Random()
        self.registry = registry or RoomRegistry(rng=self._rng)
        self.round_duration_sec = round_duration_sec
        self.next_chooser_delay_sec = next_chooser_delay_sec
        self.characters_per_set = characters_per_set
        self.min_players = min_players

    @classmethod
    def from_config(cls, config: Any, rng: random.Random | None = None) -> "GameService":
        registry = RoomRegistry(code_length=int(config.get("ROOM_CODE_LENGTH", 6)), rng=rng)
        return cls(
            registry,
            round_duration_sec=int(config.get("ROUND_DURATION_SEC", 60)),
            next_chooser_delay_sec=float(config.get("NEXT_CHOOSER_DELAY_SEC", 3)),
            characters_per_set=int(config.get("CHARACTERS_PER_SET", 20)),
            min_players=int(config.get("MIN_PLAYERS", 2)),
            rng=rng,
        )

    @contextmanager
    def _locked(self, code: str) -> Iterator[Room | None]:
        room = self.registry.get(code)
        if room is None:
            yield None
            return
        with room.lock:
            # A departure may have destroyed the room while we waited.
            if self.registry.get(code) is not room:
                yield None
            else:
                yield room

    @contextmanager
    def holding(self, code: Any) -> Iterator[None]:
        """Hold the room's lock across a command and the emission of its effects.

        The lock is reentrant, so the command can take it again. Keeping it
        until the effects are sent makes clients see events in the same order
        the room changed.
        """
        room = self.registry.get(normalize_code(code))
        if room is None:
            yield
            return
        with room.lock:
            yield

    # ---- outbound helpers ----

    @staticmethod
    def _system(room: Room, text: str, to: str | None = None) -> Outbound:
        return Outbound(events.SYSTEM_MESSAGE, {"text": text}, to or room.code)

    @staticmethod
    def _room_update(room: Room) -> Outbound:
        return Outbound(events.ROOM_UPDATE, {"room": room_public_state(room)}, room.code)

    def _round_over(self, room: Room, current_round: int, current_set: int) -> Outbound:
        return Outbound(
            events.ROUND_OVER,
            {
                "leaderboard": make_leaderboard(room),
                "currentRound": current_round,
                "totalRounds": room.total_rounds,
                "currentSet": current_set,
                "totalSets": room.total_sets,
            },
            room.code,
        )

    # ---- lobby ----

    def create_room(self, sid: str, name: Any = "", total_sets: Any = 1) -> tuple[Room, list[Effect]]:
        player_name = _clean_name(name, default="Host")
        room = self.registry.create(total_sets=_coerce_total_sets(total_sets))
        with room.lock:
            self._add_player(room, sid, player_name, is_host=True)
            state = room_public_state(room)
            return room, [
                Outbound(events.ROOM_JOINED, {"room": state}, sid),
                Outbound(events.ROOM_UPDATE, {"room": state}, room.code),
            ]

    def join_room(self, sid: str, name: Any, code: Any) -> tuple[Room, list[Effect]]:
        with self._locked(normalize_code(code)) as room:
            if room is None:
                raise GameError("Room not found.")
            if room.status != "waiting":
                raise GameError("Game already started.")
            player_name = _clean_name(name, default="Player")

            if room.get_player(sid) is None:
                self._add_player(room, sid, player_name, is_host=False)
            state = room_public_state(room)
            return room, [
                Outbound(events.ROOM_JOINED, {"room": state}, sid),
                Outbound(events.ROOM_UPDATE, {"room": state}, room.code),
            ]

    def _add_player(self, room: Room, sid: str, name: str, is_host: bool) -> Player:
        player = Player(id=sid, name=name, is_host=is_host)
        room.players.append(player)
        room.record_join(sid)
        room.ensure_stats(sid).reset()
        return player

    def start_game(self, sid: str, code: Any) -> list[Effect]:
        with self._locked(normalize_code(code)) as room:
            if room is None or room.get_player(sid) is None:
                return []
            if room.status != "waiting":
                raise GameError("Game already started.")
            if len(room.players) < self.min_players:
                raise GameError(f"Need at least {self.min_players} players.")

            # One chooser turn per player per set.
            room.total_rounds = len(room.players)
            logger.info("room %s: game starting with %d players", room.code, room.total_rounds)

            out: list[Effect] = [self._system(room, "🚀 Game starting!")]
            out += self._prepare_new_set(room)
            out += self._assign_next_chooser(room)
            return out

    def play_again(self, sid: str, code: Any) -> list[Effect]:
        with self._locked(normalize_code(code)) as room:
            if room is None:
                return []
            player = room.get_player(sid)
            if player is None:
                return []
            if not player.is_host:
                raise GameError("Only the host can start a new game.")
            if room.status != "over":
                raise GameError("Game is still in progress.")
            if len(room.players) < self.min_players:
                raise GameError(f"Need at least {self.min_players} players to start a new game.")

            self._reset_for_play_again(room)
            logger.info("room %s: play again", room.code)

            out: list[Effect] = [
                Outbound(events.PLAY_AGAIN_READY, {"room": room_public_state(room)}, room.code),
                self._system(room, "🔁 A new game is starting!"),
            ]
            out += self._prepare_new_set(room)
            out += self._assign_next_chooser(room)
            return out

    def _reset_for_play_again(self, room: Room) -> None:
        timer.stop_round_timer(room)
        room.pause_token += 1
        room.status = "waiting"
        room.current_round = 1
        room.current_set = 1
        room.total_rounds = len(room.players)
        room.chooser_id = None
        room.turn_id = None
        room.secret_character_id = None
        room.has_chosen = set()
        room.correct_guess_order = []
        room.guessed_correct = set()
        room.active_order = []
        room.round_phase = "awaitingQuestion"
        room.time_left = 0
        room.category = None
        room.characters = []
        reset_round_tracking(room)
        room.stats = {}
        for p in room.players:
            room.ensure_stats(p.id)

    # ---- sets and rounds ----

    def _prepare_new_set(self, room: Room) -> list[Effect]:
        room.category = pick_category(self._rng)
        room.characters = build_characters(room.category, self.characters_per_set)
        room.secret_character_id = None
        reset_round_tracking(room)
        return [
            Outbound(
                events.NEW_SET,
                {
                    "category": room.category,
                    "characters": room.characters,
                    "room": room_public_state(room),
                },
                room.code,
            )
        ]

    def _assign_next_chooser(self, room: Room) -> list[Effect]:
        remaining = [p for p in room.players if p.id not in room.has_chosen]
        if not remaining:
            return self._end_set(room)

        chooser = remaining[0]
        room.chooser_id = chooser.id
        room.status = "choosing"
        room.turn_id = None
        room.secret_character_id = None
        room.correct_guess_order = []
        room.guessed_correct = set()
        reset_round_tracking(room)
        # Fixed rotation among the guessers for the whole round.
        room.active_order = [p.id for p in room.players if p.id != chooser.id]

        return [
            self._room_update(room),
            self._system(room, f"{chooser.name} is choosing a secret character..."),
            Outbound(
                events.CHOOSER_ASSIGNED,
                {"roomCode": room.code, "category": room.category, "characters": room.characters},
                chooser.id,
            ),
        ]

    def _schedule_next_chooser(self, room: Room) -> Scheduled:
        room.pause_token += 1
        return Scheduled("next_chooser", room.code, room.pause_token, self.next_chooser_delay_sec)

    def resume_after_pause(self, code: str, token: int) -> list[Effect]:
        """Run the delayed next-chooser transition if it is still wanted."""
        with self._locked(code) as room:
            if room is None or room.pause_token != token or room.status == "over":
                return []
            return self._assign_next_chooser(room)

    def _finish_round(self, room: Room) -> list[Effect]:
        timer.stop_round_timer(room)
        room.turn_id = None
        room.round_phase = "betweenRounds"
        if room.chooser_id:
            room.has_chosen.add(room.chooser_id)

        out: list[Effect] = []
        adjustment = apply_chooser_round_adjustments(room)
        chooser_name = room.player_name(room.chooser_id)
        if adjustment > 0:
            out.append(self._system(room, f"🎁 {chooser_name} receives a {adjustment} pt pity bonus."))
        elif adjustment < 0:
            out.append(self._system(room, f"⚖️ {chooser_name} loses {abs(adjustment)} pts (too easy!)."))

        room.current_round = len(room.has_chosen)
        logger.info(
            "room %s: round %d/%d of set %d finished",
            room.code,
            room.current_round,
            room.total_rounds,
            room.current_set,
        )

        out.append(self._room_update(room))
        out.append(self._round_over(room, room.current_round, room.current_set))
        out.append(self._schedule_next_chooser(room))
        return out

    def _end_set(self, room: Room) -> list[Effect]:
        room.has_chosen = set()
        room.current_round = 1
        finished_set = room.current_set
        room.current_set += 1
        logger.info("room %s: set %d/%d finished", room.code, finished_set, room.total_sets)

        out: list[Effect] = [self._round_over(room, room.total_rounds, finished_set)]
        if room.current_set > room.total_sets:
            return out + self._end_game(room)

        out.append(self._system(room, f"📦 Starting Set {room.current_set}/{room.total_sets}..."))
        out += self._prepare_new_set(room)
        out.append(self._schedule_next_chooser(room))
        return out

    def _end_game(self, room: Room) -> list[Effect]:
        timer.stop_round_timer(room)
        room.status = "over"
        logger.info("room %s: game over", room.code)
        return [Outbound(events.GAME_OVER, {"leaderboard": make_leaderboard(room)}, room.code)]

    # ---- round play ----

    def choose_character(self, sid: str, code: Any, character_id: Any) -> list[Effect]:
        with self._locked(normalize_code(code)) as room:
            if room is None or room.chooser_id != sid or room.status != "choosing":
                return []
            if character_id not in {c["id"] for c in room.characters}:
                return []

            room.secret_character_id = character_id
            room.status = "playing"
            room.round_phase = "awaitingQuestion"
            room.guessed_correct = set()
            room.correct_guess_order = []

            first_id = room.active_order[0] if room.active_order else None
            room.turn_id = first_id
            mark_turn_start(room, first_id, advanced=True)

            out: list[Effect] = [
                Outbound(
                    events.GAME_STARTED,
                    {
                        "room": room_public_state(room),
                        "category": room.category,
                        "characters": room.characters,
                    },
                    room.code,
                ),
                self._system(room, f"{room.player_name(room.chooser_id)} has picked a secret character!"),
            ]
            if first_id is None:
                return out + self._finish_round(room)
            return out + timer.start_round_timer(room, self.round_duration_sec)

    def ask_question(self, sid: str, code: Any, question: Any) -> list[Effect]:
        with self._locked(normalize_code(code)) as room:
            if room is None or not room.round_live:
                return []
            if room.turn_id != sid or room.round_phase != "awaitingQuestion":
                return []
            text = str(question or "").strip()
            if not text or not room.chooser_id:
                return []

            room.round_phase = "awaitingAnswer"
            return [
                Outbound(events.CHAT_MESSAGE, {"from": sid, "text": text}, room.code),
                Outbound(events.AWAIT_ANSWER, {"from": sid, "question": text}, room.chooser_id),
            ]

    def answer_question(self, sid: str, code: Any, answer: Any) -> list[Effect]:
        with self._locked(normalize_code(code)) as room:
            if room is None or not room.round_live:
                return []
            if room.chooser_id != sid or room.round_phase != "awaitingAnswer" or not room.turn_id:
                return []

            is_yes = answer is True or str(answer).strip().lower() == "yes"
            text = "Yes ✅" if is_yes else "No ❌"
            room.round_phase = "awaitingDecision"
            return [
                Outbound(events.CHAT_MESSAGE, {"from": sid, "text": text}, room.code),
                Outbound(events.DECISION_PHASE, {"answer": text}, room.turn_id),
            ]

    def make_guess(self, sid: str, code: Any, character_id: Any) -> list[Effect]:
        with self._locked(normalize_code(code)) as room:
            if room is None or not room.round_live:
                return []
            if room.turn_id != sid or not room.secret_character_id:
                return []

            if character_id == room.secret_character_id:
                return self._award_points(room, sid)

            out: list[Effect] = [self._system(room, "❌ Wrong guess!", to=sid)]
            return out + self._advance_turn(room, force=True)

    def pass_turn(self, sid: str, code: Any) -> list[Effect]:
        with self._locked(normalize_code(code)) as room:
            if room is None or not room.round_live or room.turn_id != sid:
                return []
            return self._pass(room)

    def _pass(self, room: Room) -> list[Effect]:
        out: list[Effect] = [self._system(room, f"⏩ {room.player_name(room.turn_id)} passed their turn.")]
        return out + self._advance_turn(room, force=True)

    def _advance_turn(self, room: Room, force: bool) -> list[Effect]:
        if not advance_turn(room, force=force):
            return self._finish_round(room)

        out = timer.start_round_timer(room, self.round_duration_sec)
        out.append(self._room_update(room))
        out.append(self._system(room, f"👉 {room.player_name(room.turn_id)}'s turn!"))
        return out

    def _award_points(self, room: Room, player_id: str) -> list[Effect]:
        result = record_correct_guess(room, player_id)
        if result is None:
            return []

        attempt, points, bonus = result
        out: list[Effect] = [
            self._system(
                room,
                f"✅ {room.player_name(player_id)} guessed correctly on turn {attempt} and earned {points} pts!",
            )
        ]
        if bonus > 0:
            out.append(self._system(room, f"🎯 {room.player_name(room.chooser_id)} gains {bonus} bonus pts as chooser."))

        if len(room.guessed_correct) >= room.guesser_count():
            out.append(self._system(room, "🏁 Everyone guessed correctly!"))
            return out + self._finish_round(room)
        return out + self._advance_turn(room, force=True)

    # ---- round timer ----

    def timer_running(self, code: str, token: int) -> bool:
        with self._locked(code) as room:
            return room is not None and timer.timer_is_current(room, token)

    def tick_timer(self, code: str, token: int) -> list[Effect]:
        with self._locked(code) as room:
            if room is None:
                return []
            out, expired = timer.tick(room, token)
            if not expired:
                return out

            logger.info("room %s: turn timer expired for %s", room.code, room.turn_id)
            out.append(self._system(room, "⏱️ Time’s up! Auto-pass."))
            if room.round_live:
                out += self._pass(room)
            return out

    # ---- departures ----

    def leave_room(self, sid: str, code: Any) -> list[Effect]:
        with self._locked(normalize_code(code)) as room:
            if room is None:
                return []
            return self._handle_departure(room, sid)

    def disconnect(self, sid: str, dispatch: Callable[[list[Effect]], None] | None = None) -> list[Effect]:
        """Run the departure in every room holding ``sid``.

        With ``dispatch``, each room's effects are handed to it before that
        room's lock is released, and nothing is returned.
        """
        out: list[Effect] = []
        for room in self.registry.rooms_for_player(sid):
            with self._locked(room.code) as locked_room:
                if locked_room is None:
                    continue
                effects = self._handle_departure(locked_room, sid)
                if dispatch is None:
                    out += effects
                else:
                    dispatch(effects)
        return out

    def _remove_player(self, room: Room, sid: str) -> Player | None:
        player = room.get_player(sid)
        if player is None:
            return None

        room.players.remove(player)
        room.stats.pop(sid, None)
        room.round_turn_counts.pop(sid, None)
        room.join_order.pop(sid, None)
        room.active_order = [pid for pid in room.active_order if pid != sid]
        room.guessed_correct.discard(sid)

        if player.is_host and room.players:
            room.players[0].is_host = True
        return player

    def _handle_departure(self, room: Room, sid: str) -> list[Effect]:
        was_chooser = room.chooser_id == sid
        was_turn_holder = room.turn_id == sid
        live = room.round_live
        chooser_picking = room.status == "choosing"

        player = self._remove_player(room, sid)
        if player is None:
            return []

        if not room.players:
            timer.stop_round_timer(room)
            room.pause_token += 1
            self.registry.delete(room.code)
            return []

        if was_chooser and (live or chooser_picking):
            return self._cancel_round(room, sid, "⚠️ The chooser left the game. This round has been cancelled.")

        if len(room.players) == 1 and room.chooser_id == room.players[0].id and live:
            return self._cancel_round(room, sid, "❗ All players left, ending the current round.")

        if was_turn_holder and live:
            out: list[Effect] = [
                self._system(room, f"⏩ {player.name} left during their turn, skipping to the next player.")
            ]
            return out + self._advance_turn(room, force=True)

        if live:
            out = [self._system(room, f"🚪 {player.name} left the game.")]
            total_guessers = room.guesser_count()
            if total_guessers > 0 and len(room.guessed_correct) >= total_guessers:
                return out + self._finish_round(room)
            return out + [self._room_update(room)]

        return [self._room_update(room)]

    def _cancel_round(self, room: Room, departed_id: str, notice: str) -> list[Effect]:
        timer.stop_round_timer(room)
        room.pause_token += 1
        room.secret_character_id = None
        room.guessed_correct = set()
        room.correct_guess_order = []
        reset_round_tracking(room)
        room.turn_id = None
        room.round_phase = "awaitingQuestion"
        room.has_chosen.discard(departed_id)
        logger.info("room %s: round cancelled", room.code)

        out: list[Effect] = [self._system(room, notice)]
        return out + self._assign_next_chooser(room)

    # ---- read side ----

    def snapshot(self, code: Any) -> dict | None:
        with self._locked(normalize_code(code)) as room:
            if room is None:
                return None
            return room_public_state(room)
