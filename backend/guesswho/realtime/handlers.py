from __future__ import annotations

import logging
from typing import Any, Callable

from flask import request
from flask_socketio import SocketIO, emit, join_room, leave_room

from . import events
from ..game.errors import GameError
from ..game.models import Effect, Outbound, Scheduled
from ..game.service import GameService, normalize_code

logger = logging.getLogger(__name__)


def _payload(data: Any) -> dict:
    return data if isinstance(data, dict) else {}


def _reject(exc: GameError) -> dict:
    emit(events.ERROR_MESSAGE, {"text": exc.text})
    return {"ok": False, "error": exc.text}


def register_socketio_handlers(socketio: SocketIO, service: GameService, schedule: bool = True) -> None:
    def _dispatch(effects: list[Effect]) -> None:
        for effect in effects:
            if isinstance(effect, Outbound):
                socketio.emit(effect.event, effect.payload, to=effect.to)
            elif isinstance(effect, Scheduled) and schedule:
                _start_task(effect)

    def _start_task(task: Scheduled) -> None:
        if task.kind == "timer":
            socketio.start_background_task(_run_timer, task.room_code, task.token, task.delay)
        else:
            socketio.start_background_task(_run_pause, task.room_code, task.token, task.delay)

    def _run_timer(room_code: str, token: int, interval: float) -> None:
        logger.debug("[timer-set] room=%s token=%d", room_code, token)
        try:
            while service.timer_running(room_code, token):
                socketio.sleep(interval)
                with service.holding(room_code):
                    _dispatch(service.tick_timer(room_code, token))
        except Exception:
            logger.exception("[timer-error] room=%s token=%d", room_code, token)
        logger.debug("[timer-stop] room=%s token=%d", room_code, token)

    def _run_pause(room_code: str, token: int, delay: float) -> None:
        socketio.sleep(delay)
        try:
            with service.holding(room_code):
                _dispatch(service.resume_after_pause(room_code, token))
        except Exception:
            logger.exception("[pause-error] room=%s token=%d", room_code, token)

    def _run_command(command: Callable[..., list[Effect]], room_code: Any, *args: Any) -> dict:
        try:
            with service.holding(room_code):
                _dispatch(command(request.sid, room_code, *args))
        except GameError as exc:
            return _reject(exc)
        return {"ok": True}

    @socketio.on(events.CREATE_ROOM)
    def create_room(data):
        payload = _payload(data)
        try:
            room, effects = service.create_room(request.sid, payload.get("name"), payload.get("totalSets"))
        except GameError as exc:
            return _reject(exc)

        with room.lock:
            join_room(room.code)
            _dispatch(effects)
        return {"ok": True, "roomCode": room.code}

    @socketio.on(events.JOIN_ROOM)
    def room_join(data):
        payload = _payload(data)
        try:
            with service.holding(payload.get("roomCode")):
                room, effects = service.join_room(request.sid, payload.get("name"), payload.get("roomCode"))
                join_room(room.code)
                _dispatch(effects)
        except GameError as exc:
            return _reject(exc)

        return {"ok": True, "roomCode": room.code}

    @socketio.on(events.LEAVE_ROOM)
    def room_leave(data):
        room_code = normalize_code(_payload(data).get("roomCode"))
        if not room_code:
            return {"ok": False, "error": "invalid_room"}

        leave_room(room_code)
        with service.holding(room_code):
            _dispatch(service.leave_room(request.sid, room_code))
        return {"ok": True}

    @socketio.on(events.START_GAME)
    def game_start(data):
        return _run_command(service.start_game, _payload(data).get("roomCode"))

    @socketio.on(events.CHARACTER_CHOSEN)
    def character_chosen(data):
        payload = _payload(data)
        return _run_command(service.choose_character, payload.get("roomCode"), payload.get("characterId"))

    @socketio.on(events.ASK_QUESTION)
    def ask_question(data):
        payload = _payload(data)
        return _run_command(service.ask_question, payload.get("roomCode"), payload.get("question"))

    @socketio.on(events.ANSWER_QUESTION)
    def answer_question(data):
        payload = _payload(data)
        return _run_command(service.answer_question, payload.get("roomCode"), payload.get("answer"))

    @socketio.on(events.MAKE_GUESS)
    def make_guess(data):
        payload = _payload(data)
        return _run_command(service.make_guess, payload.get("roomCode"), payload.get("characterId"))

    @socketio.on(events.PASS_TURN)
    def pass_turn(data):
        return _run_command(service.pass_turn, _payload(data).get("roomCode"))

    @socketio.on(events.PLAY_AGAIN)
    def play_again(data):
        return _run_command(service.play_again, _payload(data).get("roomCode"))

    @socketio.on("disconnect")
    def on_disconnect(*args):
        service.disconnect(request.sid, dispatch=_dispatch)
