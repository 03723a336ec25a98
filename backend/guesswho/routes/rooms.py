from __future__ import annotations

from flask import Blueprint, current_app, jsonify

bp = Blueprint("rooms", __name__)


@bp.get("/rooms/<code>")
def get_room(code: str):
    # Rooms are only created over Socket.IO, since the creator must be a connected player.
    state = current_app.extensions["guesswho"].snapshot(code)
    if state is None:
        return jsonify({"error": "room_not_found"}), 404
    return jsonify(state)
