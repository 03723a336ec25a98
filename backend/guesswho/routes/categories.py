from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..game.categories import CATEGORIES, build_characters, category_keys

bp = Blueprint("categories", __name__)


@bp.get("/categories")
def get_categories():
    return jsonify({"categories": category_keys()})


@bp.get("/categories/<key>")
def get_category(key: str):
    if key not in CATEGORIES:
        return jsonify({"error": "category_not_found"}), 404

    size = current_app.config.get("CHARACTERS_PER_SET", 20)
    return jsonify({"category": key, "characters": build_characters(key, size)})
