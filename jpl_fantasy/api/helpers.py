"""Shared helpers for API blueprints."""

from flask import current_app, jsonify

from jpl_fantasy.schemas.fantasy_rules import TOTAL_GAMEWEEKS


def get_manager():
    """The app's FantasyManager (created by ``create_app``)."""
    return current_app.extensions["fantasy_manager"]


def require_user_id(args_or_body):
    """Extract and validate user_id. Returns (str, None) or (None, error_tuple)."""
    user_id = args_or_body.get("user_id")
    if user_id is None or str(user_id).strip() == "":
        return None, ({"error": "user_id is required."}, 400)
    return str(user_id).strip(), None


def require_gameweek(args_or_body, key="gameweek"):
    """Extract and validate a gameweek number. Returns (int, None) or (None, error_tuple)."""
    value = args_or_body.get(key)
    if value is None or value == "":
        return None, ({"error": f"{key} is required."}, 400)
    if isinstance(value, bool):
        return None, ({"error": f"{key} must be an integer."}, 400)
    try:
        gameweek = int(value)
    except (TypeError, ValueError):
        return None, ({"error": f"{key} must be an integer."}, 400)
    if not 1 <= gameweek <= TOTAL_GAMEWEEKS:
        return None, ({"error": f"{key} must be between 1 and {TOTAL_GAMEWEEKS}."}, 400)
    return gameweek, None


def optional_int(args_or_body, key, default=None):
    """Parse an optional integer field. Returns (int | default, None) or (None, error_tuple)."""
    value = args_or_body.get(key)
    if value is None or value == "":
        return default, None
    try:
        return int(value), None
    except (TypeError, ValueError):
        return None, ({"error": f"{key} must be an integer."}, 400)


def respond(result: dict, status: int = 200):
    """JSON response; service results carrying an ``error`` key become 400s."""
    if "error" in result:
        return jsonify(result), 400
    return jsonify(result), status
