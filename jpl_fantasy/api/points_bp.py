"""Points blueprint — stored gameweek scores and the weekly results update."""

from flask import Blueprint, jsonify, request

from jpl_fantasy.api.helpers import get_manager, optional_int, require_gameweek, require_user_id

points_bp = Blueprint("points", __name__)


@points_bp.route("/gameweek-points", methods=["GET"])
def api_gameweek_points():
    user_id, err = require_user_id(request.args)
    if err:
        return jsonify(err[0]), err[1]
    gameweek, err = optional_int(request.args, "gameweek")
    if err:
        return jsonify(err[0]), err[1]

    mgr = get_manager()
    result = mgr.get_gameweek_points(user_id, gameweek)
    if "error" in result:
        return jsonify(result), 404
    result["total_points"] = mgr.get_season_total(user_id)["total_points"]
    return jsonify(result)


@points_bp.route("/weekly-update", methods=["POST"])
def api_weekly_update():
    body = request.get_json(silent=True) or {}
    gameweek, err = require_gameweek(body)
    if err:
        return jsonify(err[0]), err[1]

    player_points = body.get("player_points") or {}
    if not isinstance(player_points, dict):
        return jsonify({"error": "player_points must be an object of player_id -> points."}), 400
    try:
        player_points = {str(pid): int(pts) for pid, pts in player_points.items()}
    except (TypeError, ValueError):
        return jsonify({"error": "player_points values must be integers."}), 400

    return jsonify(get_manager().process_gameweek_results(gameweek, player_points))
