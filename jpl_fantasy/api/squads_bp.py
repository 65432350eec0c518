"""Squads blueprint — save and load a user's gameweek squad."""

from flask import Blueprint, jsonify, request

from jpl_fantasy.api.helpers import get_manager, require_gameweek, require_user_id, respond
from jpl_fantasy.schemas.squad import Squad

squads_bp = Blueprint("squads", __name__)


@squads_bp.route("", methods=["GET"])
def api_get_squad():
    user_id, err = require_user_id(request.args)
    if err:
        return jsonify(err[0]), err[1]
    gameweek, err = require_gameweek(request.args)
    if err:
        return jsonify(err[0]), err[1]

    result = get_manager().get_squad(user_id, gameweek)
    if "error" in result:
        return jsonify(result), 404
    return jsonify(result)


@squads_bp.route("", methods=["POST"])
def api_save_squad():
    body = request.get_json(silent=True) or {}
    user_id, err = require_user_id(body)
    if err:
        return jsonify(err[0]), err[1]
    gameweek, err = require_gameweek(body)
    if err:
        return jsonify(err[0]), err[1]
    if not isinstance(body.get("squad"), dict):
        return jsonify({"error": "squad is required."}), 400

    # A malformed squad raises ValidationError, mapped to 400 by the middleware.
    squad = Squad.model_validate(body["squad"])
    return respond(get_manager().save_squad(user_id, gameweek, squad))
