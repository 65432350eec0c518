"""Chips blueprint — chip status, activation and post-gameweek deactivation."""

from flask import Blueprint, jsonify, request

from jpl_fantasy.api.helpers import get_manager, require_gameweek, require_user_id, respond

chips_bp = Blueprint("chips", __name__)


@chips_bp.route("", methods=["GET"])
def api_chips():
    user_id, err = require_user_id(request.args)
    if err:
        return jsonify(err[0]), err[1]
    gameweek, err = require_gameweek(request.args)
    if err:
        return jsonify(err[0]), err[1]

    status = get_manager().get_status(user_id, gameweek)
    if "error" in status:
        return jsonify(status), 400
    return jsonify({
        "user_id": user_id,
        "gameweek": gameweek,
        "active_chip": status["active_chip"],
        "chips": status["chips"],
    })


@chips_bp.route("", methods=["POST"])
def api_activate_chip():
    body = request.get_json(silent=True) or {}
    user_id, err = require_user_id(body)
    if err:
        return jsonify(err[0]), err[1]
    gameweek, err = require_gameweek(body)
    if err:
        return jsonify(err[0]), err[1]
    chip = body.get("chip")
    if not chip:
        return jsonify({"error": "chip is required."}), 400

    return respond(get_manager().activate_chip(user_id, str(chip), gameweek))


@chips_bp.route("/deactivate", methods=["POST"])
def api_deactivate_chips():
    body = request.get_json(silent=True) or {}
    user_id, err = require_user_id(body)
    if err:
        return jsonify(err[0]), err[1]
    gameweek, err = require_gameweek(body)
    if err:
        return jsonify(err[0]), err[1]

    result = get_manager().deactivate_chips(user_id, gameweek)
    if "error" in result and "code" not in result:
        return jsonify(result), 404
    return respond(result)
