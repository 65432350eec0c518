"""Transfers blueprint — make a transfer, preview its cost, list history."""

from flask import Blueprint, jsonify, request

from jpl_fantasy.api.helpers import get_manager, optional_int, require_gameweek, require_user_id, respond
from jpl_fantasy.logging_config import get_logger

log = get_logger(__name__)

transfers_bp = Blueprint("transfers", __name__)


@transfers_bp.route("", methods=["GET"])
def api_transfers():
    user_id, err = require_user_id(request.args)
    if err:
        return jsonify(err[0]), err[1]
    gameweek, err = optional_int(request.args, "gameweek")
    if err:
        return jsonify(err[0]), err[1]

    mgr = get_manager()
    result = mgr.get_transfer_history(user_id, gameweek)
    if gameweek is not None:
        status = mgr.get_status(user_id, gameweek)
        if "error" not in status:
            result["transfer_state"] = status["transfer_state"]
            result["summary"] = status["summary"]
    return jsonify(result)


@transfers_bp.route("", methods=["POST"])
def api_make_transfer():
    body = request.get_json(silent=True) or {}
    user_id, err = require_user_id(body)
    if err:
        return jsonify(err[0]), err[1]
    gameweek, err = require_gameweek(body)
    if err:
        return jsonify(err[0]), err[1]

    player_out_id = body.get("player_out_id")
    player_in_id = body.get("player_in_id")
    if player_out_id in (None, "") or player_in_id in (None, ""):
        return jsonify({"error": "player_out_id and player_in_id are required."}), 400

    result = get_manager().make_transfer(user_id, gameweek, str(player_out_id), str(player_in_id))
    return respond(result)


@transfers_bp.route("/cost", methods=["GET"])
def api_transfer_cost():
    user_id, err = require_user_id(request.args)
    if err:
        return jsonify(err[0]), err[1]
    gameweek, err = require_gameweek(request.args)
    if err:
        return jsonify(err[0]), err[1]
    transfers, err = optional_int(request.args, "transfers", default=1)
    if err:
        return jsonify(err[0]), err[1]

    return respond(get_manager().preview_transfer_cost(user_id, gameweek, transfers))
