"""Gameweeks blueprint — the schedule and the per-gameweek rollover."""

from flask import Blueprint, jsonify, request

from jpl_fantasy.api.helpers import get_manager, require_gameweek, respond
from jpl_fantasy.logging_config import get_logger
from jpl_fantasy.schemas.fantasy_rules import TOTAL_GAMEWEEKS

log = get_logger(__name__)

gameweeks_bp = Blueprint("gameweeks", __name__)


@gameweeks_bp.route("", methods=["GET"])
def api_list_gameweeks():
    return jsonify({"gameweeks": get_manager().list_gameweeks()})


@gameweeks_bp.route("", methods=["POST"])
def api_set_gameweek():
    body = request.get_json(silent=True) or {}
    number, err = require_gameweek(body, "number")
    if err:
        return jsonify(err[0]), err[1]
    deadline = body.get("deadline")
    phase = body.get("phase")
    return respond(get_manager().set_gameweek(number, deadline, phase))


@gameweeks_bp.route("/current", methods=["GET"])
def api_current_gameweek():
    return jsonify(get_manager().current_gameweek())


@gameweeks_bp.route("/<int:number>/start", methods=["POST"])
def api_start_gameweek(number: int):
    if not 1 <= number <= TOTAL_GAMEWEEKS:
        return jsonify({"error": f"number must be between 1 and {TOTAL_GAMEWEEKS}."}), 400
    result = get_manager().start_gameweek_for_all(number)
    log.info("Manual rollover to GW%d requested", number)
    return jsonify(result)
