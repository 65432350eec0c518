"""Points aggregator — turns a saved squad plus modifiers into a gameweek score.

    final = starters (captain x2, x3 with Triple Captain)
          + bench raw points (only with Bench Boost)
          - transfer points deducted this week

The score is not clamped at zero unless ``scoring_cfg.clamp_negative_scores``
is set.
"""

from __future__ import annotations

import logging
from typing import Mapping

from jpl_fantasy.config import scoring_cfg
from jpl_fantasy.schemas.fantasy_rules import ChipKind, require_gameweek, validate_squad_structure
from jpl_fantasy.schemas.squad import GameweekScore, Squad
from jpl_fantasy.schemas.state import ChipsUsed, Rejection, RejectionCode
from jpl_fantasy.season.chips import active_chip

logger = logging.getLogger(__name__)


def validate_squad_for_scoring(squad: Squad) -> Rejection | None:
    """Reject squads the aggregator would mis-score."""
    captain_flags = sum(1 for p in squad.players if p.is_captain)
    errors = validate_squad_structure(
        player_ids=squad.player_ids,
        starter_ids=[p.player_id for p in squad.starters],
        captain_id=squad.effective_captain_id,
        captain_flags=captain_flags,
    )
    if squad.captain_id and captain_flags == 1:
        flagged = next(p.player_id for p in squad.players if p.is_captain)
        if flagged != squad.captain_id:
            errors.append(f"Captain id {squad.captain_id} does not match flagged captain {flagged}")
    vice = squad.vice_captain_id
    if vice is not None:
        if vice not in squad.player_ids:
            errors.append(f"Vice captain {vice} is not in the squad")
        elif vice == squad.effective_captain_id:
            errors.append("Vice captain must differ from the captain")
    if not errors:
        return None
    return Rejection(
        code=RejectionCode.INCONSISTENT_SQUAD,
        reason="structure",
        message="Squad cannot be scored: " + "; ".join(errors),
        details=errors,
    )


def captain_multiplier(chips: ChipsUsed, gameweek: int) -> int:
    if active_chip(chips, gameweek) is ChipKind.TRIPLE_CAPTAIN:
        return scoring_cfg.triple_captain_multiplier
    return scoring_cfg.captain_multiplier


def aggregate_points(
    squad: Squad,
    player_points: Mapping[str, int],
    chips: ChipsUsed,
    points_deducted: int,
    gameweek: int,
) -> GameweekScore | Rejection:
    """Score *squad* for *gameweek*.

    *player_points* maps player id to raw gameweek points; absent players
    score 0. *points_deducted* is the transfer cost for the gameweek.
    """
    require_gameweek(gameweek)
    rejection = validate_squad_for_scoring(squad)
    if rejection is not None:
        return rejection

    chip = active_chip(chips, gameweek)
    multiplier = captain_multiplier(chips, gameweek)
    captain_id = squad.effective_captain_id
    missing: list[str] = []

    def points_for(player_id: str) -> int:
        if player_id not in player_points:
            logger.debug("GW%d: no points for player %s, scoring 0", gameweek, player_id)
            missing.append(player_id)
            return 0
        return int(player_points[player_id] or 0)

    starting_total = 0
    captain_points = 0
    for player in squad.starters:
        pts = points_for(player.player_id)
        if player.player_id == captain_id:
            captain_points = pts
            pts *= multiplier
        starting_total += pts

    bench_total = sum(points_for(p.player_id) for p in squad.bench)
    bench_counted = chip is ChipKind.BENCH_BOOST

    final_score = starting_total + (bench_total if bench_counted else 0) - points_deducted
    if scoring_cfg.clamp_negative_scores:
        final_score = max(0, final_score)

    if missing:
        logger.info("GW%d: %d squad players had no points data", gameweek, len(missing))

    return GameweekScore(
        gameweek=gameweek,
        starting_total=starting_total,
        bench_total=bench_total,
        bench_counted=bench_counted,
        captain_id=captain_id,
        captain_points=captain_points,
        vice_captain_id=squad.vice_captain_id,
        captain_multiplier=multiplier,
        chip_played=chip,
        points_deducted=points_deducted,
        final_score=final_score,
        missing_player_ids=missing,
    )
