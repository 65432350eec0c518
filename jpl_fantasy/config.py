"""Central configuration — every magic number in one place."""

from __future__ import annotations

from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class TransferConfig:
    hit_cost: int = 4                      # Points deducted per paid transfer
    max_banked_transfers: int = 2          # Accumulation cap
    free_transfers_per_gameweek: int = 1
    post_wildcard_free_transfers: int = 1  # Bank after a wildcard gameweek
    # Stored documents from the old app used a large integer for "unlimited".
    legacy_unlimited_threshold: int = 9999


# ---------------------------------------------------------------------------
# Chips
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ChipConfig:
    wildcard1_window: tuple[int, int] = (2, 13)
    wildcard2_window: tuple[int, int] = (14, 27)
    free_hit_first_gameweek: int = 2


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ScoringConfig:
    squad_size: int = 15
    starting_xi: int = 11
    captain_multiplier: int = 2
    triple_captain_multiplier: int = 3
    # Transfer hits can push a gameweek below zero; keep the raw value.
    clamp_negative_scores: bool = False


# ---------------------------------------------------------------------------
# Season structure
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class SeasonConfig:
    total_gameweeks: int = 38
    first_gameweek: int = 1


# ---------------------------------------------------------------------------
# Server / scheduler
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 9874


@dataclass(frozen=True)
class SchedulerConfig:
    interval_seconds: int = 300  # 5 minutes


# ---------------------------------------------------------------------------
# Singleton instances (importable as `from jpl_fantasy.config import transfer_cfg, ...`)
# ---------------------------------------------------------------------------
transfer_cfg = TransferConfig()
chip_cfg = ChipConfig()
scoring_cfg = ScoringConfig()
season_cfg = SeasonConfig()
server_cfg = ServerConfig()
scheduler_cfg = SchedulerConfig()
