"""Background scheduler that rolls users into each newly opened gameweek."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from jpl_fantasy.config import scheduler_cfg

logger = logging.getLogger(__name__)

_scheduler_thread: threading.Thread | None = None
_stop_event = threading.Event()


def rollover_tick(manager, last_started: int | None) -> int | None:
    """Start the open gameweek for every user if it has not been started yet.

    Returns the gameweek now considered started (unchanged if nothing was
    open or it was already started).
    """
    gw = manager.oracle.current_open_gameweek()
    if gw is None or gw == last_started:
        return last_started
    result = manager.start_gameweek_for_all(gw)
    for err in result["errors"]:
        logger.warning("GW%d rollover failed for user %s: %s", gw, err["user_id"], err["error"])
    return gw


def start_scheduler(db_path: Path, interval_seconds: int | None = None) -> None:
    """Start the background rollover loop.

    Checks the schedule every *interval_seconds* (default from
    ``scheduler_cfg``). The thread is a daemon so it dies with the process.
    """
    global _scheduler_thread
    if _scheduler_thread and _scheduler_thread.is_alive():
        return  # Already running

    interval = interval_seconds or scheduler_cfg.interval_seconds
    _stop_event.clear()

    def _loop() -> None:
        from jpl_fantasy.season.manager import FantasyManager

        mgr = FantasyManager(db_path=db_path)
        last_started = None
        while not _stop_event.is_set():
            try:
                last_started = rollover_tick(mgr, last_started)
            except Exception:
                logger.exception("Scheduler tick failed")
            _stop_event.wait(interval)

    _scheduler_thread = threading.Thread(
        target=_loop, daemon=True, name="gw-rollover",
    )
    _scheduler_thread.start()
    logger.info("Scheduler started: interval=%ds", interval)


def stop_scheduler() -> None:
    """Stop the background rollover loop."""
    _stop_event.set()
    logger.info("Scheduler stop requested")
