"""Flask application factory."""

import os
from pathlib import Path

from flask import Flask


def create_app(db_path: Path | None = None) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    from jpl_fantasy.paths import DB_PATH
    from jpl_fantasy.season.manager import FantasyManager

    db_path = Path(db_path or DB_PATH)
    app.extensions["fantasy_manager"] = FantasyManager(db_path=db_path)

    from jpl_fantasy.api.middleware import register_middleware
    register_middleware(app)

    from jpl_fantasy.api.chips_bp import chips_bp
    from jpl_fantasy.api.gameweeks_bp import gameweeks_bp
    from jpl_fantasy.api.points_bp import points_bp
    from jpl_fantasy.api.squads_bp import squads_bp
    from jpl_fantasy.api.transfers_bp import transfers_bp

    app.register_blueprint(transfers_bp, url_prefix="/api/transfers")
    app.register_blueprint(chips_bp, url_prefix="/api/chips")
    app.register_blueprint(squads_bp, url_prefix="/api/squads")
    app.register_blueprint(gameweeks_bp, url_prefix="/api/gameweeks")
    app.register_blueprint(points_bp, url_prefix="/api")

    # Roll users into each newly opened gameweek in the background.
    if os.environ.get("JPL_AUTO_ROLLOVER") == "1":
        from jpl_fantasy.season.scheduler import start_scheduler

        start_scheduler(db_path)

    return app
