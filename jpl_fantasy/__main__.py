"""Entry point: python -m jpl_fantasy [--host H] [--port P] [--db PATH] [--rollover]"""

import argparse
import os
from pathlib import Path

from jpl_fantasy.logging_config import setup_logging

setup_logging()

from jpl_fantasy.api import create_app
from jpl_fantasy.config import server_cfg

parser = argparse.ArgumentParser(description="Serve the fantasy league transfer and chip API")
parser.add_argument("--host", default=server_cfg.host)
parser.add_argument("--port", type=int, default=server_cfg.port)
parser.add_argument("--db", type=Path, default=None, help="SQLite database file")
parser.add_argument("--rollover", action="store_true",
                    help="Start users into each newly opened gameweek in the background")
args = parser.parse_args()

if args.rollover:
    os.environ["JPL_AUTO_ROLLOVER"] = "1"

app = create_app(db_path=args.db)
app.run(host=args.host, port=args.port, debug=False)
