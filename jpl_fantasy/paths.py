"""Filesystem locations: data directory and the SQLite database file.

``JPL_DATA_DIR`` moves the whole data directory; ``JPL_DB_PATH`` points at
a specific database file and wins over both.
"""

import os
import sys
from pathlib import Path

if getattr(sys, "frozen", False):
    BASE_DIR = Path(sys.executable).parent
else:
    BASE_DIR = Path(__file__).resolve().parent.parent

OUTPUT_DIR = Path(os.environ.get("JPL_DATA_DIR", BASE_DIR / "output"))
DB_PATH = Path(os.environ.get("JPL_DB_PATH", OUTPUT_DIR / "fantasy.db"))
