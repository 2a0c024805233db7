"""
Runtime configuration for the demo statistics tools.

Every setting can be overridden through the environment.
"""

import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# === LOGGING ===
LOG_LEVEL = os.environ.get("DEMO_STATS_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'

# === RANK DATABASE ===
# Empty string disables rank updates
RANKS_DB_PATH = os.environ.get("DEMO_STATS_RANKS_DB", str(PROJECT_ROOT / "ranks.db"))

# === API ===
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("DEMO_STATS_CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]
UPLOAD_DIR = Path(os.environ.get("DEMO_STATS_UPLOAD_DIR", PROJECT_ROOT / "uploads"))
