"""
Constant Goal - periodic yes/no check-ins for personal goals

Philosophy:
    A habit is easier to keep when something asks about it at a steady
    cadence. Each goal fires a reminder every few minutes; answers pile up
    into sessions that are bounded by the moment the user pauses the goal.

Components:
    goals/: Goal and response records, session partitioning and analysis,
        scheduling transitions, and the store that owns all mutations
    notify/: Trigger scheduler boundary and the signal dispatcher
    storage/: Whole-collection goal repositories (memory, SQLite)
    service.py: Composition root wiring one of each together
"""

from pathlib import Path

# Path constants
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
ARGS_DIR = PROJECT_ROOT / "args"

# Database paths
DB_PATH = DATA_DIR / "goals.db"

__all__ = [
    "PROJECT_ROOT",
    "DATA_DIR",
    "ARGS_DIR",
    "DB_PATH",
]
