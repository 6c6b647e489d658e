"""
Configuration management for PGC team scoring.
Includes the league's scoring rule tables.
"""

import os
from pathlib import Path
from typing import Dict, Tuple
from dataclasses import dataclass

from dotenv import load_dotenv


# Load environment variables from .env file
load_dotenv()


# Strokes added to par for a WD/DQ golfer's unplayed round
PENALTY_STROKES = 8

# Regular season: a team with fewer active golfers after the cut is CUT
CUT_MIN_GOLFERS = 5

# A selection count this large means every rostered golfer counts
ALL_GOLFERS = 10

# Golfers counted per round, keyed by playoff event (0 = regular season).
# Tuple index is round - 1.
SELECTION_COUNTS: Dict[int, Tuple[int, int, int, int]] = {
    0: (10, 10, 5, 5),
    1: (10, 10, 5, 5),
    2: (5, 5, 5, 5),
    3: (3, 3, 3, 3),
}

# Number of playoff events in a season
PLAYOFF_EVENTS = 3

# Starting-stroke table slots per bracket (leading entries of tier.points)
GOLD_STROKE_SLOTS = 30
SILVER_STROKE_SLOTS = 40

# Final playoff payouts: gold reads payouts[0:], silver reads payouts[75:]
GOLD_PAYOUT_OFFSET = 0
SILVER_PAYOUT_OFFSET = 75

# Decimal places for persisted values
SCORE_PLACES = 1
EARNINGS_PLACES = 2


@dataclass
class Config:
    """Application configuration."""
    # Paths
    data_dir: Path = Path.home() / ".pgc_scoring"
    db_path: Path = Path.home() / ".pgc_scoring" / "pgc.db"

    # Logging
    log_level: str = "INFO"

    # Database settings
    db_timeout_seconds: float = 10.0
    lock_ttl_seconds: int = 300

    def __post_init__(self):
        """Load overrides from environment."""
        data_dir = os.getenv("PGC_DATA_DIR")
        if data_dir:
            self.data_dir = Path(data_dir)
            self.db_path = self.data_dir / "pgc.db"
        db_path = os.getenv("PGC_DB_PATH")
        if db_path:
            self.db_path = Path(db_path)
        self.log_level = os.getenv("PGC_LOG_LEVEL", self.log_level).upper()
        self.db_timeout_seconds = float(os.getenv("PGC_DB_TIMEOUT", self.db_timeout_seconds))
        self.lock_ttl_seconds = int(os.getenv("PGC_LOCK_TTL", self.lock_ttl_seconds))

        # Ensure directories exist
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def validate_config(self) -> list:
        """Return a list of configuration problems (empty when valid)."""
        errors = []
        if self.db_timeout_seconds <= 0:
            errors.append("PGC_DB_TIMEOUT must be positive")
        if self.lock_ttl_seconds <= 0:
            errors.append("PGC_LOCK_TTL must be positive")
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"Unknown PGC_LOG_LEVEL: {self.log_level}")
        return errors


def get_config() -> Config:
    """Get application configuration."""
    return Config()
