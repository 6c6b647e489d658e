"""
PGC Team Scoring
Team scores, standings and prizes for a fantasy golf league.
"""

__version__ = "1.0.0"

from .models import (
    Tournament, Course, Tier, Golfer, GolferStatus, Team, TourCard, Bracket,
    PlayoffContext, TeamResult
)
from .errors import ScoringError, InsufficientDataError, TeamScoringError
from .config import get_config
from .builder import TeamCalculationBuilder, build_team_calculations, check_snapshot
from .positions import assign_positions_and_prizes
from .standings import season_standings
from .database import Database, DatabaseError, CycleInProgressError
from .updater import TeamUpdater, UpdateSummary, compute_team_results

__all__ = [
    # Models
    "Tournament", "Course", "Tier", "Golfer", "GolferStatus", "Team", "TourCard",
    "Bracket", "PlayoffContext", "TeamResult",
    # Errors
    "ScoringError", "InsufficientDataError", "TeamScoringError",
    "DatabaseError", "CycleInProgressError",
    # Config
    "get_config",
    # Core
    "TeamCalculationBuilder", "build_team_calculations", "check_snapshot",
    "assign_positions_and_prizes", "season_standings",
    "Database", "TeamUpdater", "UpdateSummary", "compute_team_results",
]
