"""
The scoring cycle: load a snapshot, compute every team, write the results.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .builder import TeamCalculationBuilder, check_snapshot
from .database import Database
from .errors import InsufficientDataError
from .models import PlayoffContext, TeamResult, TourCard, Tournament
from .positions import assign_positions_and_prizes
from .standings import season_standings

logger = logging.getLogger(__name__)

UPDATE_TEAMS_JOB = "update-teams"
UPDATE_STANDINGS_JOB = "update-standings"


@dataclass
class UpdateSummary:
    """Outcome of one scoring run."""
    tournament_id: str
    tournament_name: str
    round: int
    live_play: bool
    event_index: Optional[int] = None
    teams_computed: int = 0
    teams_updated: int = 0
    fields_updated: int = 0
    skipped_teams: List[int] = field(default_factory=list)
    duration_seconds: float = 0.0


def compute_team_results(tournament: Tournament, tour_cards: List[TourCard],
                         context: Optional[PlayoffContext] = None) -> List[TeamResult]:
    """Score every team and assign positions and prizes. No I/O."""
    check_snapshot(tournament, tour_cards, context)
    builder = TeamCalculationBuilder(tournament, tour_cards, context)
    return assign_positions_and_prizes(builder.build(), tournament, tour_cards, context)


class TeamUpdater:
    """Runs scoring cycles against the database."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or Database()

    def run(self, now: Optional[datetime] = None) -> UpdateSummary:
        """
        Score the current tournament and persist every team row.

        Raises InsufficientDataError when there is nothing to score and
        CycleInProgressError when another run holds the lock.
        """
        started = time.monotonic()
        with self.db.job_lock(UPDATE_TEAMS_JOB):
            tournament = self.db.load_current_tournament(now)
            if tournament is None:
                raise InsufficientDataError("No current tournament")
            logger.info(
                f"Starting team update for {tournament.name} "
                f"(round {tournament.current_round}, live={tournament.live_play})"
            )

            tour_cards = self.db.load_tour_cards_for_season(tournament.season_id)
            context = self.db.load_playoff_context(tournament)
            check_snapshot(tournament, tour_cards, context)

            builder = TeamCalculationBuilder(tournament, tour_cards, context)
            results = assign_positions_and_prizes(builder.build(), tournament, tour_cards, context)
            teams_updated, fields_updated = self.db.batch_update_teams(results)

        summary = UpdateSummary(
            tournament_id=tournament.id,
            tournament_name=tournament.name,
            round=builder.round,
            live_play=tournament.live_play,
            event_index=context.event_index if context else None,
            teams_computed=len(results),
            teams_updated=teams_updated,
            fields_updated=fields_updated,
            skipped_teams=list(builder.skipped),
            duration_seconds=round(time.monotonic() - started, 3),
        )
        logger.info(
            f"Team update complete for {summary.tournament_name}: "
            f"{summary.teams_updated}/{summary.teams_computed} teams changed "
            f"in {summary.duration_seconds}s"
        )
        return summary

    def update_standings(self, season_id: str) -> List[TourCard]:
        """Recompute season totals and standings positions for a season's tour cards."""
        with self.db.job_lock(UPDATE_STANDINGS_JOB):
            tour_cards = self.db.load_tour_cards_for_season(season_id)
            if not tour_cards:
                raise InsufficientDataError(f"No tour cards for season {season_id}")
            teams = {card.id: self.db.get_teams_for_tour_card(card.id) for card in tour_cards}
            updated = season_standings(tour_cards, teams)
            self.db.save_tour_card_standings(updated)
        logger.info(f"Updated standings for {len(updated)} tour cards in season {season_id}")
        return updated
