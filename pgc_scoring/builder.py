"""
Team calculation builder.

Computes one TeamResult per team from a tournament snapshot: tee times,
completed-round contributions, the regular-season CUT rule and the
round-by-round score. Positions and prizes are assigned afterwards by
positions.assign_positions_and_prizes.
"""

import logging
from datetime import date, datetime, time, timezone
from typing import Dict, List, Optional, Tuple

from .aggregates import mean_field, round_decimal
from .config import CUT_MIN_GOLFERS, GOLD_STROKE_SLOTS, PLAYOFF_EVENTS, SILVER_PAYOUT_OFFSET
from .errors import InsufficientDataError, TeamScoringError
from .models import (
    Bracket, Golfer, PlayoffContext, Team, TeamResult, TourCard, Tournament,
    ROUND_FIELDS, TEE_TIME_FIELDS,
)
from .positions import parse_position
from .playoffs import (
    REGULAR_SEASON, RoundContribution, base_offset, round_contribution,
    selection_count_for, team_bracket, team_daily_contribution, worst_of_day,
)
from .selection import active_golfers, team_golfers

logger = logging.getLogger(__name__)

# Non-numeric leaderboard positions a feed may report
POSITION_TOKENS = ("CUT", "WD", "DQ", "-")


def check_snapshot(tournament: Optional[Tournament], tour_cards: List[TourCard],
                   context: Optional[PlayoffContext] = None) -> None:
    """
    Raise InsufficientDataError when the snapshot can't be scored.

    Each tier table only has to be as long as the positions read from it:
    regular-season points and payouts must be non-empty, playoff event 1
    needs the gold starting-stroke entries and event 3 needs the payouts of
    every bracket in play.
    """
    if tournament is None:
        raise InsufficientDataError("No current tournament")
    if not tour_cards:
        raise InsufficientDataError(f"No tour cards for season of {tournament.name}")

    tier = tournament.tier
    if not tournament.is_playoff:
        if not tier.points or not tier.payouts:
            raise InsufficientDataError(f"Tier '{tier.name}' has no points/payouts table")
        return

    event_index = (context or PlayoffContext()).event_index
    if not 1 <= event_index <= PLAYOFF_EVENTS:
        raise InsufficientDataError(
            f"{tournament.name}: playoff event {event_index} outside 1..{PLAYOFF_EVENTS}"
        )
    if event_index == 1 and len(tier.points) < GOLD_STROKE_SLOTS:
        raise InsufficientDataError(
            f"Playoff tier '{tier.name}' needs {GOLD_STROKE_SLOTS} starting-stroke entries"
        )
    if event_index == 3:
        has_silver = any(c.bracket is Bracket.SILVER for c in tour_cards)
        needed = SILVER_PAYOUT_OFFSET + 1 if has_silver else 1
        if len(tier.payouts) < needed:
            raise InsufficientDataError(
                f"Playoff tier '{tier.name}' needs {needed} payouts, has {len(tier.payouts)}"
            )


def scoring_round(tournament: Tournament) -> int:
    """
    The round teams are scored at.

    The tournament's current round, clamped so a team is never scored past
    a round no golfer has reported strokes for.
    """
    current = max(1, min(tournament.current_round or 1, 5))
    reported = 0
    for round_number in range(1, 5):
        if any(g.raw_round(round_number) is not None for g in tournament.golfers):
            reported = round_number
    limit = reported + 1
    if current > limit:
        logger.warning(
            f"{tournament.name}: round {current} reported but golfers only have "
            f"strokes through round {reported}; scoring round {limit}"
        )
        return limit
    return current


def _tee_time_key(value: str) -> Optional[datetime]:
    """Comparable form of an ISO datetime or a bare HH:MM tee time."""
    value = value.strip()
    # fromisoformat only accepts a "Z" suffix from Python 3.11
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        try:
            return datetime.combine(date.min, time.fromisoformat(value))
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def earliest_tee_time(golfers: List[Golfer], round_number: int) -> Optional[str]:
    """Earliest reported tee time for a round, as stored on the golfer."""
    best = None
    best_key = None
    for g in golfers:
        value = g.tee_time(round_number)
        if not value:
            continue
        key = _tee_time_key(value)
        if key is None:
            logger.debug(f"Ignoring unparseable tee time {value!r} for golfer {g.api_id}")
            continue
        if best_key is None or key < best_key:
            best, best_key = value, key
    return best


def _readable_position(label: Optional[str]) -> bool:
    if label is None or not label.strip():
        return True
    if label.strip().upper() in POSITION_TOKENS:
        return True
    return parse_position(label) is not None


def check_roster(team: Team, golfers: List[Golfer]) -> None:
    """Raise TeamScoringError when a team's golfer ids or its golfers' positions are malformed."""
    bad_ids = [i for i in team.golfer_ids if isinstance(i, bool) or not isinstance(i, int)]
    if bad_ids:
        raise TeamScoringError(team.id, f"non-integer golfer ids {bad_ids!r}")
    for g in team_golfers(team, golfers):
        if not _readable_position(g.position):
            raise TeamScoringError(team.id, f"golfer {g.api_id} has unparsable position {g.position!r}")


class TeamCalculationBuilder:
    """Builds result rows for every team in a tournament snapshot."""

    def __init__(self, tournament: Tournament, tour_cards: List[TourCard],
                 context: Optional[PlayoffContext] = None):
        self.tournament = tournament
        self.tour_cards = tour_cards
        self.tour_cards_by_id = {c.id: c for c in tour_cards}
        self.is_playoff = tournament.is_playoff
        self.context = context or PlayoffContext()
        self.event_index = self.context.event_index if self.is_playoff else REGULAR_SEASON
        self.par = tournament.par
        self.live = bool(tournament.live_play)
        self.round = scoring_round(tournament)
        self.skipped: List[int] = []
        self._worst: Dict[Tuple[int, bool], Dict[Bracket, RoundContribution]] = {}

    def build(self) -> List[TeamResult]:
        """Compute a result row for each team."""
        results = []
        for team in self.tournament.teams:
            try:
                results.append(self.build_team(team))
            except (TeamScoringError, ValueError) as e:
                logger.warning(f"Skipping team {team.id} in {self.tournament.name}: {e}")
                self.skipped.append(team.id)
                results.append(TeamResult(id=team.id, tour_card_id=team.tour_card_id, round=self.round))
        logger.info(
            f"Built {len(results)} team rows for {self.tournament.name} "
            f"(round {self.round}, {'live' if self.live else 'not live'})"
        )
        return results

    # =========================================================================
    # Per-team calculation
    # =========================================================================

    def build_team(self, team: Team) -> TeamResult:
        check_roster(team, self.tournament.golfers)
        roster = team_golfers(team, self.tournament.golfers)
        active = active_golfers(team, self.tournament.golfers)
        r = self.round

        tee_times = {TEE_TIME_FIELDS[0]: earliest_tee_time(roster, 1),
                     TEE_TIME_FIELDS[1]: earliest_tee_time(roster, 2)}
        if r >= 3:
            tee_times[TEE_TIME_FIELDS[2]] = earliest_tee_time(roster, 3)
        if r >= 4:
            tee_times[TEE_TIME_FIELDS[3]] = earliest_tee_time(roster, 4)

        if not self.is_playoff and r >= 3 and len(active) < CUT_MIN_GOLFERS:
            return self._cut_row(team, roster, active, tee_times)

        base = base_offset(team, self.tournament, self.tour_cards, self.tour_cards_by_id, self.context)

        if self.is_playoff and not roster:
            return self._par_row(team, base, tee_times)

        completed = [self._contribution(team, roster, active, n, live=False) for n in range(1, min(r, 5))]
        raw = {ROUND_FIELDS[i]: round_decimal(c.raw) for i, c in enumerate(completed)}
        completed_total = sum(c.over_par or 0 for c in completed)

        today = thru = score = None
        if r == 5:
            today = completed[-1].over_par
            thru = 18
            score = base + completed_total
        elif self.live:
            current = self._contribution(team, roster, active, r, live=True)
            today = current.today or 0
            thru = current.thru
            if r == 1 and not self.is_playoff:
                score = mean_field(roster, "score")
            else:
                score = base + completed_total + today
        elif r >= 2:
            today = completed[-1].over_par
            thru = 18
            score = base + completed_total

        return TeamResult(
            id=team.id,
            tour_card_id=team.tour_card_id,
            round=r,
            today=round_decimal(today),
            thru=round_decimal(thru),
            score=round_decimal(score),
            **raw,
            **tee_times,
        )

    def _contribution(self, team: Team, roster: List[Golfer], active: List[Golfer],
                      round_number: int, live: bool) -> RoundContribution:
        count = selection_count_for(self.event_index, round_number)
        if not self.is_playoff:
            return round_contribution(roster, active, round_number, live, self.par, count)

        contrib = team_daily_contribution(
            team, self.tournament.golfers, round_number, live, self.event_index, self.par
        )
        if contrib is not None:
            return contrib

        bracket = team_bracket(team, self.tour_cards_by_id)
        if bracket is None:
            return RoundContribution(today=0.0, thru=None if live else 18, over_par=0.0,
                                     raw=None if live else float(self.par), fallback=True)
        logger.debug(f"Team {team.id} ineligible for round {round_number}; using worst of day")
        return self._worst_of_day(round_number, live)[bracket]

    def _worst_of_day(self, round_number: int, live: bool) -> Dict[Bracket, RoundContribution]:
        key = (round_number, live)
        if key not in self._worst:
            self._worst[key] = worst_of_day(
                self.tournament.teams, self.tournament.golfers, self.tour_cards_by_id,
                round_number, live, self.event_index, self.par,
            )
        return self._worst[key]

    def _cut_row(self, team: Team, roster: List[Golfer], active: List[Golfer],
                 tee_times: Dict[str, Optional[str]]) -> TeamResult:
        r1 = self._contribution(team, roster, active, 1, live=False)
        r2 = self._contribution(team, roster, active, 2, live=False)
        return TeamResult(
            id=team.id,
            tour_card_id=team.tour_card_id,
            round=self.round,
            round_one=round_decimal(r1.raw),
            round_two=round_decimal(r2.raw),
            position="CUT",
            past_position="CUT",
            **tee_times,
        )

    def _par_row(self, team: Team, base: float, tee_times: Dict[str, Optional[str]]) -> TeamResult:
        """A playoff team with no resolvable golfers plays every round at par."""
        r = self.round
        rounds = {ROUND_FIELDS[i]: float(self.par) for i in range(min(r, 5) - 1)}
        started = r >= 2 or self.live
        return TeamResult(
            id=team.id,
            tour_card_id=team.tour_card_id,
            round=r,
            today=0.0 if started else None,
            thru=18 if started else None,
            score=round_decimal(base) if started else None,
            **rounds,
            **tee_times,
        )


def build_team_calculations(tournament: Tournament, tour_cards: List[TourCard],
                            context: Optional[PlayoffContext] = None) -> List[TeamResult]:
    """Compute result rows for every team (positions and prizes not yet assigned)."""
    return TeamCalculationBuilder(tournament, tour_cards, context).build()
