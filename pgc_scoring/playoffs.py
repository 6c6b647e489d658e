"""
Playoff rules: selection counts, brackets, eligibility, worst-of-day
fallback, starting strokes and carry-in.

A season ends with three playoff events. Event 1 seeds each bracket with
starting strokes from regular-season points; events 2 and 3 carry in the
team's final score from the previous event.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from .aggregates import mean_over_par, mean_raw, mean_thru, mean_today, round_decimal
from .config import (
    ALL_GOLFERS, SELECTION_COUNTS, PLAYOFF_EVENTS,
    GOLD_STROKE_SLOTS, SILVER_STROKE_SLOTS,
)
from .models import Bracket, Golfer, PlayoffContext, Team, Tier, TourCard, Tournament
from .selection import active_golfers, team_golfers, top_n_for_round

logger = logging.getLogger(__name__)

REGULAR_SEASON = 0


@dataclass
class RoundContribution:
    """A team's value for one round."""
    today: Optional[float]
    thru: Optional[float]
    over_par: Optional[float]
    raw: Optional[float] = None
    fallback: bool = False


def is_playoff_tournament(tournament: Tournament) -> bool:
    """Whether the tournament (or its tier) is tagged as a playoff event."""
    return tournament.is_playoff


def selection_count_for(event_index: int, round_number: int) -> int:
    """Golfers whose scores count toward the team for a round (event 0 = regular season)."""
    counts = SELECTION_COUNTS.get(event_index)
    if counts is None:
        raise ValueError(f"Unknown playoff event: {event_index}")
    return counts[round_number - 1]


def team_bracket(team: Team, tour_cards_by_id: Dict[str, TourCard]) -> Optional[Bracket]:
    """Bracket of the team's tour card, None when it isn't in the playoffs."""
    card = tour_cards_by_id.get(team.tour_card_id)
    return card.bracket if card else None


def team_eligible_for_round(team: Team, golfers: List[Golfer], event_index: int, round_number: int) -> bool:
    """A team counts for a round only with enough active golfers to fill the selection."""
    required = selection_count_for(event_index, round_number)
    return len(team.golfer_ids) > 0 and len(active_golfers(team, golfers)) >= required


def round_contribution(
    roster: List[Golfer],
    active: List[Golfer],
    round_number: int,
    live: bool,
    par: int,
    count: int,
) -> RoundContribution:
    """
    Average the counting golfers for a round.

    When every golfer counts the whole roster is used (WD/DQ golfers carry
    penalty strokes); otherwise the best `count` active golfers.
    """
    if count >= ALL_GOLFERS:
        pool = roster
    else:
        pool = top_n_for_round(active, round_number, live, par, count)

    if live:
        today = mean_today(pool)
        return RoundContribution(today=today, thru=mean_thru(pool), over_par=today)

    over_par = mean_over_par(pool, round_number, par)
    return RoundContribution(
        today=over_par,
        thru=18,
        over_par=over_par,
        raw=mean_raw(pool, round_number, par),
    )


def team_daily_contribution(
    team: Team,
    golfers: List[Golfer],
    round_number: int,
    live: bool,
    event_index: int,
    par: int,
) -> Optional[RoundContribution]:
    """Contribution of an eligible playoff team; None when the team is ineligible."""
    if not team_eligible_for_round(team, golfers, event_index, round_number):
        return None
    count = selection_count_for(event_index, round_number)
    return round_contribution(
        team_golfers(team, golfers),
        active_golfers(team, golfers),
        round_number, live, par, count,
    )


def worst_of_day(
    teams: List[Team],
    golfers: List[Golfer],
    tour_cards_by_id: Dict[str, TourCard],
    round_number: int,
    live: bool,
    event_index: int,
    par: int,
) -> Dict[Bracket, RoundContribution]:
    """
    Worst (highest) daily value among eligible teams of each bracket.

    Ineligible teams take this value for the round. A bracket with no
    eligible team falls back to par.
    """
    worst: Dict[Bracket, RoundContribution] = {}
    for team in teams:
        bracket = team_bracket(team, tour_cards_by_id)
        if bracket is None:
            continue
        contrib = team_daily_contribution(team, golfers, round_number, live, event_index, par)
        if contrib is None or contrib.today is None:
            continue
        current = worst.get(bracket)
        if current is None or contrib.today > current.today:
            worst[bracket] = contrib

    table = {}
    for bracket in Bracket:
        value = worst[bracket].today if bracket in worst else 0.0
        thru = worst[bracket].thru if bracket in worst else (None if live else 18)
        table[bracket] = RoundContribution(
            today=value,
            thru=thru,
            over_par=value,
            raw=None if live else par + value,
            fallback=True,
        )
    return table


def starting_strokes(tour_card: TourCard, tour_cards: List[TourCard], tier: Tier,
                     tour_ids: Optional[List[str]] = None) -> float:
    """
    Event 1 starting strokes from regular-season standing within the bracket.

    Cards are ranked by descending season points; the card's index is the
    number of strictly better cards. Tied cards share the average of the
    stroke entries their positions span.
    """
    bracket = tour_card.bracket
    if bracket is None:
        return 0.0

    slots = GOLD_STROKE_SLOTS if bracket is Bracket.GOLD else SILVER_STROKE_SLOTS
    table = list(tier.points[:slots])

    peers = [
        c for c in tour_cards
        if c.bracket is bracket and (not tour_ids or c.tour_id in tour_ids)
    ]
    better = sum(1 for c in peers if c.points > tour_card.points)
    tied = sum(1 for c in peers if c.points == tour_card.points) or 1

    strokes = [table[i] if i < len(table) else 0 for i in range(better, better + tied)]
    value = round_decimal(sum(strokes) / tied)
    logger.debug(
        f"Tour card {tour_card.id} ({bracket.name.lower()}): {better} better, "
        f"{tied} tied, starting strokes {value}"
    )
    return value


def carry_in(team: Team, carry_in_map: Dict[str, float]) -> float:
    """Final score from the previous playoff event, 0 when the card didn't play it."""
    value = carry_in_map.get(team.tour_card_id)
    return value if value is not None else 0.0


def playoff_event_index(tournament: Tournament, playoff_tournaments: List[Tournament]) -> int:
    """
    Which playoff event (1-3) a tournament is, by start date.

    `playoff_tournaments` are the season's playoff events on the same tours.
    A tournament missing from the list is placed after the events that
    started before it.
    """
    ordered = sorted(playoff_tournaments, key=lambda t: (t.start_date, t.id))
    index = next((i for i, t in enumerate(ordered) if t.id == tournament.id), None)
    if index is None:
        index = sum(1 for t in ordered if t.start_date < tournament.start_date)
    return max(1, min(index + 1, PLAYOFF_EVENTS))


def base_offset(
    team: Team,
    tournament: Tournament,
    tour_cards: List[TourCard],
    tour_cards_by_id: Dict[str, TourCard],
    context: Optional[PlayoffContext],
) -> float:
    """Strokes a team starts the event with: 0 in the regular season."""
    if not tournament.is_playoff:
        return 0.0
    context = context or PlayoffContext()
    if context.event_index == 1:
        card = tour_cards_by_id.get(team.tour_card_id)
        if card is None:
            return 0.0
        return starting_strokes(card, tour_cards, tournament.tier, tournament.tour_ids)
    return carry_in(team, context.carry_in)
