"""
Position and prize assignment.

Teams are ranked within a comparison group (the tour in the regular season,
the bracket in the playoffs). Tied teams share a "T" position and split the
points/payouts of the positions they span.
"""

import logging
from collections import Counter, defaultdict
from dataclasses import replace
from typing import Dict, Hashable, List, Optional, Sequence, Tuple

from .aggregates import round_decimal
from .config import EARNINGS_PLACES, GOLD_PAYOUT_OFFSET, SILVER_PAYOUT_OFFSET
from .models import Bracket, PlayoffContext, TeamResult, TourCard, Tournament

logger = logging.getLogger(__name__)

PAYOUT_OFFSETS = {
    Bracket.GOLD: GOLD_PAYOUT_OFFSET,
    Bracket.SILVER: SILVER_PAYOUT_OFFSET,
}


def format_position(rank: int, tied: bool) -> str:
    """Position label: "T4" for a tie, "4" otherwise."""
    return f"T{rank}" if tied else str(rank)


def parse_position(label: Optional[str]) -> Optional[int]:
    """Numeric rank of a position label, None for CUT/blank/garbled labels."""
    if not label:
        return None
    digits = label.strip().upper().lstrip("T")
    if not digits.isdigit() or int(digits) <= 0:
        return None
    return int(digits)


def rank_labels(entries: Sequence[Tuple[int, float]]) -> Dict[int, str]:
    """
    Tie-aware position labels for (team id, score) pairs, lowest score first.

    A team's rank is 1 + the number of strictly better scores.
    """
    counts = Counter(score for _, score in entries)
    ordered = sorted(entries, key=lambda e: (e[1], e[0]))
    labels = {}
    better = 0
    previous = None
    for i, (team_id, score) in enumerate(ordered):
        if score != previous:
            better = i
            previous = score
        labels[team_id] = format_position(better + 1, counts[score] > 1)
    return labels


def tied_award(table: Sequence[float], start: int, count: int) -> float:
    """Average of `count` table entries from `start`; entries past the end are worth 0."""
    if count <= 0:
        return 0.0
    total = sum(table[i] if 0 <= i < len(table) else 0 for i in range(start, start + count))
    return total / count


def comparison_group(result: TeamResult, tournament: Tournament,
                     tour_cards_by_id: Dict[str, TourCard]) -> Optional[Hashable]:
    """Tour id in the regular season, bracket in the playoffs."""
    card = tour_cards_by_id.get(result.tour_card_id)
    if card is None:
        return None
    if tournament.is_playoff:
        return card.bracket
    return card.tour_id


def _rankable(result: TeamResult) -> bool:
    return result.score is not None and not result.is_cut


def assign_positions(results: List[TeamResult], groups: Dict[int, Optional[Hashable]]) -> List[TeamResult]:
    """Current and past positions within each comparison group."""
    by_group: Dict[Hashable, List[TeamResult]] = defaultdict(list)
    for r in results:
        group = groups.get(r.id)
        if group is not None and _rankable(r):
            by_group[group].append(r)

    current: Dict[int, str] = {}
    past: Dict[int, str] = {}
    for members in by_group.values():
        current.update(rank_labels([(r.id, r.score) for r in members]))
        past.update(rank_labels([(r.id, round_decimal(r.past_score)) for r in members]))

    assigned = []
    for r in results:
        if r.is_cut:
            assigned.append(replace(r, position="CUT", past_position="CUT", points=0, earnings=0))
        else:
            assigned.append(replace(r, position=current.get(r.id), past_position=past.get(r.id)))
    return assigned


def _award(results: List[TeamResult], table: Sequence[float], offset: int) -> Dict[int, float]:
    """Tie-averaged table values for ranked teams, keyed by team id."""
    by_rank: Dict[int, List[int]] = defaultdict(list)
    for r in results:
        rank = parse_position(r.position)
        if rank is not None:
            by_rank[rank].append(r.id)

    awards = {}
    for rank, team_ids in by_rank.items():
        value = tied_award(table, offset + rank - 1, len(team_ids))
        for team_id in team_ids:
            awards[team_id] = value
    return awards


def award_prizes(results: List[TeamResult], groups: Dict[int, Optional[Hashable]],
                 tournament: Tournament, context: Optional[PlayoffContext] = None) -> List[TeamResult]:
    """
    Points and earnings from the tier tables.

    Regular season: points (whole numbers) and earnings (cents) by position
    within the tour. Playoffs: never points; earnings only when the final
    event is complete, by bracket position into the bracket's payout range.
    """
    tier = tournament.tier
    by_group: Dict[Hashable, List[TeamResult]] = defaultdict(list)
    for r in results:
        group = groups.get(r.id)
        if group is not None:
            by_group[group].append(r)

    points: Dict[int, float] = {}
    earnings: Dict[int, float] = {}
    if not tournament.is_playoff:
        for members in by_group.values():
            for team_id, value in _award(members, tier.points, 0).items():
                points[team_id] = round_decimal(value, 0)
            for team_id, value in _award(members, tier.payouts, 0).items():
                earnings[team_id] = round_decimal(value, EARNINGS_PLACES)
    else:
        event_index = (context or PlayoffContext()).event_index
        if event_index == 3 and tournament.is_complete:
            for bracket, members in by_group.items():
                offset = PAYOUT_OFFSETS[bracket]
                for team_id, value in _award(members, tier.payouts, offset).items():
                    earnings[team_id] = round_decimal(value, EARNINGS_PLACES)

    return [
        replace(r, points=points.get(r.id, 0), earnings=earnings.get(r.id, 0))
        for r in results
    ]


def assign_positions_and_prizes(results: List[TeamResult], tournament: Tournament,
                                tour_cards: List[TourCard],
                                context: Optional[PlayoffContext] = None) -> List[TeamResult]:
    """Rank every team within its comparison group and allocate prizes."""
    tour_cards_by_id = {c.id: c for c in tour_cards}
    groups = {r.id: comparison_group(r, tournament, tour_cards_by_id) for r in results}
    ungrouped = sum(1 for r in results if groups[r.id] is None)
    if ungrouped:
        logger.info(f"{ungrouped} teams in {tournament.name} have no comparison group and are not ranked")

    ranked = assign_positions(results, groups)
    return award_prizes(ranked, groups, tournament, context)
