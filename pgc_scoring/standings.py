"""
Season standings: roll completed tournament results up onto tour cards.
"""

from collections import defaultdict
from dataclasses import replace
from typing import Dict, List

from .aggregates import round_decimal
from .config import EARNINGS_PLACES
from .models import Team, TourCard
from .positions import parse_position, rank_labels


def completed_teams(teams: List[Team]) -> List[Team]:
    """Teams from finished tournaments (round past 4)."""
    return [t for t in teams if (t.round or 0) > 4]


def tour_card_stats(tour_card: TourCard, teams: List[Team]) -> TourCard:
    """Season totals for a tour card from its teams."""
    finished = completed_teams(teams)
    ranks = [parse_position(t.position) for t in finished]
    return replace(
        tour_card,
        win=sum(1 for r in ranks if r == 1),
        top_ten=sum(1 for r in ranks if r is not None and r <= 10),
        made_cut=sum(1 for t in finished if t.position != "CUT"),
        appearances=len(finished),
        points=sum(round_decimal(t.points or 0, 0) for t in finished),
        earnings=round_decimal(
            sum(round_decimal(t.earnings or 0, EARNINGS_PLACES) for t in finished),
            EARNINGS_PLACES,
        ),
    )


def assign_standings_positions(tour_cards: List[TourCard]) -> List[TourCard]:
    """Rank tour cards within each tour by descending points."""
    by_tour: Dict[str, List[TourCard]] = defaultdict(list)
    for card in tour_cards:
        by_tour[card.tour_id].append(card)

    labels: Dict[str, str] = {}
    for cards in by_tour.values():
        # rank_labels ranks ascending, so negate points; ids are strings here.
        index = {i: card.id for i, card in enumerate(cards)}
        ranked = rank_labels([(i, -(card.points or 0)) for i, card in enumerate(cards)])
        for i, label in ranked.items():
            labels[index[i]] = label
    return [replace(card, position=labels.get(card.id)) for card in tour_cards]


def season_standings(tour_cards: List[TourCard], teams_by_tour_card: Dict[str, List[Team]]) -> List[TourCard]:
    """Updated season totals and standings positions for every tour card."""
    updated = [tour_card_stats(card, teams_by_tour_card.get(card.id, [])) for card in tour_cards]
    return assign_standings_positions(updated)
