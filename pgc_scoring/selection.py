"""
Golfer selection: resolving rosters, active golfers and the best N for a round.
"""

from typing import List, Optional, Tuple

from .config import PENALTY_STROKES
from .models import Golfer, Team


def team_golfers(team: Team, golfers: List[Golfer]) -> List[Golfer]:
    """Resolve a team's golfer ids against the tournament pool."""
    ids = set(team.golfer_ids)
    return [g for g in golfers if g.api_id in ids]


def active_golfers(team: Team, golfers: List[Golfer]) -> List[Golfer]:
    """Team golfers that are not CUT, WD or DQ."""
    return [g for g in team_golfers(team, golfers) if g.is_active]


def round_strokes(golfer: Golfer, round_number: int, par: int) -> Optional[float]:
    """Raw strokes for a round, or the penalty score for a WD/DQ golfer who didn't finish it."""
    strokes = golfer.raw_round(round_number)
    if strokes is not None:
        return strokes
    if golfer.status.is_penalized:
        return par + PENALTY_STROKES
    return None


def _rank_key(golfer: Golfer, round_number: int, live: bool, par: int) -> Tuple:
    if live:
        value = golfer.today
    else:
        strokes = round_strokes(golfer, round_number, par)
        value = None if strokes is None else strokes - par
    # Missing values sort after everything else; api_id makes the order total.
    return (
        value is None, value or 0,
        golfer.score is None, golfer.score or 0,
        golfer.api_id,
    )


def rank_for_round(golfers: List[Golfer], round_number: int, live: bool, par: int) -> List[Golfer]:
    """
    Order golfers best-first for a round.

    Live rounds rank by today's over/under, completed rounds by strokes
    relative to par. Ties fall back to cumulative score, then golfer id.
    """
    return sorted(golfers, key=lambda g: _rank_key(g, round_number, live, par))


def top_n_for_round(golfers: List[Golfer], round_number: int, live: bool, par: int, n: int) -> List[Golfer]:
    """The best n golfers for a round."""
    if n < 0:
        raise ValueError(f"Selection count cannot be negative: {n}")
    return rank_for_round(golfers, round_number, live, par)[:n]
