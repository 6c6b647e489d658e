"""
JSON snapshot files: a tournament with its field, the season's tour cards
and (for playoffs) the event context.

    {
      "tournament": {"id": ..., "name": ..., "course": {"par": 72},
                     "tier": {"name": ..., "points": [...], "payouts": [...]},
                     "golfers": [...], "teams": [...], ...},
      "tour_cards": [...],
      "playoff": {"event_index": 2, "carry_in": {"tc-1": -4.5}}
    }
"""

import json
from dataclasses import dataclass, fields
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import PLAYOFF_EVENTS
from .errors import InsufficientDataError
from .models import (
    Course, Golfer, GolferStatus, PlayoffContext, Team, Tier, TourCard, Tournament,
)


@dataclass
class Snapshot:
    """Everything one scoring run reads."""
    tournament: Tournament
    tour_cards: List[TourCard]
    playoff: Optional[PlayoffContext] = None


def _known(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


def golfer_from_dict(data: Dict[str, Any]) -> Golfer:
    values = _known(Golfer, data)
    values["status"] = GolferStatus.resolve(data.get("status"), data.get("position"))
    return Golfer(**values)


def _golfer_id(value: Any) -> Any:
    # Malformed ids are kept as-is so the builder can skip just that team.
    try:
        return int(value)
    except (TypeError, ValueError):
        return value


def team_from_dict(data: Dict[str, Any]) -> Team:
    values = _known(Team, data)
    values["golfer_ids"] = [_golfer_id(i) for i in data.get("golfer_ids", [])]
    return Team(**values)


def tour_card_from_dict(data: Dict[str, Any]) -> TourCard:
    return TourCard(**_known(TourCard, data))


def tournament_from_dict(data: Dict[str, Any]) -> Tournament:
    """Build a Tournament (with golfers and teams) from a dict."""
    tier = data.get("tier") or {}
    course = data.get("course") or {}
    return Tournament(
        id=str(data["id"]),
        name=data.get("name", ""),
        season_id=str(data.get("season_id", "")),
        start_date=date.fromisoformat(data["start_date"]),
        end_date=date.fromisoformat(data.get("end_date") or data["start_date"]),
        course=Course(name=course.get("name", ""), par=int(course.get("par", 72))),
        tier=Tier(
            name=tier.get("name", ""),
            points=list(tier.get("points", [])),
            payouts=list(tier.get("payouts", [])),
            id=tier.get("id"),
        ),
        current_round=int(data.get("current_round") or 1),
        live_play=bool(data.get("live_play", False)),
        golfers=[golfer_from_dict(g) for g in data.get("golfers", [])],
        teams=[team_from_dict(t) for t in data.get("teams", [])],
        tour_ids=[str(t) for t in data.get("tour_ids", [])],
    )


def playoff_from_dict(data: Dict[str, Any]) -> PlayoffContext:
    """Playoff context; raises InsufficientDataError for an event outside 1..3."""
    try:
        event_index = int(data.get("event_index", 1))
    except (TypeError, ValueError):
        raise InsufficientDataError(f"Unreadable playoff event index: {data.get('event_index')!r}") from None
    if not 1 <= event_index <= PLAYOFF_EVENTS:
        raise InsufficientDataError(f"Playoff event {event_index} outside 1..{PLAYOFF_EVENTS}")
    return PlayoffContext(
        event_index=event_index,
        carry_in={str(k): float(v) for k, v in data.get("carry_in", {}).items()},
    )


def snapshot_from_dict(data: Dict[str, Any]) -> Snapshot:
    playoff = data.get("playoff")
    return Snapshot(
        tournament=tournament_from_dict(data["tournament"]),
        tour_cards=[tour_card_from_dict(c) for c in data.get("tour_cards", [])],
        playoff=playoff_from_dict(playoff) if playoff else None,
    )


def load_snapshot(path: Path) -> Snapshot:
    """Read a snapshot JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        return snapshot_from_dict(json.load(f))
