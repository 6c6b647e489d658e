"""
Data models for PGC team scoring.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional, List, Dict
from enum import Enum


ROUND_FIELDS = ("round_one", "round_two", "round_three", "round_four")
TEE_TIME_FIELDS = (
    "round_one_tee_time", "round_two_tee_time",
    "round_three_tee_time", "round_four_tee_time",
)


class GolferStatus(Enum):
    """Tournament status of a golfer."""
    ACTIVE = "active"
    CUT = "CUT"
    WITHDRAWN = "WD"
    DISQUALIFIED = "DQ"

    @classmethod
    def resolve(cls, status: Optional[str] = None, position: Optional[str] = None) -> "GolferStatus":
        """Resolve a feed status (or leaderboard position string) to a status."""
        for raw in (status, position):
            if not raw:
                continue
            value = str(raw).strip().upper()
            for member in (cls.CUT, cls.WITHDRAWN, cls.DISQUALIFIED):
                if value == member.value:
                    return member
        return cls.ACTIVE

    @property
    def is_active(self) -> bool:
        return self is GolferStatus.ACTIVE

    @property
    def is_penalized(self) -> bool:
        """WD/DQ golfers take penalty strokes for unplayed rounds."""
        return self in (GolferStatus.WITHDRAWN, GolferStatus.DISQUALIFIED)


class Bracket(Enum):
    """Playoff division a tour card competes in."""
    GOLD = 1
    SILVER = 2

    @classmethod
    def from_flag(cls, flag: Optional[int]) -> Optional["Bracket"]:
        """Map a tour card playoff flag (0/None = not in playoffs)."""
        if flag == 1:
            return cls.GOLD
        if flag == 2:
            return cls.SILVER
        return None


@dataclass
class Course:
    """Tournament course."""
    name: str = ""
    par: int = 72


@dataclass
class Tier:
    """Points/payout schedule indexed by finishing position (position 1 -> index 0)."""
    name: str
    points: List[float] = field(default_factory=list)
    payouts: List[float] = field(default_factory=list)
    id: Optional[str] = None

    @property
    def is_playoff(self) -> bool:
        return "playoff" in (self.name or "").lower()


@dataclass
class Golfer:
    """A golfer's entry in one tournament."""
    api_id: int
    name: str = ""
    round_one: Optional[float] = None
    round_two: Optional[float] = None
    round_three: Optional[float] = None
    round_four: Optional[float] = None
    round_one_tee_time: Optional[str] = None
    round_two_tee_time: Optional[str] = None
    round_three_tee_time: Optional[str] = None
    round_four_tee_time: Optional[str] = None
    status: GolferStatus = GolferStatus.ACTIVE
    position: Optional[str] = None
    today: Optional[float] = None
    thru: Optional[float] = None
    score: Optional[float] = None
    round: Optional[int] = None

    @property
    def is_active(self) -> bool:
        """Not cut, withdrawn or disqualified."""
        return self.status.is_active

    def raw_round(self, round_number: int) -> Optional[float]:
        """Raw strokes for a round (1-4), None until played."""
        return getattr(self, ROUND_FIELDS[round_number - 1])

    def tee_time(self, round_number: int) -> Optional[str]:
        return getattr(self, TEE_TIME_FIELDS[round_number - 1])


@dataclass
class TourCard:
    """A member's season membership on one tour."""
    id: str
    tour_id: str
    season_id: str = ""
    display_name: str = ""
    playoff: int = 0  # 0 none, 1 gold, 2 silver
    points: float = 0
    earnings: float = 0
    position: Optional[str] = None
    win: int = 0
    top_ten: int = 0
    made_cut: int = 0
    appearances: int = 0

    @property
    def bracket(self) -> Optional[Bracket]:
        return Bracket.from_flag(self.playoff)


@dataclass
class Team:
    """A fantasy team entered in a tournament, with its last stored results."""
    id: int
    tour_card_id: str
    golfer_ids: List[int] = field(default_factory=list)
    tournament_id: str = ""
    round: Optional[int] = None
    round_one: Optional[float] = None
    round_two: Optional[float] = None
    round_three: Optional[float] = None
    round_four: Optional[float] = None
    today: Optional[float] = None
    thru: Optional[float] = None
    score: Optional[float] = None
    position: Optional[str] = None
    past_position: Optional[str] = None
    round_one_tee_time: Optional[str] = None
    round_two_tee_time: Optional[str] = None
    round_three_tee_time: Optional[str] = None
    round_four_tee_time: Optional[str] = None
    points: float = 0
    earnings: float = 0


@dataclass
class Tournament:
    """A tournament snapshot with everything the scoring cycle reads."""
    id: str
    name: str
    start_date: date
    end_date: date
    course: Course = field(default_factory=Course)
    tier: Tier = field(default_factory=lambda: Tier(name=""))
    season_id: str = ""
    current_round: int = 1  # 5 = tournament complete
    live_play: bool = False
    golfers: List[Golfer] = field(default_factory=list)
    teams: List[Team] = field(default_factory=list)
    tour_ids: List[str] = field(default_factory=list)

    @property
    def par(self) -> int:
        return self.course.par

    @property
    def is_playoff(self) -> bool:
        """Playoff events are tagged by tournament or tier name."""
        return "playoff" in (self.name or "").lower() or self.tier.is_playoff

    @property
    def is_complete(self) -> bool:
        return self.current_round >= 5

    def golfers_by_id(self) -> Dict[int, Golfer]:
        return {g.api_id: g for g in self.golfers}


@dataclass
class PlayoffContext:
    """Season-level playoff facts resolved by the persistence adapter."""
    event_index: int = 1
    carry_in: Dict[str, float] = field(default_factory=dict)


@dataclass
class TeamResult:
    """Computed scoring row for one team."""
    id: int
    tour_card_id: str
    round: int
    round_one: Optional[float] = None
    round_two: Optional[float] = None
    round_three: Optional[float] = None
    round_four: Optional[float] = None
    today: Optional[float] = None
    thru: Optional[float] = None
    score: Optional[float] = None
    position: Optional[str] = None
    past_position: Optional[str] = None
    round_one_tee_time: Optional[str] = None
    round_two_tee_time: Optional[str] = None
    round_three_tee_time: Optional[str] = None
    round_four_tee_time: Optional[str] = None
    points: float = 0
    earnings: float = 0

    @property
    def is_cut(self) -> bool:
        return self.position == "CUT"

    @property
    def past_score(self) -> Optional[float]:
        """Score before today's round."""
        if self.score is None:
            return None
        return self.score - (self.today or 0)

    @property
    def position_change(self) -> Optional[int]:
        """Places gained since the previous round (positive = moved up)."""
        current = _position_number(self.position)
        past = _position_number(self.past_position)
        if current is None or past is None:
            return None
        return past - current

    def as_update(self) -> Dict[str, object]:
        """Persisted fields, keyed by column name."""
        return {
            "round": self.round,
            "round_one": self.round_one,
            "round_two": self.round_two,
            "round_three": self.round_three,
            "round_four": self.round_four,
            "today": self.today,
            "thru": self.thru,
            "score": self.score,
            "position": self.position,
            "past_position": self.past_position,
            "round_one_tee_time": self.round_one_tee_time,
            "round_two_tee_time": self.round_two_tee_time,
            "round_three_tee_time": self.round_three_tee_time,
            "round_four_tee_time": self.round_four_tee_time,
            "points": self.points,
            "earnings": self.earnings,
        }


def _position_number(label: Optional[str]) -> Optional[int]:
    if not label:
        return None
    digits = label.upper().lstrip("T")
    return int(digits) if digits.isdigit() else None
