"""
Shared pytest fixtures for PGC team scoring tests.
"""

import tempfile
from datetime import date
from pathlib import Path

import pytest

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from pgc_scoring.models import (
    Course, Golfer, GolferStatus, Team, Tier, TourCard, Tournament,
)


@pytest.fixture(autouse=True)
def isolated_data_dir(monkeypatch, tmp_path):
    """Keep config-created directories and databases inside the test's tmp dir."""
    monkeypatch.setenv("PGC_DATA_DIR", str(tmp_path / "pgc-data"))
    monkeypatch.delenv("PGC_DB_PATH", raising=False)
    monkeypatch.delenv("PGC_LOG_LEVEL", raising=False)
    yield


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_db_path(temp_dir):
    """Create a temporary database path."""
    return temp_dir / "test_pgc.db"


@pytest.fixture
def make_golfer():
    """Factory for tournament golfers."""
    def _make(api_id, rounds=(None, None, None, None), status=GolferStatus.ACTIVE,
              today=None, thru=None, score=None, tee_times=(None, None, None, None), **kwargs):
        return Golfer(
            api_id=api_id,
            name=f"Golfer {api_id}",
            round_one=rounds[0],
            round_two=rounds[1],
            round_three=rounds[2],
            round_four=rounds[3],
            round_one_tee_time=tee_times[0],
            round_two_tee_time=tee_times[1],
            round_three_tee_time=tee_times[2],
            round_four_tee_time=tee_times[3],
            status=status,
            position=None if status is GolferStatus.ACTIVE else status.value,
            today=today,
            thru=thru,
            score=score,
            **kwargs,
        )
    return _make


@pytest.fixture
def regular_tier():
    """Regular-season tier: 75 paid positions."""
    return Tier(
        name="Standard",
        points=[float(100 - i) for i in range(75)],
        payouts=[float(1000 - 10 * i) for i in range(75)],
        id="tier-standard",
    )


@pytest.fixture
def playoff_tier():
    """Playoff tier: starting strokes lead the points table, 150 payouts (gold 1-75, silver 76-150)."""
    strokes = [-10 + 0.25 * i for i in range(40)]
    return Tier(
        name="Playoff",
        points=strokes + [0.0] * 110,
        payouts=[float(1500 - 10 * i) for i in range(150)],
        id="tier-playoff",
    )


@pytest.fixture
def make_tournament():
    """Factory for tournament snapshots."""
    def _make(tier, golfers=None, teams=None, current_round=1, live_play=False,
              name="Test Open", tournament_id="tourn-1", start=date(2025, 5, 1),
              par=72, tour_ids=("tour-1",), season_id="2025"):
        return Tournament(
            id=tournament_id,
            name=name,
            season_id=season_id,
            start_date=start,
            end_date=date.fromordinal(start.toordinal() + 3),
            course=Course(name="Test Course", par=par),
            tier=tier,
            current_round=current_round,
            live_play=live_play,
            golfers=list(golfers or []),
            teams=list(teams or []),
            tour_ids=list(tour_ids),
        )
    return _make


@pytest.fixture
def make_card():
    """Factory for tour cards."""
    def _make(card_id, tour_id="tour-1", playoff=0, points=0, season_id="2025"):
        return TourCard(id=card_id, tour_id=tour_id, season_id=season_id,
                        display_name=f"Member {card_id}", playoff=playoff, points=points)
    return _make


@pytest.fixture
def make_team():
    """Factory for teams."""
    def _make(team_id, tour_card_id, golfer_ids, tournament_id="tourn-1"):
        return Team(id=team_id, tour_card_id=tour_card_id,
                    golfer_ids=list(golfer_ids), tournament_id=tournament_id)
    return _make
