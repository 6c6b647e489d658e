"""
Tests for the team calculation builder.
"""

from unittest.mock import patch

import pytest

from pgc_scoring.builder import (
    TeamCalculationBuilder, build_team_calculations, check_roster, check_snapshot,
    earliest_tee_time, scoring_round,
)
from pgc_scoring.errors import InsufficientDataError, TeamScoringError
from pgc_scoring.models import GolferStatus, PlayoffContext, Tier
from pgc_scoring.playoffs import base_offset


def _result(results, team_id):
    return next(r for r in results if r.id == team_id)


class TestRegularSeason:
    """Tests for regular-season team scores."""

    def test_weekend_round_counts_best_five(self, make_golfer, make_team, make_card, make_tournament, regular_tier):
        """Test a team with five cut golfers scored on its five active golfers."""
        golfers = [make_golfer(i, rounds=(72, 72, None, None), status=GolferStatus.CUT) for i in range(1, 6)]
        golfers += [
            make_golfer(i, rounds=(72, 72, r3, None))
            for i, r3 in zip(range(6, 11), [68, 70, 71, 72, 74])
        ]
        team = make_team(1, "tc-1", range(1, 11))
        tournament = make_tournament(regular_tier, golfers, [team], current_round=4)

        result = build_team_calculations(tournament, [make_card("tc-1")])[0]

        assert result.position is None
        assert result.round == 4
        assert result.round_one == 72.0
        assert result.round_two == 72.0
        assert result.round_three == 71.0
        assert result.round_four is None
        assert result.today == -1.0
        assert result.thru == 18
        assert result.score == -1.0

    def test_fewer_than_five_active_is_cut(self, make_golfer, make_team, make_card, make_tournament, regular_tier):
        golfers = [make_golfer(i, rounds=(72, 74, None, None), status=GolferStatus.CUT) for i in range(1, 7)]
        golfers += [make_golfer(i, rounds=(72, 74, None, None)) for i in range(7, 11)]
        team = make_team(1, "tc-1", range(1, 11))
        tournament = make_tournament(regular_tier, golfers, [team], current_round=3)

        result = build_team_calculations(tournament, [make_card("tc-1")])[0]

        assert result.position == "CUT"
        assert result.past_position == "CUT"
        assert result.round_one == 72.0
        assert result.round_two == 74.0
        assert result.round_three is None
        assert result.score is None
        assert result.today is None

    def test_cut_stays_cut(self, make_golfer, make_team, make_card, make_tournament, regular_tier):
        """Test that a cut team is still cut once the tournament completes."""
        golfers = [make_golfer(i, rounds=(72, 74, None, None), status=GolferStatus.CUT) for i in range(1, 7)]
        golfers += [make_golfer(i, rounds=(72, 74, 70, 70)) for i in range(7, 11)]
        team = make_team(1, "tc-1", range(1, 11))
        cards = [make_card("tc-1")]

        for current_round in (3, 4, 5):
            tournament = make_tournament(regular_tier, golfers, [team], current_round=current_round)
            assert build_team_calculations(tournament, cards)[0].position == "CUT"

    def test_no_cut_before_round_three(self, make_golfer, make_team, make_card, make_tournament, regular_tier):
        golfers = [make_golfer(i, rounds=(72, None, None, None), status=GolferStatus.WITHDRAWN) for i in range(1, 8)]
        golfers += [make_golfer(i, rounds=(72, None, None, None)) for i in range(8, 11)]
        team = make_team(1, "tc-1", range(1, 11))
        tournament = make_tournament(regular_tier, golfers, [team], current_round=2)

        result = build_team_calculations(tournament, [make_card("tc-1")])[0]

        assert result.position is None
        assert result.score == 0.0

    def test_live_first_round_uses_golfer_scores(self, make_golfer, make_team, make_card, make_tournament, regular_tier):
        golfers = [make_golfer(i, today=-2, thru=9, score=-2) for i in range(1, 6)]
        golfers += [make_golfer(i, today=0, thru=9, score=0) for i in range(6, 11)]
        team = make_team(1, "tc-1", range(1, 11))
        tournament = make_tournament(regular_tier, golfers, [team], current_round=1, live_play=True)

        result = build_team_calculations(tournament, [make_card("tc-1")])[0]

        assert result.today == -1.0
        assert result.thru == 9.0
        assert result.score == -1.0

    def test_live_second_round_adds_today(self, make_golfer, make_team, make_card, make_tournament, regular_tier):
        golfers = [make_golfer(i, rounds=(70, None, None, None), today=-1, thru=5, score=-3) for i in range(1, 11)]
        team = make_team(1, "tc-1", range(1, 11))
        tournament = make_tournament(regular_tier, golfers, [team], current_round=2, live_play=True)

        result = build_team_calculations(tournament, [make_card("tc-1")])[0]

        assert result.round_one == 70.0
        assert result.today == -1.0
        assert result.thru == 5.0
        assert result.score == -3.0

    def test_withdrawn_golfer_penalty_in_round(self, make_golfer, make_team, make_card, make_tournament, regular_tier):
        """Test that a WD golfer's unplayed round counts as par + 8 when every golfer counts."""
        golfers = [make_golfer(1, rounds=(70, None, None, None), status=GolferStatus.WITHDRAWN)]
        golfers += [make_golfer(i, rounds=(70, 72, None, None)) for i in range(2, 11)]
        team = make_team(1, "tc-1", range(1, 11))
        tournament = make_tournament(regular_tier, golfers, [team], current_round=3)

        result = build_team_calculations(tournament, [make_card("tc-1")])[0]

        # (80 + 9 * 72) / 10 = 72.8
        assert result.round_two == 72.8
        assert result.today == 0.8
        assert result.score == -1.2

    def test_completed_tournament(self, make_golfer, make_team, make_card, make_tournament, regular_tier):
        golfers = [make_golfer(i, rounds=(70, 71, 72, 73)) for i in range(1, 11)]
        team = make_team(1, "tc-1", range(1, 11))
        tournament = make_tournament(regular_tier, golfers, [team], current_round=5)

        result = build_team_calculations(tournament, [make_card("tc-1")])[0]

        assert (result.round_one, result.round_two, result.round_three, result.round_four) == (70.0, 71.0, 72.0, 73.0)
        assert result.today == 1.0
        assert result.thru == 18
        assert result.score == -2.0

    def test_pre_tournament_has_no_score(self, make_golfer, make_team, make_card, make_tournament, regular_tier):
        golfers = [
            make_golfer(1, tee_times=("2025-05-01T12:30:00", "2025-05-02T07:00:00", "2025-05-03T09:00:00", None)),
            make_golfer(2, tee_times=("2025-05-01T07:45:00", "2025-05-02T12:15:00", None, None)),
            make_golfer(3, tee_times=("TBD", None, None, None)),
        ]
        team = make_team(1, "tc-1", [1, 2, 3])
        tournament = make_tournament(regular_tier, golfers, [team], current_round=1)

        result = build_team_calculations(tournament, [make_card("tc-1")])[0]

        assert result.score is None
        assert result.today is None
        assert result.round_one_tee_time == "2025-05-01T07:45:00"
        assert result.round_two_tee_time == "2025-05-02T07:00:00"
        assert result.round_three_tee_time is None


class TestScoringRound:
    """Tests for the round a snapshot is scored at."""

    def test_clamped_to_reported_rounds(self, make_golfer, make_tournament, regular_tier):
        golfers = [make_golfer(1, rounds=(70, None, None, None))]
        tournament = make_tournament(regular_tier, golfers, current_round=4)

        assert scoring_round(tournament) == 2

    def test_current_round_kept(self, make_golfer, make_tournament, regular_tier):
        golfers = [make_golfer(1, rounds=(70, 70, None, None))]

        assert scoring_round(make_tournament(regular_tier, golfers, current_round=3)) == 3
        assert scoring_round(make_tournament(regular_tier, golfers, current_round=1)) == 1

    def test_tee_time_formats(self, make_golfer):
        golfers = [
            make_golfer(1, tee_times=("13:05", None, None, None)),
            make_golfer(2, tee_times=("08:30", None, None, None)),
        ]

        assert earliest_tee_time(golfers, 1) == "08:30"
        assert earliest_tee_time(golfers, 2) is None

    def test_utc_suffix_tee_times(self, make_golfer):
        """Test that tee times ending in Z are compared in UTC."""
        golfers = [
            make_golfer(1, tee_times=("2025-05-01T13:00:00+00:00", None, None, None)),
            make_golfer(2, tee_times=("2025-05-01T12:30:00Z", None, None, None)),
            make_golfer(3, tee_times=("2025-05-01T11:00:00-02:00", None, None, None)),
        ]

        assert earliest_tee_time(golfers, 1) == "2025-05-01T12:30:00Z"


class TestPlayoffs:
    """Tests for playoff team scores."""

    def test_empty_roster_plays_at_par(self, make_golfer, make_team, make_card, make_tournament, playoff_tier):
        golfers = [make_golfer(i, rounds=(70, 70, None, None)) for i in range(1, 11)]
        team = make_team(1, "tc-1", [999])
        cards = [make_card("tc-1", playoff=1, points=100), make_card("tc-2", playoff=1, points=50)]
        tournament = make_tournament(playoff_tier, golfers, [team], current_round=3, name="Playoff Event 1")

        result = build_team_calculations(tournament, cards, PlayoffContext(event_index=1))[0]

        assert result.round_one == 72.0
        assert result.round_two == 72.0
        assert result.today == 0.0
        assert result.score == -10.0

    def test_starting_strokes_added(self, make_golfer, make_team, make_card, make_tournament, playoff_tier):
        golfers = [make_golfer(i, rounds=(70, None, None, None)) for i in range(1, 11)]
        team = make_team(1, "tc-2", range(1, 11))
        cards = [make_card("tc-1", playoff=1, points=100), make_card("tc-2", playoff=1, points=50)]
        tournament = make_tournament(playoff_tier, golfers, [team], current_round=2)

        result = build_team_calculations(tournament, cards, PlayoffContext(event_index=1))[0]

        # -9.75 starting strokes rounds to -9.8, plus -2 for round one
        assert result.score == -11.8

    def test_ineligible_team_takes_worst_of_day(self, make_golfer, make_team, make_card, make_tournament, playoff_tier):
        golfers = [make_golfer(i, rounds=(s, None, None, None)) for i, s in zip(range(1, 6), [70, 71, 72, 73, 74])]
        golfers += [make_golfer(i, rounds=(75, None, None, None)) for i in range(6, 11)]
        golfers += [make_golfer(i, rounds=(60, None, None, None)) for i in (11, 12)]
        golfers += [make_golfer(i, status=GolferStatus.WITHDRAWN) for i in (13, 14, 15)]
        teams = [
            make_team(1, "a", range(1, 6)),
            make_team(2, "b", range(6, 11)),
            make_team(3, "c", range(11, 16)),
            make_team(4, "d", range(11, 16)),
        ]
        cards = [
            make_card("a", playoff=1), make_card("b", playoff=1),
            make_card("c", playoff=1), make_card("d", playoff=2),
        ]
        tournament = make_tournament(playoff_tier, golfers, teams, current_round=2)
        context = PlayoffContext(event_index=2, carry_in={"c": -2.0})

        results = build_team_calculations(tournament, cards, context)

        assert _result(results, 1).score == 0.0
        assert _result(results, 2).score == 3.0
        ineligible = _result(results, 3)
        assert ineligible.round_one == 75.0
        assert ineligible.today == 3.0
        assert ineligible.score == 1.0
        no_silver_peers = _result(results, 4)
        assert no_silver_peers.round_one == 72.0
        assert no_silver_peers.score == 0.0

    def test_playoff_has_no_cut(self, make_golfer, make_team, make_card, make_tournament, playoff_tier):
        golfers = [make_golfer(i, rounds=(72, 72, None, None), status=GolferStatus.CUT) for i in range(1, 8)]
        golfers += [make_golfer(i, rounds=(72, 72, None, None)) for i in range(8, 11)]
        team = make_team(1, "a", range(1, 11))
        tournament = make_tournament(playoff_tier, golfers, [team], current_round=3)

        result = build_team_calculations(tournament, [make_card("a", playoff=1)], PlayoffContext(3))[0]

        assert result.position is None
        assert result.score == 0.0


class TestBuilder:
    """Tests for builder-level behavior."""

    def _tournament(self, make_golfer, make_team, make_tournament, tier):
        golfers = [make_golfer(i, rounds=(68 + i % 5, None, None, None), score=i % 3) for i in range(1, 21)]
        teams = [make_team(t, f"tc-{t}", range(t, t + 10)) for t in range(1, 6)]
        return make_tournament(tier, golfers, teams, current_round=2)

    def test_build_is_deterministic(self, make_golfer, make_team, make_card, make_tournament, regular_tier):
        tournament = self._tournament(make_golfer, make_team, make_tournament, regular_tier)
        cards = [make_card(f"tc-{t}") for t in range(1, 6)]

        assert build_team_calculations(tournament, cards) == build_team_calculations(tournament, cards)

    def test_team_failure_is_skipped(self, make_golfer, make_team, make_card, make_tournament, regular_tier):
        """Test that one team's error doesn't stop the others."""
        tournament = self._tournament(make_golfer, make_team, make_tournament, regular_tier)
        cards = [make_card(f"tc-{t}") for t in range(1, 6)]

        def failing(team, *args):
            if team.id == 2:
                raise TeamScoringError(team.id, "bad roster")
            return base_offset(team, *args)

        builder = TeamCalculationBuilder(tournament, cards)
        with patch("pgc_scoring.builder.base_offset", side_effect=failing):
            results = builder.build()

        assert len(results) == 5
        assert builder.skipped == [2]
        assert _result(results, 2).score is None
        assert _result(results, 1).score is not None

    def test_non_integer_golfer_id_skips_team(self, make_golfer, make_team, make_card, make_tournament, regular_tier):
        tournament = self._tournament(make_golfer, make_team, make_tournament, regular_tier)
        tournament.teams[2].golfer_ids = [3, 4, "x5", 6]
        cards = [make_card(f"tc-{t}") for t in range(1, 6)]

        builder = TeamCalculationBuilder(tournament, cards)
        results = builder.build()

        assert builder.skipped == [3]
        assert _result(results, 3).score is None
        assert _result(results, 4).score is not None

    def test_unparsable_position_skips_team(self, make_golfer, make_team, make_card, make_tournament, regular_tier):
        """Test that a garbled golfer position only affects teams rostering that golfer."""
        tournament = self._tournament(make_golfer, make_team, make_tournament, regular_tier)
        tournament.golfers[0].position = "T?"
        cards = [make_card(f"tc-{t}") for t in range(1, 6)]

        builder = TeamCalculationBuilder(tournament, cards)
        results = builder.build()

        # golfer 1 is only on team 1
        assert builder.skipped == [1]
        assert _result(results, 1).score is None
        assert _result(results, 2).score is not None

    def test_check_roster(self, make_golfer, make_team):
        golfers = [make_golfer(1), make_golfer(2, status=GolferStatus.CUT), make_golfer(3)]
        golfers[2].position = "T12"

        check_roster(make_team(1, "tc-1", [1, 2, 3]), golfers)
        with pytest.raises(TeamScoringError):
            check_roster(make_team(2, "tc-2", [1, None]), golfers)


class TestCheckSnapshot:
    """Tests for snapshot validation."""

    def test_missing_tournament(self, make_card):
        with pytest.raises(InsufficientDataError):
            check_snapshot(None, [make_card("tc-1")])

    def test_missing_tour_cards(self, make_tournament, regular_tier):
        with pytest.raises(InsufficientDataError):
            check_snapshot(make_tournament(regular_tier), [])

    def test_regular_tier_needs_both_tables(self, make_tournament, make_card):
        tier = Tier(name="Standard", points=[10, 5], payouts=[])
        with pytest.raises(InsufficientDataError):
            check_snapshot(make_tournament(tier), [make_card("tc-1")])

    def test_tables_may_differ_in_length(self, make_tournament, make_card):
        """Test that tables only need the entries read from them."""
        regular = Tier(name="Standard", points=[10, 5], payouts=[100])
        playoff = Tier(name="Playoff", points=[-1.0] * 40, payouts=[100.0] * 150)
        cards = [make_card("tc-1", playoff=1), make_card("tc-2", playoff=2)]

        check_snapshot(make_tournament(regular), cards)
        for event in (1, 2, 3):
            check_snapshot(make_tournament(playoff), cards, PlayoffContext(event))

    def test_playoff_event_out_of_range(self, make_tournament, make_card, playoff_tier):
        """Test that an unknown playoff event rejects the snapshot instead of every team."""
        tournament = make_tournament(playoff_tier)

        for event in (0, 4):
            with pytest.raises(InsufficientDataError):
                check_snapshot(tournament, [make_card("tc-1", playoff=1)], PlayoffContext(event))

    def test_event_one_needs_stroke_table(self, make_tournament, make_card):
        tier = Tier(name="Playoff", points=[-1] * 20, payouts=[100] * 20)
        with pytest.raises(InsufficientDataError):
            check_snapshot(make_tournament(tier), [make_card("tc-1", playoff=1)], PlayoffContext(1))

    def test_event_three_needs_silver_payouts(self, make_tournament, make_card):
        tier = Tier(name="Playoff", points=[0] * 75, payouts=[100] * 75)
        tournament = make_tournament(tier)

        with pytest.raises(InsufficientDataError):
            check_snapshot(tournament, [make_card("tc-1", playoff=2)], PlayoffContext(3))
        check_snapshot(tournament, [make_card("tc-1", playoff=1)], PlayoffContext(3))

    def test_valid_snapshot(self, make_tournament, make_card, regular_tier):
        check_snapshot(make_tournament(regular_tier), [make_card("tc-1")])
