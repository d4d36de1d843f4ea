"""Unit tests for points assignment and tie handling."""

import pytest

from golfpoints.config import get_default_points_config
from golfpoints.models import ResolvedScore, ScoreType
from golfpoints.points import assign_points, format_position, place_by_position
from golfpoints.schemas import PointsTable


@pytest.fixture
def tour_table():
    """Default tour table: 500, 300, 190, 135, ..."""
    return get_default_points_config().table_for('tour')


def net(name, score, position=1):
    return ResolvedScore(player_name=name, position=position, net_score=score, gross_score=score + 10)


class TestRanking:
    """Tests for finishing order and points lookup."""

    def test_simple_order(self, tour_table):
        scores = [net('B', 72, 2), net('A', 68, 1), net('C', 75, 3)]
        placed = assign_points(scores, tour_table, ScoreType.NET)
        assert [p.score.player_name for p in placed] == ['A', 'B', 'C']
        assert [p.points for p in placed] == [500, 300, 190]
        assert [p.display_position for p in placed] == ['1', '2', '3']
        assert not any(p.tied_position for p in placed)

    def test_table_exhausted_awards_zero(self):
        table = PointsTable.from_points([10, 5])
        scores = [net('A', 70), net('B', 71), net('C', 72)]
        placed = assign_points(scores, table, ScoreType.NET)
        assert [p.points for p in placed] == [10, 5, 0]
        assert placed[2].position == 3

    def test_gross_ranking_uses_gross_scores(self, tour_table):
        scores = [
            ResolvedScore(player_name='A', position=1, net_score=68, gross_score=80),
            ResolvedScore(player_name='B', position=2, net_score=70, gross_score=74),
        ]
        net_placed = assign_points(scores, tour_table, ScoreType.NET)
        gross_placed = assign_points(scores, tour_table, 'gross')
        assert net_placed[0].score.player_name == 'A'
        assert gross_placed[0].score.player_name == 'B'
        assert gross_placed[1].points == 300


class TestTies:
    """Tests for tie groups and competition ranking."""

    def test_two_way_tie_for_second(self, tour_table):
        """Test 68, 70, 70, 72 -> 1, T2, T2, 4 with 500, 300, 300, 135."""
        scores = [net('A', 68, 1), net('B', 70, 2), net('C', 70, 3), net('D', 72, 4)]
        placed = assign_points(scores, tour_table, ScoreType.NET)
        assert [p.display_position for p in placed] == ['1', 'T2', 'T2', '4']
        assert [p.position for p in placed] == [1, 2, 2, 4]
        assert [p.points for p in placed] == [500, 300, 300, 135]
        assert [p.tied_position for p in placed] == [False, True, True, False]

    def test_three_way_tie_for_first(self, tour_table):
        scores = [net('A', 70), net('B', 70), net('C', 70), net('D', 71)]
        placed = assign_points(scores, tour_table, ScoreType.NET)
        assert [p.points for p in placed] == [500, 500, 500, 135]
        assert placed[3].display_position == '4'

    def test_tied_players_keep_input_order(self, tour_table):
        scores = [net('Late', 70, 5), net('Early', 70, 2)]
        placed = assign_points(scores, tour_table, ScoreType.NET)
        assert [p.score.player_name for p in placed] == ['Early', 'Late']


class TestUnscoredPlayers:
    """Tests for players with no score for the ranking."""

    def test_placed_last_with_zero_points(self, tour_table):
        scores = [
            ResolvedScore(player_name='NoGross', position=1, net_score=65),
            ResolvedScore(player_name='A', position=2, net_score=70, gross_score=75),
        ]
        placed = assign_points(scores, tour_table, ScoreType.GROSS)
        assert placed[-1].score.player_name == 'NoGross'
        assert placed[-1].display_position == '-'
        assert placed[-1].points == 0
        assert placed[0].points == 500


class TestManualPlacement:
    """Tests for placing manual entries by their given positions."""

    def test_positions_and_points_from_entries(self):
        scores = [
            ResolvedScore(player_name='B', position=2, points=50),
            ResolvedScore(player_name='A', position=1, points=93.75),
            ResolvedScore(player_name='C', position=2, points=50),
        ]
        placed = place_by_position(scores)
        assert [p.score.player_name for p in placed] == ['A', 'B', 'C']
        assert [p.display_position for p in placed] == ['1', 'T2', 'T2']
        assert placed[0].points == 93.75


class TestPointsTable:
    def test_points_for_out_of_range(self, tour_table):
        assert tour_table.points_for(0) == 0
        assert tour_table.points_for(len(tour_table) + 1) == 0

    def test_format_position(self):
        assert format_position(3, False) == '3'
        assert format_position(3, True) == 'T3'
