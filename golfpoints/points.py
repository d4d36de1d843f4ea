"""Points assignment: finishing positions, tie groups and table lookup."""

import logging
from itertools import groupby
from typing import Sequence, Union

from .constants import TIE_MARKER, UNPLACED_MARKER
from .models import PlacedScore, ResolvedScore, ScoreType
from .schemas import PointsTable

logger = logging.getLogger('golfpoints.points')


def format_position(rank: int, tied: bool) -> str:
    """Display form of a position: '3' or 'T3'."""
    return f'{TIE_MARKER}{rank}' if tied else str(rank)


def assign_points(
    scores: Sequence[ResolvedScore],
    table: PointsTable,
    score_type: Union[ScoreType, str],
) -> list[PlacedScore]:
    """
    Rank scores for one score type and award points from the table.

    Scoring:
        - Lower score is better; sort is stable on the input position
        - Equal scores form a tie group; every member gets the points for
          the group's starting rank and a 'T' display position
        - The next group starts at start + group size (1, T2, T2, 4)
        - Positions past the end of the table earn 0
        - Scores with no value for this score type are placed after
          everyone else with 0 points and a '-' display position

    Args:
        scores: Resolved scores, teams already resolved
        table: Points table for the tournament category
        score_type: Which score (net or gross) the ranking uses

    Returns:
        PlacedScore list in finishing order
    """
    score_type = ScoreType(score_type)

    ranked = [s for s in scores if s.score_for(score_type) is not None]
    unscored = [s for s in scores if s.score_for(score_type) is None]
    ranked.sort(key=lambda s: (s.score_for(score_type), s.position))

    placed: list[PlacedScore] = []
    rank = 1
    for _value, group in groupby(ranked, key=lambda s: s.score_for(score_type)):
        members = list(group)
        tied = len(members) > 1
        points = table.points_for(rank)
        for score in members:
            placed.append(
                PlacedScore(
                    score=score,
                    position=rank,
                    display_position=format_position(rank, tied),
                    tied_position=tied,
                    points=points,
                )
            )
        rank += len(members)

    for score in unscored:
        placed.append(
            PlacedScore(
                score=score,
                position=rank,
                display_position=UNPLACED_MARKER,
                tied_position=False,
                points=0.0,
            )
        )

    if unscored:
        logger.debug(f'{len(unscored)} player(s) have no {score_type.value} score, placed last')
    return placed


def place_by_position(scores: Sequence[ResolvedScore]) -> list[PlacedScore]:
    """
    Place manual entries using their given positions and points.

    Positions are taken as entered; a position shared by more than one
    entry is shown with the tie marker. Points come from each entry.
    """
    ordered = sorted(scores, key=lambda s: s.position)
    counts: dict[int, int] = {}
    for score in ordered:
        counts[score.position] = counts.get(score.position, 0) + 1

    placed = []
    for score in ordered:
        tied = counts[score.position] > 1
        placed.append(
            PlacedScore(
                score=score,
                position=score.position,
                display_position=format_position(score.position, tied),
                tied_position=tied,
                points=score.points or 0.0,
            )
        )
    return placed
