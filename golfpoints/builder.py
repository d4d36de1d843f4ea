"""Tournament result set building shared by previews, commits and recalculation."""

import logging
from typing import Any, Mapping, Optional, Sequence, Union

from .constants import TEAM_SEPARATOR
from .errors import (
    IncompleteManualPoints,
    IncompleteScore,
    InvalidResultSet,
    ScoringError,
    UnresolvedTeamEntry,
)
from .models import PlacedScore, ResolvedScore, ScoreType, ScoringMode
from .normalizer import normalize_rows
from .points import assign_points, place_by_position
from .schemas import PointsConfig, Tournament, TournamentResult
from .scoring import resolve
from .teams import detect_teams
from .validators import validate_positions, validate_result_set

logger = logging.getLogger('golfpoints.builder')


def prepare_scores(
    rows: Sequence[Mapping[str, Any]],
    scoring_mode: Union[ScoringMode, str],
    require_scores: bool = True,
) -> tuple[list[ResolvedScore], list[ScoringError]]:
    """
    Normalize and resolve every row of an upload.

    Args:
        rows: Raw rows (header -> value)
        scoring_mode: How the scores are expressed
        require_scores: If False, rows whose scores cannot be derived are
            kept with no gross/net instead of being reported. Manual
            tournaments use this since only positions and points matter.

    Returns:
        Tuple of (scores, errors); errors holds one FieldError or
        IncompleteScore per rejected row
    """
    inputs, field_errors = normalize_rows(rows, scoring_mode)
    scores: list[ResolvedScore] = []
    errors: list[ScoringError] = list(field_errors)

    for score_input in inputs:
        try:
            scores.append(resolve(score_input, scoring_mode))
        except IncompleteScore as e:
            if require_scores:
                errors.append(e)
            else:
                scores.append(
                    ResolvedScore(
                        player_name=score_input.player_name,
                        position=score_input.position,
                        handicap=score_input.handicap,
                        points=score_input.points,
                        row_number=score_input.row_number,
                    )
                )

    return scores, errors


def dedupe_scores(scores: Sequence[ResolvedScore]) -> list[ResolvedScore]:
    """Collapse repeated entries for one player (case-insensitive) to the best placed."""
    best: dict[str, ResolvedScore] = {}
    for score in scores:
        key = score.player_name.lower()
        current = best.get(key)
        if current is None or score.position < current.position:
            best[key] = score

    if len(best) < len(scores):
        logger.warning(f'Collapsed {len(scores) - len(best)} duplicate player entries')
    return sorted(best.values(), key=lambda s: s.row_number)


def _placements(
    tournament: Tournament,
    scores: list[ResolvedScore],
    points_config: PointsConfig,
) -> dict[ScoreType, list[PlacedScore]]:
    """Placings for every ranking the tournament's scoring type requests."""
    score_types = tournament.scoring_type.score_types()

    if tournament.is_manual:
        missing = [s.player_name for s in scores if s.points is None]
        if missing:
            raise IncompleteManualPoints(missing)
        placed = place_by_position(scores)
        return {score_type: placed for score_type in score_types}

    table = points_config.table_for(tournament.category)
    return {score_type: assign_points(scores, table, score_type) for score_type in score_types}


def build_results(
    tournament: Tournament,
    scores: Sequence[ResolvedScore],
    points_config: PointsConfig,
    directory: Optional[Any] = None,
    separator: str = TEAM_SEPARATOR,
) -> list[TournamentResult]:
    """
    Build one tournament's complete result set.

    Calculated tournaments run the points assignor once per requested
    score type using the category's table. Manual tournaments take
    positions and points from the entries themselves.

    Args:
        tournament: Tournament metadata (category, scoring type, manual flag)
        scores: Resolved scores with teams already resolved
        points_config: Points tables to award from
        directory: Player directory (find_player_by_name); without one
            every player is reported as new. Unknown players keep no id;
            storage creates them in the same write as the results.
        separator: Team separator, used to reject unresolved team entries

    Returns:
        TournamentResult list ordered by finishing position

    Raises:
        UnresolvedTeamEntry: If a team entry was not resolved first
        IncompleteManualPoints: If a manual entry has no points
        InvalidResultSet: If the built set breaks a result invariant
    """
    teams = detect_teams(scores, separator)
    if teams:
        raise UnresolvedTeamEntry([team.original_label for team in teams])

    scores = dedupe_scores(scores)
    placements = _placements(tournament, scores, points_config)

    primary = ScoreType.NET if ScoreType.NET in placements else ScoreType.GROSS
    net_by_name = {p.score.player_name.lower(): p for p in placements.get(ScoreType.NET, [])}
    gross_by_name = {p.score.player_name.lower(): p for p in placements.get(ScoreType.GROSS, [])}

    known = {}
    if directory is not None:
        for score in scores:
            known[score.player_name.lower()] = directory.find_player_by_name(score.player_name)

    results = []
    for placed in placements[primary]:
        score = placed.score
        key = score.player_name.lower()
        net = net_by_name.get(key)
        gross = gross_by_name.get(key)
        player = known.get(key)

        results.append(
            TournamentResult(
                tournament_id=tournament.id,
                player_id=player.id if player else score.player_id,
                player_name=player.name if player else score.player_name,
                position=placed.position,
                display_position=placed.display_position,
                tied_position=placed.tied_position,
                gross_score=score.gross_score,
                net_score=score.net_score,
                handicap=score.handicap,
                points=net.points if net else 0.0,
                gross_position=gross.position if gross else None,
                gross_display_position=gross.display_position if gross else None,
                gross_points=gross.points if gross else 0.0,
                is_new_player=player is None,
            )
        )

    problems = validate_result_set(results, check_ties=not tournament.is_manual)
    if not tournament.is_manual:
        for score_type, placed in placements.items():
            placings = [
                (p.position, p.score.score_for(score_type))
                for p in placed
                if p.score.score_for(score_type) is not None
            ]
            problems.extend(validate_positions(placings))
    if problems:
        raise InvalidResultSet(problems)

    logger.debug(
        f'Built {len(results)} results for {tournament.name} '
        f'({tournament.category}, {tournament.scoring_type.value})'
    )
    return results

