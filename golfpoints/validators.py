"""Validation functions for points tables, result sets, and leaderboards."""

from typing import Sequence

from .constants import TIE_MARKER
from .schemas import LeaderboardEntry, PointsTable, TournamentResult


def validate_points_table(category: str, table: PointsTable) -> list[str]:
    """
    Check that a points table is usable.

    Checks:
    - Table is not empty
    - Positions run 1..N with no gaps
    - Points never increase with position

    Args:
        category: Tournament category the table belongs to
        table: PointsTable to validate

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []

    if not table.entries:
        errors.append(f'{category} points table is empty')
        return errors

    positions = [entry.position for entry in table.entries]
    expected = list(range(1, len(positions) + 1))
    if positions != expected:
        errors.append(f'{category} points table positions must run 1..{len(positions)} without gaps')

    for previous, entry in zip(table.entries, table.entries[1:]):
        if entry.points > previous.points:
            errors.append(
                f'{category} points table awards more for position {entry.position} '
                f'({entry.points}) than position {previous.position} ({previous.points})'
            )

    return errors


def validate_positions(placings: Sequence[tuple[int, float]]) -> list[str]:
    """
    Check that finishing positions agree with the scores they came from.

    Checks:
    - Positions never go backwards
    - Players with the same score share a position
    - A better position never has a worse score

    Args:
        placings: (position, score) pairs for one ranking

    Returns:
        List of issues found (empty if consistent)
    """
    issues = []
    ordered = sorted(placings, key=lambda p: p[0])

    for index, (position, score) in enumerate(ordered):
        if position < 1:
            issues.append(f'Position {position} is not a valid finishing position')
        if index == 0:
            continue

        previous_position, previous_score = ordered[index - 1]
        if score == previous_score and position != previous_position:
            issues.append(f'Players with same score ({score}) should have same position')
        elif score != previous_score and position == previous_position:
            issues.append(f'Position {position} is shared by different scores ({previous_score}, {score})')
        elif score < previous_score:
            issues.append(f'Position {position} has a better score than position {previous_position}')

    return issues


def validate_result_set(results: Sequence[TournamentResult], check_ties: bool = True) -> list[str]:
    """
    Check the invariants of one tournament's result set.

    Checks:
    - Exactly one result per player
    - Points are non-negative
    - Every member of a tie group carries the same points (skipped with
      check_ties=False, manual entries set their own points)

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []

    seen = set()
    duplicates = set()
    for result in results:
        key = result.player_id if result.player_id is not None else result.player_name.lower()
        if key in seen:
            duplicates.add(result.player_name)
        seen.add(key)
    if duplicates:
        errors.append(f'Duplicate results for: {", ".join(sorted(duplicates))}')

    for result in results:
        if result.points < 0 or result.gross_points < 0:
            errors.append(f'{result.player_name} has negative points')

    if not check_ties:
        return errors

    # Tie groups: same display position must mean same points
    net_groups: dict[str, set[float]] = {}
    gross_groups: dict[str, set[float]] = {}
    for result in results:
        if result.tied_position:
            net_groups.setdefault(result.display_position, set()).add(result.points)
        if result.gross_display_position and result.gross_display_position.startswith(TIE_MARKER):
            gross_groups.setdefault(result.gross_display_position, set()).add(result.gross_points)
    for label, groups in (('net', net_groups), ('gross', gross_groups)):
        for display, points in groups.items():
            if len(points) > 1:
                errors.append(f'Tie group {display} ({label}) has differing points: {sorted(points)}')

    return errors


def validate_leaderboard(entries: Sequence[LeaderboardEntry]) -> list[str]:
    """
    Sanity check an aggregated leaderboard.

    Checks:
    - Overall points equal the sum of the counted events
    - Entries are ordered by overall points, ranks consistent with ties
    - No player appears twice

    Returns:
        List of warning messages (empty if no issues)
    """
    warnings = []

    for entry in entries:
        counted = round(sum(entry.counted_points), 2)
        if abs(counted - entry.overall_points) > 0.01:
            warnings.append(
                f'{entry.player_name} overall ({entry.overall_points}) != sum of best '
                f'{entry.events_counted} ({counted})'
            )

    for previous, entry in zip(entries, entries[1:]):
        if entry.overall_points > previous.overall_points:
            warnings.append(f'{entry.player_name} is ranked below a lower total')
        if entry.overall_points == previous.overall_points and entry.rank != previous.rank:
            warnings.append(f'{entry.player_name} ties {previous.player_name} but has a different rank')
        if entry.overall_points < previous.overall_points and entry.rank <= previous.rank:
            warnings.append(f'{entry.player_name} has rank {entry.rank} after rank {previous.rank}')

    seen = set()
    for entry in entries:
        key = entry.player_id if entry.player_id is not None else entry.player_name.lower()
        if key in seen:
            warnings.append(f'{entry.player_name} appears more than once')
        seen.add(key)

    return warnings
