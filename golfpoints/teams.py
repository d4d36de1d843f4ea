"""Team entry detection and resolution.

Uploaded results sometimes list pairs as a single entry ("Smith/Jones").
Resolution is a two-step protocol: detect_teams() reports the entries that
need a decision, the caller collects it however it likes, then
apply_resolution() rewrites the score list.
"""

import logging
from dataclasses import replace
from typing import Mapping, Sequence

from .constants import TEAM_CHOICE_BOTH, TEAM_SEPARATOR
from .errors import UnresolvedTeamEntry
from .models import ResolvedScore, TeamEntry

logger = logging.getLogger('golfpoints.teams')


def split_team_label(label: str, separator: str = TEAM_SEPARATOR) -> tuple[str, ...]:
    """Split "Smith / Jones" into ('Smith', 'Jones'), dropping empty tokens."""
    return tuple(name.strip() for name in label.split(separator) if name.strip())


def is_team(label: str, separator: str = TEAM_SEPARATOR) -> bool:
    return separator in label


def detect_teams(
    scores: Sequence[ResolvedScore], separator: str = TEAM_SEPARATOR
) -> list[TeamEntry]:
    """Return one TeamEntry per distinct team label, in input order."""
    teams = []
    seen = set()
    for score in scores:
        label = score.player_name
        if not is_team(label, separator) or label in seen:
            continue
        seen.add(label)
        teams.append(TeamEntry(original_label=label, candidate_names=split_team_label(label, separator)))
    return teams


def reject_empty_teams(teams: Sequence[TeamEntry]) -> None:
    """Raise UnresolvedTeamEntry for labels such as "/" that name nobody."""
    empty = [team.original_label for team in teams if not team.candidate_names]
    if empty:
        raise UnresolvedTeamEntry(empty, f'Team entries name no players: {", ".join(repr(label) for label in empty)}')


def _match_candidate(choice: str, candidates: tuple[str, ...]) -> str | None:
    wanted = choice.strip().lower()
    for name in candidates:
        if name.lower() == wanted:
            return name
    return None


def apply_resolution(
    scores: Sequence[ResolvedScore],
    resolution: Mapping[str, str],
    separator: str = TEAM_SEPARATOR,
) -> list[ResolvedScore]:
    """
    Rewrite team entries according to the caller's selections.

    Args:
        scores: Resolved scores, possibly containing team entries
        resolution: Team label -> "both" or one of the candidate names
        separator: Character splitting a team label

    Returns:
        New score list. "both" replaces the team with one entry per
        candidate, each carrying the team's full position, scores and
        handicap; a single name replaces the label with that player.

    Raises:
        UnresolvedTeamEntry: If a team has no selection or an unknown one,
            or its label names no players at all ("/")
    """
    teams = detect_teams(scores, separator)
    reject_empty_teams(teams)

    unresolved = []
    invalid = []
    for team in teams:
        choice = resolution.get(team.original_label)
        if choice is None:
            unresolved.append(team.original_label)
        elif choice.strip().lower() != TEAM_CHOICE_BOTH and not _match_candidate(choice, team.candidate_names):
            invalid.append(f'{team.original_label} -> {choice}')
    if unresolved:
        raise UnresolvedTeamEntry(unresolved)
    if invalid:
        raise UnresolvedTeamEntry(
            [label.split(' -> ')[0] for label in invalid],
            f'Selection is not one of the team players: {", ".join(invalid)}',
        )

    resolved: list[ResolvedScore] = []
    for score in scores:
        if not is_team(score.player_name, separator):
            resolved.append(score)
            continue

        candidates = split_team_label(score.player_name, separator)
        choice = resolution[score.player_name].strip()
        if choice.lower() == TEAM_CHOICE_BOTH:
            resolved.extend(replace(score, player_name=name, player_id=None) for name in candidates)
            logger.debug(f'Team {score.player_name} credited to {", ".join(candidates)}')
        else:
            name = _match_candidate(choice, candidates)
            resolved.append(replace(score, player_name=name, player_id=None))
            logger.debug(f'Team {score.player_name} credited to {name}')

    return resolved
