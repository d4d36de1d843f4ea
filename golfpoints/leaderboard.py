"""Season leaderboard aggregation: best-N-of-M events per player."""

import logging
from typing import Iterable, Mapping, Union

from .constants import DEFAULT_EVENTS_COUNTED
from .models import EventPoints, ScoreType
from .schemas import LeaderboardEntry, Tournament, TournamentResult

logger = logging.getLogger('golfpoints.leaderboard')

TournamentLookup = Union[Mapping[int, Tournament], Iterable[Tournament]]


def _by_id(tournaments: TournamentLookup) -> dict[int, Tournament]:
    if isinstance(tournaments, Mapping):
        return dict(tournaments)
    return {t.id: t for t in tournaments}


def player_key(result: TournamentResult) -> tuple[str, object]:
    """Group key for a result: the player id, or the lower-cased name without one."""
    if result.player_id is not None:
        return ('id', result.player_id)
    return ('name', result.player_name.lower())


def aggregate(
    results: Iterable[TournamentResult],
    tournaments: TournamentLookup,
    score_type: Union[ScoreType, str],
    events_counted: int = DEFAULT_EVENTS_COUNTED,
) -> list[LeaderboardEntry]:
    """
    Fold tournament results into a ranked season leaderboard.

    Rules:
        - A player's event points are sorted high to low and the best
          `events_counted` make up the overall total
        - Category totals sum every event in the category, counted or not
        - Players with an overall total of 0 are left off
        - Ranking is by overall total; equal totals share a rank and the
          next rank skips (1, 2, 2, 4), tied players ordered by name

    Args:
        results: Every stored result of the season
        tournaments: Tournaments by id (or an iterable of them)
        score_type: Net leaderboard reads `points`, gross reads `gross_points`
        events_counted: How many best events count

    Returns:
        LeaderboardEntry list in rank order
    """
    score_type = ScoreType(score_type)
    by_id = _by_id(tournaments)

    players: dict[tuple, dict] = {}
    orphaned = 0
    for result in results:
        tournament = by_id.get(result.tournament_id)
        if tournament is None:
            orphaned += 1
            continue

        player = players.setdefault(
            player_key(result),
            {'player_id': result.player_id, 'player_name': result.player_name, 'events': [], 'categories': {}},
        )
        points = result.points_for(score_type)
        player['events'].append(points)
        categories = player['categories']
        categories[tournament.category] = categories.get(tournament.category, 0.0) + points

    if orphaned:
        logger.warning(f'Skipped {orphaned} result(s) with no matching tournament')

    entries = []
    for player in players.values():
        ranked = sorted(player['events'], reverse=True)
        overall = round(sum(ranked[:events_counted]), 2)
        if overall <= 0:
            continue
        entries.append(
            {
                'player_id': player['player_id'],
                'player_name': player['player_name'],
                'category_points': {k: round(v, 2) for k, v in player['categories'].items()},
                'ranked_event_points': ranked,
                'overall_points': overall,
                'events_played': len(ranked),
            }
        )

    entries.sort(key=lambda e: (-e['overall_points'], e['player_name'].lower()))

    leaderboard = []
    previous_total = None
    rank = 0
    for index, entry in enumerate(entries, 1):
        if entry['overall_points'] != previous_total:
            rank = index
            previous_total = entry['overall_points']
        leaderboard.append(
            LeaderboardEntry(score_type=score_type, events_counted=events_counted, rank=rank, **entry)
        )

    return leaderboard


def player_history(
    results: Iterable[TournamentResult],
    tournaments: TournamentLookup,
    player_id: int,
    score_type: Union[ScoreType, str],
    events_counted: int = DEFAULT_EVENTS_COUNTED,
) -> list[EventPoints]:
    """
    A player's season, event by event.

    Each event is flagged `counted` if it is one of the player's best
    `events_counted` results; ties on points go to the earlier event.

    Returns:
        EventPoints list in date order
    """
    score_type = ScoreType(score_type)
    by_id = _by_id(tournaments)

    events = []
    for result in results:
        tournament = by_id.get(result.tournament_id)
        if result.player_id != player_id or tournament is None:
            continue
        if score_type is ScoreType.GROSS and result.gross_display_position:
            display = result.gross_display_position
        else:
            display = result.display_position
        events.append((tournament, display, result.points_for(score_type)))

    events.sort(key=lambda e: (e[0].date, e[0].id))
    best = sorted(range(len(events)), key=lambda i: -events[i][2])[:events_counted]
    counted = {i for i in best if events[i][2] > 0}

    return [
        EventPoints(
            tournament_id=tournament.id,
            tournament_name=tournament.name,
            date=tournament.date,
            category=tournament.category,
            display_position=display,
            points=points,
            counted=index in counted,
        )
        for index, (tournament, display, points) in enumerate(events)
    ]
