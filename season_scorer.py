#!/usr/bin/env python3
"""
Golf Season Scorer CLI

Scores tournament result uploads and maintains season leaderboards in a
JSON state file.

Usage:
    python season_scorer.py preview results.xlsx --category tour --mode StrokeNet
    python season_scorer.py commit results.xlsx --name "Spring Open" --date 2025-04-12 \\
        --category tour --mode StrokeNet --team "Smith/Jones=both"
    python season_scorer.py leaderboard --score-type gross
    python season_scorer.py set-points tour tour_points.json
    python season_scorer.py recalculate --category tour
    python season_scorer.py delete 4
"""

import argparse
import datetime
import logging
import sys
from pathlib import Path

from golfpoints import (
    JsonStorage,
    ScoringError,
    ScoringService,
    Tournament,
    read_score_rows,
)
from golfpoints.config import get_current_season
from golfpoints.constants import TOURNAMENT_TYPES
from golfpoints.logging_config import setup_logging
from golfpoints.utils import load_json

DEFAULT_STATE = Path('data') / 'season_state.json'


def load_rows(path: Path, sheet: str | None = None) -> list[dict]:
    """Rows from an .xlsx sheet or a JSON list of row objects."""
    if path.suffix.lower() == '.json':
        rows = load_json(path)
        if not isinstance(rows, list):
            raise ValueError(f'{path} must contain a list of row objects')
        return rows
    return read_score_rows(path, sheet_name=sheet)


def parse_teams(values: list[str] | None) -> dict[str, str]:
    """Parse repeated --team LABEL=CHOICE options."""
    resolution = {}
    for value in values or []:
        label, sep, choice = value.rpartition('=')
        if not sep or not label.strip():
            raise ValueError(f'--team expects LABEL=CHOICE, got {value!r}')
        resolution[label.strip()] = choice.strip()
    return resolution


def print_preview(preview) -> None:
    summary = preview.summary
    if preview.pending_teams:
        print('Team entries need a selection (use --team LABEL=both or LABEL=NAME):')
        for team in preview.pending_teams:
            print(f'  {team.original_label}: {", ".join(team.candidate_names)}')
        return

    for result in preview.results:
        new = ' [NEW]' if result.is_new_player else ''
        gross = f' / gross {result.gross_points:g}' if result.gross_display_position else ''
        print(f'  {result.display_position:>4} {result.player_name}: {result.points:g} pts{gross}{new}')

    print(
        f'\n{summary.total_players} players ({summary.new_players} new, '
        f'{summary.existing_players} existing), {summary.total_points:g} points awarded'
        + (', ties detected' if summary.ties_detected else '')
    )
    for warning in preview.warnings:
        print(f'⚠️  {warning}')
    for error in preview.errors:
        print(f'❌ {error}')


def print_leaderboard(entries, score_type: str) -> None:
    print('\n' + '=' * 60)
    print(f'{get_current_season()} {score_type.upper()} LEADERBOARD')
    print('=' * 60)
    for entry in entries:
        print(
            f'  {entry.rank:>3}. {entry.player_name}: {entry.overall_points:g} pts '
            f'({entry.events_played} events)'
        )


def main():
    parser = argparse.ArgumentParser(description='Golf season points and leaderboard scorer')
    parser.add_argument(
        '--state', '-s',
        type=Path,
        default=DEFAULT_STATE,
        help=f'JSON state file (default: {DEFAULT_STATE})',
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Debug logging',
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    def add_upload_args(sub):
        sub.add_argument('file', type=Path, help='Results file (.xlsx or .json)')
        sub.add_argument('--sheet', default=None, help='Sheet name (default: active sheet)')
        sub.add_argument('--category', '-c', required=True, choices=TOURNAMENT_TYPES)
        sub.add_argument('--mode', '-m', default='StrokeNet', choices=['Stroke', 'StrokeNet', 'PreScored'])
        sub.add_argument('--scoring-type', default='net', choices=['net', 'gross', 'both'])
        sub.add_argument('--team', action='append', metavar='LABEL=CHOICE', help='Team entry selection')
        sub.add_argument('--manual', action='store_true', help='Points are given in the file')

    preview_parser = subparsers.add_parser('preview', help='Show what an upload would score')
    add_upload_args(preview_parser)

    commit_parser = subparsers.add_parser('commit', help='Score and store a tournament')
    add_upload_args(commit_parser)
    commit_parser.add_argument('--id', type=int, default=None, help='Tournament id (replaces if it exists)')
    commit_parser.add_argument('--name', required=True)
    commit_parser.add_argument('--date', type=datetime.date.fromisoformat, required=True, help='YYYY-MM-DD')

    leaderboard_parser = subparsers.add_parser('leaderboard', help='Print the season leaderboard')
    leaderboard_parser.add_argument('--score-type', default='net', choices=['net', 'gross'])

    recalc_parser = subparsers.add_parser('recalculate', help='Re-score calculated tournaments')
    recalc_parser.add_argument('--category', '-c', choices=TOURNAMENT_TYPES, help='Only this category')
    recalc_parser.add_argument(
        '--tournament', '-t', type=int, action='append', dest='tournament_ids', help='Only this tournament id'
    )

    delete_parser = subparsers.add_parser('delete', help='Remove a tournament and its results')
    delete_parser.add_argument('tournament_id', type=int)

    points_parser = subparsers.add_parser('set-points', help='Replace a points table and recalculate')
    points_parser.add_argument('category', choices=TOURNAMENT_TYPES)
    points_parser.add_argument('file', type=Path, help='JSON list of points, 1st place first')
    points_parser.add_argument('--no-recalculate', action='store_true')

    args = parser.parse_args()

    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO, log_to_file=False)

    try:
        service = ScoringService(JsonStorage(args.state))

        if args.command == 'preview':
            preview = service.preview_tournament(
                load_rows(args.file, args.sheet),
                args.mode,
                args.category,
                scoring_type=args.scoring_type,
                resolution=parse_teams(args.team),
                is_manual=args.manual,
            )
            print_preview(preview)

        elif args.command == 'commit':
            tournament = Tournament(
                id=args.id,
                name=args.name,
                date=args.date,
                category=args.category,
                scoring_mode=args.mode,
                scoring_type=args.scoring_type,
                is_manual=args.manual,
            )
            saved = service.commit_tournament(
                tournament, load_rows(args.file, args.sheet), parse_teams(args.team)
            )
            print(f'✓ Saved {saved.name} as tournament {saved.id}')

        elif args.command == 'leaderboard':
            print_leaderboard(service.get_leaderboard(args.score_type), args.score_type)

        elif args.command == 'recalculate':
            entry = service.recalculate(args.category, args.tournament_ids)
            print(
                f'✓ Run {entry.run_id} {entry.status}: {entry.tournaments_processed} processed, '
                f'{entry.tournaments_skipped} manual skipped'
            )
            for error in entry.errors:
                print(f'❌ Tournament {error.tournament_id}: {error.message}')

        elif args.command == 'delete':
            deleted = service.delete_tournament(args.tournament_id)
            print(f'✓ Deleted {deleted.name} (tournament {deleted.id})')

        elif args.command == 'set-points':
            points = load_json(args.file)
            run_id = service.update_points_table(args.category, points, recalculate=not args.no_recalculate)
            if run_id:
                service.wait_for_recalculation()
                entry = service.get_recalculation_log(run_id)
                print(f'✓ {args.category} table updated, run {run_id} {entry.status}')
            else:
                print(f'✓ {args.category} table updated')

    except (ScoringError, ValueError, OSError) as e:
        print(f'❌ {e}')
        sys.exit(1)


if __name__ == '__main__':
    main()
