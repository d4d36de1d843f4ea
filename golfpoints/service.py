"""Scoring service: the operations exposed to callers (UI, CLI, API layers)."""

import datetime
import logging
from typing import Any, Mapping, Optional, Sequence, Union

from .builder import build_results, dedupe_scores, prepare_scores
from .config import get_events_counted, get_recalculation_workers, get_team_separator
from .constants import TIE_MARKER
from .errors import IncompleteManualPoints, InvalidRows
from .leaderboard import aggregate, player_history
from .models import (
    EventPoints,
    PreviewSummary,
    ScoreType,
    ScoringMode,
    ScoringType,
    TournamentPreview,
)
from .recalculation import RecalculationOrchestrator
from .schemas import (
    LeaderboardEntry,
    PointsEntry,
    PointsTable,
    RecalculationLogEntry,
    Tournament,
    TournamentResult,
    TournamentSource,
)
from .storage import MemoryStorage
from .teams import apply_resolution, detect_teams, reject_empty_teams
from .validators import validate_points_table

logger = logging.getLogger('golfpoints.service')

Rows = Sequence[Mapping[str, Any]]


def summarize(results: Sequence[TournamentResult], row_errors: int = 0) -> PreviewSummary:
    """Preview summary figures for a built result set."""
    new_players = sum(1 for r in results if r.is_new_player)
    return PreviewSummary(
        total_players=len(results),
        new_players=new_players,
        existing_players=len(results) - new_players,
        total_points=round(sum(r.points for r in results), 2),
        total_gross_points=round(sum(r.gross_points for r in results), 2),
        ties_detected=any(
            r.tied_position or (r.gross_display_position or '').startswith(TIE_MARKER) for r in results
        ),
        row_errors=row_errors,
    )


class ScoringService:
    """
    Tournament scoring and season standings over one storage backend.

    Args:
        storage: Storage backend (default: a fresh MemoryStorage)
        events_counted: Best-N rule (default: from season config)
        max_workers: Recalculation worker pool size (default: from season config)
        separator: Team entry separator (default: from season config)
    """

    def __init__(
        self,
        storage: Optional[MemoryStorage] = None,
        events_counted: Optional[int] = None,
        max_workers: Optional[int] = None,
        separator: Optional[str] = None,
    ):
        self.storage = storage if storage is not None else MemoryStorage()
        self.events_counted = events_counted or get_events_counted()
        self.separator = separator or get_team_separator()
        self.orchestrator = RecalculationOrchestrator(
            self.storage,
            max_workers=max_workers or get_recalculation_workers(),
            events_counted=self.events_counted,
            separator=self.separator,
        )

    # Tournaments

    def preview_tournament(
        self,
        rows: Rows,
        scoring_mode: Union[ScoringMode, str],
        category: str,
        scoring_type: Union[ScoringType, str] = ScoringType.NET,
        resolution: Optional[Mapping[str, str]] = None,
        is_manual: bool = False,
    ) -> TournamentPreview:
        """
        Show what an upload would produce without storing anything.

        Row errors are collected rather than raised. If team entries
        have no selection in `resolution` the preview stops there and
        lists them in `pending_teams`; call again with the selections.

        Raises:
            UnresolvedTeamEntry: If a selection names someone not in the team,
                or a team label names no players
            MissingPointsTable: If the category has no points table
        """
        preview = TournamentPreview()
        scores, errors = prepare_scores(rows, scoring_mode, require_scores=not is_manual)
        preview.errors = errors
        preview.summary.row_errors = len(errors)

        resolution = dict(resolution or {})
        teams = detect_teams(scores, self.separator)
        reject_empty_teams(teams)
        pending = [team for team in teams if team.original_label not in resolution]
        if pending:
            preview.pending_teams = pending
            return preview
        if teams:
            scores = apply_resolution(scores, resolution, self.separator)

        tournament = Tournament(
            name='Preview',
            date=datetime.date.today(),
            category=category,
            scoring_mode=scoring_mode,
            scoring_type=scoring_type,
            is_manual=is_manual,
        )
        points_config = self.storage.get_points_config()
        try:
            results = build_results(tournament, scores, points_config, directory=self.storage)
        except IncompleteManualPoints as e:
            preview.errors.append(e)
            preview.summary.row_errors = len(preview.errors)
            return preview

        duplicates = len(scores) - len(dedupe_scores(scores))
        if duplicates:
            preview.warnings.append(f'{duplicates} duplicate player entries collapsed to the best placing')
        if not is_manual:
            table_size = len(points_config.table_for(category))
            outside = sum(1 for r in results if r.position > table_size)
            if outside:
                preview.warnings.append(f'{outside} player(s) finished outside the points table and earn 0')

        preview.results = results
        preview.summary = summarize(results, row_errors=len(errors))
        return preview

    def commit_tournament(
        self,
        tournament: Tournament,
        rows: Rows,
        resolution: Optional[Mapping[str, str]] = None,
    ) -> Tournament:
        """
        Score an upload and store the tournament, its source rows and results.

        All or nothing: scoring failures raise before storage is touched, and
        the tournament, its results and any new players are stored in one
        write that is rolled back if persisting fails.
        Committing an existing tournament id replaces that tournament.

        Returns:
            The stored Tournament (with its id assigned)

        Raises:
            InvalidRows: If any row failed normalization or score derivation
            UnresolvedTeamEntry: If a team entry has no valid selection
            IncompleteManualPoints: If a manual entry has no points
            PersistenceFailure: If the storage write fails
        """
        if tournament.id is not None:
            existing = self.storage.get_tournament(tournament.id)
            if existing is not None and existing.is_manual != tournament.is_manual:
                raise ValueError(f'Tournament {tournament.id} cannot change its manual flag')

        scores, errors = prepare_scores(rows, tournament.scoring_mode, require_scores=not tournament.is_manual)
        if errors:
            raise InvalidRows(errors)

        resolution = dict(resolution or {})
        if detect_teams(scores, self.separator):
            scores = apply_resolution(scores, resolution, self.separator)

        results = build_results(
            tournament,
            scores,
            self.storage.get_points_config(),
            directory=self.storage,
            separator=self.separator,
        )
        source = TournamentSource(
            tournament_id=tournament.id,
            rows=[dict(row) for row in rows],
            team_resolution=resolution,
        )
        saved = self.storage.create_tournament(tournament, source, results, create_players=True)
        logger.info(
            f'Committed {saved.name} (id {saved.id}, {saved.category}'
            f'{", manual" if saved.is_manual else ""}): {len(results)} results'
        )
        return saved

    def delete_tournament(self, tournament_id: int) -> Tournament:
        """
        Remove a tournament and its results, then refresh the stored leaderboards.

        Raises:
            ValueError: If no tournament has this id
            PersistenceFailure: If a storage write fails
        """
        deleted = self.storage.delete_tournament(tournament_id)
        if deleted is None:
            raise ValueError(f'Tournament {tournament_id} not found')

        for score_type in ScoreType:
            self.storage.save_leaderboard(score_type, self.get_leaderboard(score_type))
        logger.info(f'Deleted {deleted.name} (id {tournament_id}); leaderboards refreshed')
        return deleted

    # Standings

    def get_leaderboard(self, score_type: Union[ScoreType, str] = ScoreType.NET) -> list[LeaderboardEntry]:
        """Season leaderboard, recomputed from the stored results."""
        return aggregate(
            self.storage.all_results(),
            self.storage.list_tournaments(),
            score_type,
            self.events_counted,
        )

    def get_player_history(
        self, player_id: int, score_type: Union[ScoreType, str] = ScoreType.NET
    ) -> list[EventPoints]:
        """A player's events with the ones counting towards the total flagged."""
        return player_history(
            self.storage.all_results(),
            self.storage.list_tournaments(),
            player_id,
            score_type,
            self.events_counted,
        )

    # Points tables and recalculation

    def update_points_table(
        self,
        category: str,
        entries: Union[PointsTable, Sequence[Union[float, PointsEntry]]],
        recalculate: bool = True,
    ) -> Optional[str]:
        """
        Replace a category's points table.

        Args:
            category: Tournament category
            entries: A PointsTable, PointsEntry list, or plain points list
                where index 0 is 1st place
            recalculate: Start a background recalculation of the
                category's tournaments afterwards

        Returns:
            The recalculation run id, or None if none was started

        Raises:
            ValueError: If the table is empty, has gaps, or rises with position
            RecalculationRunConflict: If a recalculation is already running
                (the table is still updated)
        """
        if isinstance(entries, PointsTable):
            table = entries
        elif entries and all(isinstance(e, PointsEntry) for e in entries):
            table = PointsTable(entries=list(entries))
        else:
            table = PointsTable.from_points(list(entries))

        problems = validate_points_table(category, table)
        if problems:
            raise ValueError('; '.join(problems))

        config = self.storage.update_points_table(category, table)
        logger.info(f'{category} points table now has {len(table)} positions (version {config.version})')

        if recalculate:
            return self.trigger_recalculation(category=category)
        return None

    def trigger_recalculation(
        self,
        category: Optional[str] = None,
        tournament_ids: Optional[Sequence[int]] = None,
    ) -> str:
        """Start a background recalculation; returns its run id."""
        return self.orchestrator.trigger(category, tournament_ids)

    def recalculate(
        self,
        category: Optional[str] = None,
        tournament_ids: Optional[Sequence[int]] = None,
    ) -> RecalculationLogEntry:
        """Run a recalculation in the calling thread."""
        return self.orchestrator.run(category, tournament_ids)

    def get_recalculation_log(self, run_id: str) -> Optional[RecalculationLogEntry]:
        return self.storage.get_recalculation_log(run_id)

    def list_recalculation_logs(self) -> list[RecalculationLogEntry]:
        return self.storage.list_recalculation_logs()

    def cancel_recalculation(self) -> bool:
        return self.orchestrator.cancel()

    def wait_for_recalculation(self, timeout: Optional[float] = None) -> bool:
        return self.orchestrator.wait(timeout)

    @property
    def recalculation_state(self) -> str:
        return self.orchestrator.state
