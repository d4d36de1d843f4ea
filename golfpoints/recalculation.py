"""Bulk recalculation of stored tournaments against the current points tables.

A run re-scores every calculated tournament, or only those of one category
or a list of ids, from its stored source rows. It replaces each
tournament's results in one write, then rebuilds both leaderboards.
Manual tournaments are never touched.

Runs are single-flight: a second run while one is in progress raises
RecalculationRunConflict. Cancellation is cooperative and checked before
each tournament starts, so in-flight tournaments always finish.
"""

import logging
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from .builder import build_results, prepare_scores
from .constants import (
    DEFAULT_EVENTS_COUNTED,
    DEFAULT_RECALCULATION_WORKERS,
    STATE_COMPLETED,
    STATE_FAILED,
    STATE_IDLE,
    STATE_RUNNING,
    TEAM_SEPARATOR,
)
from .errors import InvalidRows, PersistenceFailure, RecalculationRunConflict, ScoringError
from .leaderboard import aggregate
from .models import ScoreType
from .schemas import PointsConfig, RecalculationError, RecalculationLogEntry, Tournament
from .teams import apply_resolution, detect_teams
from .validators import validate_leaderboard

logger = logging.getLogger('golfpoints.recalculation')

# Outcomes of one tournament's worker
PROCESSED = 'processed'
CANCELLED = 'cancelled'


class RecalculationOrchestrator:
    """
    Drive recalculation runs over a storage backend.

    Args:
        storage: Persistence, player directory and points store
            (see storage.MemoryStorage)
        max_workers: Tournaments processed in parallel
        events_counted: Best-N rule for the rebuilt leaderboards
        separator: Team separator used when re-applying team selections
    """

    def __init__(
        self,
        storage: Any,
        max_workers: int = DEFAULT_RECALCULATION_WORKERS,
        events_counted: int = DEFAULT_EVENTS_COUNTED,
        separator: str = TEAM_SEPARATOR,
    ):
        self.storage = storage
        self.max_workers = max_workers
        self.events_counted = events_counted
        self.separator = separator

        self._run_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._cancel = threading.Event()
        self._state = STATE_IDLE
        self._current_run_id: Optional[str] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> str:
        with self._state_lock:
            return self._state

    @property
    def current_run_id(self) -> Optional[str]:
        with self._state_lock:
            return self._current_run_id

    @property
    def is_running(self) -> bool:
        return self.state == STATE_RUNNING

    def _set_state(self, state: str) -> None:
        with self._state_lock:
            self._state = state

    def run(
        self,
        category: Optional[str] = None,
        tournament_ids: Optional[Iterable[int]] = None,
    ) -> RecalculationLogEntry:
        """
        Run a recalculation synchronously.

        Args:
            category: Only re-score tournaments of this category
            tournament_ids: Only re-score these tournaments

        Returns:
            The finished run's log entry

        Raises:
            RecalculationRunConflict: If another run is in progress
        """
        entry = self._begin(category, tournament_ids)
        self._execute(entry)
        return self.storage.get_recalculation_log(entry.run_id)

    def trigger(
        self,
        category: Optional[str] = None,
        tournament_ids: Optional[Iterable[int]] = None,
    ) -> str:
        """
        Start a recalculation in a background thread.

        The run's log entry exists (status Running) before this returns.
        Filters are the same as for run().

        Returns:
            The run id

        Raises:
            RecalculationRunConflict: If another run is in progress
        """
        entry = self._begin(category, tournament_ids)
        thread = threading.Thread(
            target=self._execute,
            args=(entry,),
            name=f'recalculation-{entry.run_id[:8]}',
            daemon=True,
        )
        self._thread = thread
        try:
            thread.start()
        except RuntimeError:
            self._finish(entry, STATE_FAILED)
            raise
        return entry.run_id

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for a background run; True if no run is still going."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
            return not thread.is_alive()
        return True

    def cancel(self) -> bool:
        """Ask the current run to stop before its next tournament. False if idle."""
        if not self.is_running:
            return False
        logger.info(f'Cancellation requested for run {self.current_run_id}')
        self._cancel.set()
        return True

    def _begin(
        self,
        category: Optional[str] = None,
        tournament_ids: Optional[Iterable[int]] = None,
    ) -> RecalculationLogEntry:
        if not self._run_lock.acquire(blocking=False):
            raise RecalculationRunConflict(f'Recalculation run {self.current_run_id} is already in progress')

        try:
            self._cancel.clear()
            entry = RecalculationLogEntry(
                run_id=uuid.uuid4().hex,
                status=STATE_RUNNING,
                started_at=datetime.now(timezone.utc),
                category=category,
                tournament_ids=sorted(set(tournament_ids)) if tournament_ids is not None else None,
            )
            with self._state_lock:
                self._state = STATE_RUNNING
                self._current_run_id = entry.run_id
            self.storage.save_recalculation_log(entry)
        except Exception:
            self._set_state(STATE_FAILED)
            self._run_lock.release()
            raise

        scope = entry.category or 'all categories'
        if entry.tournament_ids is not None:
            scope += f', tournaments {entry.tournament_ids}'
        logger.info(f'Recalculation run {entry.run_id} started ({scope})')
        return entry

    def _finish(self, entry: RecalculationLogEntry, status: str) -> None:
        entry.status = status
        entry.finished_at = datetime.now(timezone.utc)
        entry.cancelled = self._cancel.is_set()
        try:
            self.storage.save_recalculation_log(entry)
        finally:
            self._set_state(status)
            self._run_lock.release()

    def _select(self, entry: RecalculationLogEntry, tournaments: list[Tournament]) -> list[Tournament]:
        """Apply the run's category and id filters; unknown ids are logged as errors."""
        known = {t.id for t in tournaments}
        if entry.category is not None:
            tournaments = [t for t in tournaments if t.category == entry.category]
        if entry.tournament_ids is not None:
            wanted = set(entry.tournament_ids)
            for tournament_id in sorted(wanted - known):
                logger.error(f'Run {entry.run_id}: unknown tournament {tournament_id}')
                entry.errors.append(
                    RecalculationError(tournament_id=tournament_id, message=f'Unknown tournament: {tournament_id}')
                )
            tournaments = [t for t in tournaments if t.id in wanted]
        return tournaments

    def _execute(self, entry: RecalculationLogEntry) -> None:
        status = STATE_FAILED
        try:
            try:
                points_config = self.storage.get_points_config()
                entry.points_config_version = points_config.version
                tournaments = self._select(entry, self.storage.list_tournaments())
            except PersistenceFailure as e:
                logger.error(f'Run {entry.run_id}: could not load tournaments: {e}')
                entry.errors.append(RecalculationError(message=f'Could not load tournaments: {e}'))
                return

            calculated = [t for t in tournaments if not t.is_manual]
            entry.tournaments_skipped = len(tournaments) - len(calculated)
            if entry.tournaments_skipped:
                logger.info(f'Run {entry.run_id}: skipping {entry.tournaments_skipped} manual tournament(s)')

            self._process_all(entry, calculated, points_config)

            for score_type in ScoreType:
                leaderboard = aggregate(
                    self.storage.all_results(),
                    self.storage.list_tournaments(),
                    score_type,
                    self.events_counted,
                )
                for warning in validate_leaderboard(leaderboard):
                    logger.warning(f'Run {entry.run_id}: {warning}')
                self.storage.save_leaderboard(score_type, leaderboard)

            status = STATE_COMPLETED
            logger.info(
                f'Run {entry.run_id} completed: {entry.tournaments_processed} processed, '
                f'{entry.tournaments_skipped} skipped, {len(entry.errors)} error(s)'
                + (' (cancelled)' if self._cancel.is_set() else '')
            )
        except Exception as e:
            logger.exception(f'Run {entry.run_id} failed')
            entry.errors.append(RecalculationError(message=str(e)))
        finally:
            self._finish(entry, status)

    def _process_all(
        self,
        entry: RecalculationLogEntry,
        tournaments: list[Tournament],
        points_config: PointsConfig,
    ) -> None:
        if not tournaments:
            return

        executor = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(tournaments)),
            thread_name_prefix='recalculate',
        )
        try:
            futures = [
                (tournament, executor.submit(self._process_one, tournament, points_config))
                for tournament in tournaments
            ]
            # Join barrier: outcomes are collected here, on one thread
            for tournament, future in futures:
                try:
                    outcome = future.result()
                except Exception as e:
                    logger.error(f'Run {entry.run_id}: tournament {tournament.id} failed: {e}')
                    entry.errors.append(RecalculationError(tournament_id=tournament.id, message=str(e)))
                    continue
                if outcome == PROCESSED:
                    entry.tournaments_processed += 1
        finally:
            executor.shutdown(wait=True)

    def _process_one(self, tournament: Tournament, points_config: PointsConfig) -> str:
        """Re-score one tournament from its stored source and replace its results."""
        if self._cancel.is_set():
            return CANCELLED

        source = self.storage.get_source(tournament.id)
        if source is None:
            raise ScoringError(f'No stored source rows for tournament {tournament.id}')

        scores, errors = prepare_scores(source.rows, tournament.scoring_mode)
        if errors:
            raise InvalidRows(errors)
        if detect_teams(scores, self.separator):
            scores = apply_resolution(scores, source.team_resolution, self.separator)

        results = build_results(
            tournament,
            scores,
            points_config,
            directory=self.storage,
            separator=self.separator,
        )
        self.storage.replace_results(tournament.id, results, create_players=True)
        logger.debug(f'Recalculated {tournament.name}: {len(results)} results')
        return PROCESSED
