"""Storage backends: player directory, points configuration store and persistence.

MemoryStorage keeps everything in process and guards every operation with
one re-entrant lock, so recalculation workers can share it. Every write
runs inside _write(): if persisting fails the in-memory state is rolled
back, so a failed write leaves nothing behind. JsonStorage adds a JSON file
that is rewritten after every write.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Union

from pydantic import ValidationError

from .config import get_default_points_config
from .errors import PersistenceFailure
from .models import ScoreType
from .schemas import (
    LeaderboardEntry,
    Player,
    PointsConfig,
    PointsTable,
    RecalculationLogEntry,
    StorageSnapshot,
    Tournament,
    TournamentResult,
    TournamentSource,
)
from .utils import load_json, save_json

logger = logging.getLogger('golfpoints.storage')


def _name_key(name: str) -> str:
    return ' '.join(name.split()).lower()


class MemoryStorage:
    """
    In-memory storage for players, tournaments, results and run logs.

    Args:
        points_config: Initial points configuration (default: the
            season_config.json tables at version 1)
    """

    def __init__(self, points_config: Optional[PointsConfig] = None):
        self._lock = threading.RLock()
        self._points_config = points_config or get_default_points_config()
        self._players: dict[int, Player] = {}
        self._tournaments: dict[int, Tournament] = {}
        self._sources: dict[int, TournamentSource] = {}
        self._results: dict[int, list[TournamentResult]] = {}
        self._leaderboards: dict[str, list[LeaderboardEntry]] = {}
        self._logs: dict[str, RecalculationLogEntry] = {}

    def _persist(self) -> None:
        """Called with the lock held after every write."""

    @contextmanager
    def _write(self):
        """
        Hold the lock for one write and persist it on exit.

        Stored values are never mutated in place, so copying the top-level
        containers is enough to roll back when the body or _persist() fails.
        """
        with self._lock:
            saved = (
                self._points_config,
                dict(self._players),
                dict(self._tournaments),
                dict(self._sources),
                dict(self._results),
                dict(self._leaderboards),
                dict(self._logs),
            )
            try:
                yield
                self._persist()
            except Exception:
                (
                    self._points_config,
                    self._players,
                    self._tournaments,
                    self._sources,
                    self._results,
                    self._leaderboards,
                    self._logs,
                ) = saved
                raise

    # Player directory

    def find_player_by_name(self, name: str) -> Optional[Player]:
        """Case-insensitive, whitespace-tolerant lookup."""
        key = _name_key(name)
        with self._lock:
            for player in self._players.values():
                if _name_key(player.name) == key:
                    return player.model_copy()
        return None

    def _add_player(self, name: str, default_handicap: Optional[float]) -> Player:
        existing = self.find_player_by_name(name)
        if existing is not None:
            return existing
        player = Player(
            id=max(self._players, default=0) + 1,
            name=' '.join(name.split()),
            default_handicap=default_handicap,
        )
        self._players[player.id] = player
        logger.info(f'Created player {player.name} (id {player.id})')
        return player.model_copy()

    def create_player(self, name: str, default_handicap: Optional[float] = None) -> Player:
        """Create a player, or return the existing one with the same name."""
        with self._write():
            return self._add_player(name, default_handicap)

    def get_player(self, player_id: int) -> Optional[Player]:
        with self._lock:
            player = self._players.get(player_id)
            return player.model_copy() if player else None

    def list_players(self) -> list[Player]:
        with self._lock:
            return [p.model_copy() for p in self._players.values()]

    # Points configuration store

    def get_points_config(self) -> PointsConfig:
        with self._lock:
            return self._points_config

    def update_points_table(self, category: str, table: PointsTable) -> PointsConfig:
        """Replace one category's table; bumps the config version."""
        with self._write():
            current = self._points_config
            tables = dict(current.tables)
            tables[category] = table
            try:
                updated = PointsConfig(
                    version=current.version + 1,
                    updated_at=datetime.now(timezone.utc),
                    tables=tables,
                )
            except ValidationError as e:
                raise ValueError(f'Invalid points table update for {category}: {e}') from e
            self._points_config = updated
        logger.info(f'Points table {category} updated (config version {updated.version})')
        return updated

    # Tournaments and results

    def _stamp_results(
        self,
        tournament_id: int,
        results: Iterable[TournamentResult],
        create_players: bool,
    ) -> list[TournamentResult]:
        stamped = []
        for result in results:
            update = {'tournament_id': tournament_id}
            if create_players and result.player_id is None:
                update['player_id'] = self._add_player(result.player_name, result.handicap).id
            stamped.append(result.model_copy(update=update))
        return stamped

    def create_tournament(
        self,
        tournament: Tournament,
        source: Optional[TournamentSource] = None,
        results: Iterable[TournamentResult] = (),
        create_players: bool = False,
    ) -> Tournament:
        """
        Store a tournament with its source rows and results in one write.

        Idempotent on tournament id: saving an id that already exists
        replaces its metadata, source and results. A tournament without
        an id is given the next free one. With create_players, results
        without a player id get a directory entry in the same write.
        """
        with self._write():
            if tournament.id is None:
                tournament = tournament.model_copy(update={'id': max(self._tournaments, default=0) + 1})
            else:
                existing = self._tournaments.get(tournament.id)
                if existing is not None and existing.is_manual != tournament.is_manual:
                    raise ValueError(f'Tournament {tournament.id} cannot change its manual flag')
            tournament_id = tournament.id

            self._tournaments[tournament_id] = tournament.model_copy()
            if source is not None:
                self._sources[tournament_id] = source.model_copy(update={'tournament_id': tournament_id})
            self._results[tournament_id] = self._stamp_results(tournament_id, results, create_players)
            return tournament.model_copy()

    def delete_tournament(self, tournament_id: int) -> Optional[Tournament]:
        """Remove a tournament with its source and results in one write; None if unknown."""
        with self._write():
            tournament = self._tournaments.pop(tournament_id, None)
            if tournament is None:
                return None
            self._sources.pop(tournament_id, None)
            removed = self._results.pop(tournament_id, [])
        logger.info(f'Deleted tournament {tournament.name} (id {tournament_id}) and {len(removed)} results')
        return tournament.model_copy()

    def get_tournament(self, tournament_id: int) -> Optional[Tournament]:
        with self._lock:
            tournament = self._tournaments.get(tournament_id)
            return tournament.model_copy() if tournament else None

    def list_tournaments(self, is_manual: Optional[bool] = None) -> list[Tournament]:
        with self._lock:
            return [
                t.model_copy()
                for t in sorted(self._tournaments.values(), key=lambda t: (t.date, t.id))
                if is_manual is None or t.is_manual == is_manual
            ]

    def get_source(self, tournament_id: int) -> Optional[TournamentSource]:
        with self._lock:
            return self._sources.get(tournament_id)

    def replace_results(
        self,
        tournament_id: int,
        results: Iterable[TournamentResult],
        create_players: bool = False,
    ) -> None:
        """Swap a tournament's whole result set in one write."""
        with self._write():
            if tournament_id not in self._tournaments:
                raise PersistenceFailure(f'Unknown tournament: {tournament_id}')
            self._results[tournament_id] = self._stamp_results(tournament_id, results, create_players)

    def get_results(self, tournament_id: int) -> list[TournamentResult]:
        with self._lock:
            return list(self._results.get(tournament_id, []))

    def all_results(self) -> list[TournamentResult]:
        with self._lock:
            return [r for results in self._results.values() for r in results]

    # Leaderboard snapshots

    def save_leaderboard(self, score_type: Union[ScoreType, str], entries: Iterable[LeaderboardEntry]) -> None:
        with self._write():
            self._leaderboards[ScoreType(score_type).value] = list(entries)

    def get_leaderboard(self, score_type: Union[ScoreType, str]) -> list[LeaderboardEntry]:
        with self._lock:
            return list(self._leaderboards.get(ScoreType(score_type).value, []))

    # Recalculation logs

    def save_recalculation_log(self, entry: RecalculationLogEntry) -> None:
        with self._write():
            self._logs[entry.run_id] = entry.model_copy(deep=True)

    def get_recalculation_log(self, run_id: str) -> Optional[RecalculationLogEntry]:
        with self._lock:
            entry = self._logs.get(run_id)
            return entry.model_copy(deep=True) if entry else None

    def list_recalculation_logs(self) -> list[RecalculationLogEntry]:
        """All runs, most recent first."""
        with self._lock:
            return sorted(
                (e.model_copy(deep=True) for e in self._logs.values()),
                key=lambda e: e.started_at,
                reverse=True,
            )

    # Snapshots

    def snapshot(self) -> StorageSnapshot:
        with self._lock:
            return StorageSnapshot(
                points_config=self._points_config,
                players=list(self._players.values()),
                tournaments=list(self._tournaments.values()),
                sources=list(self._sources.values()),
                results=self.all_results(),
                leaderboards={k: list(v) for k, v in self._leaderboards.items()},
                recalculation_logs=list(self._logs.values()),
            )

    def restore(self, snapshot: StorageSnapshot) -> None:
        with self._lock:
            if snapshot.points_config is not None:
                self._points_config = snapshot.points_config
            self._players = {p.id: p for p in snapshot.players}
            self._tournaments = {t.id: t for t in snapshot.tournaments}
            self._sources = {s.tournament_id: s for s in snapshot.sources}
            self._results = {t.id: [] for t in snapshot.tournaments}
            for result in snapshot.results:
                self._results.setdefault(result.tournament_id, []).append(result)
            self._leaderboards = {k: list(v) for k, v in snapshot.leaderboards.items()}
            self._logs = {e.run_id: e for e in snapshot.recalculation_logs}


class JsonStorage(MemoryStorage):
    """
    MemoryStorage backed by a JSON file.

    The file is loaded (and schema validated) on creation if it exists,
    and rewritten atomically after every write.

    Args:
        path: Storage file location
        points_config: Initial points configuration for a new file
    """

    def __init__(self, path: Union[str, Path], points_config: Optional[PointsConfig] = None):
        super().__init__(points_config)
        self.path = Path(path)
        if self.path.exists():
            try:
                snapshot = load_json(self.path, schema=StorageSnapshot)
            except (OSError, ValueError) as e:
                raise PersistenceFailure(f'Could not load storage file {self.path}: {e}') from e
            self.restore(snapshot)
            logger.info(
                f'Loaded {len(self._tournaments)} tournaments and {len(self._players)} players from {self.path}'
            )

    def _persist(self) -> None:
        try:
            save_json(self.path, self.snapshot())
        except OSError as e:
            raise PersistenceFailure(f'Could not write storage file {self.path}: {e}') from e
