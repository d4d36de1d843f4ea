from .models import (
    ScoringMode,
    ScoreType,
    ScoringType,
    ScoreInput,
    ResolvedScore,
    TeamEntry,
    PlacedScore,
    EventPoints,
    PreviewSummary,
    TournamentPreview,
)
from .schemas import (
    PointsEntry,
    PointsTable,
    PointsConfig,
    Player,
    Tournament,
    TournamentResult,
    LeaderboardEntry,
    RecalculationLogEntry,
)
from .errors import (
    ScoringError,
    FieldError,
    MissingField,
    InvalidValue,
    IncompleteScore,
    IncompleteManualPoints,
    UnresolvedTeamEntry,
    InvalidRows,
    InvalidResultSet,
    MissingPointsTable,
    RecalculationRunConflict,
    PersistenceFailure,
)
from .normalizer import normalize, normalize_rows
from .scoring import resolve
from .teams import detect_teams, apply_resolution
from .points import assign_points
from .builder import prepare_scores, build_results
from .leaderboard import aggregate, player_history
from .recalculation import RecalculationOrchestrator
from .storage import MemoryStorage, JsonStorage
from .excel_parser import read_score_rows
from .service import ScoringService

__all__ = [
    # Models
    'ScoringMode',
    'ScoreType',
    'ScoringType',
    'ScoreInput',
    'ResolvedScore',
    'TeamEntry',
    'PlacedScore',
    'EventPoints',
    'PreviewSummary',
    'TournamentPreview',
    # Schemas
    'PointsEntry',
    'PointsTable',
    'PointsConfig',
    'Player',
    'Tournament',
    'TournamentResult',
    'LeaderboardEntry',
    'RecalculationLogEntry',
    # Errors
    'ScoringError',
    'FieldError',
    'MissingField',
    'InvalidValue',
    'IncompleteScore',
    'IncompleteManualPoints',
    'UnresolvedTeamEntry',
    'InvalidRows',
    'InvalidResultSet',
    'MissingPointsTable',
    'RecalculationRunConflict',
    'PersistenceFailure',
    # Pipeline
    'normalize',
    'normalize_rows',
    'resolve',
    'detect_teams',
    'apply_resolution',
    'assign_points',
    'prepare_scores',
    'build_results',
    'aggregate',
    'player_history',
    # Recalculation and storage
    'RecalculationOrchestrator',
    'MemoryStorage',
    'JsonStorage',
    # Excel
    'read_score_rows',
    # Service
    'ScoringService',
]
