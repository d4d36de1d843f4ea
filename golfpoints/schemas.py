"""Pydantic schemas for configuration and persisted records."""

import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .constants import TOURNAMENT_TYPES
from .errors import MissingPointsTable
from .models import ScoreType, ScoringMode, ScoringType


def _check_categories(v):
    for category in v:
        if category not in TOURNAMENT_TYPES:
            raise ValueError(f'Invalid tournament category: {category}')
    return v


class PointsEntry(BaseModel):
    """Points awarded for one finishing position."""

    position: int = Field(..., ge=1)
    points: float = Field(..., ge=0)

    class Config:
        extra = 'forbid'
        frozen = True


class PointsTable(BaseModel):
    """Ordered position -> points table for one tournament category."""

    entries: list[PointsEntry] = Field(default_factory=list)

    @field_validator('entries')
    @classmethod
    def validate_positions(cls, v):
        """Ensure every position appears once."""
        seen = set()
        for entry in v:
            if entry.position in seen:
                raise ValueError(f'Duplicate position in points table: {entry.position}')
            seen.add(entry.position)
        return sorted(v, key=lambda e: e.position)

    @classmethod
    def from_points(cls, points: list[float]) -> 'PointsTable':
        """Build a table from a plain list where index 0 is 1st place."""
        return cls(entries=[PointsEntry(position=i, points=p) for i, p in enumerate(points, 1)])

    def points_for(self, position: int) -> float:
        """Points for a 1-based position, 0 once the table is exhausted."""
        if position < 1:
            return 0.0
        for entry in self.entries:
            if entry.position == position:
                return entry.points
        return 0.0

    def __len__(self) -> int:
        return len(self.entries)

    class Config:
        extra = 'forbid'
        frozen = True


class PointsConfig(BaseModel):
    """Versioned points tables for every tournament category."""

    version: int = Field(1, ge=1)
    updated_at: datetime.datetime
    tables: dict[str, PointsTable]

    @field_validator('tables')
    @classmethod
    def validate_categories(cls, v):
        return _check_categories(v)

    def table_for(self, category: str) -> PointsTable:
        try:
            return self.tables[category]
        except KeyError:
            raise MissingPointsTable(category) from None

    class Config:
        extra = 'forbid'
        frozen = True


class SeasonConfig(BaseModel):
    """Season configuration settings."""

    season: int = Field(..., ge=2000, le=2100)
    events_counted: int = Field(8, ge=1, le=100)
    recalculation_workers: int = Field(4, ge=1, le=32)
    team_separator: str = Field('/', min_length=1, max_length=3)
    points_tables: dict[str, list[float]]

    @field_validator('points_tables')
    @classmethod
    def validate_points_tables(cls, v):
        """Ensure categories are known and points are non-negative."""
        _check_categories(v)
        for category, points in v.items():
            if any(p < 0 for p in points):
                raise ValueError(f'Negative points in {category} table')
        return v

    class Config:
        extra = 'forbid'


class Player(BaseModel):
    """Player directory record."""

    id: int = Field(..., ge=1)
    name: str = Field(..., min_length=1)
    default_handicap: float | None = None

    class Config:
        extra = 'forbid'


class Tournament(BaseModel):
    """Tournament metadata. is_manual never changes after creation."""

    id: int | None = Field(None, ge=1)
    name: str = Field(..., min_length=1)
    date: datetime.date
    category: str = Field(..., pattern=r'^(major|tour|league|supr)$')
    scoring_mode: ScoringMode = ScoringMode.STROKE_NET
    scoring_type: ScoringType = ScoringType.NET
    is_manual: bool = False

    class Config:
        extra = 'forbid'


class TournamentSource(BaseModel):
    """Raw rows and team selections a tournament was committed from."""

    tournament_id: int | None = None
    rows: list[dict[str, Any]]
    team_resolution: dict[str, str] = Field(default_factory=dict)

    class Config:
        extra = 'forbid'


class TournamentResult(BaseModel):
    """One player's placing and points in one tournament."""

    tournament_id: int | None = None
    player_id: int | None = None
    player_name: str = Field(..., min_length=1)
    position: int = Field(..., ge=1)
    display_position: str
    tied_position: bool = False
    gross_score: float | None = None
    net_score: float | None = None
    handicap: float | None = None
    points: float = Field(0.0, ge=0)
    gross_position: int | None = Field(None, ge=1)
    gross_display_position: str | None = None
    gross_points: float = Field(0.0, ge=0)
    is_new_player: bool = False

    def points_for(self, score_type: ScoreType) -> float:
        return self.points if score_type is ScoreType.NET else self.gross_points

    class Config:
        extra = 'forbid'
        frozen = True


class LeaderboardEntry(BaseModel):
    """A player's season standing for one score type."""

    player_id: int | None = None
    player_name: str
    score_type: ScoreType
    category_points: dict[str, float] = Field(default_factory=dict)
    ranked_event_points: list[float] = Field(default_factory=list)
    overall_points: float = Field(0.0, ge=0)
    events_played: int = Field(0, ge=0)
    events_counted: int = Field(8, ge=1)
    rank: int = Field(..., ge=1)

    @property
    def counted_points(self) -> list[float]:
        return self.ranked_event_points[:self.events_counted]

    @property
    def dropped_points(self) -> list[float]:
        """Event points excluded from the total by the best-N rule."""
        return self.ranked_event_points[self.events_counted:]

    class Config:
        extra = 'forbid'
        frozen = True


class RecalculationError(BaseModel):
    tournament_id: int | None = None
    message: str

    class Config:
        extra = 'forbid'


class RecalculationLogEntry(BaseModel):
    """Audit record of one recalculation run."""

    run_id: str
    status: str = Field(..., pattern=r'^(Running|Completed|Failed)$')
    started_at: datetime.datetime
    finished_at: datetime.datetime | None = None
    points_config_version: int = Field(1, ge=1)
    tournaments_processed: int = Field(0, ge=0)
    tournaments_skipped: int = Field(0, ge=0)
    category: str | None = None
    tournament_ids: list[int] | None = None
    cancelled: bool = False
    errors: list[RecalculationError] = Field(default_factory=list)

    class Config:
        extra = 'forbid'


class StorageSnapshot(BaseModel):
    """Complete JSON storage file structure."""

    points_config: PointsConfig | None = None
    players: list[Player] = Field(default_factory=list)
    tournaments: list[Tournament] = Field(default_factory=list)
    sources: list[TournamentSource] = Field(default_factory=list)
    results: list[TournamentResult] = Field(default_factory=list)
    leaderboards: dict[str, list[LeaderboardEntry]] = Field(default_factory=dict)
    recalculation_logs: list[RecalculationLogEntry] = Field(default_factory=list)

    class Config:
        extra = 'forbid'
