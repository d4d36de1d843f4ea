"""Data models for the golfpoints scoring pipeline."""

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ScoringMode(str, Enum):
    """How the scores in an upload are expressed."""
    STROKE = 'Stroke'          # Total is gross, net derived
    STROKE_NET = 'StrokeNet'   # Total is net, gross derived
    PRE_SCORED = 'PreScored'   # Gross and net given directly


class ScoreType(str, Enum):
    """Which score a ranking (and leaderboard) is built from."""
    NET = 'net'
    GROSS = 'gross'


class ScoringType(str, Enum):
    """Which rankings a tournament awards points for."""
    NET = 'net'
    GROSS = 'gross'
    BOTH = 'both'

    def score_types(self) -> list[ScoreType]:
        if self is ScoringType.BOTH:
            return [ScoreType.NET, ScoreType.GROSS]
        return [ScoreType(self.value)]


@dataclass
class ScoreInput:
    """Canonical form of one raw input row."""
    player_name: str
    position: int
    raw_total: Optional[float] = None
    gross_score: Optional[float] = None
    net_score: Optional[float] = None
    handicap: Optional[float] = None
    handicap_plus: bool = False  # handicap was written with a leading "+"
    points: Optional[float] = None  # manual tournaments only
    row_number: int = 0


@dataclass(frozen=True)
class ResolvedScore:
    """One player's finished score for a tournament."""
    player_name: str
    position: int
    gross_score: Optional[float] = None
    net_score: Optional[float] = None
    handicap: Optional[float] = None
    player_id: Optional[int] = None
    points: Optional[float] = None
    row_number: int = 0

    def score_for(self, score_type: ScoreType) -> Optional[float]:
        return self.net_score if score_type is ScoreType.NET else self.gross_score


@dataclass(frozen=True)
class TeamEntry:
    """A multi-player entry such as "Smith/Jones" awaiting a selection."""
    original_label: str
    candidate_names: tuple[str, ...]


@dataclass(frozen=True)
class PlacedScore:
    """A score placed in one ranking, with the points it earned."""
    score: ResolvedScore
    position: int
    display_position: str
    tied_position: bool
    points: float


@dataclass(frozen=True)
class EventPoints:
    """One event in a player's season history."""
    tournament_id: int
    tournament_name: str
    date: datetime.date
    category: str
    display_position: str
    points: float
    counted: bool  # among the player's best N events


@dataclass
class PreviewSummary:
    total_players: int = 0
    new_players: int = 0
    existing_players: int = 0
    total_points: float = 0.0
    total_gross_points: float = 0.0
    ties_detected: bool = False
    row_errors: int = 0


@dataclass
class TournamentPreview:
    """Result of previewing an upload; nothing here is persisted."""
    results: list = field(default_factory=list)  # list[TournamentResult]
    summary: PreviewSummary = field(default_factory=PreviewSummary)
    errors: list = field(default_factory=list)  # row-level ScoringErrors
    pending_teams: list[TeamEntry] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def needs_team_resolution(self) -> bool:
        return bool(self.pending_teams)
