"""Exception taxonomy for the scoring pipeline."""

from typing import Optional


class ScoringError(Exception):
    """Base class for all golfpoints errors."""


class FieldError(ScoringError):
    """A single field of one input row is missing or unusable.

    Row-level and recoverable: normalizers return these instead of raising
    so a whole upload can be checked in one pass.
    """

    def __init__(self, field: str, message: str, row_number: Optional[int] = None):
        self.field = field
        self.row_number = row_number
        prefix = f'Row {row_number}: ' if row_number is not None else ''
        super().__init__(f'{prefix}{message}')


class MissingField(FieldError):
    def __init__(self, field: str, row_number: Optional[int] = None):
        super().__init__(field, f"missing required field '{field}'", row_number)


class InvalidValue(FieldError):
    def __init__(self, field: str, value: object = None, row_number: Optional[int] = None):
        self.value = value
        super().__init__(field, f"invalid value for '{field}': {value!r}", row_number)


class IncompleteScore(ScoringError):
    """Gross/net cannot be derived (total or handicap missing)."""

    def __init__(self, player_name: str, missing: list[str], row_number: Optional[int] = None):
        self.player_name = player_name
        self.missing = missing
        self.row_number = row_number
        prefix = f'Row {row_number}: ' if row_number is not None else ''
        super().__init__(f'{prefix}cannot derive score for {player_name}, missing {", ".join(missing)}')


class IncompleteManualPoints(ScoringError):
    """A manual tournament has entries without a usable points value."""

    def __init__(self, player_names: list[str]):
        self.player_names = player_names
        super().__init__(f'Manual points missing for: {", ".join(player_names)}')


class UnresolvedTeamEntry(ScoringError):
    """Team entries need a selection before points can be assigned."""

    def __init__(self, labels: list[str], message: Optional[str] = None):
        self.labels = labels
        super().__init__(message or f'Unresolved team entries: {", ".join(labels)}')


class InvalidRows(ScoringError):
    """Raised by a commit when any input row failed normalization."""

    def __init__(self, errors: list[ScoringError]):
        self.errors = errors
        super().__init__(f'{len(errors)} row error(s): ' + '; '.join(str(e) for e in errors))


class InvalidResultSet(ScoringError):
    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__('; '.join(problems))


class MissingPointsTable(ScoringError):
    def __init__(self, category: str):
        self.category = category
        super().__init__(f'No points table configured for category: {category}')


class RecalculationRunConflict(ScoringError):
    """A recalculation run is already in progress."""


class PersistenceFailure(ScoringError):
    """The storage layer failed to read or write."""
