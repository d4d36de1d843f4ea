"""Row normalization: raw spreadsheet rows to canonical ScoreInput records.

Header names in uploaded results vary between scoring systems ("Player",
"Player Name", "Pos", "Course Handicap", ...). Every logical field has an
ordered alias list in constants.py; the first alias present with a
non-blank value wins.
"""

import logging
import math
from typing import Any, Mapping, Optional, Sequence, Union

from .constants import (
    BLANK_VALUES,
    GROSS_ALIASES,
    HANDICAP_ALIASES,
    NET_ALIASES,
    PLAYER_ALIASES,
    POINTS_ALIASES,
    POSITION_ALIASES,
    TIE_MARKER,
    TOTAL_ALIASES,
)
from .errors import FieldError, InvalidValue, MissingField
from .models import ScoreInput, ScoringMode

logger = logging.getLogger('golfpoints.normalizer')


def is_blank(value: Any) -> bool:
    """True for empty cells and placeholders such as 'N/A', '-' or 'DNF'."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str):
        return value.strip().lower() in BLANK_VALUES
    return False


def _canonical_keys(row: Mapping[Any, Any]) -> dict[str, Any]:
    return {str(key).strip().lower(): value for key, value in row.items() if key is not None}


def lookup(row: Mapping[str, Any], aliases: Sequence[str]) -> Optional[Any]:
    """Return the value of the first alias present in the row with a non-blank value."""
    for alias in aliases:
        value = row.get(alias)
        if not is_blank(value):
            return value
    return None


def parse_number(value: Any, field: str, row_number: Optional[int] = None) -> float:
    """Parse a numeric cell; raises InvalidValue for anything non-numeric."""
    if isinstance(value, bool):
        raise InvalidValue(field, value, row_number)
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            raise InvalidValue(field, value, row_number) from None
    if not math.isfinite(number):
        raise InvalidValue(field, value, row_number)
    return number


def parse_handicap(value: Any, row_number: Optional[int] = None) -> tuple[float, bool]:
    """
    Parse a handicap cell into (value, plus_marker).

    A leading "+" is stripped before parsing and reported separately; the
    numeric sign is kept as written, so "-2" stays -2.0 and "+2" is 2.0
    with the marker set.

    Examples:
        "12"   -> (12.0, False)
        "+2.4" -> (2.4, True)
        -1     -> (-1.0, False)
    """
    if not isinstance(value, str):
        return parse_number(value, 'handicap', row_number), False

    text = value.strip()
    plus = text.startswith('+')
    if plus:
        text = text[1:].strip()
    try:
        return parse_number(text, 'handicap', row_number), plus
    except InvalidValue:
        raise InvalidValue('handicap', value, row_number) from None


def parse_position(value: Any, row_number: Optional[int] = None) -> int:
    """Parse a finishing position; accepts a leading tie marker such as 'T3'."""
    raw = value
    if isinstance(value, str):
        value = value.strip()
        if value[:1].upper() == TIE_MARKER:
            value = value[1:].strip()
    try:
        number = parse_number(value, 'position', row_number)
    except InvalidValue:
        raise InvalidValue('position', raw, row_number) from None
    if not number.is_integer() or number < 1:
        raise InvalidValue('position', raw, row_number)
    return int(number)


def normalize(
    raw_row: Mapping[Any, Any],
    scoring_mode: Union[ScoringMode, str],
    row_number: int = 1,
) -> Union[ScoreInput, FieldError]:
    """
    Normalize one raw row into a ScoreInput.

    Args:
        raw_row: Mapping of header -> cell value, naming not guaranteed
        scoring_mode: How scores are expressed in this upload
        row_number: 1-based ingestion order, used when no position column exists

    Returns:
        ScoreInput on success, otherwise the FieldError describing the
        first problem found. Nothing is raised so callers can keep going
        and report every bad row at once.
    """
    mode = ScoringMode(scoring_mode)
    row = _canonical_keys(raw_row)

    try:
        name_value = lookup(row, PLAYER_ALIASES)
        player_name = ' '.join(str(name_value).split()) if name_value is not None else ''
        if not player_name:
            raise MissingField('player', row_number)

        position_value = lookup(row, POSITION_ALIASES)
        if position_value is None:
            position = row_number
        else:
            position = parse_position(position_value, row_number)

        score = ScoreInput(player_name=player_name, position=position, row_number=row_number)

        handicap_value = lookup(row, HANDICAP_ALIASES[mode.value])
        if handicap_value is not None:
            score.handicap, score.handicap_plus = parse_handicap(handicap_value, row_number)

        if mode is ScoringMode.PRE_SCORED:
            gross_value = lookup(row, GROSS_ALIASES)
            net_value = lookup(row, NET_ALIASES)
            if gross_value is not None:
                score.gross_score = parse_number(gross_value, 'gross', row_number)
            if net_value is not None:
                score.net_score = parse_number(net_value, 'net', row_number)
        else:
            total_value = lookup(row, TOTAL_ALIASES)
            if total_value is not None:
                score.raw_total = parse_number(total_value, 'total', row_number)

        points_value = lookup(row, POINTS_ALIASES)
        if points_value is not None:
            score.points = parse_number(points_value, 'points', row_number)
            if score.points < 0:
                raise InvalidValue('points', points_value, row_number)

    except FieldError as e:
        logger.debug(f'Row {row_number} rejected: {e}')
        return e

    return score


def normalize_rows(
    rows: Sequence[Mapping[Any, Any]],
    scoring_mode: Union[ScoringMode, str],
) -> tuple[list[ScoreInput], list[FieldError]]:
    """
    Normalize every row of an upload.

    Returns:
        Tuple of (inputs, errors) - all successfully parsed rows and one
        FieldError per rejected row
    """
    inputs: list[ScoreInput] = []
    errors: list[FieldError] = []

    for index, row in enumerate(rows, 1):
        result = normalize(row, scoring_mode, row_number=index)
        if isinstance(result, FieldError):
            errors.append(result)
        else:
            inputs.append(result)

    if errors:
        logger.info(f'Normalized {len(inputs)} rows, {len(errors)} rejected')
    return inputs, errors
