"""Score resolution: gross/net derivation from totals and handicaps."""

from typing import Union

from .errors import IncompleteScore
from .models import ResolvedScore, ScoreInput, ScoringMode


def calculate_net_score(gross_score: float, handicap: float, plus_handicap: bool = False) -> float:
    """
    Net score from a gross score.

    Scoring:
        - Normal handicap: net = gross - handicap
        - "+" handicap: net = gross + handicap
    """
    return gross_score + handicap if plus_handicap else gross_score - handicap


def calculate_gross_score(net_score: float, handicap: float) -> float:
    """Gross score from a net score: gross = net + course handicap."""
    return net_score + handicap


def resolve(score_input: ScoreInput, mode: Union[ScoringMode, str]) -> ResolvedScore:
    """
    Resolve the gross and net scores for one normalized row.

    Modes:
        - PreScored: gross and net are copied through unchanged
        - Stroke: the total is gross; net is derived with the handicap,
          honouring a "+" marker
        - StrokeNet: the total is net; gross = net + handicap, always
          additive since StrokeNet handicaps are course handicaps

    Zero and negative handicaps are valid and used as given.

    Raises:
        IncompleteScore: If a derived mode lacks the total or the handicap
    """
    mode = ScoringMode(mode)
    gross_score = score_input.gross_score
    net_score = score_input.net_score

    if mode is not ScoringMode.PRE_SCORED:
        missing = []
        if score_input.raw_total is None:
            missing.append('total')
        if score_input.handicap is None:
            missing.append('handicap')
        if missing:
            raise IncompleteScore(score_input.player_name, missing, score_input.row_number)

        if mode is ScoringMode.STROKE:
            gross_score = score_input.raw_total
            net_score = calculate_net_score(
                gross_score, score_input.handicap, score_input.handicap_plus
            )
        else:
            net_score = score_input.raw_total
            gross_score = calculate_gross_score(net_score, score_input.handicap)

    return ResolvedScore(
        player_name=score_input.player_name,
        position=score_input.position,
        gross_score=gross_score,
        net_score=net_score,
        handicap=score_input.handicap,
        points=score_input.points,
        row_number=score_input.row_number,
    )
