# eval_bar/core/display.py
"""
Maps absolute evaluations onto the evaluation bar: White's share of the bar
and the short text label shown above it.
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, TYPE_CHECKING

from eval_bar.types import EngineEval

if TYPE_CHECKING:
    from eval_bar.config.settings import DisplaySettings

NEUTRAL_FRACTION = 0.5


def cp_to_fraction(cp: int, settings: "DisplaySettings") -> float:
    """
    Compresses a centipawn score into (min_fraction, max_fraction).

    The magnitude is capped at `cp_cap` before the tanh so floating point never
    saturates to the bounds themselves. The fraction rises strictly with `cp`
    inside [-cp_cap, cp_cap] and stays flat beyond it, where tanh is already
    within 1e-8 of its limit.
    """
    capped = max(-settings.cp_cap, min(settings.cp_cap, cp))
    unit = (math.tanh(capped / settings.scale_cp) + 1) / 2
    span = settings.max_fraction - settings.min_fraction
    return settings.min_fraction + span * unit


def eval_to_fraction(evaluation: Optional[EngineEval], settings: "DisplaySettings") -> float:
    if evaluation is None:
        return NEUTRAL_FRACTION
    if evaluation.is_mate:
        # Distance does not matter, only who mates.
        return settings.max_fraction if evaluation.favors_white else settings.min_fraction
    return cp_to_fraction(evaluation.value, settings)


def eval_label(evaluation: Optional[EngineEval]) -> str:
    """
    Formats an evaluation as `+1.3`, `-0.4`, `0.0`, `M3` or `-M2`.

    Pawn values are rounded half away from zero, so -5 cp reads `-0.1`.
    """
    if evaluation is None:
        return "0.0"
    if evaluation.is_mate:
        moves = abs(evaluation.value)
        return f"M{moves}" if evaluation.favors_white else f"-M{moves}"

    pawns = (Decimal(evaluation.value) / 100).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    if pawns == 0:
        return "0.0"
    return f"{pawns:+}"
