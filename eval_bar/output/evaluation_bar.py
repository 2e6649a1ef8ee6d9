# eval_bar/output/evaluation_bar.py
"""
The evaluation bar's render contract.

`EvaluationBar` turns an evaluation into a `BarFrame`: the share of the bar
filled for White, the label shown above it, and the tooltip title. It keeps
the last evaluation it was given so that a momentarily empty evaluation (the
engine restarting, or unavailable) freezes the bar instead of snapping it back
to the middle.
"""

from typing import Optional, TYPE_CHECKING

from eval_bar.core.display import eval_label, eval_to_fraction
from eval_bar.types import BarFrame, EngineEval

if TYPE_CHECKING:
    from eval_bar.config.settings import DisplaySettings


class EvaluationBar:
    """A vertical bar, White filling from the bottom."""

    def __init__(self, settings: "DisplaySettings"):
        self._settings = settings
        self._last_evaluation: Optional[EngineEval] = None

    @property
    def last_evaluation(self) -> Optional[EngineEval]:
        return self._last_evaluation

    def render(
        self,
        evaluation: Optional[EngineEval],
        thinking: bool = False,
        height: Optional[int] = None,
        width: Optional[int] = None,
    ) -> BarFrame:
        if evaluation is not None:
            self._last_evaluation = evaluation
        shown = evaluation if evaluation is not None else self._last_evaluation

        height = height or self._settings.height
        width = width or self._settings.width
        fraction = eval_to_fraction(shown, self._settings)
        label = eval_label(shown)

        return BarFrame(
            fraction=fraction,
            white_fill_percent=fraction * 100,
            white_fill_px=round(fraction * height),
            label=label,
            title=f"Eval: {label}",
            thinking=thinking,
            height=height,
            width=width,
        )
