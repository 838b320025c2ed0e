"""
Evaluation printing callback for training visualization.
"""

from typing import Any

from tqdm.auto import tqdm

from ..core.context import TrainingContext
from ..errors import ConfigurationError
from .base import Callback
from .utils import format_eval_string


class PrintEvaluation(Callback):
    """
    Print evaluation results every ``period`` iterations.

    The first and the last iteration are always printed. Output goes
    through ``tqdm.write`` so it does not break active progress bars.
    Only the primary worker prints.

    Args:
        period: Print every this many iterations; 0 disables printing
        showsd: Print standard deviations when available (cross-validation)
    """

    name = "print_evaluation"

    def __init__(self, period: int = 1, showsd: bool = True):
        super().__init__()
        if period < 0:
            raise ConfigurationError.invalid_value("period", period, "non-negative int")
        self.period = period
        self.showsd = showsd

    def _call_args(self) -> dict[str, Any]:
        return {"period": self.period, "showsd": self.showsd}

    def should_print(self, ctx: TrainingContext) -> bool:
        if len(ctx.bst_evaluation) == 0 or self.period == 0 or not ctx.is_primary:
            return False
        i = ctx.iteration
        return (
            (i - 1) % self.period == 0
            or i == ctx.begin_iteration
            or i == ctx.end_iteration
        )

    def on_iteration(self, ctx: TrainingContext) -> None:
        if not self.should_print(ctx):
            return
        stdev = ctx.bst_evaluation_err if self.showsd else None
        tqdm.write(format_eval_string(ctx.iteration, ctx.bst_evaluation, stdev))
