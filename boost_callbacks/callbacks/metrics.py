"""
Evaluation history callback for accumulating per-iteration metrics.
"""

from collections.abc import MutableSequence

import pandas as pd
from loguru import logger

from ..core.context import TrainingContext
from ..errors import PreconditionError
from .base import Callback
from .utils import normalize_metric_name


class EvaluationLog(Callback):
    """
    Callback that records evaluation results into ``ctx.evaluation_log``.

    During training one row ``{iter, <metric columns>}`` is appended per
    iteration. The finalizer turns the rows into a ``pandas.DataFrame``
    with columns ``iter`` followed by one column per metric. Dashes in
    metric names become underscores. In cross-validation, every metric
    gets adjacent ``<name>_mean`` and ``<name>_std`` columns.
    """

    name = "evaluation_log"

    def __init__(self):
        super().__init__()
        self.metric_names: list[str] | None = None
        self.columns: list[str] | None = None
        self.has_std = False

    def _init(self, ctx: TrainingContext) -> None:
        names = list(ctx.bst_evaluation.keys())
        if len(names) == 0 or any(not isinstance(n, str) or n == "" for n in names):
            raise PreconditionError.unnamed_metrics(self.name)

        self.metric_names = names
        self.has_std = ctx.bst_evaluation_err is not None
        normalized = [normalize_metric_name(n) for n in names]
        if self.has_std:
            # grouped as all means then all stds, matching row layout
            self.columns = [f"{n}_mean" for n in normalized] + [
                f"{n}_std" for n in normalized
            ]
        else:
            self.columns = normalized
        logger.debug(f"Evaluation log columns: {self.columns}")

    def on_iteration(self, ctx: TrainingContext) -> None:
        if not isinstance(ctx.evaluation_log, MutableSequence):
            raise PreconditionError(
                "'evaluation_log' has to be a list",
                callback=self.name,
                iteration=ctx.iteration,
            )
        if self.metric_names is None:
            self._init(ctx)

        if list(ctx.bst_evaluation.keys()) != self.metric_names:
            raise PreconditionError(
                f"Evaluation metrics changed during training: expected "
                f"{self.metric_names}, got {list(ctx.bst_evaluation.keys())}",
                callback=self.name,
                iteration=ctx.iteration,
            )

        values = list(ctx.bst_evaluation.values())
        if self.has_std:
            if ctx.bst_evaluation_err is None or len(ctx.bst_evaluation_err) != len(values):
                raise PreconditionError(
                    "bst_evaluation_err must match bst_evaluation",
                    callback=self.name,
                    iteration=ctx.iteration,
                )
            values += list(ctx.bst_evaluation_err.values())

        row = {"iter": ctx.iteration}
        row.update(zip(self.columns, values))
        ctx.evaluation_log.append(row)

    def on_finalize(self, ctx: TrainingContext) -> None:
        if self.metric_names is None:
            if len(ctx.bst_evaluation) == 0:
                # nothing was ever evaluated
                ctx.evaluation_log = pd.DataFrame(columns=["iter"])
                return
            self._init(ctx)

        if isinstance(ctx.evaluation_log, pd.DataFrame):
            table = ctx.evaluation_log
        else:
            table = pd.DataFrame(list(ctx.evaluation_log), columns=["iter", *self.columns])

        ctx.evaluation_log = table[["iter", *self.ordered_columns()]]

    def ordered_columns(self) -> list[str]:
        """Metric columns with each mean directly followed by its std."""
        if not self.has_std:
            return list(self.columns)
        half = len(self.columns) // 2
        means, stds = self.columns[:half], self.columns[half:]
        return [col for pair in zip(means, stds) for col in pair]
