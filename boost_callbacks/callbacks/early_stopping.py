"""
Early stopping callback to prevent overfitting.
"""

import math
import re
from enum import Enum
from typing import Any

from loguru import logger
from tqdm.auto import tqdm

from ..core.context import TrainingContext
from ..errors import ConfigurationError, ConsistencyError, PreconditionError
from .base import Callback
from .utils import format_eval_string, normalize_metric_name

# Metric families where higher is better
MAXIMIZE_METRICS = re.compile(r"(^|_)(auc|map(?!e)|ndcg)")

# Booster attribute keys holding the checkpoint-safe state
ATTR_BEST_ITERATION = "best_iteration"
ATTR_BEST_SCORE = "best_score"
ATTR_BEST_MSG = "best_msg"
ATTR_BEST_NTREELIMIT = "best_ntreelimit"


class EarlyStoppingState(Enum):
    """Lifecycle of an early stopping callback within one run."""

    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    STOPPED = "stopped"


class EarlyStopping(Callback):
    """
    Early stopping callback that stops training when a metric stops improving.

    The callback tracks the best score and iteration of one evaluation
    column. Every improvement is persisted as booster attributes, so a
    checkpoint saved right after carries it and a resumed run picks it
    up again. When ``stopping_rounds`` iterations pass without an
    improvement, ``ctx.stop_condition`` is set and ``ctx.end_iteration``
    is clamped to the current iteration.

    At finalize, ``best_iteration``, ``best_ntreelimit`` and ``best_score``
    are written onto the booster (or the cross-validation basket).

    Args:
        stopping_rounds: Rounds without improvement before stopping
        maximize: Whether higher is better; inferred from the metric name
            when None
        metric_name: Evaluation column to monitor ('-' and '_' are
            equivalent); the last column when None
        verbose: Print the monitored metric and the best iteration
        score_tolerance: Largest tracked/persisted best score difference
            attributed to float truncation
    """

    name = "early_stop"

    def __init__(
        self,
        stopping_rounds: int,
        maximize: bool | None = None,
        metric_name: str | None = None,
        verbose: bool = True,
        score_tolerance: float = 1e-14,
    ):
        super().__init__()
        if (
            isinstance(stopping_rounds, bool)
            or not isinstance(stopping_rounds, int)
            or stopping_rounds < 1
        ):
            raise ConfigurationError.invalid_value(
                "stopping_rounds", stopping_rounds, "positive int"
            )
        self.stopping_rounds = stopping_rounds
        self.maximize = maximize
        self.metric_name = metric_name
        self.verbose = verbose
        self.score_tolerance = score_tolerance

        # Internal state
        self.state = EarlyStoppingState.UNINITIALIZED
        self.metric_idx = 0
        self.monitor: str | None = None
        self.best_iteration = 0
        self.best_score = math.inf
        self.best_msg: str | None = None
        self.best_ntreelimit = 0

    def _call_args(self) -> dict[str, Any]:
        return {
            "stopping_rounds": self.stopping_rounds,
            "maximize": self.maximize,
            "metric_name": self.metric_name,
            "verbose": self.verbose,
        }

    def _announce(self, ctx: TrainingContext, message: str) -> None:
        if self.verbose and ctx.is_primary:
            tqdm.write(message)

    def _improves(self, score: float) -> bool:
        if self.maximize:
            return score > self.best_score
        return score < self.best_score

    def _init(self, ctx: TrainingContext) -> None:
        if len(ctx.bst_evaluation) == 0:
            raise PreconditionError(
                "For early stopping, watchlist must have at least one element",
                callback=self.name,
                iteration=ctx.iteration,
            )

        eval_names = [normalize_metric_name(n) for n in ctx.bst_evaluation]
        if self.metric_name is not None:
            wanted = normalize_metric_name(self.metric_name)
            if wanted not in eval_names:
                raise PreconditionError.unknown_metric(self.name, self.metric_name, eval_names)
            self.metric_idx = eval_names.index(wanted)
        elif len(eval_names) > 1:
            self.metric_idx = len(eval_names) - 1
            self._announce(
                ctx,
                f"Multiple eval metrics are present. Will use "
                f"{eval_names[self.metric_idx]} for early stopping.",
            )
        self.monitor = eval_names[self.metric_idx]

        if self.maximize is None:
            self.maximize = MAXIMIZE_METRICS.search(self.monitor) is not None

        self._announce(
            ctx,
            f"Will train until {self.monitor} hasn't improved in "
            f"{self.stopping_rounds} rounds.\n",
        )

        self.best_iteration = 0
        self.best_score = -math.inf if self.maximize else math.inf
        ctx.stop_condition = False

        if ctx.bst is not None:
            self._restore_or_persist(ctx)
        elif ctx.bst_folds is None or ctx.basket is None:
            raise PreconditionError.missing_context_field(
                self.name, "bst", "bst_folds and basket"
            )

        self.state = EarlyStoppingState.ACTIVE
        logger.debug(
            f"EarlyStopping: monitoring {self.monitor} "
            f"({'max' if self.maximize else 'min'}), best={self.best_score} "
            f"at iteration {self.best_iteration}"
        )

    def _restore_or_persist(self, ctx: TrainingContext) -> None:
        """Resume from persisted attributes, or persist the initial sentinel."""
        bst = ctx.bst
        persisted_score = bst.get_attribute(ATTR_BEST_SCORE)
        if persisted_score is not None:
            self.best_score = float(persisted_score)
            self.best_iteration = int(bst.get_attribute(ATTR_BEST_ITERATION) or 0)
            self.best_msg = bst.get_attribute(ATTR_BEST_MSG)
            ntreelimit = bst.get_attribute(ATTR_BEST_NTREELIMIT)
            self.best_ntreelimit = (
                int(ntreelimit)
                if ntreelimit is not None
                else self.best_iteration * ctx.num_parallel_tree
            )
            logger.info(
                f"EarlyStopping: resumed best {self.monitor}={self.best_score} "
                f"at iteration {self.best_iteration}"
            )
        else:
            bst.set_attributes({
                ATTR_BEST_ITERATION: str(self.best_iteration),
                ATTR_BEST_SCORE: repr(self.best_score),
            })

    def on_iteration(self, ctx: TrainingContext) -> None:
        if self.state is EarlyStoppingState.UNINITIALIZED:
            self._init(ctx)

        i = ctx.iteration
        score = list(ctx.bst_evaluation.values())[self.metric_idx]

        if self._improves(score):
            self.best_msg = format_eval_string(i, ctx.bst_evaluation, ctx.bst_evaluation_err)
            self.best_score = score
            self.best_iteration = i
            self.best_ntreelimit = self.best_iteration * ctx.num_parallel_tree
            # persist now so a checkpoint saved after this iteration carries it
            if ctx.bst is not None:
                ctx.bst.set_attributes({
                    ATTR_BEST_ITERATION: str(self.best_iteration),
                    ATTR_BEST_SCORE: repr(float(self.best_score)),
                    ATTR_BEST_MSG: self.best_msg,
                    ATTR_BEST_NTREELIMIT: str(self.best_ntreelimit),
                })
            logger.debug(f"EarlyStopping: new best {self.monitor}={score} at iteration {i}")
        elif i - self.best_iteration >= self.stopping_rounds:
            ctx.stop_condition = True
            ctx.end_iteration = i
            self.state = EarlyStoppingState.STOPPED
            self._announce(ctx, f"Stopping. Best iteration:\n{self.best_msg}\n")
            logger.info(
                f"Early stopping triggered at iteration {i}: no improvement in "
                f"{self.monitor} for {self.stopping_rounds} rounds "
                f"(best={self.best_score} at iteration {self.best_iteration})"
            )

    def on_finalize(self, ctx: TrainingContext) -> None:
        if self.state is EarlyStoppingState.UNINITIALIZED:
            self._init(ctx)

        if ctx.bst is not None:
            persisted = ctx.bst.get_attribute(ATTR_BEST_SCORE)
            if persisted is None:
                raise ConsistencyError(
                    "'best_score' attribute is missing from the booster",
                    error_code="CONSISTENCY_BEST_SCORE_MISSING",
                )
            attr_best_score = float(persisted)
            if self.best_score != attr_best_score:
                if abs(self.best_score - attr_best_score) >= self.score_tolerance:
                    raise ConsistencyError.best_score_mismatch(
                        self.best_score, attr_best_score, self.score_tolerance
                    )
                # float truncation: the persisted value wins
                self.best_score = attr_best_score
            ctx.bst.best_iteration = self.best_iteration
            ctx.bst.best_ntreelimit = self.best_ntreelimit
            ctx.bst.best_score = self.best_score
        else:
            ctx.basket.best_iteration = self.best_iteration
            ctx.basket.best_ntreelimit = self.best_ntreelimit
            ctx.basket.best_score = self.best_score
