"""
Cross-validation prediction callback collecting out-of-fold predictions.
"""

from typing import Any

import numpy as np
from loguru import logger

from ..core.context import TrainingContext
from ..errors import PreconditionError
from .base import Callback


class CVPredict(Callback):
    """
    Finalizer that assembles out-of-fold predictions of a CV run.

    Every fold predicts its held-out rows and the results are scattered
    into one array aligned with the original row order, stored as
    ``basket.pred``. It is 2-D ``(rows, num_class)`` for multi-class
    models and 1-D otherwise. Rows that no fold holds out stay NaN.
    Predictions are only meaningful for non-overlapping folds; with
    overlapping folds the last fold to cover a row wins.

    When early stopping ran, only rounds up to the best iteration are
    used, so it must be finalized first (the callback list guarantees it).

    Args:
        save_models: Also keep the finalized fold models in ``basket.models``
    """

    name = "cv_predict"

    def __init__(self, save_models: bool = False):
        super().__init__()
        self.save_models = save_models

    def _call_args(self) -> dict[str, Any]:
        return {"save_models": self.save_models}

    def on_iteration(self, ctx: TrainingContext) -> None:
        # predictions are only assembled once training has finished
        return None

    def iteration_range(self, ctx: TrainingContext) -> tuple[int, int]:
        """Rounds used for prediction."""
        if ctx.params.get("booster") == "gblinear":
            # linear boosters have no notion of rounds to slice
            return (1, 1)
        best = ctx.basket.best_iteration
        last = best if best is not None else ctx.end_iteration
        return (1, last + 1)

    def on_finalize(self, ctx: TrainingContext) -> None:
        if ctx.basket is None or ctx.bst_folds is None:
            raise PreconditionError.missing_context_field(
                self.name, "basket and bst_folds"
            )
        if ctx.data is None:
            raise PreconditionError.missing_context_field(self.name, "data")

        num_rows = ctx.num_rows()
        if ctx.num_class > 1:
            pred = np.full((num_rows, ctx.num_class), np.nan, dtype=np.float64)
        else:
            pred = np.full(num_rows, np.nan, dtype=np.float64)

        iteration_range = self.iteration_range(ctx)
        for fold in ctx.bst_folds:
            fold_pred = fold.booster.predict(
                fold.validation, iteration_range=iteration_range, reshape=True
            )
            pred[np.asarray(fold.index)] = fold_pred
        ctx.basket.pred = pred
        logger.debug(
            f"CVPredict: collected predictions for {len(ctx.bst_folds)} folds "
            f"using iteration range {iteration_range}"
        )

        if self.save_models:
            models = []
            for fold in ctx.bst_folds:
                fold.booster.set_attributes({"niter": str(ctx.end_iteration - 1)})
                models.append(fold.booster.finalize(save_raw=True))
            ctx.basket.models = models
