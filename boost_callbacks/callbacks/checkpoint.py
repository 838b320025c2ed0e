"""
Model checkpoint callback for saving models during training.
"""

from pathlib import Path
from typing import Any

from loguru import logger

from ..core.context import TrainingContext
from ..errors import ConfigurationError, PreconditionError
from .base import Callback


class ModelCheckpoint(Callback):
    """
    Callback to save the booster periodically or at the end of training.

    Args:
        save_period: Save every this many iterations, counted from the
            first iteration of the run; 0 saves only at the last iteration
        save_name: Destination path. May contain one printf-style integer
            placeholder for the iteration, e.g. ``"model_%04d.json"``
        verbose: Whether to log saved paths
    """

    name = "save_model"

    def __init__(
        self,
        save_period: int = 0,
        save_name: str | Path = "xgboost.model",
        verbose: bool = True,
    ):
        super().__init__()
        if save_period < 0:
            raise ConfigurationError.negative_save_period(save_period)
        self.save_period = save_period
        self.save_name = str(save_name)
        self.verbose = verbose
        self.saved_paths: list[Path] = []

    def _call_args(self) -> dict[str, Any]:
        return {"save_period": self.save_period, "save_name": self.save_name}

    def checkpoint_path(self, iteration: int) -> Path:
        """Destination path for the given iteration."""
        if "%" in self.save_name:
            try:
                return Path(self.save_name % iteration)
            except (TypeError, ValueError) as e:
                raise ConfigurationError.invalid_value(
                    "save_name", self.save_name, "path with one integer placeholder"
                ) from e
        return Path(self.save_name)

    def should_save(self, ctx: TrainingContext) -> bool:
        if self.save_period > 0:
            return (ctx.iteration - ctx.begin_iteration) % self.save_period == 0
        return ctx.iteration == ctx.end_iteration

    def on_iteration(self, ctx: TrainingContext) -> None:
        if ctx.bst is None:
            raise PreconditionError.missing_context_field(self.name, "bst")

        if not self.should_save(ctx):
            return

        checkpoint_path = self.checkpoint_path(ctx.iteration)
        checkpoint_path.parent.mkdir(parents=True, exist_ok=True)
        ctx.bst.save_model(checkpoint_path)
        self.saved_paths.append(checkpoint_path)

        if self.verbose:
            logger.info(f"Saved checkpoint to {checkpoint_path}")
