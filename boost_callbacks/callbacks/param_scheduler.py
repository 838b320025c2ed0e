"""
Parameter reset callback for per-iteration booster parameter schedules.
"""

import inspect
from collections.abc import Callable, Mapping, Sequence
from typing import Any

import numpy as np
from loguru import logger

from ..core.context import TrainingContext
from ..errors import ConfigurationError, PreconditionError
from .base import Callback

# Changing these mid-training would corrupt the model structure
PROTECTED_PARAMETERS = frozenset(
    {"num_class", "num_output_group", "size_leaf_vector", "updater_seq"}
)

Schedule = Sequence[Any] | np.ndarray | Callable[[int, int], Any]


def _accepts_two_args(func: Callable) -> bool:
    try:
        inspect.signature(func).bind(1, 1)
    except TypeError:
        return False
    except ValueError:
        # builtins without an introspectable signature
        return True
    return True


class ResetParameters(Callback):
    """
    Pre-iteration callback that resets booster parameters each round.

    Each entry of ``new_params`` is either a sequence with one value per
    boosting round of this run, or a function ``f(iteration, num_rounds)``
    returning the value for an iteration. Both are indexed by the
    1-based iteration within the current run, so a resumed run's
    schedule only covers the remaining rounds.

    Args:
        new_params: Mapping from parameter name to schedule
    """

    name = "reset_parameters"
    is_pre_iteration = True

    def __init__(self, new_params: Mapping[str, Schedule]):
        super().__init__()
        if not isinstance(new_params, Mapping):
            raise ConfigurationError.invalid_value(
                "new_params", type(new_params).__name__, "mapping"
            )
        for key in new_params:
            if not isinstance(key, str) or key == "":
                raise ConfigurationError.invalid_value("new_params", key, "parameter name")
        self.new_params = {k.replace(".", "_"): v for k, v in new_params.items()}
        self.num_rounds: int | None = None

    def _call_args(self) -> dict[str, Any]:
        return {"new_params": self.new_params}

    def _init(self, ctx: TrainingContext) -> None:
        if len(self.new_params) == 0:
            raise ConfigurationError.invalid_value("new_params", {}, "non-empty mapping")

        if ctx.bst is None and ctx.bst_folds is None:
            raise PreconditionError.missing_context_field(self.name, "bst", "bst_folds")

        protected = [n for n in self.new_params if n in PROTECTED_PARAMETERS]
        if protected:
            raise ConfigurationError.protected_parameters(protected)

        num_rounds = ctx.num_rounds
        for name, schedule in self.new_params.items():
            if callable(schedule):
                if not _accepts_two_args(schedule):
                    raise ConfigurationError.invalid_value(
                        f"new_params.{name}", schedule, "function of two arguments"
                    )
            elif isinstance(schedule, (Sequence, np.ndarray)) and not isinstance(
                schedule, (str, bytes)
            ):
                if len(schedule) != num_rounds:
                    raise ConfigurationError.schedule_length_mismatch(
                        name, len(schedule), num_rounds
                    )
            else:
                raise ConfigurationError.invalid_value(
                    f"new_params.{name}", schedule, "function or sequence"
                )

        self.num_rounds = num_rounds
        logger.debug(
            f"ResetParameters: scheduling {list(self.new_params)} over {num_rounds} rounds"
        )

    def resolve(self, ctx: TrainingContext) -> dict[str, Any]:
        """Concrete parameter values for the current iteration."""
        step = ctx.iteration - ctx.begin_iteration + 1
        params = {}
        for name, schedule in self.new_params.items():
            if callable(schedule):
                params[name] = schedule(step, self.num_rounds)
            else:
                params[name] = schedule[step - 1]
        return params

    def on_iteration(self, ctx: TrainingContext) -> None:
        if self.num_rounds is None:
            self._init(ctx)

        params = self.resolve(ctx)
        if ctx.bst is not None:
            ctx.bst.set_parameters(params)
        else:
            for fold in ctx.bst_folds:
                fold.booster.set_parameters(params)
        logger.debug(f"Iteration {ctx.iteration}: reset parameters {params}")
