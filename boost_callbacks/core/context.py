"""
Shared training context passed to every callback invocation.

The driver owns one TrainingContext per training run and mutates
iteration counters and evaluation results; callbacks read and write
the remaining fields. Execution is strictly serial, so writes are
visible to every callback invoked afterwards.
"""

from dataclasses import dataclass, field
from typing import Any, Sequence

import numpy as np
import pandas as pd

from .protocols import Booster


@dataclass
class Fold:
    """One cross-validation partition."""

    booster: Booster
    index: Sequence[int] | np.ndarray
    validation: Any = None


@dataclass
class CVResult:
    """Mutable result basket of a cross-validation run."""

    best_iteration: int | None = None
    best_ntreelimit: int | None = None
    best_score: float | None = None
    pred: np.ndarray | None = None
    models: list[Any] | None = None

    # Echo fields attached by the driver for later inspection
    params: dict[str, Any] = field(default_factory=dict)
    nfeatures: int | None = None
    callbacks: Any = None
    evaluation_log: pd.DataFrame | list | None = None


@dataclass
class TrainingContext:
    """Training state shared between the driver and its callbacks."""

    iteration: int = 1
    begin_iteration: int = 1
    end_iteration: int = 1

    bst_evaluation: dict[str, float] = field(default_factory=dict)
    bst_evaluation_err: dict[str, float] | None = None
    evaluation_log: list[dict[str, float]] | pd.DataFrame = field(default_factory=list)

    stop_condition: bool = False
    rank: int | None = None

    bst: Booster | None = None
    bst_folds: list[Fold] | None = None
    basket: CVResult | None = None

    num_parallel_tree: int = 1
    num_class: int = 1
    params: dict[str, Any] = field(default_factory=dict)
    data: Any = None

    @property
    def is_primary(self) -> bool:
        """Whether this worker performs user-visible side effects."""
        return self.rank is None or self.rank == 0

    @property
    def is_cv(self) -> bool:
        """Whether the run is a cross-validation run."""
        return self.bst is None and self.bst_folds is not None

    @property
    def num_rounds(self) -> int:
        """Number of boosting rounds planned for this run."""
        return self.end_iteration - self.begin_iteration + 1

    def num_rows(self) -> int:
        """Number of rows in the original training data."""
        data = self.data
        if data is None:
            return 0
        if hasattr(data, "shape"):
            return int(data.shape[0])
        if hasattr(data, "num_row"):
            return int(data.num_row())
        return len(data)
