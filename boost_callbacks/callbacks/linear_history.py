"""
Coefficient history callback for linear boosters.

Linear boosters do not keep the path of their coefficients, so this
callback snapshots them from the model dump after every iteration.
``gblinear_history`` retrieves the resulting matrices from a trained
model or a cross-validation result.
"""

import re
from typing import Any, Literal

import numpy as np
import scipy.sparse as sp
from loguru import logger

from ..core.context import CVResult, TrainingContext
from ..core.protocols import Booster
from ..errors import ConfigurationError, PreconditionError
from .base import Callback

# Dump lines that are headers rather than coefficients
DUMP_HEADER = re.compile(r"booster|bias|weigh")

CoefficientMatrix = np.ndarray | sp.csr_matrix


def extract_coefficients(dump: list[str]) -> np.ndarray:
    """Flat coefficient vector from a linear model dump, in dump order."""
    return np.array(
        [float(line) for line in dump if line.strip() and not DUMP_HEADER.search(line)],
        dtype=np.float64,
    )


class CoefficientHistory:
    """
    Per-iteration coefficient snapshots of one model.

    Rows are iterations and columns are coefficients in dump order.
    ``kind`` selects the backing store: dense ``numpy`` rows, or
    ``scipy.sparse`` CSR rows for mostly-zero coefficient vectors.
    """

    def __init__(self, kind: Literal["dense", "sparse"] = "dense"):
        if kind not in ("dense", "sparse"):
            raise ConfigurationError.invalid_value("kind", kind, "'dense' or 'sparse'")
        self.kind = kind
        self._rows: list[CoefficientMatrix] = []
        self.num_coefficients: int | None = None

    def append(self, coefficients: np.ndarray) -> None:
        coefficients = np.asarray(coefficients, dtype=np.float64).ravel()
        if self.num_coefficients is None:
            self.num_coefficients = coefficients.size
        elif coefficients.size != self.num_coefficients:
            raise PreconditionError(
                f"Coefficient count changed during training: "
                f"{self.num_coefficients} != {coefficients.size}"
            )
        if self.kind == "sparse":
            self._rows.append(sp.csr_matrix(coefficients.reshape(1, -1)))
        else:
            self._rows.append(coefficients)

    def to_matrix(self) -> CoefficientMatrix:
        """Stack the snapshots into an (iterations x coefficients) matrix."""
        if self.kind == "sparse":
            if not self._rows:
                return sp.csr_matrix((0, self.num_coefficients or 0))
            return sp.vstack(self._rows, format="csr")
        if not self._rows:
            return np.empty((0, self.num_coefficients or 0))
        return np.vstack(self._rows)

    def __len__(self) -> int:
        return len(self._rows)


class GBLinearHistory(Callback):
    """
    Callback recording linear model coefficients after each iteration.

    After finalize, ``coefs`` holds one matrix (single model) or a list
    with one matrix per fold (cross-validation).

    Args:
        sparse: Store the history as ``scipy.sparse`` CSR matrices
    """

    name = "gblinear_history"

    def __init__(self, sparse: bool = False):
        super().__init__()
        self.sparse = sparse
        self.histories: list[CoefficientHistory] | None = None
        self.is_cv = False
        self.coefs: CoefficientMatrix | list[CoefficientMatrix] | None = None

    def _call_args(self) -> dict[str, Any]:
        return {"sparse": self.sparse}

    def _new_history(self) -> CoefficientHistory:
        return CoefficientHistory("sparse" if self.sparse else "dense")

    def _init(self, ctx: TrainingContext) -> None:
        if ctx.bst is not None:
            self.is_cv = False
            self.histories = [self._new_history()]
        elif ctx.bst_folds is not None:
            self.is_cv = True
            self.histories = [self._new_history() for _ in ctx.bst_folds]
        else:
            raise PreconditionError.missing_context_field(self.name, "bst", "bst_folds")

    def _boosters(self, ctx: TrainingContext) -> list[Booster]:
        if self.is_cv:
            return [fold.booster for fold in ctx.bst_folds]
        return [ctx.bst]

    def on_iteration(self, ctx: TrainingContext) -> None:
        if self.histories is None:
            self._init(ctx)
        for history, booster in zip(self.histories, self._boosters(ctx)):
            history.append(extract_coefficients(booster.dump_model()))

    def on_finalize(self, ctx: TrainingContext) -> None:
        if self.histories is None:
            self._init(ctx)
        if len(self.histories[0]) == 0:
            return
        matrices = [history.to_matrix() for history in self.histories]
        self.coefs = matrices if self.is_cv else matrices[0]
        logger.debug(
            f"GBLinearHistory: recorded {len(self.histories[0])} iterations "
            f"for {len(matrices)} model(s)"
        )


def select_class_columns(
    matrix: CoefficientMatrix, class_index: int, num_class: int
) -> CoefficientMatrix:
    """Columns of one class in a multi-class coefficient matrix.

    Coefficients are laid out class-minor, so a class's columns are
    every ``num_class``-th column starting at ``class_index``.
    """
    per_class = matrix.shape[1] // num_class
    columns = np.arange(class_index, per_class * num_class, num_class)
    return matrix[:, columns]


def _find_history(model: Any) -> GBLinearHistory:
    callbacks = getattr(model, "callbacks", None)
    for callback in callbacks or []:
        if getattr(callback, "name", None) == GBLinearHistory.name:
            return callback
    raise PreconditionError(
        "model must be trained while using the GBLinearHistory callback",
        callback=GBLinearHistory.name,
    )


def _num_class_from_dump(dump: list[str]) -> int:
    lines = [line.strip() for line in dump]
    if len(lines) < 2 or lines[1] != "bias:":
        raise PreconditionError("It does not appear to be a gblinear model")
    weight_lines = [i for i, line in enumerate(lines) if line == "weight:"]
    if len(weight_lines) != 1:
        raise PreconditionError("It does not appear to be a gblinear model")
    # one bias value per class sits between the 'bias:' and 'weight:' headers
    return weight_lines[0] - 2


def gblinear_history(
    model: Booster | CVResult, class_index: int | None = None
) -> CoefficientMatrix | list[CoefficientMatrix]:
    """
    Extract the coefficient history recorded by ``GBLinearHistory``.

    Args:
        model: A trained booster (with a ``callbacks`` attribute) or a
            cross-validation result
        class_index: Zero-based class whose coefficients to return for
            multi-class models; all coefficients when None. Ignored for
            single-class models.

    Returns:
        A dense or sparse (iterations x coefficients) matrix, or a list of
        such matrices (one per fold) for cross-validation results
    """
    is_cv = isinstance(model, CVResult)
    if not is_cv and not isinstance(model, Booster):
        raise ConfigurationError.invalid_value(
            "model", type(model).__name__, "Booster or CVResult"
        )
    history = _find_history(model)

    if is_cv:
        if model.params.get("booster") != "gblinear":
            raise PreconditionError("It does not appear to be a gblinear model")
        num_class = model.params.get("num_class") or 1
    else:
        num_class = _num_class_from_dump(model.dump_model())

    if class_index is not None and num_class > 1 and not 0 <= class_index < num_class:
        raise ConfigurationError.invalid_value(
            "class_index", class_index, f"int within [0, {num_class - 1}]"
        )

    coef_path = history.coefs
    if coef_path is None:
        raise PreconditionError(
            "No coefficient history was recorded", callback=GBLinearHistory.name
        )
    if class_index is not None and num_class > 1:
        if isinstance(coef_path, list):
            return [select_class_columns(m, class_index, num_class) for m in coef_path]
        return select_class_columns(coef_path, class_index, num_class)
    return coef_path
