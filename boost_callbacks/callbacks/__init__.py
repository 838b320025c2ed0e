"""
Callback system for boosting-loop hooks.
"""

from .base import (
    DEFAULT_TAIL_ORDER,
    Callback,
    CallbackList,
    CategorizedCallbacks,
    SupportsFinalize,
    add_callback,
    categorize_callbacks,
    has_callbacks,
)
from .checkpoint import ModelCheckpoint
from .cv_predict import CVPredict
from .early_stopping import EarlyStopping, EarlyStoppingState
from .linear_history import CoefficientHistory, GBLinearHistory, gblinear_history
from .metrics import EvaluationLog
from .param_scheduler import ResetParameters
from .progress import PrintEvaluation
from .utils import format_eval_string

__all__ = [
    "DEFAULT_TAIL_ORDER",
    "Callback",
    "CallbackList",
    "CategorizedCallbacks",
    "SupportsFinalize",
    "add_callback",
    "categorize_callbacks",
    "has_callbacks",
    "CoefficientHistory",
    "CVPredict",
    "EarlyStopping",
    "EarlyStoppingState",
    "EvaluationLog",
    "GBLinearHistory",
    "ModelCheckpoint",
    "PrintEvaluation",
    "ResetParameters",
    "format_eval_string",
    "gblinear_history",
]
