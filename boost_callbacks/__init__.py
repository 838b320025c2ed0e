"""boost-callbacks - callback orchestration for gradient boosting training loops.

Progress printing, evaluation logging, early stopping, checkpointing,
parameter scheduling, cross-validation prediction and linear coefficient
history are plugged into a boosting loop as callbacks, without touching
the loop itself.

Example:
    >>> from boost_callbacks import CallbackList, EarlyStopping, EvaluationLog
    >>> callbacks = CallbackList([EarlyStopping(stopping_rounds=5), EvaluationLog()])
    >>> callbacks.names()
    ['evaluation_log', 'early_stop']
"""

from boost_callbacks.callbacks import (
    Callback,
    CallbackList,
    CoefficientHistory,
    CVPredict,
    EarlyStopping,
    EvaluationLog,
    GBLinearHistory,
    ModelCheckpoint,
    PrintEvaluation,
    ResetParameters,
    add_callback,
    categorize_callbacks,
    gblinear_history,
    has_callbacks,
)
from boost_callbacks.core import Booster, CVResult, Fold, TrainingContext
from boost_callbacks.core.config import CallbacksConfig
from boost_callbacks.errors import (
    BoostCallbackError,
    ConfigurationError,
    ConsistencyError,
    PreconditionError,
)

__version__ = "0.1.0"

__all__ = [
    "Booster",
    "BoostCallbackError",
    "Callback",
    "CallbackList",
    "CallbacksConfig",
    "CoefficientHistory",
    "ConfigurationError",
    "ConsistencyError",
    "CVPredict",
    "CVResult",
    "EarlyStopping",
    "EvaluationLog",
    "Fold",
    "GBLinearHistory",
    "ModelCheckpoint",
    "PreconditionError",
    "PrintEvaluation",
    "ResetParameters",
    "TrainingContext",
    "add_callback",
    "categorize_callbacks",
    "gblinear_history",
    "has_callbacks",
    "__version__",
]
