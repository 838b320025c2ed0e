"""
Callback configuration with validation and YAML/JSON support.

Describes which built-in callbacks a training run uses and how they are
set up, so a run's bookkeeping can be stored next to its model and
rebuilt later. ResetParameters is not configurable here because its
function schedules cannot be serialized.
"""

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
import json

import yaml
from loguru import logger

from ..callbacks import (
    CallbackList,
    CVPredict,
    EarlyStopping,
    EvaluationLog,
    GBLinearHistory,
    ModelCheckpoint,
    PrintEvaluation,
)
from ..errors import ConfigurationError


@dataclass
class PrintEvaluationConfig:
    """Configuration for evaluation printing."""

    period: int = 1
    showsd: bool = True

    def __post_init__(self):
        if self.period < 0:
            raise ConfigurationError.invalid_value(
                "print_evaluation.period", self.period, "non-negative int"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "PrintEvaluationConfig":
        """Create from dictionary."""
        return cls(**config)


@dataclass
class EarlyStoppingConfig:
    """Configuration for early stopping."""

    stopping_rounds: int = 10
    maximize: Optional[bool] = None
    metric_name: Optional[str] = None
    verbose: bool = True
    score_tolerance: float = 1e-14

    def __post_init__(self):
        if self.stopping_rounds < 1:
            raise ConfigurationError.invalid_value(
                "early_stopping.stopping_rounds", self.stopping_rounds, "positive int"
            )
        if self.score_tolerance < 0:
            raise ConfigurationError.invalid_value(
                "early_stopping.score_tolerance", self.score_tolerance, "non-negative float"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "EarlyStoppingConfig":
        """Create from dictionary."""
        return cls(**config)


@dataclass
class SaveModelConfig:
    """Configuration for periodic checkpointing."""

    save_period: int = 0
    save_name: str = "xgboost.model"

    def __post_init__(self):
        if self.save_period < 0:
            raise ConfigurationError.negative_save_period(self.save_period)
        self.save_name = str(self.save_name)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "SaveModelConfig":
        """Create from dictionary."""
        return cls(**config)


@dataclass
class CVPredictConfig:
    """Configuration for out-of-fold prediction collection."""

    save_models: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "CVPredictConfig":
        """Create from dictionary."""
        return cls(**config)


@dataclass
class GBLinearHistoryConfig:
    """Configuration for linear coefficient history."""

    sparse: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "GBLinearHistoryConfig":
        """Create from dictionary."""
        return cls(**config)


_SECTIONS = {
    "print_evaluation": PrintEvaluationConfig,
    "early_stopping": EarlyStoppingConfig,
    "save_model": SaveModelConfig,
    "cv_predict": CVPredictConfig,
    "gblinear_history": GBLinearHistoryConfig,
}


@dataclass
class CallbacksConfig:
    """Configuration of the built-in callbacks of one training run.

    A section left as None disables the corresponding callback.
    """

    print_evaluation: Optional[PrintEvaluationConfig] = field(
        default_factory=PrintEvaluationConfig
    )
    evaluation_log: bool = True
    early_stopping: Optional[EarlyStoppingConfig] = None
    save_model: Optional[SaveModelConfig] = None
    cv_predict: Optional[CVPredictConfig] = None
    gblinear_history: Optional[GBLinearHistoryConfig] = None

    def __post_init__(self):
        # Ensure all sub-configs are properly typed
        for name, section_cls in _SECTIONS.items():
            value = getattr(self, name)
            if isinstance(value, dict):
                setattr(self, name, section_cls.from_dict(value))
            elif value is not None and not isinstance(value, section_cls):
                raise ConfigurationError.invalid_value(
                    name, type(value).__name__, f"{section_cls.__name__}, mapping or null"
                )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        config: Dict[str, Any] = {"evaluation_log": self.evaluation_log}
        for name in _SECTIONS:
            section = getattr(self, name)
            config[name] = section.to_dict() if section is not None else None
        return config

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "CallbacksConfig":
        """Create from dictionary."""
        unknown = set(config) - set(_SECTIONS) - {"evaluation_log"}
        if unknown:
            raise ConfigurationError.invalid_value(
                "callbacks", sorted(unknown), f"keys among {sorted(_SECTIONS)}"
            )
        return cls(**config)

    def save(self, path: Path) -> None:
        """Save configuration to file."""
        path = Path(path)
        config_dict = self.to_dict()

        if path.suffix == ".yaml" or path.suffix == ".yml":
            with open(path, "w") as f:
                yaml.dump(config_dict, f, default_flow_style=False)
        else:
            with open(path, "w") as f:
                json.dump(config_dict, f, indent=2)

        logger.info(f"Saved callback configuration to {path}")

    @classmethod
    def load(cls, path: Path) -> "CallbacksConfig":
        """Load configuration from file."""
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        if path.suffix == ".yaml" or path.suffix == ".yml":
            with open(path) as f:
                config_dict = yaml.safe_load(f) or {}
        else:
            with open(path) as f:
                config_dict = json.load(f)

        logger.info(f"Loaded callback configuration from {path}")
        return cls.from_dict(config_dict)

    def build(self) -> CallbackList:
        """Instantiate the configured callbacks in a fresh callback list."""
        callbacks = CallbackList()
        if self.print_evaluation is not None:
            callbacks.add(PrintEvaluation(**self.print_evaluation.to_dict()))
        if self.evaluation_log:
            callbacks.add(EvaluationLog())
        if self.early_stopping is not None:
            callbacks.add(EarlyStopping(**self.early_stopping.to_dict()))
        if self.save_model is not None:
            callbacks.add(ModelCheckpoint(**self.save_model.to_dict()))
        if self.gblinear_history is not None:
            callbacks.add(GBLinearHistory(**self.gblinear_history.to_dict()))
        if self.cv_predict is not None:
            callbacks.add(CVPredict(**self.cv_predict.to_dict()))
        return callbacks
