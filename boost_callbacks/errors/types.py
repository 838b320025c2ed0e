"""Specific error types for the callback layer."""

from __future__ import annotations

from typing import Any, Iterable, Optional

from .base import BoostCallbackError


class ConfigurationError(BoostCallbackError):
    """Invalid callback configuration, raised at construction or first use."""

    def __init__(
        self,
        message: str,
        *,
        field_path: Optional[str] = None,
        invalid_value: Any = None,
        expected_type: Optional[str] = None,
        **kwargs: Any,
    ):
        """Initialize configuration error."""
        super().__init__(message, **kwargs)

        if field_path:
            self.context.add_technical_detail("field_path", field_path)
        if invalid_value is not None:
            self.context.add_technical_detail("invalid_value", str(invalid_value))
        if expected_type:
            self.context.add_technical_detail("expected_type", expected_type)

    @classmethod
    def invalid_value(
        cls,
        field_path: str,
        value: Any,
        expected: str,
    ) -> "ConfigurationError":
        """Create error for invalid configuration value."""
        error = cls(
            f"Invalid value for {field_path}: got {value!r}, expected {expected}",
            field_path=field_path,
            invalid_value=value,
            expected_type=expected,
            error_code="CONFIG_INVALID_VALUE",
        )
        error.with_suggestion(f"Ensure {field_path} is a valid {expected}")
        return error

    @classmethod
    def negative_save_period(cls, save_period: int) -> "ConfigurationError":
        """Create error for a negative checkpoint period."""
        error = cls(
            "'save_period' cannot be negative",
            field_path="save_period",
            invalid_value=save_period,
            error_code="CONFIG_NEGATIVE_SAVE_PERIOD",
        )
        error.with_suggestion("Use 0 to save only at the final iteration")
        return error

    @classmethod
    def protected_parameters(cls, names: Iterable[str]) -> "ConfigurationError":
        """Create error for parameters that cannot change during boosting."""
        names = list(names)
        error = cls(
            f"Parameters {', '.join(names)} cannot be changed during boosting",
            field_path="new_params",
            invalid_value=names,
            error_code="CONFIG_PROTECTED_PARAMETER",
        )
        error.with_suggestion("Set these parameters before training starts instead")
        return error

    @classmethod
    def schedule_length_mismatch(
        cls, name: str, length: int, num_rounds: int
    ) -> "ConfigurationError":
        """Create error for a parameter schedule of the wrong length."""
        error = cls(
            f"Length of '{name}' has to be equal to the number of boosting rounds "
            f"({length} != {num_rounds})",
            field_path=f"new_params.{name}",
            invalid_value=length,
            expected_type=f"sequence of length {num_rounds}",
            error_code="CONFIG_SCHEDULE_LENGTH",
        )
        error.with_suggestion(
            "When resuming training, the schedule covers only the rounds of the current run"
        )
        return error

    @classmethod
    def malformed_callbacks(cls, reason: str) -> "ConfigurationError":
        """Create error for a malformed callback list."""
        return cls(
            f"Malformed callback list: {reason}",
            field_path="callbacks",
            error_code="CONFIG_MALFORMED_CALLBACKS",
        )


class PreconditionError(BoostCallbackError):
    """Training context does not provide what a callback requires."""

    def __init__(
        self,
        message: str,
        *,
        callback: Optional[str] = None,
        iteration: Optional[int] = None,
        **kwargs: Any,
    ):
        """Initialize precondition error."""
        super().__init__(message, **kwargs)

        if callback:
            self.context.callback = callback
        if iteration is not None:
            self.context.iteration = iteration

    @classmethod
    def missing_context_field(cls, callback: str, *fields: str) -> "PreconditionError":
        """Create error for missing training context fields."""
        wanted = " or ".join(f"'{f}'" for f in fields)
        error = cls(
            f"'{callback}' callback requires {wanted} in the training context",
            callback=callback,
            error_code="PRECONDITION_MISSING_FIELD",
        )
        error.with_context(fields=list(fields))
        return error

    @classmethod
    def unnamed_metrics(cls, callback: str) -> "PreconditionError":
        """Create error for evaluation results without proper names."""
        error = cls(
            "bst_evaluation must have non-empty names",
            callback=callback,
            error_code="PRECONDITION_UNNAMED_METRICS",
        )
        error.with_suggestion("Name every entry of the evaluation watchlist")
        return error

    @classmethod
    def unknown_metric(
        cls, callback: str, metric_name: str, available: Iterable[str]
    ) -> "PreconditionError":
        """Create error for a requested metric missing from evaluation results."""
        available = list(available)
        error = cls(
            f"'metric_name' for early stopping is not one of the following: "
            f"{' '.join(available)}",
            callback=callback,
            error_code="PRECONDITION_UNKNOWN_METRIC",
        )
        error.with_context(metric_name=metric_name, available=available)
        return error


class ConsistencyError(BoostCallbackError):
    """Internal state diverged from externally persisted state."""

    @classmethod
    def best_score_mismatch(
        cls, tracked: float, persisted: float, tolerance: float
    ) -> "ConsistencyError":
        """Create error for diverging best scores."""
        error = cls(
            f"Inconsistent 'best_score' values between the callback state: {tracked} "
            f"and the booster attribute: {persisted}",
            error_code="CONSISTENCY_BEST_SCORE",
        )
        error.with_context(tracked=tracked, persisted=persisted, tolerance=tolerance)
        return error
