"""Helpers shared by the evaluation-aware callbacks."""

from typing import Mapping

from ..errors import PreconditionError


def normalize_metric_name(name: str) -> str:
    """Make a metric name identifier-friendly ('dtest-auc' -> 'dtest_auc')."""
    return name.replace("-", "_")


def format_eval_string(
    iteration: int,
    eval_res: Mapping[str, float],
    eval_err: Mapping[str, float] | None = None,
) -> str:
    """Format one iteration's evaluation results as a tab separated line."""
    if len(eval_res) == 0:
        raise PreconditionError("no evaluation results", iteration=iteration)
    names = list(eval_res.keys())
    if any(not isinstance(name, str) or name == "" for name in names):
        raise PreconditionError(
            "evaluation results must have names", iteration=iteration
        )

    if eval_err is not None:
        if len(eval_res) != len(eval_err):
            raise PreconditionError(
                "eval_res & eval_err lengths mismatch", iteration=iteration
            )
        res = "\t".join(
            f"{name}:{value:f}+{err:f}"
            for (name, value), err in zip(eval_res.items(), eval_err.values())
        )
    else:
        res = "\t".join(f"{name}:{value:f}" for name, value in eval_res.items())
    return f"[{iteration}]\t{res}"
