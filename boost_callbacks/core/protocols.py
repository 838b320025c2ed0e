"""Protocols for the boosting engine collaborators consumed by callbacks."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class Booster(Protocol):
    """A live booster handle owned by the boosting engine.

    Callbacks never fit or serialize models themselves; they only use the
    operations below.
    """

    def predict(
        self,
        data: Any,
        iteration_range: tuple[int, int] = (0, 0),
        reshape: bool = False,
    ) -> np.ndarray:
        """Predict on data using only the rounds in iteration_range."""
        ...

    def get_attribute(self, key: str) -> str | None:
        """Read a persisted attribute, None when absent."""
        ...

    def set_attributes(self, attributes: Mapping[str, str | None]) -> None:
        """Persist attributes on the handle (None deletes a key)."""
        ...

    def set_parameters(self, params: Mapping[str, Any]) -> None:
        """Push new training parameters into the live booster."""
        ...

    def dump_model(self) -> list[str]:
        """Textual model dump, one line per entry."""
        ...

    def save_model(self, path: str | Path) -> None:
        """Persist the model to storage."""
        ...

    def finalize(self, save_raw: bool = True) -> Any:
        """Convert the handle into a standalone model object."""
        ...
