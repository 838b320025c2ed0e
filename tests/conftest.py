"""
Pytest configuration and shared fixtures for callback tests.
"""

# Add project root to path
import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from boost_callbacks.core import CVResult, Fold, TrainingContext
from tests.fixtures.boosters import FakeBooster


@pytest.fixture
def booster():
    """A fresh fake booster."""
    return FakeBooster()


@pytest.fixture
def make_context():
    """Factory for single-booster training contexts."""

    def _make(begin: int = 1, end: int = 10, **kwargs) -> TrainingContext:
        kwargs.setdefault("bst", FakeBooster())
        return TrainingContext(
            iteration=begin, begin_iteration=begin, end_iteration=end, **kwargs
        )

    return _make


@pytest.fixture
def make_cv_context():
    """Factory for cross-validation contexts with folds over ``num_rows`` rows."""

    def _make(
        fold_indices=((0, 2, 4), (1, 3, 5)),
        num_rows: int = 6,
        begin: int = 1,
        end: int = 10,
        **kwargs,
    ) -> TrainingContext:
        folds = [
            Fold(
                booster=FakeBooster(predictions=np.full(len(index), float(k + 1))),
                index=np.asarray(index),
                validation=f"fold{k}-valid",
            )
            for k, index in enumerate(fold_indices)
        ]
        return TrainingContext(
            iteration=begin,
            begin_iteration=begin,
            end_iteration=end,
            bst_folds=folds,
            basket=CVResult(),
            data=np.zeros((num_rows, 3)),
            **kwargs,
        )

    return _make
