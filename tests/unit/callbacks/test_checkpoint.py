"""
Unit tests for the ModelCheckpoint callback.
"""

from pathlib import Path

import pytest

from boost_callbacks.callbacks import CallbackList, ModelCheckpoint
from boost_callbacks.core import TrainingContext
from boost_callbacks.errors import ConfigurationError, PreconditionError
from tests.fixtures.loop import run_boosting


class TestModelCheckpoint:
    """Test periodic model saving."""

    def test_periodic_saves(self, make_context, tmp_path):
        """Saves every save_period iterations starting with the first one."""
        ctx = make_context(begin=1, end=10)
        callback = ModelCheckpoint(save_period=3, save_name=str(tmp_path / "model_%02d.json"))

        run_boosting(CallbackList([callback]), ctx)

        expected = [tmp_path / f"model_{i:02d}.json" for i in (1, 4, 7, 10)]
        assert callback.saved_paths == expected
        assert ctx.bst.saved_paths == expected
        assert all(path.exists() for path in expected)

    def test_period_zero_saves_final_iteration(self, make_context, tmp_path):
        ctx = make_context(begin=1, end=5)
        callback = ModelCheckpoint(save_period=0, save_name=tmp_path / "final_%d.model")

        run_boosting(CallbackList([callback]), ctx)

        assert callback.saved_paths == [tmp_path / "final_5.model"]

    def test_period_counts_from_resumed_start(self, make_context, tmp_path):
        ctx = make_context(begin=5, end=9)
        callback = ModelCheckpoint(save_period=2, save_name=str(tmp_path / "m%d"))

        run_boosting(CallbackList([callback]), ctx)

        assert [p.name for p in callback.saved_paths] == ["m5", "m7", "m9"]

    def test_constant_name_is_overwritten(self, make_context, tmp_path):
        ctx = make_context(begin=1, end=2)
        target = tmp_path / "latest.model"
        callback = ModelCheckpoint(save_period=1, save_name=target)

        run_boosting(CallbackList([callback]), ctx)

        assert callback.saved_paths == [target, target]
        assert target.read_text() == "fake model"

    def test_creates_parent_directories(self, make_context, tmp_path):
        ctx = make_context(begin=1, end=1)
        target = tmp_path / "nested" / "dir" / "model.json"

        ModelCheckpoint(save_name=target)(ctx)

        assert target.exists()

    def test_negative_period(self):
        with pytest.raises(ConfigurationError) as exc_info:
            ModelCheckpoint(save_period=-1)

        assert exc_info.value.error_code == "CONFIG_NEGATIVE_SAVE_PERIOD"

    def test_bad_placeholder(self):
        with pytest.raises(ConfigurationError):
            ModelCheckpoint(save_name="model_%s_%s").checkpoint_path(1)

    def test_requires_booster(self):
        with pytest.raises(PreconditionError):
            ModelCheckpoint()(TrainingContext())

    def test_checkpoint_path(self):
        assert ModelCheckpoint(save_name="xgb_%04d.model").checkpoint_path(12) == Path(
            "xgb_0012.model"
        )
