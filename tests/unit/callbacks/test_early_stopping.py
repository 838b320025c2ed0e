"""
Unit tests for the EarlyStopping callback.
"""

import math

import pytest

from boost_callbacks.callbacks import CallbackList, EarlyStopping, EarlyStoppingState
from boost_callbacks.core import TrainingContext
from boost_callbacks.errors import ConfigurationError, ConsistencyError, PreconditionError
from tests.fixtures.loop import run_boosting


def auc_history(*values):
    return [{"test-auc": v} for v in values]


class TestEarlyStopping:
    """Test early stopping on a single booster."""

    def test_stops_after_stagnation(self, make_context):
        """Training stops stopping_rounds after the best iteration."""
        ctx = make_context(begin=1, end=10)
        callback = EarlyStopping(stopping_rounds=2)

        run_boosting(CallbackList([callback]), ctx, auc_history(0.5, 0.6, 0.55, 0.52, 0.7))

        assert ctx.stop_condition is True
        assert ctx.iteration == 4
        assert ctx.end_iteration == 4
        assert callback.state is EarlyStoppingState.STOPPED
        assert ctx.bst.best_iteration == 2
        assert ctx.bst.best_score == 0.6
        assert ctx.bst.best_ntreelimit == 2

    def test_improvements_are_persisted(self, make_context):
        """Booster attributes always reflect the latest best."""
        ctx = make_context(begin=1, end=10)
        callback = EarlyStopping(stopping_rounds=5, verbose=False)

        for i, score in enumerate([0.5, 0.6, 0.55], start=1):
            ctx.iteration = i
            ctx.bst_evaluation = {"test-auc": score}
            callback(ctx)

        assert ctx.bst.attributes["best_iteration"] == "2"
        assert float(ctx.bst.attributes["best_score"]) == 0.6
        assert ctx.bst.attributes["best_msg"] == "[2]\ttest-auc:0.600000"
        assert ctx.bst.attributes["best_ntreelimit"] == "2"
        assert callback.state is EarlyStoppingState.ACTIVE

    def test_ntreelimit_scales_with_parallel_trees(self, make_context):
        ctx = make_context(begin=1, end=3, num_parallel_tree=4)

        run_boosting(
            CallbackList([EarlyStopping(stopping_rounds=5)]),
            ctx,
            [{"rmse": 0.5}, {"rmse": 0.4}, {"rmse": 0.45}],
        )

        assert ctx.bst.best_iteration == 2
        assert ctx.bst.best_ntreelimit == 8

    @pytest.mark.parametrize(
        "metric, maximize",
        [
            ("test-auc", True),
            ("valid-aucpr", True),
            ("test-map", True),
            ("test-ndcg@5", True),
            ("test-rmse", False),
            ("test-error", False),
            ("test-logloss", False),
            ("valid-mape", False),
        ],
    )
    def test_direction_inferred_from_metric(self, make_context, metric, maximize):
        ctx = make_context()
        ctx.bst_evaluation = {metric: 0.5}
        callback = EarlyStopping(stopping_rounds=1)

        callback(ctx)

        assert callback.maximize is maximize

    def test_explicit_direction_wins(self, make_context):
        ctx = make_context()
        ctx.bst_evaluation = {"test-auc": 0.5}
        callback = EarlyStopping(stopping_rounds=1, maximize=False)

        callback(ctx)

        assert callback.maximize is False

    def test_last_metric_is_monitored_by_default(self, make_context, capsys):
        ctx = make_context()
        ctx.bst_evaluation = {"train-rmse": 0.5, "test-rmse": 0.7}
        callback = EarlyStopping(stopping_rounds=3)

        callback(ctx)

        assert callback.monitor == "test_rmse"
        assert callback.best_score == 0.7
        out = capsys.readouterr().out
        assert "Will use test_rmse for early stopping" in out
        assert "Will train until test_rmse hasn't improved in 3 rounds." in out

    def test_metric_by_name(self, make_context):
        """Dashes and underscores are interchangeable in metric_name."""
        ctx = make_context()
        ctx.bst_evaluation = {"train-rmse": 0.5, "test-rmse": 0.7}
        callback = EarlyStopping(stopping_rounds=3, metric_name="train_rmse")

        callback(ctx)

        assert callback.monitor == "train_rmse"
        assert callback.best_score == 0.5

    def test_unknown_metric(self, make_context):
        ctx = make_context()
        ctx.bst_evaluation = {"test-rmse": 0.7}

        with pytest.raises(PreconditionError) as exc_info:
            EarlyStopping(stopping_rounds=3, metric_name="test-mae")(ctx)

        assert exc_info.value.error_code == "PRECONDITION_UNKNOWN_METRIC"

    def test_requires_evaluations(self, make_context):
        with pytest.raises(PreconditionError):
            EarlyStopping(stopping_rounds=3)(make_context())

    def test_requires_booster_or_cv(self):
        ctx = TrainingContext()
        ctx.bst_evaluation = {"rmse": 1.0}

        with pytest.raises(PreconditionError):
            EarlyStopping(stopping_rounds=3)(ctx)

    @pytest.mark.parametrize("rounds", [0, -1, 1.5, True])
    def test_invalid_stopping_rounds(self, rounds):
        with pytest.raises(ConfigurationError):
            EarlyStopping(stopping_rounds=rounds)

    def test_silent_when_not_verbose(self, make_context, capsys):
        ctx = make_context(begin=1, end=5)

        run_boosting(
            CallbackList([EarlyStopping(stopping_rounds=1, verbose=False)]),
            ctx,
            auc_history(0.5, 0.4, 0.3, 0.2, 0.1),
        )

        assert capsys.readouterr().out == ""
        assert ctx.end_iteration == 2

    def test_secondary_worker_stops_silently(self, make_context, capsys):
        ctx = make_context(begin=1, end=5, rank=2)

        run_boosting(
            CallbackList([EarlyStopping(stopping_rounds=1)]), ctx, auc_history(0.5, 0.4, 0.3, 0.2, 0.1)
        )

        assert capsys.readouterr().out == ""
        assert ctx.stop_condition is True

    def test_mape_is_minimized(self, make_context):
        """Percentage error keeps improving while it decreases."""
        ctx = make_context(begin=1, end=5)

        run_boosting(
            CallbackList([EarlyStopping(stopping_rounds=2, verbose=False)]),
            ctx,
            [{"valid-mape": v} for v in (0.5, 0.4, 0.3, 0.2, 0.1)],
        )

        assert ctx.stop_condition is False
        assert ctx.bst.best_iteration == 5
        assert ctx.bst.best_score == 0.1

    def test_stop_announcement(self, make_context, capsys):
        ctx = make_context(begin=1, end=5)

        run_boosting(CallbackList([EarlyStopping(stopping_rounds=1)]), ctx, auc_history(0.5, 0.4))

        assert "Stopping. Best iteration:\n[1]\ttest-auc:0.500000" in capsys.readouterr().out


class TestEarlyStoppingCheckpoints:
    """Test persistence of the best score across checkpoints."""

    def test_fresh_booster_gets_sentinel(self, make_context):
        """Initialization on a fresh booster persists the initial state."""
        ctx = make_context()
        ctx.bst_evaluation = {"test-rmse": 1.0}
        callback = EarlyStopping(stopping_rounds=3)

        callback.on_finalize(ctx)

        assert ctx.bst.attributes["best_iteration"] == "0"
        assert float(ctx.bst.attributes["best_score"]) == math.inf
        assert ctx.bst.best_iteration == 0
        assert ctx.bst.best_score == math.inf

    def test_resume_from_persisted_attributes(self, make_context):
        """A resumed run continues from the best recorded before the checkpoint."""
        ctx = make_context(begin=11, end=20)
        ctx.bst.set_attributes({
            "best_iteration": "9",
            "best_score": "0.6",
            "best_msg": "[9]\ttest-auc:0.600000",
        })
        callback = EarlyStopping(stopping_rounds=3)

        run_boosting(CallbackList([callback]), ctx, auc_history(0.55, 0.58, 0.59, 0.5))

        assert ctx.end_iteration == 12
        assert ctx.bst.best_iteration == 9
        assert ctx.bst.best_score == 0.6
        assert ctx.bst.best_ntreelimit == 9
        assert callback.best_msg == "[9]\ttest-auc:0.600000"

    def test_resume_then_improve(self, make_context):
        ctx = make_context(begin=11, end=12)
        ctx.bst.set_attributes({"best_iteration": "9", "best_score": "0.6"})

        run_boosting(
            CallbackList([EarlyStopping(stopping_rounds=3)]), ctx, auc_history(0.7, 0.65)
        )

        assert ctx.bst.best_iteration == 11
        assert ctx.bst.attributes["best_iteration"] == "11"

    def test_truncated_persisted_score_wins(self, make_context):
        """Differences within the tolerance resolve to the persisted value."""
        ctx = make_context(begin=1, end=1)
        callback = EarlyStopping(stopping_rounds=3, score_tolerance=1e-6)
        callbacks = CallbackList([callback])
        ctx.bst_evaluation = {"test-auc": 0.6}
        callbacks.run_post_iteration(ctx)
        ctx.bst.set_attributes({"best_score": repr(0.6 + 1e-9)})

        callbacks.run_finalize(ctx)

        assert ctx.bst.best_score == 0.6 + 1e-9
        assert callback.best_score == 0.6 + 1e-9

    def test_diverging_persisted_score(self, make_context):
        ctx = make_context(begin=1, end=1)
        callbacks = CallbackList([EarlyStopping(stopping_rounds=3)])
        ctx.bst_evaluation = {"test-auc": 0.6}
        callbacks.run_post_iteration(ctx)
        ctx.bst.set_attributes({"best_score": "0.7"})

        with pytest.raises(ConsistencyError) as exc_info:
            callbacks.run_finalize(ctx)

        assert exc_info.value.error_code == "CONSISTENCY_BEST_SCORE"

    def test_missing_persisted_score(self, make_context):
        ctx = make_context(begin=1, end=1)
        callbacks = CallbackList([EarlyStopping(stopping_rounds=3)])
        ctx.bst_evaluation = {"test-auc": 0.6}
        callbacks.run_post_iteration(ctx)
        ctx.bst.set_attributes({"best_score": None})

        with pytest.raises(ConsistencyError):
            callbacks.run_finalize(ctx)


class TestEarlyStoppingCrossValidation:
    """Test early stopping on aggregated cross-validation results."""

    def test_results_written_to_basket(self, make_cv_context):
        ctx = make_cv_context(begin=1, end=10)

        run_boosting(
            CallbackList([EarlyStopping(stopping_rounds=2)]),
            ctx,
            [{"test-rmse": v} for v in (0.9, 0.8, 0.85, 0.82)],
            [{"test-rmse": 0.01}] * 4,
        )

        assert ctx.end_iteration == 4
        assert ctx.basket.best_iteration == 2
        assert ctx.basket.best_score == 0.8
        assert ctx.basket.best_ntreelimit == 2
        for fold in ctx.bst_folds:
            assert fold.booster.attributes == {}

    def test_best_message_includes_stdev(self, make_cv_context):
        ctx = make_cv_context(begin=1, end=1)
        ctx.bst_evaluation = {"test-rmse": 0.5}
        ctx.bst_evaluation_err = {"test-rmse": 0.1}
        callback = EarlyStopping(stopping_rounds=2)

        callback(ctx)

        assert callback.best_msg == "[1]\ttest-rmse:0.500000+0.100000"

    def test_requires_basket(self, make_cv_context):
        ctx = make_cv_context()
        ctx.basket = None
        ctx.bst_evaluation = {"test-rmse": 0.5}

        with pytest.raises(PreconditionError):
            EarlyStopping(stopping_rounds=2)(ctx)
