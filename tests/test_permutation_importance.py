"""Tests for permutation importance computation."""

import math
import warnings

import numpy as np
import pandas as pd
import pytest

from model_explainer.data.dataset import Dataset
from model_explainer.interpretation.permutation_importance import (
    ImportanceResult,
    PermutationImportanceComputer,
    compare_losses,
    permutation_importance,
    rank_scores,
)
from model_explainer.models.predictor import FunctionPredictor
from model_explainer.utils.exceptions import (
    InvalidConfigError,
    InvalidFeatureError,
    InvalidTargetError,
    PredictionFailure,
)


class TestPermutationImportance:
    """Test importance scores."""

    def test_constant_predictor_difference(self, regression_dataset):
        """Shuffling cannot change a constant model's loss."""
        predictor = FunctionPredictor(lambda row: 4.0)

        result = PermutationImportanceComputer(n_repeats=3, seed=1).compute(
            predictor, regression_dataset, "y"
        )

        assert set(result.features) == {"a", "b", "c"}
        assert all(score == 0.0 for score in result.scores.values())

    def test_constant_predictor_ratio(self, regression_dataset):
        """Ratio mode gives exactly 1.0 for a constant model."""
        predictor = FunctionPredictor(lambda row: 4.0)

        result = PermutationImportanceComputer(n_repeats=2, comparison="ratio", seed=1).compute(
            predictor, regression_dataset, "y"
        )

        assert result.comparison == "ratio"
        assert all(score == 1.0 for score in result.scores.values())

    def test_ignored_feature_scores_zero(self, regression_dataset, regression_predictor):
        """A feature the model never reads has zero importance."""
        for n_repeats in (1, 4):
            result = PermutationImportanceComputer(n_repeats=n_repeats, seed=3).compute(
                regression_predictor, regression_dataset, "y"
            )
            assert result["b"] == pytest.approx(0.0, abs=1e-12)

    def test_informative_feature_ranks_first(self, regression_dataset, regression_predictor):
        """The dominant feature gets the highest score."""
        result = PermutationImportanceComputer(n_repeats=5, seed=0).compute(
            regression_predictor, regression_dataset, "y", loss_fn="mae"
        )

        assert result.features[0] == "a"
        assert result.features[-1] == "b"
        assert result["a"] > result["c"] > 0

    def test_seed_reproducible(self, regression_dataset, regression_predictor):
        """A fixed seed reproduces the scores exactly."""
        computer = PermutationImportanceComputer(n_repeats=1, seed=42)

        first = computer.compute(regression_predictor, regression_dataset, "y")
        second = computer.compute(regression_predictor, regression_dataset, "y")

        assert first.scores == second.scores
        assert first.samples == second.samples

    def test_seed_reproducible_with_subsample(self, regression_dataset, regression_predictor):
        """Subsampling is part of the seeded randomness."""
        computer = PermutationImportanceComputer(n_repeats=2, sample_fraction=0.5, seed=7)

        first = computer.compute(regression_predictor, regression_dataset, "y")
        second = computer.compute(regression_predictor, regression_dataset, "y")

        assert first.scores == second.scores
        assert first.baseline_loss == second.baseline_loss

    def test_relabeling_features(self, regression_frame, regression_predictor):
        """Renaming columns leaves the scores unchanged."""
        renamed = regression_frame.rename(columns={"a": "zeta", "b": "alpha", "c": "mid"})
        renamed_predictor = FunctionPredictor(lambda row: 3 * row["zeta"] + 2 * row["mid"])

        original = PermutationImportanceComputer(n_repeats=3, seed=11).compute(
            regression_predictor, Dataset.from_frame(regression_frame), "y",
            features=["a", "b", "c"],
        )
        relabeled = PermutationImportanceComputer(n_repeats=3, seed=11).compute(
            renamed_predictor, Dataset.from_frame(renamed), "y",
            features=["zeta", "alpha", "mid"],
        )

        assert relabeled["zeta"] == original["a"]
        assert relabeled["alpha"] == original["b"]
        assert relabeled["mid"] == original["c"]

    def test_samples_per_repeat(self, regression_dataset, regression_predictor):
        """Each feature keeps one sample per repeat and their mean is the score."""
        result = PermutationImportanceComputer(n_repeats=4, seed=5).compute(
            regression_predictor, regression_dataset, "y"
        )

        for feature in result:
            assert len(result.samples[feature]) == 4
            assert result[feature] == pytest.approx(np.mean(result.samples[feature]))
            assert result.std[feature] >= 0

    def test_difference_and_ratio_agree(self, regression_dataset, regression_predictor):
        """With the same seed, ratio samples equal 1 + difference / baseline."""
        shifted = regression_dataset.with_column_values("y", regression_dataset.column("y") + 1.0)

        diff = PermutationImportanceComputer(n_repeats=2, seed=9, comparison="difference").compute(
            regression_predictor, shifted, "y", loss_fn="mse"
        )
        ratio = PermutationImportanceComputer(n_repeats=2, seed=9, comparison="ratio").compute(
            regression_predictor, shifted, "y", loss_fn="mse"
        )

        assert diff.baseline_loss == pytest.approx(1.0)
        for feature in ["a", "b", "c"]:
            assert ratio[feature] == pytest.approx(1 + diff[feature] / diff.baseline_loss)

    def test_sample_fraction(self, regression_dataset, regression_predictor):
        """sample_fraction limits the rows evaluated."""
        result = PermutationImportanceComputer(sample_fraction=0.25, seed=2).compute(
            regression_predictor, regression_dataset, "y"
        )
        assert result.n_rows == 15

    def test_subset_of_features(self, regression_dataset, regression_predictor):
        """Only the requested features are scored."""
        result = PermutationImportanceComputer(seed=1).compute(
            regression_predictor, regression_dataset, "y", features=["c", "a", "c"]
        )
        assert sorted(result.features) == ["a", "c"]

    def test_custom_loss(self, linear_dataset, linear_predictor):
        """Any callable (y_true, y_pred) -> float can be the loss."""
        def max_error(y_true, y_pred):
            return float(np.max(np.abs(y_true - y_pred)))

        result = PermutationImportanceComputer(n_repeats=1, seed=0).compute(
            linear_predictor, linear_dataset, "y", loss_fn=max_error
        )

        assert result.baseline_loss == 0.0
        assert result["x"] >= 0.0

    def test_parallel_matches_sequential(self, regression_dataset, regression_predictor):
        """Worker count does not change seeded results."""
        sequential = PermutationImportanceComputer(n_repeats=3, seed=13).compute(
            regression_predictor, regression_dataset, "y"
        )
        parallel = PermutationImportanceComputer(
            n_repeats=3, seed=13, n_jobs=3, backend="threading"
        ).compute(regression_predictor, regression_dataset, "y")

        assert parallel.scores == sequential.scores
        assert parallel.features == sequential.features

    def test_functional_shortcut(self, linear_rows, linear_predictor):
        """permutation_importance accepts plain row mappings."""
        result = permutation_importance(
            linear_predictor, linear_rows, "y", n_repeats=2, seed=0
        )
        assert result.features == ["x"]
        assert result.baseline_loss == 0.0


class TestImportanceResult:
    """Test result ordering and export."""

    def test_ties_broken_by_name(self, regression_dataset):
        """Equal scores are ordered by feature name."""
        predictor = FunctionPredictor(lambda row: 1.0)

        result = PermutationImportanceComputer(seed=0).compute(
            predictor, regression_dataset, "y", features=["c", "b", "a"]
        )

        assert result.features == ["a", "b", "c"]

    def test_rank_scores(self):
        """Descending by score, then ascending by name."""
        ranked = rank_scores({"b": 1.0, "a": 1.0, "c": 2.0, "d": -1.0})
        assert [name for name, _ in ranked] == ["c", "a", "b", "d"]

    def test_top_and_frame(self):
        """top(n) and to_frame follow the ranking."""
        result = ImportanceResult(
            scores={"low": 0.1, "high": 0.9},
            samples={"low": (0.1, 0.1), "high": (0.8, 1.0)},
            baseline_loss=1.0,
        )

        assert result.top(1) == [("high", 0.9)]
        frame = result.to_frame()
        assert isinstance(frame, pd.DataFrame)
        assert list(frame.columns) == ["Variable", "Importance", "StDev"]
        assert frame["Variable"].tolist() == ["high", "low"]
        assert frame["StDev"].tolist() == pytest.approx([0.1, 0.0])


    def test_spread_of_infinite_samples(self):
        """Equal samples have zero spread and any infinite sample makes it inf."""
        result = ImportanceResult(
            scores={"flat": 1.0, "perfect": math.inf, "mixed": math.inf},
            samples={
                "flat": (1.0, 1.0, 1.0),
                "perfect": (math.inf, math.inf),
                "mixed": (1.0, math.inf),
            },
            baseline_loss=0.0,
            comparison="ratio",
        )

        assert result.std == {"mixed": math.inf, "perfect": 0.0, "flat": 0.0}

    def test_ratio_zero_baseline_has_finite_or_inf_spread(self, linear_dataset, linear_predictor):
        """A perfect model in ratio mode reports no NaN spread and no RuntimeWarning."""
        with warnings.catch_warnings():
            warnings.simplefilter("error", RuntimeWarning)
            result = PermutationImportanceComputer(
                n_repeats=2, comparison="ratio", seed=0
            ).compute(linear_predictor, linear_dataset, "y")

        assert result.baseline_loss == 0.0
        assert not math.isnan(result.std["x"])
        assert result.std["x"] in (0.0, math.inf)

class TestCompareLosses:
    """Test loss comparison modes."""

    def test_difference(self):
        assert compare_losses(3.0, 1.0, "difference") == 2.0

    def test_ratio(self):
        assert compare_losses(3.0, 1.5, "ratio") == 2.0

    def test_ratio_zero_baseline(self):
        """A perfect baseline gives 1.0 if still perfect, inf otherwise."""
        assert compare_losses(0.0, 0.0, "ratio") == 1.0
        assert math.isinf(compare_losses(0.5, 0.0, "ratio"))

    def test_unknown_mode(self):
        with pytest.raises(InvalidConfigError):
            compare_losses(1.0, 1.0, "percent")


class TestPermutationImportanceErrors:
    """Test validation happens before any prediction."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"sample_fraction": 0.0},
            {"sample_fraction": 1.5},
            {"n_repeats": 0},
            {"comparison": "percent"},
        ],
    )
    def test_invalid_config(self, linear_dataset, counting_predictor, kwargs):
        """Out-of-range parameters raise InvalidConfigError."""
        predictor = counting_predictor(lambda row: 1.0)

        with pytest.raises(InvalidConfigError):
            PermutationImportanceComputer().compute(predictor, linear_dataset, "y", **kwargs)
        assert predictor.calls == 0

    def test_invalid_constructor_args(self):
        """The computer validates its defaults."""
        with pytest.raises(InvalidConfigError):
            PermutationImportanceComputer(n_repeats=0)

    def test_missing_target(self, linear_dataset, counting_predictor):
        """An unknown target raises InvalidTargetError."""
        predictor = counting_predictor(lambda row: 1.0)

        with pytest.raises(InvalidTargetError):
            PermutationImportanceComputer().compute(predictor, linear_dataset, "label")
        assert predictor.calls == 0

    def test_missing_feature(self, linear_dataset, counting_predictor):
        """An unknown feature raises InvalidFeatureError."""
        predictor = counting_predictor(lambda row: 1.0)

        with pytest.raises(InvalidFeatureError):
            PermutationImportanceComputer().compute(
                predictor, linear_dataset, "y", features=["x", "w"]
            )
        assert predictor.calls == 0

    def test_target_as_feature(self, linear_dataset, linear_predictor):
        """The target column cannot be scored."""
        with pytest.raises(InvalidFeatureError):
            PermutationImportanceComputer().compute(
                linear_predictor, linear_dataset, "y", features=["y"]
            )

    def test_empty_features(self, linear_dataset, linear_predictor):
        """An explicit empty feature list is rejected."""
        with pytest.raises(InvalidConfigError):
            PermutationImportanceComputer().compute(
                linear_predictor, linear_dataset, "y", features=[]
            )

    def test_unknown_loss(self, linear_dataset, linear_predictor):
        """Unregistered loss names are rejected."""
        with pytest.raises(InvalidConfigError):
            PermutationImportanceComputer().compute(
                linear_predictor, linear_dataset, "y", loss_fn="logloss"
            )

    def test_predictor_error_propagates(self, linear_dataset):
        """A failing predictor aborts with PredictionFailure."""
        def broken(row):
            raise RuntimeError("no")

        with pytest.raises(PredictionFailure):
            PermutationImportanceComputer().compute(FunctionPredictor(broken), linear_dataset, "y")
