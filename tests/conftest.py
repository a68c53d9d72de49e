"""Test configuration and fixtures."""

import joblib
import numpy as np
import pandas as pd
import pytest
from sklearn.linear_model import LinearRegression

from model_explainer.data.dataset import Dataset
from model_explainer.models.predictor import FunctionPredictor


class CountingPredictor:
    """Predictor that records how many rows it was asked to predict."""

    def __init__(self, fn):
        self.fn = fn
        self.calls = 0

    def predict(self, row):
        self.calls += 1
        return self.fn(row)


@pytest.fixture
def linear_rows():
    """Four rows with x = 1..4 and y = 10 * x."""
    return [
        {"x": 1.0, "y": 10.0},
        {"x": 2.0, "y": 20.0},
        {"x": 3.0, "y": 30.0},
        {"x": 4.0, "y": 40.0},
    ]


@pytest.fixture
def linear_dataset(linear_rows):
    """Dataset for the 10 * x scenario with y as target."""
    return Dataset(linear_rows, target="y")


@pytest.fixture
def linear_predictor():
    """Predictor returning 10 * x."""
    return FunctionPredictor(lambda row: 10 * row["x"])


@pytest.fixture
def regression_frame():
    """Two informative features (a, c) and one ignored feature (b)."""
    rng = np.random.default_rng(0)
    n = 60
    a = rng.uniform(0, 10, n)
    b = rng.uniform(-5, 5, n)
    c = rng.uniform(0, 1, n)
    return pd.DataFrame({"a": a, "b": b, "c": c, "y": 3 * a + 2 * c})


@pytest.fixture
def regression_dataset(regression_frame):
    """Dataset built from regression_frame with y as target."""
    return Dataset.from_frame(regression_frame, target="y")


@pytest.fixture
def regression_predictor():
    """Predictor matching the generating function and ignoring b."""
    return FunctionPredictor(lambda row: 3 * row["a"] + 2 * row["c"])


@pytest.fixture
def counting_predictor():
    """Factory for predictors that count their calls."""
    return CountingPredictor


@pytest.fixture
def fitted_estimator(regression_frame):
    """LinearRegression fitted on the named feature columns."""
    model = LinearRegression()
    model.fit(regression_frame[["a", "b", "c"]], regression_frame["y"])
    return model


@pytest.fixture
def model_file(tmp_path, fitted_estimator):
    """Fitted estimator serialized with joblib."""
    path = tmp_path / "model.joblib"
    joblib.dump(fitted_estimator, path)
    return path


@pytest.fixture
def data_file(tmp_path, regression_frame):
    """regression_frame written to CSV."""
    path = tmp_path / "data.csv"
    regression_frame.to_csv(path, index=False)
    return path
