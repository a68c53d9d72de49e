"""Predictor interface and adapters around fitted models."""

import numbers
from typing import Any, Callable, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

import numpy as np
import pandas as pd
import torch
import torch.nn as nn
from sklearn.base import BaseEstimator

from ..utils.exceptions import PredictionFailure


@runtime_checkable
class Predictor(Protocol):
    """A fitted model seen as a single-row prediction function.

    Implementations may also provide ``predict_batch(rows)`` returning one
    value per row; it is used in preference to row-by-row calls.
    """

    def predict(self, row: Mapping[str, float]) -> float:
        ...


class FunctionPredictor:
    """Wrap a plain callable ``fn(row) -> float`` as a Predictor."""

    def __init__(self, fn: Callable[[Mapping[str, float]], float]):
        self.fn = fn

    def predict(self, row: Mapping[str, float]) -> float:
        return self.fn(row)

    def __repr__(self) -> str:
        name = getattr(self.fn, '__name__', type(self.fn).__name__)
        return f"FunctionPredictor({name})"


class EstimatorPredictor:
    """Wrap an estimator exposing scikit-learn's ``predict(X)``."""

    def __init__(self, estimator: Any, feature_names: Optional[Sequence[str]] = None):
        """
        Args:
            estimator: Fitted model with a ``predict`` method over a 2D input
            feature_names: Column order the estimator was trained on; ignored
                when the estimator records ``feature_names_in_``
        """
        if not hasattr(estimator, 'predict'):
            raise TypeError(f"{type(estimator).__name__} has no predict method")
        self.estimator = estimator
        if hasattr(estimator, 'feature_names_in_'):
            feature_names = list(estimator.feature_names_in_)
        self.feature_names = list(feature_names) if feature_names is not None else None
        # Estimators fitted on arrays warn when handed a DataFrame
        self._pass_frame = hasattr(estimator, 'feature_names_in_')

    def _frame(self, rows: Sequence[Mapping[str, float]]) -> pd.DataFrame:
        frame = pd.DataFrame.from_records([dict(row) for row in rows])
        columns = self.feature_names or list(frame.columns)
        return frame[columns]

    def predict_batch(self, rows: Sequence[Mapping[str, float]]) -> np.ndarray:
        frame = self._frame(rows)
        X = frame if self._pass_frame else frame.to_numpy(dtype=float)
        return np.asarray(self.estimator.predict(X)).reshape(-1)

    def predict(self, row: Mapping[str, float]) -> float:
        return float(self.predict_batch([row])[0])


class TorchModelPredictor:
    """Wrap a PyTorch module taking a ``[batch, n_features]`` float tensor."""

    def __init__(self, model: nn.Module, feature_names: Sequence[str],
                 scaler: Any = None, device: torch.device = None):
        """
        Args:
            model: Trained PyTorch model
            feature_names: Input column order expected by the model
            scaler: Optional fitted transformer applied before the model
            device: Device to run inference on
        """
        if not feature_names:
            raise ValueError("TorchModelPredictor requires feature_names")
        self.model = model
        self.feature_names = list(feature_names)
        self.scaler = scaler
        self.device = device or torch.device('cpu')
        self.model.to(self.device)
        self.model.eval()

    def predict_batch(self, rows: Sequence[Mapping[str, float]]) -> np.ndarray:
        X = np.array([[row[name] for name in self.feature_names] for row in rows], dtype=float)
        if self.scaler is not None:
            X = self.scaler.transform(X)

        with torch.no_grad():
            predictions = self.model(torch.FloatTensor(X).to(self.device))

        return predictions.cpu().numpy().astype(float).reshape(-1)

    def predict(self, row: Mapping[str, float]) -> float:
        return float(self.predict_batch([row])[0])


def _check_numeric(value: Any) -> Any:
    if not isinstance(value, numbers.Real):
        raise PredictionFailure(f"Predictor returned non-numeric value {value!r}")
    return value


def predict_rows(predictor: Predictor, rows: Sequence[Mapping[str, float]]) -> np.ndarray:
    """
    Apply a predictor to every row.

    Args:
        predictor: Object with ``predict(row)`` and optionally ``predict_batch(rows)``
        rows: Rows to predict

    Returns:
        Float array with one prediction per row

    Raises:
        PredictionFailure: If the predictor raises or returns a value that is
            not a finite number
    """
    batch = getattr(predictor, 'predict_batch', None)
    try:
        if callable(batch):
            values = np.asarray(batch(rows))
            if values.dtype.kind not in 'biuf':
                raise PredictionFailure(
                    f"Predictor returned non-numeric batch of dtype {values.dtype}"
                )
        else:
            values = [_check_numeric(predictor.predict(row)) for row in rows]
        predictions = np.asarray(values, dtype=float).reshape(-1)
    except PredictionFailure:
        raise
    except Exception as e:
        raise PredictionFailure(f"Predictor {predictor!r} failed: {e}") from e

    if predictions.shape != (len(rows),):
        raise PredictionFailure(
            f"Predictor returned {predictions.size} values for {len(rows)} rows"
        )
    if not np.all(np.isfinite(predictions)):
        raise PredictionFailure("Predictor returned non-finite values")

    return predictions


def as_predictor(model: Any, feature_names: Optional[List[str]] = None,
                 scaler: Any = None, device: Optional[torch.device] = None) -> Predictor:
    """
    Adapt a fitted model to the Predictor interface.

    scikit-learn estimators get ``EstimatorPredictor`` and torch modules get
    ``TorchModelPredictor``. Any other object with ``predict(row)`` is used
    as is, and a bare callable is wrapped in ``FunctionPredictor``.

    Raises:
        TypeError: If ``model`` offers none of these
    """
    if isinstance(model, (FunctionPredictor, EstimatorPredictor, TorchModelPredictor)):
        return model
    if isinstance(model, nn.Module):
        return TorchModelPredictor(model, feature_names, scaler=scaler, device=device)
    if isinstance(model, BaseEstimator):
        return EstimatorPredictor(model, feature_names)
    if isinstance(model, Predictor):
        return model
    if callable(model):
        return FunctionPredictor(model)
    raise TypeError(f"Cannot use {type(model).__name__} as a predictor")
