"""Fitted-model adapters and loading."""

from .loader import load_predictor
from .predictor import (
    EstimatorPredictor,
    FunctionPredictor,
    Predictor,
    TorchModelPredictor,
    as_predictor,
    predict_rows,
)

__all__ = [
    'EstimatorPredictor',
    'FunctionPredictor',
    'Predictor',
    'TorchModelPredictor',
    'as_predictor',
    'load_predictor',
    'predict_rows',
]
