"""Loss functions for comparing permuted and unpermuted model performance."""

from typing import Callable, Dict, Union

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error

from ..utils.exceptions import InvalidConfigError

LossFunction = Callable[[np.ndarray, np.ndarray], float]


def rmse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Root mean squared error."""
    return float(np.sqrt(mean_squared_error(y_true, y_pred)))


def mse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Mean squared error."""
    return float(mean_squared_error(y_true, y_pred))


def mae(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Mean absolute error."""
    return float(mean_absolute_error(y_true, y_pred))


LOSSES: Dict[str, LossFunction] = {
    'rmse': rmse,
    'mse': mse,
    'mae': mae,
}


def resolve_loss(loss: Union[str, LossFunction]) -> LossFunction:
    """Return a loss callable given either a callable or a registered name."""
    if callable(loss):
        return loss
    try:
        return LOSSES[str(loss).lower()]
    except KeyError:
        raise InvalidConfigError(
            f"Unknown loss '{loss}'; expected one of {', '.join(LOSSES)}"
        ) from None
