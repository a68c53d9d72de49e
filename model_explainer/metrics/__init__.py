"""Loss metrics."""

from .losses import LOSSES, mae, mse, resolve_loss, rmse

__all__ = ['LOSSES', 'mae', 'mse', 'resolve_loss', 'rmse']
