"""Partial dependence of model predictions on a single feature."""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from ..data.dataset import Dataset, Row
from ..models.predictor import Predictor, predict_rows
from ..utils.exceptions import InvalidConfigError
from ..utils.logging import LoggerMixin, get_logger, log_elapsed

logger = get_logger(__name__)

DEFAULT_GRID_SIZE = 20


@dataclass(frozen=True)
class PartialDependenceResult:
    """Averaged prediction at each grid value of one feature, in grid order."""

    feature: str
    points: Tuple[Tuple[float, float], ...]

    @property
    def grid(self) -> List[float]:
        return [value for value, _ in self.points]

    @property
    def predictions(self) -> List[float]:
        return [yhat for _, yhat in self.points]

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[Tuple[float, float]]:
        return iter(self.points)

    def to_frame(self) -> pd.DataFrame:
        """One row per grid point with ``feature``, ``grid_value`` and ``yhat``."""
        return pd.DataFrame({
            'feature': [self.feature] * len(self.points),
            'grid_value': self.grid,
            'yhat': self.predictions,
        })


def build_grid(values: np.ndarray, grid_size: int) -> np.ndarray:
    """
    Evenly spaced values from min to max of ``values``, both endpoints included.

    A constant column yields ``grid_size`` copies of its single value.
    """
    if grid_size < 2:
        raise InvalidConfigError(f"grid_size must be >= 2, got {grid_size}")

    lo = float(np.min(values))
    hi = float(np.max(values))
    if lo == hi:
        return np.full(grid_size, lo)

    grid = lo + np.arange(grid_size) * (hi - lo) / (grid_size - 1)
    grid[-1] = hi
    return grid


def _as_dataset(dataset: Union[Dataset, Iterable[Row]]) -> Dataset:
    if isinstance(dataset, Dataset):
        return dataset
    return Dataset(dataset)


def _partial_dependence(predictor: Predictor, dataset: Dataset, feature: str,
                        grid: np.ndarray) -> PartialDependenceResult:
    points = []
    for value in grid:
        transformed = dataset.with_column_value(feature, value)
        predictions = predict_rows(predictor, transformed.rows)
        points.append((float(value), float(np.mean(predictions))))
        logger.debug(f"{feature}={value:.6g}: mean prediction {points[-1][1]:.6g}")
    return PartialDependenceResult(feature=feature, points=tuple(points))


class PartialDependenceComputer(LoggerMixin):
    """Sweep one feature across its observed range and average the model response."""

    def __init__(self, grid_size: int = DEFAULT_GRID_SIZE, n_jobs: int = 1,
                 backend: Optional[str] = None):
        """
        Args:
            grid_size: Default number of grid points (>= 2)
            n_jobs: Workers used by compute_many; -1 uses all cores
            backend: joblib backend for compute_many (None picks joblib's default)
        """
        if grid_size < 2:
            raise InvalidConfigError(f"grid_size must be >= 2, got {grid_size}")
        self.grid_size = grid_size
        self.n_jobs = n_jobs
        self.backend = backend

    def compute(self, predictor: Predictor, dataset: Union[Dataset, Iterable[Row]],
                feature_name: str, grid_size: Optional[int] = None) -> PartialDependenceResult:
        """
        Compute the partial dependence of the predictions on one feature.

        Args:
            predictor: Fitted model exposing ``predict(row)``
            dataset: Rows whose other columns are held at their observed values
            feature_name: Column to sweep
            grid_size: Number of grid points; defaults to the computer's grid_size

        Returns:
            PartialDependenceResult with one (grid_value, mean_prediction) pair per point
        """
        dataset = _as_dataset(dataset)
        grid_size = self.grid_size if grid_size is None else grid_size
        if grid_size < 2:
            raise InvalidConfigError(f"grid_size must be >= 2, got {grid_size}")
        dataset.require_feature(feature_name)

        grid = build_grid(dataset.column(feature_name), grid_size)
        self.logger.info(
            f"Computing partial dependence for '{feature_name}' "
            f"over {grid_size} grid points and {len(dataset)} rows"
        )
        return _partial_dependence(predictor, dataset, feature_name, grid)

    def compute_many(self, predictor: Predictor, dataset: Union[Dataset, Iterable[Row]],
                     features: List[str], grid_size: Optional[int] = None
                     ) -> Dict[str, PartialDependenceResult]:
        """
        Compute partial dependence for several features.

        Returns:
            Results keyed by feature, in the order of ``features``
        """
        dataset = _as_dataset(dataset)
        grid_size = self.grid_size if grid_size is None else grid_size
        if grid_size < 2:
            raise InvalidConfigError(f"grid_size must be >= 2, got {grid_size}")
        if not features:
            raise InvalidConfigError("At least one feature is required")
        for feature in features:
            dataset.require_feature(feature)

        features = list(dict.fromkeys(features))
        grids = [build_grid(dataset.column(f), grid_size) for f in features]
        self.logger.info(
            f"Computing partial dependence for {len(features)} features with n_jobs={self.n_jobs}"
        )

        with log_elapsed(self.logger, "Partial dependence"):
            results = Parallel(n_jobs=self.n_jobs, backend=self.backend)(
                delayed(_partial_dependence)(predictor, dataset, feature, grid)
                for feature, grid in zip(features, grids)
            )
        return {result.feature: result for result in results}


def partial_dependence(predictor: Predictor, dataset: Union[Dataset, Iterable[Row]],
                       feature_name: str, grid_size: int = DEFAULT_GRID_SIZE
                       ) -> PartialDependenceResult:
    """Functional shortcut for PartialDependenceComputer().compute(...)."""
    return PartialDependenceComputer(grid_size=grid_size).compute(predictor, dataset, feature_name)
