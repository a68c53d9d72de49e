"""Permutation-based variable importance."""

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from ..config import COMPARISON_MODES
from ..data.dataset import Dataset, Row
from ..metrics.losses import LossFunction, resolve_loss
from ..models.predictor import Predictor, predict_rows
from ..utils.exceptions import InvalidConfigError, InvalidFeatureError
from ..utils.logging import LoggerMixin, get_logger, log_elapsed

logger = get_logger(__name__)

DEFAULT_N_REPEATS = 5


def rank_scores(scores: Mapping[str, float]) -> List[Tuple[str, float]]:
    """Sort by descending score, ties broken by feature name ascending."""
    return sorted(scores.items(), key=lambda item: (-item[1], item[0]))


def _spread(samples: Tuple[float, ...]) -> float:
    # ratio mode yields inf samples against a zero baseline loss
    if len(set(samples)) <= 1:
        return 0.0
    if any(math.isinf(value) for value in samples):
        return math.inf
    return float(np.std(samples))


@dataclass(frozen=True)
class ImportanceResult:
    """Importance score per feature plus the samples it was averaged from."""

    scores: Dict[str, float]
    samples: Dict[str, Tuple[float, ...]]
    baseline_loss: float
    comparison: str = 'difference'
    n_rows: int = 0
    std: Dict[str, float] = field(init=False)

    def __post_init__(self):
        ranked = dict(rank_scores(self.scores))
        object.__setattr__(self, 'scores', ranked)
        object.__setattr__(self, 'std', {
            name: _spread(tuple(self.samples[name])) for name in ranked
        })

    @property
    def features(self) -> List[str]:
        """Feature names, most important first."""
        return list(self.scores)

    def ranked(self) -> List[Tuple[str, float]]:
        return list(self.scores.items())

    def top(self, n: int) -> List[Tuple[str, float]]:
        return self.ranked()[:n]

    def __getitem__(self, feature: str) -> float:
        return self.scores[feature]

    def __len__(self) -> int:
        return len(self.scores)

    def __iter__(self) -> Iterator[str]:
        return iter(self.scores)

    def to_frame(self) -> pd.DataFrame:
        """Ranked table with ``Variable``, ``Importance`` and ``StDev`` columns."""
        return pd.DataFrame({
            'Variable': self.features,
            'Importance': [self.scores[f] for f in self.features],
            'StDev': [self.std[f] for f in self.features],
        })


def compare_losses(permuted_loss: float, baseline_loss: float, comparison: str) -> float:
    """Turn a permuted loss into an importance sample relative to the baseline."""
    if comparison == 'difference':
        return permuted_loss - baseline_loss
    if comparison == 'ratio':
        if baseline_loss == 0:
            return 1.0 if permuted_loss == 0 else math.inf
        return permuted_loss / baseline_loss
    raise InvalidConfigError(f"comparison must be one of {COMPARISON_MODES}, got {comparison!r}")


def _feature_samples(predictor: Predictor, dataset: Dataset, targets: np.ndarray,
                     loss_fn: LossFunction, feature: str, n_repeats: int,
                     baseline_loss: float, comparison: str,
                     seed: np.random.SeedSequence) -> Tuple[str, Tuple[float, ...]]:
    rng = np.random.default_rng(seed)
    column = dataset.column(feature)
    samples = []
    for repeat in range(n_repeats):
        permuted = dataset.with_column_values(feature, rng.permutation(column))
        predictions = predict_rows(predictor, permuted.rows)
        permuted_loss = float(loss_fn(targets, predictions))
        samples.append(compare_losses(permuted_loss, baseline_loss, comparison))
        logger.debug(f"{feature} repeat {repeat}: loss {permuted_loss:.6g}, sample {samples[-1]:.6g}")
    return feature, tuple(samples)


class PermutationImportanceComputer(LoggerMixin):
    """
    Score features by how much a loss degrades when their column is shuffled.

    A single subsample of the dataset is drawn per ``compute`` call and shared
    by every feature and repeat. Each feature draws its permutations from its
    own generator, spawned from ``seed`` by the feature's position, so results
    are identical for any ``n_jobs``.
    """

    def __init__(self, n_repeats: int = DEFAULT_N_REPEATS, sample_fraction: float = 1.0,
                 comparison: str = 'difference', seed: Optional[int] = None,
                 n_jobs: int = 1, backend: Optional[str] = None):
        self.n_repeats = n_repeats
        self.sample_fraction = sample_fraction
        self.comparison = comparison
        self.seed = seed
        self.n_jobs = n_jobs
        self.backend = backend
        self._check_params(n_repeats, sample_fraction, comparison)

    @staticmethod
    def _check_params(n_repeats: int, sample_fraction: float, comparison: str):
        if n_repeats < 1:
            raise InvalidConfigError(f"n_repeats must be >= 1, got {n_repeats}")
        if not 0 < sample_fraction <= 1:
            raise InvalidConfigError(f"sample_fraction must be in (0, 1], got {sample_fraction}")
        if comparison not in COMPARISON_MODES:
            raise InvalidConfigError(
                f"comparison must be one of {COMPARISON_MODES}, got {comparison!r}"
            )

    def compute(self, predictor: Predictor, dataset: Union[Dataset, Iterable[Row]],
                target_column: str, loss_fn: Union[str, LossFunction] = 'rmse',
                features: Optional[List[str]] = None, n_repeats: Optional[int] = None,
                sample_fraction: Optional[float] = None, comparison: Optional[str] = None,
                seed: Optional[int] = None) -> ImportanceResult:
        """
        Compute permutation importance for each feature.

        Args:
            predictor: Fitted model exposing ``predict(row)``
            dataset: Rows including the target column
            target_column: Ground-truth column used by the loss
            loss_fn: Callable ``(y_true, y_pred) -> float`` or one of 'rmse', 'mse', 'mae'
            features: Columns to score; defaults to every non-target column
            n_repeats: Shuffles per feature, averaged into the score
            sample_fraction: Share of rows drawn without replacement, in (0, 1]
            comparison: 'difference' (permuted - baseline) or 'ratio' (permuted / baseline)
            seed: Seed for subsampling and permutations

        Returns:
            ImportanceResult ordered by descending importance
        """
        n_repeats = self.n_repeats if n_repeats is None else n_repeats
        sample_fraction = self.sample_fraction if sample_fraction is None else sample_fraction
        comparison = self.comparison if comparison is None else comparison
        seed = self.seed if seed is None else seed
        self._check_params(n_repeats, sample_fraction, comparison)
        loss_fn = resolve_loss(loss_fn)

        if not isinstance(dataset, Dataset):
            dataset = Dataset(dataset)
        dataset.require_target(target_column)
        dataset = dataset.with_target(target_column)

        if features is None:
            features = dataset.feature_names
        features = list(dict.fromkeys(features))
        if not features:
            raise InvalidConfigError("At least one feature is required")
        for feature in features:
            dataset.require_feature(feature)
            if feature == target_column:
                raise InvalidFeatureError(f"Feature '{feature}' is the target column")

        seeds = np.random.SeedSequence(seed).spawn(len(features) + 1)
        subset = self._subsample(dataset, sample_fraction, seeds[0])
        targets = subset.column(target_column)

        baseline_loss = float(loss_fn(targets, predict_rows(predictor, subset.rows)))
        self.logger.info(
            f"Permutation importance for {len(features)} features on {len(subset)} rows, "
            f"{n_repeats} repeats, baseline loss {baseline_loss:.6g}"
        )

        with log_elapsed(self.logger, "Permutation importance"):
            results = Parallel(n_jobs=self.n_jobs, backend=self.backend)(
                delayed(_feature_samples)(
                    predictor, subset, targets, loss_fn, feature, n_repeats,
                    baseline_loss, comparison, feature_seed,
                )
                for feature, feature_seed in zip(features, seeds[1:])
            )

        samples = dict(results)
        scores = {feature: float(np.mean(values)) for feature, values in samples.items()}
        return ImportanceResult(
            scores=scores,
            samples=samples,
            baseline_loss=baseline_loss,
            comparison=comparison,
            n_rows=len(subset),
        )

    def _subsample(self, dataset: Dataset, sample_fraction: float,
                   seed: np.random.SeedSequence) -> Dataset:
        if sample_fraction >= 1:
            return dataset
        n_rows = max(1, int(round(sample_fraction * len(dataset))))
        rng = np.random.default_rng(seed)
        indices = np.sort(rng.choice(len(dataset), size=n_rows, replace=False))
        self.logger.debug(f"Subsampled {n_rows} of {len(dataset)} rows")
        return dataset.take(indices)


def permutation_importance(predictor: Predictor, dataset: Union[Dataset, Iterable[Row]],
                           target_column: str, loss_fn: Union[str, LossFunction] = 'rmse',
                           features: Optional[List[str]] = None,
                           n_repeats: int = DEFAULT_N_REPEATS, sample_fraction: float = 1.0,
                           comparison: str = 'difference',
                           seed: Optional[int] = None) -> ImportanceResult:
    """Functional shortcut for PermutationImportanceComputer().compute(...)."""
    computer = PermutationImportanceComputer(
        n_repeats=n_repeats, sample_fraction=sample_fraction,
        comparison=comparison, seed=seed,
    )
    return computer.compute(predictor, dataset, target_column, loss_fn, features)
