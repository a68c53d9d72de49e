"""Plain-text and CSV reports for interpretation results."""

from pathlib import Path
from typing import Mapping, Union

import pandas as pd

from .partial_dependence import PartialDependenceResult
from .permutation_importance import ImportanceResult
from ..utils.logging import get_logger

logger = get_logger(__name__)

PartialDependenceResults = Mapping[str, PartialDependenceResult]


def _write_importance(result: ImportanceResult, handle):
    handle.write("Model Explainer - Permutation Importance Report\n")
    handle.write("=" * 60 + "\n\n")
    handle.write(f"Rows evaluated: {result.n_rows}\n")
    handle.write(f"Baseline loss: {result.baseline_loss:.6f}\n")
    handle.write(f"Comparison: {result.comparison}\n")
    handle.write(f"Repeats per feature: {len(next(iter(result.samples.values())))}\n\n")

    handle.write("Features by importance:\n")
    handle.write("-" * 30 + "\n")
    for i, (feature, score) in enumerate(result.ranked(), 1):
        handle.write(f"{i:2d}. {feature:<25} {score:>12.6f} (sd: {result.std[feature]:.6f})\n")


def _write_partial_dependence(results: PartialDependenceResults, handle):
    handle.write("Model Explainer - Partial Dependence Report\n")
    handle.write("=" * 60 + "\n")
    for feature, result in results.items():
        predictions = result.predictions
        handle.write(f"\n{feature} ({len(result)} grid points)\n")
        handle.write("-" * 30 + "\n")
        handle.write(f"Grid range: {result.grid[0]:.6g} to {result.grid[-1]:.6g}\n")
        handle.write(f"Mean prediction range: {min(predictions):.6g} to {max(predictions):.6g}\n")
        for value, yhat in result:
            handle.write(f"  {value:>14.6g}  {yhat:>14.6g}\n")


def results_frame(result: Union[ImportanceResult, PartialDependenceResults]) -> pd.DataFrame:
    """Flatten an importance result or a set of partial dependence results."""
    if isinstance(result, ImportanceResult):
        return result.to_frame()
    if not result:
        return pd.DataFrame(columns=['feature', 'grid_value', 'yhat'])
    return pd.concat([r.to_frame() for r in result.values()], ignore_index=True)


def save_report(result: Union[ImportanceResult, PartialDependenceResults],
                output_path: str) -> Path:
    """
    Save a CSV table and a readable text summary of ``result``.

    Args:
        result: ImportanceResult, or partial dependence results keyed by feature
        output_path: Path to save report (without extension)

    Returns:
        Path of the written CSV file
    """
    base = Path(output_path)
    base.parent.mkdir(parents=True, exist_ok=True)
    csv_path = base.parent / f"{base.name}.csv"
    txt_path = base.parent / f"{base.name}.txt"

    results_frame(result).to_csv(csv_path, index=False)

    with open(txt_path, 'w') as f:
        if isinstance(result, ImportanceResult):
            _write_importance(result, f)
        else:
            _write_partial_dependence(result, f)

    logger.info(f"Report saved to {base}.*")
    return csv_path
