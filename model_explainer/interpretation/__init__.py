"""Partial dependence and permutation importance."""

from .partial_dependence import (
    PartialDependenceComputer,
    PartialDependenceResult,
    build_grid,
    partial_dependence,
)
from .permutation_importance import (
    ImportanceResult,
    PermutationImportanceComputer,
    permutation_importance,
)
from .report import results_frame, save_report

__all__ = [
    'ImportanceResult',
    'PartialDependenceComputer',
    'PartialDependenceResult',
    'PermutationImportanceComputer',
    'build_grid',
    'partial_dependence',
    'permutation_importance',
    'results_frame',
    'save_report',
]
