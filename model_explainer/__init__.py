"""Partial dependence and permutation importance for fitted regression models."""

from .config import ExplainerConfig, load_config
from .data.dataset import Dataset
from .interpretation import (
    ImportanceResult,
    PartialDependenceComputer,
    PartialDependenceResult,
    PermutationImportanceComputer,
    partial_dependence,
    permutation_importance,
)
from .models import EstimatorPredictor, FunctionPredictor, Predictor, TorchModelPredictor, load_predictor
from .utils.exceptions import (
    InvalidConfigError,
    InvalidFeatureError,
    InvalidTargetError,
    ModelExplainerError,
    ModelLoadError,
    PredictionFailure,
)

__version__ = "0.1.0"

__all__ = [
    'Dataset',
    'EstimatorPredictor',
    'ExplainerConfig',
    'FunctionPredictor',
    'ImportanceResult',
    'InvalidConfigError',
    'InvalidFeatureError',
    'InvalidTargetError',
    'ModelExplainerError',
    'ModelLoadError',
    'PartialDependenceComputer',
    'PartialDependenceResult',
    'PermutationImportanceComputer',
    'PredictionFailure',
    'Predictor',
    'TorchModelPredictor',
    'load_config',
    'load_predictor',
    'partial_dependence',
    'permutation_importance',
]
