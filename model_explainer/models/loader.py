"""Loading serialized models as predictors."""

from pathlib import Path
from typing import List, Optional

import joblib
import torch
import torch.nn as nn

from ..utils.exceptions import ModelLoadError
from ..utils.logging import get_logger
from .predictor import Predictor, as_predictor

logger = get_logger(__name__)

JOBLIB_SUFFIXES = ('.joblib', '.pkl', '.pickle')
TORCH_SUFFIXES = ('.pt', '.pth')


def _load_scaler(path: Path):
    scaler_path = path.with_suffix('.scaler')
    if scaler_path.exists():
        logger.info(f"Loading input scaler from {scaler_path}")
        return joblib.load(scaler_path)
    return None


def _load_joblib(path: Path, feature_names: Optional[List[str]]) -> Predictor:
    obj = joblib.load(path)

    # Bundles saved as {'model': estimator, 'feature_columns': [...]}
    if isinstance(obj, dict):
        if 'model' not in obj:
            raise ModelLoadError(f"{path} holds a dict without a 'model' entry")
        feature_names = feature_names or obj.get('feature_columns')
        obj = obj['model']

    if not hasattr(obj, 'predict'):
        raise ModelLoadError(f"{path} holds {type(obj).__name__}, which has no predict method")

    return as_predictor(obj, feature_names)


def _load_torch(path: Path, feature_names: Optional[List[str]],
                device: Optional[torch.device]) -> Predictor:
    device = device or torch.device('cpu')
    checkpoint = torch.load(path, map_location=device, weights_only=False)

    if isinstance(checkpoint, dict):
        if not isinstance(checkpoint.get('model'), nn.Module):
            # A bare state_dict cannot be rebuilt without its architecture
            raise ModelLoadError(
                f"{path} holds a checkpoint without a 'model' module; "
                "save the whole module to explain it"
            )
        feature_names = feature_names or checkpoint.get('feature_columns')
        checkpoint = checkpoint['model']

    if not isinstance(checkpoint, nn.Module):
        raise ModelLoadError(f"{path} holds {type(checkpoint).__name__}, not a torch module")
    if not feature_names:
        raise ModelLoadError(f"Feature names are required to explain torch model {path}")

    return as_predictor(checkpoint, feature_names, scaler=_load_scaler(path), device=device)


def load_predictor(path: str, feature_names: Optional[List[str]] = None,
                   device: Optional[torch.device] = None) -> Predictor:
    """
    Load a serialized model and adapt it to the Predictor interface.

    Args:
        path: Model file; .joblib/.pkl/.pickle for estimators, .pt/.pth for torch
        feature_names: Input column order; read from the file when it stores one
        device: Torch device for inference (defaults to CPU)

    Returns:
        Predictor wrapping the loaded model
    """
    model_path = Path(path)
    if not model_path.exists():
        raise ModelLoadError(f"Model file not found: {path}")

    suffix = model_path.suffix.lower()
    logger.info(f"Loading model from {model_path}")

    try:
        if suffix in JOBLIB_SUFFIXES:
            return _load_joblib(model_path, feature_names)
        if suffix in TORCH_SUFFIXES:
            return _load_torch(model_path, feature_names, device)
    except ModelLoadError:
        raise
    except Exception as e:
        raise ModelLoadError(f"Could not load model from {path}: {e}") from e

    raise ModelLoadError(
        f"Unsupported model format '{suffix}'; expected one of "
        f"{', '.join(JOBLIB_SUFFIXES + TORCH_SUFFIXES)}"
    )
