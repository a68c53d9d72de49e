"""Configuration defaults and YAML loading for Model Explainer."""

import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .metrics.losses import LOSSES
from .utils.exceptions import InvalidConfigError

ENV_PREFIX = "MODEL_EXPLAINER_"

COMPARISON_MODES = ("difference", "ratio")

FIELD_TYPES = {
    "grid_size": int,
    "n_repeats": int,
    "sample_fraction": float,
    "metric": str,
    "comparison": str,
    "seed": int,
    "n_jobs": int,
}


@dataclass(frozen=True)
class ExplainerConfig:
    """Parameters shared by the partial dependence and importance computations."""

    grid_size: int = 20
    n_repeats: int = 5
    sample_fraction: float = 1.0
    metric: str = "rmse"
    comparison: str = "difference"
    seed: Optional[int] = None
    n_jobs: int = 1

    def validate(self) -> "ExplainerConfig":
        """Raise InvalidConfigError for any out-of-range value."""
        if self.grid_size < 2:
            raise InvalidConfigError(f"grid_size must be >= 2, got {self.grid_size}")
        if self.n_repeats < 1:
            raise InvalidConfigError(f"n_repeats must be >= 1, got {self.n_repeats}")
        if not 0 < self.sample_fraction <= 1:
            raise InvalidConfigError(
                f"sample_fraction must be in (0, 1], got {self.sample_fraction}"
            )
        if self.comparison not in COMPARISON_MODES:
            raise InvalidConfigError(
                f"comparison must be one of {COMPARISON_MODES}, got {self.comparison!r}"
            )
        if self.metric not in LOSSES:
            raise InvalidConfigError(
                f"metric must be one of {sorted(LOSSES)}, got {self.metric!r}"
            )
        if self.n_jobs == 0:
            raise InvalidConfigError("n_jobs must be non-zero")
        return self

    def updated(self, **overrides: Any) -> "ExplainerConfig":
        """Return a copy with the non-None overrides applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes).validate()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _coerce(name: str, raw: Any) -> Any:
    if raw is None:
        return None
    try:
        return FIELD_TYPES[name](raw)
    except (TypeError, ValueError) as e:
        raise InvalidConfigError(f"Invalid value for {name}: {raw!r}") from e


def _env_overrides() -> Dict[str, Any]:
    overrides = {}
    for f in fields(ExplainerConfig):
        value = os.environ.get(ENV_PREFIX + f.name.upper())
        if value is not None and value != "":
            overrides[f.name] = _coerce(f.name, value)
    return overrides


def load_config(path: Optional[str] = None, use_env: bool = True) -> ExplainerConfig:
    """
    Load configuration from an optional YAML file.

    Precedence is environment variables, then the file, then the defaults.

    Args:
        path: YAML file with top-level keys matching ExplainerConfig fields
        use_env: Whether to apply MODEL_EXPLAINER_* environment overrides

    Returns:
        Validated ExplainerConfig
    """
    values: Dict[str, Any] = {}

    if path:
        file_path = Path(path)
        if not file_path.exists():
            raise InvalidConfigError(f"Config file not found: {path}")
        with file_path.open("r", encoding="utf-8") as handle:
            try:
                loaded = yaml.safe_load(handle) or {}
            except yaml.YAMLError as e:
                raise InvalidConfigError(f"Could not parse {path}: {e}") from e
        if not isinstance(loaded, dict):
            raise InvalidConfigError(f"Config file {path} must contain a mapping")

        known = {f.name for f in fields(ExplainerConfig)}
        unknown = sorted(set(loaded) - known)
        if unknown:
            raise InvalidConfigError(f"Unknown config keys: {', '.join(unknown)}")
        values.update({k: _coerce(k, v) for k, v in loaded.items() if v is not None})

    if use_env:
        values.update(_env_overrides())

    return ExplainerConfig(**values).validate()
