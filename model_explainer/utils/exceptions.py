"""Custom exceptions for Model Explainer."""


class ModelExplainerError(Exception):
    """Base exception for Model Explainer."""
    pass


class InvalidFeatureError(ModelExplainerError):
    """Exception raised when a referenced feature column is missing or unusable."""
    pass


class InvalidTargetError(ModelExplainerError):
    """Exception raised when the target column is missing from the dataset."""
    pass


class InvalidConfigError(ModelExplainerError):
    """Exception raised for out-of-range parameters and bad configuration."""
    pass


class PredictionFailure(ModelExplainerError):
    """Exception raised when the predictor fails or returns an unusable value."""
    pass


class ModelLoadError(ModelExplainerError):
    """Exception raised when a serialized model cannot be read."""
    pass
