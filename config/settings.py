"""
Neural Engine Configuration - Online Price-Delta Forecasting

All configuration parameters for:
- Network architecture and Adam hyperparameters
- Feature windowing
- Online training loop and persistence paths
- Logging

Model classes never read these settings themselves; the host (CLI, trainer,
inference engine) reads them and passes hyperparameters explicitly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional
from enum import Enum


def _env_bool(name: str, default: bool = False) -> bool:
    """Parse boolean from environment variable."""
    v = os.getenv(name)
    if v is None:
        return default
    return str(v).strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    """Parse float from environment variable."""
    v = os.getenv(name)
    if v is None:
        return default
    try:
        return float(v)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    """Parse int from environment variable."""
    v = os.getenv(name)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_optional_int(name: str) -> Optional[int]:
    """Parse optional int (unset or invalid -> None)."""
    v = os.getenv(name)
    if v is None or not v.strip():
        return None
    try:
        return int(v)
    except ValueError:
        return None


class ModelType(str, Enum):
    """Supported network architectures."""
    FEEDFORWARD = "feedforward"
    RNN = "rnn"
    LSTM = "lstm"


@dataclass
class NetworkConfig:
    """Architecture and optimizer hyperparameters."""

    model_type: ModelType = field(
        default_factory=lambda: ModelType(os.getenv("ML_MODEL_TYPE", "lstm").lower())
    )

    hidden_size: int = field(default_factory=lambda: _env_int("ML_HIDDEN_SIZE", 16))
    output_size: int = 1

    # Adam
    learning_rate: float = field(default_factory=lambda: _env_float("ML_LEARNING_RATE", 0.001))
    beta1: float = 0.9
    beta2: float = 0.999

    # Weight initialization seed (None = fresh entropy)
    seed: Optional[int] = field(default_factory=lambda: _env_optional_int("ML_SEED"))


@dataclass
class FeatureConfig:
    """Feature windowing settings."""

    # Timesteps per sample; the feedforward model sees the same window flattened
    sequence_length: int = field(default_factory=lambda: _env_int("ML_SEQUENCE_LENGTH", 10))

    # Oscillator (RSI) lookback
    oscillator_period: int = 14

    # Per-timestep features, in vector order
    feature_names: List[str] = field(default_factory=lambda: ["price_delta", "rsi"])

    # Scaled feature range
    scale_min: float = -1.0
    scale_max: float = 1.0

    @property
    def feature_dim(self) -> int:
        return len(self.feature_names)


@dataclass
class TrainingConfig:
    """Online training loop settings."""

    epochs: int = field(default_factory=lambda: _env_int("ML_EPOCHS", 5))

    # Rolling window of recent per-sample losses
    loss_window: int = 100

    # Shuffle sample order each epoch (the sample itself is never batched)
    shuffle: bool = field(default_factory=lambda: _env_bool("ML_SHUFFLE", False))

    # Persistence
    model_save_path: str = field(default_factory=lambda: os.getenv("ML_MODEL_DIR", "data/models"))
    scaler_filename: str = "scaler.json"
    save_on_improvement: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""

    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_file: str = "neural_engine.log"
    log_format: str = field(default_factory=lambda: os.getenv("LOG_FORMAT", "text"))


@dataclass
class Settings:
    """
    Master configuration container.
    """

    network: NetworkConfig = field(default_factory=NetworkConfig)
    features: FeatureConfig = field(default_factory=FeatureConfig)
    training: TrainingConfig = field(default_factory=TrainingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> List[str]:
        """
        Validate configuration and return list of errors.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        # Network validation
        if self.network.hidden_size <= 0:
            errors.append("hidden_size must be positive")
        if self.network.output_size <= 0:
            errors.append("output_size must be positive")
        if self.network.learning_rate <= 0:
            errors.append("learning_rate must be positive")
        if not 0 < self.network.beta1 < 1:
            errors.append("beta1 must be between 0 and 1")
        if not 0 < self.network.beta2 < 1:
            errors.append("beta2 must be between 0 and 1")
        if self.network.seed is not None and self.network.seed < 0:
            errors.append("seed must be non-negative")

        # Feature validation
        if self.features.sequence_length <= 0:
            errors.append("sequence_length must be positive")
        if self.features.oscillator_period <= 1:
            errors.append("oscillator_period must be greater than 1")
        if self.features.scale_max <= self.features.scale_min:
            errors.append("scale_max must be greater than scale_min")

        # Training validation
        if self.training.epochs <= 0:
            errors.append("epochs must be positive")
        if self.training.loss_window <= 0:
            errors.append("loss_window must be positive")

        return errors


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get global settings instance (singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Force reload settings from environment."""
    global _settings
    _settings = Settings()
    return _settings
