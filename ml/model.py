"""
ML Model Definitions

Three hand-written architectures for online price-delta regression:
- FeedforwardModel: one leaky-ReLU hidden layer over the flattened window
- RecurrentModel: tanh RNN over the window, many-to-one
- LSTMModel: four-gate LSTM over the window with a linear projection

All share the NeuralModel contract (train / predict / save / load). Models
are configurable via settings through create_model().
"""

from __future__ import annotations

from typing import Optional

from config.settings import (
    get_settings, FeatureConfig, ModelType, NetworkConfig
)
from ml.base import NeuralModel
from ml.feedforward import FeedforwardModel
from ml.lstm import LSTMModel
from ml.recurrent import RecurrentModel
from utils.exceptions import ConfigurationError, ValidationError
from utils.validation import validate_positive_int, validate_probability


def create_model(
    model_type: Optional[ModelType] = None,
    network: Optional[NetworkConfig] = None,
    features: Optional[FeatureConfig] = None
) -> NeuralModel:
    """
    Factory function to create the configured model.

    The feedforward model receives the whole window flattened as its input
    (sequence_length * feature_dim); the recurrent models receive
    feature_dim values per timestep.

    Args:
        model_type: Architecture (uses config if None)
        network: Architecture/optimizer settings (uses global settings if None)
        features: Window settings (uses global settings if None)

    Returns:
        NeuralModel instance

    Raises:
        ConfigurationError: Invalid dimensions or hyperparameters
    """
    settings = get_settings()
    network = network or settings.network
    features = features or settings.features
    try:
        model_type = ModelType(model_type or network.model_type)
    except ValueError:
        raise ConfigurationError(f"Unknown model type: {model_type}")

    try:
        hidden_size = validate_positive_int(network.hidden_size, "hidden_size")
        output_size = validate_positive_int(network.output_size, "output_size")
        sequence_length = validate_positive_int(features.sequence_length, "sequence_length")
        feature_dim = validate_positive_int(features.feature_dim, "feature_dim")
        beta1 = validate_probability(network.beta1, "beta1")
        beta2 = validate_probability(network.beta2, "beta2")
    except ValidationError as e:
        raise ConfigurationError(f"Invalid model configuration: {e.message}", context=e.context)

    if network.learning_rate <= 0:
        raise ConfigurationError("learning_rate must be positive", context={"value": network.learning_rate})

    common = dict(
        hidden_size=hidden_size,
        output_size=output_size,
        learning_rate=network.learning_rate,
        beta1=beta1,
        beta2=beta2,
        seed=network.seed,
    )

    if model_type == ModelType.FEEDFORWARD:
        return FeedforwardModel(input_size=sequence_length * feature_dim, **common)
    elif model_type == ModelType.RNN:
        return RecurrentModel(input_size=feature_dim, sequence_length=sequence_length, **common)
    elif model_type == ModelType.LSTM:
        return LSTMModel(input_size=feature_dim, sequence_length=sequence_length, **common)
    else:
        raise ConfigurationError(f"Unknown model type: {model_type}")
