"""
Model Base

Shared contract for the three hand-written architectures:
- train(): one online sample -> forward, MAE loss, backward, clip, Adam
- predict(): forward pass only
- save() / load(): full trainable state to/from a local binary file

Subclasses declare their tensors in ``_build_parameters`` and implement
``forward`` / ``backward``; everything else lives here.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import numpy as np

from config.settings import ModelType
from ml.optimizer import AdamOptimizer, GRADIENT_CLIP, clip_gradients
from ml.parameters import ParameterStore
from ml.persistence import load_store, save_store


logger = logging.getLogger(__name__)


def xavier_uniform(rng: np.random.Generator, fan_in: int, fan_out: int) -> np.ndarray:
    """Xavier/Glorot uniform init for a (fan_in, fan_out) matrix."""
    limit = np.sqrt(6.0 / (fan_in + fan_out))
    return rng.uniform(-limit, limit, size=(fan_in, fan_out))


def mae_loss(prediction: np.ndarray, target: np.ndarray) -> float:
    """Mean absolute error over output components."""
    return float(np.mean(np.abs(prediction - target)))


def mae_gradient(prediction: np.ndarray, target: np.ndarray) -> np.ndarray:
    """
    Sign of the error: +1.0 where prediction >= target, else -1.0.

    Ties take +1.0. The magnitude of the error never reaches the backward
    pass, only its direction.
    """
    return np.where(prediction >= target, 1.0, -1.0)


class NeuralModel(ABC):
    """
    Abstract base class for online-trained networks.

    Dimensions and Adam hyperparameters are fixed at construction. The
    instance exclusively owns its ParameterStore and is not reentrant.
    """

    model_type: ModelType

    def __init__(
        self,
        input_size: int,
        hidden_size: int,
        output_size: int,
        learning_rate: float = 0.001,
        beta1: float = 0.9,
        beta2: float = 0.999,
        seed: Optional[int] = None,
        weight_clip: Optional[float] = None
    ):
        self.input_size = input_size
        self.hidden_size = hidden_size
        self.output_size = output_size

        self.store = ParameterStore()
        self.optimizer = AdamOptimizer(
            learning_rate=learning_rate,
            beta1=beta1,
            beta2=beta2,
            weight_clip=weight_clip
        )

        self._build_parameters(np.random.default_rng(seed))

    @abstractmethod
    def _build_parameters(self, rng: np.random.Generator) -> None:
        """Declare every tensor in self.store, in persistence order."""

    @property
    @abstractmethod
    def input_length(self) -> int:
        """Length of the flat input vector train/predict expect."""

    @abstractmethod
    def forward(self, inputs: np.ndarray) -> Any:
        """
        Forward pass.

        Args:
            inputs: Flat float64 vector of ``input_length`` elements

        Returns:
            A per-call cache object whose ``output`` attribute is the
            prediction vector
        """

    @abstractmethod
    def backward(self, cache: Any, output_gradient: np.ndarray) -> Dict[str, np.ndarray]:
        """
        Backward pass.

        Args:
            cache: Object returned by forward() for the same sample
            output_gradient: dLoss/dOutput, shape (output_size,)

        Returns:
            Unclipped gradient per parameter name, shaped like the parameter
        """

    @property
    def learning_rate(self) -> float:
        return self.optimizer.learning_rate

    @property
    def beta1(self) -> float:
        return self.optimizer.beta1

    @property
    def beta2(self) -> float:
        return self.optimizer.beta2

    @property
    def step_count(self) -> int:
        return self.store.step_count

    @property
    def parameter_count(self) -> int:
        return self.store.total_size

    def train(self, inputs: np.ndarray, target: np.ndarray) -> float:
        """
        Train on one sample.

        Args:
            inputs: Flat input vector (``input_length`` elements)
            target: Target vector (``output_size`` elements)

        Returns:
            Mean absolute error of the prediction made before the update
        """
        x = np.asarray(inputs, dtype=np.float64).ravel()
        y = np.asarray(target, dtype=np.float64).ravel()

        cache = self.forward(x)
        loss = mae_loss(cache.output, y)

        gradients = self.backward(cache, mae_gradient(cache.output, y))
        self.optimizer.step(self.store, clip_gradients(gradients, GRADIENT_CLIP))

        logger.debug(f"{self.model_type.value} step {self.store.step_count}: loss={loss:.6f}")
        return loss

    def predict(self, inputs: np.ndarray) -> np.ndarray:
        """
        Forward pass only; the model is not modified.

        Returns:
            Prediction vector of ``output_size`` elements
        """
        x = np.asarray(inputs, dtype=np.float64).ravel()
        return self.forward(x).output

    def save(self, path: str) -> bool:
        """Save full trainable state. False on I/O failure."""
        ok = save_store(self.store, path)
        if ok:
            logger.info(
                f"Model saved to {path} (step {self.store.step_count})",
                extra={"model_type": self.model_type.value, "path": path, "step": self.store.step_count}
            )
        return ok

    def load(self, path: str) -> bool:
        """Overwrite full trainable state from ``path``. False on failure."""
        ok = load_store(self.store, path)
        if ok:
            logger.info(
                f"Model loaded from {path} (step {self.store.step_count})",
                extra={"model_type": self.model_type.value, "path": path, "step": self.store.step_count}
            )
        return ok

    def describe(self) -> Dict[str, Any]:
        """Hyperparameters and counters, for logs and CLI output."""
        return {
            "model_type": self.model_type.value,
            "input_size": self.input_size,
            "hidden_size": self.hidden_size,
            "output_size": self.output_size,
            "learning_rate": self.learning_rate,
            "beta1": self.beta1,
            "beta2": self.beta2,
            "parameters": self.parameter_count,
            "step_count": self.step_count,
        }
