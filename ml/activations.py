"""
Activation kernels and their derivatives.

Derivatives of sigmoid and tanh take the *activated* value (the forward pass
already has it in the sequence buffer); the leaky rectifier derivative takes
the pre-activation.
"""

from __future__ import annotations

import numpy as np


LEAKY_SLOPE = 0.01


def sigmoid(x: np.ndarray) -> np.ndarray:
    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-x))


def sigmoid_derivative(s: np.ndarray) -> np.ndarray:
    """d/dx sigmoid(x), given s = sigmoid(x)."""
    return s * (1.0 - s)


def tanh(x: np.ndarray) -> np.ndarray:
    return np.tanh(x)


def tanh_derivative(t: np.ndarray) -> np.ndarray:
    """d/dx tanh(x), given t = tanh(x)."""
    return 1.0 - t * t


def leaky_relu(x: np.ndarray, slope: float = LEAKY_SLOPE) -> np.ndarray:
    return np.where(x > 0.0, x, slope * x)


def leaky_relu_derivative(x: np.ndarray, slope: float = LEAKY_SLOPE) -> np.ndarray:
    """1.0 where the pre-activation is positive, else the slope."""
    return np.where(x > 0.0, 1.0, slope)
