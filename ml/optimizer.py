"""
Gradient clipping and Adam

One optimizer step per training call: the step counter is incremented first,
then every parameter in the store is moved with its own moment pair.
"""

from __future__ import annotations

from typing import Dict, Optional

import numpy as np

from ml.parameters import Parameter, ParameterStore


GRADIENT_CLIP = 1.0
ADAM_EPSILON = 1e-8


def clip_gradient(g: np.ndarray, limit: float = GRADIENT_CLIP) -> np.ndarray:
    """Elementwise max(-limit, min(limit, g))."""
    return np.maximum(-limit, np.minimum(limit, g))


def clip_gradients(
    gradients: Dict[str, np.ndarray],
    limit: float = GRADIENT_CLIP
) -> Dict[str, np.ndarray]:
    return {name: clip_gradient(g, limit) for name, g in gradients.items()}


def adam_update(
    param: Parameter,
    grad: np.ndarray,
    step: int,
    learning_rate: float,
    beta1: float,
    beta2: float
) -> None:
    """
    In-place Adam update of one parameter and its moments.

    The operation order matches the reference formulation exactly so saved
    weights stay reproducible:

        m <- b1*m + (1-b1)*g
        v <- b2*v + (1-b2)*g*g
        m_hat <- m / (1 - b1^t)
        v_hat <- v / (1 - b2^t)
        p <- p - lr * m_hat / (sqrt(v_hat) + 1e-8)
    """
    g = np.asarray(grad, dtype=np.float64).ravel()

    param.m[:] = beta1 * param.m + (1.0 - beta1) * g
    param.v[:] = beta2 * param.v + (1.0 - beta2) * g * g

    m_hat = param.m / (1.0 - beta1 ** step)
    v_hat = param.v / (1.0 - beta2 ** step)

    param.value[:] = param.value - learning_rate * m_hat / (np.sqrt(v_hat) + ADAM_EPSILON)


class AdamOptimizer:
    """
    Adam over a whole ParameterStore.

    Args:
        learning_rate: Step size
        beta1: First-moment decay
        beta2: Second-moment decay
        weight_clip: If set, every parameter value is clamped to
            [-weight_clip, weight_clip] after each update
    """

    def __init__(
        self,
        learning_rate: float = 0.001,
        beta1: float = 0.9,
        beta2: float = 0.999,
        weight_clip: Optional[float] = None
    ):
        self.learning_rate = learning_rate
        self.beta1 = beta1
        self.beta2 = beta2
        self.weight_clip = weight_clip

    def step(self, store: ParameterStore, gradients: Dict[str, np.ndarray]) -> int:
        """
        Apply one update to every parameter.

        Args:
            store: Parameters to update (mutated in place)
            gradients: Gradient per parameter name, already clipped

        Returns:
            The new step count
        """
        store.step_count += 1
        t = store.step_count

        for param in store:
            adam_update(
                param,
                gradients[param.name],
                t,
                self.learning_rate,
                self.beta1,
                self.beta2
            )
            if self.weight_clip is not None:
                np.clip(param.value, -self.weight_clip, self.weight_clip, out=param.value)

        return t
