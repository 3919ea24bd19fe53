"""
Recurrent Model

Single tanh hidden layer unrolled over a fixed window, many-to-one:

    h[0]   = 0
    h[t+1] = tanh(x_t . W_ih + h[t] . W_hh + b_h)     t = 0 .. T-1
    y      = h[T] . W_ho + b_o

Trained with full BPTT over the window. The hidden delta is clipped to
[-1, 1] at every timestep right after the tanh derivative; the summed
gradients are clipped again before the optimizer. Long windows diverge
without the per-timestep clip.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np

from config.settings import ModelType
from ml.activations import tanh, tanh_derivative
from ml.base import NeuralModel, xavier_uniform
from ml.optimizer import GRADIENT_CLIP, clip_gradient


logger = logging.getLogger(__name__)


@dataclass
class SequenceBuffer:
    """Per-call scratch: hidden[t] for t = 0 .. sequence_length."""
    inputs: np.ndarray  # (T, input_size)
    hidden: np.ndarray  # (T + 1, hidden_size)
    output: np.ndarray


class RecurrentModel(NeuralModel):
    """
    Vanilla RNN trained one sequence at a time.

    Input is a timestep-major flat vector of sequence_length * input_size
    values. Parameters, in persistence order: w_input_hidden, w_hidden_hidden,
    b_hidden, w_hidden_output, b_output.
    """

    model_type = ModelType.RNN

    def __init__(
        self,
        input_size: int,
        hidden_size: int,
        output_size: int,
        sequence_length: int,
        learning_rate: float = 0.001,
        beta1: float = 0.9,
        beta2: float = 0.999,
        seed: Optional[int] = None
    ):
        self.sequence_length = sequence_length
        super().__init__(
            input_size, hidden_size, output_size,
            learning_rate=learning_rate, beta1=beta1, beta2=beta2, seed=seed
        )
        logger.info(
            f"RecurrentModel created: input={input_size}, hidden={hidden_size}, "
            f"output={output_size}, sequence={sequence_length}"
        )

    def _build_parameters(self, rng: np.random.Generator) -> None:
        self.store.add(
            "w_input_hidden",
            (self.input_size, self.hidden_size),
            xavier_uniform(rng, self.input_size, self.hidden_size)
        )
        self.store.add(
            "w_hidden_hidden",
            (self.hidden_size, self.hidden_size),
            xavier_uniform(rng, self.hidden_size, self.hidden_size)
        )
        self.store.add("b_hidden", (self.hidden_size,))
        self.store.add(
            "w_hidden_output",
            (self.hidden_size, self.output_size),
            xavier_uniform(rng, self.hidden_size, self.output_size)
        )
        self.store.add("b_output", (self.output_size,))

    @property
    def input_length(self) -> int:
        return self.sequence_length * self.input_size

    def forward(self, inputs: np.ndarray) -> SequenceBuffer:
        x = inputs.reshape(self.sequence_length, self.input_size)
        w_ih = self.store["w_input_hidden"].matrix()
        w_hh = self.store["w_hidden_hidden"].matrix()
        b_h = self.store["b_hidden"].value

        hidden = np.zeros((self.sequence_length + 1, self.hidden_size))
        for t in range(self.sequence_length):
            hidden[t + 1] = tanh(x[t] @ w_ih + hidden[t] @ w_hh + b_h)

        y = hidden[-1] @ self.store["w_hidden_output"].matrix() + self.store["b_output"].value
        return SequenceBuffer(inputs=x, hidden=hidden, output=y)

    def backward(self, cache: SequenceBuffer, output_gradient: np.ndarray) -> Dict[str, np.ndarray]:
        w_hh = self.store["w_hidden_hidden"].matrix()
        w_ho = self.store["w_hidden_output"].matrix()
        hidden = cache.hidden

        grads = self.store.zero_gradients()
        grads["w_hidden_output"] = np.outer(hidden[-1], output_gradient)
        grads["b_output"] = output_gradient.copy()

        d_hidden = w_ho @ output_gradient
        for t in reversed(range(self.sequence_length)):
            delta = clip_gradient(d_hidden * tanh_derivative(hidden[t + 1]), GRADIENT_CLIP)

            grads["w_input_hidden"] += np.outer(cache.inputs[t], delta)
            grads["w_hidden_hidden"] += np.outer(hidden[t], delta)
            grads["b_hidden"] += delta

            d_hidden = w_hh @ delta

        return grads

    def describe(self) -> Dict[str, Any]:
        info = super().describe()
        info["sequence_length"] = self.sequence_length
        return info
