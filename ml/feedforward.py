"""
Feedforward Model

One hidden layer with a leaky rectifier, linear output (regression):

    z = x . W_ih + b_h
    a = leaky_relu(z)
    y = a . W_ho + b_o
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np

from config.settings import ModelType
from ml.activations import leaky_relu, leaky_relu_derivative
from ml.base import NeuralModel, xavier_uniform


logger = logging.getLogger(__name__)


@dataclass
class FeedforwardCache:
    inputs: np.ndarray
    pre_activation: np.ndarray
    hidden: np.ndarray
    output: np.ndarray


class FeedforwardModel(NeuralModel):
    """
    Single-hidden-layer perceptron trained one sample at a time.

    Parameters, in persistence order: w_input_hidden (input, hidden),
    b_hidden (hidden), w_hidden_output (hidden, output), b_output (output).
    """

    model_type = ModelType.FEEDFORWARD

    def __init__(
        self,
        input_size: int,
        hidden_size: int,
        output_size: int,
        learning_rate: float = 0.001,
        beta1: float = 0.9,
        beta2: float = 0.999,
        seed: Optional[int] = None
    ):
        super().__init__(
            input_size, hidden_size, output_size,
            learning_rate=learning_rate, beta1=beta1, beta2=beta2, seed=seed
        )
        logger.info(
            f"FeedforwardModel created: input={input_size}, hidden={hidden_size}, "
            f"output={output_size}"
        )

    def _build_parameters(self, rng: np.random.Generator) -> None:
        self.store.add(
            "w_input_hidden",
            (self.input_size, self.hidden_size),
            xavier_uniform(rng, self.input_size, self.hidden_size)
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
        return self.input_size

    def forward(self, inputs: np.ndarray) -> FeedforwardCache:
        w_ih = self.store["w_input_hidden"].matrix()
        w_ho = self.store["w_hidden_output"].matrix()

        z = inputs @ w_ih + self.store["b_hidden"].value
        a = leaky_relu(z)
        y = a @ w_ho + self.store["b_output"].value

        return FeedforwardCache(inputs=inputs, pre_activation=z, hidden=a, output=y)

    def backward(self, cache: FeedforwardCache, output_gradient: np.ndarray) -> Dict[str, np.ndarray]:
        w_ho = self.store["w_hidden_output"].matrix()

        # Output layer
        grads = {
            "w_hidden_output": np.outer(cache.hidden, output_gradient),
            "b_output": output_gradient.copy(),
        }

        # Hidden layer
        d_z = (w_ho @ output_gradient) * leaky_relu_derivative(cache.pre_activation)
        grads["w_input_hidden"] = np.outer(cache.inputs, d_z)
        grads["b_hidden"] = d_z

        return grads
