"""
Gated Recurrent (LSTM) Model

Four gates per timestep, each with its own input-side weight, hidden-side
weight and bias:

    f = sigmoid(x_t . Wf_x + h[t] . Wf_h + bf)      forget
    i = sigmoid(x_t . Wi_x + h[t] . Wi_h + bi)      input
    g = tanh   (x_t . Wg_x + h[t] . Wg_h + bg)      candidate
    o = sigmoid(x_t . Wo_x + h[t] . Wo_h + bo)      output

    c[t+1] = f * c[t] + i * g
    h[t+1] = o * tanh(c[t+1])

Only h[T] feeds a separate linear projection to the output. After every
Adam step each weight and bias is clamped to [-5, 5].
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import numpy as np

from config.settings import ModelType
from ml.activations import sigmoid, sigmoid_derivative, tanh, tanh_derivative
from ml.base import NeuralModel, xavier_uniform


logger = logging.getLogger(__name__)


WEIGHT_CLIP = 5.0
FORGET_BIAS = 1.0

GATES = ("forget", "input", "candidate", "output")

# Activation and its derivative expressed in the activated value
GATE_ACTIVATIONS: Dict[str, Callable[[np.ndarray], np.ndarray]] = {
    "forget": sigmoid,
    "input": sigmoid,
    "candidate": tanh,
    "output": sigmoid,
}
GATE_DERIVATIVES: Dict[str, Callable[[np.ndarray], np.ndarray]] = {
    "forget": sigmoid_derivative,
    "input": sigmoid_derivative,
    "candidate": tanh_derivative,
    "output": sigmoid_derivative,
}


def gate_parameter_names(gate: str) -> Dict[str, str]:
    return {
        "input_weight": f"w_{gate}_x",
        "hidden_weight": f"w_{gate}_h",
        "bias": f"b_{gate}",
    }


@dataclass
class LSTMSequenceBuffer:
    """
    Per-call scratch for timesteps 0 .. sequence_length.

    Row t+1 of every array holds the state produced at step t; row 0 is the
    zero initial state (gate row 0 is unused).
    """
    inputs: np.ndarray  # (T, input_size)
    hidden: np.ndarray  # (T + 1, hidden_size)
    cell: np.ndarray    # (T + 1, hidden_size)
    gates: Dict[str, np.ndarray] = field(default_factory=dict)
    output: Optional[np.ndarray] = None


class LSTMModel(NeuralModel):
    """
    LSTM trained one sequence at a time with full BPTT.

    Parameters, in persistence order: for each gate in forget, input,
    candidate, output: w_<gate>_x (input, hidden), w_<gate>_h
    (hidden, hidden), b_<gate> (hidden); then w_projection (hidden, output)
    and b_projection (output).
    """

    model_type = ModelType.LSTM

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
            learning_rate=learning_rate, beta1=beta1, beta2=beta2, seed=seed,
            weight_clip=WEIGHT_CLIP
        )
        logger.info(
            f"LSTMModel created: input={input_size}, hidden={hidden_size}, "
            f"output={output_size}, sequence={sequence_length}"
        )

    def _build_parameters(self, rng: np.random.Generator) -> None:
        for gate in GATES:
            names = gate_parameter_names(gate)
            self.store.add(
                names["input_weight"],
                (self.input_size, self.hidden_size),
                xavier_uniform(rng, self.input_size, self.hidden_size)
            )
            self.store.add(
                names["hidden_weight"],
                (self.hidden_size, self.hidden_size),
                xavier_uniform(rng, self.hidden_size, self.hidden_size)
            )
            bias = np.full(self.hidden_size, FORGET_BIAS) if gate == "forget" else None
            self.store.add(names["bias"], (self.hidden_size,), bias)

        self.store.add(
            "w_projection",
            (self.hidden_size, self.output_size),
            xavier_uniform(rng, self.hidden_size, self.output_size)
        )
        self.store.add("b_projection", (self.output_size,))

    @property
    def input_length(self) -> int:
        return self.sequence_length * self.input_size

    def forward(self, inputs: np.ndarray) -> LSTMSequenceBuffer:
        T, H = self.sequence_length, self.hidden_size
        x = inputs.reshape(T, self.input_size)

        buf = LSTMSequenceBuffer(
            inputs=x,
            hidden=np.zeros((T + 1, H)),
            cell=np.zeros((T + 1, H)),
            gates={gate: np.zeros((T + 1, H)) for gate in GATES},
        )

        for t in range(T):
            for gate in GATES:
                names = gate_parameter_names(gate)
                pre = (
                    x[t] @ self.store[names["input_weight"]].matrix()
                    + buf.hidden[t] @ self.store[names["hidden_weight"]].matrix()
                    + self.store[names["bias"]].value
                )
                buf.gates[gate][t + 1] = GATE_ACTIVATIONS[gate](pre)

            f = buf.gates["forget"][t + 1]
            i = buf.gates["input"][t + 1]
            g = buf.gates["candidate"][t + 1]
            o = buf.gates["output"][t + 1]

            buf.cell[t + 1] = f * buf.cell[t] + i * g
            buf.hidden[t + 1] = o * tanh(buf.cell[t + 1])

        buf.output = buf.hidden[-1] @ self.store["w_projection"].matrix() + self.store["b_projection"].value
        return buf

    def backward(self, cache: LSTMSequenceBuffer, output_gradient: np.ndarray) -> Dict[str, np.ndarray]:
        grads = self.store.zero_gradients()
        grads["w_projection"] = np.outer(cache.hidden[-1], output_gradient)
        grads["b_projection"] = output_gradient.copy()

        d_hidden = self.store["w_projection"].matrix() @ output_gradient
        d_cell_next = np.zeros(self.hidden_size)

        for t in reversed(range(self.sequence_length)):
            act = {gate: cache.gates[gate][t + 1] for gate in GATES}
            tanh_cell = tanh(cache.cell[t + 1])

            d_cell = d_hidden * act["output"] * tanh_derivative(tanh_cell) + d_cell_next

            # dLoss/d(gate activation)
            d_act = {
                "output": d_hidden * tanh_cell,
                "forget": d_cell * cache.cell[t],
                "input": d_cell * act["candidate"],
                "candidate": d_cell * act["input"],
            }
            d_cell_next = d_cell * act["forget"]

            d_hidden = np.zeros(self.hidden_size)
            for gate in GATES:
                names = gate_parameter_names(gate)
                d_pre = d_act[gate] * GATE_DERIVATIVES[gate](act[gate])

                grads[names["input_weight"]] += np.outer(cache.inputs[t], d_pre)
                grads[names["hidden_weight"]] += np.outer(cache.hidden[t], d_pre)
                grads[names["bias"]] += d_pre

                d_hidden += self.store[names["hidden_weight"]].matrix() @ d_pre

        return grads

    def describe(self) -> Dict[str, Any]:
        info = super().describe()
        info["sequence_length"] = self.sequence_length
        return info
