"""
Parameter Store

Every learnable tensor lives here as a flat row-major float64 array with its
declared shape and its Adam moment pair. A weight matrix of shape (in, out)
keeps element (i, j) at offset i*out + j, so ``matrix()`` is a plain reshape
view over the flat storage.

Declaration order is significant: the optimizer and the persistence codec
both walk parameters in the order they were added.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np

from utils.exceptions import ShapeError


def _shape_size(shape: Tuple[int, ...]) -> int:
    size = 1
    for dim in shape:
        size *= dim
    return size


@dataclass
class Parameter:
    """One weight matrix or bias vector plus its first/second moments."""
    name: str
    shape: Tuple[int, ...]
    value: np.ndarray
    m: Optional[np.ndarray] = None
    v: Optional[np.ndarray] = None

    def __post_init__(self):
        if self.m is None:
            self.m = np.zeros_like(self.value)
        if self.v is None:
            self.v = np.zeros_like(self.value)

    @property
    def size(self) -> int:
        return _shape_size(self.shape)

    def matrix(self) -> np.ndarray:
        """Shaped view over the flat value array (no copy)."""
        return self.value.reshape(self.shape)

    def check(self) -> None:
        """Raise ShapeError if any array disagrees with the declared shape."""
        for label, array in (("value", self.value), ("m", self.m), ("v", self.v)):
            if array.ndim != 1 or array.size != self.size:
                raise ShapeError(
                    f"Parameter {label} length does not match its shape {self.shape}",
                    parameter=f"{self.name}.{label}",
                    expected=self.size,
                    actual=array.size
                )


class ParameterStore:
    """
    Ordered collection of Parameters plus the Adam step counter.

    ``step_count`` is incremented only by the optimizer (one per training
    call) and overwritten only by loading a saved state.
    """

    def __init__(self):
        self._params: Dict[str, Parameter] = {}
        self.step_count = 0

    def add(
        self,
        name: str,
        shape: Tuple[int, ...],
        initial: Optional[np.ndarray] = None
    ) -> Parameter:
        """
        Declare a new parameter.

        Args:
            name: Unique tensor name
            shape: Declared shape, e.g. (in, out) for a weight matrix
            initial: Initial values (any array with product(shape) elements);
                zeros if None

        Returns:
            The registered Parameter
        """
        if name in self._params:
            raise ValueError(f"Parameter {name!r} already declared")

        shape = tuple(int(d) for d in shape)
        if initial is None:
            value = np.zeros(_shape_size(shape), dtype=np.float64)
        else:
            value = np.array(initial, dtype=np.float64).ravel()

        param = Parameter(name=name, shape=shape, value=value)
        param.check()
        self._params[name] = param
        return param

    def __getitem__(self, name: str) -> Parameter:
        return self._params[name]

    def __contains__(self, name: str) -> bool:
        return name in self._params

    def __iter__(self) -> Iterator[Parameter]:
        return iter(self._params.values())

    def __len__(self) -> int:
        return len(self._params)

    @property
    def names(self) -> List[str]:
        return list(self._params)

    @property
    def total_size(self) -> int:
        """Number of scalar weights and biases (moments excluded)."""
        return sum(p.size for p in self._params.values())

    def check(self) -> None:
        """Validate every parameter/moment array against its shape."""
        for param in self._params.values():
            param.check()

    def zero_gradients(self) -> Dict[str, np.ndarray]:
        """Fresh zero gradient arrays, shaped like each parameter matrix."""
        return {
            name: np.zeros(param.shape, dtype=np.float64)
            for name, param in self._params.items()
        }
