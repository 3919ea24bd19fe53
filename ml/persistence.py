"""
Persistence Codec

Binary layout (no header, no version tag, shapes implied by the architecture):

    int64      step counter
    float64[]  every parameter value array, in declaration order
    float64[]  for every parameter, same order: first moment, then second moment

All values little-endian. The reader must be given a store with exactly the
architecture that produced the file; a file from a different architecture of
the same total size loads without complaint.
"""

from __future__ import annotations

import logging
import os
import struct
from typing import BinaryIO, List, Optional, Tuple

import numpy as np

from ml.parameters import ParameterStore
from utils.exceptions import PersistenceError, ShapeError


logger = logging.getLogger(__name__)


STEP_FORMAT = "<q"
STEP_BYTES = struct.calcsize(STEP_FORMAT)
FLOAT_DTYPE = np.dtype("<f8")


def encoded_size(store: ParameterStore) -> int:
    """Exact byte length of a saved store."""
    return STEP_BYTES + 3 * store.total_size * FLOAT_DTYPE.itemsize


def write_store(store: ParameterStore, stream: BinaryIO) -> None:
    """Write the step counter, all values, then all moment pairs."""
    stream.write(struct.pack(STEP_FORMAT, store.step_count))

    for param in store:
        stream.write(param.value.astype(FLOAT_DTYPE, copy=False).tobytes())

    for param in store:
        stream.write(param.m.astype(FLOAT_DTYPE, copy=False).tobytes())
        stream.write(param.v.astype(FLOAT_DTYPE, copy=False).tobytes())


def _read_exact(stream: BinaryIO, n_bytes: int, what: str, path: Optional[str] = None) -> bytes:
    data = stream.read(n_bytes)
    if len(data) != n_bytes:
        raise PersistenceError(
            f"Unexpected end of data while reading {what}",
            path=path,
            context={"expected_bytes": n_bytes, "read_bytes": len(data)}
        )
    return data


def _read_array(stream: BinaryIO, size: int, what: str, path: Optional[str] = None) -> np.ndarray:
    data = _read_exact(stream, size * FLOAT_DTYPE.itemsize, what, path)
    return np.frombuffer(data, dtype=FLOAT_DTYPE).astype(np.float64)


def read_store(store: ParameterStore, stream: BinaryIO, path: Optional[str] = None) -> None:
    """
    Overwrite ``store`` from ``stream``. ``path`` only labels errors and warnings.

    Everything is decoded before anything is assigned, so a truncated stream
    leaves the store untouched.

    Raises:
        PersistenceError: Stream ended early
        ShapeError: Store arrays no longer match their declared shapes
    """
    (step_count,) = struct.unpack(STEP_FORMAT, _read_exact(stream, STEP_BYTES, "step counter", path))

    params = list(store)
    values: List[np.ndarray] = [
        _read_array(stream, p.size, f"{p.name} value", path) for p in params
    ]
    moments: List[Tuple[np.ndarray, np.ndarray]] = [
        (_read_array(stream, p.size, f"{p.name} first moment", path),
         _read_array(stream, p.size, f"{p.name} second moment", path))
        for p in params
    ]

    for param, value, (m, v) in zip(params, values, moments):
        param.value[:] = value
        param.m[:] = m
        param.v[:] = v

    store.step_count = int(step_count)
    store.check()

    if stream.read(1):
        logger.warning(f"Trailing bytes after model state ignored ({path or 'stream'})")


def save_store(store: ParameterStore, path: str) -> bool:
    """
    Write ``store`` to ``path``.

    Returns:
        True on success, False on any I/O failure
    """
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "wb") as f:
            write_store(store, f)
        return True
    except OSError as e:
        logger.warning(f"Failed to save model state to {path}: {e}")
        return False


def load_store(store: ParameterStore, path: str) -> bool:
    """
    Overwrite ``store`` from ``path``.

    Returns:
        True on success, False on I/O failure or a short/inconsistent file
    """
    try:
        with open(path, "rb") as f:
            read_store(store, f, path)
        return True
    except (OSError, PersistenceError, ShapeError) as e:
        logger.warning(f"Failed to load model state from {path}: {e}")
        return False
