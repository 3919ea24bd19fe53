"""
Feature Engineering Module

Turns a close-price series into model samples:
- Price deltas (close-to-close change)
- RSI oscillator over the deltas
- Min-max scaling (scikit-learn) fitted on history, persisted separately from model weights
- Fixed windows flattened timestep-major: [t0 f0, t0 f1, t1 f0, ...]

Target for each window is the next scaled price delta.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Dict, List, Optional, Tuple
import numpy as np
from sklearn.preprocessing import MinMaxScaler

from config.settings import get_settings, FeatureConfig
from utils.exceptions import ConfigurationError, ValidationError
from utils.validation import validate_series


logger = logging.getLogger(__name__)


SUPPORTED_FEATURES = ("price_delta", "rsi")
TARGET_FEATURE = "price_delta"


class FeatureScaler:
    """
    Per-column min-max scaling to [range_min, range_max].

    Wraps ``sklearn.preprocessing.MinMaxScaler`` with clipping enabled, so
    values outside the fitted range land on the range edges. The fitted
    column ranges persist as JSON next to the model weights.
    """

    def __init__(self, range_min: float = -1.0, range_max: float = 1.0):
        self.range_min = float(range_min)
        self.range_max = float(range_max)
        self._scaler = MinMaxScaler(feature_range=(self.range_min, self.range_max), clip=True)

    @property
    def fitted(self) -> bool:
        return hasattr(self._scaler, "data_min_")

    @property
    def minimum(self) -> Optional[np.ndarray]:
        return self._scaler.data_min_ if self.fitted else None

    @property
    def maximum(self) -> Optional[np.ndarray]:
        return self._scaler.data_max_ if self.fitted else None

    def fit(self, values: np.ndarray) -> "FeatureScaler":
        """
        Fit column ranges.

        Args:
            values: (n_samples, n_features) array
        """
        self._scaler.fit(np.atleast_2d(np.asarray(values, dtype=np.float64)))
        return self

    def transform(self, values: np.ndarray) -> np.ndarray:
        self._require_fitted()
        return self._scaler.transform(np.atleast_2d(np.asarray(values, dtype=np.float64)))

    def inverse_transform(self, values: np.ndarray, column: Optional[int] = None) -> np.ndarray:
        """
        Map scaled values back to raw units.

        Args:
            values: Scaled values (all columns, or a single column if ``column`` set)
            column: Column index when ``values`` holds only that column
        """
        self._require_fitted()
        values = np.asarray(values, dtype=np.float64)
        if column is None:
            return self._scaler.inverse_transform(np.atleast_2d(values))
        return (values - self._scaler.min_[column]) / self._scaler.scale_[column]

    def to_dict(self) -> Dict:
        self._require_fitted()
        return {
            "range_min": self.range_min,
            "range_max": self.range_max,
            "minimum": self.minimum.tolist(),
            "maximum": self.maximum.tolist(),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "FeatureScaler":
        scaler = cls(range_min=data["range_min"], range_max=data["range_max"])
        # Fitting on the two extreme rows restores the exact column ranges
        bounds = np.vstack([
            np.asarray(data["minimum"], dtype=np.float64),
            np.asarray(data["maximum"], dtype=np.float64),
        ])
        return scaler.fit(bounds)

    def save(self, path: str) -> bool:
        """Write scaler ranges as JSON. False on I/O failure."""
        try:
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=2)
            logger.info(f"Scaler saved to {path}")
            return True
        except OSError as e:
            logger.warning(f"Failed to save scaler to {path}: {e}")
            return False

    @classmethod
    def load(cls, path: str) -> Optional["FeatureScaler"]:
        """Read scaler ranges from JSON. None if missing or malformed."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                scaler = cls.from_dict(json.load(f))
            logger.info(f"Scaler loaded from {path}")
            return scaler
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Failed to load scaler from {path}: {e}")
            return None

    def _require_fitted(self) -> None:
        if not self.fitted:
            raise ValidationError("Scaler is not fitted", parameter="scaler")


def price_deltas(closes: np.ndarray) -> np.ndarray:
    """Close-to-close change, length len(closes) - 1."""
    return np.diff(np.asarray(closes, dtype=np.float64))


def rsi(deltas: np.ndarray, period: int) -> np.ndarray:
    """
    Simple-average RSI over a delta series.

    Returns:
        Array of len(deltas) - period + 1 values in [0, 100]; element k covers
        deltas[k .. k + period - 1]
    """
    gains = np.clip(deltas, 0.0, None)
    losses = np.clip(-deltas, 0.0, None)

    kernel = np.ones(period) / period
    avg_gain = np.convolve(gains, kernel, mode="valid")
    avg_loss = np.convolve(losses, kernel, mode="valid")

    out = np.full(avg_gain.shape, 50.0)
    has_loss = avg_loss > 0
    out[has_loss] = 100.0 - 100.0 / (1.0 + avg_gain[has_loss] / avg_loss[has_loss])
    out[~has_loss & (avg_gain > 0)] = 100.0
    return out


class FeatureEngine:
    """
    Feature Engineering for the online models.

    Fit once on history (``fit``), then build training samples
    (``build_samples``) or the latest inference window (``build_input``).
    """

    def __init__(self, config: Optional[FeatureConfig] = None, scaler: Optional[FeatureScaler] = None):
        self.config = config or get_settings().features

        unknown = [n for n in self.config.feature_names if n not in SUPPORTED_FEATURES]
        if unknown:
            raise ConfigurationError(f"Unsupported features: {unknown}")
        if TARGET_FEATURE not in self.config.feature_names:
            raise ConfigurationError(f"Feature list must include {TARGET_FEATURE!r}")

        self.scaler = scaler or FeatureScaler(
            range_min=self.config.scale_min,
            range_max=self.config.scale_max
        )
        self._target_column = self.config.feature_names.index(TARGET_FEATURE)

        logger.info(
            f"FeatureEngine initialized: features={self.config.feature_names}, "
            f"sequence={self.config.sequence_length}"
        )

    @property
    def feature_dim(self) -> int:
        return self.config.feature_dim

    @property
    def input_length(self) -> int:
        return self.config.sequence_length * self.feature_dim

    @property
    def min_history(self) -> int:
        """Closes needed for a single inference window."""
        return self.config.oscillator_period + self.config.sequence_length

    def compute_raw_features(self, closes: np.ndarray) -> np.ndarray:
        """
        Unscaled feature rows, one per delta that has a full RSI lookback.

        Returns:
            (len(closes) - oscillator_period, feature_dim) array
        """
        period = self.config.oscillator_period
        closes = validate_series(closes, period + 1, "closes")

        deltas = price_deltas(closes)
        columns = {
            "price_delta": deltas[period - 1:],
            "rsi": rsi(deltas, period),
        }
        return np.column_stack([columns[name] for name in self.config.feature_names])

    def fit(self, closes: np.ndarray) -> FeatureScaler:
        """Fit the scaler on a history of closes."""
        raw = self.compute_raw_features(closes)
        self.scaler.fit(raw)
        logger.info(f"Scaler fitted on {len(raw)} feature rows")
        return self.scaler

    def build_samples(self, closes: np.ndarray) -> List[Tuple[np.ndarray, np.ndarray]]:
        """
        Sliding windows over the scaled features.

        Returns:
            List of (input, target): input is the flattened window of
            sequence_length rows, target the next row's scaled price delta
        """
        T = self.config.sequence_length
        closes = validate_series(closes, self.min_history + 1, "closes")
        scaled = self.scaler.transform(self.compute_raw_features(closes))

        samples = []
        for start in range(len(scaled) - T):
            window = scaled[start:start + T]
            target = scaled[start + T, self._target_column:self._target_column + 1]
            samples.append((window.ravel().copy(), target.copy()))

        logger.debug(f"Built {len(samples)} samples from {len(closes)} closes")
        return samples

    def build_input(self, closes: np.ndarray) -> np.ndarray:
        """Flattened scaled window ending at the latest close."""
        closes = validate_series(closes, self.min_history, "closes")
        scaled = self.scaler.transform(self.compute_raw_features(closes))
        return scaled[-self.config.sequence_length:].ravel().copy()

    def decode_prediction(self, prediction: np.ndarray) -> float:
        """Scaled predicted delta -> raw price delta."""
        value = float(np.asarray(prediction, dtype=np.float64).ravel()[0])
        return float(self.scaler.inverse_transform(value, column=self._target_column))
