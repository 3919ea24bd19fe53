"""
Model Trainer

Handles online model training:
- One train() call per sample (no batching)
- Epoch passes over a sample list with per-epoch loss metrics
- Rolling window of recent losses for monitoring
- Checkpointing when the epoch loss improves
"""

from __future__ import annotations

import math
import os
import time
from collections import deque
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import numpy as np

from ml.base import NeuralModel
from ml.model import create_model
from config.settings import get_settings, TrainingConfig
from utils.logging_config import get_logger
from utils.validation import validate_vector


Sample = Tuple[np.ndarray, np.ndarray]


@dataclass
class TrainingMetrics:
    """Training metrics from one epoch."""
    epoch: int
    mean_loss: float
    min_loss: float
    max_loss: float
    samples: int
    step_count: int
    duration_sec: float


def model_filename(model: NeuralModel) -> str:
    return f"{model.model_type.value}_model.bin"


class ModelTrainer:
    """
    Online Model Trainer.

    Handles:
    - Input validation before anything reaches the model
    - Single-sample online updates
    - Epoch loops with loss statistics
    - Model checkpointing
    """

    def __init__(
        self,
        model: Optional[NeuralModel] = None,
        config: Optional[TrainingConfig] = None,
        seed: Optional[int] = None
    ):
        """
        Initialize trainer.

        Args:
            model: Model to train (creates one from settings if None)
            config: Training configuration
            seed: Seed for epoch shuffling
        """
        self.config = config or get_settings().training
        self.model = model or create_model()

        self.current_epoch = 0
        self.best_loss = float('inf')
        self.training_history: List[TrainingMetrics] = []
        self.recent_losses: deque = deque(maxlen=self.config.loss_window)
        self._rng = np.random.default_rng(seed)

        self.model_path = os.path.join(self.config.model_save_path, model_filename(self.model))
        self.logger = get_logger(__name__, context={"model_type": self.model.model_type.value})

        self.logger.info(
            f"ModelTrainer initialized: model={self.model.model_type.value}, "
            f"input_length={self.model.input_length}"
        )

    def train_sample(self, inputs: np.ndarray, target: np.ndarray) -> float:
        """
        Validate and train on one sample.

        Returns:
            Sample loss (MAE before the update)

        Raises:
            ValidationError: Wrong length or non-finite values
        """
        x = validate_vector(inputs, self.model.input_length, "inputs")
        y = validate_vector(target, self.model.output_size, "target")

        loss = self.model.train(x, y)
        self.recent_losses.append(loss)

        if not math.isfinite(loss):
            self.logger.warning(f"Non-finite loss at step {self.model.step_count}")

        return loss

    def train(
        self,
        samples: Sequence[Sample],
        epochs: Optional[int] = None
    ) -> List[TrainingMetrics]:
        """
        Train for several passes over ``samples``.

        Args:
            samples: (inputs, target) pairs
            epochs: Number of passes (uses config if None)

        Returns:
            List of TrainingMetrics per epoch
        """
        epochs = self.config.epochs if epochs is None else epochs

        if len(samples) == 0:
            self.logger.warning("No training data available")
            return []

        self.logger.info(f"Training with {len(samples)} samples for {epochs} epochs")

        metrics_history = []

        for _ in range(epochs):
            order = np.arange(len(samples))
            if self.config.shuffle:
                self._rng.shuffle(order)

            metrics = self._train_epoch(samples[i] for i in order)
            metrics_history.append(metrics)
            self.training_history.append(metrics)
            self.current_epoch += 1

            self.logger.info(
                f"Epoch {metrics.epoch}: "
                f"mean_loss={metrics.mean_loss:.6f}, "
                f"min={metrics.min_loss:.6f}, "
                f"max={metrics.max_loss:.6f}, "
                f"steps={metrics.step_count}",
                extra={"step": metrics.step_count, "loss": metrics.mean_loss}
            )

            if self.config.save_on_improvement and metrics.mean_loss < self.best_loss:
                self.best_loss = metrics.mean_loss
                self.save_checkpoint()

        return metrics_history

    def _train_epoch(self, samples: Iterable[Sample]) -> TrainingMetrics:
        """Train for one epoch."""
        start = time.time()
        losses = [self.train_sample(x, y) for x, y in samples]

        return TrainingMetrics(
            epoch=self.current_epoch,
            mean_loss=float(np.mean(losses)),
            min_loss=float(np.min(losses)),
            max_loss=float(np.max(losses)),
            samples=len(losses),
            step_count=self.model.step_count,
            duration_sec=time.time() - start
        )

    @property
    def rolling_loss(self) -> Optional[float]:
        """Mean of the recent-loss window, None before any training."""
        if not self.recent_losses:
            return None
        return float(np.mean(self.recent_losses))

    def save_checkpoint(self) -> bool:
        """Save model checkpoint."""
        ok = self.model.save(self.model_path)
        if ok:
            self.logger.info(f"Checkpoint saved: {self.model_path}")
        return ok

    def load_checkpoint(self) -> bool:
        """Load model checkpoint if exists."""
        if not os.path.exists(self.model_path):
            self.logger.info("No checkpoint found, using fresh model")
            return False

        ok = self.model.load(self.model_path)
        if ok:
            self.logger.info(f"Checkpoint loaded: step={self.model.step_count}")
        return ok

    def get_training_stats(self) -> Dict:
        """Get training statistics."""
        if not self.training_history:
            return {"epochs_trained": 0, "step_count": self.model.step_count}

        recent = self.training_history[-1]

        return {
            "epochs_trained": self.current_epoch,
            "step_count": self.model.step_count,
            "best_loss": self.best_loss,
            "latest_mean_loss": recent.mean_loss,
            "rolling_loss": self.rolling_loss,
        }
