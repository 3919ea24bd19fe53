"""
Model Inference

Handles model inference for the host application:
- Load a saved model
- Validate input windows before they reach the model
- Prediction statistics
- Model swap after retraining
"""

from __future__ import annotations

import os
import logging
from typing import Dict, Optional
import numpy as np

from ml.base import NeuralModel
from ml.model import create_model
from ml.trainer import model_filename
from config.settings import get_settings, TrainingConfig
from utils.exceptions import ValidationError
from utils.validation import validate_vector


logger = logging.getLogger(__name__)


class ModelInference:
    """
    Inference Engine.

    Handles:
    - Model loading
    - Input validation
    - Prediction counting
    """

    def __init__(
        self,
        model: Optional[NeuralModel] = None,
        config: Optional[TrainingConfig] = None
    ):
        """
        Initialize inference engine.

        Args:
            model: Pre-loaded model (built from settings and loaded from disk if None)
            config: Training configuration (for the model directory)
        """
        self.config = config or get_settings().training

        self.model = model
        self._model_loaded = model is not None

        self._prediction_count = 0
        self._rejected_count = 0

        logger.info("ModelInference initialized")

    @property
    def model_path(self) -> Optional[str]:
        if self.model is None:
            return None
        return os.path.join(self.config.model_save_path, model_filename(self.model))

    def load_model(self) -> bool:
        """
        Load model from disk.

        A fresh untrained model stays in place when nothing usable is found.

        Returns:
            True if loaded successfully
        """
        if self.model is None:
            self.model = create_model()
        self._model_loaded = True

        model_path = self.model_path
        if not os.path.exists(model_path):
            logger.warning(f"Model not found at {model_path}, using untrained model")
            return False

        if not self.model.load(model_path):
            logger.error(f"Failed to load model from {model_path}, using untrained model")
            return False

        return True

    def predict(self, inputs: np.ndarray) -> np.ndarray:
        """
        Make prediction from one input window.

        Args:
            inputs: Flat input vector (model.input_length elements)

        Returns:
            Prediction vector (model.output_size elements)

        Raises:
            ValidationError: Wrong length or non-finite values
        """
        if not self._model_loaded:
            self.load_model()

        try:
            x = validate_vector(inputs, self.model.input_length, "inputs")
        except ValidationError:
            self._rejected_count += 1
            raise

        prediction = self.model.predict(x)
        self._prediction_count += 1

        if not np.all(np.isfinite(prediction)):
            logger.warning("Model produced non-finite prediction")

        return prediction

    def get_stats(self) -> Dict:
        """Get inference statistics."""
        return {
            "prediction_count": self._prediction_count,
            "rejected_count": self._rejected_count,
            "model_loaded": self._model_loaded,
            "step_count": self.model.step_count if self.model is not None else 0,
        }

    def update_model(self, model: NeuralModel) -> None:
        """
        Update model after retraining.

        Args:
            model: New trained model
        """
        self.model = model
        self._model_loaded = True
        logger.info("Model updated for inference")
