# ML module
from .base import NeuralModel
from .feedforward import FeedforwardModel
from .recurrent import RecurrentModel
from .lstm import LSTMModel
from .model import create_model
from .trainer import ModelTrainer
from .inference import ModelInference

__all__ = [
    "NeuralModel",
    "FeedforwardModel",
    "RecurrentModel",
    "LSTMModel",
    "create_model",
    "ModelTrainer",
    "ModelInference",
]
