"""
Utility modules for neural engine
"""

from utils.exceptions import (
    EngineError, ConfigurationError, ValidationError, ShapeError, PersistenceError
)
from utils.logging_config import setup_logging, get_logger, init_logging
from utils.validation import (
    validate_vector, validate_positive_int, validate_probability, validate_series
)

__all__ = [
    # Exceptions
    'EngineError', 'ConfigurationError', 'ValidationError', 'ShapeError',
    'PersistenceError',
    # Logging
    'setup_logging', 'get_logger', 'init_logging',
    # Validation
    'validate_vector', 'validate_positive_int', 'validate_probability',
    'validate_series',
]
