"""
Кастомні exceptions для neural engine.

Дозволяє розрізняти помилки конфігурації, валідації вхідних даних
та збереження/завантаження стану моделі.
"""

from typing import Optional, Dict, Any


class EngineError(Exception):
    """Базовий exception для всіх помилок neural engine."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message


class ConfigurationError(EngineError):
    """Помилка конфігурації моделі або налаштувань."""
    pass


class ValidationError(EngineError):
    """Помилка валідації параметрів або вхідного вектора."""

    def __init__(self, message: str, parameter: Optional[str] = None, value: Any = None, **kwargs):
        context = kwargs.get('context', {})
        if parameter:
            context['parameter'] = parameter
        if value is not None:
            context['value'] = value
        super().__init__(message, context)
        self.parameter = parameter
        self.value = value


class ShapeError(EngineError):
    """Розмір масиву не відповідає оголошеній формі параметра."""

    def __init__(self, message: str, parameter: Optional[str] = None,
                 expected: Optional[int] = None, actual: Optional[int] = None, **kwargs):
        context = kwargs.get('context', {})
        if parameter:
            context['parameter'] = parameter
        if expected is not None:
            context['expected'] = expected
        if actual is not None:
            context['actual'] = actual
        super().__init__(message, context)
        self.parameter = parameter
        self.expected = expected
        self.actual = actual


class PersistenceError(EngineError):
    """Помилка читання/запису бінарного стану моделі."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        context = kwargs.get('context', {})
        if path:
            context['path'] = path
        super().__init__(message, context)
        self.path = path
