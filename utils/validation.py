"""
Утиліти для валідації параметрів та вхідних векторів моделі.

Ядро моделей не перевіряє вхідні дані, тому перевірка робиться тут,
на боці того, хто викликає train/predict.
"""

from typing import Any, Sequence

import numpy as np

from utils.exceptions import ValidationError


def validate_vector(values: Any, expected_length: int, name: str = "вектор") -> np.ndarray:
    """
    Валідує числовий вектор фіксованої довжини.

    Args:
        values: Послідовність чисел або numpy масив
        expected_length: Очікувана кількість елементів
        name: Назва параметра для повідомлення про помилку

    Returns:
        Плаский float64 масив

    Raises:
        ValidationError: Якщо довжина не збігається або є NaN/Inf
    """
    try:
        array = np.asarray(values, dtype=np.float64).ravel()
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{name} має бути числовим масивом: {e}", parameter=name)

    if array.size != expected_length:
        raise ValidationError(
            f"{name} має містити {expected_length} елементів, отримано: {array.size}",
            parameter=name,
            value=array.size
        )

    if not np.all(np.isfinite(array)):
        bad = int(np.count_nonzero(~np.isfinite(array)))
        raise ValidationError(f"{name} містить {bad} нескінченних або NaN значень", parameter=name)

    return array


def validate_positive_int(value: Any, name: str = "Значення") -> int:
    """
    Валідує додатне ціле число (розмірність шару, довжина послідовності).

    Raises:
        ValidationError: Якщо значення не ціле або не більше 0
    """
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ValidationError(f"{name} має бути цілим числом, отримано: {type(value).__name__}", parameter=name)

    value = int(value)

    if value <= 0:
        raise ValidationError(f"{name} має бути більше 0, отримано: {value}", parameter=name, value=value)

    return value


def validate_probability(value: Any, name: str = "Значення") -> float:
    """
    Валідує значення з відкритого інтервалу (0, 1), наприклад beta для Adam.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} має бути числом, отримано: {type(value).__name__}", parameter=name)

    value = float(value)
    if not 0.0 < value < 1.0:
        raise ValidationError(f"{name} має бути в межах (0, 1), отримано: {value}", parameter=name, value=value)

    return value


def validate_series(values: Sequence[float], min_length: int, name: str = "Ряд") -> np.ndarray:
    """
    Валідує часовий ряд цін: достатня довжина і тільки скінченні значення.
    """
    array = np.asarray(values, dtype=np.float64).ravel()

    if array.size < min_length:
        raise ValidationError(
            f"{name} занадто короткий: потрібно мінімум {min_length}, отримано {array.size}",
            parameter=name,
            value=array.size
        )

    if not np.all(np.isfinite(array)):
        raise ValidationError(f"{name} містить NaN або нескінченні значення", parameter=name)

    return array
