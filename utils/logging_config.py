"""
Налаштування структурованого логування для neural engine.

Підтримує:
- JSON логування для збору логів тренування
- Звичайне текстове логування для development
- Рівні логування з ENV
- Ротація логів
"""

import os
import sys
import logging
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from logging.handlers import RotatingFileHandler


# Поля з extra, які переносяться у JSON запис
_EXTRA_FIELDS = ('model_type', 'step', 'loss', 'path', 'context')


class StructuredFormatter(logging.Formatter):
    """
    Formatter для структурованого логування (JSON).
    Один рядок JSON на запис, зручно для аналізу кривих навчання.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Форматувати log record у JSON формат.
        """
        log_data: Dict[str, Any] = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        for field_name in _EXTRA_FIELDS:
            if hasattr(record, field_name):
                log_data[field_name] = getattr(record, field_name)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ContextLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter для додавання контексту до всіх логів.

    Використання:
        logger = get_logger(__name__, context={'model_type': 'lstm'})
        logger.info("Training started")  # Автоматично додасть model_type
    """

    def __init__(self, logger: logging.Logger, context: Optional[Dict[str, Any]] = None):
        super().__init__(logger, context or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        if 'extra' not in kwargs:
            kwargs['extra'] = {}

        if self.extra:
            kwargs['extra'].update(self.extra)

        return msg, kwargs


def get_log_level() -> int:
    """
    Рівень логування з ENV.

    ENV: LOG_LEVEL (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level_str = os.getenv('LOG_LEVEL', 'INFO').upper()
    level_map = {
        'DEBUG': logging.DEBUG,
        'INFO': logging.INFO,
        'WARNING': logging.WARNING,
        'ERROR': logging.ERROR,
        'CRITICAL': logging.CRITICAL,
    }
    return level_map.get(level_str, logging.INFO)


def get_log_format() -> str:
    """
    Формат логування з ENV.

    ENV: LOG_FORMAT (json, text)
    """
    return os.getenv('LOG_FORMAT', 'text').lower()


def setup_logging(
    name: str = 'neural_engine',
    log_file: Optional[str] = 'neural_engine.log',
    use_json: Optional[bool] = None,
    level: Optional[int] = None
) -> logging.Logger:
    """
    Налаштувати логування.

    Args:
        name: Ім'я логгера
        log_file: Шлях до файлу логів (None = тільки консоль)
        use_json: Використовувати JSON формат (None = з LOG_FORMAT)
        level: Рівень логування (None = з LOG_LEVEL)

    Returns:
        Налаштований logger
    """
    logger = logging.getLogger(name)

    # Якщо вже налаштовано - повернути
    if logger.handlers:
        return logger

    if level is None:
        level = get_log_level()

    if use_json is None:
        use_json = get_log_format() == 'json'

    logger.setLevel(level)

    if use_json:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    if log_file:
        try:
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,  # 10 MB
                backupCount=5,
                encoding='utf-8'
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            # Без файлу - тільки консоль
            print(f"Не вдалося створити file handler: {e}", file=sys.stderr)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


def get_logger(name: str, context: Optional[Dict[str, Any]] = None) -> ContextLoggerAdapter:
    """
    Отримати logger з контекстом.

    Приклад:
        logger = get_logger(__name__, context={'model_type': 'rnn'})
        logger.info("Epoch finished")
    """
    base_logger = logging.getLogger(name)
    return ContextLoggerAdapter(base_logger, context)


_main_logger: Optional[logging.Logger] = None


def init_logging(log_file: Optional[str] = 'neural_engine.log') -> logging.Logger:
    """
    Ініціалізувати логування процесу.

    Налаштовується кореневий logger, щоб записи з модулів ml.*, core.*
    потрапляли в ті самі handlers. Викликається один раз при старті CLI.
    """
    global _main_logger
    if _main_logger is None:
        _main_logger = setup_logging('', log_file)
    return _main_logger
