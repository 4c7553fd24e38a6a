"""
Logging setup — консольный логгер приложения калькулятора.

Модули пишут в logging.getLogger(__name__); здесь настраивается только
корневой логгер пакета и приглушаются шумные сторонние библиотеки.
"""

import logging
from typing import Final

ROOT_LOGGER_NAME: Final[str] = "src"

LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATE_FORMAT: Final[str] = "%H:%M:%S"

# Сторонние логгеры и их минимальный уровень
THIRD_PARTY_LEVELS: Final[dict[str, int]] = {
    "pybit": logging.WARNING,
    "urllib3": logging.WARNING,
    "aiohttp": logging.WARNING,
}


def setup_logging(log_level: str = "INFO") -> logging.Logger:
    """
    Настройка логгера пакета.

    Повторный вызов заменяет обработчики, а не дублирует их.

    Args:
        log_level: уровень (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Настроенный логгер пакета
    """
    level = getattr(logging, log_level.upper(), None)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logger.addHandler(console_handler)

    for name, third_party_level in THIRD_PARTY_LEVELS.items():
        logging.getLogger(name).setLevel(third_party_level)

    return logger
