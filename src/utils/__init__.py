"""
Утилиты приложения.

setup_logging() вызывается один раз точкой входа приложения до первого
расчёта; модули библиотеки только пишут в logging.getLogger(__name__) и
обработчики сами не настраивают.
"""

from src.utils.logging_setup import setup_logging

__all__ = ["setup_logging"]
