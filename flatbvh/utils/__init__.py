# flatbvh/utils/__init__.py
"""
Пакет утилит.

Экспортируем:
    * logger         – готовый объект logging.Logger (с level INFO)
    * gl_check_error – вспомогательная функция, проверяющая GL‑ошибки
    * Config         – JSON‑конфигурация
    * Profiler       – замер времени блока кода
"""

from .logger import logger, gl_check_error
from .config import Config, default_config
from .profiler import Profiler

__all__ = ["logger", "gl_check_error", "Config", "default_config", "Profiler"]
