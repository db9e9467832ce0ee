"""
Простой загрузчик/сохранитель конфигурации в формате JSON.
Если файл не найден – создаётся файл с настройками по‑умолчанию.
Без пути конфигурация живёт только в памяти.
"""

import copy
import json
from pathlib import Path

from flatbvh.utils.logger import logger

DEFAULT_CONFIG = {
    "traversal": {"max_stack_depth": 64, "epsilon": 1e-7},
    "build": {"axis_strategy": "longest"},
    "texture": {"max_width": 4096},
    "threads": {"max_workers": None, "chunk_size": 4096},
}


def _merge_defaults(data: dict) -> dict:
    """Дополнить загруженные секции недостающими ключами по‑умолчанию."""
    merged = copy.deepcopy(DEFAULT_CONFIG)
    for key, value in data.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key].update(value)
        else:
            merged[key] = value
    return merged


class Config:
    """Объект конфигурации (по секциям, как в DEFAULT_CONFIG)."""

    def __init__(self, path: str | None = None):
        self.path = Path(path) if path is not None else None
        self._load()

    def _load(self):
        if self.path is None:
            self.data = copy.deepcopy(DEFAULT_CONFIG)
            return

        if self.path.is_file():
            try:
                with self.path.open("r", encoding="utf-8") as f:
                    self.data = _merge_defaults(json.load(f))
                logger.info(f"[Config] Loaded configuration from {self.path}.")
            except (OSError, ValueError) as exc:
                logger.error(f"[Config] Failed to read config: {exc}")
                self.data = copy.deepcopy(DEFAULT_CONFIG)
        else:
            logger.info("[Config] No config file – creating default.")
            self.data = copy.deepcopy(DEFAULT_CONFIG)
            self.save()

    def save(self):
        if self.path is None:
            return
        try:
            with self.path.open("w", encoding="utf-8") as f:
                json.dump(self.data, f, indent=4)
            logger.info("[Config] Configuration saved.")
        except OSError as exc:
            logger.error(f"[Config] Unable to save config: {exc}")

    def __getitem__(self, key):
        return self.data.get(key, DEFAULT_CONFIG.get(key))

    def __setitem__(self, key, value):
        self.data[key] = value
        self.save()

    def get(self, key, default=None):
        return self.data.get(key, default)

    def section(self, key) -> dict:
        """Секция с подставленными значениями по‑умолчанию."""
        merged = dict(DEFAULT_CONFIG.get(key, {}))
        merged.update(self.data.get(key) or {})
        return merged

    # -----------------------------------------------------------------
    # удобные геттеры для ядра
    # -----------------------------------------------------------------
    @property
    def max_stack_depth(self) -> int:
        return int(self.section("traversal")["max_stack_depth"])

    @property
    def epsilon(self) -> float:
        return float(self.section("traversal")["epsilon"])

    @property
    def axis_strategy(self) -> str:
        return str(self.section("build")["axis_strategy"])

    @property
    def texture_max_width(self) -> int:
        return int(self.section("texture")["max_width"])


_default = None


def default_config() -> Config:
    """Общая конфигурация процесса (в памяти, без файла)."""
    global _default
    if _default is None:
        _default = Config()
    return _default
