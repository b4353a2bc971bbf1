"""Application configuration: built-in defaults deep-merged with YAML."""
from __future__ import annotations

import os
from typing import Any, Optional

import yaml

DEFAULT_CONFIG = {
    "app": {"name": "LinearDeformation", "version": "0.1.0"},
    "logging": {"dir": "data/logs", "level": "INFO"},
    "static": {"pivot_tolerance": 1e-12},
    "modal": {"dense_threshold": 200, "tol": 0.0, "maxiter": None},
}


class AppConfig:
    """Layered settings with dotted-key access (``"modal.tol"``).

    A missing ``config_path`` is not an error; the defaults are used.
    """

    def __init__(self, config_path: Optional[str] = None):
        self._data: dict = {}
        self._deep_merge(self._data, DEFAULT_CONFIG)
        if config_path and os.path.exists(config_path):
            with open(config_path, "r", encoding="utf-8") as f:
                file_data = yaml.safe_load(f) or {}
            if not isinstance(file_data, dict):
                raise ValueError(
                    f"Configuration file {config_path!r} must contain a mapping"
                )
            self._deep_merge(self._data, file_data)

    def _deep_merge(self, base: dict, override: dict) -> None:
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            elif isinstance(value, dict):
                base[key] = {}
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def get(self, dotted_key: str, default: Any = None) -> Any:
        node = self._data
        for k in dotted_key.split("."):
            if isinstance(node, dict) and k in node:
                node = node[k]
            else:
                return default
        return node

    def set(self, dotted_key: str, value: Any) -> None:
        keys = dotted_key.split(".")
        node = self._data
        for k in keys[:-1]:
            if k not in node or not isinstance(node[k], dict):
                node[k] = {}
            node = node[k]
        node[keys[-1]] = value

    @property
    def data(self) -> dict:
        return self._data
