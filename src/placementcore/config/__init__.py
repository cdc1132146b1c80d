"""Configuration management utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from ..schemas.config import AppConfig, load_config


class ConfigManager:
    """YAML-backed configuration loader."""

    def __init__(self, base_path: str | Path):
        self._base_path = Path(base_path)

    def load(self, name: str) -> dict[str, Any]:
        """Load a YAML configuration by name without file extension."""
        return self.load_path(self._base_path / f"{name}.yaml")

    @staticmethod
    def load_path(path: Path) -> dict[str, Any]:
        with path.open("r", encoding="utf-8") as handle:
            return yaml.safe_load(handle) or {}

    def settings(self, name: str) -> dict[str, Any]:
        """Validated container settings for the named configuration."""
        app_config: AppConfig = load_config(self.load(name))
        return app_config.to_settings()


__all__ = ["ConfigManager"]
