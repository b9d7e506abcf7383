"""CLI types."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from sitegen.config import AppConfig, load_config, resolve_config_path


@dataclass
class AppEnv:
    site_dir: Path
    config_path: Path | None = None
    verbose: bool = False
    json_logs: bool = False

    def resolved_config_path(self) -> Path:
        return resolve_config_path(self.config_path, self.site_dir)

    def load_config(self) -> AppConfig:
        return load_config(self.resolved_config_path())
