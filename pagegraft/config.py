"""
Settings for pagegraft, read from ``config.yaml``.

Only a handful of keys matter to the importer: where the graph store lives,
how long the scheduler pauses between pages and how logging is set up.
Anything missing from the file falls back to the built-in defaults below.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List

import yaml

DEFAULT_CONFIG: Dict[str, Any] = {
    "database": {
        "filename": "pagegraft.db",
    },
    "import": {
        "yield_delay_ms": 10,
        "supported_formats": ["edn", "json", "opml"],
    },
    "paths": {
        "log_file": "pagegraft.log",
    },
    "logging": {
        "level": "INFO",
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    },
}


class ConfigManager:
    """
    YAML-backed settings with dot-path lookup.
    """

    def __init__(self, config_path: str = "config.yaml"):
        """
        Args:
            config_path: YAML file to read; a missing file means all defaults
        """
        self.config_path = Path(config_path)
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        if not self.config_path.exists():
            logging.info(f"No settings file at {self.config_path}, using defaults")
            self._config = DEFAULT_CONFIG
            return

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                self._config = yaml.safe_load(f) or {}
            logging.info(f"Settings read from {self.config_path}")
        except (OSError, yaml.YAMLError) as e:
            logging.error(f"Cannot read settings from {self.config_path}: {e}")
            self._config = DEFAULT_CONFIG

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Look up a value by dotted path, e.g. ``"import.yield_delay_ms"``.

        Returns ``default`` as soon as one segment of the path is missing.
        """
        node: Any = self._config
        for key in key_path.split('.'):
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return node

    def get_section(self, section: str) -> Dict[str, Any]:
        """Return one top-level section, or an empty dict."""
        return self._config.get(section, {})

    def reload(self) -> None:
        """Re-read the settings file, e.g. after ``config_path`` changed."""
        self._load_config()

    @property
    def database_filename(self) -> str:
        return self.get("database.filename", "pagegraft.db")

    @property
    def yield_delay(self) -> float:
        """Pause between import jobs, in seconds."""
        return self.get("import.yield_delay_ms", 10) / 1000.0

    @property
    def supported_formats(self) -> List[str]:
        return self.get("import.supported_formats", ["edn", "json", "opml"])

    @property
    def log_filename(self) -> str:
        return self.get("paths.log_file", "pagegraft.log")


# Shared instance used by the CLI and as the source of handler defaults
config = ConfigManager()
