"""Configuration loader with TOML support and environment variable overrides."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib
except ImportError:
    import tomli as tomllib

from .settings import Settings


class ConfigLoader:
    """Load configuration from TOML files with environment variable overrides."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to TOML configuration file
        """
        self.config_path = config_path or self._get_default_config_path()

    def _get_default_config_path(self) -> Path:
        """Get default configuration file path."""
        config_env = os.getenv("AUDIO_INGEST_CONFIG_FILE")
        if config_env:
            return Path(config_env)

        config_locations = [
            Path("config.toml"),
            Path("/etc/audio-ingest/config.toml"),
            Path.home() / ".config" / "audio-ingest" / "config.toml",
        ]

        for path in config_locations:
            if path.exists():
                return path

        return Path("config.toml")

    def load_toml(self) -> Dict[str, Any]:
        """Load configuration from TOML file."""
        if not self.config_path.exists():
            return {}

        with open(self.config_path, "rb") as f:
            return tomllib.load(f)

    def load(self) -> Settings:
        """Load complete configuration with all overrides applied."""
        config = self.load_toml()

        # Sections missing from the file still pick up their env overrides
        # through their own BaseSettings defaults.
        return Settings(**config)


def load_config(config_path: Optional[Path] = None) -> Settings:
    """Load configuration from TOML file and environment variables.

    Args:
        config_path: Optional path to configuration file

    Returns:
        Loaded configuration settings
    """
    loader = ConfigLoader(config_path)
    return loader.load()
