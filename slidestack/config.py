"""Manages application configuration via an INI file."""

import configparser
import logging
from pathlib import Path
from typing import List, Optional

from slidestack.logging_setup import get_app_data_dir

log = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "core": {
        "cache_size": "20",  # Number of decoded images kept; 0 disables caching
        "wrap_folder": "true",
        "recursive": "true",
        "randomize": "false",
        "add_fav_every_n": "0",  # 0 keeps favourites at their natural position
        "slideshow_delay": "3",  # Seconds per image
        "default_directory": "",
    },
    "watcher": {
        "enabled": "true",
    },
}

class AppConfig:
    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or get_app_data_dir() / "slidestack.ini"
        self.config = configparser.ConfigParser()
        self.load()

    def load(self):
        """Loads the config, creating it with defaults if it doesn't exist."""
        if not self.config_path.exists():
            log.info("Creating default config at %s", self.config_path)
            self.config.read_dict(DEFAULT_CONFIG)
            self.save()
        else:
            log.info("Loading config from %s", self.config_path)
            self.config.read(self.config_path)
            missing = self._backfill_defaults()
            if missing:
                log.info("Adding missing config keys: %s", ", ".join(missing))
                self.save()

    def _backfill_defaults(self) -> List[str]:
        """Adds any section or key from DEFAULT_CONFIG the file lacks."""
        missing = []
        for section, keys in DEFAULT_CONFIG.items():
            if not self.config.has_section(section):
                self.config.add_section(section)
            for key, value in keys.items():
                if not self.config.has_option(section, key):
                    self.config.set(section, key, value)
                    missing.append(f"{section}.{key}")
        return missing

    def save(self):
        """Saves the current configuration to the INI file."""
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with self.config_path.open("w") as f:
                self.config.write(f)
            log.info("Saved config to %s", self.config_path)
        except OSError as e:
            log.error("Failed to save config to %s: %s", self.config_path, e)

    def get(self, section, key, fallback=None):
        return self.config.get(section, key, fallback=fallback)

    def getint(self, section, key, fallback=None):
        return self.config.getint(section, key, fallback=fallback)

    def getboolean(self, section, key, fallback=None):
        return self.config.getboolean(section, key, fallback=fallback)

    def getfloat(self, section, key, fallback=None):
        return self.config.getfloat(section, key, fallback=fallback)

    def set(self, section, key, value):
        if not self.config.has_section(section):
            self.config.add_section(section)
        self.config.set(section, key, str(value))

# Global config instance
config = AppConfig()
