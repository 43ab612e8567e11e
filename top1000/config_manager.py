"""
Configuration manager for the Top1000 pipeline.
Handles loading, defaults, environment overrides and validation of settings.
"""
import copy
import json
import logging
import os
from typing import Any, Dict, Optional
from json.decoder import JSONDecodeError

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    "networking": {
        "api_url": "https://api.iyuu.cn/top1000.php",
        "timeout_seconds": 10,
        "verify_ssl": True,
        "user_agent": None,
        "proxy_url": None
    },
    "storage": {
        "static_dir": "./web-dist",
        "snapshot_file": "top1000.json"
    },
    "parser": {
        "lines_per_group": 3
    },
    "freshness": {
        "max_age_hours": 24,
        "source_timezone": "Asia/Shanghai"
    },
    "schedule": {
        "times": ["09:00"],
        "timezone": "Asia/Shanghai",
        "run_on_start": True
    },
    "logging": {
        "level": "INFO",
        "log_dir": "./logs"
    },
    "sites": {
        "source": None
    }
}

PROXY_SCHEMES = ("http://", "https://")

# Environment variable -> (dot path, converter)
ENV_OVERRIDES = {
    "TOP1000_API_URL": ("networking.api_url", str),
    "TOP1000_STATIC_DIR": ("storage.static_dir", str),
    "TOP1000_LOG_LEVEL": ("logging.level", str),
    "TOP1000_SITES_SOURCE": ("sites.source", str),
    "TOP1000_PROXY_URL": ("networking.proxy_url", str),
    "INSECURE_SKIP_VERIFY": ("networking.verify_ssl", lambda value: value.strip().lower() not in ("true", "1", "yes")),
}


class ConfigManager:
    """
    Manages configuration loading and lookup.
    """

    def __init__(self, settings_path: Optional[str] = None, env_file: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            settings_path: Path to settings.json; defaults only when omitted
            env_file: Path to a .env file; the nearest .env is used when omitted

        Raises:
            FileNotFoundError: If settings_path is given but does not exist
            JSONDecodeError: If the settings file is not valid JSON
            ValueError, TypeError: If a setting has an invalid value
        """
        self.settings_path = settings_path
        self.settings: Dict[str, Any] = {}

        logger.debug(f"ConfigManager initialized with settings: {settings_path}")

        load_dotenv(dotenv_path=env_file)
        self._load_settings()

    def _load_settings(self):
        """Load, merge and validate settings."""
        if self.settings_path:
            self.settings = self._load_json_file(self.settings_path)
        else:
            logger.info("No settings file given, using defaults")
            self.settings = {}

        if not isinstance(self.settings, dict):
            raise TypeError("Settings file must contain a JSON object")

        self._set_default_settings()
        self._apply_env_overrides()
        self._validate_settings()

    def _load_json_file(self, file_path: str) -> Dict[str, Any]:
        """
        Load a JSON configuration file.

        Args:
            file_path: Path to JSON file

        Returns:
            Configuration dictionary
        """
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                config = json.load(f)

            logger.info(f"Loaded settings from {file_path}")
            return config

        except FileNotFoundError:
            logger.critical(f"Configuration file not found: {file_path}")
            raise
        except JSONDecodeError as e:
            logger.error(f"Invalid JSON in configuration file '{file_path}': {e}")
            raise

    def _set_default_settings(self):
        """Recursively set default values for missing settings."""

        def merge_dicts(source, default):
            """Recursively merges default dict into source dict."""
            for key, value in default.items():
                if key not in source:
                    source[key] = copy.deepcopy(value)
                elif isinstance(value, dict) and isinstance(source[key], dict):
                    merge_dicts(source[key], value)
                # No else: existing values in source take precedence

        merge_dicts(self.settings, DEFAULT_SETTINGS)

    def _apply_env_overrides(self):
        """Override settings from environment variables (including .env)."""
        for env_var, (key_path, convert) in ENV_OVERRIDES.items():
            raw = os.environ.get(env_var)
            if raw is None or raw == "":
                continue

            section, key = key_path.split('.')
            self.settings[section][key] = convert(raw)
            logger.debug(f"Setting '{key_path}' overridden by {env_var}")

    def _validate_settings(self):
        """Validate section types and specific values."""
        for section in DEFAULT_SETTINGS:
            if not isinstance(self.settings.get(section), dict):
                raise TypeError(f"Invalid type for configuration section '{section}'. Expected dict")

        networking = self.settings["networking"]
        if not networking.get("api_url") or not isinstance(networking["api_url"], str):
            raise TypeError("Missing or invalid type for 'networking.api_url'. Expected non-empty string.")
        if not _is_number(networking.get("timeout_seconds")) or networking["timeout_seconds"] <= 0:
            raise ValueError("'networking.timeout_seconds' must be a positive number.")
        if not isinstance(networking.get("verify_ssl"), bool):
            raise TypeError("Invalid type for 'networking.verify_ssl'. Expected boolean.")

        proxy_url = networking.get("proxy_url")
        if proxy_url is not None and (not isinstance(proxy_url, str) or not proxy_url.startswith(PROXY_SCHEMES)):
            raise ValueError(f"'networking.proxy_url' must be a URL starting with one of {', '.join(PROXY_SCHEMES)}.")

        storage = self.settings["storage"]
        for key in ("static_dir", "snapshot_file"):
            if not storage.get(key) or not isinstance(storage[key], str):
                raise TypeError(f"Missing or invalid type for 'storage.{key}'. Expected non-empty string.")

        lines_per_group = self.settings["parser"].get("lines_per_group")
        if not isinstance(lines_per_group, int) or isinstance(lines_per_group, bool) or lines_per_group < 3:
            raise ValueError("'parser.lines_per_group' must be an integer of at least 3.")

        freshness = self.settings["freshness"]
        if not _is_number(freshness.get("max_age_hours")) or freshness["max_age_hours"] <= 0:
            raise ValueError("'freshness.max_age_hours' must be a positive number.")

        schedule = self.settings["schedule"]
        if not isinstance(schedule.get("times"), list):
            raise TypeError("Invalid type for 'schedule.times'. Expected a list of times.")
        if not isinstance(schedule.get("timezone"), str):
            raise TypeError("Invalid type for 'schedule.timezone'. Expected a string.")

        if not isinstance(self.settings["logging"].get("level"), str):
            raise TypeError("Invalid type for 'logging.level'. Expected a string.")

        if not networking["verify_ssl"]:
            logger.warning("TLS certificate validation for the feed endpoint is disabled by configuration")

        logger.info("Settings configuration validated")

    def get_config_value(self, key_path: str, default=None):
        """
        Get configuration value using dot notation.

        Args:
            key_path: Dot-separated path to configuration value (e.g., "storage.static_dir")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.settings

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
