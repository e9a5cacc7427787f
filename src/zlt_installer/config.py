"""Configuration management for the ZLT installer."""

import json
import logging
import os
import shutil
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "ZLT_INSTALLER_CONFIG"

VALID_SCOPES = ["system", "user", "auto"]
VALID_ASSUME = [None, "yes", "no"]
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

HARDCODED_DEFAULTS: Dict[str, Any] = {
    "service_name": "zlt",
    "identity_name": "zlt",
    "launchd_label": "com.zlt.service",
    "scope": "system",
    "binary_source": None,
    "install_root": "/",
    "service_timeout": 30,
    "poll_interval": 0.5,
    "stop_grace_period": 1.0,
    "assume": None,
    "update_profile": True,
    "log_level": "INFO",
}


def _user_config_dir() -> Path:
    return Path.home() / ".config" / "zlt-installer"


class Config:
    """Installer settings: built-in defaults, then default_config.yaml, then a user file."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration."""
        self.data = self._load_default_config()

        if config_path is None and os.environ.get(CONFIG_ENV_VAR):
            config_path = Path(os.environ[CONFIG_ENV_VAR])

        if config_path:
            config_path = Path(config_path).expanduser()
            if not config_path.exists():
                raise FileNotFoundError(f"Config file not found: {config_path}")
            self._load_user_config(config_path)
            self.config_path = config_path
        else:
            user_config_path = self._get_user_config_path()
            if user_config_path:
                self._load_user_config(user_config_path)
                self.config_path = user_config_path
            else:
                self.config_path = self._get_default_config_path()
                logger.debug("No user config found, using defaults")

        self._validate_config()

    @staticmethod
    def _default_search_paths():
        return [
            # Source checkout: <repo>/config next to src/
            Path(__file__).parent.parent.parent / "config" / "default_config.yaml",
            Path.cwd() / "config" / "default_config.yaml",
            # Installed location
            Path(sys.prefix) / "config" / "default_config.yaml",
        ]

    def _load_default_config(self) -> Dict[str, Any]:
        """Start from the built-in defaults and overlay default_config.yaml if found."""
        data = dict(HARDCODED_DEFAULTS)
        for path in self._default_search_paths():
            if path.exists():
                logger.debug(f"Loading default config from: {path}")
                with open(path, "r") as f:
                    data.update(yaml.safe_load(f) or {})
                return data

        logger.debug("default_config.yaml not found, using built-in defaults")
        return data

    def _get_default_config_path(self) -> Path:
        for path in self._default_search_paths():
            if path.exists():
                return path
        return self._default_search_paths()[0]

    def _get_user_config_path(self) -> Optional[Path]:
        config_dir = _user_config_dir()
        for name in ("config.yaml", "config.yml", "config.json"):
            path = config_dir / name
            if path.exists():
                return path
        return None

    def _load_user_config(self, config_path: Path):
        """Load user configuration and merge with defaults."""
        logger.info(f"Loading configuration from {config_path}")

        with open(config_path, "r") as f:
            if config_path.suffix in [".yaml", ".yml"]:
                user_config = yaml.safe_load(f) or {}
            else:
                user_config = json.load(f)

        if not isinstance(user_config, dict):
            raise ValueError(f"{config_path} must contain a mapping of settings")

        unknown = sorted(set(user_config) - set(HARDCODED_DEFAULTS))
        for key in unknown:
            logger.warning(f"Ignoring unknown setting '{key}' in {config_path}")
            user_config.pop(key)

        self.data.update(user_config)

        for key, value in self.data.items():
            source = "user config" if key in user_config else "defaults"
            logger.debug(f"  {key}: {value} (from {source})")

    def _validate_config(self):
        """Coerce invalid values back to their defaults with a warning."""
        scope = str(self.data.get("scope") or "system").lower()
        if scope not in VALID_SCOPES:
            logger.warning(f"Invalid scope '{scope}', using 'system'")
            scope = "system"
        self.data["scope"] = scope

        assume = self.data.get("assume")
        if isinstance(assume, bool):
            assume = "yes" if assume else "no"
        if assume is not None:
            assume = str(assume).lower()
        if assume not in VALID_ASSUME:
            logger.warning(f"Invalid assume '{assume}', prompting instead")
            assume = None
        self.data["assume"] = assume

        for key in ("service_timeout", "poll_interval", "stop_grace_period"):
            try:
                value = float(self.data[key])
                if value < 0:
                    raise ValueError(value)
            except (TypeError, ValueError):
                logger.warning(
                    f"Invalid {key} '{self.data[key]}', using {HARDCODED_DEFAULTS[key]}"
                )
                value = float(HARDCODED_DEFAULTS[key])
            self.data[key] = value

        for key in ("service_name", "identity_name", "launchd_label"):
            value = str(self.data.get(key) or "").strip()
            if not value or "/" in value or " " in value:
                logger.warning(f"Invalid {key} '{value}', using '{HARDCODED_DEFAULTS[key]}'")
                value = HARDCODED_DEFAULTS[key]
            self.data[key] = value

        self.data["install_root"] = str(
            Path(self.data.get("install_root") or "/").expanduser()
        )
        self.data["update_profile"] = bool(self.data.get("update_profile"))

        log_level = str(self.data.get("log_level", "INFO")).upper()
        if log_level not in VALID_LOG_LEVELS:
            logger.warning(f"Invalid log_level '{log_level}', using 'INFO'")
            log_level = "INFO"
        self.data["log_level"] = log_level

    @property
    def assume_answer(self) -> Optional[bool]:
        """The preset answer for destructive prompts, or None to ask."""
        assume = self.data.get("assume")
        if assume is None:
            return None
        return assume == "yes"

    @classmethod
    def create_default_config(cls, path: Optional[Path] = None) -> Path:
        """Write a starting config file to the user config directory."""
        if not path:
            config_dir = _user_config_dir()
            config_dir.mkdir(parents=True, exist_ok=True)
            path = config_dir / "config.yaml"

        default_config_path = cls._default_search_paths()[0]
        if default_config_path.exists():
            shutil.copy2(default_config_path, path)
            logger.info(f"Copied default configuration to: {path}")
        else:
            with open(path, "w") as f:
                yaml.dump(HARDCODED_DEFAULTS, f, default_flow_style=False, sort_keys=False)
            logger.info(f"Created default configuration at: {path}")

        return path

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def __setitem__(self, key: str, value: Any):
        self.data[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def __repr__(self) -> str:
        return f"Config(path={self.config_path}, scope={self.data.get('scope')})"
