# config/config_loader.py

import logging
import os
from pathlib import Path
from typing import Any, ClassVar

import yaml

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "config.yaml"


class ConfigLoader:
    """
    Process-wide holder for the YAML half of the bot configuration.

    The file is read once; later calls return the cached mapping. A missing
    file leaves the bot on environment-only settings ("degraded"), a file
    that cannot be parsed is reported as "error". Neither stops start-up:
    ``load_settings`` raises if a required value is still absent.
    """

    _config: ClassVar[dict[str, Any]] = {}
    _config_status: ClassVar[str] = "not_loaded"  # "ok", "degraded", "error"
    _config_path: ClassVar[str | None] = None

    @classmethod
    def load_config(cls, config_path: str | None = None) -> dict[str, Any]:
        """Load ``config_path``, else ``$CONFIG_PATH``, else ``config/config.yaml``."""
        if cls._config_status != "not_loaded":
            return cls._config

        path = config_path or os.environ.get("CONFIG_PATH") or str(DEFAULT_CONFIG_PATH)
        cls._config_path = path
        cls._config, cls._config_status = cls._read(path)
        if cls._config_status == "ok":
            logging.info("Configuration loaded from %s", path)
        cls._coerce_logging_level()
        return cls._config

    @staticmethod
    def _read(path: str) -> tuple[dict[str, Any], str]:
        try:
            with Path(path).open(encoding="utf-8") as file:
                data = yaml.safe_load(file)
        except FileNotFoundError:
            logging.warning("No configuration file at %s; using environment only", path)
            return {}, "degraded"
        except (yaml.YAMLError, UnicodeDecodeError) as e:
            logging.exception("Unreadable configuration at %s: %s", path, e)
            return {}, "error"

        if data is None:
            return {}, "ok"
        if not isinstance(data, dict):
            logging.warning("Configuration at %s is not a mapping; ignoring it", path)
            return {}, "degraded"
        return data, "ok"

    @classmethod
    def _coerce_logging_level(cls) -> None:
        logging_cfg = cls._config.get("logging") or {}
        level = str(logging_cfg.get("level", "INFO")).upper()
        if level not in VALID_LOG_LEVELS:
            logging.warning("Invalid logging level %r in config; using INFO", level)
            cls._config.setdefault("logging", {})["level"] = "INFO"

    @classmethod
    def get_config_status(cls) -> dict[str, Any]:
        """Config health for the ``/health`` route."""
        return {
            "config_status": cls._config_status,
            "config_path": cls._config_path,
            "config_loaded": bool(cls._config),
        }

    @classmethod
    def reset(cls) -> None:
        """Forget the cached file (tests)."""
        cls._config = {}
        cls._config_status = "not_loaded"
        cls._config_path = None
