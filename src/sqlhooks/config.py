"""Configuration management for sqlhooks.

Configuration Discovery Precedence (Highest to Lowest Priority):
===============================================================

1. **SQLHOOKS_CONFIG_DIR Environment Variable** (Highest Priority)
   - Looks for: `${SQLHOOKS_CONFIG_DIR}/sqlhooks.yaml`

2. **Current Working Directory**
   - Looks for: `./sqlhooks.yaml`

3. **Defaults**
   - Field defaults, overridable through `SQLHOOKS_*` environment variables

Example sqlhooks.yaml:
--------
sqlhooks:
  debug: true
  timezone: Africa/Blantyre
  default_id_column: id
  notify_function: pg_notify
"""

import logging
import os
import threading
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "sqlhooks.yaml"


class SqlHooksConfig(BaseSettings):
    """Runtime settings shared by the built-in customizers."""

    model_config = SettingsConfigDict(
        env_prefix="SQLHOOKS_",
        case_sensitive=False,
        extra="ignore",
    )

    # Log every pipeline phase at DEBUG
    debug: bool = False

    # IANA zone used for computed timestamps and naive conversions
    timezone: str = "UTC"

    # Column matched by counters that do not name one
    default_id_column: str = "id"

    # Server-side function used by notify customizers
    notify_function: str = "pg_notify"

    # Group that ungrouped validation constraints belong to
    default_validation_group: str = "default"

    config_path: Path | None = Field(default=None, exclude=True)

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone '{value}'") from e
        return value

    @property
    def tzinfo(self) -> ZoneInfo:
        """Timezone object for the configured zone name."""
        return ZoneInfo(self.timezone)

    @classmethod
    def from_yaml(cls, yaml_path: Path, **kwargs: Any) -> "SqlHooksConfig":
        """Load configuration from a sqlhooks.yaml file.

        Values found under the top-level ``sqlhooks`` key override field
        defaults; explicit keyword arguments override both.

        Args:
            yaml_path: Path to the sqlhooks.yaml file
            **kwargs: Explicit field values

        Returns:
            SqlHooksConfig instance
        """
        data: dict[str, Any] = {}
        if yaml_path.exists():
            with yaml_path.open() as f:
                raw = yaml.safe_load(f) or {}
            section = raw.get("sqlhooks", {})
            if isinstance(section, dict):
                data.update(section)
            else:
                logger.warning(f"Invalid sqlhooks section in {yaml_path}: {type(section)}")
        data.update(kwargs)
        return cls(config_path=yaml_path, **data)


# Global configuration instance
_config_instance: SqlHooksConfig | None = None
_config_lock = threading.Lock()


def get_config() -> SqlHooksConfig:
    """Get the configuration instance."""
    global _config_instance

    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                env_config_dir = os.environ.get("SQLHOOKS_CONFIG_DIR")
                if env_config_dir:
                    config_path = Path(env_config_dir) / CONFIG_FILE_NAME
                    logger.info(f"Using config directory from environment: {env_config_dir}")
                else:
                    config_path = Path.cwd() / CONFIG_FILE_NAME

                if config_path.exists():
                    logger.info(f"Loading sqlhooks config from: {config_path}")
                    _config_instance = SqlHooksConfig.from_yaml(config_path)
                else:
                    logger.debug(f"{CONFIG_FILE_NAME} not found at {config_path}, using defaults")
                    _config_instance = SqlHooksConfig()

    return _config_instance


def set_config_instance(config: SqlHooksConfig) -> None:
    """Set the global configuration instance (for testing)."""
    global _config_instance
    _config_instance = config


def clear_config_instance() -> None:
    """Clear the global configuration instance (for testing)."""
    global _config_instance
    _config_instance = None
