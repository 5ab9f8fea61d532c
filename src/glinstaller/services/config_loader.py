"""Configuration loader for the Greenlight installer."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from glinstaller.errors import InvalidParameterError


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    SUPPORTED_KEYS = {
        "hostname",
        "email",
        "bigbluebutton",
        "verbose",
        "log_file",
        "system_upgrade",
        "data_dir",
        "settle_seconds",
        "lock_poll_seconds",
    }

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise InvalidParameterError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise InvalidParameterError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise InvalidParameterError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise InvalidParameterError(f"Unknown configuration keys: {unknown_list}")

        return parsed
