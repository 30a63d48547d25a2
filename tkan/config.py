# tkan: configuration
# Override defaults via ~/.config/tkan/config.yaml, $TKAN_CONFIG, or CLI args.

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_PATH = Path("~/.config/tkan/config.yaml")


@dataclass
class Config:
    """Runtime configuration for tkan."""

    # Boards
    board_file: str = ".tkan.yaml"
    scan_depth: int = 3

    # Pointer gestures
    drag_delay_ms: int = 150
    drag_distance_sq: int = 4

    # Initial view
    show_details: bool = True
    show_archive: bool = False

    # GitHub Projects backend
    github_token_env: str = "GITHUB_TOKEN"
    github_api_url: str = "https://api.github.com/graphql"
    request_timeout: float = 10.0

    # Logging (the terminal belongs to the UI, so logs go to a file)
    log_file: str = "~/.local/share/tkan/tkan.log"
    log_level: str = "INFO"

    @property
    def drag_delay(self) -> float:
        return self.drag_delay_ms / 1000

    def resolve_paths(self):
        """Expand ~ in path settings."""
        self.log_file = str(Path(self.log_file).expanduser())

    def github_token(self) -> Optional[str]:
        """Token from the configured env var, then GH_TOKEN (gh CLI convention)."""
        return os.environ.get(self.github_token_env) or os.environ.get("GH_TOKEN")

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load config from YAML, falling back to defaults.

        A missing default file is fine; a path the user named explicitly
        (argument or $TKAN_CONFIG) must exist and parse.
        """
        explicit = path or os.environ.get("TKAN_CONFIG")
        cfg_path = Path(explicit).expanduser() if explicit else CONFIG_PATH.expanduser()

        if not cfg_path.exists():
            if explicit:
                raise ConfigError(f"config file not found: {cfg_path}")
            cfg = cls()
            cfg.resolve_paths()
            return cfg

        try:
            with open(cfg_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            if explicit:
                raise ConfigError(f"cannot read config {cfg_path}: {e}") from e
            logger.warning(f"Ignoring unreadable config {cfg_path}: {e}")
            data = {}

        if not isinstance(data, dict):
            if explicit:
                raise ConfigError(f"config {cfg_path} must be a mapping")
            logger.warning(f"Ignoring config {cfg_path}: not a mapping")
            data = {}

        cfg = cls()
        for f in fields(cls):
            if f.name not in data:
                continue
            try:
                value = _coerce(data[f.name], type(f.default))
            except ValueError as e:
                if explicit:
                    raise ConfigError(f"config {cfg_path}: {f.name}: {e}") from e
                logger.warning(f"Ignoring {f.name} in {cfg_path}: {e}")
                continue
            setattr(cfg, f.name, value)
        cfg.resolve_paths()
        return cfg


def _coerce(value, expected: type):
    """Check a YAML value against the type of its default."""
    if expected is bool:
        if not isinstance(value, bool):
            raise ValueError(f"expected true or false, got {value!r}")
        return value
    if expected in (int, float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"expected a number, got {value!r}")
        if value < 0:
            raise ValueError(f"must not be negative, got {value!r}")
        if expected is int:
            if value != int(value):
                raise ValueError(f"expected a whole number, got {value!r}")
            return int(value)
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"expected a string, got {value!r}")
    return value
