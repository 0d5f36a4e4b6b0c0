# FinSync Configuration Loader
# Locate, read and validate the YAML configuration file

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from finsync.config.defaults import generate_default_config, get_default_config
from finsync.config.schema import FinSyncConfig
from finsync.errors import ConfigError

CONFIG_ENV_VAR = "FINSYNC_CONFIG"


def get_config_path() -> Path:
    """Config file location: $FINSYNC_CONFIG, else ~/.config/finsync/config.yaml."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "finsync" / "config.yaml"


def load_config(config_path: Optional[Path] = None) -> FinSyncConfig:
    """
    Read the config file and validate it on top of the defaults.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigError: If the YAML is broken or a value is rejected.
    """
    path = config_path or get_config_path()
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}\nRun 'finsync config init' to create one.")

    data = _read_mapping(path) or {}
    try:
        return FinSyncConfig.model_validate(_merge_with_defaults(data))
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}:\n{e}") from e


def ensure_config_exists(config_path: Optional[Path] = None) -> tuple[Path, bool]:
    """Write the commented default file unless one exists. Returns (path, created)."""
    path = config_path or get_config_path()
    if path.exists():
        return path, False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(generate_default_config(), encoding="utf-8")
    return path, True


def validate_config_file(config_path: Optional[Path] = None) -> tuple[bool, list[str]]:
    """
    Check a config file without applying defaults.

    Unlike load_config, an empty file or a file without an ``api`` section
    is reported as invalid.

    Returns:
        Tuple of (is_valid, error_messages).
    """
    path = config_path or get_config_path()
    if not path.exists():
        return False, [f"Configuration file not found: {path}"]

    try:
        data = _read_mapping(path)
    except ConfigError as e:
        return False, [str(e)]
    if data is None:
        return False, ["Configuration file is empty"]

    try:
        FinSyncConfig.model_validate(data)
    except ValidationError as e:
        return False, [_describe(error) for error in e.errors()]

    if "api" not in data:
        return False, ["Missing 'api' section"]
    return True, []


def _read_mapping(path: Path) -> Optional[dict[str, Any]]:
    """Parsed YAML root, or None for an empty file."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if data is not None and not isinstance(data, dict):
        raise ConfigError(f"Configuration root must be a mapping: {path}")
    return data


def _describe(error: dict[str, Any]) -> str:
    location = " -> ".join(str(part) for part in error["loc"])
    return f"{location}: {error['msg']}"


def _merge_with_defaults(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay each config section on its defaults, one level deep."""
    merged = get_default_config()
    for section, values in data.items():
        base = merged.get(section)
        merged[section] = {**base, **values} if isinstance(base, dict) and isinstance(values, dict) else values
    return merged
