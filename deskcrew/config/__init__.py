"""Configuration loading for DeskCrew.

Settings come from three layers: the packaged ``defaults.yaml``, the user's
``~/.deskcrew/config.yaml`` (or a file given on the command line), and
environment variables, which pydantic-settings reads for credentials.
``${VAR}`` references inside YAML strings are expanded before validation.
"""

import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from deskcrew.errors import InvalidConfigError

from .settings import AgentConfig, ChatConfig, ModelConfig, Settings, ToolsConfig

_settings: Optional[Settings] = None

CONFIG_DIR = Path.home() / ".deskcrew"
CONFIG_FILE = CONFIG_DIR / "config.yaml"
DEFAULTS_FILE = Path(__file__).parent / "defaults.yaml"

_ENV_REFERENCE = re.compile(r"\$\{([^}]+)\}")

# api_keys entry -> Settings field
_CREDENTIAL_FIELDS = {
    "azure_openai": "azure_openai_api_key",
    "azure_endpoint": "azure_openai_endpoint",
    "openai": "openai_api_key",
}

_SECTIONS = ("model", "agents", "chat", "tools")


def _expand_env_vars(value: Any) -> Any:
    """Replace ``${VAR}`` in every string of a YAML tree.

    Unset variables expand to an empty string, and a string left empty
    becomes None so the setting falls back to its default.
    """
    if isinstance(value, str):
        expanded = _ENV_REFERENCE.sub(lambda m: os.environ.get(m.group(1), ""), value)
        return expanded or None
    if isinstance(value, dict):
        return {key: _expand_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    return value


def _deep_merge(base: dict, override: dict) -> dict:
    """Merge ``override`` into a copy of ``base``.

    Mappings merge key by key. Anything else, lists included, is replaced,
    so a user config that lists agents defines the whole pool.
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _load_yaml_file(path: Path) -> dict:
    """Read a YAML mapping; a missing or empty file reads as ``{}``.

    Raises:
        InvalidConfigError: If the file is not valid YAML or not a mapping
    """
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise InvalidConfigError(str(path), "", f"not valid YAML ({e})") from e
    if content is None:
        return {}
    if not isinstance(content, dict):
        raise InvalidConfigError(str(path), type(content).__name__, "expected a mapping")
    return content


def _transform_config_to_settings(config: dict) -> dict:
    """Map the YAML layout onto ``Settings`` keyword arguments."""
    api_keys = config.get("api_keys") or {}
    kwargs = {
        field: api_keys[key]
        for key, field in _CREDENTIAL_FIELDS.items()
        if api_keys.get(key)
    }
    kwargs.update(
        (section, config[section]) for section in _SECTIONS if config.get(section) is not None
    )
    return kwargs


def _first_error_location(error: ValidationError) -> tuple[str, Any, str]:
    """Field path, input and message of the first pydantic error."""
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "settings"
    return field, first.get("input"), first.get("msg", str(error))


def create_default_config(path: Path = CONFIG_FILE) -> bool:
    """Write the packaged defaults to ``path`` unless a file is already there.

    Returns:
        True if a new file was written.
    """
    if path.exists():
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULTS_FILE.read_text(encoding="utf-8"), encoding="utf-8")
    return True


def load_settings(config_path: Optional[Path] = None, force_reload: bool = False) -> Settings:
    """Load and cache settings.

    User config overrides the packaged defaults; environment variables
    fill credentials the YAML leaves unset.

    Args:
        config_path: Config file to use instead of ``~/.deskcrew/config.yaml``
        force_reload: Ignore the cached instance

    Raises:
        InvalidConfigError: If a file cannot be parsed or the merged
            configuration fails validation
    """
    global _settings

    if _settings is not None and not force_reload:
        return _settings

    merged = _deep_merge(
        _load_yaml_file(DEFAULTS_FILE),
        _load_yaml_file(config_path or CONFIG_FILE),
    )
    kwargs = _transform_config_to_settings(_expand_env_vars(merged))

    try:
        _settings = Settings(**kwargs)
    except ValidationError as e:
        field, value, reason = _first_error_location(e)
        raise InvalidConfigError(field, value, reason) from e

    return _settings


def get_settings() -> Settings:
    """Cached settings, loaded on first use."""
    return _settings if _settings is not None else load_settings()


def reset_settings() -> None:
    """Drop the cached settings."""
    global _settings
    _settings = None


__all__ = [
    "Settings",
    "ModelConfig",
    "AgentConfig",
    "ChatConfig",
    "ToolsConfig",
    "get_settings",
    "load_settings",
    "reset_settings",
    "create_default_config",
    "CONFIG_DIR",
    "CONFIG_FILE",
    "DEFAULTS_FILE",
]
