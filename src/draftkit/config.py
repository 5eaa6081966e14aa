"""Unified configuration loaded from .draftkit.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".draftkit.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG_PATH = Path.home() / ".config" / "draftkit" / "config.toml"

DEFAULT_IMAGE_TYPES = ["image/png", "image/jpeg", "image/webp"]
DEFAULT_MAX_IMAGE_BYTES = 5 * 1024 * 1024
DEFAULT_HANDLE_PREFIX = "blob:draftkit/"


class StoreConfig(BaseModel):
    """[store] section."""

    directory: str = "./.draftkit"
    key_prefix: str = "draftkit"


class MediaConfig(BaseModel):
    """[media] section."""

    accepted_image_types: list[str] = Field(default_factory=lambda: list(DEFAULT_IMAGE_TYPES))
    max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES
    handle_prefix: str = DEFAULT_HANDLE_PREFIX
    default_video_duration: float = 0


class AutosaveConfig(BaseModel):
    """[autosave] section."""

    enabled: bool = True
    skip_unchanged: bool = True


class DraftkitConfig(BaseModel):
    """Top-level configuration."""

    store: StoreConfig = Field(default_factory=StoreConfig)
    media: MediaConfig = Field(default_factory=MediaConfig)
    autosave: AutosaveConfig = Field(default_factory=AutosaveConfig)


def load_config(path: str | Path | None = None) -> DraftkitConfig:
    """Load configuration from TOML, then overlay environment variables.

    Search order:
    1. Explicit path (if provided)
    2. .draftkit.toml in CWD
    3. ~/.config/draftkit/config.toml

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged DraftkitConfig.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        if not data and GLOBAL_CONFIG_PATH.exists():
            data = _load_toml(GLOBAL_CONFIG_PATH)
            logger.info("Loaded config from %s", GLOBAL_CONFIG_PATH)

    try:
        config = DraftkitConfig.model_validate(data) if data else DraftkitConfig()
    except ValueError as exc:
        logger.warning("Invalid configuration, using defaults: %s", exc)
        config = DraftkitConfig()

    return _apply_env_vars(config)


def merge_cli_overrides(config: DraftkitConfig, **cli_kwargs: object) -> DraftkitConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "store_dir": ("store", "directory"),
        "key_prefix": ("store", "key_prefix"),
        "max_image_bytes": ("media", "max_image_bytes"),
        "autosave": ("autosave", "enabled"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = str(value) if isinstance(value, Path) else value

    return DraftkitConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: DraftkitConfig) -> DraftkitConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "DRAFTKIT_STORE_DIR": ("store", "directory"),
        "DRAFTKIT_KEY_PREFIX": ("store", "key_prefix"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    max_bytes_raw = os.environ.get("DRAFTKIT_MAX_IMAGE_BYTES")
    if max_bytes_raw is not None:
        try:
            data["media"]["max_image_bytes"] = int(max_bytes_raw)
        except ValueError:
            logger.warning("Ignoring non-integer DRAFTKIT_MAX_IMAGE_BYTES=%r", max_bytes_raw)

    autosave_raw = os.environ.get("DRAFTKIT_AUTOSAVE")
    if autosave_raw is not None:
        data["autosave"]["enabled"] = autosave_raw.lower() in ("true", "1", "yes")

    return DraftkitConfig.model_validate(data)
