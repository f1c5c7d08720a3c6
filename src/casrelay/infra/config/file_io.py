from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path
from typing import Any

from casrelay.infra.paths import DEFAULT_CONFIG_FILE, SETTING_PATH

logger = logging.getLogger(__name__)


def _resolve_file_path(
    user_path: str | Path | None,
    local_filename: list[str],
    fallback_path: Path,
) -> Path | None:
    """
    Resolve the file path to use based on a prioritized lookup order.

    Lookup order:
        1. User-specified path (if provided and exists)
        2. A file in the current working directory matching any of `local_filename`
        3. A globally registered fallback path

    Args:
        user_path: Optional file path explicitly provided by the user.
        local_filename: List of file names to check in the current working directory.
        fallback_path: Fallback path to use if no other match is found.

    Returns:
        A resolved `Path` instance if found, otherwise None.
    """
    if user_path:
        path = Path(user_path).expanduser().resolve()
        if path.is_file():
            return path
        logger.warning("Specified file not found: %s", path)

    for name in local_filename:
        local_path = (Path.cwd() / name).resolve()
        if local_path.is_file():
            logger.debug("Using local file: %s", local_path)
            return local_path

    if fallback_path.is_file():
        return fallback_path.resolve()

    return None


def _load_by_extension(path: Path) -> dict[str, Any]:
    """
    Load a configuration file by its file extension.

    Supports `.json` and `.toml` files.

    Raises:
        ValueError: If the file extension is unsupported, if parsing fails, or
            if the root element is not a dictionary.
    """
    ext = path.suffix.lower()

    if ext == ".json":
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e

    elif ext == ".toml":
        try:
            with path.open("rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ValueError(f"Invalid TOML in {path}: {e}") from e

    else:
        raise ValueError(f"Unsupported config file extension: {ext}")

    if not isinstance(data, dict):
        raise ValueError(f"Config root must be a dict, got {type(data)} in {path}")

    return data


def load_config(
    config_path: str | Path | None = None,
    *,
    required: bool = False,
) -> dict[str, Any]:
    """
    Load configuration data from a TOML or JSON file.

    Resolution order:
        - Explicit `config_path` (if provided)
        - `settings.toml` or `settings.json` in the working directory
        - `SETTING_PATH` fallback path

    The service runs on built-in defaults, so a missing file yields an empty
    mapping unless ``required`` is set.

    Args:
        config_path: Optional explicit configuration file path.
        required: Raise instead of returning ``{}`` when nothing is found.

    Returns:
        Parsed configuration as a dictionary.

    Raises:
        FileNotFoundError: If ``required`` and no valid configuration file is
            found.
        ValueError: If the file cannot be parsed or contains invalid structure.
    """
    path = _resolve_file_path(
        user_path=config_path,
        local_filename=["settings.toml", "settings.json"],
        fallback_path=SETTING_PATH,
    )

    if not path:
        if required or config_path:
            raise FileNotFoundError("No valid config file found.")
        logger.debug("No config file found, using built-in defaults")
        return {}

    logger.debug("Loading configuration from: %s", path)
    return _load_by_extension(path)


def copy_default_config(target: Path) -> None:
    """
    Copy the bundled default config to the given target path.

    Args:
        target: Destination path for the copied default configuration.

    Raises:
        FileExistsError: If ``target`` already exists.
    """
    if target.exists():
        raise FileExistsError(f"Refusing to overwrite existing file: {target}")
    target.parent.mkdir(parents=True, exist_ok=True)
    data = DEFAULT_CONFIG_FILE.read_bytes()
    target.write_bytes(data)
    logger.info("Default configuration written to: %s", target)
