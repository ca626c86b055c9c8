"""XDG-compliant path management for mrclean.

Configuration lives either next to the project being cleaned
(``.mrclean.toml`` in the working directory or one of its ancestors)
or in the global XDG config directory.

XDG default:
- Config: ~/.config/mrclean/
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "mrclean"

# File name searched for in the working directory and its ancestors
LOCAL_CONFIG_NAME = ".mrclean.toml"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the global configuration directory path.

    Returns:
        Path to ~/.config/mrclean/ (or XDG_CONFIG_HOME/mrclean/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_global_config_path() -> Path:
    """Get the global configuration file path.

    Returns:
        Path to ~/.config/mrclean/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_user_theme_path() -> Path:
    """Get the user theme override path.

    Returns:
        Path to ~/.config/mrclean/theme.toml.
    """
    return get_config_dir() / "theme.toml"


def find_local_config(start: Path | None = None) -> Path | None:
    """Find the nearest local configuration file.

    Searches ``start`` (the working directory by default) and then each
    of its ancestors for a ``.mrclean.toml`` file.

    Args:
        start: Directory to start searching from.

    Returns:
        Path to the first file found, or None.
    """
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / LOCAL_CONFIG_NAME
        if candidate.is_file():
            return candidate
    return None


def ensure_config_dir() -> Path:
    """Create the global configuration directory if it doesn't exist.

    Returns:
        Path to the configuration directory.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    path = get_config_dir()
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create config directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create config directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path
