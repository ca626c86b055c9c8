"""Configuration models and file I/O.

The configuration is read from TOML with tomllib, validated with
Pydantic and written back with tomli_w. Lookup order:

1. An explicit path (``--config``)
2. ``.mrclean.toml`` in the working directory or one of its ancestors
3. The global file ``~/.config/mrclean/config.toml``
4. Built-in defaults
"""

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mrclean.core.errors import MrCleanError
from mrclean.core.paths import find_local_config, get_global_config_path
from mrclean.patterns.builtin import PatternSet, builtin_patterns
from mrclean.patterns.matcher import PatternMatcher

logger = logging.getLogger(__name__)

# Patterns added to the excludes by --preserve-env
ENV_FILE_PATTERNS = (".env", ".env.example")


class ConfigError(MrCleanError):
    """Base exception for configuration errors."""


class ConfigParseError(ConfigError):
    """Raised when a configuration file cannot be parsed."""


class ConfigValidationError(ConfigError):
    """Raised when configuration content is invalid."""


class PatternConfig(BaseModel):
    """User pattern section.

    These lists are added on top of the built-in defaults (unless
    ``use_builtin`` is false) and win tie-breaks against them.

    Attributes:
        directories: Glob patterns matched against directory names.
        files: Glob patterns matched against file and symlink names.
        exclude: Glob patterns that veto any match.
        use_builtin: Whether the built-in directory and file patterns apply.
            Built-in excludes always apply.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    directories: Annotated[list[str], Field(default_factory=list, description="Directory patterns")]
    files: Annotated[list[str], Field(default_factory=list, description="File patterns")]
    exclude: Annotated[list[str], Field(default_factory=list, description="Exclude patterns")]
    use_builtin: Annotated[bool, Field(description="Apply built-in patterns")] = True

    @field_validator("directories", "files", "exclude")
    @classmethod
    def validate_non_empty(cls, v: list[str]) -> list[str]:
        """Reject blank patterns."""
        for pattern in v:
            if not pattern.strip():
                msg = "Patterns cannot be empty"
                raise ValueError(msg)
        return v


class ScanConfig(BaseModel):
    """Scanner settings.

    Attributes:
        max_depth: Deepest level classified below the root (root is 0).
        follow_symlinks: Descend into symlinked directories.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_depth: Annotated[int, Field(ge=0, description="Maximum classification depth")] = 10
    follow_symlinks: Annotated[bool, Field(description="Follow directory symlinks")] = False


class CleanerConfig(BaseModel):
    """Deletion settings.

    Attributes:
        thread_count: Worker threads; None uses the CPU count.
        chunk_size: Minimum number of items per dispatched batch.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    thread_count: Annotated[int | None, Field(ge=1, description="Worker threads")] = None
    chunk_size: Annotated[int, Field(ge=1, description="Items per batch")] = 1


class OptionsConfig(BaseModel):
    """Interactive behaviour.

    Attributes:
        require_confirmation: Ask before deleting.
        show_statistics: Print the per-category breakdown after a run.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    require_confirmation: Annotated[bool, Field(description="Ask before deleting")] = True
    show_statistics: Annotated[bool, Field(description="Show category statistics")] = True


class SafetyConfig(BaseModel):
    """Pre-flight checks.

    Attributes:
        check_git_repo: Refuse to clean inside a git repository.
        min_free_space_gb: Minimum free space required on the target filesystem.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    check_git_repo: Annotated[bool, Field(description="Refuse to clean git repositories")] = True
    min_free_space_gb: Annotated[float, Field(ge=0, description="Minimum free space in GB")] = 1.0


class Config(BaseModel):
    """Complete mrclean configuration."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    patterns: Annotated[PatternConfig, Field(default_factory=PatternConfig)]
    scan: Annotated[ScanConfig, Field(default_factory=ScanConfig)]
    cleaner: Annotated[CleanerConfig, Field(default_factory=CleanerConfig)]
    options: Annotated[OptionsConfig, Field(default_factory=OptionsConfig)]
    safety: Annotated[SafetyConfig, Field(default_factory=SafetyConfig)]


@dataclass(frozen=True, slots=True)
class PatternSources:
    """Pattern sets from each source, in the form PatternMatcher takes.

    Attributes:
        builtin: Built-in defaults (empty when disabled).
        user: Patterns from the configuration file.
        cli: Patterns from command-line flags.
    """

    builtin: PatternSet
    user: PatternSet
    cli: PatternSet

    def build_matcher(self) -> PatternMatcher:
        """Compile the pattern sets into a matcher.

        Raises:
            PatternError: If any pattern is malformed.
        """
        return PatternMatcher(self.builtin, user=self.user, cli=self.cli)


def find_config_file(start: Path | None = None) -> Path | None:
    """Locate the configuration file to use.

    Args:
        start: Directory to search upward from (working directory by default).

    Returns:
        The local file if found, else the global file if it exists, else None.
    """
    local = find_local_config(start)
    if local is not None:
        return local
    global_path = get_global_config_path()
    if global_path.is_file():
        return global_path
    return None


def load_config(path: Path | None = None, start: Path | None = None) -> Config:
    """Load and validate the configuration.

    Args:
        path: Explicit configuration file. Must exist when given.
        start: Directory to start the upward search from.

    Returns:
        Validated Config, or defaults when no file is found.

    Raises:
        ConfigError: If an explicit path is missing or cannot be read.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigValidationError: If the content doesn't match the schema.
    """
    if path is not None and not path.is_file():
        msg = f"Config file not found: {path}"
        raise ConfigError(msg)

    config_path = path or find_config_file(start)
    if config_path is None:
        logger.debug("No config file found, using defaults")
        return Config()

    logger.debug("Loading config from %s", config_path)
    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML syntax in {config_path}: {e}"
        raise ConfigParseError(msg) from e
    except OSError as e:
        msg = f"Failed to read config {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return Config.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid config content in {config_path}: {e}"
        raise ConfigValidationError(msg) from e


def config_to_dict(config: Config) -> dict[str, Any]:
    """Convert a Config to a dictionary suitable for TOML serialization.

    TOML has no null, so unset optional values are omitted.
    """
    return config.model_dump(exclude_none=True)


def save_config(config: Config, path: Path) -> Path:
    """Save a configuration to a TOML file.

    The file is written atomically through a temporary file in the same
    directory and os.replace().

    Args:
        config: Configuration to save.
        path: Destination file.

    Returns:
        Path where the configuration was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    data = config_to_dict(config)

    tmp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile(mode="wb", dir=path.parent, delete=False, suffix=".tmp") as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        msg = f"Failed to write config {path}: {e}"
        raise ConfigError(msg) from e

    logger.info("Wrote config to %s", path)
    return path


def _append_unique(target: list[str], patterns: list[str] | tuple[str, ...]) -> None:
    for pattern in patterns:
        if pattern not in target:
            target.append(pattern)


def merge_cli_args(
    config: Config,
    include: list[str] | None = None,
    exclude: list[str] | None = None,
    preserve_env: bool = False,
) -> PatternSources:
    """Combine the configuration with command-line pattern flags.

    Command-line includes that contain ``.`` or ``*`` are treated as file
    patterns; all others are directory patterns. ``preserve_env`` adds
    ``.env`` and ``.env.example`` to the excludes.

    Args:
        config: Loaded configuration.
        include: Patterns from ``--include``.
        exclude: Patterns from ``--exclude``.
        preserve_env: Protect environment files.

    Returns:
        PatternSources for building the matcher.
    """
    directories: list[str] = []
    files: list[str] = []
    for pattern in include or []:
        if "." in pattern or "*" in pattern:
            _append_unique(files, [pattern])
        else:
            _append_unique(directories, [pattern])

    excludes: list[str] = []
    _append_unique(excludes, exclude or [])
    if preserve_env:
        _append_unique(excludes, ENV_FILE_PATTERNS)

    patterns = config.patterns
    builtin = builtin_patterns()
    if not patterns.use_builtin:
        # Built-in excludes always apply
        builtin = PatternSet(exclude=builtin.exclude)
    user = PatternSet(
        directories=tuple(patterns.directories),
        files=tuple(patterns.files),
        exclude=tuple(patterns.exclude),
    )
    cli = PatternSet(directories=tuple(directories), files=tuple(files), exclude=tuple(excludes))
    return PatternSources(builtin=builtin, user=user, cli=cli)


def require_config(path: Path | None = None) -> Config:
    """Load the configuration or exit with a helpful error message.

    Convenience wrapper around load_config() for CLI commands.

    Args:
        path: Explicit configuration file from ``--config``.

    Returns:
        Loaded and validated Config.

    Raises:
        typer.Exit: If the configuration cannot be loaded.
    """
    import typer

    from mrclean.utils.formatting import print_error, print_info

    try:
        return load_config(path)
    except ConfigValidationError as e:
        print_error(str(e))
        print_info("Run 'mrclean init --force' to write a fresh default config.")
        raise typer.Exit(code=1) from e
    except ConfigError as e:
        print_error(f"Failed to load config: {e}")
        raise typer.Exit(code=1) from e
