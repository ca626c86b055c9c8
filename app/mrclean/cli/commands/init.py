"""Init command implementation.

Writes a default configuration file, either next to the project or in
the global config directory.
"""

from pathlib import Path
from typing import Annotated

import typer

from mrclean.core.config import Config, ConfigError, save_config
from mrclean.core.paths import LOCAL_CONFIG_NAME, ensure_config_dir, get_global_config_path
from mrclean.utils.formatting import print_error, print_info, print_success, print_warning


def init_command(
    global_config: Annotated[
        bool,
        typer.Option("--global", "-g", help="Write the global config instead of a local one."),
    ] = False,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing config file."),
    ] = False,
) -> None:
    """Create a configuration file with default settings.

    Examples:
        mrclean init           # Create .mrclean.toml in the current directory
        mrclean init --global  # Create ~/.config/mrclean/config.toml
    """
    if global_config:
        try:
            ensure_config_dir()
        except RuntimeError as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e
        output_path = get_global_config_path()
    else:
        output_path = Path.cwd() / LOCAL_CONFIG_NAME

    if output_path.exists():
        if not force:
            print_error(f"Config already exists: {output_path}")
            print_info("Use --force to overwrite.")
            raise typer.Exit(code=1)
        print_warning(f"Overwriting existing config: {output_path}")

    try:
        saved_path = save_config(Config(), output_path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Config written to {saved_path}")
    print_info("Add your own patterns under [patterns]; built-in patterns stay active.")
