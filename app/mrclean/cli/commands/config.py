"""Config command implementation.

Shows the effective configuration and the patterns that apply.
"""

from pathlib import Path
from typing import Annotated

import tomli_w
import typer
from rich.markup import escape

from mrclean.core.config import config_to_dict, find_config_file, merge_cli_args, require_config
from mrclean.utils.formatting import console


def config_command(
    path: Annotated[
        Path | None,
        typer.Argument(help="Configuration file to show (default: the discovered one)."),
    ] = None,
    show_patterns: Annotated[
        bool,
        typer.Option("--patterns", help="Also list the effective pattern rules."),
    ] = False,
) -> None:
    """Show the effective configuration as TOML."""
    source = path or find_config_file()
    config = require_config(path)

    label = str(source) if source is not None else "built-in defaults"
    console.print(f"[muted]# Source: {escape(label)}[/]")
    console.print(tomli_w.dumps(config_to_dict(config)), markup=False, highlight=False)

    if show_patterns:
        sources = merge_cli_args(config)
        for title, patterns in (
            ("Directory patterns", sources.user.directories + sources.builtin.directories),
            ("File patterns", sources.user.files + sources.builtin.files),
            ("Exclude patterns", sources.user.exclude + sources.builtin.exclude),
        ):
            console.print(f"\n[bold_header]{title}:[/] {escape(', '.join(patterns) or '-')}")
