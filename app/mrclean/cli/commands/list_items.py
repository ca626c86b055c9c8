"""List command implementation.

Shows what a clean would remove without deleting anything.
"""

import json
from pathlib import Path
from typing import Annotated

import typer

from mrclean.cli.display import print_errors, print_items_table
from mrclean.core.config import merge_cli_args, require_config
from mrclean.core.errors import MrCleanError
from mrclean.engine.pipeline import CleanPipeline
from mrclean.utils.formatting import console, print_error, print_success


def list_command(
    path: Annotated[
        Path,
        typer.Argument(help="Directory to scan.", file_okay=False),
    ] = Path("."),
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON."),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Configuration file to use."),
    ] = None,
    all_items: Annotated[
        bool,
        typer.Option("--all", "-a", help="Show every item instead of the first rows."),
    ] = False,
) -> None:
    """List the items a clean would remove."""
    root = path.resolve()
    if not root.is_dir():
        print_error(f"Not a directory: {root}")
        raise typer.Exit(code=1)

    config = require_config(config_path)
    try:
        pipeline = CleanPipeline(config, sources=merge_cli_args(config))
    except MrCleanError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    with pipeline:
        result = pipeline.scan(root)
        items = pipeline.prune()
        pipeline.cancel()

    if as_json:
        data = {
            "root": str(root),
            "items": [item.to_dict() for item in items],
            "total_bytes": sum(item.size for item in items),
            "entries_scanned": result.entries_scanned,
            "scan_errors": [error.to_dict() for error in result.errors],
        }
        console.print_json(json.dumps(data))
        return

    if not items:
        print_success("Nothing to clean.")
    else:
        print_items_table(items, root, title="Cleanable Items", limit=None if all_items else 50)
    print_errors(result.errors, "Scan errors")
