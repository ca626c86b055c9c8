"""Clean command implementation.

Scans a directory tree, shows what was found and deletes it.
"""

from pathlib import Path
from typing import Annotated

import typer

from mrclean.cli.display import print_errors, print_items_table, print_report, print_statistics
from mrclean.core.config import Config, merge_cli_args, require_config
from mrclean.core.errors import MrCleanError
from mrclean.core.safety import SafetyGuard
from mrclean.engine.pipeline import CleanPipeline
from mrclean.utils.formatting import print_error, print_info, print_success, print_warning
from mrclean.utils.progress import CategoryTracker, CompactProgress, NoOpProgress, ProgressSink, TerminalProgress


def _apply_overrides(config: Config, parallel: int | None) -> Config:
    """Return a copy of the config with command-line overrides applied."""
    if parallel is None:
        return config
    cleaner = config.cleaner.model_copy(update={"thread_count": parallel})
    return config.model_copy(update={"cleaner": cleaner})


def clean_command(
    ctx: typer.Context,
    path: Annotated[
        Path,
        typer.Argument(help="Directory to clean.", file_okay=False),
    ] = Path("."),
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-d", help="Show what would be deleted without deleting."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
    exclude: Annotated[
        list[str] | None,
        typer.Option("--exclude", "-e", help="Additional pattern to exclude (repeatable)."),
    ] = None,
    include: Annotated[
        list[str] | None,
        typer.Option("--include", "-i", help="Additional pattern to clean (repeatable)."),
    ] = None,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Configuration file to use."),
    ] = None,
    stats: Annotated[
        bool,
        typer.Option("--stats", "-s", help="Show per-category statistics."),
    ] = False,
    parallel: Annotated[
        int | None,
        typer.Option("--parallel", "-p", min=1, help="Number of deletion threads."),
    ] = None,
    no_git_check: Annotated[
        bool,
        typer.Option("--no-git-check", help="Allow cleaning inside a git repository."),
    ] = False,
    preserve_env: Annotated[
        bool,
        typer.Option("--preserve-env", help="Never delete .env and .env.example files."),
    ] = False,
) -> None:
    """Remove build artifacts, dependency folders and caches.

    Examples:
        mrclean clean                      # Clean the current directory
        mrclean clean ~/projects --dry-run # Preview without deleting
        mrclean clean -e vendor -i "*.bak" # Adjust the patterns
    """
    quiet = bool(ctx.obj and ctx.obj.get("quiet"))
    root = path.resolve()

    config = _apply_overrides(require_config(config_path), parallel)
    sources = merge_cli_args(config, include=include, exclude=exclude, preserve_env=preserve_env)

    guard = SafetyGuard(
        check_git_repo=config.safety.check_git_repo and not no_git_check,
        min_free_space_gb=config.safety.min_free_space_gb,
    )
    try:
        guard.validate(root)
        sources.build_matcher()
    except MrCleanError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if not quiet:
        print_info(f"Scanning {root}")
    live_tracker = CategoryTracker()
    scan_progress: ProgressSink = NoOpProgress() if quiet else CompactProgress(live_tracker)
    with CleanPipeline(
        config,
        sources=sources,
        scan_progress=scan_progress,
        on_match=live_tracker.track,
    ) as pipeline:
        try:
            scan_result = pipeline.scan(root)
        finally:
            scan_progress.finish()
        items = pipeline.prune()

        # Statistics describe what is removed, so they come from the pruned items
        tracker = CategoryTracker()
        for item in items:
            tracker.track(item)

        if not items:
            pipeline.cancel()
            print_success("Nothing to clean.")
            print_errors(scan_result.errors, "Scan errors")
            return

        if not quiet:
            print_items_table(items, root, title="Items to Clean (Dry Run)" if dry_run else "Items to Clean")

        if dry_run:
            pipeline.preview()
        else:
            if config.options.require_confirmation and not yes:
                confirmed = typer.confirm(f"\nDelete {len(items)} item(s)?", default=False)
                if not confirmed:
                    pipeline.cancel()
                    print_info("Aborted.")
                    raise typer.Exit(code=0)

            progress: ProgressSink = NoOpProgress() if quiet else TerminalProgress(total=len(items))
            try:
                pipeline.delete(progress)
            finally:
                progress.finish()

        report = pipeline.finish()

    print_report(report)
    if stats or (config.options.show_statistics and not quiet):
        print_statistics(tracker)

    if not report.succeeded:
        print_warning(f"{len(report.errors)} item(s) could not be deleted.")
        raise typer.Exit(code=1)
