#!/usr/bin/env python3
"""
Copy Sweeper - Main entry point.

Finds image files named like copies ("Photo - Copy (2).jpg", "Copy of Photo.jpg")
whose original sits in the same folder, and moves them to the trash.
"""
import sys
import asyncio
import logging
import click

from core.models import AppConfig, DEFAULT_EXCLUDED_DIRS, ScanSnapshot
from core.session import SweepSession
from core.file_ops import FileOperations


def setup_logging(verbose: bool = False, log_file: str = "copysweep.log", console: bool = True):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    handlers = [logging.FileHandler(log_file)]
    if console:
        handlers.append(logging.StreamHandler())
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def print_snapshot(snapshot: ScanSnapshot):
    """Print candidates and folder totals."""
    for candidate in snapshot:
        status = "original found" if candidate.original_exists else "original missing"
        click.echo(f"{candidate.path}  ({FileOperations.format_size(candidate.size)}, {status})")

    aggregates = snapshot.folder_aggregates()
    if aggregates:
        click.echo("")
        click.echo("Folders:")
        for aggregate in aggregates.values():
            click.echo(f"  {aggregate.directory}: {aggregate.count} copies, "
                       f"{FileOperations.format_size(aggregate.total_bytes)}")

    click.echo("")
    click.echo(f"{len(snapshot)} copies, {len(snapshot.deletable())} deletable. "
               f"Potential save: {FileOperations.format_size(snapshot.total_reclaimable)}")
    for skipped in snapshot.skipped_dirs:
        click.echo(f"Skipped unreadable directory: {skipped}", err=True)


async def run_batch(config: AppConfig, delete_all: bool, assume_yes: bool) -> int:
    """Scan once, print, and optionally trash every deletable copy."""
    session = SweepSession(config)
    snapshot = await session.open(config.root, watch=False)
    print_snapshot(snapshot)

    if not delete_all:
        return 0

    paths = [c.path for c in snapshot.deletable()]
    if not paths:
        click.echo("Nothing to delete.")
        return 0

    if not assume_yes and not click.confirm(f"Move {len(paths)} copies to the trash?"):
        click.echo("Aborted.")
        return 1

    result = await session.delete_selected(paths)
    prefix = "[DRY RUN] Would delete" if result.dry_run else "Deleted"
    click.echo(f"{prefix} {result.deleted_count} files")
    if result.rejected:
        click.echo(f"{len(result.rejected)} files failed re-validation and were kept")
    for path, reason in result.failures:
        click.echo(f"Failed: {path}: {reason}", err=True)
    return 0 if not result.failures else 1


@click.command()
@click.option('--root', '-r', type=click.Path(file_okay=False), help='Directory tree to search for copies')
@click.option('--strict', is_flag=True, help='Only delete copies whose content matches the original')
@click.option('--no-numeric-suffix', is_flag=True, help='Don\'t treat "Name (N)" as a copy')
@click.option('--min-copy-number', default=2, type=int, help='Smallest N accepted for "Name (N)"')
@click.option('--max-depth', default=99, type=int, help='Maximum directory depth to scan')
@click.option('--exclude', multiple=True, help='Directory name to skip (can specify multiple)')
@click.option('--follow-symlinks', is_flag=True, help='Descend into symlinked directories')
@click.option('--no-watch', is_flag=True, help='Don\'t watch the root for changes')
@click.option('--debounce', default=2000, type=int, help='Watch settle time in milliseconds')
@click.option('--dry-run', is_flag=True, help='Dry run - show what would be deleted')
@click.option('--list', 'list_only', is_flag=True, help='Print copies under --root and exit')
@click.option('--delete-all', is_flag=True, help='Trash every deletable copy under --root without the TUI')
@click.option('--yes', '-y', is_flag=True, help='Don\'t ask for confirmation with --delete-all')
@click.option('--log-file', default='copysweep.log', help='Log file path')
@click.option('--verbose', '-v', is_flag=True, help='Verbose logging')
def main(root, strict, no_numeric_suffix, min_copy_number, max_depth, exclude, follow_symlinks,
         no_watch, debounce, dry_run, list_only, delete_all, yes, log_file, verbose):
    """
    Copy Sweeper - Find and remove redundant copies of images.

    Run without --list or --delete-all to start interactive TUI mode.
    """
    batch = list_only or delete_all
    setup_logging(verbose, log_file, console=batch)

    config = AppConfig(
        root=root,
        strict=strict,
        numeric_suffix=not no_numeric_suffix,
        min_copy_number=min_copy_number,
        max_depth=max_depth,
        follow_symlinks=follow_symlinks,
        excluded_dirs=list(DEFAULT_EXCLUDED_DIRS) + list(exclude),
        watch=not no_watch,
        watch_debounce_ms=debounce,
        dry_run=dry_run,
        log_file=log_file
    )

    errors = config.validate()
    if batch and root is None:
        errors.append("--root is required with --list or --delete-all")
    if errors:
        click.echo("Configuration errors:", err=True)
        for error in errors:
            click.echo(f"  - {error}", err=True)
        sys.exit(1)

    if batch:
        sys.exit(asyncio.run(run_batch(config, delete_all, yes)))

    from tui.app import CopySweepApp
    app = CopySweepApp(config)
    app.run()


if __name__ == '__main__':
    main()
