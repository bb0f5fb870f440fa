"""Command line interface for pygd (the ``gd`` command)."""

import logging
import signal
from pathlib import Path
from typing import Any, Optional

import click

from . import __version__
from .api import DriveClient
from .config import Context, InitCleanup, discover, initialize
from .exceptions import GdAPIError, GdContextError, GdError
from .file_entries_manager import FileEntriesManager
from .models import About, FileEntry
from .output import OutputFormatter
from .sync import SyncEngine
from .utils import (
    is_hidden,
    non_empty_strings,
    parse_remote_timestamp,
    uniq_ordered,
    url_to_path,
)

logger = logging.getLogger(__name__)


def _context_path(paths: tuple[str, ...]) -> Path:
    return Path(paths[0]).absolute() if paths else Path.cwd()


def preprocess_args(ctx: Any, paths: tuple[str, ...]) -> tuple[list[str], Context]:
    """Discover the drive context and make every path context-relative.

    Args:
        ctx: Click context (used to exit on errors)
        paths: Paths given on the command line (default: current directory)

    Returns:
        Tuple of (unique relative paths, context)
    """
    out: OutputFormatter = ctx.obj["out"]
    try:
        context = discover(_context_path(paths))
        sources = [context.rel_path_of(Path(p).absolute()) for p in paths or (".",)]
    except GdContextError as e:
        out.error(str(e))
        ctx.exit(1)
    return uniq_ordered(sources), context


def require_client(ctx: Any, context: Context) -> DriveClient:
    """Build an API client from the context's access token or exit."""
    out: OutputFormatter = ctx.obj["out"]
    token = context.access_token
    if not token:
        out.error("Access token not configured. Run 'gd init' or set GD_ACCESS_TOKEN.")
        ctx.exit(1)
    return DriveClient(access_token=token)


def _run_engine(engine: SyncEngine, action: Any, **kwargs: Any) -> dict:
    """Run a push/pull, turning the first Ctrl-C into a graceful stop."""

    def handle_interrupt(signum: int, frame: Any) -> None:
        engine.output.warning("Stopping after the current change...")
        engine.request_stop()
        # A second interrupt aborts immediately
        signal.signal(signal.SIGINT, previous)

    previous = signal.signal(signal.SIGINT, handle_interrupt)
    try:
        return action(**kwargs)
    finally:
        signal.signal(signal.SIGINT, previous)


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(__version__)
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """gd - keep a local directory in sync with your remote drive."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pygd").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.argument("path", required=False, type=click.Path(file_okay=False))
@click.option(
    "--access-token",
    "-t",
    prompt="Enter your drive access token",
    hide_input=True,
    help="OAuth access token for the drive API",
)
@click.pass_context
def init(ctx: Any, path: Optional[str], access_token: str) -> None:
    """Initialize a drive context in PATH (default: current directory).

    Creates a .gd directory and stores the access token in it.
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        gd_path, first_init, context = initialize(path or Path.cwd())
    except GdContextError as e:
        out.error(str(e))
        ctx.exit(1)

    # Remove a freshly created .gd if init is interrupted half way
    with InitCleanup(gd_path, first_init) as cleanup:
        try:
            out.info("Validating access token...")
            with DriveClient(access_token=access_token) as client:
                about = About.from_api_response(client.about())
            out.success(f"Token is valid ({about.name or 'unknown user'})")
        except GdAPIError as e:
            out.error(f"Access token validation failed: {e}")
            if not click.confirm("Save access token anyway?", default=False):
                cleanup.cleanup()
                out.warning("Initialization cancelled.")
                ctx.exit(1)

        credentials_path = context.save_access_token(access_token)

    out.print_summary(
        "Initialization Complete",
        [
            ("Context", str(context.abs_path)),
            ("Credentials", str(credentials_path)),
        ],
    )


@main.command()
@click.argument("paths", nargs=-1, type=click.Path())
@click.option("--hidden", is_flag=True, help="Include hidden paths")
@click.option("--workers", "-j", type=int, default=1, help="Parallel checksum workers")
@click.pass_context
def diff(ctx: Any, paths: tuple[str, ...], hidden: bool, workers: int) -> None:
    """Show differences between local PATHS and the drive."""
    sources, context = preprocess_args(ctx, paths)
    out: OutputFormatter = ctx.obj["out"]

    try:
        with require_client(ctx, context) as client:
            engine = SyncEngine(client, context, out, max_workers=workers)
            engine.diff(sources, hidden=hidden)
    except GdError as e:
        out.error(str(e))
        ctx.exit(1)


def _sync_options(func: Any) -> Any:
    options = [
        click.option("--force", is_flag=True, help="Apply even if no changes present"),
        click.option(
            "--no-clobber", is_flag=True, help="Never overwrite or delete content"
        ),
        click.option(
            "--no-prompt", is_flag=True, help="Apply without asking for confirmation"
        ),
        click.option("--hidden", is_flag=True, help="Include hidden paths"),
        click.option(
            "--recursive/--no-recursive",
            "-r",
            default=True,
            help="Descend into folders (default: recursive)",
        ),
        click.option(
            "--workers", "-j", type=int, default=1, help="Parallel checksum workers"
        ),
        click.option(
            "--dry-run", is_flag=True, help="Show the changes without applying them"
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _report(ctx: Any, stats: dict) -> None:
    out: OutputFormatter = ctx.obj["out"]
    if out.json_output:
        out.output_json(stats)
    if stats["failures"] or stats["interrupted"]:
        ctx.exit(1)


@main.command()
@click.argument("paths", nargs=-1, type=click.Path())
@_sync_options
@click.pass_context
def push(
    ctx: Any,
    paths: tuple[str, ...],
    force: bool,
    no_clobber: bool,
    no_prompt: bool,
    hidden: bool,
    recursive: bool,
    workers: int,
    dry_run: bool,
) -> None:
    """Push local PATHS to the drive."""
    sources, context = preprocess_args(ctx, paths)
    out: OutputFormatter = ctx.obj["out"]

    try:
        with require_client(ctx, context) as client:
            engine = SyncEngine(client, context, out, max_workers=workers)
            stats = _run_engine(
                engine,
                engine.push,
                sources=sources,
                force=force,
                no_clobber=no_clobber,
                no_prompt=no_prompt,
                hidden=hidden,
                recursive=recursive,
                dry_run=dry_run,
            )
    except GdError as e:
        out.error(str(e))
        ctx.exit(1)
    _report(ctx, stats)


@main.command()
@click.argument("paths", nargs=-1, type=click.Path())
@_sync_options
@click.option(
    "--export",
    default="",
    help="Comma separated formats to export native documents as (e.g. pdf,docx)",
)
@click.option(
    "--export-dir",
    default="",
    type=click.Path(file_okay=False),
    help="Directory to place exports",
)
@click.pass_context
def pull(
    ctx: Any,
    paths: tuple[str, ...],
    force: bool,
    no_clobber: bool,
    no_prompt: bool,
    hidden: bool,
    recursive: bool,
    workers: int,
    dry_run: bool,
    export: str,
    export_dir: str,
) -> None:
    """Pull PATHS from the drive to the local disk."""
    sources, context = preprocess_args(ctx, paths)
    out: OutputFormatter = ctx.obj["out"]
    exports = uniq_ordered(non_empty_strings(export.split(",")))
    exports_dir = Path(export_dir.strip()) if export_dir.strip() else None

    try:
        with require_client(ctx, context) as client:
            engine = SyncEngine(client, context, out, max_workers=workers)
            stats = _run_engine(
                engine,
                engine.pull,
                sources=sources,
                force=force,
                no_clobber=no_clobber,
                no_prompt=no_prompt,
                hidden=hidden,
                recursive=recursive,
                exports=exports,
                exports_dir=exports_dir,
                dry_run=dry_run,
            )
    except GdError as e:
        out.error(str(e))
        ctx.exit(1)
    _report(ctx, stats)


def _entry_row(entry: FileEntry, path: str) -> tuple[str, str, str]:
    size = "-" if entry.is_folder else str(entry.file_size)
    modified = parse_remote_timestamp(entry.modified_date).isoformat()
    return (path + ("/" if entry.is_folder else ""), size, modified)


@main.command("list")
@click.argument("paths", nargs=-1, type=click.Path())
@click.option("--depth", "-m", type=int, default=1, help="Maximum recursion depth")
@click.option("--recursive", "-r", is_flag=True, help="List all subfolders")
@click.option("--hidden", is_flag=True, help="List hidden paths too")
@click.option("--files", "-f", is_flag=True, help="List only files")
@click.option("--directories", "-d", is_flag=True, help="List only directories")
@click.option("--long", "-l", "long_fmt", is_flag=True, help="Long listing")
@click.option("--trashed", is_flag=True, help="List content in the trash")
@click.pass_context
def list_cmd(
    ctx: Any,
    paths: tuple[str, ...],
    depth: int,
    recursive: bool,
    hidden: bool,
    files: bool,
    directories: bool,
    long_fmt: bool,
    trashed: bool,
) -> None:
    """List remote PATHS."""
    sources, context = preprocess_args(ctx, paths)
    out: OutputFormatter = ctx.obj["out"]

    try:
        with require_client(ctx, context) as client:
            manager = FileEntriesManager(client)
            listed: list[tuple[FileEntry, str]] = []
            if trashed:
                listed = [(e, url_to_path(e.title)) for e in manager.get_trashed()]
            else:
                for rel_path in sources:
                    folder_id = "root"
                    if rel_path:
                        entry = manager.find_by_path(rel_path)
                        if entry is None:
                            out.warning(f"{rel_path}: not found")
                            continue
                        if not entry.is_folder:
                            listed.append((entry, rel_path))
                            continue
                        folder_id = entry.id
                    listed.extend(
                        manager.get_all_recursive(
                            folder_id, rel_path, depth=-1 if recursive else depth
                        )
                    )
    except GdError as e:
        out.error(str(e))
        ctx.exit(1)

    rows = []
    for entry, path in listed:
        if not hidden and is_hidden(path):
            continue
        # -f and -d together list everything, as do neither
        if files != directories and entry.is_folder != directories:
            continue
        rows.append(_entry_row(entry, path))

    if long_fmt or out.json_output:
        out.output_table(rows, ["Path", "Size", "Modified"])
    else:
        for row in rows:
            out.print(row[0])


def _apply_to_entries(
    ctx: Any,
    paths: tuple[str, ...],
    action: str,
    verb: str,
    in_trash: bool = False,
) -> None:
    sources, context = preprocess_args(ctx, paths)
    out: OutputFormatter = ctx.obj["out"]
    failed = False

    try:
        with require_client(ctx, context) as client:
            manager = FileEntriesManager(client)
            for rel_path in sources:
                if not rel_path:
                    out.error("Refusing to apply to the drive root")
                    failed = True
                    continue
                entry = manager.find_by_path(rel_path, in_trash=in_trash)
                if entry is None:
                    out.error(f"{rel_path}: not found")
                    failed = True
                    continue
                getattr(client, action)(entry.id)
                out.success(f"{verb} {rel_path}")
    except GdError as e:
        out.error(str(e))
        ctx.exit(1)

    if failed:
        ctx.exit(1)


@main.command()
@click.argument("paths", nargs=-1, type=click.Path(), required=True)
@click.pass_context
def trash(ctx: Any, paths: tuple[str, ...]) -> None:
    """Move remote PATHS to the trash."""
    _apply_to_entries(ctx, paths, "trash", "Trashed")


@main.command()
@click.argument("paths", nargs=-1, type=click.Path(), required=True)
@click.pass_context
def untrash(ctx: Any, paths: tuple[str, ...]) -> None:
    """Restore PATHS from the trash."""
    _apply_to_entries(ctx, paths, "untrash", "Restored", in_trash=True)


@main.command()
@click.argument("paths", nargs=-1, type=click.Path(), required=True)
@click.pass_context
def pub(ctx: Any, paths: tuple[str, ...]) -> None:
    """Publish remote PATHS so anyone can read them."""
    _apply_to_entries(ctx, paths, "insert_permission", "Published")


@main.command()
@click.argument("paths", nargs=-1, type=click.Path(), required=True)
@click.pass_context
def unpub(ctx: Any, paths: tuple[str, ...]) -> None:
    """Revoke public access to remote PATHS."""
    _apply_to_entries(ctx, paths, "delete_permission", "Unpublished")


@main.command()
@click.option("--no-prompt", is_flag=True, help="Empty without asking")
@click.pass_context
def emptytrash(ctx: Any, no_prompt: bool) -> None:
    """Permanently delete everything in the trash."""
    _, context = preprocess_args(ctx, ())
    out: OutputFormatter = ctx.obj["out"]

    if not no_prompt and not click.confirm(
        "This permanently deletes the trash. Continue?", default=False
    ):
        out.warning("Aborted.")
        return

    try:
        with require_client(ctx, context) as client:
            client.empty_trash()
    except GdError as e:
        out.error(str(e))
        ctx.exit(1)
    out.success("Trash emptied")


def _about(ctx: Any) -> About:
    _, context = preprocess_args(ctx, ())
    out: OutputFormatter = ctx.obj["out"]
    try:
        with require_client(ctx, context) as client:
            about = About.from_api_response(client.about())
    except GdError as e:
        out.error(str(e))
        ctx.exit(1)
    return about


@main.command()
@click.pass_context
def quota(ctx: Any) -> None:
    """Show storage quota."""
    out: OutputFormatter = ctx.obj["out"]
    about = _about(ctx)
    out.print_summary(
        "Quota",
        [
            ("Account", about.name),
            ("Used", out.format_size(about.quota_bytes_used)),
            ("In trash", out.format_size(about.quota_bytes_used_in_trash)),
            ("Free", out.format_size(about.quota_bytes_free)),
            ("Total", out.format_size(about.quota_bytes_total)),
        ],
    )


@main.command()
@click.pass_context
def features(ctx: Any) -> None:
    """Show the features (and request rates) of the drive."""
    out: OutputFormatter = ctx.obj["out"]
    about = _about(ctx)
    out.output_table(
        [(name, rate) for name, rate in about.features], ["Feature", "Rate"]
    )


@main.command()
@click.pass_context
def version(ctx: Any) -> None:
    """Show the pygd version."""
    ctx.obj["out"].print(f"gd {__version__}")


if __name__ == "__main__":
    main()
