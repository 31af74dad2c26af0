"""CLI interface for the notedrive Google Drive sync."""

import logging
from pathlib import Path
from typing import Any, Optional

import click

from .api import DriveClient
from .config import config
from .exceptions import DriveAPIError, SyncError
from .models import DriveUser
from .output import OutputFormatter
from .utils import DEFAULT_TOLERANCE_MS

logger = logging.getLogger(__name__)


def require_token(ctx: Any, out: OutputFormatter) -> str:
    """Return the access token from the command line or config, or exit."""
    token = ctx.obj.get("token") or config.access_token
    if not token:
        out.error("Access token not configured.")
        out.info("Run 'notedrive init' to configure your access token")
        ctx.exit(1)
    return token


@click.group()
@click.option(
    "--token",
    "-t",
    envvar="NOTEDRIVE_ACCESS_TOKEN",
    help="Google Drive OAuth access token",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="notedrive")
@click.pass_context
def main(
    ctx: Any,
    token: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """notedrive - Two-way sync of a notes folder with Google Drive."""
    ctx.ensure_object(dict)
    ctx.obj["token"] = token
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("notedrive").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--token",
    "-t",
    prompt="Enter your Google Drive access token",
    hide_input=True,
    help="Google Drive OAuth access token",
)
@click.option(
    "--folder-name",
    "-f",
    default=None,
    help="Name of the sync folder in the Drive root",
)
@click.option(
    "--notes-dir",
    "-d",
    type=click.Path(file_okay=False),
    default=None,
    help="Local notes directory synced by default",
)
@click.pass_context
def init(
    ctx: Any, token: str, folder_name: Optional[str], notes_dir: Optional[str]
) -> None:
    """Initialize notedrive configuration.

    Stores your access token in ~/.config/notedrive/sync-drive-config.json
    for future use.
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        out.info("Validating access token...")
        try:
            with DriveClient(access_token=token) as client:
                user = DriveUser.from_api_response(client.get_about())
            out.success(f"✓ Token is valid ({user.email or user.display_name})")
        except DriveAPIError as e:
            out.error(f"Token validation failed: {e}")
            if not click.confirm("Save token anyway?", default=False):
                out.warning("Configuration cancelled.")
                ctx.exit(1)

        config.save_access_token(token)
        extra: dict[str, Any] = {}
        if folder_name:
            extra["sync_folder_name"] = folder_name
        if notes_dir:
            extra["notes_dir"] = str(Path(notes_dir).expanduser())
        if extra:
            config.save(**extra)

        out.print_summary(
            "Initialization Complete",
            [
                ("Status", "✓ Configuration saved successfully"),
                ("Config file", str(config.get_config_path())),
                ("Sync folder", config.sync_folder_name),
                ("Notes directory", str(config.notes_dir)),
            ],
        )

    except OSError as e:
        out.error(f"Initialization failed: {e}")
        ctx.exit(1)


@main.command()
@click.pass_context
def status(ctx: Any) -> None:
    """Check access token validity and connection status."""
    out: OutputFormatter = ctx.obj["out"]
    token = require_token(ctx, out)

    try:
        with DriveClient(access_token=token) as client:
            user = DriveUser.from_api_response(client.get_about())
    except DriveAPIError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(user.to_dict())
        return

    out.print_summary(
        "Google Drive",
        [
            ("User", user.display_name or "-"),
            ("Email", user.email or "-"),
            ("Sync folder", config.sync_folder_name),
            ("Notes directory", str(config.notes_dir)),
        ],
    )


@main.command()
@click.argument("local_dir", type=click.Path(file_okay=False), required=False)
@click.option(
    "--folder-name",
    "-f",
    default=None,
    help="Name of the sync folder in the Drive root (default: from config)",
)
@click.option(
    "--workers",
    "-j",
    type=int,
    default=1,
    help="Number of parallel transfers (default: 1)",
)
@click.option(
    "--dry-run", is_flag=True, help="Show what would be synced without syncing"
)
@click.option(
    "--tolerance-ms",
    type=int,
    default=DEFAULT_TOLERANCE_MS,
    show_default=True,
    help="Timestamp difference (ms) treated as in sync",
)
@click.pass_context
def sync(
    ctx: Any,
    local_dir: Optional[str],
    folder_name: Optional[str],
    workers: int,
    dry_run: bool,
    tolerance_ms: int,
) -> None:
    """Sync a local notes directory with its Google Drive folder.

    LOCAL_DIR: Local directory to sync (default: configured notes directory)

    Files that exist on one side only are copied to the other. Files on
    both sides are copied from the newer side when the modification times
    differ by more than the tolerance. Nothing is ever deleted.

    Examples:
        notedrive sync                       # Sync the configured notes dir
        notedrive sync ~/Notes -f Notes      # Sync into Drive folder "Notes"
        notedrive sync --dry-run             # Preview sync changes
        notedrive sync -j 4                  # Transfer 4 files at a time
    """
    from .sync import SyncEngine

    out: OutputFormatter = ctx.obj["out"]

    if workers < 1:
        out.error("Workers must be at least 1")
        ctx.exit(1)
    if tolerance_ms < 0:
        out.error("Tolerance must not be negative")
        ctx.exit(1)

    token = require_token(ctx, out)
    local_path = Path(local_dir).expanduser() if local_dir else config.notes_dir
    folder = folder_name or config.sync_folder_name

    if not out.quiet and not out.json_output:
        out.info(f"Local path: {local_path}")
        out.info(f"Remote folder: {folder}")
        out.info("")

    try:
        with DriveClient(access_token=token) as client:
            engine_out = OutputFormatter(quiet=out.quiet or out.json_output)
            engine = SyncEngine(
                client,
                engine_out,
                folder_name=folder,
                tolerance_ms=tolerance_ms,
                max_workers=workers,
            )
            report = engine.sync(local_path, dry_run=dry_run)
    except KeyboardInterrupt:
        out.warning("\nSync cancelled by user")
        ctx.exit(130)
        return
    except (SyncError, DriveAPIError) as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(report.to_dict())
        return

    if report.has_errors and out.quiet:
        # Quiet mode still reports what failed
        for message in report.errors:
            out.error(message)
