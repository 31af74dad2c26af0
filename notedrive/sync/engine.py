"""Core sync engine for executing sync operations."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn

from ..exceptions import (
    DriveAPIError,
    SyncConfigError,
    SyncError,
    SyncResolutionError,
    SyncScanError,
)
from ..file_entries_manager import FileEntriesManager
from ..output import OutputFormatter
from ..protocols import RemoteStoreClient
from ..utils import DEFAULT_SYNC_FOLDER_NAME, DEFAULT_TOLERANCE_MS, format_size
from .comparator import FileComparator, SyncAction, SyncDecision
from .operations import SyncOperations
from .report import SyncReport
from .resolver import FolderResolver
from .scanner import DirectoryScanner, LocalFile, RemoteFile

logger = logging.getLogger(__name__)


class SyncPhase(str, Enum):
    """Phases of a sync run."""

    IDLE = "idle"
    RESOLVING = "resolving"
    SCANNING = "scanning"
    RECONCILING = "reconciling"
    UPLOADING = "uploading"
    DOWNLOADING = "downloading"
    DONE = "done"
    FAILED = "failed"


class SyncRun:
    """State owned by a single sync invocation.

    The folder resolver and its caches live here, so two runs never share
    cached folder IDs.
    """

    def __init__(
        self,
        client: RemoteStoreClient,
        local_root: Path,
        folder_name: str,
        dry_run: bool = False,
    ):
        self.local_root = local_root
        self.folder_name = folder_name
        self.dry_run = dry_run
        self.phase = SyncPhase.IDLE
        self.resolver = FolderResolver(client)
        self.root_folder_id: Optional[str] = None
        self.local_files: dict[str, LocalFile] = {}
        self.remote_files: dict[str, RemoteFile] = {}
        self.decisions: list[SyncDecision] = []
        self.report = SyncReport(dry_run=dry_run)

    def enter(self, phase: SyncPhase) -> None:
        logger.debug(f"Sync phase: {self.phase.value} -> {phase.value}")
        self.phase = phase

    def local_path_for(self, relative_path: str) -> Path:
        """Map a relative path to a path below the local root.

        Raises:
            ValueError: If the path would leave the local root
        """
        target = self.local_root.joinpath(*relative_path.split("/"))
        root = self.local_root.resolve()
        resolved = target.resolve()
        if resolved != root and root not in resolved.parents:
            raise ValueError(f"Path escapes the sync root: {relative_path}")
        return target


class SyncEngine:
    """Core sync engine that orchestrates file synchronization.

    A run resolves the remote sync folder, scans both trees, reconciles
    them, then performs all uploads followed by all downloads. Failures
    before the transfer passes abort the run with a ``SyncError``; a
    failed transfer is recorded in the report and the run continues.
    """

    def __init__(
        self,
        client: Optional[RemoteStoreClient],
        output: Optional[OutputFormatter] = None,
        folder_name: str = DEFAULT_SYNC_FOLDER_NAME,
        tolerance_ms: int = DEFAULT_TOLERANCE_MS,
        max_workers: int = 1,
    ):
        """Initialize sync engine.

        Args:
            client: Authenticated remote store client
            output: Output formatter for displaying progress/status
            folder_name: Name of the sync folder under the Drive root
            tolerance_ms: Timestamp difference treated as "in sync"
            max_workers: Number of parallel transfers per pass (default: 1)
        """
        if client is None:
            raise SyncConfigError("Drive sync is not configured (no client)")
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self.client = client
        self.output = output or OutputFormatter(quiet=True)
        self.folder_name = folder_name
        self.max_workers = max_workers
        self.comparator = FileComparator(tolerance_ms=tolerance_ms)
        self.scanner = DirectoryScanner(exclude_dot_files=True)
        self.operations = SyncOperations(client)
        self.last_run: Optional[SyncRun] = None

    def sync(self, local_root: Union[str, Path], dry_run: bool = False) -> SyncReport:
        """Synchronize a local directory with the remote sync folder.

        Args:
            local_root: Local directory to sync
            dry_run: If True, only report what would be transferred. The
                remote sync folder is not created in this mode.

        Returns:
            SyncReport with uploaded and downloaded paths and per-file errors

        Raises:
            SyncConfigError: If the local root is not a directory
            SyncResolutionError: If the remote sync folder cannot be resolved
            SyncScanError: If either tree cannot be enumerated

        Examples:
            >>> engine = SyncEngine(client)
            >>> report = engine.sync(Path("~/Hypernote").expanduser())
            >>> print(f"Uploaded {len(report.uploaded)} file(s)")
        """
        start_time = time.time()
        run = self._prepare(Path(local_root), dry_run=dry_run)

        uploads = [d for d in run.decisions if d.action == SyncAction.UPLOAD]
        downloads = [d for d in run.decisions if d.action == SyncAction.DOWNLOAD]

        if dry_run:
            run.report.uploaded = [d.relative_path for d in uploads]
            run.report.downloaded = [d.relative_path for d in downloads]
            run.enter(SyncPhase.DONE)
            self._display_plan(run.decisions)
            return run.report

        run.enter(SyncPhase.UPLOADING)
        self._execute_pass(run, uploads, "Uploading")

        run.enter(SyncPhase.DOWNLOADING)
        self._execute_pass(run, downloads, "Downloading")

        run.enter(SyncPhase.DONE)
        logger.debug(f"Sync finished in {time.time() - start_time:.2f}s")

        if not self.output.quiet:
            self._display_summary(run.report)

        return run.report

    def plan(self, local_root: Union[str, Path]) -> list[SyncDecision]:
        """Compute the sync decisions without transferring anything.

        Args:
            local_root: Local directory to sync

        Returns:
            Uploads followed by downloads, in execution order
        """
        return self._prepare(Path(local_root), dry_run=True).decisions

    def _prepare(self, local_root: Path, dry_run: bool) -> SyncRun:
        """Run the resolve, scan and reconcile phases."""
        if not local_root.exists():
            raise SyncConfigError(f"Local directory does not exist: {local_root}")
        if not local_root.is_dir():
            raise SyncConfigError(f"Local path is not a directory: {local_root}")

        run = SyncRun(self.client, local_root, self.folder_name, dry_run=dry_run)
        self.last_run = run

        try:
            run.enter(SyncPhase.RESOLVING)
            self._resolve_root(run)

            run.enter(SyncPhase.SCANNING)
            self._scan(run)
        except SyncError:
            run.enter(SyncPhase.FAILED)
            raise

        run.enter(SyncPhase.RECONCILING)
        run.decisions = self.comparator.compare_files(
            run.local_files, run.remote_files
        )
        logger.debug(
            f"Reconciled {len(run.local_files)} local and "
            f"{len(run.remote_files)} remote file(s) into "
            f"{len(run.decisions)} action(s)"
        )
        return run

    def _resolve_root(self, run: SyncRun) -> None:
        resolve_start = time.time()
        try:
            run.root_folder_id = run.resolver.resolve_root(
                run.folder_name, create=not run.dry_run
            )
        except DriveAPIError as e:
            raise SyncResolutionError(
                f"Could not resolve remote folder '{run.folder_name}': {e}"
            ) from e

        logger.debug(
            "Remote folder resolution took %.2fs (folder_id=%s)",
            time.time() - resolve_start,
            run.root_folder_id,
        )

    def _scan(self, run: SyncRun) -> None:
        """Scan the local and remote trees concurrently."""
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            disable=self.output.quiet,
        ) as progress:
            task = progress.add_task("Scanning local and remote files...", total=None)

            with ThreadPoolExecutor(max_workers=2) as executor:
                local_future = executor.submit(self.scanner.scan_local, run.local_root)
                remote_future = executor.submit(self._scan_remote, run)

                try:
                    run.local_files = local_future.result()
                except OSError as e:
                    raise SyncScanError(f"Local scan failed: {e}") from e

                try:
                    run.remote_files = remote_future.result()
                except DriveAPIError as e:
                    raise SyncScanError(f"Remote scan failed: {e}") from e

            progress.update(
                task,
                description=(
                    f"Found {len(run.local_files)} local and "
                    f"{len(run.remote_files)} remote file(s)"
                ),
            )

    def _scan_remote(self, run: SyncRun) -> dict[str, RemoteFile]:
        if run.root_folder_id is None:
            # Dry run against a sync folder that does not exist yet
            return {}

        scan_start = time.time()
        manager = FileEntriesManager(self.client)
        entries_with_paths = manager.get_all_recursive(
            folder_id=run.root_folder_id, path_prefix=""
        )
        remote_files = self.scanner.scan_remote(entries_with_paths)
        logger.debug(
            f"Remote scan took {time.time() - scan_start:.2f}s "
            f"for {len(remote_files)} files"
        )
        return remote_files

    def _execute_pass(
        self, run: SyncRun, decisions: list[SyncDecision], description: str
    ) -> None:
        """Execute one pass of transfers and record the outcomes.

        Args:
            run: Current sync run
            decisions: Decisions of a single action type
            description: Label shown in the progress bar
        """
        if not decisions:
            return

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            transient=True,
            disable=self.output.quiet,
        ) as progress:
            task = progress.add_task(f"{description}...", total=len(decisions))

            def advance() -> None:
                progress.update(task, advance=1)

            if self.max_workers > 1 and len(decisions) > 1:
                errors = self._execute_decisions_parallel(run, decisions, advance)
            else:
                errors = []
                for decision in decisions:
                    errors.append(self._execute_with_capture(run, decision))
                    advance()

        # Record in planned order, whatever order the transfers finished in
        for decision, error in zip(decisions, errors):
            if error is not None:
                run.report.errors.append(error)
            elif decision.action == SyncAction.UPLOAD:
                run.report.uploaded.append(decision.relative_path)
            else:
                run.report.downloaded.append(decision.relative_path)

    def _execute_with_capture(
        self, run: SyncRun, decision: SyncDecision
    ) -> Optional[str]:
        """Execute a decision, turning any failure into an error message.

        Returns:
            None on success, otherwise the message for the report
        """
        try:
            self._execute_single_decision(run, decision)
        except Exception as e:
            label = "Upload" if decision.action == SyncAction.UPLOAD else "Download"
            message = f"{label} failed: {decision.relative_path}: {e}"
            logger.warning(message)
            if not self.output.quiet:
                self.output.error(message)
            return message
        return None

    def _execute_single_decision(self, run: SyncRun, decision: SyncDecision) -> None:
        """Execute a single sync decision.

        Args:
            run: Current sync run
            decision: Sync decision to execute
        """
        action_start = time.time()

        if decision.action == SyncAction.UPLOAD:
            if decision.local_file is None or run.root_folder_id is None:
                raise ValueError("Upload decision without local file or root")
            self.operations.upload_file(
                local_file=decision.local_file,
                root_folder_id=run.root_folder_id,
                resolver=run.resolver,
                existing_remote_id=decision.existing_remote_id,
            )
        else:
            if decision.remote_file is None:
                raise ValueError("Download decision without remote file")
            self.operations.download_file(
                remote_file=decision.remote_file,
                local_path=run.local_path_for(decision.relative_path),
            )

        logger.debug(
            "%s of %s took %.2fs",
            decision.action.value.capitalize(),
            decision.relative_path,
            time.time() - action_start,
        )

    def _execute_decisions_parallel(
        self,
        run: SyncRun,
        decisions: list[SyncDecision],
        on_done: Callable[[], None],
    ) -> list[Optional[str]]:
        """Execute decisions using a ThreadPoolExecutor.

        Decisions of one pass touch distinct paths, so they are independent;
        the run's folder resolver serializes folder creation.

        Returns:
            Error message (or None) per decision, in input order
        """
        logger.debug(
            f"Executing {len(decisions)} actions with {self.max_workers} workers"
        )
        errors: list[Optional[str]] = [None] * len(decisions)

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(self._execute_with_capture, run, decision): index
                for index, decision in enumerate(decisions)
            }
            for future in as_completed(futures):
                errors[futures[future]] = future.result()
                on_done()

        return errors

    def _display_plan(self, decisions: list[SyncDecision]) -> None:
        if self.output.quiet:
            return

        if not decisions:
            self.output.info("No changes needed - everything is in sync!")
            return

        self.output.info("Sync plan:")
        for decision in decisions:
            if decision.action == SyncAction.UPLOAD and decision.local_file:
                arrow, size = "↑", decision.local_file.size
            else:
                arrow = "↓"
                size = decision.remote_file.size if decision.remote_file else 0
            self.output.info(
                f"  {arrow} {decision.relative_path} "
                f"({format_size(size)}, {decision.reason})"
            )

    def _display_summary(self, report: SyncReport) -> None:
        """Display sync summary."""
        self.output.print("")
        if report.has_errors:
            self.output.warning(f"Sync finished with {len(report.errors)} error(s)")
        else:
            self.output.success("Sync complete!")

        if report.total_transfers > 0:
            if report.uploaded:
                self.output.info(f"  Uploaded: {len(report.uploaded)}")
            if report.downloaded:
                self.output.info(f"  Downloaded: {len(report.downloaded)}")
        elif not report.has_errors:
            self.output.info("No changes needed - everything is in sync!")
