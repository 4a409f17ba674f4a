"""Reconciliation engine: make a remote branch match a set of local files.

A run moves through ``IDLE → SCANNING → ANALYZING → UPLOADING →
COMMITTING → SUCCESS``; any failure ends it in ``ERROR``.  Blobs are
uploaded first and the branch ref is moved last, in a single call, so a
failed run never changes the branch.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from enum import Enum

from .exceptions import BranchNotFound, RefUpdateFailed, RemoteError, SyncError, UploadFailed
from .local import LocalFile
from .log import RunLog
from .message import MessageGenerator, format_commit_message
from .plan import (
    PlannedUpload,
    SyncOptions,
    SyncOutcome,
    SyncPlan,
    SyncProgress,
    assemble_tree,
    build_plan,
)
from .remote import GitHubClient, RemoteTreeEntry, TreeListing

log = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5


class SyncState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    ANALYZING = "analyzing"
    UPLOADING = "uploading"
    COMMITTING = "committing"
    SUCCESS = "success"
    ERROR = "error"

    def __str__(self) -> str:          # noqa: D105
        return self.value

    @property
    def terminal(self) -> bool:
        return self in (SyncState.SUCCESS, SyncState.ERROR)


_ORDER = [
    SyncState.IDLE,
    SyncState.SCANNING,
    SyncState.ANALYZING,
    SyncState.UPLOADING,
    SyncState.COMMITTING,
    SyncState.SUCCESS,
]


class SyncEngine:
    """Runs syncs against one remote repository.

    Args:
        client: Remote client (a :class:`~gitsync.remote.GitHubClient` or
            anything with the same methods).
        batch_size: Uploads in flight at once.
        message_generator: Used when ``auto_commit_message`` is set.
        run_log: Receives the run's entries; a fresh one by default.
        on_progress: Called with :attr:`progress` after each step.
        on_state: Called with each new :class:`SyncState`.
    """

    def __init__(
        self,
        client: GitHubClient,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        message_generator: MessageGenerator | None = None,
        run_log: RunLog | None = None,
        on_progress: Callable[[SyncProgress], None] | None = None,
        on_state: Callable[[SyncState], None] | None = None,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.client = client
        self.batch_size = batch_size
        self.message_generator = message_generator
        self.log = run_log if run_log is not None else RunLog()
        self.on_progress = on_progress
        self.on_state = on_state
        self.state = SyncState.IDLE
        self.error: BaseException | None = None
        self.progress = SyncProgress()
        self.batches: list[int] = []

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _transition(self, new: SyncState) -> None:
        old = self.state
        if old.terminal:
            raise RuntimeError(f"Run already finished ({old}); cannot move to {new}")
        if new is not SyncState.ERROR and _ORDER.index(new) <= _ORDER.index(old):
            raise RuntimeError(f"Illegal sync state transition {old} -> {new}")
        log.debug("state %s -> %s", old, new)
        self.state = new
        if self.on_state is not None:
            self.on_state(new)

    def _notify(self) -> None:
        if self.on_progress is not None:
            self.on_progress(self.progress)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def plan(self, files: Iterable[LocalFile], options: SyncOptions) -> SyncPlan:
        """Scan and analyze only; nothing is uploaded or committed."""
        files = list(files)
        _head, listing = self._scan(options.branch)
        plan = build_plan(files, listing, options)
        for w in plan.warnings:
            self.log.warning(w)
        return plan

    def run(self, files: Iterable[LocalFile], options: SyncOptions) -> SyncOutcome:
        """Make *options.branch* hold exactly the reconciled tree.

        Raises the failing stage's error after moving to ``ERROR``; the
        error is also kept on :attr:`error`.
        """
        if self.state is not SyncState.IDLE and not self.state.terminal:
            raise RuntimeError("A sync run is already in progress")
        files = list(files)
        self.state = SyncState.IDLE
        self.error = None
        self.progress = SyncProgress(total=len(files))
        self.batches = []

        try:
            return self._run(files, options)
        except Exception as exc:
            self.error = exc
            if not self.state.terminal:
                self._transition(SyncState.ERROR)
            self.log.error(f"Error: {exc}")
            raise

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _run(self, files: list[LocalFile], options: SyncOptions) -> SyncOutcome:
        branch = options.branch
        branch_ref = f"refs/heads/{branch}"

        self._transition(SyncState.SCANNING)
        self.log.info(f"Targeting branch: {branch}")
        head, listing = self._scan(branch)

        self._transition(SyncState.ANALYZING)
        self.log.info("Analyzing file signatures...")
        plan = build_plan(files, listing, options, self.progress)
        self._notify()
        for w in plan.warnings:
            self.log.warning(w)
        self.log.info(
            f"Analysis Complete: {len(plan.uploads)} to upload, {len(plan.deleted)} to delete."
        )

        if plan.in_sync:
            self.log.success("Remote is already up to date!")
            self._transition(SyncState.SUCCESS)
            return SyncOutcome(
                uploaded_count=0,
                deleted_count=0,
                skipped_count=len(plan.unchanged),
                commit_sha=None,
                branch_ref=branch_ref,
                plan=plan,
            )

        if options.message:
            # a bad template must fail before anything is uploaded
            format_commit_message(plan, options.message)

        self._transition(SyncState.UPLOADING)
        uploaded = self._upload(plan.uploads)
        entries = assemble_tree(listing, uploaded, plan)

        self._transition(SyncState.COMMITTING)
        message = self._commit_message(plan, options)
        tree_sha = self.client.create_tree(entries)
        parents = [head] if head else []
        commit_sha = self.client.create_commit(message, tree_sha, parents)
        try:
            if head:
                self.client.update_branch_ref(branch, commit_sha)
            else:
                self.client.create_branch_ref(branch, commit_sha)
        except RemoteError as exc:
            raise RefUpdateFailed(branch, exc) from exc

        self._transition(SyncState.SUCCESS)
        self.log.success("Sync completed successfully.")
        return SyncOutcome(
            uploaded_count=len(uploaded),
            deleted_count=len(plan.deleted),
            skipped_count=len(plan.unchanged),
            commit_sha=commit_sha,
            branch_ref=branch_ref,
            created_ref=head is None,
            message=message,
            plan=plan,
        )

    def _scan(self, branch: str) -> tuple[str | None, TreeListing]:
        """Head commit and its recursive listing; ``(None, empty)`` on first push."""
        try:
            head = self.client.resolve_branch_head(branch)
        except BranchNotFound:
            self.log.info(
                f"Branch '{branch}' not found (or repo empty). Initializing fresh upload."
            )
            return None, TreeListing.empty()
        return head, self.client.list_tree_recursive(head)

    def _upload_one(self, item: PlannedUpload) -> str:
        return self.client.create_blob(item.file.read())

    def _upload(self, uploads: list[PlannedUpload]) -> list[RemoteTreeEntry]:
        """Create a blob per upload, *batch_size* at a time.

        A batch finishes before the next starts; any failure stops the
        run before the next batch.
        """
        self.progress.to_upload = len(uploads)
        entries: list[RemoteTreeEntry] = []
        for start in range(0, len(uploads), self.batch_size):
            batch = uploads[start:start + self.batch_size]
            self.batches.append(len(batch))
            failure: UploadFailed | None = None
            with ThreadPoolExecutor(max_workers=len(batch)) as pool:
                futures = {pool.submit(self._upload_one, item): item for item in batch}
                for fut in as_completed(futures):
                    item = futures[fut]
                    try:
                        sha = fut.result()
                    except (SyncError, OSError) as exc:
                        self.log.error(f"Failed upload: {item.path}")
                        if failure is None:
                            failure = UploadFailed(item.path, exc)
                        continue
                    entries.append(RemoteTreeEntry.blob(item.path, sha))
                    if not item.is_new:
                        self.log.warning(f"Updating: {item.path}")
                    self.progress.uploaded += 1
                    self._notify()
            if failure is not None:
                raise failure
        return entries

    def _commit_message(self, plan: SyncPlan, options: SyncOptions) -> str:
        if options.message or not options.auto_commit_message:
            return format_commit_message(plan, options.message)
        if self.message_generator is None:
            self.log.warning("No commit message generator configured, using default message.")
            return format_commit_message(plan)

        added = [u.path for u in plan.uploads if u.is_new]
        modified = [u.path for u in plan.uploads if not u.is_new]
        try:
            message = self.message_generator(added, modified, plan.deleted)
        except Exception as exc:
            self.log.warning(f"Commit message generation failed, using default: {exc}")
            return format_commit_message(plan)
        message = (message or "").strip()
        return message or format_commit_message(plan)
