"""Sync options, plans and outcomes, and the pure planning steps.

:func:`build_plan` classifies local files against a remote snapshot and
:func:`assemble_tree` merges uploaded blobs with the untouched remote
entries.  Neither performs I/O against the remote.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from typing import Iterable

from .exceptions import TreeTruncated
from .local import LocalFile
from .paths import in_prefix, join_remote_path, sanitize_path
from .remote import EntryType, RemoteTreeEntry, TreeListing

log = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass
class SyncOptions:
    """What to sync into.

    Attributes:
        branch: Target branch; blank means ``main``.
        target_path: Subdirectory of the repo the local files land in.
        delete_missing: Remove remote files under *target_path* that have
            no local counterpart.
        auto_commit_message: Ask the message generator for the message.
        message: Custom message template (see
            :func:`~gitsync.message.format_commit_message`).
    """
    branch: str = DEFAULT_BRANCH
    target_path: str = ""
    delete_missing: bool = False
    auto_commit_message: bool = False
    message: str | None = None

    def __post_init__(self):
        self.branch = (self.branch or "").strip() or DEFAULT_BRANCH

    @property
    def prefix(self) -> str:
        return sanitize_path(self.target_path) if self.target_path else ""


@dataclass(frozen=True)
class PlannedUpload:
    """A local file scheduled for upload to *path*."""
    file: LocalFile
    path: str
    is_new: bool


@dataclass
class SyncAction:
    """A single add/update/delete action."""
    path: str
    action: str     # "add", "update", "delete"


@dataclass
class SyncPlan:
    """Classification of every candidate path for one run.

    ``unchanged``, ``new`` and ``modified`` together hold each prefixed
    local path exactly once; ``deleted`` holds remote blob paths only.
    ``touched`` is every remote path some local file landed on.
    """
    prefix: str = ""
    unchanged: list[str] = field(default_factory=list)
    new: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    uploads: list[PlannedUpload] = field(default_factory=list)
    touched: set[str] = field(default_factory=set)
    delete_enabled: bool = False
    warnings: list[str] = field(default_factory=list)

    @property
    def in_sync(self) -> bool:
        return not self.uploads and not self.deleted

    @property
    def total(self) -> int:
        return len(self.new) + len(self.modified) + len(self.deleted)

    def actions(self) -> list[SyncAction]:
        """All actions sorted by path."""
        result: list[SyncAction] = []
        for p in self.new:
            result.append(SyncAction(path=p, action="add"))
        for p in self.modified:
            result.append(SyncAction(path=p, action="update"))
        for p in self.deleted:
            result.append(SyncAction(path=p, action="delete"))
        result.sort(key=lambda a: a.path)
        return result


@dataclass
class SyncProgress:
    """Run-scoped counters, updated as files are analyzed and uploaded."""
    total: int = 0
    scanned: int = 0
    uploaded: int = 0
    to_upload: int = 0


@dataclass
class SyncOutcome:
    """Result of a successful run; ``commit_sha`` is None for a no-op."""
    uploaded_count: int
    deleted_count: int
    skipped_count: int
    commit_sha: str | None
    branch_ref: str
    created_ref: bool = False
    message: str | None = None
    plan: SyncPlan | None = None

    @property
    def changed(self) -> bool:
        return self.commit_sha is not None


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------

def build_plan(
    files: Iterable[LocalFile],
    listing: TreeListing,
    options: SyncOptions,
    progress: SyncProgress | None = None,
) -> SyncPlan:
    """Compare *files* against *listing* and classify every path.

    Only files whose path already exists remotely are hashed.  A file
    that cannot be hashed counts as modified.  A truncated listing turns
    delete-missing off and records a warning.
    """
    prefix = options.prefix
    plan = SyncPlan(prefix=prefix)
    remote = listing.blobs()

    plan.delete_enabled = options.delete_missing
    if options.delete_missing and listing.truncated:
        plan.delete_enabled = False
        msg = 'Repo too large. "Delete missing" disabled safely.'
        plan.warnings.append(msg)
        warnings.warn(msg, TreeTruncated, stacklevel=2)

    seen: set[str] = set()
    for f in files:
        path = join_remote_path(prefix, f.path)
        if progress is not None:
            progress.scanned += 1
        if path in seen:
            plan.warnings.append(f"Duplicate local path ignored: {path}")
            continue
        seen.add(path)

        remote_sha = remote.get(path)
        if remote_sha is None:
            plan.new.append(path)
            plan.uploads.append(PlannedUpload(f, path, is_new=True))
            continue

        plan.touched.add(path)
        try:
            local_sha = f.blob_sha()
        except OSError as exc:
            log.debug("could not hash %s, uploading: %s", path, exc)
            plan.warnings.append(f"Could not hash {path}, uploading anyway: {exc}")
            local_sha = None
        if local_sha == remote_sha:
            plan.unchanged.append(path)
        else:
            plan.modified.append(path)
            plan.uploads.append(PlannedUpload(f, path, is_new=False))

    if plan.delete_enabled:
        plan.deleted = sorted(
            p for p in remote if in_prefix(p, prefix) and p not in plan.touched
        )
    return plan


def assemble_tree(
    listing: TreeListing,
    uploaded: Iterable[RemoteTreeEntry],
    plan: SyncPlan,
) -> list[RemoteTreeEntry]:
    """Full entry list for the new root tree.

    Uploaded entries supersede remote entries at the same path.  Remote
    blobs that are neither re-uploaded nor deleted are kept as they are.
    Remote ``tree`` and ``commit`` entries are not carried over.
    """
    final = list(uploaded)
    replaced = {e.path for e in final}
    deleted = set(plan.deleted)

    for entry in listing.entries:
        if entry.type is EntryType.BLOB:
            if entry.path in replaced or entry.path in deleted:
                continue
            if (plan.delete_enabled and in_prefix(entry.path, plan.prefix)
                    and entry.path not in plan.touched):
                continue
            final.append(entry)
        elif entry.type in (EntryType.TREE, EntryType.COMMIT):
            # rebuilt from blob paths (trees) or dropped (submodules)
            continue
        else:
            raise ValueError(f"Unhandled tree entry type: {entry.type!r}")
    return final
