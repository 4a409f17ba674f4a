import logging

from .engine import SyncEngine, SyncState, DEFAULT_BATCH_SIZE
from .exceptions import (
    SyncError, AuthenticationFailed, NotFound, RepositoryNotFound, BranchNotFound,
    InvalidRepositoryReference, InvalidPathError, TreeTruncated, UploadFailed,
    CommitMessageGenerationFailed, InvalidCommitMessage, RefUpdateFailed, RemoteError, ConfigError,
)
from .hashing import blob_sha, file_blob_sha
from .local import LocalFile, local_files, scan_directory
from .log import RunLog, LogEntry, LogLevel
from .paths import RepoRef, normalize_path, sanitize_path, join_remote_path, parse_repo_ref, clean_token
from .plan import SyncOptions, SyncPlan, SyncOutcome, SyncProgress, build_plan, assemble_tree
from .remote import GitHubClient, RemoteTreeEntry, TreeListing, EntryType

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "SyncEngine", "SyncState", "DEFAULT_BATCH_SIZE",
    "SyncError", "AuthenticationFailed", "NotFound", "RepositoryNotFound", "BranchNotFound",
    "InvalidRepositoryReference", "InvalidPathError", "TreeTruncated", "UploadFailed",
    "CommitMessageGenerationFailed", "InvalidCommitMessage", "RefUpdateFailed", "RemoteError",
    "ConfigError",
    "blob_sha", "file_blob_sha",
    "LocalFile", "local_files", "scan_directory",
    "RunLog", "LogEntry", "LogLevel",
    "RepoRef", "normalize_path", "sanitize_path", "join_remote_path", "parse_repo_ref", "clean_token",
    "SyncOptions", "SyncPlan", "SyncOutcome", "SyncProgress", "build_plan", "assemble_tree",
    "GitHubClient", "RemoteTreeEntry", "TreeListing", "EntryType",
]
