"""Exceptions for gitsync."""

from __future__ import annotations


class SyncError(Exception):
    """Base class for every error a sync run can end with."""


class ConfigError(SyncError):
    """Raised when the stored configuration cannot be read."""


class InvalidPathError(SyncError, ValueError):
    """Raised when a path normalizes to nothing."""


class InvalidRepositoryReference(SyncError, ValueError):
    """Raised when ``owner/repo`` cannot be parsed from user input."""


class RemoteError(SyncError):
    """A non-2xx response (or transport failure) from the hosting API.

    *message* is the provider's own text when the response carried one.
    """

    def __init__(self, message: str, *, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status


class AuthenticationFailed(RemoteError):
    """The access token was rejected."""


class NotFound(RemoteError):
    """The repository, branch or object does not exist (or is hidden)."""


class RepositoryNotFound(NotFound):
    """The repository itself is missing; fatal for a run."""


class BranchNotFound(NotFound):
    """The target branch has no ref yet; a sync falls back to first push."""


class TreeTruncated(UserWarning):
    """The recursive listing was cut short, so deletions are unsafe."""


class UploadFailed(SyncError):
    """Creating the blob for *path* failed; the run is aborted."""

    def __init__(self, path: str, cause: BaseException):
        super().__init__(f"Failed upload: {path}: {cause}")
        self.path = path
        self.cause = cause


class CommitMessageGenerationFailed(SyncError):
    """The message generator failed; the templated message is used."""


class InvalidCommitMessage(SyncError, ValueError):
    """A custom message template has unknown or malformed placeholders."""


class RefUpdateFailed(SyncError):
    """Moving (or creating) the branch ref failed."""

    def __init__(self, branch: str, cause: BaseException):
        super().__init__(f"Could not update branch '{branch}': {cause}")
        self.branch = branch
        self.cause = cause


def friendly_message(exc: BaseException) -> str:
    """Return a human-readable explanation with a hint where one helps."""
    if isinstance(exc, AuthenticationFailed):
        return "Invalid Token. Please check your Personal Access Token."
    if isinstance(exc, RepositoryNotFound):
        return (
            "Repository not found. Please check the URL, or ensure your Token "
            "has 'repo' permissions (private repos require this)."
        )
    if isinstance(exc, InvalidRepositoryReference):
        return f"Invalid Repository URL format: {exc}"
    return str(exc)
