"""Repository path, repository reference and token helpers.

Paths are compared byte-for-byte: no percent-encoding, no case folding.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from urllib.parse import urlparse

from .exceptions import InvalidPathError, InvalidRepositoryReference

PROVIDER_HOST = "github.com"

_SLASH_RUN = re.compile(r"/+")
_TOKEN_JUNK = re.compile(r"[\s\u200b-\u200d\ufeff]")


def sanitize_path(path: str | os.PathLike[str]) -> str:
    """Canonicalize *path* into a POSIX repo path; may return ``""``.

    Backslashes become ``/``, slash runs collapse, leading and trailing
    slashes go, and empty, ``.`` and ``..`` segments are dropped.
    """
    path = os.fspath(path).replace("\\", "/")
    path = _SLASH_RUN.sub("/", path).strip("/")
    segments = [seg for seg in path.split("/") if seg and seg not in (".", "..")]
    return "/".join(segments)


def normalize_path(path: str | os.PathLike[str]) -> str:
    """Like :func:`sanitize_path` but reject paths that normalize to nothing."""
    result = sanitize_path(path)
    if not result:
        raise InvalidPathError(f"Path normalizes to nothing: {os.fspath(path)!r}")
    return result


def join_remote_path(prefix: str, rel: str) -> str:
    """Place *rel* under the target subdirectory *prefix*."""
    prefix = sanitize_path(prefix) if prefix else ""
    rel = sanitize_path(rel)
    combined = f"{prefix}/{rel}" if prefix else rel
    return normalize_path(combined)


def in_prefix(path: str, prefix: str) -> bool:
    """True if *path* falls under *prefix* (every path when no prefix).

    Raw string comparison against ``prefix + "/"``.
    """
    if not prefix:
        return True
    return path.startswith(prefix + "/")


@dataclass(frozen=True)
class RepoRef:
    """A repository on the hosting provider."""
    owner: str
    name: str

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}"


def parse_repo_ref(value: str) -> RepoRef:
    """Parse ``owner/repo`` or ``https://github.com/owner/repo(.git)``."""
    raw = value
    value = (value or "").strip().rstrip("/")
    if value.endswith(".git"):
        value = value[:-4].rstrip("/")
    if not value:
        raise InvalidRepositoryReference(f"Empty repository reference: {raw!r}")

    if value.startswith(PROVIDER_HOST + "/"):
        value = "https://" + value

    if not value.startswith("http"):
        parts = value.split("/")
        if len(parts) == 2 and all(parts):
            return RepoRef(parts[0], parts[1])
        raise InvalidRepositoryReference(f"Expected owner/repo, got {raw!r}")

    parsed = urlparse(value)
    host = (parsed.hostname or "").lower()
    if host != PROVIDER_HOST and not host.endswith("." + PROVIDER_HOST):
        raise InvalidRepositoryReference(f"Not a {PROVIDER_HOST} URL: {raw!r}")
    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) < 2:
        raise InvalidRepositoryReference(f"URL has no owner/repo: {raw!r}")
    return RepoRef(parts[0], parts[1])


def clean_token(token: str) -> str:
    """Strip whitespace and zero-width/BOM characters picked up by pasting."""
    return _TOKEN_JUNK.sub("", token or "")
