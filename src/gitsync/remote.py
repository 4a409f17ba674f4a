"""Client for the hosting provider's Git data API.

A thin, stateless wrapper: each method is one HTTPS JSON request.
Responses are parsed into the typed records below; non-2xx statuses
become the typed errors in :mod:`gitsync.exceptions` with the provider's
message preserved.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable
from urllib.parse import quote

import httpx

from .exceptions import (
    AuthenticationFailed,
    BranchNotFound,
    NotFound,
    RemoteError,
    RepositoryNotFound,
)
from .paths import RepoRef

log = logging.getLogger(__name__)

API_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 30.0

GIT_FILEMODE_BLOB = "100644"
GIT_FILEMODE_BLOB_EXECUTABLE = "100755"
GIT_FILEMODE_LINK = "120000"
GIT_FILEMODE_TREE = "040000"
GIT_FILEMODE_COMMIT = "160000"


class EntryType(str, Enum):
    """Tree entry kind: ``BLOB``, ``TREE`` or ``COMMIT`` (submodule)."""
    BLOB = "blob"
    TREE = "tree"
    COMMIT = "commit"

    def __str__(self) -> str:          # noqa: D105
        return self.value


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RemoteTreeEntry:
    """One entry of a recursive tree listing (or of a tree to create).

    Attributes:
        path: Full repo path, forward slashes.
        mode: Git file-mode token, e.g. ``"100644"``; kept verbatim.
        type: :class:`EntryType` of the entry.
        sha: Object id the entry points at.
    """
    path: str
    mode: str
    type: EntryType
    sha: str

    @classmethod
    def blob(cls, path: str, sha: str, mode: str = GIT_FILEMODE_BLOB) -> RemoteTreeEntry:
        return cls(path, mode, EntryType.BLOB, sha)

    @classmethod
    def from_json(cls, item: dict[str, Any]) -> RemoteTreeEntry:
        try:
            kind = EntryType(item["type"])
            return cls(item["path"], item["mode"], kind, item["sha"])
        except ValueError as exc:
            raise RemoteError(
                f"Unknown tree entry type {item['type']!r} at {item.get('path')!r}"
            ) from exc
        except KeyError as exc:
            raise RemoteError(f"Malformed tree entry, missing {exc}") from exc

    def to_json(self) -> dict[str, str]:
        return {"path": self.path, "mode": self.mode, "type": self.type.value, "sha": self.sha}


@dataclass
class TreeListing:
    """Result of one recursive tree listing.

    ``truncated`` means the provider cut the listing short, so paths
    missing from it may still exist remotely.
    """
    sha: str | None = None
    entries: list[RemoteTreeEntry] = field(default_factory=list)
    truncated: bool = False

    @classmethod
    def empty(cls) -> TreeListing:
        return cls()

    def blobs(self) -> dict[str, str]:
        """``{path: blob sha}`` for the blob entries."""
        return {e.path: e.sha for e in self.entries if e.type is EntryType.BLOB}


@dataclass(frozen=True)
class RepositoryInfo:
    full_name: str
    default_branch: str | None = None
    private: bool = False


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

def _field(data: Any, *keys: str) -> Any:
    """Look up a nested response field; a missing one is a ``RemoteError``."""
    value = data
    try:
        for key in keys:
            value = value[key]
    except (KeyError, IndexError, TypeError) as exc:
        raise RemoteError(f"Malformed response, missing {'.'.join(keys)!r}") from exc
    return value


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return f"GitHub API Error: {response.status_code}"


class GitHubClient:
    """Git data API primitives for one repository.

    Usable as a context manager; the underlying ``httpx.Client`` is
    shared by concurrent uploads.
    """

    def __init__(
        self,
        token: str,
        repo: RepoRef,
        *,
        base_url: str = API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        self.repo = repo
        self._http = httpx.Client(
            base_url=base_url,
            headers={
                "Authorization": f"token {token}",
                "Accept": "application/vnd.github.v3+json",
            },
            timeout=timeout,
            transport=transport,
        )

    def __repr__(self) -> str:
        return f"GitHubClient({str(self.repo)!r})"

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self) -> None:
        self._http.close()

    @property
    def _repo_url(self) -> str:
        return f"/repos/{quote(self.repo.owner)}/{quote(self.repo.name)}"

    def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        log.debug("%s %s", method, endpoint)
        try:
            response = self._http.request(method, endpoint, **kwargs)
        except httpx.HTTPError as exc:
            raise RemoteError(f"{method} {endpoint} failed: {exc}") from exc

        if response.is_success:
            if not response.content:
                return None
            try:
                return response.json()
            except ValueError as exc:
                raise RemoteError(
                    f"{method} {endpoint}: response is not JSON", status=response.status_code,
                ) from exc

        message = _error_message(response)
        status = response.status_code
        log.debug("%s %s -> %d %s", method, endpoint, status, message)
        if status == 401:
            raise AuthenticationFailed(message, status=status)
        if status == 404:
            raise NotFound(message, status=status)
        raise RemoteError(message, status=status)

    # -- connection checks --------------------------------------------

    def validate_token(self) -> str:
        """Return the login the token belongs to."""
        return _field(self._request("GET", "/user"), "login")

    def get_repository(self) -> RepositoryInfo:
        try:
            data = self._request("GET", self._repo_url)
        except NotFound as exc:
            raise RepositoryNotFound(exc.message, status=exc.status) from exc
        if not isinstance(data, dict):
            raise RemoteError(f"Malformed response for {self._repo_url}")
        return RepositoryInfo(
            full_name=data.get("full_name", str(self.repo)),
            default_branch=data.get("default_branch"),
            private=bool(data.get("private", False)),
        )

    # -- reads ----------------------------------------------------------

    def resolve_branch_head(self, branch: str) -> str:
        """Commit sha the branch points at.

        Raises :class:`BranchNotFound` when the ref does not exist,
        including the provider's 409 for a repository with no commits.
        """
        endpoint = f"{self._repo_url}/git/ref/heads/{quote(branch, safe='/')}"
        try:
            data = self._request("GET", endpoint)
        except NotFound as exc:
            raise BranchNotFound(f"Branch '{branch}' not found.", status=exc.status) from exc
        except RemoteError as exc:
            if exc.status == 409:
                raise BranchNotFound(f"Branch '{branch}' not found: {exc.message}",
                                     status=exc.status) from exc
            raise
        return _field(data, "object", "sha")

    def list_tree_recursive(self, tree_ish: str) -> TreeListing:
        data = self._request(
            "GET", f"{self._repo_url}/git/trees/{tree_ish}", params={"recursive": "1"},
        )
        if not isinstance(data, dict):
            raise RemoteError(f"Malformed tree listing for {tree_ish}")
        return TreeListing(
            sha=data.get("sha"),
            entries=[RemoteTreeEntry.from_json(item) for item in data.get("tree", [])],
            truncated=bool(data.get("truncated", False)),
        )

    # -- writes ---------------------------------------------------------

    def create_blob(self, data: bytes) -> str:
        body = {"content": base64.b64encode(data).decode("ascii"), "encoding": "base64"}
        return _field(self._request("POST", f"{self._repo_url}/git/blobs", json=body), "sha")

    def create_tree(self, entries: Iterable[RemoteTreeEntry], base_tree: str | None = None) -> str:
        body: dict[str, Any] = {"tree": [e.to_json() for e in entries]}
        if base_tree:
            body["base_tree"] = base_tree
        return _field(self._request("POST", f"{self._repo_url}/git/trees", json=body), "sha")

    def create_commit(self, message: str, tree: str, parents: list[str]) -> str:
        """Create a commit object; no parents makes it a root commit."""
        body = {"message": message, "tree": tree, "parents": list(parents)}
        return _field(self._request("POST", f"{self._repo_url}/git/commits", json=body), "sha")

    def update_branch_ref(self, branch: str, sha: str) -> None:
        """Move an existing branch to *sha* (fast-forward only)."""
        endpoint = f"{self._repo_url}/git/refs/heads/{quote(branch, safe='/')}"
        self._request("PATCH", endpoint, json={"sha": sha, "force": False})

    def create_branch_ref(self, branch: str, sha: str) -> None:
        body = {"ref": f"refs/heads/{branch}", "sha": sha}
        self._request("POST", f"{self._repo_url}/git/refs", json=body)
