"""Shared fixtures for gitsync tests."""

import hashlib
import threading
import time

import pytest
from click.testing import CliRunner

from gitsync.exceptions import BranchNotFound, NotFound, RemoteError
from gitsync.hashing import blob_sha
from gitsync.local import LocalFile
from gitsync.paths import RepoRef
from gitsync.remote import RemoteTreeEntry, RepositoryInfo, TreeListing


class FakeRemote:
    """In-memory stand-in for GitHubClient.

    Stores blobs by their real git blob sha so skip decisions behave as
    against the real service.  Every write call is recorded in ``calls``.
    """

    def __init__(self, *, upload_delay=0.0):
        self.repo = RepoRef("octo", "site")
        self.blobs: dict[str, bytes] = {}
        self.trees: dict[str, list[RemoteTreeEntry]] = {}
        self.commits: dict[str, tuple[str, str, list[str]]] = {}
        self.refs: dict[str, str] = {}
        self.calls: list[tuple[str, object]] = []
        self.attempted_uploads: list[bytes] = []
        self.fail_on: set[bytes] = set()
        self.fail_ref_update = False
        self.truncated = False
        self.upload_delay = upload_delay
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()
        self._counter = 0

    # -- helpers for tests ----------------------------------------------

    def seed(self, files, *, branch="main", extra_entries=()):
        """Put *files* ({path: bytes}) on *branch* without recording calls."""
        entries = []
        for path, data in files.items():
            sha = blob_sha(data)
            self.blobs[sha] = data
            entries.append(RemoteTreeEntry.blob(path, sha))
        entries.extend(extra_entries)
        tree = self._store_tree(entries)
        head = self._store_commit("seed", tree, [])
        self.refs[branch] = head
        return head

    def files(self, branch="main"):
        """{path: bytes} of the blobs on *branch*."""
        _msg, tree, _parents = self.commits[self.refs[branch]]
        return {e.path: self.blobs[e.sha] for e in self.trees[tree] if e.type == "blob"}

    def tree_of(self, branch="main"):
        _msg, tree, _parents = self.commits[self.refs[branch]]
        return self.trees[tree]

    def call_names(self):
        return [name for name, _ in self.calls]

    def _next(self, kind):
        self._counter += 1
        return hashlib.sha1(f"{kind}-{self._counter}".encode()).hexdigest()

    def _store_tree(self, entries):
        sha = self._next("tree")
        self.trees[sha] = list(entries)
        return sha

    def _store_commit(self, message, tree, parents):
        sha = self._next("commit")
        self.commits[sha] = (message, tree, list(parents))
        return sha

    # -- client interface -----------------------------------------------

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def close(self):
        pass

    def validate_token(self):
        return "octocat"

    def get_repository(self):
        return RepositoryInfo(full_name=str(self.repo), default_branch="main")

    def resolve_branch_head(self, branch):
        if branch not in self.refs:
            raise BranchNotFound(f"Branch '{branch}' not found.", status=404)
        return self.refs[branch]

    def list_tree_recursive(self, tree_ish):
        _msg, tree, _parents = self.commits[tree_ish]
        return TreeListing(sha=tree, entries=list(self.trees[tree]), truncated=self.truncated)

    def create_blob(self, data):
        with self._lock:
            self.attempted_uploads.append(data)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.upload_delay:
                time.sleep(self.upload_delay)
            if data in self.fail_on:
                raise RemoteError("Server Error", status=500)
            sha = blob_sha(data)
            with self._lock:
                self.blobs[sha] = data
                self.calls.append(("create_blob", sha))
            return sha
        finally:
            with self._lock:
                self.in_flight -= 1

    def create_tree(self, entries, base_tree=None):
        entries = list(entries)
        self.calls.append(("create_tree", entries))
        return self._store_tree(entries)

    def create_commit(self, message, tree, parents):
        self.calls.append(("create_commit", (message, tree, list(parents))))
        return self._store_commit(message, tree, parents)

    def update_branch_ref(self, branch, sha):
        self.calls.append(("update_branch_ref", (branch, sha)))
        if self.fail_ref_update:
            raise RemoteError("Update is not a fast forward", status=422)
        if branch not in self.refs:
            raise NotFound("Reference does not exist", status=404)
        self.refs[branch] = sha

    def create_branch_ref(self, branch, sha):
        self.calls.append(("create_branch_ref", (branch, sha)))
        self.refs[branch] = sha


def make_files(mapping):
    """LocalFile list from {path: bytes}."""
    return [LocalFile.from_bytes(path, data) for path, data in mapping.items()]


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def local_dir(tmp_path):
    """A local folder with a nested layout.

    Tree:
        index.html, css/site.css, js/app.js, js/lib/util.js
    """
    d = tmp_path / "site"
    d.mkdir()
    (d / "index.html").write_text("<h1>hi</h1>")
    (d / "css").mkdir()
    (d / "css" / "site.css").write_text("body {}")
    (d / "js" / "lib").mkdir(parents=True)
    (d / "js" / "app.js").write_text("app()")
    (d / "js" / "lib" / "util.js").write_text("util()")
    return d
