"""Tests for GitHubClient against a mocked HTTP transport."""

import base64
import json

import httpx
import pytest

from gitsync.exceptions import (
    AuthenticationFailed,
    BranchNotFound,
    NotFound,
    RemoteError,
    RepositoryNotFound,
    UploadFailed,
)
from gitsync.engine import SyncEngine, SyncState
from gitsync.local import LocalFile
from gitsync.paths import RepoRef
from gitsync.plan import SyncOptions
from gitsync.remote import EntryType, GitHubClient, RemoteTreeEntry


def make_client(handler):
    """GitHubClient whose requests go to *handler* and are recorded."""
    seen = []

    def _record(request):
        seen.append(request)
        return handler(request)

    client = GitHubClient("ghp_secret", RepoRef("octo", "site"),
                          transport=httpx.MockTransport(_record))
    return client, seen


def body(request):
    return json.loads(request.content)


class TestRequests:
    def test_auth_and_accept_headers(self):
        client, seen = make_client(lambda r: httpx.Response(200, json={"login": "octocat"}))
        assert client.validate_token() == "octocat"
        req = seen[0]
        assert req.headers["Authorization"] == "token ghp_secret"
        assert req.headers["Accept"] == "application/vnd.github.v3+json"
        assert req.url.path == "/user"

    def test_get_repository(self):
        client, seen = make_client(lambda r: httpx.Response(200, json={
            "full_name": "octo/site", "default_branch": "main", "private": True,
        }))
        info = client.get_repository()
        assert info.full_name == "octo/site"
        assert info.default_branch == "main"
        assert info.private is True
        assert seen[0].url.path == "/repos/octo/site"

    def test_resolve_branch_head(self):
        client, seen = make_client(lambda r: httpx.Response(200, json={
            "ref": "refs/heads/main", "object": {"sha": "c0ffee", "type": "commit"},
        }))
        assert client.resolve_branch_head("main") == "c0ffee"
        assert seen[0].url.path == "/repos/octo/site/git/ref/heads/main"

    def test_branch_with_slash(self):
        client, seen = make_client(lambda r: httpx.Response(200, json={
            "object": {"sha": "abc"},
        }))
        client.resolve_branch_head("feature/x")
        assert seen[0].url.path == "/repos/octo/site/git/ref/heads/feature/x"

    def test_list_tree_recursive(self):
        client, seen = make_client(lambda r: httpx.Response(200, json={
            "sha": "t1",
            "truncated": True,
            "tree": [
                {"path": "a.txt", "mode": "100644", "type": "blob", "sha": "b1", "size": 3},
                {"path": "lib", "mode": "040000", "type": "tree", "sha": "t2"},
                {"path": "vendor/dep", "mode": "160000", "type": "commit", "sha": "c9"},
            ],
        }))
        listing = client.list_tree_recursive("c0ffee")
        assert seen[0].url.path == "/repos/octo/site/git/trees/c0ffee"
        assert seen[0].url.params["recursive"] == "1"
        assert listing.truncated is True
        assert [e.type for e in listing.entries] == [EntryType.BLOB, EntryType.TREE, EntryType.COMMIT]
        assert listing.blobs() == {"a.txt": "b1"}

    def test_unknown_entry_type_raises(self):
        client, _ = make_client(lambda r: httpx.Response(200, json={
            "tree": [{"path": "x", "mode": "100644", "type": "mystery", "sha": "1"}],
        }))
        with pytest.raises(RemoteError, match="mystery"):
            client.list_tree_recursive("c0ffee")

    def test_create_blob_is_base64(self):
        client, seen = make_client(lambda r: httpx.Response(201, json={"sha": "b1"}))
        assert client.create_blob(b"\x00hello\xff") == "b1"
        req = seen[0]
        assert req.method == "POST"
        assert req.url.path == "/repos/octo/site/git/blobs"
        payload = body(req)
        assert payload["encoding"] == "base64"
        assert base64.b64decode(payload["content"]) == b"\x00hello\xff"

    def test_create_tree_without_base(self):
        client, seen = make_client(lambda r: httpx.Response(201, json={"sha": "t1"}))
        entries = [RemoteTreeEntry.blob("a.txt", "b1"),
                   RemoteTreeEntry("run.sh", "100755", EntryType.BLOB, "b2")]
        assert client.create_tree(entries) == "t1"
        payload = body(seen[0])
        assert "base_tree" not in payload
        assert payload["tree"] == [
            {"path": "a.txt", "mode": "100644", "type": "blob", "sha": "b1"},
            {"path": "run.sh", "mode": "100755", "type": "blob", "sha": "b2"},
        ]

    def test_create_tree_with_base(self):
        client, seen = make_client(lambda r: httpx.Response(201, json={"sha": "t1"}))
        client.create_tree([], base_tree="t0")
        assert body(seen[0])["base_tree"] == "t0"

    def test_create_commit(self):
        client, seen = make_client(lambda r: httpx.Response(201, json={"sha": "c2"}))
        assert client.create_commit("msg", "t1", ["c1"]) == "c2"
        assert body(seen[0]) == {"message": "msg", "tree": "t1", "parents": ["c1"]}

    def test_create_root_commit(self):
        client, seen = make_client(lambda r: httpx.Response(201, json={"sha": "c1"}))
        client.create_commit("first", "t1", [])
        assert body(seen[0])["parents"] == []

    def test_update_branch_ref(self):
        client, seen = make_client(lambda r: httpx.Response(200, json={}))
        client.update_branch_ref("main", "c2")
        req = seen[0]
        assert req.method == "PATCH"
        assert req.url.path == "/repos/octo/site/git/refs/heads/main"
        assert body(req) == {"sha": "c2", "force": False}

    def test_create_branch_ref(self):
        client, seen = make_client(lambda r: httpx.Response(201, json={}))
        client.create_branch_ref("main", "c1")
        req = seen[0]
        assert req.method == "POST"
        assert req.url.path == "/repos/octo/site/git/refs"
        assert body(req) == {"ref": "refs/heads/main", "sha": "c1"}


class TestErrors:
    def test_401_is_authentication_failed(self):
        client, _ = make_client(lambda r: httpx.Response(401, json={"message": "Bad credentials"}))
        with pytest.raises(AuthenticationFailed) as exc_info:
            client.validate_token()
        assert exc_info.value.message == "Bad credentials"
        assert exc_info.value.status == 401

    def test_repository_404(self):
        client, _ = make_client(lambda r: httpx.Response(404, json={"message": "Not Found"}))
        with pytest.raises(RepositoryNotFound):
            client.get_repository()

    def test_branch_404(self):
        client, _ = make_client(lambda r: httpx.Response(404, json={"message": "Not Found"}))
        with pytest.raises(BranchNotFound):
            client.resolve_branch_head("main")

    def test_branch_of_empty_repo_409(self):
        client, _ = make_client(lambda r: httpx.Response(409, json={"message": "Git Repository is empty."}))
        with pytest.raises(BranchNotFound):
            client.resolve_branch_head("main")

    def test_branch_lookup_auth_failure_is_not_branch_missing(self):
        client, _ = make_client(lambda r: httpx.Response(401, json={"message": "Bad credentials"}))
        with pytest.raises(AuthenticationFailed):
            client.resolve_branch_head("main")

    def test_other_404_is_plain_not_found(self):
        client, _ = make_client(lambda r: httpx.Response(404, json={"message": "Not Found"}))
        with pytest.raises(NotFound) as exc_info:
            client.list_tree_recursive("deadbeef")
        assert not isinstance(exc_info.value, (BranchNotFound, RepositoryNotFound))

    def test_provider_message_preserved(self):
        client, _ = make_client(lambda r: httpx.Response(
            422, json={"message": "Update is not a fast forward"}))
        with pytest.raises(RemoteError, match="Update is not a fast forward") as exc_info:
            client.update_branch_ref("main", "c2")
        assert exc_info.value.status == 422

    def test_non_json_error_body(self):
        client, _ = make_client(lambda r: httpx.Response(502, text="<html>bad gateway</html>"))
        with pytest.raises(RemoteError, match="GitHub API Error: 502"):
            client.create_blob(b"x")

    def test_unknown_entry_type_chains_cause(self):
        client, _ = make_client(lambda r: httpx.Response(200, json={
            "tree": [{"path": "x", "mode": "100644", "type": "mystery", "sha": "1"}],
        }))
        with pytest.raises(RemoteError) as exc_info:
            client.list_tree_recursive("c0ffee")
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_non_json_success_body(self):
        client, _ = make_client(lambda r: httpx.Response(201, text="<html>proxy</html>"))
        with pytest.raises(RemoteError, match="not JSON") as exc_info:
            client.create_blob(b"x")
        assert exc_info.value.status == 201

    @pytest.mark.parametrize("call", [
        lambda c: c.create_blob(b"x"),
        lambda c: c.create_tree([]),
        lambda c: c.create_commit("m", "t1", []),
        lambda c: c.validate_token(),
        lambda c: c.resolve_branch_head("main"),
    ])
    def test_success_body_missing_field(self, call):
        client, _ = make_client(lambda r: httpx.Response(201, json={"url": "https://x"}))
        with pytest.raises(RemoteError, match="Malformed response"):
            call(client)

    def test_success_body_not_an_object(self):
        client, _ = make_client(lambda r: httpx.Response(200, json=["a", "b"]))
        with pytest.raises(RemoteError):
            client.list_tree_recursive("c0ffee")
        with pytest.raises(RemoteError):
            client.get_repository()

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client, _ = make_client(handler)
        with pytest.raises(RemoteError, match="connection refused") as exc_info:
            client.create_blob(b"x")
        assert exc_info.value.status is None


class TestWithEngine:
    def test_html_blob_response_is_upload_failure(self):
        def handler(request):
            path = request.url.path
            if "/git/ref/heads/" in path:
                return httpx.Response(404, json={"message": "Not Found"})
            if path.endswith("/git/blobs"):
                return httpx.Response(201, text="<html>proxy</html>")
            return httpx.Response(500, json={"message": "unexpected"})

        client, seen = make_client(handler)
        engine = SyncEngine(client)
        with pytest.raises(UploadFailed) as exc_info:
            engine.run([LocalFile.from_bytes("a.txt", b"a")], SyncOptions())
        assert exc_info.value.path == "a.txt"
        assert isinstance(exc_info.value.cause, RemoteError)
        assert engine.state is SyncState.ERROR
        assert "Failed upload: a.txt" in engine.log.export_text()
        assert not any(r.url.path.endswith(("/git/trees", "/git/refs")) for r in seen)


class TestContextManager:
    def test_closes_http_client(self):
        client, _ = make_client(lambda r: httpx.Response(200, json={"login": "x"}))
        with client as c:
            assert c is client
        assert client._http.is_closed
