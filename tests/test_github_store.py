# SPDX-License-Identifier: MIT
"""Tests for the GitHub content store against an in-memory API."""

import httpx
import pytest

from storage import GitHubContentStore, StorageError
from storage.github import github_headers


def _branch_requests(fake_github):
    return [
        r for r in fake_github.requests if "/branches/" in r.url.path
    ]


def test_first_write_creates_live_branch_from_main(fake_github, github_store) -> None:
    fake_github.branches["main"]["README.md"] = b"hello"
    github_store.write_object("counter.json", b"{}", "create counter")
    live = fake_github.branches["live"]
    assert live["README.md"] == b"hello"
    assert live["db/counter.json"] == b"{}"
    assert "db/counter.json" not in fake_github.branches["main"]


def test_existing_live_branch_is_reused(fake_github, github_store) -> None:
    fake_github.branches["live"] = {"db/counter.json": b"{}"}
    github_store.write_object("a.json", b"{}", "create")
    refs = [r for r in fake_github.requests if r.url.path.endswith("/git/refs")]
    assert refs == []
    assert fake_github.branches["live"]["db/counter.json"] == b"{}"


def test_branch_is_checked_once(fake_github, github_store) -> None:
    github_store.write_object("a.json", b"{}", "create a")
    github_store.write_object("b.json", b"{}", "create b")
    assert len(_branch_requests(fake_github)) == 2  # live (404) then main


def test_branch_created_concurrently_is_accepted(fake_github) -> None:
    """A 422 from ref creation means another writer made the branch."""

    def racing(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/git/refs"):
            fake_github.branches["live"] = {}
            return httpx.Response(422, json={"message": "Reference already exists"})
        return fake_github.handler(request)

    client = httpx.Client(
        base_url="https://api.github.test", transport=httpx.MockTransport(racing)
    )
    store = GitHubContentStore("acme", "links", root="db", client=client)
    store.write_object("a.json", b"{}", "create")
    assert fake_github.branches["live"]["db/a.json"] == b"{}"


def test_reads_use_live_branch(fake_github, github_store) -> None:
    fake_github.branches["main"]["db/a.json"] = b"main"
    assert github_store.read_object("a.json") is None
    fake_github.branches["live"] = {"db/a.json": b"live"}
    assert github_store.read_object("a.json").data == b"live"


def test_commit_messages_are_recorded(fake_github, github_store) -> None:
    version = github_store.write_object("a.json", b"1", "create a [#3]")
    github_store.write_object("a.json", b"2", "update a [#3]", version)
    assert fake_github.commits == ["create a [#3]", "update a [#3]"]


def test_version_is_blob_sha(fake_github, github_store) -> None:
    version = github_store.write_object("a.json", b"payload", "create")
    assert version == fake_github.sha(b"payload")


def test_server_error_raises_storage_error() -> None:
    client = httpx.Client(
        base_url="https://api.github.test",
        transport=httpx.MockTransport(
            lambda request: httpx.Response(500, json={"message": "boom"})
        ),
    )
    store = GitHubContentStore("acme", "links", client=client)
    with pytest.raises(StorageError, match="500"):
        store.read_object("a.json")


def test_transport_error_raises_storage_error() -> None:
    def fail(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    client = httpx.Client(
        base_url="https://api.github.test", transport=httpx.MockTransport(fail)
    )
    store = GitHubContentStore("acme", "links", client=client)
    with pytest.raises(StorageError, match="unreachable"):
        store.list_children("db")


def test_external_client_is_not_closed(github_client) -> None:
    store = GitHubContentStore("acme", "links", client=github_client)
    store.close()
    assert not github_client.is_closed


def test_headers_include_token_when_given() -> None:
    assert github_headers("secret")["Authorization"] == "Bearer secret"
    assert "Authorization" not in github_headers(None)
