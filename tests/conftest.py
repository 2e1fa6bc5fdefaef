# SPDX-License-Identifier: MIT
"""Test configuration for shortpath.

Keeps telemetry local, isolates tests from the caller's environment and
provides an in-memory stand-in for the GitHub REST API.
"""

from __future__ import annotations

import base64
import hashlib
import json
import os
from typing import Any

import httpx
import logfire
import pytest

from runtime.environment import RuntimeEnv
from storage import GitHubContentStore, LocalContentStore

logfire.configure(send_to_logfire=False, console=False)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Run each test from an empty directory without inherited settings."""

    for name in list(os.environ):
        if name.startswith(("SHORTPATH_", "GITHUB_", "INPUT_")):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _reset_runtime_env():
    """Ensure no runtime environment leaks between tests."""

    RuntimeEnv.reset()
    yield
    RuntimeEnv.reset()


class FakeGitHub:
    """Minimal in-memory model of the GitHub branches and contents API."""

    def __init__(self, owner: str = "acme", repo: str = "links") -> None:
        self.prefix = f"/repos/{owner}/{repo}"
        self.branches: dict[str, dict[str, bytes]] = {"main": {}}
        self.comments: list[tuple[int, str]] = []
        self.commits: list[str] = []
        self.requests: list[httpx.Request] = []

    @staticmethod
    def sha(data: bytes) -> str:
        return hashlib.sha1(b"blob %d\0" % len(data) + data).hexdigest()

    def head(self, branch: str) -> str:
        files = self.branches[branch]
        digest = hashlib.sha1()
        for path in sorted(files):
            digest.update(path.encode() + files[path])
        return digest.hexdigest()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if not path.startswith(self.prefix):
            return httpx.Response(404, json={"message": "Not Found"})
        route = path[len(self.prefix) :]
        body: dict[str, Any] = json.loads(request.content) if request.content else {}

        if route.startswith("/branches/") and request.method == "GET":
            branch = route[len("/branches/") :]
            if branch not in self.branches:
                return httpx.Response(404, json={"message": "Branch not found"})
            return httpx.Response(
                200, json={"name": branch, "commit": {"sha": self.head(branch)}}
            )

        if route == "/git/refs" and request.method == "POST":
            name = body["ref"].removeprefix("refs/heads/")
            if name in self.branches:
                return httpx.Response(422, json={"message": "Reference already exists"})
            self.branches[name] = dict(self.branches["main"])
            return httpx.Response(201, json={"ref": body["ref"]})

        if route.startswith("/contents/"):
            file_path = route[len("/contents/") :]
            if request.method == "GET":
                return self._get_contents(file_path, request.url.params.get("ref"))
            if request.method == "PUT":
                return self._put_contents(file_path, body)

        if route.startswith("/issues/") and request.method == "POST":
            number = int(route.split("/")[2])
            self.comments.append((number, body["body"]))
            return httpx.Response(201, json={"id": len(self.comments)})

        return httpx.Response(404, json={"message": "Not Found"})

    def _get_contents(self, file_path: str, ref: str | None) -> httpx.Response:
        files = self.branches.get(ref or "main")
        if files is None:
            return httpx.Response(404, json={"message": "No commit found for the ref"})
        if file_path in files:
            data = files[file_path]
            return httpx.Response(
                200,
                json={
                    "type": "file",
                    "name": file_path.rsplit("/", 1)[-1],
                    "sha": self.sha(data),
                    "encoding": "base64",
                    "content": base64.encodebytes(data).decode("ascii"),
                },
            )
        prefix = f"{file_path}/"
        names = sorted(
            {p[len(prefix) :].split("/", 1)[0] for p in files if p.startswith(prefix)}
        )
        if not names:
            return httpx.Response(404, json={"message": "Not Found"})
        return httpx.Response(200, json=[{"name": name} for name in names])

    def _put_contents(self, file_path: str, body: dict[str, Any]) -> httpx.Response:
        files = self.branches.get(body.get("branch", "main"))
        if files is None:
            return httpx.Response(404, json={"message": "Branch not found"})
        sha = body.get("sha")
        if file_path in files:
            if sha is None:
                return httpx.Response(422, json={"message": "sha wasn't supplied"})
            if sha != self.sha(files[file_path]):
                return httpx.Response(409, json={"message": "does not match"})
        elif sha is not None:
            return httpx.Response(409, json={"message": "does not match"})
        data = base64.b64decode(body["content"])
        files[file_path] = data
        self.commits.append(body["message"])
        status = 200 if sha else 201
        return httpx.Response(status, json={"content": {"sha": self.sha(data)}})


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def github_client(fake_github: FakeGitHub):
    client = httpx.Client(
        base_url="https://api.github.test",
        transport=httpx.MockTransport(fake_github.handler),
    )
    yield client
    client.close()


@pytest.fixture
def github_store(github_client) -> GitHubContentStore:
    return GitHubContentStore("acme", "links", root="db", client=github_client)


@pytest.fixture
def local_store(tmp_path) -> LocalContentStore:
    return LocalContentStore(tmp_path / "db")


@pytest.fixture(params=["local", "github"])
def store(request):
    """Each content store backend in turn."""

    return request.getfixturevalue(f"{request.param}_store")
