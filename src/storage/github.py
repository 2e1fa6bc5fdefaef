# SPDX-License-Identifier: MIT
"""Content store backed by a branch of a GitHub repository.

Objects are files read and written through the REST contents API. Every
write is a commit on a dedicated long-lived branch; the blob ``sha`` returned
by the API is the version token used for compare-and-swap updates.
"""

from __future__ import annotations

import base64
from typing import Any
from urllib.parse import quote

import httpx
import logfire

from .base import ConflictError, ContentStore, StorageError, StoredObject, join_location

API_VERSION = "2022-11-28"


def github_headers(token: str | None) -> dict[str, str]:
    """Return request headers for the GitHub REST API."""
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": API_VERSION,
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


class GitHubContentStore(ContentStore):
    """Store objects as files on ``live_branch`` of ``owner/repo``.

    The live branch is created from ``main_branch`` before the first write
    when it does not exist yet.
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str | None = None,
        *,
        live_branch: str = "live",
        main_branch: str = "main",
        root: str = "",
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.live_branch = live_branch
        self.main_branch = main_branch
        self.root = join_location(root)
        self._owns_client = client is None
        self._client = client or httpx.Client(
            base_url=api_url, headers=github_headers(token), timeout=timeout
        )
        self._branch_ready = False

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    @property
    def _repo_url(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    def _contents_url(self, location: str) -> str:
        path = join_location(self.root, location)
        return f"{self._repo_url}/contents/{quote(path, safe='/')}"

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise StorageError(f"{method} {url} failed: {exc}") from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        request = response.request
        raise StorageError(
            f"{request.method} {request.url} returned {response.status_code}: "
            f"{response.text}"
        )

    def ensure_branch(self) -> None:
        """Create the live branch from the main branch when missing."""
        if self._branch_ready:
            return
        with logfire.span(
            "store.ensure_branch",
            attributes={"branch": self.live_branch, "base": self.main_branch},
        ):
            live = self._request("GET", f"{self._repo_url}/branches/{self.live_branch}")
            if live.status_code == 404:
                main = self._request(
                    "GET", f"{self._repo_url}/branches/{self.main_branch}"
                )
                self._raise_for_status(main)
                base_sha = main.json()["commit"]["sha"]
                created = self._request(
                    "POST",
                    f"{self._repo_url}/git/refs",
                    json={"ref": f"refs/heads/{self.live_branch}", "sha": base_sha},
                )
                # 422 means another writer created the ref first.
                if created.status_code != 422:
                    self._raise_for_status(created)
                logfire.info(
                    "Created live branch",
                    branch=self.live_branch,
                    base=self.main_branch,
                    sha=base_sha,
                )
            else:
                self._raise_for_status(live)
            self._branch_ready = True

    def read_object(self, location: str) -> StoredObject | None:
        url = self._contents_url(location)
        with logfire.span("store.read_object", attributes={"url": url}):
            response = self._request("GET", url, params={"ref": self.live_branch})
            if response.status_code == 404:
                logfire.debug("Object not found", url=url)
                return None
            self._raise_for_status(response)
            payload = response.json()
            if not isinstance(payload, dict) or payload.get("type") != "file":
                return None
            data = base64.b64decode(payload.get("content", ""))
            return StoredObject(data=data, version=payload["sha"])

    def write_object(
        self,
        location: str,
        data: bytes,
        message: str,
        version: str | None = None,
    ) -> str:
        self.ensure_branch()
        url = self._contents_url(location)
        body: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(data).decode("ascii"),
            "branch": self.live_branch,
        }
        if version:
            body["sha"] = version
        with logfire.span(
            "store.write_object", attributes={"url": url, "message": message}
        ):
            response = self._request("PUT", url, json=body)
            # 409 is a stale sha; 422 is a create over an existing file.
            if response.status_code in (409, 422):
                raise ConflictError(
                    f"Version conflict writing {location}: {response.text}"
                )
            self._raise_for_status(response)
            new_version = response.json()["content"]["sha"]
            logfire.debug("Committed object", url=url, sha=new_version)
            return new_version

    def list_children(self, prefix: str) -> list[str]:
        url = self._contents_url(prefix)
        response = self._request("GET", url, params={"ref": self.live_branch})
        if response.status_code == 404:
            return []
        self._raise_for_status(response)
        payload = response.json()
        if not isinstance(payload, list):
            return []
        return sorted(entry["name"] for entry in payload)


__all__ = ["GitHubContentStore", "github_headers"]
