# SPDX-License-Identifier: MIT
"""Shorten URLs submitted through GitHub issues.

When running inside GitHub Actions the entry point reads the triggering
issue event, extracts the first URL from the issue body, allocates a code
against the GitHub content store and answers with a comment on the issue.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Any, Mapping

import httpx
import logfire
from pydantic import SecretStr

from canonical import canonize_url
from engine import HierarchicalAllocator
from io_utils import load_event_payload
from models import Allocation, CanonicalConfig, GitHubBackendConfig
from runtime.settings import Settings
from storage import StorageError, build_store
from storage.github import github_headers
from utils import LoggingErrorHandler

URL_PATTERN = re.compile(r"https?://[^\s)]+", re.IGNORECASE)


@dataclass(frozen=True)
class ActionContext:
    """Subset of the GitHub Actions environment used by the handler."""

    event_path: str
    repository: str
    actor: str
    token: str | None
    api_url: str = "https://api.github.com"

    @property
    def owner(self) -> str:
        return self.repository.split("/", 1)[0]

    @property
    def repo(self) -> str:
        return self.repository.split("/", 1)[1]

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> "ActionContext":
        """Build the context from ``GITHUB_*`` variables.

        Raises:
            RuntimeError: If a required variable is missing.
        """
        missing = [
            name
            for name in ("GITHUB_EVENT_PATH", "GITHUB_REPOSITORY")
            if not env.get(name)
        ]
        if missing:
            raise RuntimeError("Missing env vars: " + ", ".join(missing))
        repository = env["GITHUB_REPOSITORY"]
        if "/" not in repository:
            raise RuntimeError(f"Invalid GITHUB_REPOSITORY: {repository}")
        return cls(
            event_path=env["GITHUB_EVENT_PATH"],
            repository=repository,
            actor=env.get("GITHUB_ACTOR", "unknown"),
            token=env.get("INPUT_TOKEN") or env.get("GITHUB_TOKEN"),
            api_url=env.get("GITHUB_API_URL", "https://api.github.com"),
        )


def extract_url(text: str) -> str | None:
    """Return the first http(s) URL found in ``text``."""
    match = URL_PATTERN.search(text or "")
    return match.group(0) if match else None


def format_comment(code: str, actor: str) -> str:
    return f"🔗 Shortened: code `{code}`, created by @{actor}"


class IssueCommenter:
    """Post comments on issues of one repository."""

    def __init__(self, client: httpx.Client, owner: str, repo: str) -> None:
        self._client = client
        self.owner = owner
        self.repo = repo

    def post(self, issue_number: int, body: str) -> None:
        """Create a comment on ``issue_number``.

        Raises:
            StorageError: If the API rejects the request.
        """
        url = f"/repos/{self.owner}/{self.repo}/issues/{issue_number}/comments"
        try:
            response = self._client.post(url, json={"body": body})
        except httpx.HTTPError as exc:
            raise StorageError(f"POST {url} failed: {exc}") from exc
        if not response.is_success:
            raise StorageError(
                f"POST {url} returned {response.status_code}: {response.text}"
            )
        logfire.info("Commented on issue", issue=issue_number)


def handle_issue_event(
    payload: Mapping[str, Any],
    allocator: HierarchicalAllocator,
    commenter: IssueCommenter,
    actor: str,
    canonical: CanonicalConfig | None = None,
) -> Allocation | None:
    """Shorten the URL in the issue of ``payload`` and comment the code.

    Returns:
        The allocation, or ``None`` when the issue body holds no URL.
    """
    issue = payload.get("issue") or {}
    issue_number = issue.get("number")
    raw_url = extract_url(issue.get("body") or "")
    if raw_url is None:
        logfire.info("No URL found in issue", issue=issue_number)
        return None
    if issue_number is None:
        raise RuntimeError("Event payload has no issue number")

    canonical_url = canonize_url(raw_url, canonical)
    allocation = allocator.allocate(
        canonical_url,
        submitter=actor,
        external_ref=issue_number,
        original_url=raw_url,
    )
    commenter.post(issue_number, format_comment(allocation.code, actor))
    logfire.info("Record created", code=allocation.code, issue=issue_number)
    return allocation


def _store_config(settings: Settings, context: ActionContext) -> GitHubBackendConfig:
    """Return the GitHub backend to write to, defaulting to the event repo."""
    if isinstance(settings.backend, GitHubBackendConfig):
        return settings.backend
    return GitHubBackendConfig(
        owner=context.owner,
        repo=context.repo,
        token=SecretStr(context.token) if context.token else None,
        api_url=context.api_url,
    )


def run_action(settings: Settings, env: Mapping[str, str] | None = None) -> int:
    """Handle the current GitHub Actions issue event.

    Failures are reported as an ``::error::`` workflow command so the run is
    marked as failed.

    Returns:
        Process exit status.
    """
    environ = os.environ if env is None else env
    try:
        context = ActionContext.from_env(environ)
        payload = load_event_payload(context.event_path)
        backend = _store_config(settings, context)
        with (
            build_store(backend, timeout=settings.request_timeout) as store,
            httpx.Client(
                base_url=context.api_url,
                headers=github_headers(context.token),
                timeout=settings.request_timeout,
            ) as client,
        ):
            allocator = HierarchicalAllocator(
                store,
                alphabet=settings.alphabet,
                hash_algo=settings.hash_algo,
                counter_attempts=settings.counter_attempts,
            )
            handle_issue_event(
                payload,
                allocator,
                IssueCommenter(client, context.owner, context.repo),
                context.actor,
                settings.canonical,
            )
    except Exception as exc:  # pylint: disable=broad-except
        LoggingErrorHandler().handle(
            "Issue event failed", exc, repository=environ.get("GITHUB_REPOSITORY")
        )
        print(f"::error::{exc}")
        return 1
    return 0


__all__ = [
    "ActionContext",
    "IssueCommenter",
    "extract_url",
    "format_comment",
    "handle_issue_event",
    "run_action",
]
