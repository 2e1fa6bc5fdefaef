# SPDX-License-Identifier: MIT
"""Pydantic models describing persisted scopes, records and configuration.

These definitions act as the contract between the allocator, the resolver,
the storage backends and the command-line interface. Persisted models keep
the camelCase field names of the on-disk layout through aliases so existing
trees remain readable.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from constants import DEFAULT_DATA_ROOT


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StrictModel(BaseModel):
    """Base model with strict settings to prevent shape drift."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=False)


class PersistedModel(BaseModel):
    """Base model for JSON objects stored in a content store.

    Unknown keys are ignored so older or hand-edited objects still load.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ScopeMeta(PersistedModel):
    """Deduplication entry for a domain, path or query scope."""

    id: Annotated[str, Field(min_length=1, description="Rendered scope id.")]
    key: str = Field(..., description="Key string the id was minted for.")
    created_at: datetime = Field(
        default_factory=_utcnow, description="When the id was minted."
    )


class DomainCounter(PersistedModel):
    """Per-domain counters for the next path and query ids."""

    next_path: int = Field(0, ge=0, alias="nextPath")
    next_query: int = Field(0, ge=0, alias="nextQuery")


class RootCounter(PersistedModel):
    """Store-wide counter for the next domain id."""

    next_domain: int = Field(0, ge=0, alias="nextDomain")


class Record(PersistedModel):
    """Terminal record stored for a fully resolved code."""

    original: str = Field(..., description="URL as submitted.")
    canonical: str = Field(..., description="Canonical form of the URL.")
    by: str = Field("unknown", description="Identity of the submitter.")
    issue: int | str | None = Field(
        None, description="External reference such as an issue number."
    )
    created_at: datetime = Field(default_factory=_utcnow)


class Allocation(StrictModel):
    """Result of allocating a canonical URL."""

    code: str
    domain_id: str
    path_id: str
    query_id: str


class DomainSnapshot(StrictModel):
    """Counter state of a single domain, returned for one-segment codes."""

    domain_id: str
    counter: DomainCounter | None = None


class QueryListing(StrictModel):
    """Query scopes known under a domain and path."""

    domain_id: str
    path_id: str
    entries: list[ScopeMeta] = Field(default_factory=list)


class LocalBackendConfig(StrictModel):
    """Persist the tree under a directory on the local filesystem."""

    kind: Literal["local"] = "local"
    root: Path = Field(DEFAULT_DATA_ROOT, description="Root directory of the tree.")


class GitHubBackendConfig(StrictModel):
    """Persist the tree on a dedicated branch of a GitHub repository."""

    kind: Literal["github"] = "github"
    owner: Annotated[str, Field(min_length=1)]
    repo: Annotated[str, Field(min_length=1)]
    token: SecretStr | None = Field(None, description="API token.", repr=False)
    main_branch: str = Field("main", description="Branch the live branch forks from.")
    live_branch: str = Field("live", description="Branch receiving data commits.")
    root: str = Field(
        DEFAULT_DATA_ROOT.as_posix(),
        description="Directory inside the repository holding the tree.",
    )
    api_url: str = Field("https://api.github.com", description="REST API base URL.")


BackendConfig = Annotated[
    Union[LocalBackendConfig, GitHubBackendConfig], Field(discriminator="kind")
]


class CanonicalConfig(StrictModel):
    """Rules applied when canonicalising submitted URLs."""

    accepted_protocols: list[str] = Field(
        default_factory=lambda: ["http", "https", "ftp"]
    )
    default_ports: dict[str, int] = Field(
        default_factory=lambda: {"http": 80, "https": 443, "ftp": 21}
    )
    reject_hosts: list[str] = Field(
        default_factory=lambda: ["localhost", "127.0.0.1", "::1"]
    )


class AppConfig(StrictModel):
    """Shape of the optional ``config/app.yaml`` file."""

    log_level: str | None = None
    alphabet: str | None = None
    hash_algo: str | None = None
    counter_attempts: int | None = Field(None, ge=1)
    request_timeout: float | None = Field(None, gt=0)
    backend: BackendConfig | None = None
    canonical: CanonicalConfig | None = None


__all__ = [
    "Allocation",
    "AppConfig",
    "BackendConfig",
    "CanonicalConfig",
    "DomainCounter",
    "DomainSnapshot",
    "GitHubBackendConfig",
    "LocalBackendConfig",
    "PersistedModel",
    "QueryListing",
    "Record",
    "RootCounter",
    "ScopeMeta",
    "StrictModel",
]
