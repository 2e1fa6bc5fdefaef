# SPDX-License-Identifier: MIT
"""Construct content stores from explicit backend configuration."""

from __future__ import annotations

import logfire

from models import BackendConfig, GitHubBackendConfig, LocalBackendConfig

from .base import ContentStore
from .github import GitHubContentStore
from .local import LocalContentStore


def build_store(config: BackendConfig, *, timeout: float = 30.0) -> ContentStore:
    """Return the content store described by ``config``.

    Args:
        config: Tagged backend configuration.
        timeout: HTTP timeout in seconds for remote backends.

    Raises:
        ValueError: If the backend kind is unknown.
    """
    if isinstance(config, LocalBackendConfig):
        logfire.debug("Using local content store", root=str(config.root))
        return LocalContentStore(config.root)
    if isinstance(config, GitHubBackendConfig):
        logfire.debug(
            "Using GitHub content store",
            repo=f"{config.owner}/{config.repo}",
            branch=config.live_branch,
        )
        return GitHubContentStore(
            config.owner,
            config.repo,
            config.token.get_secret_value() if config.token else None,
            live_branch=config.live_branch,
            main_branch=config.main_branch,
            root=config.root,
            api_url=config.api_url,
            timeout=timeout,
        )
    raise ValueError(f"Unsupported backend: {config!r}")


__all__ = ["build_store"]
