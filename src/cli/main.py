# SPDX-License-Identifier: MIT
"""Command-line interface for allocating and resolving URL codes."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any, Callable, Sequence

import logfire
from dotenv import load_dotenv
from pydantic import BaseModel, SecretStr
from pydantic_core import to_json

from canonical import canonize_url
from integration.issue_event import run_action
from models import GitHubBackendConfig, LocalBackendConfig
from observability.monitoring import init_logfire
from runtime.environment import RuntimeEnv
from runtime.settings import Settings, load_settings
from utils import LoggingErrorHandler

LOG_LEVELS = ["fatal", "error", "warn", "notice", "info", "debug", "trace"]

# Module logger for CLI diagnostics mirroring
logger = logging.getLogger(__name__)


def _print_version() -> None:
    """Print the installed package version."""
    try:
        pkg_version = version("shortpath")
    except PackageNotFoundError:  # pragma: no cover - fallback for source checkouts
        pkg_version = "unknown"
    print(f"shortpath {pkg_version}")


def _configure_logging(args: argparse.Namespace, settings: Settings) -> None:
    """Configure Logfire based on verbosity flags."""
    index = LOG_LEVELS.index(settings.log_level) + args.verbose - args.quiet
    index = max(0, min(len(LOG_LEVELS) - 1, index))
    init_logfire(settings.logfire_token, LOG_LEVELS[index])  # type: ignore[arg-type]


def _emit(value: Any) -> None:
    """Print ``value`` as indented JSON on stdout."""
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json", by_alias=True)
    elif isinstance(value, list):
        value = [
            item.model_dump(mode="json", by_alias=True)
            if isinstance(item, BaseModel)
            else item
            for item in value
        ]
    print(to_json(value, indent=2).decode("utf-8"))


def _cmd_add(args: argparse.Namespace, env: RuntimeEnv) -> int:
    """Canonicalise ``args.url`` and allocate its code."""
    canonical_url = canonize_url(args.url, env.settings.canonical)
    allocation = env.allocator().allocate(
        canonical_url,
        submitter=args.user,
        external_ref=args.issue,
        original_url=args.url,
    )
    _emit(allocation)
    return 0


def _cmd_resolve(args: argparse.Namespace, env: RuntimeEnv) -> int:
    """Print what the tree holds for ``args.code``."""
    result = env.resolver().resolve(args.code)
    _emit(result)
    return 0 if result is not None else 1


def _cmd_list(args: argparse.Namespace, env: RuntimeEnv) -> int:
    """Print every known domain scope."""
    _emit(env.resolver().list_domains())
    return 0


def _cmd_issue_event(args: argparse.Namespace, env: RuntimeEnv) -> int:
    """Handle the GitHub Actions issue event of the current workflow run."""
    return run_action(env.settings)


def _add_common_args(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    """Add CLI options shared across subcommands.

    Parameters
    ----------
    parser:
        Parser to augment with common arguments.

    Returns:
    -------
    argparse.ArgumentParser
        The parser instance with added arguments.
    """
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file (default config/app.yaml if present)",
    )
    parser.add_argument(
        "--backend",
        choices=["local", "github"],
        default=None,
        help=(
            "Content store backend. Can also be set via the "
            "SHORTPATH_BACKEND__KIND env variable."
        ),
    )
    parser.add_argument(
        "--root",
        type=str,
        default=None,
        help="Root directory of the tree (a repository path for github)",
    )
    parser.add_argument(
        "--repo",
        type=str,
        default=None,
        help="Repository as OWNER/NAME when using the github backend",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (repeatable)",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Decrease logging verbosity (repeatable)",
    )
    return parser


def _add_add_subparser(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
    common: argparse.ArgumentParser,
) -> argparse.ArgumentParser:
    """Create the ``add`` subcommand parser."""
    parser = subparsers.add_parser(
        "add",
        parents=[common],
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        help="Canonicalise a URL and allocate its code",
    )
    parser.add_argument("url", help="URL to shorten")
    parser.add_argument("--user", default="local", help="Submitter recorded")
    parser.add_argument(
        "--issue", type=int, default=None, help="External reference recorded"
    )
    parser.set_defaults(func=_cmd_add)
    return parser


def _add_resolve_subparser(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
    common: argparse.ArgumentParser,
) -> argparse.ArgumentParser:
    """Create the ``resolve`` subcommand parser."""
    parser = subparsers.add_parser(
        "resolve",
        parents=[common],
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        help="Show the record or scope listing for a code",
        description=(
            "Resolve DOMAIN, DOMAIN/PATH or DOMAIN/PATH/QUERY. One segment shows "
            "the domain counters, two list the query scopes and three print the "
            "stored record."
        ),
    )
    parser.add_argument("code", help="Full or partial code")
    parser.set_defaults(func=_cmd_resolve)
    return parser


def _add_list_subparser(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
    common: argparse.ArgumentParser,
) -> argparse.ArgumentParser:
    """Create the ``list`` subcommand parser."""
    parser = subparsers.add_parser(
        "list",
        parents=[common],
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        help="List all known domain scopes",
    )
    parser.set_defaults(func=_cmd_list)
    return parser


def _add_issue_event_subparser(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
    common: argparse.ArgumentParser,
) -> argparse.ArgumentParser:
    """Create the ``issue-event`` subcommand parser."""
    parser = subparsers.add_parser(
        "issue-event",
        parents=[common],
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        help="Shorten the URL of the triggering GitHub issue",
        description=(
            "Read GITHUB_EVENT_PATH, allocate the first URL of the issue body "
            "against the GitHub backend and comment the code on the issue. "
            "Runs by default when GITHUB_ACTIONS=true and no command is given."
        ),
    )
    parser.set_defaults(func=_cmd_issue_event)
    return parser


def _build_parser() -> argparse.ArgumentParser:
    """Return an argument parser configured with subcommands."""
    parser = argparse.ArgumentParser(
        description=(
            "Assign short hierarchical codes to URLs. Codes have the form "
            "DOMAIN/PATH/QUERY and are stored in a local directory tree or on a "
            "GitHub branch."
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print the shortpath version and exit.",
    )
    common = _add_common_args(
        argparse.ArgumentParser(
            add_help=False, formatter_class=argparse.ArgumentDefaultsHelpFormatter
        )
    )
    subparsers = parser.add_subparsers(dest="command")
    _add_add_subparser(subparsers, common)
    _add_resolve_subparser(subparsers, common)
    _add_list_subparser(subparsers, common)
    _add_issue_event_subparser(subparsers, common)
    return parser


def _apply_args_to_settings(args: argparse.Namespace, settings: Settings) -> None:
    """Override the backend settings from CLI arguments.

    Raises:
        RuntimeError: If the github backend is selected without a repository.
    """
    backend = settings.backend
    kind = getattr(args, "backend", None) or backend.kind
    root = getattr(args, "root", None)
    repo = getattr(args, "repo", None)
    if kind == "local":
        if not isinstance(backend, LocalBackendConfig):
            backend = LocalBackendConfig()
        if root:
            backend = backend.model_copy(update={"root": Path(root)})
    else:
        if repo:
            owner, _, name = repo.partition("/")
            if not owner or not name:
                raise RuntimeError(f"Invalid repository '{repo}', expected OWNER/NAME")
            update: dict[str, Any] = {"owner": owner, "repo": name}
            if isinstance(backend, GitHubBackendConfig):
                backend = backend.model_copy(update=update)
            else:
                backend = GitHubBackendConfig(**update)
        elif not isinstance(backend, GitHubBackendConfig):
            raise RuntimeError(
                "The github backend needs --repo OWNER/NAME or a configured "
                "backend.owner and backend.repo"
            )
        if root:
            backend = backend.model_copy(update={"root": root})
        if backend.token is None and os.getenv("GITHUB_TOKEN"):
            backend = backend.model_copy(
                update={"token": SecretStr(os.environ["GITHUB_TOKEN"])}
            )
    settings.backend = backend


def _run(args: argparse.Namespace, settings: Settings) -> int:
    """Initialise runtime and dispatch to the chosen subcommand."""
    func: Callable[[argparse.Namespace, RuntimeEnv], int] = args.func
    env = RuntimeEnv.initialize(settings)
    _configure_logging(args, settings)
    try:
        return func(args, env)
    finally:
        logfire.force_flush()
        RuntimeEnv.reset()


def main(argv: Sequence[str] | None = None) -> None:
    """Parse arguments and dispatch to the requested subcommand."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.version:
        _print_version()
        return
    if args.command is None:
        if os.getenv("GITHUB_ACTIONS") != "true":
            parser.print_help()
            raise SystemExit(1)
        args = parser.parse_args(["issue-event"])
    # Tokens such as GITHUB_TOKEN may live in a local .env file.
    load_dotenv(Path.cwd() / ".env")
    try:
        settings = load_settings(args.config)
        _apply_args_to_settings(args, settings)
        code = _run(args, settings)
    except (ValueError, RuntimeError) as exc:
        LoggingErrorHandler().handle(
            f"{args.command} failed", exc, command=args.command
        )
        print(f"Error: {exc}", file=sys.stderr)
        logger.error("%s failed: %s", args.command, exc)
        raise SystemExit(1) from exc
    if code:
        raise SystemExit(code)


if __name__ == "__main__":
    # Allow module to be executed as a standalone script
    main()
