# SPDX-License-Identifier: MIT
"""Utilities for loading configuration and event payload files.

The helpers in this module centralise file-system access for the optional
YAML application configuration and the JSON payload describing a workflow
event. Errors are reported through an :class:`ErrorHandler` and re-raised as
concise exceptions.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, TypeVar

import logfire
import yaml
from pydantic import TypeAdapter, ValidationError
from pydantic_core import from_json

from constants import DEFAULT_CONFIG_DIR, DEFAULT_CONFIG_FILE
from models import AppConfig
from utils import ErrorHandler, LoggingErrorHandler

T = TypeVar("T")


def _read_file(path: Path, error_handler: ErrorHandler | None = None) -> str:
    """Return the contents of ``path``.

    Raises:
        FileNotFoundError: If the file does not exist.
        RuntimeError: If the file cannot be read.
    """
    handler = error_handler or LoggingErrorHandler()
    with logfire.span("fs.read_text", attributes={"path": str(path)}):
        try:
            with path.open("r", encoding="utf-8") as file:
                text = file.read()
                logfire.debug("Read text file", path=str(path), bytes=len(text))
                return text
        except FileNotFoundError:
            raise
        except OSError as exc:
            handler.handle(f"Error reading file {path}", exc, path=str(path))
            raise RuntimeError(
                f"An error occurred while reading the file: {exc}"
            ) from exc


def _read_yaml_file(
    path: Path,
    schema: type[T],
    error_handler: ErrorHandler | None = None,
) -> T:
    """Return YAML data loaded from ``path`` validated against ``schema``.

    An empty document validates as an empty mapping.
    """
    handler = error_handler or LoggingErrorHandler()
    with logfire.span("fs.read_yaml", attributes={"path": str(path)}):
        try:
            adapter = TypeAdapter(schema)
            return adapter.validate_python(
                yaml.safe_load(_read_file(path, handler)) or {}
            )
        except FileNotFoundError:
            raise
        except (RuntimeError, ValidationError, yaml.YAMLError, ValueError) as exc:
            handler.handle(
                f"Error reading YAML file {path}", exc, path=str(path)
            )
            raise RuntimeError(
                f"An error occurred while reading the YAML file: {exc}"
            ) from exc


def load_app_config(
    base_dir: Path | str = DEFAULT_CONFIG_DIR,
    filename: Path | str = DEFAULT_CONFIG_FILE,
    *,
    required: bool = False,
) -> AppConfig:
    """Return application configuration from ``base_dir``.

    A missing file yields an empty :class:`AppConfig` unless ``required`` is
    set, in which case :class:`FileNotFoundError` propagates.
    """
    path = Path(base_dir) / Path(filename)
    try:
        return _read_yaml_file(path, AppConfig)
    except FileNotFoundError:
        if required:
            raise
        logfire.debug("No configuration file, using defaults", path=str(path))
        return AppConfig()


def load_event_payload(
    path: Path | str, error_handler: ErrorHandler | None = None
) -> dict[str, Any]:
    """Return the JSON object describing a workflow event.

    Raises:
        FileNotFoundError: If the payload file does not exist.
        RuntimeError: If the payload is not a JSON object.
    """
    handler = error_handler or LoggingErrorHandler()
    event_path = Path(path)
    with logfire.span("fs.read_event", attributes={"path": str(event_path)}):
        try:
            payload = from_json(_read_file(event_path, handler))
        except ValueError as exc:
            handler.handle(f"Invalid event payload in {event_path}", exc)
            raise RuntimeError(f"Invalid event payload: {exc}") from exc
        if not isinstance(payload, dict):
            raise RuntimeError("Event payload must be a JSON object")
        return payload


__all__ = ["load_app_config", "load_event_payload"]
