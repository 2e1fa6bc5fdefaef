# SPDX-License-Identifier: MIT
"""Content store interface shared by the local and remote backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, TypeVar

import logfire
from pydantic import BaseModel, ValidationError

M = TypeVar("M", bound=BaseModel)
R = TypeVar("R")


class StorageError(RuntimeError):
    """Raised when a backend fails to read or write an object."""


class ConflictError(StorageError):
    """Raised when a compare-and-swap write finds a different version."""


@dataclass(frozen=True)
class StoredObject:
    """Object bytes together with the version token they were read at."""

    data: bytes
    version: str


def join_location(*parts: str) -> str:
    """Return a POSIX location built from ``parts`` without empty segments."""
    segments: list[str] = []
    for part in parts:
        segments.extend(segment for segment in str(part).split("/") if segment)
    return "/".join(segments)


def dump_json(obj: BaseModel) -> bytes:
    """Serialise ``obj`` as the pretty JSON stored on every backend."""
    return obj.model_dump_json(indent=2, by_alias=True).encode("utf-8")


class ContentStore(ABC):
    """Key/value persistence over POSIX-style locations.

    Implementations provide versioned reads, compare-and-swap writes and
    directory listing. The JSON helpers on this class are built on those
    three primitives only.
    """

    @abstractmethod
    def read_object(self, location: str) -> StoredObject | None:
        """Return the object at ``location`` or ``None`` when absent."""

    @abstractmethod
    def write_object(
        self,
        location: str,
        data: bytes,
        message: str,
        version: str | None = None,
    ) -> str:
        """Write ``data`` at ``location`` and return the new version token.

        ``version=None`` creates the object and fails when it already exists.
        Otherwise ``version`` must match the stored version.

        Raises:
            ConflictError: If the stored version differs from ``version``.
            StorageError: If the backend fails.
        """

    @abstractmethod
    def list_children(self, prefix: str) -> list[str]:
        """Return sorted child names under ``prefix`` (empty when missing)."""

    def close(self) -> None:
        """Release backend resources."""

    def __enter__(self) -> "ContentStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def read_json(self, location: str, model: type[M]) -> M | None:
        """Return the object at ``location`` validated as ``model``."""
        stored = self.read_object(location)
        if stored is None:
            return None
        return self._parse(location, stored, model)

    def create_json(self, location: str, obj: BaseModel, message: str) -> bool:
        """Create ``obj`` at ``location``.

        Returns:
            ``False`` when an object already exists there, ``True`` otherwise.
        """
        try:
            self.write_object(location, dump_json(obj), message)
        except ConflictError:
            logfire.debug("Object already exists", location=location)
            return False
        return True

    def put_json(self, location: str, obj: BaseModel, message: str) -> str:
        """Create or overwrite ``obj`` at ``location``.

        The current version is read first so remote backends never discard an
        unseen concurrent edit silently.
        """
        current = self.read_object(location)
        version = current.version if current else None
        return self.write_object(location, dump_json(obj), message, version)

    def update_json(
        self,
        location: str,
        model: type[M],
        mutate: Callable[[M], R],
        message: str,
        default: Callable[[], M],
        attempts: int = 3,
    ) -> R:
        """Apply ``mutate`` to the object at ``location`` atomically.

        The object is read (or ``default()`` is used when absent), mutated in
        place and written back against the version that was read. Conflicts
        restart the cycle from a fresh read.

        Args:
            location: Object location.
            model: Model the stored JSON is validated against.
            mutate: Callback changing the object and returning a result.
            message: Commit message for the write.
            default: Factory for the initial object.
            attempts: Maximum number of read-mutate-write cycles.

        Returns:
            The value returned by ``mutate`` for the write that succeeded.

        Raises:
            ConflictError: When every attempt hit a conflict.
        """
        for attempt in range(1, attempts + 1):
            stored = self.read_object(location)
            if stored is None:
                obj, version = default(), None
            else:
                obj, version = self._parse(location, stored, model), stored.version
            result = mutate(obj)
            try:
                self.write_object(location, dump_json(obj), message, version)
            except ConflictError:
                logfire.warning(
                    "Counter update conflicted",
                    location=location,
                    attempt=attempt,
                    attempts=attempts,
                )
                if attempt == attempts:
                    raise
                continue
            return result
        raise ConflictError(f"Could not update {location}")

    @staticmethod
    def _parse(location: str, stored: StoredObject, model: type[M]) -> M:
        try:
            return model.model_validate_json(stored.data)
        except ValidationError as exc:
            raise StorageError(f"Invalid object at {location}: {exc}") from exc


__all__ = [
    "ConflictError",
    "ContentStore",
    "StorageError",
    "StoredObject",
    "dump_json",
    "join_location",
]
