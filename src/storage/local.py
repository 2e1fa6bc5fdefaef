# SPDX-License-Identifier: MIT
"""Content store backed by a directory tree on the local filesystem."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
from threading import Lock, get_ident

import logfire

from .base import ConflictError, ContentStore, StorageError, StoredObject, join_location


def _version_of(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class LocalContentStore(ContentStore):
    """Store objects as files below ``root``.

    Version tokens are SHA-256 digests of the file contents, so a
    compare-and-swap write succeeds only when the file still holds the bytes
    that were read.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)
        self._lock = Lock()

    def _path(self, location: str) -> Path:
        relative = join_location(location)
        if any(segment == ".." for segment in relative.split("/")):
            raise StorageError(f"Location escapes the store root: {location}")
        return self.root / relative if relative else self.root

    def read_object(self, location: str) -> StoredObject | None:
        path = self._path(location)
        with logfire.span("store.read_object", attributes={"path": str(path)}):
            try:
                data = path.read_bytes()
            except FileNotFoundError:
                logfire.debug("Object not found", path=str(path))
                return None
            except OSError as exc:
                raise StorageError(f"Cannot read {path}: {exc}") from exc
            return StoredObject(data=data, version=_version_of(data))

    def write_object(
        self,
        location: str,
        data: bytes,
        message: str,
        version: str | None = None,
    ) -> str:
        path = self._path(location)
        with logfire.span(
            "store.write_object", attributes={"path": str(path), "message": message}
        ):
            if version is None:
                self._create_exclusive(path, data)
            else:
                with self._lock:
                    self._check_version(path, version)
                    self._atomic_write(path, data)
            logfire.debug("Wrote object", path=str(path), bytes=len(data))
            return _version_of(data)

    def list_children(self, prefix: str) -> list[str]:
        path = self._path(prefix)
        try:
            return sorted(entry.name for entry in path.iterdir())
        except (FileNotFoundError, NotADirectoryError):
            return []
        except OSError as exc:
            raise StorageError(f"Cannot list {path}: {exc}") from exc

    def _check_version(self, path: Path, version: str | None) -> None:
        try:
            current = _version_of(path.read_bytes())
        except FileNotFoundError:
            current = None
        except OSError as exc:
            raise StorageError(f"Cannot read {path}: {exc}") from exc
        if current != version:
            raise ConflictError(
                f"Version mismatch for {path}: expected {version}, found {current}"
            )

    @staticmethod
    def _write_temporary(path: Path, data: bytes) -> Path:
        """Write ``data`` to a sibling file private to this thread and process."""
        tmp_path = path.with_name(f"{path.name}.{os.getpid()}.{get_ident()}.tmp")
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        return tmp_path

    def _create_exclusive(self, path: Path, data: bytes) -> None:
        """Publish ``data`` at ``path`` only if nothing exists there yet.

        Hard-linking the finished temporary file fails when ``path`` exists,
        so two processes creating the same object cannot both succeed.
        """
        tmp_path: Path | None = None
        try:
            tmp_path = self._write_temporary(path, data)
            os.link(tmp_path, path)
        except FileExistsError:
            raise ConflictError(
                f"Version mismatch for {path}: expected None, found existing object"
            ) from None
        except OSError as exc:
            raise StorageError(f"Cannot write {path}: {exc}") from exc
        finally:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()

    def _atomic_write(self, path: Path, data: bytes) -> None:
        """Write ``data`` to a temporary sibling then replace ``path``."""
        tmp_path: Path | None = None
        try:
            tmp_path = self._write_temporary(path, data)
            os.replace(tmp_path, path)
        except OSError as exc:
            raise StorageError(f"Cannot write {path}: {exc}") from exc
        finally:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()


__all__ = ["LocalContentStore"]
