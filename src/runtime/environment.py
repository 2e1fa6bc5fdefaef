# SPDX-License-Identifier: MIT
"""Runtime environment singleton for shared settings and the content store."""

from __future__ import annotations

from threading import Lock
from typing import TYPE_CHECKING

import logfire

from engine import HierarchicalAllocator, Resolver
from storage import ContentStore, build_store

if TYPE_CHECKING:  # pragma: no cover - for type checkers only
    from runtime.settings import Settings


class RuntimeEnv:
    """Thread-safe singleton storing application settings and shared state.

    The content store is built lazily from ``settings.backend`` on first use
    and reused for every allocation in the process.
    """

    _instance: "RuntimeEnv" | None = None
    _lock = Lock()

    def __init__(self, settings: "Settings") -> None:
        """Initialise the runtime environment."""
        self.settings = settings
        self._state_lock = Lock()
        self._store: ContentStore | None = None
        logfire.debug("RuntimeEnv created", settings=repr(settings))

    @property
    def store(self) -> ContentStore:
        """Return the content store, building it on first access."""
        with self._state_lock:
            if self._store is None:
                self._store = build_store(
                    self.settings.backend, timeout=self.settings.request_timeout
                )
            return self._store

    @store.setter
    def store(self, store: ContentStore) -> None:
        """Replace the active content store."""
        with self._state_lock:
            self._store = store

    def allocator(self) -> HierarchicalAllocator:
        """Return an allocator bound to the active store and settings."""
        return HierarchicalAllocator(
            self.store,
            alphabet=self.settings.alphabet,
            hash_algo=self.settings.hash_algo,
            counter_attempts=self.settings.counter_attempts,
        )

    def resolver(self) -> Resolver:
        """Return a resolver bound to the active store."""
        return Resolver(self.store, alphabet=self.settings.alphabet)

    @classmethod
    def initialize(cls, settings: "Settings") -> "RuntimeEnv":
        """Initialise and return the runtime environment."""
        with logfire.span("runtime_env.initialize"):
            with cls._lock:
                logfire.info(
                    "Initialising runtime environment",
                    backend=settings.backend.kind,
                )
                cls._instance = cls(settings)
                return cls._instance

    @classmethod
    def instance(cls) -> "RuntimeEnv":
        """Return the current runtime environment.

        Raises:
            RuntimeError: If :meth:`initialize` was not called.
        """
        inst = cls._instance
        if inst is None:
            logfire.error("RuntimeEnv accessed before initialisation")
            raise RuntimeError("RuntimeEnv has not been initialised")
        return inst

    @classmethod
    def reset(cls) -> None:
        """Clear the active runtime environment and close its store."""
        with logfire.span("runtime_env.reset"):
            with cls._lock:
                inst = cls._instance
                if inst is not None and inst._store is not None:
                    inst._store.close()
                cls._instance = None


__all__ = ["RuntimeEnv"]
