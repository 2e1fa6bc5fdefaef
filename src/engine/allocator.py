# SPDX-License-Identifier: MIT
"""Hierarchical allocation of domain, path and query ids.

A canonical URL is split into a domain key, a path key and a query key. Each
key is hashed to a deterministic metadata location; when metadata already
exists its id is reused, otherwise a new id is drawn from a counter and
rendered with the configured alphabet.

Counters are only ever changed through the store's compare-and-swap update
so a concurrent writer causes a bounded retry instead of a duplicate id.
Domain ids come from the store-wide root counter; path and query ids come
from the owning domain's counter object, and the query counter is shared by
every path of the domain.
"""

from __future__ import annotations

import hashlib
from typing import Callable

import logfire

from canonical import split_url
from codec import encode
from constants import BASE62, DEFAULT_HASH_ALGO, DOMAINS_META_DIR
from models import Allocation, DomainCounter, Record, RootCounter, ScopeMeta
from storage import ContentStore, StorageError

from . import layout


class HierarchicalAllocator:
    """Look up or mint the ids forming a URL's code."""

    def __init__(
        self,
        store: ContentStore,
        alphabet: str = BASE62,
        hash_algo: str = DEFAULT_HASH_ALGO,
        counter_attempts: int = 3,
    ) -> None:
        encode(1, alphabet)  # ids past zero need at least two symbols
        if hash_algo not in hashlib.algorithms_available:
            raise ValueError(f"Unsupported hash algorithm: {hash_algo}")
        if counter_attempts < 1:
            raise ValueError("counter_attempts must be at least 1")
        self.store = store
        self.alphabet = alphabet
        self.hash_algo = hash_algo
        self.counter_attempts = counter_attempts

    def key_hash(self, key: str) -> str:
        """Return the hex digest locating the metadata of ``key``."""
        return hashlib.new(self.hash_algo, key.encode("utf-8")).hexdigest()

    def allocate(
        self,
        canonical_url: str,
        submitter: str = "unknown",
        external_ref: int | str | None = None,
        original_url: str | None = None,
    ) -> Allocation:
        """Return the code for ``canonical_url``, minting ids as needed.

        Args:
            canonical_url: URL already passed through canonicalisation.
            submitter: Identity stored in the record.
            external_ref: Optional reference such as an issue number.
            original_url: URL as submitted; defaults to ``canonical_url``.

        Returns:
            The composite code and the three scope ids.

        Raises:
            StorageError: If the backend fails. Re-running the allocation
                resumes from whatever metadata was already written.
        """
        parts = split_url(canonical_url)
        tag = f"[#{external_ref or 'cli'}]"
        with logfire.span(
            "allocator.allocate",
            attributes={"url": canonical_url, "submitter": submitter},
        ):
            domain = self._ensure_domain(parts.domain_key, tag)
            path = self._ensure_path(domain.id, parts.path_key, tag)
            query = self._ensure_query(domain.id, path.id, parts.query_key, tag)

            code = layout.format_code(domain.id, path.id, query.id)
            record = Record(
                original=original_url or canonical_url,
                canonical=canonical_url,
                by=submitter,
                issue=external_ref,
            )
            self.store.put_json(
                layout.record_location(domain.id, path.id, query.id),
                record,
                f"add record {code} {tag}",
            )
            logfire.info("Allocated code", code=code, url=canonical_url)
            return Allocation(
                code=code, domain_id=domain.id, path_id=path.id, query_id=query.id
            )

    def _ensure_domain(self, domain_key: str, tag: str) -> ScopeMeta:
        meta, created = self._resolve_or_create(
            layout.domain_meta_location(self.key_hash(domain_key)),
            domain_key,
            lambda: self._take_next_domain(tag),
            lambda new_id: f"create domain meta {new_id} {tag}",
        )
        if created:
            self.store.create_json(
                layout.domain_counter_location(meta.id),
                DomainCounter(),
                f"init domain {meta.id} {tag}",
            )
        return meta

    def _ensure_path(self, domain_id: str, path_key: str, tag: str) -> ScopeMeta:
        meta, _ = self._resolve_or_create(
            layout.path_meta_location(domain_id, self.key_hash(path_key)),
            path_key,
            lambda: self._take_from_domain(domain_id, "next_path", tag),
            lambda new_id: f"create path meta {domain_id}/{new_id} {tag}",
        )
        return meta

    def _ensure_query(
        self, domain_id: str, path_id: str, query_key: str, tag: str
    ) -> ScopeMeta:
        meta, _ = self._resolve_or_create(
            layout.query_meta_location(domain_id, path_id, self.key_hash(query_key)),
            query_key,
            lambda: self._take_from_domain(domain_id, "next_query", tag),
            lambda new_id: f"create query meta {domain_id}/{path_id}/{new_id} {tag}",
        )
        return meta

    def _resolve_or_create(
        self,
        location: str,
        key: str,
        next_number: Callable[[], int],
        message: Callable[[str], str],
    ) -> tuple[ScopeMeta, bool]:
        """Return the metadata at ``location`` and whether it was just created."""
        existing = self.store.read_json(location, ScopeMeta)
        if existing is not None:
            logfire.debug("Reusing scope id", location=location, id=existing.id)
            return existing, False

        meta = ScopeMeta(id=encode(next_number(), self.alphabet), key=key)
        if self.store.create_json(location, meta, message(meta.id)):
            logfire.info("Minted scope id", location=location, id=meta.id, key=key)
            return meta, True

        # Another writer created the metadata after our read; its id wins.
        winner = self.store.read_json(location, ScopeMeta)
        if winner is None:
            raise StorageError(f"Metadata at {location} vanished after a conflict")
        logfire.warning(
            "Scope minted concurrently",
            location=location,
            id=winner.id,
            skipped=meta.id,
        )
        return winner, False

    def _take_next_domain(self, tag: str) -> int:
        def take(counter: RootCounter) -> int:
            number = counter.next_domain
            counter.next_domain += 1
            return number

        return self.store.update_json(
            layout.root_counter_location(),
            RootCounter,
            take,
            f"update domain counter {tag}",
            default=self._seed_root_counter,
            attempts=self.counter_attempts,
        )

    def _seed_root_counter(self) -> RootCounter:
        """Start the root counter after any domains written without one."""
        existing = [
            name
            for name in self.store.list_children(DOMAINS_META_DIR)
            if layout.is_data_file(name)
        ]
        return RootCounter(next_domain=len(existing))

    def _take_from_domain(self, domain_id: str, field: str, tag: str) -> int:
        def take(counter: DomainCounter) -> int:
            number = getattr(counter, field)
            setattr(counter, field, number + 1)
            return number

        return self.store.update_json(
            layout.domain_counter_location(domain_id),
            DomainCounter,
            take,
            f"update counter for domain {domain_id} {tag}",
            default=DomainCounter,
            attempts=self.counter_attempts,
        )


__all__ = ["HierarchicalAllocator"]
