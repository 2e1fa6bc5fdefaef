# SPDX-License-Identifier: MIT
"""Read access to the allocation tree by full or partial code."""

from __future__ import annotations

import logfire

from codec import InvalidDigit, decode
from constants import BASE62, CODE_DELIMITER, DOMAINS_META_DIR
from models import DomainCounter, DomainSnapshot, QueryListing, Record, ScopeMeta
from storage import ContentStore, join_location

from . import layout


class MalformedCode(ValueError):
    """Raised when a code does not have one to three valid segments."""


class Resolver:
    """Walk the persisted tree for codes produced by the allocator."""

    def __init__(self, store: ContentStore, alphabet: str = BASE62) -> None:
        self.store = store
        self.alphabet = alphabet

    def _segments(self, code: str) -> list[str]:
        segments = [segment for segment in code.split(CODE_DELIMITER) if segment]
        if not 1 <= len(segments) <= 3:
            raise MalformedCode(f"Unknown code format: {code!r}")
        for segment in segments:
            try:
                decode(segment, self.alphabet)
            except InvalidDigit as exc:
                raise MalformedCode(f"Invalid code segment {segment!r}") from exc
        return segments

    def _order(self, meta: ScopeMeta) -> tuple[int, str]:
        try:
            return decode(meta.id, self.alphabet), meta.id
        except InvalidDigit:
            return -1, meta.id

    def resolve(self, code: str) -> DomainSnapshot | QueryListing | Record | None:
        """Return what the tree holds for ``code``.

        One segment yields the domain's counter snapshot, two segments the
        query scopes under that path and three segments the stored record,
        or ``None`` when no record exists.

        Raises:
            MalformedCode: If ``code`` does not have one to three segments
                written with the configured alphabet.
        """
        segments = self._segments(code)
        with logfire.span("resolver.resolve", attributes={"code": code}):
            if len(segments) == 1:
                (domain_id,) = segments
                counter = self.store.read_json(
                    layout.domain_counter_location(domain_id), DomainCounter
                )
                return DomainSnapshot(domain_id=domain_id, counter=counter)
            if len(segments) == 2:
                domain_id, path_id = segments
                entries = self._read_metas(layout.queries_location(domain_id, path_id))
                return QueryListing(
                    domain_id=domain_id, path_id=path_id, entries=entries
                )
            return self.store.read_json(layout.record_location(*segments), Record)

    def list_domains(self) -> list[ScopeMeta]:
        """Return every known domain scope ordered by id."""
        return self._read_metas(DOMAINS_META_DIR)

    def _read_metas(self, prefix: str) -> list[ScopeMeta]:
        metas = []
        for name in self.store.list_children(prefix):
            if not layout.is_data_file(name):
                continue
            meta = self.store.read_json(join_location(prefix, name), ScopeMeta)
            if meta is not None:
                metas.append(meta)
        return sorted(metas, key=self._order)


__all__ = ["MalformedCode", "Resolver"]
