# SPDX-License-Identifier: MIT
"""Tests for hierarchical code allocation."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from codec import InvalidAlphabet, encode
from constants import BASE62
from engine import HierarchicalAllocator
from engine import layout
from models import DomainCounter, Record, RootCounter, ScopeMeta
from storage import ContentStore, StoredObject


def test_first_url_gets_zero_code(store) -> None:
    allocation = HierarchicalAllocator(store).allocate("https://example.com/")
    assert allocation.code == "0/0/0"
    assert (allocation.domain_id, allocation.path_id, allocation.query_id) == (
        "0",
        "0",
        "0",
    )


def test_same_url_gets_same_code(store) -> None:
    allocator = HierarchicalAllocator(store)
    first = allocator.allocate("https://example.com/a?x=1")
    second = allocator.allocate("https://example.com/a?x=1")
    assert first == second
    counter = store.read_json(layout.domain_counter_location("0"), DomainCounter)
    assert (counter.next_path, counter.next_query) == (1, 1)
    assert store.read_json(layout.root_counter_location(), RootCounter).next_domain == 1


def test_domains_are_numbered_in_order(store) -> None:
    allocator = HierarchicalAllocator(store)
    codes = [
        allocator.allocate(f"https://site{i}.example/").domain_id for i in range(11)
    ]
    assert codes == [encode(i, BASE62) for i in range(11)]
    assert codes[-1] == "A"


def test_paths_are_numbered_within_domain(store) -> None:
    allocator = HierarchicalAllocator(store)
    paths = [
        allocator.allocate(f"https://example.com/{name}").path_id
        for name in ("a", "b", "c")
    ]
    assert paths == ["0", "1", "2"]
    other = allocator.allocate("https://example.org/z")
    assert (other.domain_id, other.path_id) == ("1", "0")


def test_query_counter_is_shared_by_the_domain(store) -> None:
    allocator = HierarchicalAllocator(store)
    codes = [
        allocator.allocate(url).code
        for url in (
            "https://example.com/a",
            "https://example.com/b",
            "https://example.com/a?x=1",
        )
    ]
    assert codes == ["0/0/0", "0/1/1", "0/0/2"]


def test_record_holds_submission_details(store) -> None:
    allocation = HierarchicalAllocator(store).allocate(
        "https://example.com/a",
        submitter="alice",
        external_ref=7,
        original_url="HTTP://Example.com/a/",
    )
    record = store.read_json(
        layout.record_location(
            allocation.domain_id, allocation.path_id, allocation.query_id
        ),
        Record,
    )
    assert record.original == "HTTP://Example.com/a/"
    assert record.canonical == "https://example.com/a"
    assert record.by == "alice"
    assert record.issue == 7


def test_record_defaults_original_to_canonical(store) -> None:
    HierarchicalAllocator(store).allocate("https://example.com/")
    record = store.read_json(layout.record_location("0", "0", "0"), Record)
    assert record.original == record.canonical == "https://example.com/"
    assert record.by == "unknown"
    assert record.issue is None


def test_metadata_keeps_the_key(store) -> None:
    allocator = HierarchicalAllocator(store)
    allocator.allocate("https://example.com:8443/docs?b=1")
    domain = store.read_json(
        layout.domain_meta_location(allocator.key_hash("https://example.com:8443")),
        ScopeMeta,
    )
    path = store.read_json(
        layout.path_meta_location("0", allocator.key_hash("/docs")), ScopeMeta
    )
    query = store.read_json(
        layout.query_meta_location("0", "0", allocator.key_hash("?b=1")), ScopeMeta
    )
    assert (domain.key, path.key, query.key) == (
        "https://example.com:8443",
        "/docs",
        "?b=1",
    )


def test_key_hash_uses_configured_algorithm(local_store) -> None:
    allocator = HierarchicalAllocator(local_store)
    assert len(allocator.key_hash("https://example.com")) == 128
    sha256 = HierarchicalAllocator(local_store, hash_algo="sha256")
    assert len(sha256.key_hash("x")) == 64


def test_custom_alphabet_renders_ids(store) -> None:
    allocator = HierarchicalAllocator(store, alphabet="ab")
    codes = [
        allocator.allocate(f"https://site{i}.example/").code for i in range(3)
    ]
    assert codes == ["a/a/a", "b/a/a", "ba/a/a"]


def test_root_counter_is_seeded_from_existing_domains(store) -> None:
    """Trees written before the root counter existed keep their numbering."""
    for number, key in enumerate(("https://a.example", "https://b.example")):
        store.create_json(
            layout.domain_meta_location(f"legacy{number}"),
            ScopeMeta(id=str(number), key=key),
            "seed",
        )
    allocation = HierarchicalAllocator(store).allocate("https://c.example/")
    assert allocation.domain_id == "2"


def test_missing_domain_counter_starts_at_zero(store) -> None:
    """An allocation interrupted after the domain metadata resumes cleanly."""
    allocator = HierarchicalAllocator(store)
    store.create_json(
        layout.domain_meta_location(allocator.key_hash("https://example.com")),
        ScopeMeta(id="5", key="https://example.com"),
        "seed",
    )
    assert allocator.allocate("https://example.com/a").code == "5/0/0"


def test_commit_messages_carry_the_reference(fake_github, github_store) -> None:
    HierarchicalAllocator(github_store).allocate(
        "https://example.com/a", external_ref=5
    )
    assert fake_github.commits == [
        "update domain counter [#5]",
        "create domain meta 0 [#5]",
        "init domain 0 [#5]",
        "update counter for domain 0 [#5]",
        "create path meta 0/0 [#5]",
        "update counter for domain 0 [#5]",
        "create query meta 0/0/0 [#5]",
        "add record 0/0/0 [#5]",
    ]


def test_commit_messages_default_to_cli(fake_github, github_store) -> None:
    HierarchicalAllocator(github_store).allocate("https://example.com/")
    assert fake_github.commits[-1] == "add record 0/0/0 [#cli]"


class RacingStore(ContentStore):
    """Store letting another writer create domain metadata first."""

    def __init__(self, inner: ContentStore, winner_id: str) -> None:
        self.inner = inner
        self.winner_id = winner_id
        self.raced = False

    def read_object(self, location: str) -> StoredObject | None:
        return self.inner.read_object(location)

    def list_children(self, prefix: str) -> list[str]:
        return self.inner.list_children(prefix)

    def write_object(self, location, data, message, version=None) -> str:
        if location.startswith("domains-meta/") and not self.raced:
            self.raced = True
            self.inner.create_json(
                location,
                ScopeMeta(id=self.winner_id, key="https://example.com"),
                "concurrent writer",
            )
        return self.inner.write_object(location, data, message, version)


def test_lost_metadata_race_adopts_winner(local_store) -> None:
    store = RacingStore(local_store, winner_id="Z")
    allocation = HierarchicalAllocator(store).allocate("https://example.com/")
    assert allocation.code == "Z/0/0"
    # The id drawn by the losing writer is skipped, never reused.
    assert local_store.read_json("counter.json", RootCounter).next_domain == 1
    assert HierarchicalAllocator(local_store).allocate(
        "https://other.example/"
    ).domain_id == "1"


def test_concurrent_allocations_get_distinct_domains(local_store) -> None:
    allocator = HierarchicalAllocator(local_store, counter_attempts=100)
    urls = [f"https://site{i}.example/" for i in range(8)]
    with ThreadPoolExecutor(max_workers=8) as pool:
        allocations = list(pool.map(allocator.allocate, urls))
    ids = {allocation.domain_id for allocation in allocations}
    assert ids == {encode(i, BASE62) for i in range(8)}


@pytest.mark.parametrize(
    ("kwargs", "error"),
    [
        ({"alphabet": "aa"}, InvalidAlphabet),
        ({"alphabet": "a"}, InvalidAlphabet),
        ({"hash_algo": "nope"}, ValueError),
        ({"counter_attempts": 0}, ValueError),
    ],
)
def test_invalid_options_are_rejected(local_store, kwargs, error) -> None:
    with pytest.raises(error):
        HierarchicalAllocator(local_store, **kwargs)
