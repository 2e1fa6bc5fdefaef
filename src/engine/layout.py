# SPDX-License-Identifier: MIT
"""Locations of the objects making up the persisted allocation tree."""

from __future__ import annotations

from constants import (
    CODE_DELIMITER,
    COUNTER_FILE,
    DATA_EXT,
    DOMAINS_META_DIR,
    PATHS_DIR,
    QUERIES_DIR,
    RECORD_FILE,
)
from storage import join_location


def root_counter_location() -> str:
    return COUNTER_FILE


def domain_meta_location(key_hash: str) -> str:
    return join_location(DOMAINS_META_DIR, f"{key_hash}{DATA_EXT}")


def domain_counter_location(domain_id: str) -> str:
    return join_location(domain_id, COUNTER_FILE)


def path_meta_location(domain_id: str, key_hash: str) -> str:
    return join_location(domain_id, PATHS_DIR, f"{key_hash}{DATA_EXT}")


def queries_location(domain_id: str, path_id: str) -> str:
    return join_location(domain_id, path_id, QUERIES_DIR)


def query_meta_location(domain_id: str, path_id: str, key_hash: str) -> str:
    return join_location(queries_location(domain_id, path_id), f"{key_hash}{DATA_EXT}")


def record_location(domain_id: str, path_id: str, query_id: str) -> str:
    return join_location(domain_id, path_id, query_id, RECORD_FILE)


def format_code(domain_id: str, path_id: str, query_id: str) -> str:
    """Return the composite code for the three scope ids."""
    return CODE_DELIMITER.join((domain_id, path_id, query_id))


def is_data_file(name: str) -> bool:
    return name.endswith(DATA_EXT)


__all__ = [
    "domain_counter_location",
    "domain_meta_location",
    "format_code",
    "is_data_file",
    "path_meta_location",
    "queries_location",
    "query_meta_location",
    "record_location",
    "root_counter_location",
]
