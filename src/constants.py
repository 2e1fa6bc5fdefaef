"""Project-wide constants and persisted layout names.

This module centralises small constants that are imported across the
application. Keep this file minimal and free of side effects.
"""

from __future__ import annotations

from pathlib import Path

DECIMAL = "0123456789"
BASE62 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"

DEFAULT_HASH_ALGO = "sha512"
DEFAULT_DATA_ROOT = Path("db")
DEFAULT_CONFIG_DIR = Path("config")
DEFAULT_CONFIG_FILE = "app.yaml"

# Persisted layout. Locations are POSIX-style and relative to the store root.
CODE_DELIMITER = "/"
DATA_EXT = ".json"
COUNTER_FILE = "counter.json"
RECORD_FILE = "record.json"
DOMAINS_META_DIR = "domains-meta"
PATHS_DIR = "paths"
QUERIES_DIR = "queries"

__all__ = [
    "BASE62",
    "CODE_DELIMITER",
    "COUNTER_FILE",
    "DATA_EXT",
    "DECIMAL",
    "DEFAULT_CONFIG_DIR",
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_DATA_ROOT",
    "DEFAULT_HASH_ALGO",
    "DOMAINS_META_DIR",
    "PATHS_DIR",
    "QUERIES_DIR",
    "RECORD_FILE",
]
