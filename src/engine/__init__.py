# SPDX-License-Identifier: MIT
"""Allocation engine for hierarchical URL codes.

Exports:
    HierarchicalAllocator: Look up or mint domain, path and query ids.
    Resolver: Read records and scope listings by code.
    MalformedCode: Raised for codes without one to three valid segments.
"""

from .allocator import HierarchicalAllocator
from .resolver import MalformedCode, Resolver

__all__ = ["HierarchicalAllocator", "MalformedCode", "Resolver"]
