# SPDX-License-Identifier: MIT
"""Process-wide settings and the shared content store.

Exports:
    RuntimeEnv: Singleton binding settings to a lazily built store.
    Settings: Validated application configuration.
    load_settings: Merge the YAML file, ``.env`` and environment variables.
"""

from .environment import RuntimeEnv
from .settings import Settings, load_settings

__all__ = ["RuntimeEnv", "Settings", "load_settings"]
