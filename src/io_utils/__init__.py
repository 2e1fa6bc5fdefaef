"""Input helpers for configuration and event files.

Exports:
    load_app_config: Read the optional YAML application configuration.
    load_event_payload: Read the JSON payload of a workflow event.
"""

from .loader import load_app_config, load_event_payload

__all__ = ["load_app_config", "load_event_payload"]
