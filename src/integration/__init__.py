"""Integrations that feed URLs from external event sources.

Exports:
    handle_issue_event: Shorten the URL of an issue and comment the code.
    run_action: Entry point for GitHub Actions issue events.
"""

from .issue_event import handle_issue_event, run_action

__all__ = ["handle_issue_event", "run_action"]
