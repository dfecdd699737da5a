"""AI service public API."""

from __future__ import annotations

__all__ = ["analyze_ticket", "determine_approval_status"]


def analyze_ticket(*args, **kwargs):
    from helpdesk.services.ai.analysis import analyze_ticket as _analyze_ticket

    return _analyze_ticket(*args, **kwargs)


def determine_approval_status(*args, **kwargs):
    from helpdesk.services.ai.analysis import determine_approval_status as _determine_approval_status

    return _determine_approval_status(*args, **kwargs)
