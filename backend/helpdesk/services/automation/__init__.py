"""Automation service public API."""

from __future__ import annotations

__all__ = ["run_automations", "run_ticket_created_automations", "run_ticket_updated_automations"]


def run_automations(*args, **kwargs):
    from helpdesk.services.automation.engine import run_automations as _run_automations

    return _run_automations(*args, **kwargs)


def run_ticket_created_automations(*args, **kwargs):
    from helpdesk.services.automation.engine import run_ticket_created_automations as _run_created

    return _run_created(*args, **kwargs)


def run_ticket_updated_automations(*args, **kwargs):
    from helpdesk.services.automation.engine import run_ticket_updated_automations as _run_updated

    return _run_updated(*args, **kwargs)
