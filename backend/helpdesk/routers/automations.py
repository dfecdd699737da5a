"""Manual automation runs for operators."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Path
from sqlalchemy.orm import Session

from helpdesk.db.session import get_db
from helpdesk.models.enums import AutomationTrigger
from helpdesk.schemas.automation import AutomationRunOut, AutomationRunRequest
from helpdesk.services.automation import run_ticket_created_automations, run_ticket_updated_automations

router = APIRouter()


@router.post("/{ticket_id}/automations/run", response_model=AutomationRunOut)
def post_run_automations(
    ticket_id: str = Path(...),
    payload: AutomationRunRequest | None = Body(default=None),
    db: Session = Depends(get_db),
) -> AutomationRunOut:
    payload = payload or AutomationRunRequest()
    if payload.trigger == AutomationTrigger.ticket_created:
        result = run_ticket_created_automations(db, ticket_id)
    else:
        previous = payload.previous.model_dump(exclude_unset=True) if payload.previous else None
        result = run_ticket_updated_automations(db, ticket_id, previous)
    return AutomationRunOut.model_validate(result)
