"""
Form submission webhook.

The form framework posts every stored submission here; targeted forms are
scheduled for relay, everything else is acknowledged and ignored. The
submitter never sees the relay outcome.
"""

import logging
from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from src.tasks.intake import IntakeHook

logger = logging.getLogger(__name__)

router = APIRouter()


# Will be set by main.py after import
intake_hook: Optional[IntakeHook] = None


class FormSubmission(BaseModel):
    form_id: Union[int, str]
    form_data: Dict[str, Any] = Field(default_factory=dict, description="Raw field key -> value map")
    entry_data: Dict[str, Any] = Field(default_factory=dict, description="Entry metadata (form_name, ...)")


# Plain def: publishing to the broker (or running eagerly) blocks, so FastAPI
# runs this in its threadpool.
@router.post("/forms/submissions", tags=["Forms"], status_code=status.HTTP_202_ACCEPTED)
def receive_form_submission(body: FormSubmission):
    if intake_hook is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Form relay is not initialized",
        )
    try:
        task_id = intake_hook.on_submit(body.form_id, body.form_data, body.entry_data)
    except Exception as e:
        logger.error("Relay scheduling failed for form %s: %s", body.form_id, e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Relay queue unavailable, please retry",
        )
    return {"accepted": True, "scheduled": task_id is not None, "task_id": task_id}
