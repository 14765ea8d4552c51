"""
Intake hook: receives a raw form submission and schedules a relay task.

Form identifiers are compared as canonical strings, so a form configured as
646 matches a submission whose id arrives as "646" (or whose entry metadata
carries form_name "646").
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from src.integrations.contracts.relay import RELAY_TASK_HOOK, FormType, RelayTask
from src.tasks.pending import PendingSubmissions, task_signature
from src.utils.relay_config_loader import RelayConfig

logger = logging.getLogger(__name__)

# (task args, pending signature) -> task id
Dispatcher = Callable[[Dict[str, Any], str], str]


def canonical_form_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def celery_dispatch(args: Dict[str, Any], signature: str) -> str:
    from src.tasks.relay_tasks import process_submission

    result = process_submission.apply_async(args=[args], kwargs={"signature": signature})
    return result.id


class IntakeHook:
    def __init__(
        self,
        pending: PendingSubmissions,
        targets: Mapping[str, FormType],
        dispatch: Optional[Dispatcher] = None,
    ):
        self.pending = pending
        self.dispatch = dispatch or celery_dispatch
        self.targets: Dict[str, FormType] = {
            canonical_form_id(k): v for k, v in targets.items() if canonical_form_id(k)
        }

    @classmethod
    def from_config(
        cls,
        pending: PendingSubmissions,
        config: RelayConfig,
        dispatch: Optional[Dispatcher] = None,
    ) -> "IntakeHook":
        return cls(pending, config.target_map(), dispatch=dispatch)

    def resolve_form_type(self, form_id: Any, entry_meta: Optional[Mapping[str, Any]] = None) -> Optional[FormType]:
        candidates: List[Optional[str]] = [canonical_form_id(form_id)]
        if entry_meta:
            candidates.append(canonical_form_id(entry_meta.get("form_name")))
        for candidate in candidates:
            if candidate and candidate in self.targets:
                return self.targets[candidate]
        return None

    def on_submit(
        self,
        form_id: Any,
        raw_data: Mapping[str, Any],
        entry_meta: Optional[Mapping[str, Any]] = None,
    ) -> Optional[str]:
        """
        Schedule a relay task for a targeted form.

        Returns the new task id, or None when the form is not targeted or an
        identical task is already pending. Errors from the broker propagate
        after the pending gate is released, so the submission can be re-sent.
        """
        if not self.targets:
            logger.error("No target form identifiers configured. Cannot determine target form.")
            return None

        form_type = self.resolve_form_type(form_id, entry_meta)
        if form_type is None:
            logger.debug("Skipping form %s: not a relay target", form_id)
            return None

        form_name = (entry_meta or {}).get("form_name")
        logger.info("Handling submission for form ID/Name: %s/%s", form_id, form_name or "N/A")

        args = RelayTask(form_type=form_type, raw_submission=dict(raw_data or {})).to_args()
        signature = task_signature(RELAY_TASK_HOOK, args)
        if not self.pending.acquire(signature):
            logger.info(
                "Relay task already pending for identical args. Skipping duplicate scheduling for form %s",
                form_id,
            )
            return None

        try:
            task_id = self.dispatch(args, signature)
        except Exception as e:
            self.pending.release(signature)
            logger.error("Could not schedule relay task for form %s: %s", form_id, e)
            raise

        logger.info("Scheduled relay task %s (%s) for form %s", task_id, form_type.value, form_id)
        return task_id
