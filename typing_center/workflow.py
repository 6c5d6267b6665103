"""
typing_center/workflow.py

Application state machine: NotStarted -> InProgress -> Completed.

Rules:
- steps_completed is an append-only log and the single source of truth.
  current_step/status/completion_date are re-derived from it on every
  transition.
- Steps must be completed in catalog order; no skipping, no re-completion.
- 'other' applications have no steps and are closed by mark_other_completed().

Functions here mutate the model instance only. The caller commits.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from .catalog import COMPLETED, OTHER, steps_for, step_label, step_description
from .errors import ConflictError, ValidationError

IN_PROGRESS = "in_progress"


def _done_steps(log: Optional[List[Dict[str, Any]]]) -> set:
    return {entry.get("step") for entry in (log or []) if isinstance(entry, dict)}


def derive_current_step(application_type: str, log: Optional[List[Dict[str, Any]]]) -> Optional[str]:
    """
    First catalog step not present in the log.

    Returns COMPLETED once every step is logged and None for types without steps.
    """
    steps = steps_for(application_type)
    if not steps:
        return None

    done = _done_steps(log)
    for step in steps:
        if step == COMPLETED:
            break
        if step not in done:
            return step
    return COMPLETED


def start_application(application) -> None:
    """Put a freshly created application at the first step of its catalog."""
    application.steps_completed = []
    application.current_step = derive_current_step(application.application_type, [])
    application.status = IN_PROGRESS
    application.completion_date = None


def sync_state(application, today: Optional[date] = None) -> None:
    """Refresh the denormalized columns from the step log."""
    current = derive_current_step(application.application_type, application.steps_completed)
    application.current_step = current

    if current == COMPLETED:
        application.status = COMPLETED
        if application.completion_date is None:
            application.completion_date = today or date.today()
    elif application.application_type != OTHER or application.status != COMPLETED:
        application.status = IN_PROGRESS
        application.completion_date = None


def complete_step(
    application,
    step_id: str,
    note: Optional[str],
    updated_by: Optional[str],
    today: Optional[date] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Record completion of the current step and advance.

    Returns the appended log entry.
    """
    note = (note or "").strip()
    updated_by = (updated_by or "").strip()
    step_id = (step_id or "").strip()

    errors = {}
    if not step_id:
        errors["step"] = ["Step is required."]
    if not note:
        errors["notes"] = ["A note is required to complete a step."]
    if not updated_by:
        errors["updated_by"] = ["The name of the person completing the step is required."]
    if errors:
        raise ValidationError("Invalid step completion.", payload={"errors": errors})

    if application.status == COMPLETED:
        raise ConflictError("Application is already completed.")

    log = list(application.steps_completed or [])
    if step_id in _done_steps(log):
        raise ConflictError(f"Step '{step_id}' has already been completed.")

    current = derive_current_step(application.application_type, log)
    if current is None:
        raise ValidationError("This application type has no processing steps.")
    if step_id != current:
        raise ValidationError(
            f"Step '{step_id}' cannot be completed now; the current step is '{current}'.",
            payload={"current_step": current},
        )

    today = today or date.today()
    now = now or datetime.utcnow()

    entry = {
        "step": step_id,
        "completed_date": today.isoformat(),
        "notes": note,
        "updated_by": updated_by,
        "updated_at": now.isoformat(),
    }
    log.append(entry)

    # Reassign so the JSON column is flagged dirty.
    application.steps_completed = log
    sync_state(application, today=today)
    return entry


def mark_other_completed(application, today: Optional[date] = None) -> None:
    """Close an 'other' application, which has no step catalog."""
    if application.application_type != OTHER:
        raise ValidationError("Only applications of type 'other' can be completed directly.")
    if application.status == COMPLETED:
        raise ConflictError("Application is already completed.")

    application.status = COMPLETED
    application.completion_date = today or date.today()


def step_progress(application) -> List[Dict[str, Any]]:
    """Per-step view derived from the log, in catalog order."""
    by_step = {}
    for entry in application.steps_completed or []:
        if isinstance(entry, dict) and entry.get("step"):
            by_step[entry["step"]] = entry

    current = derive_current_step(application.application_type, application.steps_completed)

    rows = []
    for step in steps_for(application.application_type):
        entry = by_step.get(step)
        done = entry is not None or (step == COMPLETED and current == COMPLETED)
        rows.append(
            {
                "step": step,
                "label": step_label(step),
                "description": step_description(step),
                "done": done,
                "current": step == current and step != COMPLETED,
                "completed_date": entry.get("completed_date") if entry else None,
                "notes": entry.get("notes") if entry else None,
                "updated_by": entry.get("updated_by") if entry else None,
            }
        )
    return rows
