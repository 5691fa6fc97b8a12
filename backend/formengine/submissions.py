from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from formengine.identity import new_id
from formengine.schemas import FormSubmission


class SubmissionStore(BaseModel):
    """Captured submissions, most recent first."""

    model_config = ConfigDict(frozen=True)

    submissions: Tuple[FormSubmission, ...] = ()


def submit(
    store: SubmissionStore,
    values: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> Tuple[SubmissionStore, FormSubmission]:
    submission = FormSubmission(
        id=new_id(),
        timestamp=now or datetime.now(timezone.utc),
        values=dict(values),
    )
    store = store.model_copy(update={"submissions": (submission, *store.submissions)})
    return store, submission


def delete_submission(store: SubmissionStore, submission_id: str) -> SubmissionStore:
    """Remove a single submission by id; unknown ids leave the store as it was."""
    remaining = tuple(s for s in store.submissions if s.id != submission_id)
    return store.model_copy(update={"submissions": remaining})


def get_submission(store: SubmissionStore, submission_id: str) -> Optional[FormSubmission]:
    return next((s for s in store.submissions if s.id == submission_id), None)


def latest(store: SubmissionStore) -> Optional[FormSubmission]:
    return store.submissions[0] if store.submissions else None


def field_count(submission: FormSubmission) -> int:
    return len(submission.values)
