from typing import Literal, Optional

from pydantic import BaseModel


EventType = Literal[
    "field_added",
    "section_added",
    "field_updated",
    "field_deleted",
    "form_submitted",
    "validation_failed",
    "submission_deleted",
    "conditional_issue",
]


class FormEvent(BaseModel):
    """Notification for the presentation layer (toasts, banners, logs)."""

    event: EventType
    nodeId: Optional[str] = None
    message: str = ""
