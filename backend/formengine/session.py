"""Editing session for a single form.

``FormSession`` owns the current tree, the live answers and the captured
submissions, plus the few bits of presentation state (selected node, open
"add field" menu, viewed submission) a builder UI needs. The schema objects
themselves never carry UI flags; they are referenced here by id only.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from formengine import mutator, rules, validation
from formengine import submissions as submission_ops
from formengine.config import settings
from formengine.events import FormEvent
from formengine.identity import collect_ids, find_node
from formengine.schemas import FormStyle, FormSubmission, FormTree
from formengine.submissions import SubmissionStore

logger = logging.getLogger(__name__)

Listener = Callable[[FormEvent], None]


class FormSession:
    def __init__(
        self,
        tree: Optional[FormTree] = None,
        style: Optional[FormStyle] = None,
        reference_policy: Optional[str] = None,
    ):
        self.tree = tree or FormTree(title=settings.DEFAULT_FORM_TITLE)
        self.style = style or FormStyle()
        self.reference_policy = reference_policy or settings.CONDITIONAL_REFERENCE_POLICY
        self.values: Dict[str, Any] = {}
        self.errors: Dict[str, str] = {}
        self.store = SubmissionStore()

        self.selected_node_id: Optional[str] = None
        self.menu_section_id: Optional[str] = None
        self.viewed_submission_id: Optional[str] = None

        self._listeners: List[Listener] = []

    # events

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, event: str, node_id: Optional[str] = None, message: str = "") -> None:
        payload = FormEvent(event=event, nodeId=node_id, message=message)
        logger.info("%s %s", event, message)
        for listener in list(self._listeners):
            listener(payload)

    # tree edits

    def add_field(self, kind: str) -> Optional[str]:
        self.tree, field_id = mutator.add_field(self.tree, kind)
        if field_id is None:
            return None
        self.selected_node_id = field_id
        self._emit("field_added", field_id, f"Added a new {kind} field to your form.")
        return field_id

    def add_section(self) -> str:
        self.tree, section_id = mutator.add_section(self.tree)
        self.selected_node_id = section_id
        self._emit("section_added", section_id, "Added a new section to your form.")
        return section_id

    def open_field_menu(self, section_id: str) -> None:
        self.close_field_menu()
        self.menu_section_id = section_id

    def close_field_menu(self) -> None:
        self.menu_section_id = None

    def add_field_to_section(self, kind: str, section_id: Optional[str] = None) -> Optional[str]:
        """Add a field to ``section_id`` (defaults to the section whose menu is open)."""
        target = section_id or self.menu_section_id
        field_id = None
        if target is not None:
            self.tree, field_id = mutator.add_field_to_section(self.tree, target, kind)
        self.close_field_menu()

        if field_id is None:
            return None
        self.selected_node_id = field_id
        self._emit("field_added", field_id, f"Added a new {kind} field to your form.")
        return field_id

    def _introduced_issues(self, candidate: FormTree) -> List[rules.ConditionalIssue]:
        before = {issue.key for issue in rules.conditional_problems(self.tree)}
        return [issue for issue in rules.conditional_problems(candidate) if issue.key not in before]

    def update_node(self, updated: Any) -> bool:
        """Apply a full-node replacement; returns False when nothing changed or it was refused.

        Under the ``reject`` policy an edit that introduces a new dangling,
        self, section or cyclic reference is refused. A rule whose source has
        not been picked yet (empty ``fieldId``) is only flagged, so a rule can
        be attached first and pointed at a field afterwards.
        """
        candidate = mutator.update_node(self.tree, updated)
        if candidate == self.tree:
            return False

        introduced = self._introduced_issues(candidate)
        blocking = [issue for issue in introduced if issue.kind != "empty"]
        if blocking and self.reference_policy == "reject":
            for issue in blocking:
                self._emit("conditional_issue", updated.id, issue.message)
            return False

        self.tree = candidate
        for issue in introduced:
            self._emit("conditional_issue", updated.id, issue.message)
        self._emit("field_updated", updated.id, f'Updated "{updated.label}" settings.')
        return True

    def delete_node(self, node_id: str) -> bool:
        node = find_node(self.tree, node_id)
        candidate = mutator.delete_node(self.tree, node_id)
        if candidate == self.tree:
            return False

        introduced = self._introduced_issues(candidate)
        self.tree = candidate
        removed = set(collect_ids([node]))
        if self.selected_node_id in removed:
            self.selected_node_id = None
        for removed_id in removed:
            self.errors.pop(removed_id, None)

        # deletions are never refused, but they can leave other rules dangling
        for issue in introduced:
            self._emit("conditional_issue", node_id, issue.message)
        self._emit("field_deleted", node_id, f'Deleted "{node.label}" from your form.')
        return True

    def reorder(self, from_index: int, to_index: Optional[int]) -> None:
        self.tree = mutator.reorder_root(self.tree, from_index, to_index)

    def select_node(self, node_id: Optional[str]) -> None:
        self.selected_node_id = node_id

    @property
    def selected_node(self) -> Optional[Any]:
        if self.selected_node_id is None:
            return None
        return find_node(self.tree, self.selected_node_id)

    def conditional_issues(self) -> List[str]:
        return rules.find_conditional_issues(self.tree)

    # answers

    def set_value(self, field_id: str, value: Any) -> None:
        self.values[field_id] = value
        self.errors.pop(field_id, None)

    def visible_ids(self) -> List[str]:
        return rules.visible_field_ids(self.tree, self.values)

    def is_visible(self, node: Any) -> bool:
        return rules.is_effectively_visible(self.tree, node, self.values)

    def validate(self) -> Dict[str, str]:
        visible = rules.visibility_of(self.tree, self.values)
        self.errors = validation.validate_tree(self.tree, self.values, visible)
        return self.errors

    def submit(self) -> Optional[FormSubmission]:
        """Validate and, when clean, capture the visible answers as a submission."""
        errors = self.validate()
        if not validation.is_submittable(errors):
            count = len(errors)
            self._emit(
                "validation_failed",
                message=f"Please fix the {count} error{'s' if count > 1 else ''} in the form.",
            )
            return None

        visible = set(self.visible_ids())
        answered = {key: value for key, value in self.values.items() if key in visible}
        self.store, submission = submission_ops.submit(self.store, answered)
        self.viewed_submission_id = submission.id
        self._emit("form_submitted", submission.id, "Your form data has been submitted and saved.")
        return submission

    # submissions

    @property
    def submissions(self):
        return self.store.submissions

    def select_submission(self, submission_id: Optional[str]) -> None:
        self.viewed_submission_id = submission_id

    @property
    def viewed_submission(self) -> Optional[FormSubmission]:
        if self.viewed_submission_id is None:
            return None
        return submission_ops.get_submission(self.store, self.viewed_submission_id)

    def delete_submission(self, submission_id: str) -> bool:
        store = submission_ops.delete_submission(self.store, submission_id)
        if len(store.submissions) == len(self.store.submissions):
            return False

        self.store = store
        if self.viewed_submission_id == submission_id:
            self.viewed_submission_id = None
        self._emit("submission_deleted", submission_id, "Submission deleted.")
        return True
