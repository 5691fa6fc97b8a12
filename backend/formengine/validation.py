from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, Mapping, Optional

from formengine.config import settings
from formengine.rules import js_string
from formengine.schemas import (
    LENGTH_KINDS,
    PATTERN_KINDS,
    FileHandle,
    FormField,
    FormTree,
    Section,
)

logger = logging.getLogger(__name__)

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

Visibility = Callable[[Any], bool]


def is_empty(value: Any) -> bool:
    """Absent, ``None`` and ``""`` all count as no answer."""
    return value is None or (isinstance(value, str) and value == "")


def _pattern_fails(pattern: str, value: Any) -> bool:
    try:
        regex = re.compile(pattern)
    except re.error as e:
        logger.warning(f"Skipping invalid pattern {pattern!r}: {e}")
        return False
    return regex.search(js_string(value)) is None


def validate_field(field: FormField, values: Mapping[str, Any]) -> Optional[str]:
    """
    Returns the first problem with the field's current value, or None.

    Checks run in a fixed order (required, pattern, minimum length, maximum
    length) and only the first failure is reported. An absent or None value
    skips everything after the required check; a cleared value ("") still
    counts as zero characters for the length checks.
    """
    rule = field.validation
    value = values.get(field.id)

    if rule.required and is_empty(value):
        return f"{field.label} is required"

    if value is None:
        return None

    cleared = isinstance(value, str) and value == ""
    if field.kind in PATTERN_KINDS and rule.pattern and not cleared and _pattern_fails(rule.pattern, value):
        return f"{field.label} has an invalid format"

    if field.kind in LENGTH_KINDS:
        length = len(js_string(value))
        if rule.minLength and length < rule.minLength:
            return f"{field.label} must be at least {rule.minLength} characters"
        if rule.maxLength and length > rule.maxLength:
            return f"{field.label} must be at most {rule.maxLength} characters"

    if cleared:
        return None

    if field.kind == "email" and not _EMAIL.match(js_string(value)):
        return f"{field.label} must be a valid email address"

    if field.kind == "file" and isinstance(value, FileHandle) and value.size > settings.MAX_UPLOAD_SIZE:
        return f"{field.label} exceeds the maximum upload size"

    return None


def _has_answer(node: Any, values: Mapping[str, Any], visibility: Optional[Visibility]) -> bool:
    if visibility is not None and not visibility(node):
        return False
    if isinstance(node, Section):
        return any(_has_answer(child, values, visibility) for child in node.children)
    return not is_empty(values.get(node.id))


def validate_section(
    section: Section,
    values: Mapping[str, Any],
    visibility_of: Optional[Visibility] = None,
) -> Optional[str]:
    """
    A required section needs at least one answered field somewhere below it.

    This gate does not look at the children's own ``required`` flags. Hidden
    descendants do not count as answers when ``visibility_of`` is given.
    """
    if not section.required:
        return None

    if any(_has_answer(child, values, visibility_of) for child in section.children):
        return None
    return f'Section "{section.label}" requires at least one field to be filled'


def validate_tree(
    tree: FormTree,
    values: Mapping[str, Any],
    visibility_of: Visibility,
) -> Dict[str, str]:
    """Collect every error in the tree, skipping hidden nodes and their children."""
    errors: Dict[str, str] = {}

    def _visit(nodes) -> None:
        for node in nodes:
            if not visibility_of(node):
                continue
            if isinstance(node, Section):
                error = validate_section(node, values, visibility_of)
                if error:
                    errors[node.id] = error
                _visit(node.children)
            else:
                error = validate_field(node, values)
                if error:
                    errors[node.id] = error

    _visit(tree.nodes)
    return errors


def is_submittable(errors: Mapping[str, str]) -> bool:
    return not errors
