"""Structural edits on a form tree.

Every function here is pure: it takes a tree (or node) and returns a new one.
An edit that names an id the tree does not contain returns an equal copy of
the input rather than raising.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Tuple

from formengine.config import settings
from formengine.identity import collect_ids, new_id
from formengine.schemas import (
    FIELD_KINDS,
    OPTION_KINDS,
    ConditionalRule,
    FormField,
    FormTree,
    Option,
    Section,
    ValidationRule,
)

logger = logging.getLogger(__name__)


def _option(number: int) -> Option:
    return Option(id=new_id(), label=f"Option {number}", value=f"option{number}")


def new_field(kind: str) -> FormField:
    """Build a field of ``kind`` with the editor defaults."""
    options = (_option(1), _option(2)) if kind in OPTION_KINDS else ()
    return FormField(
        id=new_id(),
        kind=kind,
        label=f"New {kind.capitalize()}",
        placeholder=f"Enter {kind}",
        options=options,
        validation=ValidationRule(
            pattern=settings.PHONE_PATTERN if kind == "phone" else None,
        ),
    )


def new_section() -> Section:
    return Section(id=new_id(), label="New Section")


def _with_nodes(tree: FormTree, nodes) -> FormTree:
    return tree.model_copy(update={"nodes": tuple(nodes)})


def add_field(tree: FormTree, kind: str) -> Tuple[FormTree, Optional[str]]:
    if kind not in FIELD_KINDS:
        logger.warning("Unknown field kind %r, field not added", kind)
        return tree.model_copy(), None

    field = new_field(kind)
    logger.debug("Adding %s field %s at root", kind, field.id)
    return _with_nodes(tree, [*tree.nodes, field]), field.id


def add_section(tree: FormTree) -> Tuple[FormTree, str]:
    section = new_section()
    logger.debug("Adding section %s at root", section.id)
    return _with_nodes(tree, [*tree.nodes, section]), section.id


def add_field_to_section(tree: FormTree, section_id: str, kind: str) -> Tuple[FormTree, Optional[str]]:
    """Append a new field to a root-level section; ``None`` id when there is no such section."""
    target = next(
        (node for node in tree.nodes if isinstance(node, Section) and node.id == section_id),
        None,
    )
    if target is None:
        logger.debug("No root section %s, field not added", section_id)
        return tree.model_copy(), None
    if kind not in FIELD_KINDS:
        logger.warning("Unknown field kind %r, field not added", kind)
        return tree.model_copy(), None

    field = new_field(kind)
    updated = target.model_copy(update={"children": (*target.children, field)})
    nodes = [updated if node.id == section_id else node for node in tree.nodes]
    return _with_nodes(tree, nodes), field.id


def _locate(tree: FormTree, node_id: str) -> Optional[Tuple[Optional[int], int]]:
    """Return ``(section_index, index)``; section_index is None for root nodes."""
    for index, node in enumerate(tree.nodes):
        if node.id == node_id:
            return None, index
    for section_index, node in enumerate(tree.nodes):
        if not isinstance(node, Section):
            continue
        for index, child in enumerate(node.children):
            if child.id == node_id:
                return section_index, index
    return None


def update_node(tree: FormTree, updated: Any) -> FormTree:
    """Replace the node sharing ``updated.id`` at the root or one section down."""
    location = _locate(tree, updated.id)
    if location is None:
        logger.debug("Node %s not found, update ignored", updated.id)
        return tree.model_copy()

    section_index, index = location
    nodes = list(tree.nodes)
    if section_index is None:
        nodes[index] = updated
    else:
        section = nodes[section_index]
        children = list(section.children)
        children[index] = updated
        nodes[section_index] = section.model_copy(update={"children": tuple(children)})

    candidate = _with_nodes(tree, nodes)
    ids = collect_ids(candidate.nodes)
    if len(ids) != len(set(ids)):
        logger.warning("Update of %s would duplicate node ids, ignored", updated.id)
        return tree.model_copy()
    return candidate


def delete_node(tree: FormTree, node_id: str) -> FormTree:
    location = _locate(tree, node_id)
    if location is None:
        logger.debug("Node %s not found, delete ignored", node_id)
        return tree.model_copy()

    section_index, index = location
    nodes = list(tree.nodes)
    if section_index is None:
        del nodes[index]
    else:
        section = nodes[section_index]
        children = [child for child in section.children if child.id != node_id]
        nodes[section_index] = section.model_copy(update={"children": tuple(children)})
    return _with_nodes(tree, nodes)


def reorder_root(tree: FormTree, from_index: int, to_index: Optional[int]) -> FormTree:
    """Move one root node; a drop without destination leaves the order alone."""
    if to_index is None or not 0 <= from_index < len(tree.nodes) or to_index < 0:
        return tree.model_copy()

    nodes = list(tree.nodes)
    moved = nodes.pop(from_index)
    nodes.insert(to_index, moved)
    return _with_nodes(tree, nodes)


# Field settings


def set_required(node: Any, required: bool) -> Any:
    if isinstance(node, Section):
        return node.model_copy(update={"required": required})
    return update_validation(node, required=required)


def update_validation(field: FormField, **changes) -> FormField:
    validation = field.validation.model_copy(update=changes)
    return field.model_copy(update={"validation": validation})


def add_option(field: FormField) -> FormField:
    if not field.supports_options:
        return field
    option = _option(len(field.options) + 1)
    return field.model_copy(update={"options": (*field.options, option)})


def update_option(field: FormField, option_id: str, **changes) -> FormField:
    options = tuple(
        option.model_copy(update=changes) if option.id == option_id else option
        for option in field.options
    )
    return field.model_copy(update={"options": options})


def remove_option(field: FormField, option_id: str) -> FormField:
    options = tuple(option for option in field.options if option.id != option_id)
    return field.model_copy(update={"options": options})


def attach_conditional_rule(node: Any) -> Any:
    return node.model_copy(update={"conditionalRule": ConditionalRule()})


def update_conditional_rule(node: Any, **changes) -> Any:
    if node.conditionalRule is None:
        return node
    rule = ConditionalRule.model_validate({**node.conditionalRule.model_dump(), **changes})
    return node.model_copy(update={"conditionalRule": rule})


def remove_conditional_rule(node: Any) -> Any:
    return node.model_copy(update={"conditionalRule": None})
