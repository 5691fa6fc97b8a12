"""Identity and lookup helpers shared by the mutator and the evaluators."""

from __future__ import annotations

import uuid
from collections import Counter
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from pydantic import TypeAdapter, ValidationError

from formengine.errors import InvalidSchemaError
from formengine.schemas import FormField, FormTree, Node, Section

_node_adapter: TypeAdapter = TypeAdapter(Node)


def new_id() -> str:
    """Return a fresh node, option or submission identifier."""

    return str(uuid.uuid4())


def walk(nodes: Sequence[Any]) -> Iterator[Tuple[Any, Optional[Section]]]:
    """Yield ``(node, parent_section)`` depth-first in display order."""

    stack: List[Tuple[Any, Optional[Section]]] = [(node, None) for node in reversed(nodes)]
    while stack:
        node, parent = stack.pop()
        yield node, parent
        if isinstance(node, Section):
            stack.extend((child, node) for child in reversed(node.children))


def iter_nodes(tree: FormTree) -> Iterator[Any]:
    for node, _ in walk(tree.nodes):
        yield node


def iter_fields(nodes: Sequence[Any]) -> Iterator[FormField]:
    """Yield every field below ``nodes`` at any depth."""

    for node, _ in walk(nodes):
        if isinstance(node, FormField):
            yield node


def find_node(tree: FormTree, node_id: str) -> Optional[Any]:
    for node in iter_nodes(tree):
        if node.id == node_id:
            return node
    return None


def ancestors_of(tree: FormTree, node_id: str) -> List[Section]:
    """Return the sections enclosing ``node_id``, outermost first."""

    parents: Dict[str, Optional[Section]] = {}
    for node, parent in walk(tree.nodes):
        parents.setdefault(node.id, parent)

    chain: List[Section] = []
    parent = parents.get(node_id)
    while parent is not None:
        chain.append(parent)
        parent = parents.get(parent.id)
    chain.reverse()
    return chain


def collect_ids(nodes: Sequence[Any]) -> List[str]:
    return [node.id for node, _ in walk(nodes)]


def duplicate_ids(nodes: Sequence[Any]) -> List[str]:
    counts = Counter(collect_ids(nodes))
    return [node_id for node_id, count in counts.items() if count > 1]


def _describe(exc: ValidationError) -> List[str]:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()))
        problems.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return problems


def parse_node(payload: Dict[str, Any]) -> Any:
    """Load a field or section from a plain mapping, dispatching on ``kind``."""

    try:
        node = _node_adapter.validate_python(payload)
    except ValidationError as exc:
        raise InvalidSchemaError("Invalid form node", _describe(exc)) from exc

    dupes = duplicate_ids([node])
    if dupes:
        raise InvalidSchemaError("Duplicate node ids", dupes)
    return node


def load_tree(payload: Dict[str, Any]) -> FormTree:
    """Load a whole form tree, rejecting malformed nodes and repeated ids."""

    try:
        tree = FormTree.model_validate(payload)
    except ValidationError as exc:
        raise InvalidSchemaError("Invalid form tree", _describe(exc)) from exc

    dupes = duplicate_ids(tree.nodes)
    if dupes:
        raise InvalidSchemaError("Duplicate node ids", dupes)
    return tree
