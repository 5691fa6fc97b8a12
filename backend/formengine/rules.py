from __future__ import annotations

import math
import re
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Set, Tuple

from formengine.identity import ancestors_of, find_node, iter_fields, iter_nodes, walk
from formengine.schemas import ConditionalRule, FileHandle, FormTree, Section


class _Undefined:
    """Stand-in for a value that was never entered."""

    def __repr__(self) -> str:
        return "undefined"


UNDEFINED = _Undefined()

_NUMERIC = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_RADIX = {"0x": 16, "0o": 8, "0b": 2}
_RADIX_DIGITS = re.compile(r"^[0-9a-zA-Z]+$")


def js_string(value: Any) -> str:
    """Render ``value`` the way a browser's ``String()`` would."""
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return _js_number(value)
    if isinstance(value, (list, tuple)):
        return ",".join("" if item is None else js_string(item) for item in value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, FileHandle):
        return "[object File]"
    return str(value)


def _js_number(value: float) -> str:
    # fixed notation between 1e-6 and 1e21, "1e-7" / "1e+21" style outside it
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    if "e" not in text:
        return text
    if 1e-6 <= abs(value) < 1e21:
        return format(Decimal(text), "f")
    mantissa, exponent = text.split("e")
    sign = "-" if exponent.startswith("-") else "+"
    digits = exponent.lstrip("+-").lstrip("0") or "0"
    return f"{mantissa}e{sign}{digits}"


def _to_number(x: Any) -> float:
    # mirrors Number(): blank strings and null are 0, anything unparseable is NaN
    if x is UNDEFINED:
        return math.nan
    if x is None:
        return 0.0
    if isinstance(x, bool):
        return 1.0 if x else 0.0
    if isinstance(x, (int, float)):
        return float(x)
    if isinstance(x, datetime):
        moment = x if x.tzinfo else x.replace(tzinfo=timezone.utc)
        return moment.timestamp() * 1000
    if isinstance(x, date):
        return _to_number(datetime.combine(x, time.min))
    if isinstance(x, str):
        text = x.strip()
        if not text:
            return 0.0
        if text in ("Infinity", "+Infinity"):
            return math.inf
        if text == "-Infinity":
            return -math.inf
        prefix = text[:2].lower()
        if prefix in _RADIX:
            digits = text[2:]
            if not _RADIX_DIGITS.match(digits):
                return math.nan
            try:
                return float(int(digits, _RADIX[prefix]))
            except ValueError:
                return math.nan
        if _NUMERIC.match(text):
            return float(text)
        return math.nan
    return math.nan


def _compare(left: Any, op: str, right: str) -> bool:
    if op == "equals":
        return isinstance(left, str) and left == right
    if op == "not_equals":
        return not (isinstance(left, str) and left == right)
    if op == "contains":
        return right in js_string(left)
    if op == "not_contains":
        return right not in js_string(left)
    if op == "greater_than":
        return _to_number(left) > _to_number(right)
    if op == "less_than":
        return _to_number(left) < _to_number(right)
    return False


def condition_met(tree: FormTree, rule: ConditionalRule, values: Mapping[str, Any]) -> bool:
    """
    Evaluate ``rule`` against the live values.

    The referenced id must exist somewhere in ``tree``; a dangling or empty
    reference is never met. The value itself is read from ``values``, so a
    field that was never touched compares as ``undefined``.
    """
    if not rule.fieldId or find_node(tree, rule.fieldId) is None:
        return False

    field_value = values.get(rule.fieldId, UNDEFINED)
    return _compare(field_value, rule.operator, rule.value)


def is_visible(tree: FormTree, node: Any, values: Mapping[str, Any]) -> bool:
    rule = node.conditionalRule
    if rule is None:
        return True

    met = condition_met(tree, rule, values)
    return met if rule.action == "show" else not met


def visibility_of(tree: FormTree, values: Mapping[str, Any]) -> Callable[[Any], bool]:
    """Bind ``tree`` and ``values`` for use by the validation walk."""
    def _visible(node: Any) -> bool:
        return is_visible(tree, node, values)

    return _visible


def is_effectively_visible(tree: FormTree, node: Any, values: Mapping[str, Any]) -> bool:
    """A node is shown only when it and every enclosing section are visible."""
    if not is_visible(tree, node, values):
        return False
    return all(is_visible(tree, section, values) for section in ancestors_of(tree, node.id))


def visible_field_ids(tree: FormTree, values: Mapping[str, Any]) -> List[str]:
    visible: List[str] = []
    hidden_sections: Set[str] = set()

    for node, parent in walk(tree.nodes):
        if parent is not None and parent.id in hidden_sections:
            if isinstance(node, Section):
                hidden_sections.add(node.id)
            continue
        if not is_visible(tree, node, values):
            if isinstance(node, Section):
                hidden_sections.add(node.id)
            continue
        if not isinstance(node, Section):
            visible.append(node.id)

    return visible


def _references(tree: FormTree) -> Dict[str, str]:
    return {
        node.id: node.conditionalRule.fieldId
        for node in iter_nodes(tree)
        if node.conditionalRule is not None
    }


def _find_cycle(start: str, edges: Dict[str, str]) -> Optional[List[str]]:
    path: List[str] = []
    current: Optional[str] = start
    while current is not None and current in edges:
        if current in path:
            return path[path.index(current):] + [current]
        path.append(current)
        current = edges[current]
    return None


class ConditionalIssue(NamedTuple):
    nodeId: str
    kind: str  # empty, self, missing, section or cycle
    target: str
    message: str

    @property
    def key(self) -> Tuple[str, str, str]:
        """Identity of the problem, stable across relabelling."""
        return self.nodeId, self.kind, self.target


def conditional_problems(tree: FormTree) -> List[ConditionalIssue]:
    """
    Report conditional rules that can never behave sensibly.

    Evaluation itself stays single pass, so none of these can hang; they are
    surfaced so an editor can flag or refuse the change.
    """
    issues: List[ConditionalIssue] = []
    labels = {node.id: node.label for node in iter_nodes(tree)}
    field_ids = {field.id for field in iter_fields(tree.nodes)}
    edges = _references(tree)

    for node_id, target in edges.items():
        label = labels[node_id]
        if not target:
            issues.append(ConditionalIssue(
                node_id, "empty", target, f'"{label}" has a condition without a source field'))
        elif target == node_id:
            issues.append(ConditionalIssue(
                node_id, "self", target, f'"{label}" has a condition that depends on itself'))
        elif target not in labels:
            issues.append(ConditionalIssue(
                node_id, "missing", target, f'"{label}" depends on a field that does not exist'))
        elif target not in field_ids:
            issues.append(ConditionalIssue(
                node_id, "section", target,
                f'"{label}" depends on section "{labels[target]}", which has no value'))

    reported: Set[frozenset] = set()
    for node_id in edges:
        cycle = _find_cycle(node_id, edges)
        if not cycle or len(cycle) <= 2:
            continue
        members = frozenset(cycle)
        if members in reported:
            continue
        reported.add(members)
        names = " -> ".join(f'"{labels.get(item, item)}"' for item in cycle)
        issues.append(ConditionalIssue(
            "", "cycle", ",".join(sorted(members)), f"Conditional dependency cycle: {names}"))

    return issues


def find_conditional_issues(tree: FormTree) -> List[str]:
    return [issue.message for issue in conditional_problems(tree)]
