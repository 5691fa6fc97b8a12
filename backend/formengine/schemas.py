from __future__ import annotations

from datetime import datetime
from types import MappingProxyType
from typing import Annotated, Any, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


FieldKind = Literal[
    "text", "dropdown", "checkbox", "radio", "file", "date", "phone", "country", "email"
]
Operator = Literal[
    "equals", "not_equals", "contains", "not_contains", "greater_than", "less_than"
]
Action = Literal["show", "hide"]

FIELD_KINDS: Tuple[str, ...] = (
    "text", "dropdown", "checkbox", "radio", "file", "date", "phone", "country", "email"
)
OPTION_KINDS = frozenset({"dropdown", "radio", "checkbox"})
PATTERN_KINDS = frozenset({"text", "phone"})
LENGTH_KINDS = frozenset({"text"})


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Option(_Frozen):
    id: str
    label: str
    value: str


class ValidationRule(_Frozen):
    required: bool = False
    pattern: Optional[str] = None
    minLength: Optional[int] = None
    maxLength: Optional[int] = None


class ConditionalRule(_Frozen):
    # fieldId may point at any node; an unknown id never satisfies the rule
    fieldId: str = ""
    operator: Operator = "equals"
    value: str = ""
    action: Action = "show"


class FormField(_Frozen):
    id: str
    kind: FieldKind
    label: str
    placeholder: Optional[str] = None
    options: Tuple[Option, ...] = ()
    validation: ValidationRule = Field(default_factory=ValidationRule)
    conditionalRule: Optional[ConditionalRule] = None

    @property
    def supports_options(self) -> bool:
        return self.kind in OPTION_KINDS


class Section(_Frozen):
    id: str
    kind: Literal["section"] = "section"
    label: str
    required: bool = False
    children: Tuple["Node", ...] = ()
    conditionalRule: Optional[ConditionalRule] = None


Node = Annotated[Union[FormField, Section], Field(discriminator="kind")]


class FormTree(_Frozen):
    title: str = "Untitled Form"
    nodes: Tuple[Node, ...] = ()


class FormStyle(_Frozen):
    """Visual settings handed to the renderer untouched."""

    backgroundColor: str = "#ffffff"
    headerColor: str = "#000000"
    textColor: str = "#000000"
    buttonColor: str = "#0f172a"
    borderColor: str = "#e2e8f0"
    borderRadius: Literal["none", "sm", "md", "lg", "xl", "full"] = "md"


class FileHandle(_Frozen):
    """Value captured for a file field."""

    name: str
    size: int = 0
    contentType: Optional[str] = None
    url: Optional[str] = None


class FormSubmission(_Frozen):
    id: str
    timestamp: datetime
    values: Mapping[str, Any]

    @field_validator("values", mode="after")
    @classmethod
    def freeze_values(cls, values):
        # snapshot taken at submit time, never writable afterwards
        return MappingProxyType(dict(values))

    @field_serializer("values")
    def dump_values(self, values):
        return dict(values)


Section.model_rebuild()
FormTree.model_rebuild()
