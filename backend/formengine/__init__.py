"""Form schema engine: fields, sections, visibility, validation and submissions."""

from .rules import find_conditional_issues, is_visible, visibility_of, visible_field_ids  # noqa: F401
from .schemas import (  # noqa: F401
    ConditionalRule,
    FileHandle,
    FormField,
    FormStyle,
    FormSubmission,
    FormTree,
    Option,
    Section,
    ValidationRule,
)
from .session import FormSession  # noqa: F401
from .validation import validate_field, validate_section, validate_tree  # noqa: F401
