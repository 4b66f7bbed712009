"""
Input validation for hierarchical work item creation and wiki listing.

Raw tool arguments are checked and converted into typed models here, at the
boundary, so the creation engine only ever sees a well-formed WorkItemSpec
tree. Field values are screened the same way before they are sent to
Azure DevOps.
"""

import re
from typing import Optional, List, Dict, Any

from .constants import (
    ALLOWED_LINK_TYPES,
    HTML_FIELDS,
    NUMERIC_FIELDS,
    BulkLimits,
    FieldNames,
)
from .models import WorkItemSpec


class ValidationError(Exception):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)


# Reference names look like "System.Title" or "Custom.Team.Estimate"
FIELD_REFERENCE_PATTERN = re.compile(r'^[A-Za-z_][\w]*(\.[A-Za-z_][\w]*)+$')

# Work item type names are free text in custom processes, but never contain
# control characters or path separators
INVALID_TYPE_CHARS = re.compile(r'[\x00-\x1f/\\]')

MAX_TYPE_NAME_LENGTH = 128
MAX_HTML_LENGTH = 100000
MAX_TITLE_LENGTH = 255


class WorkItemTypeValidator:
    """Validator for work item type names."""

    @staticmethod
    def validate(work_item_type: Any) -> str:
        """
        Validate a work item type name.

        Custom process templates define their own types, so this checks the
        shape of the name rather than a fixed list.

        Raises:
            ValidationError: If the type is empty, not a string or malformed
        """
        if not isinstance(work_item_type, str) or not work_item_type.strip():
            raise ValidationError("Work item type cannot be empty", field='type')

        work_item_type = work_item_type.strip()

        if len(work_item_type) > MAX_TYPE_NAME_LENGTH:
            raise ValidationError(
                f"Work item type is too long ({len(work_item_type)} characters, "
                f"max {MAX_TYPE_NAME_LENGTH})",
                field='type'
            )

        if INVALID_TYPE_CHARS.search(work_item_type):
            raise ValidationError(
                f"Invalid work item type: '{work_item_type}'",
                field='type'
            )

        return work_item_type


class FieldNameValidator:
    """Validator for Azure DevOps field reference names."""

    @staticmethod
    def validate(field_name: str) -> str:
        """
        Validate a field reference name such as 'System.Title'.

        A '/fields/' prefix is accepted and kept.

        Raises:
            ValidationError: If the name is not a dotted reference name
        """
        if not field_name or not isinstance(field_name, str):
            raise ValidationError("Field name cannot be empty")

        clean_field_name = field_name.replace('/fields/', '', 1)

        if not FIELD_REFERENCE_PATTERN.match(clean_field_name):
            raise ValidationError(
                f"Invalid field name: '{field_name}'. "
                f"Use a reference name such as System.Title or "
                f"Microsoft.VSTS.Scheduling.StoryPoints",
                field=field_name
            )

        return field_name


class LinkTypeValidator:
    """Validator for work item link types."""

    @staticmethod
    def validate(link_type: str) -> str:
        if not link_type:
            raise ValidationError("Link type cannot be empty")

        if link_type not in ALLOWED_LINK_TYPES:
            raise ValidationError(
                f"Invalid link type: '{link_type}'. "
                f"Allowed link types: {', '.join(sorted(ALLOWED_LINK_TYPES))}"
            )

        return link_type


class PriorityValidator:
    """Validator for work item priority."""

    ALLOWED_PRIORITIES = {1, 2, 3, 4}

    @staticmethod
    def validate(priority: int) -> int:
        if priority not in PriorityValidator.ALLOWED_PRIORITIES:
            raise ValidationError(
                f"Invalid priority: {priority}. "
                f"Priority must be 1-4 (where 1 is highest)",
                field=FieldNames.PRIORITY
            )

        return priority


class BatchSizeValidator:
    """Validator for concurrent batch sizes."""

    @staticmethod
    def validate(batch_size: Any, maximum: Optional[int] = None) -> int:
        """
        Validate a batch size and clamp it to maximum when one is given.

        Raises:
            ValidationError: If batch_size is not a positive integer
        """
        if isinstance(batch_size, bool) or not isinstance(batch_size, int):
            raise ValidationError(
                f"Batch size must be an integer, got {type(batch_size).__name__}",
                field='batch_size'
            )

        if batch_size < 1:
            raise ValidationError(
                f"Batch size must be at least 1, got {batch_size}",
                field='batch_size'
            )

        if maximum is not None:
            return min(batch_size, maximum)
        return batch_size


# Convenience functions

def validate_work_item_type(work_item_type: Any) -> str:
    """Validate work item type name."""
    return WorkItemTypeValidator.validate(work_item_type)


def validate_field_name(field_name: str) -> str:
    """Validate field reference name."""
    return FieldNameValidator.validate(field_name)


def validate_link_type(link_type: str) -> str:
    """Validate link type."""
    return LinkTypeValidator.validate(link_type)


def validate_priority(priority: Optional[int]) -> Optional[int]:
    """Validate priority if provided."""
    return PriorityValidator.validate(priority) if priority is not None else None


def validate_batch_size(batch_size: Any, maximum: Optional[int] = None) -> int:
    """Validate (and optionally clamp) a batch size."""
    return BatchSizeValidator.validate(batch_size, maximum)


def validate_title(title: Any) -> Optional[str]:
    """Validate a plain-text work item title; no HTML screening applies."""
    if title is None:
        return None
    if not isinstance(title, str):
        raise ValidationError(
            f"Title must be a string, got {type(title).__name__}",
            field=FieldNames.TITLE
        )
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(
            f"Title too long: {len(title)} characters (max: {MAX_TITLE_LENGTH})",
            field=FieldNames.TITLE
        )
    return title


def validate_project_name(project: Any) -> str:
    """Validate a project name and return it stripped."""
    if not isinstance(project, str) or not project.strip():
        raise ValidationError("Project name cannot be empty", field='project')
    return project.strip()


def validate_wiki_identifier(wiki_id: Any) -> str:
    """Validate a wiki name or GUID."""
    if not isinstance(wiki_id, str) or not wiki_id.strip():
        raise ValidationError("Wiki identifier cannot be empty", field='wiki_id')
    if '/' in wiki_id or '\\' in wiki_id:
        raise ValidationError(
            f"Invalid wiki identifier: '{wiki_id}'",
            field='wiki_id'
        )
    return wiki_id.strip()


def validate_field_value(field_name: str, value: Any) -> Any:
    """
    Validate a field value based on the field it is written to.

    Args:
        field_name: The field reference name
        value: The value to validate

    Returns:
        The validated/sanitized value

    Raises:
        ValidationError: If the value is invalid for the field
    """
    clean_field_name = field_name.replace('/fields/', '', 1)

    if clean_field_name == FieldNames.TITLE:
        return validate_title(value)

    if clean_field_name == FieldNames.PRIORITY:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(
                f"Priority must be an integer, got {type(value).__name__}",
                field=clean_field_name
            )
        return validate_priority(value)

    if clean_field_name in HTML_FIELDS:
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValidationError(
                f"{clean_field_name} must be a string, got {type(value).__name__}",
                field=clean_field_name
            )
        return sanitize_html_string(value)

    if clean_field_name in NUMERIC_FIELDS:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(
                f"{clean_field_name} must be a number, got {type(value).__name__}",
                field=clean_field_name
            )
        if value < 0:
            raise ValidationError(f"{clean_field_name} cannot be negative", field=clean_field_name)
        return value

    return value


def validate_work_item_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Validate every name and value of a field mapping; returns a new dict."""
    validated = {}
    for field_name, value in fields.items():
        validate_field_name(field_name)
        validated[field_name] = validate_field_value(field_name, value)
    return validated


def sanitize_html_string(value: str, max_length: int = MAX_HTML_LENGTH) -> str:
    """
    Screen HTML content before it is written to a work item.

    Azure DevOps sanitizes HTML itself; this only rejects script content and
    enforces a length limit.

    Raises:
        ValidationError: If the string is too long or contains script content
    """
    if value is None:
        return None

    if len(value) > max_length:
        raise ValidationError(
            f"String too long: {len(value)} characters (max: {max_length})"
        )

    value = value.replace('\x00', '')

    if re.search(r'<script[^>]*>.*?</script>', value, re.IGNORECASE | re.DOTALL):
        raise ValidationError("Script tags are not allowed in HTML content")

    if re.search(r'javascript:', value, re.IGNORECASE):
        raise ValidationError("JavaScript protocol is not allowed")

    if re.search(r'\son\w+\s*=', value, re.IGNORECASE):
        raise ValidationError("Event handlers are not allowed in HTML content")

    return value


# ============================================================================
# Work item tree parsing
# ============================================================================

def parse_work_item_spec(
    raw: Any,
    location: str = "items[0]",
    depth: int = 1,
    max_depth: int = BulkLimits.MAX_DEPTH
) -> WorkItemSpec:
    """
    Convert one raw node (and its children) into a WorkItemSpec.

    Only structure is checked here. A missing title on a new item is left
    for the creation engine, which reports it against that node alone.

    Args:
        raw: Mapping with type, id, title, fields and children keys
        location: Path of this node in the input, used in error messages
        depth: Depth of this node (roots are 1)
        max_depth: Deepest nesting accepted

    Raises:
        ValidationError: If the node is structurally invalid
    """
    if not isinstance(raw, dict):
        raise ValidationError(f"{location} must be an object, got {type(raw).__name__}")

    if depth > max_depth:
        raise ValidationError(f"{location} exceeds maximum hierarchy depth of {max_depth}")

    try:
        work_item_type = validate_work_item_type(raw.get('type'))
    except ValidationError as e:
        raise ValidationError(f"{location}.type: {e.message}", field='type')

    work_item_id = raw.get('id')
    if work_item_id is not None:
        if isinstance(work_item_id, bool) or not isinstance(work_item_id, int) or work_item_id <= 0:
            raise ValidationError(
                f"{location}.id must be a positive integer, got {work_item_id!r}",
                field='id'
            )

    title = raw.get('title')
    if title is not None and not isinstance(title, str):
        raise ValidationError(f"{location}.title must be a string", field='title')
    if isinstance(title, str) and not title.strip():
        title = None

    fields = raw.get('fields') or {}
    if not isinstance(fields, dict):
        raise ValidationError(f"{location}.fields must be an object", field='fields')

    raw_children = raw.get('children') or []
    if not isinstance(raw_children, list):
        raise ValidationError(f"{location}.children must be a list", field='children')

    children = [
        parse_work_item_spec(child, f"{location}.children[{index}]", depth + 1, max_depth)
        for index, child in enumerate(raw_children)
    ]

    return WorkItemSpec(
        type=work_item_type,
        id=work_item_id,
        title=title,
        fields=dict(fields),
        children=children,
    )


def parse_work_item_specs(
    items: Any,
    max_nodes: int = BulkLimits.MAX_NODES
) -> List[WorkItemSpec]:
    """
    Convert the raw top-level forest into WorkItemSpec trees.

    Raises:
        ValidationError: If items is not a list, any node is malformed, or
            the forest holds more than max_nodes nodes
    """
    if not isinstance(items, list):
        raise ValidationError("items must be a list of work item objects", field='items')

    specs = [
        parse_work_item_spec(raw, f"items[{index}]")
        for index, raw in enumerate(items)
    ]

    total = sum(spec.count_nodes() for spec in specs)
    if total > max_nodes:
        raise ValidationError(
            f"Too many work items in one request: {total} (max: {max_nodes})",
            field='items'
        )

    return specs
