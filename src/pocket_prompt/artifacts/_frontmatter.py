# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Frontmatter parsing and serialization for prompt and template files.

Files start with a ``---`` line, followed by a YAML mapping, a closing
``---`` line, a blank line, and the Markdown body::

    ---
    id: code-review
    version: 1.0.0
    title: Code Review
    ---

    Review the following change...
"""

import re
from datetime import datetime
from typing import Any, Final

import pendulum
import yaml

from ._types import (
    DEFAULT_VERSION,
    BulletStyle,
    Prompt,
    Slot,
    Template,
    TemplateConstraints,
)

# =============================================================================
# Constants
# =============================================================================

DELIMITER: Final = "---"

ID_PATTERN: Final = re.compile(r"^[a-zA-Z0-9_-]+$")
"""Allowed characters in prompt and template ids."""

# =============================================================================
# Generic Frontmatter
# =============================================================================


def normalize_body(body: str) -> str:
    """Canonical form of a body as it reads back from disk.

    Leading blank space and trailing newlines are dropped. The function is
    idempotent, and
    ``normalize_body(parse(serialize(body))) == normalize_body(body)``, so
    comparing normalized bodies ignores differences the file format cannot
    represent.
    """
    return body.lstrip(" \t\n").rstrip("\n")


def parse_frontmatter(content: str) -> tuple[dict[str, Any], str]:  # pyright: ignore[reportExplicitAny]
    """Split a document into its YAML mapping and body.

    The body is returned through :func:`normalize_body`.

    Args:
        content: Full file content.

    Returns:
        Tuple of (frontmatter mapping, body).

    Raises:
        ValueError: If the delimiters are missing or the YAML is invalid.
        TypeError: If the frontmatter is not a mapping.
    """
    lines = content.split("\n")
    if not lines or lines[0].rstrip("\r") != DELIMITER:
        msg = "Frontmatter must start with '---'"
        raise ValueError(msg)

    try:
        end = next(
            i for i, line in enumerate(lines[1:], start=1) if line.rstrip("\r") == DELIMITER
        )
    except StopIteration:
        msg = "Frontmatter closing '---' not found"
        raise ValueError(msg) from None

    frontmatter_str = "\n".join(lines[1:end])
    body = normalize_body("\n".join(lines[end + 1 :]))

    try:
        data = yaml.safe_load(frontmatter_str) if frontmatter_str.strip() else {}
    except yaml.YAMLError as e:
        msg = f"Invalid YAML in frontmatter: {e}"
        raise ValueError(msg) from e

    if not isinstance(data, dict):
        msg = "Frontmatter must be a YAML dictionary"
        raise TypeError(msg)

    return data, body


def serialize_frontmatter(
    data: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    body: str,
) -> str:
    """Render a YAML mapping and body as a frontmatter document."""
    yaml_str = yaml.safe_dump(
        data,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )
    document = f"{DELIMITER}\n{yaml_str}{DELIMITER}\n"
    if body:
        document += f"\n{body}"
        if not body.endswith("\n"):
            document += "\n"
    return document


# =============================================================================
# Field Helpers
# =============================================================================


def parse_timestamp(value: object) -> datetime | None:
    """Parse a timestamp from YAML (string or native datetime).

    Raises:
        ValueError: If a string value is not ISO 8601.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return pendulum.instance(value)
    try:
        parsed = pendulum.parse(str(value))
    except ValueError as e:
        msg = f"Invalid datetime format: {value!r}"
        raise ValueError(msg) from e
    if not isinstance(parsed, datetime):
        msg = f"Expected a date and time, got {value!r}"
        raise ValueError(msg)  # noqa: TRY004
    return parsed


def format_timestamp(value: datetime | None) -> str | None:
    """Format a timestamp as ISO 8601, or None."""
    if value is None:
        return None
    return pendulum.instance(value).to_iso8601_string()


def _to_tags(value: object) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value)
    msg = f"Tags must be a list, got {type(value).__name__}"
    raise TypeError(msg)


def _to_mapping(value: object) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    if value is None:
        return {}
    if isinstance(value, dict):
        return dict(value)
    msg = f"Metadata must be a mapping, got {type(value).__name__}"
    raise TypeError(msg)


def _optional_str(value: object) -> str | None:
    return None if value is None or value == "" else str(value)


def _optional_int(value: object) -> int | None:
    if value is None or value == 0:
        return None
    return int(str(value))


# =============================================================================
# Prompts
# =============================================================================


def parse_prompt(content: str, file_path: str = "") -> Prompt:
    """Parse a prompt file.

    Args:
        content: Full file content.
        file_path: Path relative to the library root.

    Returns:
        The prompt, including its body.

    Raises:
        ValueError: If the document or a field value is invalid.
        TypeError: If a field has the wrong shape.
    """
    data, body = parse_frontmatter(content)
    return prompt_from_mapping(data, content=body, file_path=file_path)


def prompt_from_mapping(
    data: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    *,
    content: str | None = None,
    file_path: str = "",
) -> Prompt:
    """Build a prompt from its frontmatter mapping.

    Raises:
        ValueError: If ``id`` is missing or a timestamp is invalid.
        TypeError: If a field has the wrong shape.
    """
    prompt_id = data.get("id")
    if not prompt_id:
        msg = "Prompt frontmatter is missing 'id'"
        raise ValueError(msg)

    return Prompt(
        id=str(prompt_id),
        name=str(data.get("title") or ""),
        summary=str(data.get("description") or ""),
        content=content,
        tags=_to_tags(data.get("tags")),
        version=str(data.get("version") or DEFAULT_VERSION),
        template_ref=_optional_str(data.get("template")),
        pack=_optional_str(data.get("pack")),
        metadata=_to_mapping(data.get("metadata")),
        created_at=parse_timestamp(data.get("created_at")),
        updated_at=parse_timestamp(data.get("updated_at")),
        file_path=file_path,
    )


def prompt_frontmatter(prompt: Prompt) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Build the frontmatter mapping for a prompt (without the body)."""
    data: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
        "id": prompt.id,
        "version": prompt.version,
        "title": prompt.name,
        "description": prompt.summary,
        "tags": list(prompt.tags),
    }
    if prompt.template_ref:
        data["template"] = prompt.template_ref
    if prompt.pack:
        data["pack"] = prompt.pack
    if prompt.metadata:
        data["metadata"] = prompt.metadata
    data["created_at"] = format_timestamp(prompt.created_at)
    data["updated_at"] = format_timestamp(prompt.updated_at)
    return data


def serialize_prompt(prompt: Prompt) -> str:
    """Render a prompt as a frontmatter document."""
    return serialize_frontmatter(prompt_frontmatter(prompt), prompt.content or "")


# =============================================================================
# Templates
# =============================================================================


def _parse_slots(value: object) -> tuple[Slot, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        msg = f"Slots must be a list, got {type(value).__name__}"
        raise TypeError(msg)

    slots: list[Slot] = []
    for item in value:
        if not isinstance(item, dict) or not item.get("name"):
            msg = "Each slot must be a mapping with a 'name'"
            raise TypeError(msg)
        slots.append(
            Slot(
                name=str(item["name"]),
                description=str(item.get("description") or ""),
                required=bool(item.get("required", False)),
                default=str(item.get("default") or ""),
            )
        )
    return tuple(slots)


def _parse_constraints(value: object) -> TemplateConstraints:
    mapping = _to_mapping(value)
    bullet = _optional_str(mapping.get("bullet_style"))
    return TemplateConstraints(
        required_headings=_to_tags(mapping.get("required_headings")),
        bullet_style=BulletStyle(bullet) if bullet else None,
        max_word_count=_optional_int(mapping.get("max_word_count")),
        min_word_count=_optional_int(mapping.get("min_word_count")),
        required_sections=_to_tags(mapping.get("required_sections")),
    )


def parse_template(content: str, file_path: str = "") -> Template:
    """Parse a template file.

    Raises:
        ValueError: If the document or a field value is invalid.
        TypeError: If a field has the wrong shape.
    """
    data, body = parse_frontmatter(content)

    template_id = data.get("id")
    if not template_id:
        msg = "Template frontmatter is missing 'id'"
        raise ValueError(msg)

    return Template(
        id=str(template_id),
        name=str(data.get("name") or ""),
        description=str(data.get("description") or ""),
        content=body,
        version=str(data.get("version") or DEFAULT_VERSION),
        slots=_parse_slots(data.get("slots")),
        constraints=_parse_constraints(data.get("constraints")),
        metadata=_to_mapping(data.get("metadata")),
        created_at=parse_timestamp(data.get("created_at")),
        updated_at=parse_timestamp(data.get("updated_at")),
        file_path=file_path,
    )


def _constraints_mapping(constraints: TemplateConstraints) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    data: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    if constraints.required_headings:
        data["required_headings"] = list(constraints.required_headings)
    if constraints.bullet_style is not None:
        data["bullet_style"] = constraints.bullet_style.value
    if constraints.max_word_count is not None:
        data["max_word_count"] = constraints.max_word_count
    if constraints.min_word_count is not None:
        data["min_word_count"] = constraints.min_word_count
    if constraints.required_sections:
        data["required_sections"] = list(constraints.required_sections)
    return data


def serialize_template(template: Template) -> str:
    """Render a template as a frontmatter document."""
    data: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
        "id": template.id,
        "version": template.version,
        "name": template.name,
        "description": template.description,
        "slots": [
            {
                "name": slot.name,
                "description": slot.description,
                "required": slot.required,
                "default": slot.default,
            }
            for slot in template.slots
        ],
    }
    constraints = _constraints_mapping(template.constraints)
    if constraints:
        data["constraints"] = constraints
    if template.metadata:
        data["metadata"] = template.metadata
    data["created_at"] = format_timestamp(template.created_at)
    data["updated_at"] = format_timestamp(template.updated_at)
    return serialize_frontmatter(data, template.content)
