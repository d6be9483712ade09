"""Template constraint checks for prompt content.

Checks report problems; they never block a write. Callers decide what to do
with the returned issues.

Example:
    >>> issues = validate_content(prompt.content or "", template)
    >>> if any(issue.level == "error" for issue in issues):
    ...     print("content does not follow the template")
"""

import re
from typing import Final

from ._types import BulletStyle, Template, TemplateConstraints, ValidationIssue

_HEADING_PATTERN: Final = re.compile(r"^\s{0,3}#{1,6}\s+(.+?)\s*#*\s*$")
_BULLET_PATTERN: Final = re.compile(r"^\s*([-*+])\s+\S")
_BOLD_LABEL_PATTERN: Final = re.compile(r"^\s*\*\*(.+?)\*\*")
_LABEL_PATTERN: Final = re.compile(r"^\s*([^:\n]+):\s*$")


def _headings(lines: list[str]) -> set[str]:
    found: set[str] = set()
    for line in lines:
        match = _HEADING_PATTERN.match(line)
        if match:
            found.add(match.group(1).strip().lower())
    return found


def _labels(lines: list[str]) -> set[str]:
    found: set[str] = set()
    for line in lines:
        for pattern in (_BOLD_LABEL_PATTERN, _LABEL_PATTERN):
            match = pattern.match(line)
            if match:
                found.add(match.group(1).strip().rstrip(":").lower())
    return found


def _check_bullets(lines: list[str], style: BulletStyle) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for number, line in enumerate(lines, start=1):
        match = _BULLET_PATTERN.match(line)
        if match and match.group(1) != style.marker:
            issues.append(
                ValidationIssue(
                    level="error",
                    message=(
                        f"Line {number} uses '{match.group(1)}' bullets; "
                        f"expected '{style.marker}' ({style.value})"
                    ),
                    rule="bullet_style",
                )
            )
    return issues


def validate_constraints(
    content: str, constraints: TemplateConstraints
) -> list[ValidationIssue]:
    """Check content against structural constraints.

    Args:
        content: Markdown body to check.
        constraints: Rules to apply.

    Returns:
        List of issues. Empty list indicates the content conforms.
    """
    issues: list[ValidationIssue] = []
    lines = content.splitlines()
    headings = _headings(lines)

    for heading in constraints.required_headings:
        if heading.strip().lower() not in headings:
            issues.append(
                ValidationIssue(
                    level="error",
                    message=f"Missing required heading: {heading}",
                    rule="required_headings",
                )
            )

    if constraints.required_sections:
        sections = headings | _labels(lines)
        for section in constraints.required_sections:
            if section.strip().lower() not in sections:
                issues.append(
                    ValidationIssue(
                        level="error",
                        message=f"Missing required section: {section}",
                        rule="required_sections",
                    )
                )

    if constraints.bullet_style is not None:
        issues.extend(_check_bullets(lines, constraints.bullet_style))

    word_count = len(content.split())
    if constraints.min_word_count is not None and word_count < constraints.min_word_count:
        issues.append(
            ValidationIssue(
                level="error",
                message=(
                    f"Content has {word_count} words; "
                    f"at least {constraints.min_word_count} required"
                ),
                rule="min_word_count",
            )
        )
    if constraints.max_word_count is not None and word_count > constraints.max_word_count:
        issues.append(
            ValidationIssue(
                level="error",
                message=(
                    f"Content has {word_count} words; "
                    f"at most {constraints.max_word_count} allowed"
                ),
                rule="max_word_count",
            )
        )

    return issues


def validate_content(content: str, template: Template) -> list[ValidationIssue]:
    """Check content against a template's constraints and slots.

    Required slots without a default whose ``{{name}}`` placeholder is still
    present are reported as warnings.

    Args:
        content: Markdown body to check.
        template: Template the content claims to follow.

    Returns:
        List of issues. Empty list indicates the content conforms.
    """
    issues = validate_constraints(content, template.constraints)
    for slot in template.slots:
        if slot.required and not slot.default and f"{{{{{slot.name}}}}}" in content:
            issues.append(
                ValidationIssue(
                    level="warning",
                    message=f"Required slot '{slot.name}' is not filled in",
                    rule="slots",
                )
            )
    return issues
