"""Tests for template constraint validation."""

from pocket_prompt.artifacts import (
    BulletStyle,
    Slot,
    Template,
    TemplateConstraints,
    ValidationIssue,
    validate_constraints,
    validate_content,
)

CONTENT = """# Summary

The change adds caching.

## Risks

- Stale entries
- Memory growth

**Verdict**: approve
"""


def _rules(issues: list[ValidationIssue]) -> list[str]:
    return [issue.rule for issue in issues]


class TestValidateConstraints:
    def test_empty_constraints_accept_anything(self) -> None:
        assert validate_constraints(CONTENT, TemplateConstraints()) == []

    def test_required_headings_any_level_case_insensitive(self) -> None:
        constraints = TemplateConstraints(required_headings=("summary", "RISKS"))

        assert validate_constraints(CONTENT, constraints) == []

    def test_reports_missing_heading(self) -> None:
        constraints = TemplateConstraints(required_headings=("Alternatives",))

        issues = validate_constraints(CONTENT, constraints)

        assert _rules(issues) == ["required_headings"]
        assert "Alternatives" in issues[0].message
        assert issues[0].level == "error"

    def test_sections_match_headings_and_bold_labels(self) -> None:
        constraints = TemplateConstraints(required_sections=("Risks", "Verdict"))

        assert validate_constraints(CONTENT, constraints) == []

    def test_sections_match_plain_labels(self) -> None:
        constraints = TemplateConstraints(required_sections=("Context",))

        assert validate_constraints("Context:\nSome text", constraints) == []

    def test_reports_missing_section(self) -> None:
        constraints = TemplateConstraints(required_sections=("Rollback",))

        assert _rules(validate_constraints(CONTENT, constraints)) == ["required_sections"]

    def test_accepts_matching_bullet_style(self) -> None:
        constraints = TemplateConstraints(bullet_style=BulletStyle.HYPHEN)

        assert validate_constraints(CONTENT, constraints) == []

    def test_reports_each_wrong_bullet(self) -> None:
        constraints = TemplateConstraints(bullet_style=BulletStyle.ASTERISK)

        issues = validate_constraints(CONTENT, constraints)

        assert _rules(issues) == ["bullet_style", "bullet_style"]
        assert "Line 7" in issues[0].message

    def test_bold_text_is_not_a_bullet(self) -> None:
        constraints = TemplateConstraints(bullet_style=BulletStyle.HYPHEN)

        assert validate_constraints("**Bold** start", constraints) == []

    def test_word_count_bounds(self) -> None:
        too_short = TemplateConstraints(min_word_count=100)
        too_long = TemplateConstraints(max_word_count=5)
        fits = TemplateConstraints(min_word_count=5, max_word_count=100)

        assert _rules(validate_constraints(CONTENT, too_short)) == ["min_word_count"]
        assert _rules(validate_constraints(CONTENT, too_long)) == ["max_word_count"]
        assert validate_constraints(CONTENT, fits) == []


class TestValidateContent:
    def test_warns_about_unfilled_required_slot(self) -> None:
        template = Template(
            id="t",
            slots=(Slot(name="change", required=True),),
        )

        issues = validate_content("Review {{change}} carefully", template)

        assert _rules(issues) == ["slots"]
        assert issues[0].level == "warning"

    def test_slot_with_default_is_not_reported(self) -> None:
        template = Template(id="t", slots=(Slot(name="tone", required=True, default="calm"),))

        assert validate_content("Use a {{tone}} tone", template) == []

    def test_filled_slot_is_not_reported(self) -> None:
        template = Template(id="t", slots=(Slot(name="change", required=True),))

        assert validate_content("Review the caching change", template) == []

    def test_combines_constraint_issues(self) -> None:
        template = Template(
            id="t",
            constraints=TemplateConstraints(required_headings=("Summary",)),
        )

        assert _rules(validate_content("No headings here", template)) == ["required_headings"]
