"""Tests for frontmatter parsing and prompt/template serialization."""

from datetime import UTC, datetime

import pytest

from pocket_prompt.artifacts import (
    BulletStyle,
    Prompt,
    Slot,
    Template,
    TemplateConstraints,
    format_timestamp,
    normalize_body,
    parse_frontmatter,
    parse_prompt,
    parse_template,
    parse_timestamp,
    serialize_frontmatter,
    serialize_prompt,
    serialize_template,
)

PROMPT_FILE = """---
id: code-review
version: 1.2.0
title: Code Review
description: Review a change for bugs
tags:
- coding
- review
template: review-template
metadata:
  original_path: imports/review.md
created_at: '2024-01-15T10:30:00Z'
updated_at: '2024-02-01T08:00:00Z'
---

Review the following change.

Focus on correctness.
"""


class TestParseFrontmatter:
    def test_splits_mapping_and_body(self) -> None:
        data, body = parse_frontmatter("---\nid: a\n---\n\nHello\n")

        assert data == {"id": "a"}
        assert body == "Hello"

    def test_empty_frontmatter_is_empty_mapping(self) -> None:
        data, body = parse_frontmatter("---\n---\nBody")

        assert data == {}
        assert body == "Body"

    def test_keeps_inner_blank_lines_and_trailing_spaces_of_body(self) -> None:
        _, body = parse_frontmatter("---\nid: a\n---\n\nLine 1\n\nLine 2  \n")

        assert body == "Line 1\n\nLine 2  "

    def test_accepts_crlf_delimiters(self) -> None:
        data, _ = parse_frontmatter("---\r\nid: a\r\n---\r\nBody")

        assert data["id"] == "a"

    def test_rejects_missing_opening_delimiter(self) -> None:
        with pytest.raises(ValueError, match="must start"):
            parse_frontmatter("id: a\n---\n")

    def test_rejects_missing_closing_delimiter(self) -> None:
        with pytest.raises(ValueError, match="closing"):
            parse_frontmatter("---\nid: a\n")

    def test_rejects_invalid_yaml(self) -> None:
        with pytest.raises(ValueError, match="Invalid YAML"):
            parse_frontmatter("---\nid: [unclosed\n---\n")

    def test_rejects_non_mapping(self) -> None:
        with pytest.raises(TypeError, match="dictionary"):
            parse_frontmatter("---\n- a\n- b\n---\n")


class TestSerializeFrontmatter:
    def test_layout(self) -> None:
        document = serialize_frontmatter({"id": "a", "title": "A"}, "Body")

        assert document == "---\nid: a\ntitle: A\n---\n\nBody\n"

    def test_empty_body_has_no_blank_line(self) -> None:
        assert serialize_frontmatter({"id": "a"}, "") == "---\nid: a\n---\n"

    def test_round_trips_body(self) -> None:
        body = "# Heading\n\n- item\n- item"

        _, parsed = parse_frontmatter(serialize_frontmatter({"id": "a"}, body))

        assert parsed == body


class TestNormalizeBody:
    @pytest.mark.parametrize(
        ("body", "expected"),
        [
            ("Hello\n", "Hello"),
            ("\n\n  Indented\n", "Indented"),
            ("Line 1\n\nLine 2  \n\n", "Line 1\n\nLine 2  "),
            ("", ""),
        ],
    )
    def test_normalizes(self, body: str, expected: str) -> None:
        assert normalize_body(body) == expected

    def test_is_idempotent(self) -> None:
        body = "\n  text\n\n\n"

        assert normalize_body(normalize_body(body)) == normalize_body(body)

    @pytest.mark.parametrize("body", ["Hello\n", "    code", "a\n\n\n", " \n"])
    def test_matches_what_is_read_back(self, body: str) -> None:
        _, parsed = parse_frontmatter(serialize_frontmatter({"id": "a"}, body))

        assert parsed == normalize_body(body)


class TestTimestamps:
    def test_parses_iso_string(self) -> None:
        parsed = parse_timestamp("2024-01-15T10:30:00Z")

        assert parsed == datetime(2024, 1, 15, 10, 30, tzinfo=UTC)

    def test_accepts_native_datetime(self) -> None:
        value = datetime(2024, 1, 15, 10, 30, tzinfo=UTC)

        assert parse_timestamp(value) == value

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty_is_none(self, value: object) -> None:
        assert parse_timestamp(value) is None

    def test_rejects_garbage(self) -> None:
        with pytest.raises(ValueError, match="Invalid datetime"):
            parse_timestamp("not a date")

    def test_format_none(self) -> None:
        assert format_timestamp(None) is None

    def test_format_round_trips(self) -> None:
        value = datetime(2024, 1, 15, 10, 30, tzinfo=UTC)

        assert parse_timestamp(format_timestamp(value)) == value


class TestPrompts:
    def test_parse_maps_frontmatter_keys(self) -> None:
        prompt = parse_prompt(PROMPT_FILE, "prompts/code-review.md")

        assert prompt.id == "code-review"
        assert prompt.name == "Code Review"
        assert prompt.summary == "Review a change for bugs"
        assert prompt.tags == ("coding", "review")
        assert prompt.version == "1.2.0"
        assert prompt.template_ref == "review-template"
        assert prompt.metadata == {"original_path": "imports/review.md"}
        assert prompt.created_at == datetime(2024, 1, 15, 10, 30, tzinfo=UTC)
        assert prompt.file_path == "prompts/code-review.md"
        assert prompt.content == "Review the following change.\n\nFocus on correctness."

    def test_defaults_for_missing_fields(self) -> None:
        prompt = parse_prompt("---\nid: minimal\n---\n")

        assert prompt.name == ""
        assert prompt.tags == ()
        assert prompt.version == "1.0.0"
        assert prompt.template_ref is None
        assert prompt.created_at is None
        assert prompt.content == ""

    def test_single_string_tag(self) -> None:
        prompt = parse_prompt("---\nid: a\ntags: solo\n---\n")

        assert prompt.tags == ("solo",)

    def test_rejects_missing_id(self) -> None:
        with pytest.raises(ValueError, match="missing 'id'"):
            parse_prompt("---\ntitle: No id\n---\n")

    def test_rejects_mapping_tags(self) -> None:
        with pytest.raises(TypeError, match="Tags must be a list"):
            parse_prompt("---\nid: a\ntags:\n  a: b\n---\n")

    def test_serialize_round_trips(self) -> None:
        prompt = parse_prompt(PROMPT_FILE, "prompts/code-review.md")

        assert parse_prompt(serialize_prompt(prompt), "prompts/code-review.md") == prompt

    def test_serialize_omits_empty_optional_keys(self) -> None:
        document = serialize_prompt(Prompt(id="a", name="A", content="Body"))

        assert "template:" not in document
        assert "pack:" not in document
        assert "metadata:" not in document

    def test_timestamps_stay_strings_in_yaml(self) -> None:
        prompt = Prompt(
            id="a",
            created_at=datetime(2024, 1, 15, 10, 30, tzinfo=UTC),
            content="Body",
        )

        assert "created_at: '2024-01-15T10:30:00Z'" in serialize_prompt(prompt)


class TestTemplates:
    def test_round_trip_with_slots_and_constraints(self) -> None:
        template = Template(
            id="review-template",
            name="Review",
            description="Structure for reviews",
            content="# Summary\n\n{{change}}",
            version="2.0.0",
            slots=(
                Slot(name="change", description="The diff", required=True),
                Slot(name="tone", default="neutral"),
            ),
            constraints=TemplateConstraints(
                required_headings=("Summary",),
                bullet_style=BulletStyle.HYPHEN,
                max_word_count=200,
            ),
            file_path="templates/review-template.md",
        )

        parsed = parse_template(serialize_template(template), "templates/review-template.md")

        assert parsed == template

    def test_unknown_bullet_style_is_rejected(self) -> None:
        document = "---\nid: t\nconstraints:\n  bullet_style: dash\n---\n"

        with pytest.raises(ValueError, match="dash"):
            parse_template(document)

    def test_slot_without_name_is_rejected(self) -> None:
        with pytest.raises(TypeError, match="slot"):
            parse_template("---\nid: t\nslots:\n- description: nameless\n---\n")
