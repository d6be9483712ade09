"""Tests for tag expression evaluation."""

import pytest

from pocket_prompt.expression import (
    And,
    Not,
    Or,
    Tag,
    Xor,
    collect_tags,
    evaluate,
    parse_expression,
)


class TestEvaluate:
    def test_none_matches_everything(self) -> None:
        assert evaluate(None, [])
        assert evaluate(None, ["anything"])

    def test_tag_match_is_case_insensitive(self) -> None:
        assert evaluate(Tag("Python"), ["python"])
        assert evaluate(Tag("python"), ["PYTHON"])
        assert not evaluate(Tag("python"), ["rust"])

    def test_empty_and_is_true(self) -> None:
        assert evaluate(And(()), [])

    def test_empty_or_is_false(self) -> None:
        assert not evaluate(Or(()), ["ai"])

    @pytest.mark.parametrize(
        ("tags", "expected"),
        [
            ([], False),
            (["a"], True),
            (["b"], True),
            (["a", "b"], False),
        ],
    )
    def test_xor_is_exclusive(self, tags: list[str], expected: bool) -> None:
        assert evaluate(Xor(Tag("a"), Tag("b")), tags) is expected

    def test_not_inverts(self) -> None:
        assert evaluate(Not(Tag("draft")), ["ai"])
        assert not evaluate(Not(Tag("draft")), ["draft"])

    @pytest.mark.parametrize(
        ("tags", "expected"),
        [
            (["ai", "python"], True),
            (["ai", "rust"], True),
            (["ai", "python", "draft"], False),
            (["python"], False),
            (["AI", "Rust"], True),
        ],
    )
    def test_realistic_query(self, tags: list[str], expected: bool) -> None:
        expression = parse_expression("ai AND (python OR rust) AND NOT draft")

        assert evaluate(expression, tags) is expected

    def test_accepts_any_iterable_of_tags(self) -> None:
        assert evaluate(Tag("ai"), ("ai",))
        assert evaluate(Tag("ai"), iter(["ai"]))


class TestCollectTags:
    def test_none_has_no_tags(self) -> None:
        assert collect_tags(None) == set()

    def test_collects_from_every_node_type(self) -> None:
        expression = parse_expression("a AND (b OR c) AND NOT d XOR e")

        assert collect_tags(expression) == {"a", "b", "c", "d", "e"}

    def test_duplicates_collapse(self) -> None:
        assert collect_tags(Or((Tag("a"), Tag("a")))) == {"a"}
