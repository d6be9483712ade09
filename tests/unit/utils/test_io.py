"""Tests for atomic file I/O helpers."""

from pathlib import Path

import pytest

from pocket_prompt.exceptions import StorageFailureError
from pocket_prompt.utils import atomic_write, read_json, write_json_atomic


class TestAtomicWrite:
    def test_writes_text_and_creates_parents(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b" / "file.md"

        atomic_write(target, "héllo\n")

        assert target.read_text(encoding="utf-8") == "héllo\n"

    def test_writes_bytes(self, tmp_path: Path) -> None:
        target = tmp_path / "file.bin"

        atomic_write(target, b"\x00\x01")

        assert target.read_bytes() == b"\x00\x01"

    def test_replaces_and_leaves_no_temp_files(self, tmp_path: Path) -> None:
        target = tmp_path / "file.md"
        atomic_write(target, "one")

        atomic_write(target, "two")

        assert target.read_text() == "two"
        assert [p.name for p in tmp_path.iterdir()] == ["file.md"]

    def test_failure_raises_storage_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(StorageFailureError) as exc_info:
            atomic_write(blocker / "file.md", "content")

        assert exc_info.value.operation == "write"


class TestJson:
    def test_round_trip_sorted_and_indented(self, tmp_path: Path) -> None:
        target = tmp_path / "data.json"

        write_json_atomic(target, {"b": 1, "a": [1, 2]})

        assert read_json(target) == {"a": [1, 2], "b": 1}
        assert target.read_text().startswith('{\n  "a"')

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(StorageFailureError) as exc_info:
            read_json(tmp_path / "missing.json")

        assert exc_info.value.operation == "read"

    def test_invalid_json(self, tmp_path: Path) -> None:
        target = tmp_path / "data.json"
        target.write_text("{oops")

        with pytest.raises(StorageFailureError) as exc_info:
            read_json(target)

        assert exc_info.value.operation == "parse"

    def test_non_object(self, tmp_path: Path) -> None:
        target = tmp_path / "data.json"
        target.write_text("[1, 2]")

        with pytest.raises(StorageFailureError, match="Expected JSON object"):
            read_json(target)
