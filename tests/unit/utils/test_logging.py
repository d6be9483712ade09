"""Tests for structlog logger factories."""

from pathlib import Path

import orjson
import pytest

from pocket_prompt.utils import (
    create_library_logger,
    create_logger,
    get_log_file,
    get_null_logger,
)


def _lines(path: Path) -> list[str]:
    return [line for line in path.read_text().splitlines() if line]


class TestCreateLogger:
    def test_json_lines(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "test.log"
        logger = create_logger(log_file, level="info")

        logger.info("prompt_created", id="code-review")

        entry = orjson.loads(_lines(log_file)[0])
        assert entry["event"] == "prompt_created"
        assert entry["id"] == "code-review"
        assert entry["level"] == "info"
        assert "timestamp" in entry

    def test_level_threshold(self, tmp_path: Path) -> None:
        log_file = tmp_path / "test.log"
        logger = create_logger(log_file, level="warning")

        logger.info("ignored")
        logger.warning("kept")

        assert [orjson.loads(line)["event"] for line in _lines(log_file)] == ["kept"]

    def test_debug_environment_variable(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("POCKET_PROMPT_DEBUG", "1")
        log_file = tmp_path / "test.log"
        logger = create_logger(log_file, level="error")

        logger.debug("verbose")

        assert len(_lines(log_file)) == 1

    def test_text_format(self, tmp_path: Path) -> None:
        log_file = tmp_path / "test.log"
        logger = create_logger(log_file, log_format="text")

        logger.info("listing_loaded", count=3)

        line = _lines(log_file)[0]
        assert "listing_loaded" in line
        assert "count=3" in line


class TestLibraryLogger:
    def test_default_location_and_command(self, library_root: Path) -> None:
        logger = create_library_logger(library_root, command="list")

        logger.info("command_started")

        entry = orjson.loads(_lines(get_log_file(library_root))[0])
        assert entry["command"] == "list"

    def test_explicit_file(self, tmp_path: Path, library_root: Path) -> None:
        log_file = tmp_path / "custom.log"
        logger = create_library_logger(library_root, log_file=str(log_file))

        logger.warning("custom")

        assert log_file.is_file()
        assert not get_log_file(library_root).exists()


def test_null_logger_accepts_everything() -> None:
    logger = get_null_logger()

    logger.critical("dropped", detail="x")
    logger.bind(command="list").info("dropped")
