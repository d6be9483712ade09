"""Tests for layered configuration loading."""

from pathlib import Path

import pytest

from pocket_prompt.config import Config, LogFormat, LogLevel, load_config, safe_load_config
from pocket_prompt.exceptions import ConfigLoadError


@pytest.fixture
def user_config(tmp_path: Path) -> Path:
    path = tmp_path / "user-config" / "config.toml"
    path.parent.mkdir(parents=True)
    return path


@pytest.fixture
def library_config(library_root: Path) -> Path:
    path = library_root / ".pocket-prompt" / "config.toml"
    path.parent.mkdir(parents=True)
    return path


class TestDefaults:
    def test_defaults(self, library_root: Path) -> None:
        config = load_config(root=library_root, environ={})

        assert config.library_root == library_root
        assert config.sync.enabled
        assert config.sync.interval_seconds == 300
        assert config.sync.status_timeout == 1
        assert config.logging.level is LogLevel.INFO
        assert config.logging.format is LogFormat.JSON

    def test_empty_root_uses_default_location(self) -> None:
        assert Config.from_dict({}).library_root == Path.home() / ".pocket-prompt"

    def test_library_dir_environment_variable(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("POCKET_PROMPT_DIR", str(tmp_path / "elsewhere"))

        assert Config.from_dict({}).library_root == tmp_path / "elsewhere"


class TestPrecedence:
    def test_user_file(self, library_root: Path, user_config: Path) -> None:
        user_config.write_text("[sync]\nbranch = 'main'\n")

        assert load_config(root=library_root, environ={}).sync.branch == "main"

    def test_library_file_overrides_user_file(
        self, library_root: Path, user_config: Path, library_config: Path
    ) -> None:
        user_config.write_text("[sync]\nbranch = 'main'\nfetch_timeout = 5\n")
        library_config.write_text("[sync]\nbranch = 'trunk'\n")

        config = load_config(root=library_root, environ={})

        assert config.sync.branch == "trunk"
        assert config.sync.fetch_timeout == 5

    def test_library_file_found_through_user_root(
        self, library_root: Path, user_config: Path, library_config: Path
    ) -> None:
        user_config.write_text(f"root = '{library_root}'\n")
        library_config.write_text("[sync]\nbranch = 'trunk'\n")

        assert load_config(environ={}).sync.branch == "trunk"

    def test_explicit_file_overrides_library_file(
        self, tmp_path: Path, library_root: Path, library_config: Path
    ) -> None:
        library_config.write_text("[sync]\nbranch = 'trunk'\n")
        explicit = tmp_path / "explicit.toml"
        explicit.write_text("[sync]\nbranch = 'release'\n")

        config = load_config(config_path=explicit, root=library_root, environ={})

        assert config.sync.branch == "release"

    def test_environment_overrides_files(self, tmp_path: Path, library_root: Path) -> None:
        explicit = tmp_path / "explicit.toml"
        explicit.write_text("[logging]\nlevel = 'error'\n")

        config = load_config(
            config_path=explicit,
            root=library_root,
            environ={"POCKET_PROMPT_LOG_LEVEL": "debug"},
        )

        assert config.logging.level is LogLevel.DEBUG

    def test_root_argument_overrides_environment(self, tmp_path: Path, library_root: Path) -> None:
        config = load_config(
            root=library_root, environ={"POCKET_PROMPT_DIR": str(tmp_path / "env")}
        )

        assert config.library_root == library_root

    def test_environment_can_be_ignored(self, library_root: Path) -> None:
        config = load_config(
            root=library_root,
            include_env=False,
            environ={"POCKET_PROMPT_SYNC__BRANCH": "main"},
        )

        assert config.sync.branch == "master"


class TestErrors:
    def test_missing_explicit_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(config_path=tmp_path / "missing.toml", environ={})

    def test_invalid_value(self, library_root: Path, user_config: Path) -> None:
        user_config.write_text("[sync]\ninterval_seconds = -1\n")

        with pytest.raises(ConfigLoadError, match="Invalid configuration"):
            load_config(root=library_root, environ={})

    def test_invalid_toml(self, library_root: Path, user_config: Path) -> None:
        user_config.write_text("[sync\n")

        with pytest.raises(ConfigLoadError):
            load_config(root=library_root, environ={})


class TestSafeLoadConfig:
    def test_success(self, library_root: Path) -> None:
        config, error = safe_load_config(root=library_root)

        assert error is None
        assert config.library_root == library_root

    def test_invalid_file_falls_back_to_defaults(
        self,
        library_root: Path,
        user_config: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        user_config.write_text("[sync]\ninterval_seconds = -1\n")

        config, error = safe_load_config(root=library_root)

        assert error is not None
        assert config.library_root == library_root
        assert config.sync.interval_seconds == 300
        assert "Warning: Failed to load config" in capsys.readouterr().err

    def test_missing_explicit_file_exits(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            safe_load_config(config_path=tmp_path / "missing.toml")

        assert exc_info.value.code == 1

    def test_strict_mode_exits(
        self,
        library_root: Path,
        user_config: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        user_config.write_text("[sync\n")
        monkeypatch.setenv("POCKET_PROMPT_STRICT_CONFIG", "1")

        with pytest.raises(SystemExit):
            safe_load_config(root=library_root)
