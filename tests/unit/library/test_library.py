"""Tests for the prompt library service."""

from collections.abc import Callable
from pathlib import Path

import anyio
import pendulum
import pytest

from pocket_prompt.artifacts import (
    ImportAction,
    ImportPolicy,
    Prompt,
    Template,
    TemplateConstraints,
)
from pocket_prompt.config import Config
from pocket_prompt.exceptions import (
    InvalidExpressionError,
    PackNotFoundError,
    PromptNotFoundError,
    SavedSearchNotFoundError,
    TemplateNotFoundError,
)
from pocket_prompt.expression import Tag, parse_expression
from pocket_prompt.library import PromptLibrary, SavedSearch
from pocket_prompt.sync import FakeGitRunner, SyncState

MakePrompt = Callable[..., Prompt]


@pytest.fixture
def library(
    config: Config,
    git_runner: FakeGitRunner,
    frozen_clock: Callable[[], pendulum.DateTime],
) -> PromptLibrary:
    lib = PromptLibrary(config, runner=git_runner, clock=frozen_clock)
    lib.open()
    return lib


@pytest.fixture
def synced_library(
    config: Config,
    library_root: Path,
    git_runner: FakeGitRunner,
    link_repo: Callable[..., None],
    frozen_clock: Callable[[], pendulum.DateTime],
) -> PromptLibrary:
    link_repo(library_root)
    git_runner.respond(("branch", "--show-current"), output="master\n")
    lib = PromptLibrary(config, runner=git_runner, clock=frozen_clock)
    lib.open()
    return lib


@pytest.fixture
def populated(library: PromptLibrary, make_prompt: MakePrompt) -> PromptLibrary:
    library.create_prompt(
        make_prompt("explain-transformers", tags=("AI", "learning"), content="Attention heads")
    )
    library.create_prompt(make_prompt("haiku", tags=("ai", "writing"), content="Five seven five"))
    library.create_prompt(make_prompt("draft-essay", tags=("writing", "draft")))
    return library


@pytest.fixture
def tutorials(library: PromptLibrary, make_prompt: MakePrompt) -> PromptLibrary:
    library.create_prompt(
        make_prompt(
            "a",
            name="Getting started",
            summary="",
            tags=("ai", "tutorial"),
            content="A gentle tutorial for beginners.",
        )
    )
    library.create_prompt(
        make_prompt(
            "b",
            name="Python basics",
            summary="",
            tags=("python", "tutorial"),
            content="Intro to programming with Python.",
        )
    )
    library.create_prompt(
        make_prompt(
            "c",
            name="Data review",
            summary="",
            tags=("ai", "analysis"),
            content="Run an advanced statistical analysis.",
        )
    )
    return library


# =============================================================================
# Mutations
# =============================================================================


class TestMutationsWithoutSync:
    def test_create_skips_sync(
        self, library: PromptLibrary, git_runner: FakeGitRunner, make_prompt: MakePrompt
    ) -> None:
        result = library.create_prompt(make_prompt())

        assert result.value.version == "1.0.0"
        assert result.sync is None
        assert result.warnings == ()
        assert git_runner.calls == []

    def test_save_prompt_creates_then_updates(
        self, library: PromptLibrary, make_prompt: MakePrompt
    ) -> None:
        first = library.save_prompt(make_prompt())
        second = library.save_prompt(make_prompt(content="Changed"))

        assert first.value.version == "1.0.0"
        assert second.value.version == "1.0.1"
        assert [p.version for p in library.history("code-review")] == ["1.0.0"]

    def test_delete_prompt(self, library: PromptLibrary, make_prompt: MakePrompt) -> None:
        library.create_prompt(make_prompt())

        result = library.delete_prompt("code-review")

        assert result.value.id == "code-review"
        with pytest.raises(PromptNotFoundError):
            library.get_prompt("code-review")

    def test_template_lifecycle(self, library: PromptLibrary) -> None:
        library.save_template(Template(id="review", name="Review"))

        assert [t.id for t in library.list_templates()] == ["review"]
        assert library.delete_template("review").value == "review"
        with pytest.raises(TemplateNotFoundError):
            library.get_template("review")


class TestMutationsWithSync:
    def test_commits_after_create(
        self,
        synced_library: PromptLibrary,
        git_runner: FakeGitRunner,
        make_prompt: MakePrompt,
    ) -> None:
        git_runner.respond(("diff", "--cached", "--quiet"), exit_code=1)

        result = synced_library.create_prompt(make_prompt())

        assert result.sync is not None
        assert result.sync.committed
        assert result.sync.message == "Create prompt: Code Review - 2024-05-01 12:30:45"
        assert result.warnings == ()

    def test_update_message_includes_version(
        self,
        synced_library: PromptLibrary,
        git_runner: FakeGitRunner,
        make_prompt: MakePrompt,
    ) -> None:
        git_runner.respond(("diff", "--cached", "--quiet"), exit_code=1)
        synced_library.create_prompt(make_prompt())

        synced_library.update_prompt(make_prompt(content="Changed"))

        assert git_runner.calls_to("commit")[-1] == (
            "commit",
            "-m",
            "Update prompt: Code Review (v1.0.1) - 2024-05-01 12:30:45",
        )

    def test_delete_message(
        self,
        synced_library: PromptLibrary,
        git_runner: FakeGitRunner,
        make_prompt: MakePrompt,
    ) -> None:
        git_runner.respond(("diff", "--cached", "--quiet"), exit_code=1)
        synced_library.create_prompt(make_prompt())

        synced_library.delete_prompt("code-review")

        assert git_runner.calls_to("commit")[-1][2].startswith("Delete prompt: Code Review")

    def test_push_failure_becomes_warning(
        self,
        synced_library: PromptLibrary,
        git_runner: FakeGitRunner,
        make_prompt: MakePrompt,
    ) -> None:
        git_runner.respond(("diff", "--cached", "--quiet"), exit_code=1)
        git_runner.respond(("push",), exit_code=1, output="rejected")

        result = synced_library.create_prompt(make_prompt())

        assert result.warnings == ("Changes committed locally but failed to push: rejected",)

    def test_sync_failure_keeps_local_write(
        self,
        synced_library: PromptLibrary,
        git_runner: FakeGitRunner,
        make_prompt: MakePrompt,
    ) -> None:
        git_runner.respond(("add",), exit_code=128, output="fatal: index.lock exists")

        result = synced_library.create_prompt(make_prompt())

        assert result.sync is None
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("Saved locally but sync failed:")
        assert synced_library.get_prompt("code-review").content == "Body of code-review."

    def test_disabled_sync_does_not_commit(
        self,
        synced_library: PromptLibrary,
        git_runner: FakeGitRunner,
        make_prompt: MakePrompt,
    ) -> None:
        synced_library.disable_sync()

        synced_library.create_prompt(make_prompt())

        assert not synced_library.sync_enabled
        assert not git_runner.called("add")


class TestImportPrompts:
    def test_reports_outcomes_and_errors(
        self,
        synced_library: PromptLibrary,
        git_runner: FakeGitRunner,
        make_prompt: MakePrompt,
    ) -> None:
        git_runner.respond(("diff", "--cached", "--quiet"), exit_code=1)

        result = synced_library.import_prompts(
            [make_prompt("alpha"), make_prompt("bad id"), make_prompt("beta")],
            templates=[Template(id="review")],
        )

        report = result.value
        assert [o.id for o in report.outcomes] == ["review", "alpha", "beta"]
        assert all(o.action is ImportAction.CREATED for o in report.outcomes)
        assert [error[0] for error in report.errors] == ["bad id"]
        assert len(git_runner.calls_to("commit")) == 1
        assert git_runner.calls_to("commit")[0][2].startswith("Import 3 artifacts")

    def test_unchanged_batch_does_not_sync(
        self,
        synced_library: PromptLibrary,
        git_runner: FakeGitRunner,
        make_prompt: MakePrompt,
    ) -> None:
        synced_library.import_prompts([make_prompt()])
        git_runner.calls.clear()

        result = synced_library.import_prompts([make_prompt()])

        assert result.value.outcomes[0].action is ImportAction.UNCHANGED
        assert result.sync is None
        assert git_runner.calls == []

    def test_conflicts_are_collected(
        self, library: PromptLibrary, make_prompt: MakePrompt
    ) -> None:
        library.create_prompt(make_prompt(metadata={"source": "a"}))

        result = library.import_prompts(
            [make_prompt(metadata={"source": "b"})], ImportPolicy()
        )

        assert result.value.outcomes == ()
        assert result.value.errors[0][0] == "code-review"


# =============================================================================
# Queries
# =============================================================================


class TestQueries:
    def test_all_tags_dedupes_case_insensitively(self, populated: PromptLibrary) -> None:
        assert populated.all_tags() == ["AI", "draft", "learning", "writing"]

    def test_filter_by_tag(self, populated: PromptLibrary) -> None:
        assert [p.id for p in populated.filter_by_tag("ai")] == [
            "explain-transformers",
            "haiku",
        ]

    def test_list_archived(self, library: PromptLibrary, make_prompt: MakePrompt) -> None:
        library.create_prompt(make_prompt())
        library.update_prompt(make_prompt(content="Changed"))

        assert [(p.id, p.version) for p in library.list_archived()] == [("code-review", "1.0.0")]

    def test_validate_prompt_against_template(
        self, library: PromptLibrary, make_prompt: MakePrompt
    ) -> None:
        library.save_template(
            Template(
                id="review",
                constraints=TemplateConstraints(required_headings=("Summary",)),
            )
        )
        prompt = library.create_prompt(make_prompt(template_ref="review")).value

        issues = library.validate_prompt(prompt)

        assert [issue.rule for issue in issues] == ["required_headings"]

    def test_validate_prompt_without_template(
        self, library: PromptLibrary, make_prompt: MakePrompt
    ) -> None:
        assert library.validate_prompt(make_prompt()) == []


# =============================================================================
# Search
# =============================================================================


class TestSearch:
    def test_empty_query_returns_everything(self, populated: PromptLibrary) -> None:
        assert len(populated.search("  ")) == 3

    def test_fuzzy_query(self, populated: PromptLibrary) -> None:
        assert [p.id for p in populated.search("haiku")] == ["haiku"]

    def test_boolean_search_string(self, populated: PromptLibrary) -> None:
        results = populated.boolean_search("writing AND NOT draft")

        assert [p.id for p in results] == ["haiku"]

    def test_boolean_search_expression(self, populated: PromptLibrary) -> None:
        assert [p.id for p in populated.boolean_search(Tag("draft"))] == ["draft-essay"]

    def test_boolean_search_without_expression(self, populated: PromptLibrary) -> None:
        assert len(populated.boolean_search(None)) == 3
        assert len(populated.boolean_search("")) == 3

    def test_boolean_search_invalid(self, populated: PromptLibrary) -> None:
        with pytest.raises(InvalidExpressionError):
            populated.boolean_search("ai AND")

    def test_hybrid_search_ranks_by_body(self, populated: PromptLibrary) -> None:
        results = populated.hybrid_search("ai", "seven")

        assert [p.id for p in results] == ["haiku"]
        assert results[0].content == "Five seven five"

    def test_hybrid_search_without_text_keeps_filter_order(
        self, populated: PromptLibrary
    ) -> None:
        assert [p.id for p in populated.hybrid_search("ai")] == [
            "explain-transformers",
            "haiku",
        ]


    @pytest.mark.parametrize(
        ("text_query", "expected"),
        [("tutorial", {"a", "b"}), ("advanced", {"c"}), ("", {"a", "b", "c"})],
    )
    def test_hybrid_search_filters_then_matches_text(
        self, tutorials: PromptLibrary, text_query: str, expected: set[str]
    ) -> None:
        results = tutorials.hybrid_search("ai OR tutorial", text_query)

        assert {p.id for p in results} == expected

    def test_hybrid_search_filter_excludes_before_ranking(
        self, tutorials: PromptLibrary
    ) -> None:
        assert tutorials.hybrid_search("python", "advanced") == []


class TestSavedSearches:
    def test_save_and_execute(self, populated: PromptLibrary) -> None:
        populated.save_search(SavedSearch(name="ai", expression=Tag("ai")))

        assert [p.id for p in populated.execute_search("ai")] == [
            "explain-transformers",
            "haiku",
        ]
        assert (populated.root / "saved_searches.json").is_file()

    def test_stored_text_query_and_override(self, populated: PromptLibrary) -> None:
        populated.save_search(SavedSearch(name="ai", expression=Tag("ai"), text_query="attention"))

        assert [p.id for p in populated.execute_search("ai")] == ["explain-transformers"]
        assert [p.id for p in populated.execute_search("ai", "seven")] == ["haiku"]

    def test_execute_without_override_matches_hybrid_search(
        self, tutorials: PromptLibrary
    ) -> None:
        expression = parse_expression("ai OR tutorial")
        tutorials.save_search(
            SavedSearch(name="learning", expression=expression, text_query="tutorial")
        )

        executed = tutorials.execute_search("learning", "")

        assert executed == tutorials.hybrid_search(expression, "tutorial")
        assert {p.id for p in executed} == {"a", "b"}
        assert {p.id for p in tutorials.execute_search("learning", "advanced")} == {"c"}

    def test_list_and_delete(self, library: PromptLibrary) -> None:
        library.save_search(SavedSearch(name="one"))

        assert [s.name for s in library.list_searches()] == ["one"]
        library.delete_search("one")
        with pytest.raises(SavedSearchNotFoundError):
            library.get_search("one")


# =============================================================================
# Packs
# =============================================================================


class TestPacks:
    def test_install_lists_pack_prompts(
        self, library: PromptLibrary, make_pack: Callable[..., Path], make_prompt: MakePrompt
    ) -> None:
        library.create_prompt(make_prompt())
        library.list_prompts()

        result = library.install_pack(make_pack())

        assert result.value.name == "writing"
        assert result.sync is None
        assert [p.id for p in library.list_pack_prompts("writing")] == ["essay"]
        assert {p.id for p in library.list_prompts()} == {"code-review", "essay"}
        assert [p.name for p in library.list_packs()] == ["writing"]

    def test_uninstall_removes_pack_prompts(
        self, library: PromptLibrary, make_pack: Callable[..., Path]
    ) -> None:
        library.install_pack(make_pack())
        library.list_prompts()

        library.uninstall_pack("writing")

        assert library.list_prompts() == []
        with pytest.raises(PackNotFoundError):
            library.get_pack("writing")

    def test_install_commits(
        self,
        synced_library: PromptLibrary,
        git_runner: FakeGitRunner,
        make_pack: Callable[..., Path],
    ) -> None:
        git_runner.respond(("diff", "--cached", "--quiet"), exit_code=1)

        result = synced_library.install_pack(make_pack())

        assert result.sync is not None
        assert git_runner.calls_to("commit")[-1][2].startswith("Install pack: writing (v1.2.0)")

    def test_pack_prompts_for_unknown_pack(self, library: PromptLibrary) -> None:
        with pytest.raises(PackNotFoundError):
            library.list_pack_prompts("writing")

    def test_create_pack_scaffold(self, library: PromptLibrary, tmp_path: Path) -> None:
        pack = library.create_pack_scaffold(tmp_path / "draft", "draft", "Draft Pack")

        assert pack.name == "draft"
        assert (tmp_path / "draft" / "pack.json").is_file()
        assert library.list_packs() == []


# =============================================================================
# Sync facade
# =============================================================================


class TestSyncFacade:
    def test_pull_if_needed_when_disabled(self, library: PromptLibrary) -> None:
        result = library.pull_if_needed()

        assert result.skipped
        assert not result.updated

    def test_pull_reloads_listing_after_update(
        self,
        synced_library: PromptLibrary,
        git_runner: FakeGitRunner,
        library_root: Path,
    ) -> None:
        assert synced_library.list_prompts() == []
        (library_root / "prompts" / "remote.md").write_text("---\nid: remote\n---\n\nBody\n")
        git_runner.respond(("rev-parse", "origin/master"), output="1111111\n")
        git_runner.respond(("rev-parse", "HEAD"), output="2222222\n")
        git_runner.respond(("merge-base", "--is-ancestor"), exit_code=1)

        result = synced_library.pull()

        assert result.updated
        assert [p.id for p in synced_library.list_prompts()] == ["remote"]

    def test_setup_sync_enables(self, library: PromptLibrary) -> None:
        result = library.setup_sync("https://example.com/prompts.git")

        assert result.remote_url == "https://example.com/prompts.git"
        assert library.sync_enabled

    def test_enable_and_force_resync(self, synced_library: PromptLibrary) -> None:
        synced_library.disable_sync()
        assert synced_library.force_resync() is SyncState.ENABLED

        synced_library.disable_sync()
        synced_library.enable_sync()
        assert synced_library.sync_enabled

    @pytest.mark.anyio
    async def test_background_sync_stops_on_event(self, synced_library: PromptLibrary) -> None:
        cancel = anyio.Event()
        cancel.set()

        with anyio.fail_after(5):
            await synced_library.run_background_sync(cancel)

    @pytest.mark.anyio
    async def test_background_listing_load(
        self, library: PromptLibrary, make_prompt: MakePrompt
    ) -> None:
        library.create_prompt(make_prompt())

        async with anyio.create_task_group() as task_group:
            library.start_background_load(task_group)

        assert library.listing_state().loaded
