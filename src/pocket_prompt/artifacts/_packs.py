# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Registry of installed prompt packs.

A pack is a directory with a ``pack.json`` manifest and a ``prompts/``
and/or ``templates/`` directory. Installing copies it to
``<root>/packs/<name>/`` where the store picks up its prompts and templates,
and records it in ``<root>/.pocket-prompt/packs.json``::

    {"version": "1.0", "packs": [{"name": ..., "install_time": ..., ...}]}

The registry lives beside the packs it describes, so both travel together
when the library is synchronized.
"""

import shutil
from dataclasses import replace
from pathlib import Path
from typing import Any, Final

import pendulum
from structlog.typing import FilteringBoundLogger

from pocket_prompt.exceptions import (
    AlreadyExistsError,
    PackNotFoundError,
    StorageFailureError,
    ValidationFailureError,
)
from pocket_prompt.utils import (
    atomic_write,
    get_null_logger,
    get_state_dir,
    read_json,
    write_json_atomic,
)

from ._frontmatter import ID_PATTERN, format_timestamp, parse_timestamp
from ._types import (
    DEFAULT_VERSION,
    PACK_MANIFEST,
    PACK_README,
    PACKS_DIR,
    PROMPTS_DIR,
    TEMPLATES_DIR,
    Pack,
)

REGISTRY_FILE: Final = "packs.json"
REGISTRY_FORMAT_VERSION: Final = "1.0"
_REQUIRED_MANIFEST_FIELDS: Final = ("name", "version", "title")

README_TEMPLATE: Final = """# {title}

{description}

## Installation

Install this pack from a local checkout:

```bash
pocket-prompt packs install <path>
```

## Contents

Prompts live in `prompts/`, templates in `templates/`.

## Author

{author}
"""


# =============================================================================
# Serialization
# =============================================================================


def _string_tuple(value: object) -> tuple[str, ...]:
    if isinstance(value, list):
        return tuple(str(item) for item in value)
    return ()


def manifest_to_dict(pack: Pack) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Fields written to a pack's ``pack.json``."""
    return {
        "name": pack.name,
        "version": pack.version,
        "title": pack.title,
        "description": pack.description,
        "author": pack.author,
        "homepage": pack.homepage,
        "tags": list(pack.tags),
        "prompts": list(pack.prompts),
        "templates": list(pack.templates),
    }


def pack_from_dict(data: dict[str, Any]) -> Pack:  # pyright: ignore[reportExplicitAny]
    """Build a pack from a manifest or registry entry.

    Raises:
        ValidationFailureError: If ``name``, ``version`` or ``title`` is
            missing or empty.
    """
    for key in _REQUIRED_MANIFEST_FIELDS:
        value = data.get(key)
        if not isinstance(value, str) or not value.strip():
            msg = f"pack.json must contain a non-empty '{key}' field"
            raise ValidationFailureError(msg, field=key, value=value)

    try:
        install_time = parse_timestamp(data.get("install_time"))
    except ValueError as e:
        msg = f"Invalid install_time: {e}"
        raise ValidationFailureError(
            msg, field="install_time", value=data.get("install_time")
        ) from e

    return Pack(
        name=str(data["name"]),
        version=str(data["version"]),
        title=str(data["title"]),
        description=str(data.get("description") or ""),
        author=str(data.get("author") or ""),
        homepage=str(data.get("homepage") or ""),
        tags=_string_tuple(data.get("tags")),
        prompts=_string_tuple(data.get("prompts")),
        templates=_string_tuple(data.get("templates")),
        install_time=install_time,
        install_url=str(data.get("install_url") or ""),
        path=str(data.get("path") or ""),
    )


def _registry_entry(pack: Pack) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    entry = manifest_to_dict(pack)
    entry["install_time"] = format_timestamp(pack.install_time)
    entry["install_url"] = pack.install_url
    entry["path"] = pack.path
    return entry


def _validate_name(name: str) -> None:
    if not name or not ID_PATTERN.match(name):
        msg = f"Invalid pack name {name!r}: use letters, digits, hyphens and underscores"
        raise ValidationFailureError(msg, field="name", value=name)


# =============================================================================
# Pack directories
# =============================================================================


def load_manifest(directory: Path) -> Pack:
    """Read the ``pack.json`` manifest of a pack directory.

    Raises:
        StorageFailureError: If the manifest is missing or not a JSON object.
        ValidationFailureError: If a required field is missing.
    """
    return pack_from_dict(read_json(directory / PACK_MANIFEST))


def validate_structure(directory: Path) -> None:
    """Check that a directory is laid out as a pack.

    Raises:
        ValidationFailureError: If ``pack.json`` is missing or the directory
            has neither ``prompts/`` nor ``templates/``.
    """
    if not (directory / PACK_MANIFEST).is_file():
        msg = f"{PACK_MANIFEST} not found in {directory}"
        raise ValidationFailureError(msg, field="path", value=str(directory))
    if not (directory / PROMPTS_DIR).is_dir() and not (directory / TEMPLATES_DIR).is_dir():
        msg = f"Pack must contain a {PROMPTS_DIR}/ or {TEMPLATES_DIR}/ directory"
        raise ValidationFailureError(msg, field="path", value=str(directory))


def create_scaffold(
    directory: Path,
    name: str,
    title: str,
    *,
    description: str = "",
    author: str = "",
) -> Pack:
    """Create an empty pack skeleton ready to be filled and installed.

    Writes ``pack.json``, a README and empty ``prompts/`` and ``templates/``
    directories.

    Raises:
        ValidationFailureError: If the name is malformed or the title empty.
        AlreadyExistsError: If ``directory`` already holds a manifest.
        StorageFailureError: If the files cannot be written.
    """
    _validate_name(name)
    if not title.strip():
        msg = "Pack title must not be empty"
        raise ValidationFailureError(msg, field="title", value=title)
    if (directory / PACK_MANIFEST).exists():
        msg = f"A pack already exists in {directory}"
        raise AlreadyExistsError(msg, key=name)

    pack = Pack(
        name=name,
        version=DEFAULT_VERSION,
        title=title,
        description=description,
        author=author,
    )
    try:
        for subdirectory in (PROMPTS_DIR, TEMPLATES_DIR):
            (directory / subdirectory).mkdir(parents=True, exist_ok=True)
    except OSError as e:
        msg = f"Failed to create pack directories: {e}"
        raise StorageFailureError(msg, path=directory, operation="write", cause=e) from e

    write_json_atomic(directory / PACK_MANIFEST, manifest_to_dict(pack))
    atomic_write(
        directory / PACK_README,
        README_TEMPLATE.format(title=title, description=description, author=author),
    )
    return pack


# =============================================================================
# Registry
# =============================================================================


class PackRegistry:
    """Install, list and remove packs of a library.

    Attributes:
        root: Library root directory.
        registry_path: Location of the registry file.
    """

    __slots__ = ("_logger", "registry_path", "root")

    def __init__(self, root: Path | str, *, logger: FilteringBoundLogger | None = None) -> None:
        """Initialize the registry.

        Args:
            root: Library root directory.
            logger: Structured logger.
        """
        self.root: Path = Path(root)
        self.registry_path: Path = get_state_dir(self.root) / REGISTRY_FILE
        self._logger: FilteringBoundLogger = logger or get_null_logger()

    @property
    def packs_path(self) -> Path:
        """Directory installed packs are copied into."""
        return self.root / PACKS_DIR

    def pack_path(self, name: str) -> Path:
        """Install directory of a pack."""
        return self.packs_path / name

    def _load(self) -> list[Pack]:
        if not self.registry_path.exists():
            return []
        entries = read_json(self.registry_path).get("packs") or []
        if not isinstance(entries, list):
            msg = "'packs' must be a list"
            raise StorageFailureError(msg, path=self.registry_path, operation="parse")

        packs: list[Pack] = []
        for entry in entries:
            if not isinstance(entry, dict):
                msg = "Each pack entry must be an object"
                raise StorageFailureError(msg, path=self.registry_path, operation="parse")
            try:
                packs.append(pack_from_dict(entry))
            except ValidationFailureError as e:
                msg = f"Invalid pack entry: {e}"
                raise StorageFailureError(
                    msg, path=self.registry_path, operation="parse", cause=e
                ) from e
        return packs

    def _write(self, packs: list[Pack]) -> None:
        write_json_atomic(
            self.registry_path,
            {
                "version": REGISTRY_FORMAT_VERSION,
                "packs": [_registry_entry(pack) for pack in packs],
            },
        )

    def list_packs(self) -> list[Pack]:
        """Installed packs in install order."""
        return self._load()

    def get(self, name: str) -> Pack:
        """Look up an installed pack.

        Raises:
            PackNotFoundError: If no pack has this name.
        """
        for pack in self._load():
            if pack.name == name:
                return pack
        raise PackNotFoundError(name)

    def is_installed(self, name: str) -> bool:
        """Whether a pack with this name is registered."""
        return any(pack.name == name for pack in self._load())

    def packs_by_tag(self, tag: str) -> list[Pack]:
        """Installed packs carrying ``tag``, compared case-insensitively."""
        wanted = tag.lower()
        return [p for p in self._load() if any(t.lower() == wanted for t in p.tags)]

    def install_from_directory(
        self,
        source: Path,
        *,
        name: str | None = None,
        force: bool = False,
        install_url: str = "",
    ) -> Pack:
        """Copy a pack directory into the library and register it.

        Args:
            source: Pack directory to install.
            name: Install under this name instead of the manifest's.
            force: Replace an installed pack of the same name.
            install_url: Recorded origin; defaults to the source path.

        Returns:
            The registered pack.

        Raises:
            ValidationFailureError: If the directory is not a valid pack.
            AlreadyExistsError: If the name is taken and ``force`` is unset.
            StorageFailureError: If files cannot be read, copied or written.
        """
        source = Path(source)
        validate_structure(source)
        manifest = load_manifest(source)
        pack_name = name or manifest.name
        _validate_name(pack_name)

        if self.is_installed(pack_name):
            if not force:
                msg = f"Pack '{pack_name}' is already installed (use force to reinstall)"
                raise AlreadyExistsError(msg, key=pack_name)
            _ = self.uninstall(pack_name)

        target = self.pack_path(pack_name)
        if target.exists():
            msg = f"Pack directory already exists: {target}"
            raise AlreadyExistsError(msg, key=pack_name)

        try:
            _ = shutil.copytree(source, target, ignore=shutil.ignore_patterns(".git"))
        except OSError as e:
            shutil.rmtree(target, ignore_errors=True)
            msg = f"Failed to copy pack: {e}"
            raise StorageFailureError(msg, path=target, operation="write", cause=e) from e

        pack = replace(
            manifest,
            name=pack_name,
            install_time=pendulum.now("UTC"),
            install_url=install_url or str(source.resolve()),
            path=target.relative_to(self.root).as_posix(),
        )
        try:
            packs = self._load()
            packs.append(pack)
            self._write(packs)
        except StorageFailureError:
            shutil.rmtree(target, ignore_errors=True)
            raise

        self._logger.info("pack_installed", name=pack.name, version=pack.version)
        return pack

    def uninstall(self, name: str) -> Pack:
        """Remove an installed pack and its directory.

        Raises:
            PackNotFoundError: If no pack has this name.
            StorageFailureError: If the directory cannot be removed.
        """
        packs = self._load()
        for index, pack in enumerate(packs):
            if pack.name == name:
                break
        else:
            raise PackNotFoundError(name)

        directory = self.root / pack.path if pack.path else self.pack_path(name)
        try:
            shutil.rmtree(directory)
        except FileNotFoundError:
            self._logger.debug("pack_directory_missing", name=name, path=str(directory))
        except OSError as e:
            msg = f"Failed to remove pack directory: {e}"
            raise StorageFailureError(msg, path=directory, operation="delete", cause=e) from e

        del packs[index]
        self._write(packs)
        self._logger.info("pack_uninstalled", name=name)
        return pack

    def refresh(self) -> list[Pack]:
        """Rebuild the registry from the pack directories on disk.

        Install time and origin of packs already registered are kept.
        Directories without a valid manifest are logged and skipped.
        """
        known = {pack.name: pack for pack in self._load()}
        packs: list[Pack] = []
        if self.packs_path.is_dir():
            for directory in sorted(p for p in self.packs_path.iterdir() if p.is_dir()):
                try:
                    manifest = load_manifest(directory)
                except (StorageFailureError, ValidationFailureError) as e:
                    self._logger.warning(
                        "pack_skipped", path=directory.name, error=str(e)
                    )
                    continue
                previous = known.get(directory.name)
                packs.append(
                    replace(
                        manifest,
                        name=directory.name,
                        install_time=previous.install_time if previous else None,
                        install_url=previous.install_url if previous else "",
                        path=directory.relative_to(self.root).as_posix(),
                    )
                )
        self._write(packs)
        self._logger.debug("pack_registry_refreshed", count=len(packs))
        return packs
