"""Version string arithmetic for prompts and templates."""

from ._types import DEFAULT_VERSION

_SEMVER_PARTS = 3


def next_version(version: str) -> str:
    """Compute the version that follows ``version``.

    - ``""`` becomes ``1.0.0``.
    - ``MAJOR.MINOR.PATCH`` with a numeric patch increments the patch.
    - A bare integer is incremented.
    - Anything else gets ``.1`` appended.

    Example:
        >>> next_version("1.0.9")
        '1.0.10'
        >>> next_version("beta")
        'beta.1'
    """
    if not version:
        return DEFAULT_VERSION

    parts = version.split(".")
    if len(parts) == _SEMVER_PARTS:
        try:
            patch = int(parts[2])
        except ValueError:
            return f"{version}.1"
        return f"{parts[0]}.{parts[1]}.{patch + 1}"

    try:
        return str(int(version) + 1)
    except ValueError:
        return f"{version}.1"


def version_key(version: str) -> tuple[tuple[int, int | str], ...]:
    """Sort key ordering versions numerically part by part.

    Numeric parts sort before textual ones so mixed histories stay stable.
    """
    key: list[tuple[int, int | str]] = []
    for part in version.split("."):
        if part.isdigit():
            key.append((0, int(part)))
        else:
            key.append((1, part))
    return tuple(key)
