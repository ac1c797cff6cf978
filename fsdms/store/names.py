"""
Name validation for workspaces, directories and keys.

Names become path components under the base path, so besides rejecting blank
names this module keeps them from escaping their parent directory.
"""

from __future__ import annotations

from pathlib import PurePosixPath

from ..errors import InvalidArgumentError

_SEPARATORS = ("/", "\\")
_RESERVED = (".", "..")


def _require_text(kind: str, name: object) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidArgumentError(f"Invalid {kind}: {name!r}", **{kind: name})
    return name


def validate_workspace(workspace: object) -> str:
    name = _require_text("workspace", workspace)
    if any(sep in name for sep in _SEPARATORS) or name in _RESERVED:
        raise InvalidArgumentError(f"Invalid workspace: {name!r}", workspace=name)
    return name


def validate_directory(directory: object) -> str:
    """Directories may be nested ("reports/2024") but must stay relative."""
    name = _require_text("directory", directory)
    posix = PurePosixPath(name.replace("\\", "/"))
    if posix.is_absolute() or any(part in _RESERVED for part in name.replace("\\", "/").split("/")):
        raise InvalidArgumentError(f"Invalid directory: {name!r}", directory=name)
    return name


def validate_key(key: object) -> str:
    name = _require_text("key", key)
    if any(sep in name for sep in _SEPARATORS) or name in _RESERVED:
        raise InvalidArgumentError(f"Invalid key: {name!r}", key=name)
    return name
