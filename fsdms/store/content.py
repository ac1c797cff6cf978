"""
Content codec for document files.

Reads and writes the three content shapes a document can hold:
- Text, in a caller-chosen charset
- Raw bytes
- Property maps (flat string-to-string mappings, one "key=value" per line)

Text is read and written with newline translation disabled, so content
round-trips character for character on every platform.

Property file format:
    # comment
    ! comment
    name=value
    escaped\\=key=line one\\nline two

    Backslash escapes \\\\, \\n, \\r, \\t, \\=, \\: are recognized in keys and
    values. The first unescaped '=' or ':' separates key from value.

Invariants:
    - OSError is always surfaced as StoreIOError with the path
    - UnicodeError is always surfaced as ContentDecodingError with path and charset
"""

from __future__ import annotations

import codecs
import itertools
from collections.abc import Mapping, Sequence
from pathlib import Path

from ..errors import ContentDecodingError, InvalidArgumentError, StoreIOError

DEFAULT_CHARSET = "utf-8"

_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r", "\t": "\\t"}
_UNESCAPES = {"\\": "\\", "n": "\n", "r": "\r", "t": "\t", "=": "=", ":": ":"}


def validate_charset(charset: str) -> str:
    """Return the canonical codec name for charset.

    Raises:
        LookupError: If Python has no codec for charset
    """
    return codecs.lookup(charset).name


def _decoding_error(path: Path, charset: str, error: UnicodeError) -> ContentDecodingError:
    return ContentDecodingError(
        f"Failed to decode {path} as {charset}: {error}",
        path=path,
        charset=charset,
    )


# --- reading -----------------------------------------------------------------


def read_text(path: Path, charset: str = DEFAULT_CHARSET) -> str:
    try:
        with open(path, encoding=charset, errors="strict", newline="") as f:
            return f.read()
    except UnicodeError as e:
        raise _decoding_error(path, charset, e) from e
    except OSError as e:
        raise StoreIOError(f"Failed to read the file {path}", path) from e


def read_lines(path: Path, charset: str = DEFAULT_CHARSET, limit: int | None = None) -> list[str]:
    """Read lines without their terminators.

    With a limit, only the first ``limit`` lines are decoded; a malformed
    byte sequence past them is not detected.
    """
    if limit is not None and limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")
    try:
        with open(path, encoding=charset, errors="strict", newline=None) as f:
            lines = itertools.islice(f, limit) if limit is not None else f
            return [line.rstrip("\n") for line in lines]
    except UnicodeError as e:
        raise _decoding_error(path, charset, e) from e
    except OSError as e:
        raise StoreIOError(f"Failed to read the file {path}", path) from e


def read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise StoreIOError(f"Failed to read the file {path}", path) from e


def read_properties(path: Path, charset: str = DEFAULT_CHARSET) -> dict[str, str]:
    return parse_properties(read_text(path, charset))


def read_text_with_fallback(path: Path, charsets: Sequence[str]) -> str:
    """Read text with the first charset that decodes the file."""
    return _with_fallback(path, charsets, lambda charset: read_text(path, charset))


def read_lines_with_fallback(path: Path, charsets: Sequence[str], limit: int | None = None) -> list[str]:
    """Read lines with the first charset that decodes them."""
    return _with_fallback(path, charsets, lambda charset: read_lines(path, charset, limit))


def _with_fallback(path, charsets, reader):
    """Try reader with each charset in turn.

    The first successful decode wins. If every charset fails, the most recent
    ContentDecodingError is raised with the earlier ones in ``suppressed``.
    Any other error propagates at once, also carrying the decode failures
    collected so far.
    """
    if not charsets:
        raise ValueError("At least one charset is required")
    failures: list[ContentDecodingError] = []
    for charset in charsets:
        try:
            return reader(charset)
        except ContentDecodingError as e:
            failures.append(e)
        except StoreIOError as e:
            e.suppressed.extend(failures)
            raise
    newest = failures.pop()
    newest.suppressed.extend(failures)
    raise newest


# --- writing -----------------------------------------------------------------


def encode_text(text: str, charset: str = DEFAULT_CHARSET, path: Path | None = None) -> bytes:
    """Encode text without newline translation, before any file is touched."""
    try:
        return text.encode(charset, errors="strict")
    except UnicodeError as e:
        raise ContentDecodingError(
            f"Failed to encode content for {path} as {charset}: {e}",
            path=path,
            charset=charset,
        ) from e


def encode_properties(properties: Mapping[str, str], charset: str = DEFAULT_CHARSET, path: Path | None = None) -> bytes:
    return encode_text(format_properties(properties), charset, path)


def write_text(path: Path, text: str, charset: str = DEFAULT_CHARSET) -> None:
    write_bytes(path, encode_text(text, charset, path))


def write_bytes(path: Path, data: bytes) -> None:
    try:
        path.write_bytes(data)
    except OSError as e:
        raise StoreIOError(f"Failed to write to the file: {path}", path) from e


def write_properties(path: Path, properties: Mapping[str, str], charset: str = DEFAULT_CHARSET) -> None:
    write_bytes(path, encode_properties(properties, charset, path))


# --- property format ---------------------------------------------------------


def _escape(text: str, is_key: bool) -> str:
    out = []
    for i, ch in enumerate(text):
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif is_key and (ch in "=:" or (i == 0 and ch in "#! ")):
            out.append("\\" + ch)
        else:
            out.append(ch)
    return "".join(out)


def format_properties(properties: Mapping[str, str]) -> str:
    """Serialize a mapping, one escaped key=value per line, in mapping order."""
    lines = []
    for key, value in properties.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise InvalidArgumentError(f"Property keys and values must be str: {key!r}={value!r}")
        lines.append(f"{_escape(key, is_key=True)}={_escape(value, is_key=False)}\n")
    return "".join(lines)


def parse_properties(text: str) -> dict[str, str]:
    """Parse text produced by format_properties (or hand-written alike)."""
    properties: dict[str, str] = {}
    for raw_line in text.split("\n"):
        line = raw_line.rstrip("\r").lstrip()
        if not line or line[0] in "#!":
            continue
        key_chars: list[str] = []
        value_chars: list[str] = []
        target = key_chars
        chars = iter(line)
        for ch in chars:
            if ch == "\\":
                escaped = next(chars, "")
                target.append(_UNESCAPES.get(escaped, escaped))
            elif target is key_chars and ch in "=:":
                target = value_chars
            else:
                target.append(ch)
        properties["".join(key_chars)] = "".join(value_chars)
    return properties
