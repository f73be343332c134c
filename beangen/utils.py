# File: beangen/utils.py
"""
beangen - Utility Functions & Helpers
======================================
String transformation, inflection, file I/O and code-formatting utilities
used throughout the bean generation pipeline.

Performance strategy:
- ALL string-conversion functions are decorated with ``@functools.lru_cache``
  so the thousands of repeated name conversions made while analysing a large
  schema are amortised to O(1) after first invocation.
- File writes go through a temp file and ``os.replace`` so a crash never
  leaves a half-written bean on disk.
"""

from __future__ import annotations

import functools
import hashlib
import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Protocol, Set, Tuple, runtime_checkable

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("beangen.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns (compiled once at module load)
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE_RE1: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_TO_SNAKE_RE2: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_MULTI_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"_{2,}")
_LEADING_TRAILING_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"^_+|_+$")
_SPLIT_WORDS_RE: re.Pattern[str] = re.compile(
    r"[A-Z]?[a-z]+|[A-Z]+(?=[A-Z][a-z]|\d|\b)|[A-Z]|\d+"
)

# Python keywords that cannot be used as identifiers
_PYTHON_KEYWORDS: FrozenSet[str] = frozenset({
    "False", "None", "True", "and", "as", "assert", "async", "await",
    "break", "class", "continue", "def", "del", "elif", "else",
    "except", "finally", "for", "from", "global", "if", "import",
    "in", "is", "lambda", "nonlocal", "not", "or", "pass", "raise",
    "return", "try", "while", "with", "yield",
})

# Builtins a generated module name must not shadow
_PYTHON_BUILTINS: FrozenSet[str] = frozenset({
    "id", "type", "list", "dict", "set", "str", "int", "float",
    "bool", "bytes", "object", "hash", "input", "print", "range",
    "len", "map", "filter", "zip", "enumerate", "super", "property",
    "format", "iter", "next", "open", "exec", "eval", "compile",
    "vars", "dir", "help", "repr", "staticmethod", "classmethod",
})

# Irregular nouns commonly found in database schemas (singular -> plural)
_IRREGULAR_PLURALS: Dict[str, str] = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "goose": "geese",
    "tooth": "teeth",
    "foot": "feet",
    "datum": "data",
    "index": "indices",
    "matrix": "matrices",
    "vertex": "vertices",
    "axis": "axes",
    "crisis": "crises",
    "analysis": "analyses",
    "status": "statuses",
    "address": "addresses",
}

_IRREGULAR_SINGULARS: Dict[str, str] = {v: k for k, v in _IRREGULAR_PLURALS.items()}

# Words whose plural and singular forms are identical
_UNCOUNTABLE: FrozenSet[str] = frozenset({
    "equipment", "information", "news", "series", "species", "metadata",
})

_LAST_WORD_RE: re.Pattern[str] = re.compile(r"([A-Z]?[a-z]+|[A-Z]+|\d+)$")


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert any string to snake_case.

    Examples:
        >>> to_snake_case("UserProfile")
        'user_profile'
        >>> to_snake_case("getHTTPResponse")
        'get_http_response'
        >>> to_snake_case("already_snake")
        'already_snake'
    """
    if not name:
        return ""
    s: str = _CAMEL_TO_SNAKE_RE1.sub(r"\1_\2", name)
    s = _CAMEL_TO_SNAKE_RE2.sub(r"\1_\2", s)
    s = _NON_ALPHANUM_RE.sub("_", s)
    s = _MULTI_UNDERSCORE_RE.sub("_", s)
    s = _LEADING_TRAILING_UNDERSCORE_RE.sub("", s)
    return s.lower()


@functools.lru_cache(maxsize=None)
def to_pascal_case(name: str) -> str:
    """
    Convert any string to PascalCase.

    Examples:
        >>> to_pascal_case("user_group")
        'UserGroup'
        >>> to_pascal_case("author_id")
        'AuthorId'
    """
    if not name:
        return ""
    words: Tuple[str, ...] = _extract_words(name)
    return "".join(word.capitalize() for word in words)


@functools.lru_cache(maxsize=None)
def to_camel_case(name: str) -> str:
    """
    Convert any string to camelCase.

    Examples:
        >>> to_camel_case("user_profile")
        'userProfile'
        >>> to_camel_case("ReviewByAuthorId")
        'reviewByAuthorId'
    """
    if not name:
        return ""
    words: Tuple[str, ...] = _extract_words(name)
    if not words:
        return ""
    first: str = words[0].lower()
    rest: str = "".join(w.capitalize() for w in words[1:])
    return first + rest


def _match_case(source: str, target: str) -> str:
    """Give *target* the capitalisation of *source*'s first letter."""
    if source[:1].isupper():
        return target[:1].upper() + target[1:]
    return target


@functools.lru_cache(maxsize=None)
def to_plural(name: str) -> str:
    """
    Naive English pluralisation sufficient for code generation.

    Only the last word of a compound identifier is inflected, so
    ``"UserGroup"`` becomes ``"UserGroups"``.
    """
    if not name:
        return ""

    match: Optional[re.Match[str]] = _LAST_WORD_RE.search(name)
    head: str = name[: match.start()] if match else ""
    word: str = match.group(1) if match else name
    lower: str = word.lower()

    if lower in _UNCOUNTABLE or lower in _IRREGULAR_SINGULARS:
        return name
    if lower in _IRREGULAR_PLURALS:
        return head + _match_case(word, _IRREGULAR_PLURALS[lower])

    # Already plural-looking (very naive)
    if lower.endswith("s") and not lower.endswith(("ss", "us", "is")):
        return name

    # Rules ordered by specificity
    if lower.endswith(("sh", "ch", "x", "z", "ss", "us")):
        return name + "es"
    if lower.endswith("y") and len(lower) > 1 and lower[-2] not in "aeiou":
        return name[:-1] + "ies"
    if lower.endswith("fe"):
        return name[:-2] + "ves"
    if lower.endswith("lf"):
        return name[:-1] + "ves"
    if lower.endswith("o") and len(lower) > 1 and lower[-2] not in "aeiou":
        return name + "es"

    return name + "s"


@functools.lru_cache(maxsize=None)
def to_singular(name: str) -> str:
    """
    Naive English singularisation (reverse of to_plural).

    Words that already are singular are returned unchanged, e.g.
    ``to_singular("Status") == "Status"``.
    """
    if not name:
        return ""

    match: Optional[re.Match[str]] = _LAST_WORD_RE.search(name)
    head: str = name[: match.start()] if match else ""
    word: str = match.group(1) if match else name
    lower: str = word.lower()

    if lower in _UNCOUNTABLE or lower in _IRREGULAR_PLURALS:
        return name
    if lower in _IRREGULAR_SINGULARS:
        return head + _match_case(word, _IRREGULAR_SINGULARS[lower])

    # Rules in reverse order of pluralisation
    if lower.endswith("ies") and len(lower) > 3:
        return name[:-3] + "y"
    if lower.endswith("lves"):
        return name[:-3] + "f"
    if lower.endswith("oes") and len(lower) > 3:
        return name[:-2]
    if lower.endswith(("sses", "xes", "zes", "ches", "shes")):
        return name[:-2]
    if lower.endswith("s") and not lower.endswith(("ss", "us", "is")):
        return name[:-1]

    return name


@functools.lru_cache(maxsize=None)
def _extract_words(name: str) -> Tuple[str, ...]:
    """
    Extract individual words from any casing style.

    Returns a tuple (hashable for LRU cache) of lowercase word strings.
    """
    cleaned: str = _NON_ALPHANUM_RE.sub(" ", name)
    words: List[str] = _SPLIT_WORDS_RE.findall(cleaned)
    return tuple(w.lower() for w in words if w)


@functools.lru_cache(maxsize=None)
def escape_keyword(name: str) -> str:
    """
    Make an already-formatted name usable as a Python identifier.

    Prefixes an underscore when it starts with a digit and appends one when
    it is a Python keyword.  Casing is left untouched.
    """
    if not name:
        return "_unnamed"
    result: str = name
    if result[0].isdigit():
        result = f"_{result}"
    if result in _PYTHON_KEYWORDS or result == "self":
        result = f"{result}_"
    return result


@functools.lru_cache(maxsize=None)
def safe_identifier(name: str) -> str:
    """
    Ensure a string is a safe snake_case Python identifier.

    - Converts to snake_case
    - Prefixes with underscore if starts with digit
    - Appends underscore if it's a Python keyword or dangerous builtin
    """
    result: str = to_snake_case(name)
    if not result:
        return "_unnamed"

    if result[0].isdigit():
        result = f"_{result}"

    if result in _PYTHON_KEYWORDS or result in _PYTHON_BUILTINS:
        result = f"{result}_"

    return result


# ---------------------------------------------------------------------------
# Inflector capability
# ---------------------------------------------------------------------------


@runtime_checkable
class Inflector(Protocol):
    """Pluralises and singularises identifiers for accessor names."""

    def pluralize(self, identifier: str) -> str:
        ...

    def singularize(self, identifier: str) -> str:
        ...


class EnglishInflector:
    """Default :class:`Inflector` backed by :func:`to_plural` / :func:`to_singular`."""

    def pluralize(self, identifier: str) -> str:
        return to_plural(identifier)

    def singularize(self, identifier: str) -> str:
        return to_singular(identifier)

    def __repr__(self) -> str:
        return "<EnglishInflector>"


# ---------------------------------------------------------------------------
# Indentation & code formatting helpers
# ---------------------------------------------------------------------------


def indent_lines(lines: List[str], level: int = 1, size: int = 4) -> List[str]:
    """Indent a list of lines, returning a new list.  Blank lines stay blank."""
    prefix: str = " " * (level * size)
    return [prefix + line if line.strip() else "" for line in lines]


def make_docstring(text: str, indent_level: int = 1, size: int = 4) -> List[str]:
    """
    Create the lines of a properly formatted Python docstring.

    Single-line docstrings stay on one line; multi-line use triple-quote blocks.
    """
    prefix: str = " " * (indent_level * size)
    stripped: str = text.strip().replace('"""', "'''")

    if "\n" not in stripped and len(stripped) + len(prefix) + 6 <= 99:
        return [f'{prefix}"""{stripped}"""']

    parts: List[str] = [f'{prefix}"""']
    parts.extend(
        f"{prefix}{line}" if line.strip() else ""
        for line in stripped.split("\n")
    )
    parts.append(f'{prefix}"""')
    return parts


def wrap_in_quotes(value: str) -> str:
    """Wrap a string value in double quotes, escaping internals."""
    escaped: str = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    """Create directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)


def write_file(path: Path, content: str, atomic: bool = True) -> int:
    """
    Write *content* to *path*.

    When *atomic* is True, writes to a temporary file in the same directory
    and then ``os.replace``-s it over the target.

    Returns the number of bytes written.
    """
    ensure_directory(path.parent)

    encoded: bytes = content.encode("utf-8")
    byte_count: int = len(encoded)

    if atomic:
        fd: int
        tmp_path: str
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(encoded)
            os.replace(tmp_path, str(path))
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
    else:
        path.write_bytes(encoded)

    logger.debug("Wrote %d bytes to %s", byte_count, path)
    return byte_count


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    """Count the number of lines in a string."""
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling generation steps.

    Usage:
        with Timer("analyse beans") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Import statement builder
# ---------------------------------------------------------------------------

# Maps Python type hint names to their import modules
PYTHON_TYPE_IMPORTS: Dict[str, Tuple[str, str]] = {
    "date": ("datetime", "date"),
    "datetime": ("datetime", "datetime"),
    "time": ("datetime", "time"),
    "timedelta": ("datetime", "timedelta"),
    "Decimal": ("decimal", "Decimal"),
    "UUID": ("uuid", "UUID"),
    "Any": ("typing", "Any"),
    "List": ("typing", "List"),
    "Optional": ("typing", "Optional"),
}

_TYPE_TOKEN_RE: re.Pattern[str] = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def collect_type_imports(python_type_hint: str) -> Dict[str, Set[str]]:
    """
    Return the imports needed by a type hint such as ``Optional[Decimal]``.

    Tokens are matched whole, so ``datetime`` does not also pull in ``date``.
    """
    result: Dict[str, Set[str]] = {}
    for token in _TYPE_TOKEN_RE.findall(python_type_hint):
        if token in PYTHON_TYPE_IMPORTS:
            module, name = PYTHON_TYPE_IMPORTS[token]
            result.setdefault(module, set()).add(name)
    return result


def build_import_block(imports: Dict[str, Set[str]]) -> str:
    """
    Build a sorted, de-duplicated import block from a mapping of
    module → set of names.

    Example:
        >>> build_import_block({"typing": {"List", "Optional"}, "datetime": {"datetime"}})
        'from datetime import datetime\\nfrom typing import List, Optional'
    """
    lines: List[str] = []
    for module in sorted(imports.keys()):
        names: List[str] = sorted(imports[module])
        if names:
            names_str: str = ", ".join(names)
            lines.append(f"from {module} import {names_str}")
        else:
            lines.append(f"import {module}")
    return "\n".join(lines)


def merge_import_dicts(
    *dicts: Dict[str, Set[str]],
) -> Dict[str, Set[str]]:
    """Merge multiple import dictionaries into one, unifying sets."""
    result: Dict[str, Set[str]] = {}
    for d in dicts:
        for module, names in d.items():
            if module in result:
                result[module] |= names
            else:
                result[module] = set(names)
    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "to_snake_case",
    "to_pascal_case",
    "to_camel_case",
    "to_plural",
    "to_singular",
    "escape_keyword",
    "safe_identifier",
    "Inflector",
    "EnglishInflector",
    "indent_lines",
    "make_docstring",
    "wrap_in_quotes",
    "ensure_directory",
    "write_file",
    "sha256_hex",
    "count_lines",
    "Timer",
    "PYTHON_TYPE_IMPORTS",
    "collect_type_imports",
    "build_import_block",
    "merge_import_dicts",
]

logger.debug("beangen.utils loaded — %d public symbols.", len(__all__))
