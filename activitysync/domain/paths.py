"""Field paths and string templates over nested JSON records.

Two small grammars are compiled once from configuration and evaluated against
many records:

* a *path* such as ``summaryDTO.distance`` or ``laps[-1].duration`` addresses a
  value inside nested dictionaries and lists;
* a *template* such as ``"{baseDir}/activities/{activityId}.json"`` interpolates
  path values into literal text.

Compiling validates the expression up front so evaluation never raises.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

PATH_SEPARATOR = "."

_BRACKET_PATTERN = re.compile(r"\[(.+?)\]")
_SEGMENT_PATTERN = re.compile(r"\w")
_INDEX_PATTERN = re.compile(r"-?[0-9]+")
_PLACEHOLDER_PATTERN = re.compile(r"\{(.+?)\}")


class InvalidPathError(ValueError):
    """Raised when a path expression yields no usable segments."""

    def __init__(self, expression: str) -> None:
        super().__init__(f"Invalid path: '{expression}'")
        self.expression = expression


def split_path(expression: str) -> tuple[str, ...]:
    """Tokenize a path expression into its segments.

    ``[expr]`` is rewritten to ``.expr`` before splitting on ``.``. Segments are
    stripped and kept only when they contain at least one word character, so
    ``a..b`` and ``a[ ]`` both reduce to ``("a", "b")`` / ``("a",)`` while
    ``items[-1]`` keeps its negative index.
    """
    normalized = _BRACKET_PATTERN.sub(r".\1", expression)
    segments = (segment.strip() for segment in normalized.split(PATH_SEPARATOR))
    return tuple(segment for segment in segments if _SEGMENT_PATTERN.search(segment))


def _as_index(segment: str) -> int | None:
    if _INDEX_PATTERN.fullmatch(segment) is None:
        return None
    return int(segment)


def _step(value: Any, segment: str, index: int | None) -> Any:
    if isinstance(value, (list, tuple)) and index is not None:
        if index < 0:
            index += len(value)
        if 0 <= index < len(value):
            return value[index]
        return None
    if isinstance(value, Mapping):
        return value.get(segment)
    return None


@dataclass(frozen=True)
class Path:
    """A compiled accessor for one path expression."""

    expression: str
    segments: tuple[str, ...]
    _indices: tuple[int | None, ...] = field(repr=False, compare=False)

    @property
    def name(self) -> str:
        """The final segment, used as the default projection alias."""
        return self.segments[-1]

    def __call__(self, data: Any) -> Any:
        value = data
        for segment, index in zip(self.segments, self._indices):
            if value is None:
                return None
            value = _step(value, segment, index)
        return value


def compile_path(expression: str) -> Path:
    """Compile ``expression`` into a reusable :class:`Path`.

    Raises:
        InvalidPathError: If no valid segment remains after tokenizing.
    """
    segments = split_path(expression)
    if not segments:
        raise InvalidPathError(expression)
    return Path(
        expression=expression,
        segments=segments,
        _indices=tuple(_as_index(segment) for segment in segments),
    )


def evaluate_path(data: Any, expression: str) -> Any:
    return compile_path(expression)(data)


def stringify(value: Any) -> str:
    """Render an interpolated value.

    ``None`` renders as ``null`` and booleans as ``true``/``false`` so output
    matches the JSON the values came from. Containers are rendered as compact
    JSON; everything else goes through ``str``.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    return str(value)


@dataclass(frozen=True)
class Template:
    """A compiled string template.

    ``literals`` always holds one more element than ``paths``; evaluation
    alternates between them starting with ``literals[0]``.
    """

    source: str
    literals: tuple[str, ...]
    paths: tuple[Path, ...]

    def __call__(self, data: Any) -> str:
        parts = [self.literals[0]]
        for path, literal in zip(self.paths, self.literals[1:]):
            parts.append(stringify(path(data)))
            parts.append(literal)
        return "".join(parts)


def compile_template(source: str) -> Template:
    """Compile every ``{path}`` placeholder in ``source``.

    Raises:
        InvalidPathError: If a placeholder holds an invalid path.
    """
    literals: list[str] = []
    paths: list[Path] = []
    last_index = 0
    for match in _PLACEHOLDER_PATTERN.finditer(source):
        literals.append(source[last_index:match.start()])
        paths.append(compile_path(match.group(1)))
        last_index = match.end()
    literals.append(source[last_index:])
    return Template(source=source, literals=tuple(literals), paths=tuple(paths))


def evaluate_template(source: str, data: Any) -> str:
    return compile_template(source)(data)


__all__ = [
    "InvalidPathError",
    "Path",
    "Template",
    "compile_path",
    "compile_template",
    "evaluate_path",
    "evaluate_template",
    "split_path",
    "stringify",
]
