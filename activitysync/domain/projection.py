"""Record projection policies.

A pick policy shapes a record before it is persisted. Configuration selects one
of three policies:

* ``all`` keeps every field;
* ``notNull`` keeps every field whose value is not ``None``;
* an explicit list of paths builds a new record holding only those paths, in
  list order, optionally renamed with ``"path as alias"`` or ``[path, alias]``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal, Union

from .paths import Path, compile_path

Record = dict[str, Any]

# Unique identifier of a summary record.
ACTIVITY_ID = "activityId"

PickEntry = Union[str, Sequence[str]]
PolicyName = Literal["all", "notNull"]

ALIAS_SEPARATOR = re.compile(r"\s+as\s+")


@dataclass(frozen=True)
class Field:
    """One projected value: where to read it and which key to store it under."""

    path: Path
    alias: str

    @classmethod
    def named(cls, expression: str) -> "Field":
        path = compile_path(expression)
        return cls(path=path, alias=path.name)

    @classmethod
    def aliased(cls, expression: str, alias: str) -> "Field":
        return cls(path=compile_path(expression), alias=alias)


def parse_field(entry: PickEntry) -> Field:
    """Normalize one configured pick entry into a :class:`Field`."""
    if isinstance(entry, str):
        # Anything after a second "as" is ignored.
        parts = ALIAS_SEPARATOR.split(entry.strip())
        if len(parts) >= 2:
            return Field.aliased(parts[0], parts[1])
        return Field.named(parts[0])
    if len(entry) != 2:
        raise ValueError(f"Pick entry must be a path or a [path, alias] pair: {entry!r}")
    expression, alias = entry
    return Field.aliased(expression, alias)


def merge_required_fields(
    fields: Sequence[Field], required: Iterable[str] = ()
) -> tuple[Field, ...]:
    """Ensure every required path is projected.

    Each required path whose alias is not produced yet is inserted at the front;
    fields the caller asked for keep their relative order.
    """
    merged = list(fields)
    for expression in required:
        field = Field.named(expression)
        if not any(existing.alias == field.alias for existing in merged):
            merged.insert(0, field)
    return tuple(merged)


class PickAll:
    """Shallow copy of every field.

    Documents that are not mappings, such as JSON arrays, are returned as is.
    """

    name = "all"

    def __call__(self, record: Any) -> Any:
        if not isinstance(record, Mapping):
            return record
        return dict(record)

    def __repr__(self) -> str:
        return "PickAll()"


class PickNotNull:
    """Shallow copy without ``None`` values."""

    name = "notNull"

    def __call__(self, record: Any) -> Any:
        if not isinstance(record, Mapping):
            return record
        return {key: value for key, value in record.items() if value is not None}

    def __repr__(self) -> str:
        return "PickNotNull()"


class PickExplicit:
    """Build a fresh record from an ordered list of fields."""

    name = "explicit"

    def __init__(self, fields: Sequence[Field]) -> None:
        self.fields = tuple(fields)

    def __call__(self, record: Mapping[str, Any]) -> Record:
        return {field.alias: field.path(record) for field in self.fields}

    def __repr__(self) -> str:
        aliases = ", ".join(field.alias for field in self.fields)
        return f"PickExplicit([{aliases}])"


PickPolicy = Union[PickAll, PickNotNull, PickExplicit]


def named_policy(name: str) -> PickPolicy:
    """Return the policy for a policy name; unknown names fall back to ``all``."""
    if name.lower() == "notnull":
        return PickNotNull()
    return PickAll()


def build_pick_policy(
    pick: str | Sequence[PickEntry] | None,
    default_policy: str = "all",
    required: Iterable[str] = (),
) -> PickPolicy:
    """Resolve a configured ``pick`` value into a policy.

    Args:
        pick: An explicit list of entries, a policy name, or ``None``.
        default_policy: Policy name used when ``pick`` is ``None``.
        required: Paths an explicit list must always include.
    """
    if pick is None:
        return named_policy(default_policy)
    if isinstance(pick, str):
        return named_policy(pick)
    fields = [parse_field(entry) for entry in pick]
    return PickExplicit(merge_required_fields(fields, required))


__all__ = [
    "ACTIVITY_ID",
    "Field",
    "PickAll",
    "PickEntry",
    "PickExplicit",
    "PickNotNull",
    "PickPolicy",
    "PolicyName",
    "Record",
    "build_pick_policy",
    "merge_required_fields",
    "named_policy",
    "parse_field",
]
