"""Domain layer for activitysync.

Pure record-shaping logic with no I/O: path and template compilation plus the
projection policies applied to records before they are persisted.
"""

from .paths import (
    InvalidPathError,
    Path,
    Template,
    compile_path,
    compile_template,
    evaluate_path,
    evaluate_template,
)
from .projection import (
    Field,
    PickAll,
    PickExplicit,
    PickNotNull,
    PickPolicy,
    build_pick_policy,
    merge_required_fields,
)

__all__ = [
    "Field",
    "InvalidPathError",
    "Path",
    "PickAll",
    "PickExplicit",
    "PickNotNull",
    "PickPolicy",
    "Template",
    "build_pick_policy",
    "compile_path",
    "compile_template",
    "evaluate_path",
    "evaluate_template",
    "merge_required_fields",
]
