"""hotpatch strict architecture guard.

Enforced at import time:

1) All customized exceptions MUST be defined in `hotpatch/core/exception.py`.
2) All pydantic models (BaseModel subclasses other than Settings) MUST be
   defined in `hotpatch/core/spec.py`.

A violating class raises RuntimeError naming the file and class.
"""

from __future__ import annotations

import ast
import os
from pathlib import Path
from typing import Iterable, List, Tuple

Violation = Tuple[str, Path]

# Matched against path parts below the package root only.
_SKIP_PARTS = {"__pycache__", "build", "dist", "tests", "test", "docs"}
_EXCEPTION_BASES = {"BaseException", "Exception"}
_MODEL_BASES = {"BaseModel", "RootModel"}
# Settings lives in runtime.settings
_MODEL_ALLOWED = {"Settings"}


def _iter_python_files(package_root: Path) -> Iterable[Path]:
    for path in sorted(package_root.rglob("*.py")):
        if _SKIP_PARTS.intersection(path.relative_to(package_root).parts[:-1]):
            continue
        yield path


def _base_name(node: ast.expr) -> str | None:
    """Last dotted segment of a base class expression (`pydantic.BaseModel` -> `BaseModel`)."""
    if isinstance(node, ast.Subscript):
        node = node.value
    if isinstance(node, ast.Attribute):
        return node.attr
    if isinstance(node, ast.Name):
        return node.id
    return None


def _classify(cls: ast.ClassDef) -> Tuple[bool, bool]:
    names = [n for n in (_base_name(b) for b in cls.bases) if n]
    # ValueError/KeyError/... subclasses count as customized exceptions too
    is_exc = any(n in _EXCEPTION_BASES or n.endswith(("Error", "Exception")) for n in names)
    is_model = any(n in _MODEL_BASES for n in names)
    return is_exc, is_model


def find_violations(package_root: Path) -> Tuple[List[Violation], List[Violation]]:
    """Return (misplaced exceptions, misplaced models) under package_root."""
    package_root = package_root.resolve()
    exception_file = package_root / "exception.py"
    spec_file = package_root / "spec.py"

    exc_violations: List[Violation] = []
    model_violations: List[Violation] = []
    for path in _iter_python_files(package_root):
        if path in (exception_file, spec_file):
            continue
        try:
            tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
        except (OSError, UnicodeDecodeError, SyntaxError) as e:
            raise RuntimeError(f"[hotpatch strict-arch] Cannot parse source file: {path}") from e

        for node in ast.walk(tree):
            if not isinstance(node, ast.ClassDef):
                continue
            is_exc, is_model = _classify(node)
            if is_exc:
                exc_violations.append((node.name, path))
            if is_model and node.name not in _MODEL_ALLOWED:
                model_violations.append((node.name, path))

    return exc_violations, model_violations


def _report(title: str, violations: List[Violation], fix: str) -> List[str]:
    rows = [f"  - {cls} defined in {path}" for cls, path in sorted(violations, key=lambda v: (str(v[1]), v[0]))]
    return ["", title, *rows, fix]


def assert_architecture() -> None:
    """Scan the hotpatch source tree and raise if strict rules are violated.

    Disable by setting env var HOTPATCH_STRICT_ARCH=0.
    """
    if os.getenv("HOTPATCH_STRICT_ARCH", "1") == "0":
        return

    exc_violations, model_violations = find_violations(Path(__file__).parent)
    if not exc_violations and not model_violations:
        return

    lines = ["hotpatch strict architecture check failed:"]
    if exc_violations:
        lines += _report(
            "RULE #1 - CUSTOMIZED EXCEPTIONS:",
            exc_violations,
            "Fix: move these exception classes into hotpatch/core/exception.py.",
        )
    if model_violations:
        lines += _report(
            "RULE #2 - MODELS:",
            model_violations,
            "Fix: move these models into hotpatch/core/spec.py.",
        )
    raise RuntimeError("\n".join(lines))
