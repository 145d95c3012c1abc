"""Finds and imports the ``component.py`` module of every resource and service."""

from __future__ import annotations

import importlib
import re
from pathlib import Path

_REPO_ROOT = Path(__file__).resolve().parents[2]
_SEARCH_ROOTS = ("resources", "services")
_REGISTRATION = re.compile(r"^MANIFEST\s*=\s*register_component\(", re.MULTILINE)


def discover_component_modules(repo_root: Path | None = None) -> tuple[str, ...]:
    """Dotted module paths of ``component.py`` files that register a manifest."""
    root = repo_root or _REPO_ROOT
    modules: list[str] = []
    for search_root in _SEARCH_ROOTS:
        for path in sorted((root / search_root).glob("**/component.py")):
            relative = path.relative_to(root).with_suffix("")
            if "tests" in relative.parts:
                continue
            if _REGISTRATION.search(path.read_text(encoding="utf-8")) is None:
                continue
            modules.append(".".join(relative.parts))
    return tuple(modules)


def import_component_modules(repo_root: Path | None = None) -> tuple[str, ...]:
    modules = discover_component_modules(repo_root)
    for module in modules:
        importlib.import_module(module)
    return modules
