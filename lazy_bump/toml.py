"""TOML reading and writing utilities for Poetry manifests.

Uses tomlkit to preserve formatting and comments when modifying
pyproject.toml files. This is important for keeping version bump diffs
minimal and readable.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import tomlkit
from packaging.utils import canonicalize_name

from .models import DependencyCollection


def load_pyproject(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a pyproject.toml file.

    Returns a TOMLDocument that preserves formatting when modified and saved.
    """
    return tomlkit.parse(path.read_text())


def get_poetry_table(doc: tomlkit.TOMLDocument) -> Any | None:
    """Return the ``[tool.poetry]`` table, or None if the file has none."""
    return doc.get("tool", {}).get("poetry")


def get_package_name(doc: tomlkit.TOMLDocument, fallback: str = "") -> str:
    """Extract the package name from [tool.poetry].name, as written."""
    poetry = get_poetry_table(doc) or {}
    return str(poetry.get("name", fallback))


def get_package_version(doc: tomlkit.TOMLDocument) -> str | None:
    """Extract [tool.poetry].version, or None when it is not set."""
    poetry = get_poetry_table(doc) or {}
    version = poetry.get("version")
    return str(version) if version else None


def iter_dependency_tables(
    doc: tomlkit.TOMLDocument,
) -> Iterator[tuple[DependencyCollection, str | None, Any]]:
    """Yield every dependency table in a Poetry manifest.

    Yields ``(collection, group_key, table)`` tuples:
    - [tool.poetry.dependencies] as ``("main", None, ...)``
    - [tool.poetry.group.dev.dependencies] as ``("dev", "dev", ...)``
    - any other group as ``("optional", <group>, ...)``
    """
    poetry = get_poetry_table(doc) or {}
    main = poetry.get("dependencies")
    if isinstance(main, dict):
        yield "main", None, main
    for group_key, group in (poetry.get("group") or {}).items():
        deps = group.get("dependencies") if isinstance(group, dict) else None
        if isinstance(deps, dict):
            yield ("dev" if group_key == "dev" else "optional"), group_key, deps


def get_dependency_table(
    doc: tomlkit.TOMLDocument, group_key: str | None
) -> Any | None:
    """Return the main dependency table, or the one of ``group_key``."""
    poetry = get_poetry_table(doc) or {}
    if group_key is None:
        return poetry.get("dependencies")
    group = (poetry.get("group") or {}).get(group_key) or {}
    return group.get("dependencies")


def find_dependency_key(table: Any, package_name: str) -> str | None:
    """Find the key under which ``package_name`` is listed in ``table``.

    Keys are compared after PEP 503 normalisation, so ``My_Lib`` matches
    ``my-lib``.
    """
    if not isinstance(table, dict):
        return None
    wanted = canonicalize_name(package_name)
    for key in table:
        if canonicalize_name(str(key)) == wanted:
            return str(key)
    return None


def find_dependency(
    doc: tomlkit.TOMLDocument, package_name: str
) -> tuple[DependencyCollection, str | None, Any] | None:
    """Locate ``package_name`` among all dependency tables of ``doc``.

    Returns:
        ``(collection, group_key, value)`` for the first table listing the
        package, or None when the manifest does not depend on it.
    """
    for collection, group_key, table in iter_dependency_tables(doc):
        key = find_dependency_key(table, package_name)
        if key is not None:
            return collection, group_key, table[key]
    return None


def set_dependency_version(table: Any, package_name: str, new_spec: str) -> bool:
    """Rewrite the version spec of ``package_name`` inside ``table``.

    Plain string entries are replaced outright. Inline tables only have
    their ``version`` key updated; path-only entries are left alone.

    Returns:
        True if the table was modified.
    """
    key = find_dependency_key(table, package_name)
    if key is None:
        return False
    value = table[key]
    if isinstance(value, str):
        table[key] = new_spec
        return True
    if isinstance(value, dict) and value.get("version"):
        value["version"] = new_spec
        return True
    return False


def get_lazy_bump_table(doc: tomlkit.TOMLDocument) -> dict[str, Any]:
    """Extract the ``[tool.lazy-bump]`` table as plain Python data."""
    table = doc.get("tool", {}).get("lazy-bump", {})
    return table.unwrap() if hasattr(table, "unwrap") else dict(table)
