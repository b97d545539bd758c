"""Workspace discovery.

Finds the Poetry projects of a monorepo and the local (path) dependencies
between them, producing the project graph the versioning engine consumes.
"""

from __future__ import annotations

import glob
import posixpath
from collections.abc import Callable
from pathlib import Path

from packaging.utils import canonicalize_name

from .errors import ConfigurationError
from .models import ProjectGraph, ProjectNode
from .toml import (
    get_package_name,
    get_poetry_table,
    iter_dependency_tables,
    load_pyproject,
)


def create_resolve_package_root(
    custom_package_root: str | None,
) -> Callable[[ProjectNode], str]:
    """Build a function mapping a project to the directory of its manifest.

    ``custom_package_root`` may use ``{workspaceRoot}`` (always empty),
    ``{projectRoot}`` and ``{projectName}``, e.g. ``{projectRoot}/dist``.
    Projects rooted at the workspace root keep ``.``.
    """

    def resolve(project: ProjectNode) -> str:
        if not custom_package_root or project.root == ".":
            return project.root
        interpolated = (
            custom_package_root.replace("{workspaceRoot}", "")
            .replace("{projectRoot}", project.root)
            .replace("{projectName}", project.name)
        )
        return posixpath.normpath(interpolated).lstrip("/") or "."

    return resolve


def discover_projects(root: Path, member_globs: list[str]) -> ProjectGraph:
    """Scan the workspace and build the project graph.

    Every directory matching one of ``member_globs`` whose pyproject.toml
    has a [tool.poetry] table becomes a project, named after its normalised
    package name. Path dependencies that point at another project become
    graph edges.

    Raises:
        ConfigurationError: If no globs are given or nothing matches.
    """
    if not member_globs:
        raise ConfigurationError(
            "No members defined in [tool.lazy-bump] of the root pyproject.toml.\n"
            "Example:\n\n"
            "  [tool.lazy-bump]\n"
            '  members = ["packages/*"]'
        )

    # Expand globs to find all project directories
    member_dirs: list[Path] = []
    for pattern in member_globs:
        for match in sorted(glob.glob(str(root / pattern))):
            p = Path(match).resolve()
            if (p / "pyproject.toml").exists() and p not in member_dirs:
                member_dirs.append(p)

    graph = ProjectGraph()
    dir_to_name: dict[Path, str] = {}
    docs = {}
    for d in member_dirs:
        doc = load_pyproject(d / "pyproject.toml")
        if get_poetry_table(doc) is None:
            continue
        name = canonicalize_name(get_package_name(doc, d.name))
        rel = d.relative_to(root.resolve()).as_posix() or "."
        graph.nodes[name] = ProjectNode(name=name, root=rel)
        dir_to_name[d] = name
        docs[name] = (d, doc)

    if not graph.nodes:
        raise ConfigurationError("No Poetry projects found matching workspace members")

    # Second pass: path dependencies that land on another member are local edges
    for name, (d, doc) in docs.items():
        deps: list[str] = []
        for _, _, table in iter_dependency_tables(doc):
            for value in table.values():
                if not isinstance(value, dict) or not value.get("path"):
                    continue
                target = dir_to_name.get((d / str(value["path"])).resolve())
                if target and target != name and target not in deps:
                    deps.append(target)
        graph.dependencies[name] = deps

    return graph
