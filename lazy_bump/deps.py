"""Local dependency resolution.

Works out which workspace projects depend on which other workspace projects
through local (path) references, and reads or rewrites the version spec a
dependent records for such a dependency.
"""

from __future__ import annotations

import posixpath
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, Field

from .models import LocalPackageDependency, ProjectGraph, ProjectNode
from .toml import (
    find_dependency,
    find_dependency_key,
    get_package_name,
    get_package_version,
)
from .tree import ManifestTree


def manifest_path(package_root: str) -> str:
    return posixpath.join(package_root, "pyproject.toml")


class LocalDependencyIndex(BaseModel):
    """Local package dependency edges indexed by their target.

    Attributes:
        by_target: Map of project name → edges of projects depending on it.
        skipped: ``(source, target)`` graph edges that were dropped because
            one side had no readable manifest.
    """

    by_target: dict[str, list[LocalPackageDependency]] = Field(default_factory=dict)
    skipped: list[tuple[str, str]] = Field(default_factory=list)

    def dependents_of(self, project_name: str) -> list[LocalPackageDependency]:
        """Edges whose target is ``project_name`` (who depends on me)."""
        return list(self.by_target.get(project_name, []))


def resolve_local_package_dependencies(
    tree: ManifestTree,
    graph: ProjectGraph,
    projects: list[ProjectNode],
    package_roots: Mapping[str, str],
    resolve_package_root: Callable[[ProjectNode], str],
    include_all: bool = False,
) -> LocalDependencyIndex:
    """Build the local package dependency edges for a run.

    An edge ``source → target`` exists when the project graph records that
    dependency and ``source``'s manifest lists ``target``'s package name in
    its main dependencies or in one of its groups.

    Args:
        tree: Manifest store to read pyproject.toml files from.
        graph: Project graph whose edges come from path dependencies.
        projects: Projects selected for this run.
        package_roots: Precomputed package roots for the selected projects.
        resolve_package_root: Used for projects outside ``package_roots``.
        include_all: Also consider dependents outside ``projects``, so that
            they can be notified when something they depend on is bumped.

    Returns:
        The edges, indexed by target. Edges whose manifests cannot be read
        are recorded in ``skipped`` instead of raising.
    """
    index = LocalDependencyIndex()
    sources = list(graph.nodes.values()) if include_all else projects

    def root_of(node: ProjectNode) -> str:
        return package_roots.get(node.name) or resolve_package_root(node)

    for source in sources:
        source_path = manifest_path(root_of(source))
        for target_name in dict.fromkeys(graph.dependencies.get(source.name, [])):
            target = graph.nodes.get(target_name)
            if target is None or target_name == source.name:
                continue
            target_path = manifest_path(root_of(target))
            if not tree.exists(source_path) or not tree.exists(target_path):
                index.skipped.append((source.name, target_name))
                continue

            package_name = get_package_name(tree.read(target_path))
            found = find_dependency(tree.read(source_path), package_name)
            if found is None:
                continue
            collection, group_key, _ = found
            index.by_target.setdefault(target_name, []).append(
                LocalPackageDependency(
                    source=source.name,
                    target=target_name,
                    dependency_collection=collection,
                    group_key=group_key,
                )
            )

    return index


def extract_dependency_version(
    tree: ManifestTree,
    source_root: str,
    table: Any,
    package_name: str,
) -> str | None:
    """Return the version spec a dependent records for ``package_name``.

    - ``lib = "^1.0.0"`` → ``"^1.0.0"``
    - ``lib = {version = "^1.0.0", path = "../lib"}`` → ``"^1.0.0"``
    - ``lib = {path = "../lib", develop = true}`` → the version found in
      ``../lib/pyproject.toml``
    """
    key = find_dependency_key(table, package_name)
    if key is None:
        return None
    value = table[key]
    if isinstance(value, str):
        return str(value)
    if isinstance(value, dict):
        if value.get("version"):
            return str(value["version"])
        if value.get("path"):
            target = manifest_path(posixpath.join(source_root, str(value["path"])))
            if tree.exists(target):
                return get_package_version(tree.read(target))
    return None
