"""Tests for lazy_bump.deps."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from lazy_bump.deps import (
    extract_dependency_version,
    resolve_local_package_dependencies,
)
from lazy_bump.models import LocalPackageDependency, ProjectGraph, ProjectNode
from lazy_bump.toml import get_dependency_table
from lazy_bump.tree import ManifestTree
from lazy_bump.workspace import create_resolve_package_root, discover_projects


def _resolve(root: Path, names: list[str], include_all: bool = False):
    graph = discover_projects(root, ["packages/*"])
    projects = [graph.nodes[n] for n in names]
    resolve = create_resolve_package_root(None)
    return resolve_local_package_dependencies(
        ManifestTree(root),
        graph,
        projects,
        {p.name: resolve(p) for p in projects},
        resolve,
        include_all=include_all,
    )


class TestResolveLocalPackageDependencies:
    def test_main_dependency(self, workspace: Path) -> None:
        index = _resolve(workspace, ["lib-a", "app-b"])
        assert index.dependents_of("lib-a") == [
            LocalPackageDependency(source="app-b", target="lib-a")
        ]
        assert index.dependents_of("app-b") == []

    def test_sources_limited_to_batch(self, workspace: Path) -> None:
        assert _resolve(workspace, ["lib-a"]).by_target == {}

    def test_include_all(self, workspace: Path) -> None:
        index = _resolve(workspace, ["lib-a"], include_all=True)
        assert [d.source for d in index.dependents_of("lib-a")] == ["app-b"]

    def test_group_dependency(
        self, tmp_path: Path, add_project: Callable[..., Path]
    ) -> None:
        add_project("lib-a")
        add_project(
            "tool-c",
            groups={"test": {"lib-a": '{path = "../lib-a", develop = true}'}},
        )
        index = _resolve(tmp_path, ["lib-a", "tool-c"])
        assert index.dependents_of("lib-a") == [
            LocalPackageDependency(
                source="tool-c",
                target="lib-a",
                dependency_collection="optional",
                group_key="test",
            )
        ]

    def test_missing_manifest_is_skipped(self, tmp_path: Path) -> None:
        graph = ProjectGraph(
            nodes={
                "a": ProjectNode(name="a", root="packages/a"),
                "b": ProjectNode(name="b", root="packages/b"),
            },
            dependencies={"a": ["b"], "b": []},
        )
        resolve = create_resolve_package_root(None)
        index = resolve_local_package_dependencies(
            ManifestTree(tmp_path),
            graph,
            list(graph.nodes.values()),
            {},
            resolve,
        )
        assert index.by_target == {}
        assert index.skipped == [("a", "b")]


class TestExtractDependencyVersion:
    def test_version_from_inline_table(self, workspace: Path) -> None:
        tree = ManifestTree(workspace)
        doc = tree.read("packages/app-b/pyproject.toml")
        table = get_dependency_table(doc, None)
        assert (
            extract_dependency_version(tree, "packages/app-b", table, "lib-a")
            == "^1.0.0"
        )

    def test_path_only_reads_target_manifest(
        self, tmp_path: Path, add_project: Callable[..., Path]
    ) -> None:
        add_project("lib-a", "1.4.2")
        add_project("app-b", dependencies={"lib_a": '{path = "../lib-a"}'})
        tree = ManifestTree(tmp_path)
        table = get_dependency_table(tree.read("packages/app-b/pyproject.toml"), None)
        assert (
            extract_dependency_version(tree, "packages/app-b", table, "lib-a")
            == "1.4.2"
        )

    def test_missing(self, workspace: Path) -> None:
        tree = ManifestTree(workspace)
        table = get_dependency_table(tree.read("packages/lib-a/pyproject.toml"), None)
        assert extract_dependency_version(tree, "packages/lib-a", table, "x") is None
