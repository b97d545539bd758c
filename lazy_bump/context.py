"""State shared across the steps of a single versioning run."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from .deps import LocalDependencyIndex
from .git import GitTag
from .logger import ProjectLogger, Sink
from .models import ProjectNode, VersionOptions, VersionPlan
from .tree import ManifestTree
from .version_data import VersionDataAggregator


@dataclass
class RunContext:
    """Everything one run reads and mutates, passed to every step.

    Fixed release groups cache the resolved current version, matching git
    tag and specifier here so that they are resolved once and reused for
    every project. Independent groups resolve them again per project.
    """

    tree: ManifestTree
    options: VersionOptions
    projects: list[ProjectNode]
    package_roots: dict[str, str]
    dependencies: LocalDependencyIndex = field(default_factory=LocalDependencyIndex)
    resolve_package_root: Callable[[ProjectNode], str] | None = None
    sink: Sink | None = None
    specifier: str | None = None
    specifier_source: str = "prompt"
    fallback_current_version_resolver: str | None = None

    # Distinguishes "not resolved yet" from a resolved "no change" (None)
    specifier_resolved: bool = False
    current_version: str | None = None
    current_version_from_fallback: bool = False
    latest_matching_git_tag: GitTag | None = None

    logger: ProjectLogger | None = None
    version_data: VersionDataAggregator = field(default_factory=VersionDataAggregator)
    # dependent project → upstream projects whose bump affects it
    project_to_dependency_bumps: dict[str, set[str]] = field(default_factory=dict)
    bumped_projects: set[str] = field(default_factory=set)
    processed_projects: set[str] = field(default_factory=set)
    lock_dirs: list[str] = field(default_factory=list)
    plans_to_delete: dict[str, VersionPlan] = field(default_factory=dict)

    @property
    def independent(self) -> bool:
        return self.options.release_group.projects_relationship == "independent"

    def root_of(self, project_name: str) -> str | None:
        """Package root of any project in the graph, selected or not."""
        if project_name in self.package_roots:
            return self.package_roots[project_name]
        node = self.options.project_graph.nodes.get(project_name)
        if node is None:
            return None
        if self.resolve_package_root is not None:
            return self.resolve_package_root(node)
        return node.root

    def add_dependency_bump(self, dependent: str, upstream: str) -> None:
        self.project_to_dependency_bumps.setdefault(dependent, set()).add(upstream)

    def schedule_plan_deletion(self, plans: list[VersionPlan]) -> None:
        for plan in plans:
            self.plans_to_delete.setdefault(plan.absolute_path, plan)
