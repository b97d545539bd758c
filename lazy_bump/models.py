"""Data models for lazy-bump.

These Pydantic models represent the core data structures shared by the
workspace discovery, the versioning engine and the CLI.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

DependencyCollection = Literal["main", "dev", "optional"]

IMPLICIT_DEFAULT_RELEASE_GROUP = "__default__"


class ProjectNode(BaseModel):
    """A single versionable project in the workspace.

    Attributes:
        name: Unique project name.
        root: Path of the project directory, relative to the workspace root.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    root: str


class ProjectGraph(BaseModel):
    """Projects plus their local (path) dependency edges.

    Attributes:
        nodes: Map of project name → ProjectNode.
        dependencies: Map of project name → names of the projects it
            depends on locally.
    """

    nodes: dict[str, ProjectNode] = Field(default_factory=dict)
    dependencies: dict[str, list[str]] = Field(default_factory=dict)


class LocalPackageDependency(BaseModel):
    """``source`` declares a local dependency on ``target``'s package.

    Attributes:
        source: Name of the dependent project.
        target: Name of the project being depended on.
        dependency_collection: Which manifest collection lists the dependency.
        group_key: Poetry group name when the dependency lives in a group.
    """

    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    dependency_collection: DependencyCollection = "main"
    group_key: str | None = None


class VersionDataEntry(BaseModel):
    """Outcome of a run for a single project.

    ``new_version`` stays None when no change was necessary.
    """

    current_version: str | None
    new_version: str | None = None
    dependent_projects: list[LocalPackageDependency] = Field(default_factory=list)


class VersionPlan(BaseModel):
    """A pre-authored bump request read from a version plan file.

    Exactly one of ``project_version_bumps`` (independent groups) or
    ``group_version_bump`` (fixed groups) is set.
    """

    absolute_path: str
    relative_path: str
    message: str = ""
    project_version_bumps: dict[str, str] | None = None
    group_version_bump: str | None = None


class ReleaseGroup(BaseModel):
    """A set of projects released together.

    Attributes:
        name: Group name; ``__default__`` when the user never named one.
        projects_relationship: "fixed" shares one version across the group,
            "independent" versions every project separately.
        release_tag_pattern: Git tag pattern with ``{projectName}`` and
            ``{version}`` placeholders.
        version_plans: Whether version plans are enabled for this group.
        resolved_version_plans: Plans that touch this group.
    """

    name: str = IMPLICIT_DEFAULT_RELEASE_GROUP
    projects_relationship: Literal["fixed", "independent"] = "fixed"
    release_tag_pattern: str = "v{version}"
    version_plans: bool = False
    resolved_version_plans: list[VersionPlan] = Field(default_factory=list)


class ConventionalCommitsConfig(BaseModel):
    """Maps conventional commit types to the bump they trigger.

    Breaking changes always trigger ``major``; types not listed here do
    not trigger a release.
    """

    types: dict[str, Literal["major", "minor", "patch"]] = Field(
        default_factory=lambda: {"feat": "minor", "fix": "patch", "perf": "patch"}
    )


class VersionOptions(BaseModel):
    """Everything a single versioning run needs.

    String-valued strategy fields are validated by the engine so that bad
    values surface as ``ConfigurationError`` with a descriptive message.
    """

    projects: list[ProjectNode]
    project_graph: ProjectGraph
    release_group: ReleaseGroup = Field(default_factory=ReleaseGroup)
    specifier: str | None = None
    specifier_source: str = "prompt"
    current_version_resolver: str = "disk"
    fallback_current_version_resolver: str | None = None
    first_release: bool = False
    preid: str | None = None
    package_root: str | None = None
    version_prefix: str | None = None
    update_dependents: Literal["never", "auto"] = "never"
    log_unchanged_projects: bool = True
    delete_version_plans: bool = False
    preserve_local_dependency_protocols: bool = False
    conventional_commits: ConventionalCommitsConfig = Field(
        default_factory=ConventionalCommitsConfig
    )


class CallbackResult(BaseModel):
    """Files touched by the deferred side effects of a run."""

    changed_files: list[str] = Field(default_factory=list)
    deleted_files: list[str] = Field(default_factory=list)
