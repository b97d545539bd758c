"""Workspace configuration.

Settings live in the ``[tool.lazy-bump]`` table of the root pyproject.toml:

    [tool.lazy-bump]
    members = ["packages/*"]
    projects-relationship = "independent"
    current-version-resolver = "git-tag"
    specifier-source = "conventional-commits"
    update-dependents = "auto"

Command line flags override these values for a single run.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigurationError
from .models import (
    IMPLICIT_DEFAULT_RELEASE_GROUP,
    ConventionalCommitsConfig,
    ProjectGraph,
    ProjectNode,
    ReleaseGroup,
    VersionOptions,
    VersionPlan,
)
from .toml import get_lazy_bump_table, load_pyproject

FIXED_RELEASE_TAG_PATTERN = "v{version}"
INDEPENDENT_RELEASE_TAG_PATTERN = "{projectName}@{version}"


class LazyBumpConfig(BaseModel):
    """The ``[tool.lazy-bump]`` table, with kebab-case keys."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    members: list[str] = Field(default_factory=list)
    projects_relationship: Literal["fixed", "independent"] = Field(
        "fixed", alias="projects-relationship"
    )
    release_group: str = Field(IMPLICIT_DEFAULT_RELEASE_GROUP, alias="release-group")
    release_tag_pattern: str | None = Field(None, alias="release-tag-pattern")
    current_version_resolver: str = Field("disk", alias="current-version-resolver")
    fallback_current_version_resolver: str | None = Field(
        None, alias="fallback-current-version-resolver"
    )
    specifier_source: str = Field("prompt", alias="specifier-source")
    update_dependents: Literal["never", "auto"] = Field(
        "never", alias="update-dependents"
    )
    version_prefix: str | None = Field(None, alias="version-prefix")
    package_root: str | None = Field(None, alias="package-root")
    preid: str | None = None
    version_plans: bool = Field(False, alias="version-plans")
    delete_version_plans: bool = Field(False, alias="delete-version-plans")
    log_unchanged_projects: bool = Field(True, alias="log-unchanged-projects")
    preserve_local_dependency_protocols: bool = Field(
        False, alias="preserve-local-dependency-protocols"
    )
    conventional_commits: ConventionalCommitsConfig = Field(
        default_factory=ConventionalCommitsConfig, alias="conventional-commits"
    )

    def tag_pattern(self) -> str:
        """The configured tag pattern, or the default for the relationship."""
        if self.release_tag_pattern:
            return self.release_tag_pattern
        if self.projects_relationship == "independent":
            return INDEPENDENT_RELEASE_TAG_PATTERN
        return FIXED_RELEASE_TAG_PATTERN


def parse_config(data: dict[str, Any]) -> LazyBumpConfig:
    """Validate raw ``[tool.lazy-bump]`` data.

    Raises:
        ConfigurationError: Listing every invalid key.
    """
    try:
        return LazyBumpConfig.model_validate(data)
    except ValidationError as exc:
        problems = "\n".join(
            f"  {'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigurationError(
            f"Invalid [tool.lazy-bump] configuration:\n{problems}"
        ) from exc


def load_config(root: Path) -> LazyBumpConfig:
    """Read the configuration from ``root/pyproject.toml``.

    Raises:
        ConfigurationError: If the file is missing or the table is invalid.
    """
    pyproject = root / "pyproject.toml"
    if not pyproject.exists():
        raise ConfigurationError("No pyproject.toml found in the workspace root.")
    return parse_config(get_lazy_bump_table(load_pyproject(pyproject)))


def apply_overrides(config: LazyBumpConfig, **overrides: Any) -> LazyBumpConfig:
    """Return a copy of ``config`` with every non-None override applied.

    Overrides use field names, e.g. ``update_dependents="auto"``.
    """
    updates = {k: v for k, v in overrides.items() if v is not None}
    if not updates:
        return config
    return parse_config({**config.model_dump(), **updates})


def build_release_group(
    config: LazyBumpConfig, plans: list[VersionPlan] | None = None
) -> ReleaseGroup:
    return ReleaseGroup(
        name=config.release_group,
        projects_relationship=config.projects_relationship,
        release_tag_pattern=config.tag_pattern(),
        version_plans=config.version_plans,
        resolved_version_plans=plans or [],
    )


def build_version_options(
    config: LazyBumpConfig,
    graph: ProjectGraph,
    projects: list[ProjectNode],
    *,
    specifier: str | None = None,
    first_release: bool = False,
    plans: list[VersionPlan] | None = None,
) -> VersionOptions:
    """Assemble the engine options for one run.

    Args:
        config: Configuration with command line overrides already applied.
        graph: Project graph of the whole workspace.
        projects: Projects selected for this run.
        specifier: Explicit specifier given on the command line.
        first_release: Fall back to the version on disk when nothing is
            found by the current version resolver.
        plans: Version plans touching the release group.
    """
    return VersionOptions(
        projects=projects,
        project_graph=graph,
        release_group=build_release_group(config, plans),
        specifier=specifier,
        specifier_source=config.specifier_source,
        current_version_resolver=config.current_version_resolver,
        fallback_current_version_resolver=config.fallback_current_version_resolver,
        first_release=first_release,
        preid=config.preid,
        package_root=config.package_root,
        version_prefix=config.version_prefix,
        update_dependents=config.update_dependents,
        log_unchanged_projects=config.log_unchanged_projects,
        delete_version_plans=config.delete_version_plans,
        preserve_local_dependency_protocols=(
            config.preserve_local_dependency_protocols
        ),
        conventional_commits=config.conventional_commits,
    )
