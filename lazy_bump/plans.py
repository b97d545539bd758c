"""Version plan files.

A version plan is a Markdown file whose YAML front matter declares the bump
one or more projects should receive on the next release:

    ---
    lib-a: minor
    app-b: patch
    ---

    Add streaming support to lib-a.

For fixed release groups the key may also be the release group name.
"""

from __future__ import annotations

from pathlib import Path

import yaml

from .errors import ConfigurationError
from .models import ReleaseGroup, VersionPlan
from .versions import is_relative_keyword

VERSION_PLANS_DIR = Path(".lazy-bump") / "version-plans"


def split_front_matter(text: str) -> tuple[dict[str, str], str]:
    """Split a plan file into its front matter mapping and body.

    Raises:
        ConfigurationError: If the front matter is missing or not a mapping.
    """
    lines = text.lstrip("\ufeff").splitlines()
    if not lines or lines[0].strip() != "---":
        raise ConfigurationError("Version plan is missing its front matter block")
    try:
        end = next(i for i in range(1, len(lines)) if lines[i].strip() == "---")
    except StopIteration:
        msg = "Version plan front matter is not terminated"
        raise ConfigurationError(msg) from None

    data = yaml.safe_load("\n".join(lines[1:end])) or {}
    if not isinstance(data, dict):
        raise ConfigurationError("Version plan front matter must be a mapping")
    body = "\n".join(lines[end + 1 :]).strip()
    return {str(k): str(v) for k, v in data.items()}, body


def parse_version_plan(
    path: Path,
    root: Path,
    group: ReleaseGroup,
    group_projects: list[str],
    known_projects: list[str],
) -> VersionPlan | None:
    """Parse a single plan file for ``group``.

    Returns:
        The plan, or None when it does not touch any project of the group.
    """
    relative = path.relative_to(root).as_posix()
    try:
        bumps, message = split_front_matter(path.read_text())
    except ConfigurationError as exc:
        raise ConfigurationError(f"{relative}: {exc}") from exc

    for key, bump in bumps.items():
        if not is_relative_keyword(bump):
            raise ConfigurationError(
                f'{relative}: invalid version bump "{bump}" for "{key}". '
                'Use a semver keyword such as "major", "minor" or "patch".'
            )
        if key != group.name and key not in known_projects:
            raise ConfigurationError(
                f'{relative}: "{key}" is neither a project nor a release group'
            )

    if group.projects_relationship == "independent":
        if group.name in bumps:
            raise ConfigurationError(
                f'{relative}: found a version bump for release group "{group.name}" '
                "whose projects are versioned independently. Specify a bump per "
                "project instead."
            )
        project_bumps = {k: v for k, v in bumps.items() if k in group_projects}
        if not project_bumps:
            return None
        return VersionPlan(
            absolute_path=str(path),
            relative_path=relative,
            message=message,
            project_version_bumps=project_bumps,
        )

    group_bumps = {
        v for k, v in bumps.items() if k == group.name or k in group_projects
    }
    if not group_bumps:
        return None
    if len(group_bumps) > 1:
        raise ConfigurationError(
            f'{relative}: conflicting version bumps {sorted(group_bumps)} for '
            f'the fixed release group "{group.name}"'
        )
    return VersionPlan(
        absolute_path=str(path),
        relative_path=relative,
        message=message,
        group_version_bump=group_bumps.pop(),
    )


def read_version_plans(
    root: Path,
    group: ReleaseGroup,
    group_projects: list[str],
    known_projects: list[str] | None = None,
    directory: Path = VERSION_PLANS_DIR,
) -> list[VersionPlan]:
    """Read every pending plan under ``root / directory`` for ``group``.

    Files are read in name order so plan precedence is deterministic.

    Args:
        root: Workspace root.
        group: Release group being versioned.
        group_projects: Names of the projects in ``group``.
        known_projects: All project names in the workspace. Defaults to
            ``group_projects``.
        directory: Plan directory, relative to ``root``.
    """
    plans_dir = root / directory
    if not plans_dir.is_dir():
        return []

    known = known_projects if known_projects is not None else group_projects
    plans: list[VersionPlan] = []
    for path in sorted(plans_dir.glob("*.md")):
        plan = parse_version_plan(path, root, group, group_projects, known)
        if plan is not None:
            plans.append(plan)
    return plans
