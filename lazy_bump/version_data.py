"""Accumulates the per-project outcome of a versioning run."""

from __future__ import annotations

from .models import LocalPackageDependency, VersionDataEntry


def _without_group_key(
    deps: list[LocalPackageDependency],
) -> list[LocalPackageDependency]:
    return [dep.model_copy(update={"group_key": None}) for dep in deps]


class VersionDataAggregator:
    """Merge records about projects into a single ``VersionData`` map.

    A project may be recorded several times in one run: once on its own
    turn and again when something it depends on forces a bump. Merging
    keeps the version the project had before the run, never replaces a
    recorded new version with None, and unions the dependents.
    """

    def __init__(self) -> None:
        self.data: dict[str, VersionDataEntry] = {}

    def record(
        self,
        project_name: str,
        current_version: str | None,
        new_version: str | None = None,
        dependent_projects: list[LocalPackageDependency] | None = None,
    ) -> VersionDataEntry:
        deps = _without_group_key(dependent_projects or [])
        existing = self.data.get(project_name)
        if existing is None:
            entry = VersionDataEntry(
                current_version=current_version,
                new_version=new_version,
                dependent_projects=deps,
            )
        else:
            merged = list(existing.dependent_projects)
            merged += [dep for dep in deps if dep not in merged]
            entry = VersionDataEntry(
                current_version=(
                    existing.current_version
                    if existing.current_version is not None
                    else current_version
                ),
                new_version=(
                    new_version if new_version is not None else existing.new_version
                ),
                dependent_projects=merged,
            )
        self.data[project_name] = entry
        return entry

    def set_new_version(self, project_name: str, new_version: str) -> None:
        self.data[project_name].new_version = new_version
