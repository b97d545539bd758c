"""Dependency-aware version propagation.

This module drives a versioning run over a batch of projects:
1. Order the projects so dependencies come before dependents
2. Resolve each project's current version and version specifier
3. Write the new version into the project's manifest
4. Propagate the bump to projects depending on it, directly or
   transitively, without bumping any project twice

Deferred side effects (lock file regeneration, version plan deletion) are
collected into the returned ``VersionResult`` and only happen when its
callback is invoked outside of a dry run.
"""

from __future__ import annotations

import posixpath
import re
from collections.abc import Callable
from pathlib import Path

from .context import RunContext
from .current_version import CURRENT_VERSION_RESOLVERS, resolve_current_version
from .deps import (
    extract_dependency_version,
    manifest_path,
    resolve_local_package_dependencies,
)
from .errors import ConfigurationError, ResolutionError
from .graph import sort_projects_topologically
from .logger import ProjectLogger, Sink
from .models import (
    IMPLICIT_DEFAULT_RELEASE_GROUP,
    CallbackResult,
    LocalPackageDependency,
    ProjectNode,
    VersionDataEntry,
    VersionOptions,
)
from .shell import poetry_lock
from .specifiers import (
    UPDATE_DEPENDENTS_BUMP,
    SpecifierSource,
    get_specifier_source,
    normalize_specifier,
)
from .toml import (
    get_dependency_table,
    get_package_name,
    get_package_version,
    get_poetry_table,
    set_dependency_version,
)
from .tree import ManifestTree, normalize_path
from .versions import VALID_VERSION_PREFIXES, derive_new_version
from .workspace import create_resolve_package_root

LockCommand = Callable[[str], None]


class VersionResult:
    """Outcome of a run: the version data plus deferred side effects.

    Attributes:
        data: Map of project name → VersionDataEntry.
    """

    def __init__(
        self,
        data: dict[str, VersionDataEntry],
        lock_dirs: list[str],
        plans_to_delete: list[tuple[str, str]],
        lock_command: LockCommand,
    ) -> None:
        self.data = data
        # The workspace root is ""
        self._lock_dirs = list(dict.fromkeys(normalize_path(d) for d in lock_dirs))
        self._plans_to_delete = plans_to_delete
        self._lock_command = lock_command

    def callback(self, tree: ManifestTree, *, dry_run: bool = False) -> CallbackResult:
        """Delete consumed version plans and regenerate lock files.

        Under ``dry_run`` nothing is executed or deleted, but the returned
        lists still name every file that would change.
        """
        result = CallbackResult()

        for absolute_path, relative_path in self._plans_to_delete:
            if not dry_run:
                Path(absolute_path).unlink(missing_ok=True)
            result.deleted_files.append(relative_path)

        for lock_dir in self._lock_dirs:
            lock_file = normalize_path(posixpath.join(lock_dir, "poetry.lock"))
            result.changed_files.append(lock_file)
            if not dry_run:
                self._lock_command(str(tree.root / lock_dir))

        # A Poetry project at the workspace root has its own lock
        if self._lock_dirs and "" not in self._lock_dirs and _is_poetry_root(tree):
            result.changed_files.append("poetry.lock")
            if not dry_run:
                self._lock_command(str(tree.root))

        return result


def _is_poetry_root(tree: ManifestTree) -> bool:
    if not tree.exists("pyproject.toml"):
        return False
    return get_poetry_table(tree.read("pyproject.toml")) is not None


def validate_options(options: VersionOptions) -> str | None:
    """Check the options that do not depend on any project.

    Returns:
        The explicit specifier without a leading ``v``, if one was given.

    Raises:
        ConfigurationError: On the first invalid option.
    """
    specifier = normalize_specifier(options.specifier) if options.specifier else None

    if (
        options.version_prefix is not None
        and options.version_prefix not in VALID_VERSION_PREFIXES
    ):
        valid = ", ".join(f'"{p}"' for p in VALID_VERSION_PREFIXES)
        raise ConfigurationError(
            f'Invalid value for version_prefix: "{options.version_prefix}"\n\n'
            f"Valid values are: {valid}"
        )
    if options.current_version_resolver not in CURRENT_VERSION_RESOLVERS:
        raise ConfigurationError(
            "Invalid value for current_version_resolver: "
            f'"{options.current_version_resolver}". Valid values are: '
            f"{', '.join(CURRENT_VERSION_RESOLVERS)}"
        )
    if options.fallback_current_version_resolver not in (None, "disk"):
        raise ConfigurationError(
            "Invalid value for fallback_current_version_resolver: "
            f'"{options.fallback_current_version_resolver}". The only valid '
            'fallback is "disk".'
        )
    return specifier


def _derive(current_version: str, specifier: str, preid: str | None) -> str:
    try:
        return derive_new_version(current_version, specifier, preid)
    except ValueError as exc:
        raise ResolutionError(str(exc)) from exc


def _is_in_current_batch(ctx: RunContext, dependent: LocalPackageDependency) -> bool:
    if not any(p.name == dependent.source for p in ctx.options.projects):
        return False
    # With version plans, only projects some plan actually bumps are in the batch
    if ctx.specifier_source == "version-plans":
        return any(
            plan.project_version_bumps.get(dependent.source)
            if plan.project_version_bumps is not None
            else True
            for plan in ctx.options.release_group.resolved_version_plans
        )
    return True


def _is_mutual(ctx: RunContext, project_name: str, dependent_name: str) -> bool:
    return any(
        dep.source == project_name
        for dep in ctx.dependencies.dependents_of(dependent_name)
    )


def _awaiting_own_turn(ctx: RunContext, project_name: str) -> bool:
    return (
        project_name not in ctx.processed_projects
        and any(p.name == project_name for p in ctx.projects)
    )


def _warn_skipped_dependents(
    ctx: RunContext,
    project: ProjectNode,
    skipped: list[LocalPackageDependency],
    logger: ProjectLogger,
) -> None:
    group = ctx.options.release_group.name
    reason = (
        "because they are not referenced in any version plans"
        if ctx.specifier_source == "version-plans"
        else "via --projects"
    )
    msg = f'⚠️  Warning, the following packages depend on "{project.name}"'
    if group == IMPLICIT_DEFAULT_RELEASE_GROUP:
        msg += (
            f" but have been filtered out {reason}, and therefore will not be "
            "updated:"
        )
    else:
        msg += (
            f' but are either not part of the current release group "{group}", or '
            f"have been filtered out {reason}, and therefore will not be updated:"
        )
    indent = " " * (len(project.name) + 3)
    msg += "".join(f"\n{indent}- {dep.source}" for dep in skipped)
    msg += (
        f"\n{indent}=> You can adjust this behavior by setting "
        '"update-dependents" to "auto"'
    )
    logger.buffer(msg)


def update_dependent(
    ctx: RunContext,
    dependent: LocalPackageDependency,
    dependency_package_name: str,
    new_dependency_version: str,
    force_version_bump: str | None,
    transitive_dependents: list[LocalPackageDependency],
) -> None:
    """Point ``dependent`` at a new dependency version, optionally bumping it.

    Args:
        ctx: Run context.
        dependent: Edge from the dependent project to the bumped dependency.
        dependency_package_name: Package name of the bumped dependency.
        new_dependency_version: Version to record for the dependency.
        force_version_bump: Keyword to bump the dependent by, or None to only
            update its dependency spec.
        transitive_dependents: Edges of the dependents of this run's bumped
            project, used to report who depends on ``dependent``.
    """
    logger = ctx.logger
    options = ctx.options
    package_root = ctx.root_of(dependent.source)
    if package_root is None:
        raise ResolutionError(
            f'The project "{dependent.source}" does not have a packageRoot available.'
        )
    path = manifest_path(package_root)
    ctx.lock_dirs.append(package_root)

    doc = ctx.tree.read(path)
    poetry = get_poetry_table(doc)
    if poetry is None:
        return

    table = get_dependency_table(doc, dependent.group_key)
    current_dependency_version = extract_dependency_version(
        ctx.tree, package_root, table, dependency_package_name
    )
    own_dependents = [t for t in transitive_dependents if t.target == dependent.source]
    should_bump = (
        bool(force_version_bump) and dependent.source not in ctx.bumped_projects
    )

    current_package_version = get_package_version(doc)
    if not current_package_version:
        if should_bump:
            ctx.version_data.record(
                dependent.source,
                None,
                current_dependency_version,
                own_dependents,
            )
        ctx.tree.write(path, doc)
        return

    version_prefix = options.version_prefix
    if version_prefix is None:
        version_prefix = "auto"
    if version_prefix == "auto":
        match = re.match(r"^[~^]", current_dependency_version or "")
        version_prefix = match.group(0) if match else ""

    if not options.preserve_local_dependency_protocols:
        set_dependency_version(
            table, dependency_package_name, f"{version_prefix}{new_dependency_version}"
        )

    if should_bump:
        new_package_version = _derive(
            current_package_version, force_version_bump, options.preid
        )
        poetry["version"] = new_package_version
        ctx.bumped_projects.add(dependent.source)
        ctx.version_data.record(
            dependent.source,
            current_package_version,
            new_package_version,
            own_dependents,
        )
        if logger is not None:
            logger.buffer(
                f'✍️  Bumped dependent "{dependent.source}" from '
                f"{current_package_version} to {new_package_version}"
            )

    ctx.tree.write(path, doc)


def _force_bump_unless_queued(
    ctx: RunContext, dependent_name: str, upstream: str
) -> str | None:
    """Forced bump keyword for a dependent, or None if it gets its own turn.

    A selected project that has not been processed yet will bump itself
    when its turn comes; it is told about the upstream bump instead.
    """
    if _awaiting_own_turn(ctx, dependent_name):
        ctx.add_dependency_bump(dependent_name, upstream)
        return None
    return UPDATE_DEPENDENTS_BUMP


def version_project(
    ctx: RunContext, project: ProjectNode, source: SpecifierSource
) -> None:
    """Resolve, apply and propagate the new version of a single project."""
    options = ctx.options
    package_root = ctx.package_roots.get(project.name)
    if not package_root:
        raise ResolutionError(
            f'The project "{project.name}" does not have a packageRoot available.'
        )
    path = manifest_path(package_root)
    if not ctx.tree.exists(path):
        raise ResolutionError(
            f'The project "{project.name}" does not have a pyproject.toml available '
            f"at {path}.\n\nTo fix this you will either need to add a pyproject.toml "
            "file at that location, or exclude the project from the current "
            "release, or amend the package-root configuration to point to where "
            "the pyproject.toml should be."
        )

    logger = ctx.logger = ProjectLogger(project.name, ctx.sink)
    doc = ctx.tree.read(path)
    if get_poetry_table(doc) is None:
        raise ResolutionError(f"{path} has no [tool.poetry] table")
    package_name = get_package_name(doc, project.name)
    logger.buffer(f'🔍 Reading data for package "{package_name}" from {path}')

    current_version = resolve_current_version(
        ctx, project, package_name, get_package_version(doc), path, logger
    )

    if ctx.specifier and options.specifier:
        logger.buffer(f'📄 Using the provided version specifier "{ctx.specifier}".')

    # Independent groups decide per project unless the user gave a specifier
    if not ctx.specifier_resolved or (ctx.independent and not options.specifier):
        ctx.specifier = source.resolve(project, logger)
        ctx.specifier_resolved = True
    specifier = ctx.specifier

    auto = options.update_dependents == "auto"
    direct = ctx.dependencies.dependents_of(project.name)
    transitive: list[LocalPackageDependency] = []
    if auto:
        for dependent in direct:
            transitive.extend(ctx.dependencies.dependents_of(dependent.source))

    in_batch: list[LocalPackageDependency] = []
    outside_batch: list[LocalPackageDependency] = []
    # (source, target) pairs in both directions for mutual dependencies
    circular: set[tuple[str, str]] = set()
    for dependent in direct:
        if _is_mutual(ctx, project.name, dependent.source):
            circular.add((dependent.source, project.name))
            circular.add((project.name, dependent.source))
        if _is_in_current_batch(ctx, dependent):
            in_batch.append(dependent)
        else:
            outside_batch.append(dependent)

    if options.update_dependents == "never" and outside_batch:
        _warn_skipped_dependents(ctx, project, outside_batch, logger)

    unreadable = [s for s, t in ctx.dependencies.skipped if t == project.name]
    if unreadable:
        logger.buffer(
            f'⚠️  Warning, the following packages depend on "{project.name}" but '
            "have no readable pyproject.toml, and therefore will not be updated: "
            + ", ".join(unreadable)
        )

    ctx.version_data.record(
        project.name, current_version, None, direct if auto else in_batch
    )

    if not specifier:
        logger.buffer(
            f'🚫 Skipping versioning "{package_name}" as no changes were detected.'
        )
        if options.log_unchanged_projects:
            logger.flush()
        return

    new_version = _derive(current_version, specifier, options.preid)
    ctx.version_data.set_new_version(project.name, new_version)
    ctx.bumped_projects.add(project.name)
    ctx.lock_dirs.append(package_root)

    get_poetry_table(doc)["version"] = new_version
    ctx.tree.write(path, doc)
    logger.buffer(f"✍️  New version {new_version} written to {path}")

    if direct:
        total = (
            len(direct) + len(transitive) - len(circular) // 2
            if auto
            else len(in_batch)
        )
        if total > 0:
            noun = "packages which depend" if total > 1 else "package which depends"
            logger.buffer(
                f"✍️  Applying new version {new_version} to {total} {noun} on "
                f"{project.name}"
            )

    # In-batch dependents bump themselves on their own turn
    for dependent in in_batch:
        ctx.add_dependency_bump(dependent.source, project.name)
        update_dependent(ctx, dependent, package_name, new_version, None, transitive)

    if auto:
        for dependent in outside_batch:
            update_dependent(
                ctx,
                dependent,
                package_name,
                new_version,
                _force_bump_unless_queued(ctx, dependent.source, project.name),
                transitive,
            )

    for dependent in transitive:
        dependency_root = ctx.root_of(dependent.target)
        if dependency_root is None:
            raise ResolutionError(
                f'The project "{dependent.target}" does not have a packageRoot '
                "available."
            )
        dependency_path = manifest_path(dependency_root)
        if not ctx.tree.exists(dependency_path):
            logger.buffer(
                f'⚠️  Skipping "{dependent.source}": no pyproject.toml found for '
                f'its dependency "{dependent.target}" at {dependency_path}'
            )
            continue
        dependency_doc = ctx.tree.read(dependency_path)

        # A mutual dependency was already bumped once by the direct pass
        if (dependent.source, dependent.target) in circular:
            force = None
        else:
            force = _force_bump_unless_queued(ctx, dependent.source, dependent.target)
        update_dependent(
            ctx,
            dependent,
            get_package_name(dependency_doc),
            get_package_version(dependency_doc) or "",
            force,
            transitive,
        )

    logger.flush()


def release_version(
    tree: ManifestTree,
    options: VersionOptions,
    *,
    sink: Sink | None = None,
    lock_command: LockCommand = poetry_lock,
) -> VersionResult:
    """Version every project in ``options.projects``.

    Manifest changes are written to ``tree`` only; flushing them to disk
    and invoking ``VersionResult.callback`` is left to the caller.

    Args:
        tree: Manifest store for the workspace.
        options: Run options.
        sink: Where flushed project logs go. Defaults to ``click.echo``.
        lock_command: Regenerates the lock file in a given directory.

    Returns:
        The version data and a callback performing deferred side effects.

    Raises:
        ConfigurationError: For invalid options, before anything is written.
        ResolutionError: When a version or manifest cannot be resolved.
            Manifest writes made earlier in the run are not rolled back.
    """
    specifier = validate_options(options)

    projects = (
        list(options.projects)
        if options.update_dependents == "never"
        else sort_projects_topologically(options.project_graph, options.projects)
    )
    resolve_package_root = create_resolve_package_root(options.package_root)
    package_roots = {p.name: resolve_package_root(p) for p in projects}

    ctx = RunContext(
        tree=tree,
        options=options,
        projects=projects,
        package_roots=package_roots,
        resolve_package_root=resolve_package_root,
        sink=sink,
        specifier=specifier,
        specifier_resolved=specifier is not None,
        # An explicit specifier overrides the configured source
        specifier_source="prompt" if specifier else options.specifier_source,
        fallback_current_version_resolver=(
            "disk"
            if options.first_release
            else options.fallback_current_version_resolver
        ),
    )

    try:
        source = get_specifier_source(ctx)
        # Dependents outside the filtered batch are warned about or bumped too
        ctx.dependencies = resolve_local_package_dependencies(
            tree,
            options.project_graph,
            projects,
            package_roots,
            resolve_package_root,
            include_all=True,
        )
        for project in projects:
            version_project(ctx, project, source)
            ctx.processed_projects.add(project.name)
    except Exception:
        # Flush what was buffered before the error propagates
        if ctx.logger is not None and ctx.logger.logs:
            ctx.logger.flush()
        raise

    return VersionResult(
        data=ctx.version_data.data,
        lock_dirs=ctx.lock_dirs,
        plans_to_delete=[
            (plan.absolute_path, plan.relative_path)
            for plan in ctx.plans_to_delete.values()
        ],
        lock_command=lock_command,
    )
