"""CLI entry point for lazy-bump."""

from __future__ import annotations

import subprocess
import traceback
from pathlib import Path

import click
from packaging.utils import canonicalize_name

from .config import (
    apply_overrides,
    build_release_group,
    build_version_options,
    load_config,
)
from .engine import release_version
from .errors import LazyBumpError
from .models import ProjectGraph, ProjectNode, VersionDataEntry
from .plans import read_version_plans
from .shell import step
from .tree import ManifestTree
from .versions import VALID_VERSION_PREFIXES
from .workspace import discover_projects


@click.group()
@click.version_option(package_name="lazy-bump")
def cli() -> None:
    """Dependency-aware version bumps for Poetry monorepos."""


def select_projects(graph: ProjectGraph, names: tuple[str, ...]) -> list[ProjectNode]:
    """Projects named on the command line, or all of them, in graph order."""
    if not names:
        return list(graph.nodes.values())
    wanted = [canonicalize_name(n) for n in names]
    unknown = [n for n in wanted if n not in graph.nodes]
    if unknown:
        raise click.ClickException(
            f"Unknown project(s): {', '.join(unknown)}. "
            f"Known projects are: {', '.join(graph.nodes)}"
        )
    return [node for name, node in graph.nodes.items() if name in wanted]


def format_entry(name: str, entry: VersionDataEntry) -> str:
    label = click.style(name, bold=True)
    if entry.new_version is None:
        return f"  {label}: {entry.current_version} (unchanged)"
    return f"  {label}: {entry.current_version} → {entry.new_version}"


def _run_version(
    specifier: str | None,
    projects_filter: tuple[str, ...],
    first_release: bool,
    dry_run: bool,
    **overrides: str | None,
) -> None:
    root = Path.cwd()
    config = apply_overrides(load_config(root), **overrides)

    step("Discovering workspace projects")
    graph = discover_projects(root, config.members)
    projects = select_projects(graph, projects_filter)
    click.echo(f"Found {len(graph.nodes)} project(s), {len(projects)} selected")

    plans = []
    if config.version_plans:
        plans = read_version_plans(
            root,
            build_release_group(config),
            list(graph.nodes),
            list(graph.nodes),
        )
        click.echo(f"Found {len(plans)} version plan(s)")

    options = build_version_options(
        config,
        graph,
        projects,
        specifier=specifier,
        first_release=first_release,
        plans=plans,
    )

    step("Versioning projects")
    tree = ManifestTree(root)
    result = release_version(tree, options)

    step("Summary")
    for name, entry in result.data.items():
        click.echo(format_entry(name, entry))

    if dry_run:
        changed = tree.changed_files()
        outcome = result.callback(tree, dry_run=True)
        prefix = "Would update"
        delete_prefix = "Would delete"
    else:
        changed = tree.flush()
        outcome = result.callback(tree)
        prefix = "Updated"
        delete_prefix = "Deleted"

    for path in changed + outcome.changed_files:
        click.echo(f"{prefix} {path}")
    for path in outcome.deleted_files:
        click.echo(f"{delete_prefix} {path}")
    if dry_run:
        click.echo("\nDry run: no changes were written.")


@cli.command()
@click.argument("specifier", required=False)
@click.option(
    "--projects",
    "-p",
    "projects_filter",
    multiple=True,
    help="Only version these projects. Repeatable.",
)
@click.option(
    "--specifier-source",
    type=click.Choice(["prompt", "conventional-commits", "version-plans"]),
    help="How to work out the bump when no SPECIFIER is given.",
)
@click.option(
    "--current-version-resolver",
    type=click.Choice(["disk", "git-tag", "registry"]),
    help="Where to read each project's current version from.",
)
@click.option(
    "--fallback-current-version-resolver",
    type=click.Choice(["disk"]),
    help="Fallback when the current version resolver finds nothing.",
)
@click.option(
    "--first-release",
    is_flag=True,
    help="Fall back to the version on disk when no release exists yet.",
)
@click.option("--preid", help="Prerelease identifier, e.g. rc or beta.")
@click.option(
    "--update-dependents",
    type=click.Choice(["never", "auto"]),
    help="Also bump projects that depend on a bumped project.",
)
@click.option(
    "--version-prefix",
    type=click.Choice(VALID_VERSION_PREFIXES),
    help="Prefix for rewritten dependency specs; auto keeps the existing one.",
)
@click.option(
    "--projects-relationship",
    type=click.Choice(["fixed", "independent"]),
    help="Share one version across projects, or version each separately.",
)
@click.option("--dry-run", is_flag=True, help="Report changes without writing them.")
@click.option(
    "--verbose",
    is_flag=True,
    envvar="LAZY_BUMP_VERBOSE",
    help="Print tracebacks for errors.",
)
def version(
    specifier: str | None,
    projects_filter: tuple[str, ...],
    specifier_source: str | None,
    current_version_resolver: str | None,
    fallback_current_version_resolver: str | None,
    first_release: bool,
    preid: str | None,
    update_dependents: str | None,
    version_prefix: str | None,
    projects_relationship: str | None,
    dry_run: bool,
    verbose: bool,
) -> None:
    """Bump project versions and propagate them to dependents.

    SPECIFIER is a semver keyword (major, minor, patch, premajor, preminor,
    prepatch, prerelease) or an exact version.
    """
    try:
        _run_version(
            specifier,
            projects_filter,
            first_release,
            dry_run,
            specifier_source=specifier_source,
            current_version_resolver=current_version_resolver,
            fallback_current_version_resolver=fallback_current_version_resolver,
            preid=preid,
            update_dependents=update_dependents,
            version_prefix=version_prefix,
            projects_relationship=projects_relationship,
        )
    except (LazyBumpError, subprocess.CalledProcessError) as exc:
        if verbose:
            click.echo(traceback.format_exc(), err=True)
        raise click.ClickException(str(exc)) from exc

