"""Resolution of a project's current version.

Three resolvers are supported:
- ``disk``: the version in the project's pyproject.toml
- ``git-tag``: the latest git tag matching the release tag pattern
- ``registry``: the latest version published to the package index

``git-tag`` and ``registry`` can fall back to ``disk`` when configured.
Fixed release groups resolve once and reuse the result for every project.
"""

from __future__ import annotations

import re

from .context import RunContext
from .errors import ConfigurationError, ResolutionError
from .git import latest_tag_for_pattern
from .logger import ProjectLogger
from .models import ProjectNode
from .shell import pip

CURRENT_VERSION_RESOLVERS = ("disk", "git-tag", "registry")


def query_registry_version(package_name: str) -> str:
    """Return the latest version of ``package_name`` on the package index.

    Parses the first line of ``pip index versions``, which looks like
    ``my-package (1.2.3)``.

    Raises:
        LookupError: If pip fails or prints something unexpected.
    """
    result = pip("index", "versions", package_name)
    if result.returncode != 0:
        raise LookupError(result.stderr.strip() or f"pip exited {result.returncode}")
    match = re.search(rf"{re.escape(package_name)} \((.*?)\)", result.stdout, re.I)
    if not match:
        raise LookupError(f"Unexpected pip output: {result.stdout.strip()!r}")
    return match.group(1)


def _reuse_cached(ctx: RunContext, logger: ProjectLogger, source: str) -> None:
    if ctx.current_version_from_fallback:
        logger.buffer(
            f"📄 Using the current version {ctx.current_version} already resolved "
            "from disk fallback."
        )
    else:
        logger.buffer(
            f"📄 Using the current version {ctx.current_version} already resolved "
            f"from {source}"
        )


def _resolve_from_registry(
    ctx: RunContext,
    package_name: str,
    version_on_disk: str | None,
    logger: ProjectLogger,
) -> None:
    if ctx.current_version and not ctx.independent:
        _reuse_cached(ctx, logger, "the registry")
        return

    try:
        ctx.current_version = query_registry_version(package_name)
        ctx.current_version_from_fallback = False
        logger.buffer(
            f"📄 Resolved the current version as {ctx.current_version} "
            "from the registry"
        )
    except LookupError as exc:
        if ctx.fallback_current_version_resolver != "disk":
            raise ResolutionError(
                "Unable to resolve the current version from the registry. Please "
                "ensure that the package exists in the registry in order to use the "
                '"registry" current version resolver. Alternatively, use the '
                '--first-release option or set "fallback-current-version-resolver" '
                'to "disk" to fall back to the version on disk when the registry '
                "lookup fails."
            ) from exc
        logger.buffer(
            "📄 Unable to resolve the current version from the registry. Falling "
            f"back to the version on disk of {version_on_disk}"
        )
        ctx.current_version = version_on_disk
        ctx.current_version_from_fallback = True


def _resolve_from_git_tag(
    ctx: RunContext,
    project: ProjectNode,
    version_on_disk: str | None,
    logger: ProjectLogger,
) -> None:
    if ctx.current_version and not ctx.independent:
        tag = ctx.latest_matching_git_tag
        _reuse_cached(ctx, logger, f'git tag "{tag.tag}".' if tag else "git tag.")
        return

    pattern = ctx.options.release_group.release_tag_pattern
    ctx.latest_matching_git_tag = latest_tag_for_pattern(pattern, project.name)
    if ctx.latest_matching_git_tag is None:
        if ctx.fallback_current_version_resolver != "disk":
            raise ResolutionError(
                f'No git tags matching pattern "{pattern}" for project '
                f'"{project.name}" were found. You will need to create an initial '
                "matching tag to use as a base for determining the next version. "
                "Alternatively, use the --first-release option or set "
                '"fallback-current-version-resolver" to "disk" to fall back to the '
                "version on disk when no matching git tags are found."
            )
        logger.buffer(
            "📄 Unable to resolve the current version from git tag using pattern "
            f'"{pattern}". Falling back to the version on disk of {version_on_disk}'
        )
        ctx.current_version = version_on_disk
        ctx.current_version_from_fallback = True
        return

    ctx.current_version = ctx.latest_matching_git_tag.extracted_version
    ctx.current_version_from_fallback = False
    logger.buffer(
        f"📄 Resolved the current version as {ctx.current_version} from git tag "
        f'"{ctx.latest_matching_git_tag.tag}".'
    )


def resolve_current_version(
    ctx: RunContext,
    project: ProjectNode,
    package_name: str,
    version_on_disk: str | None,
    manifest: str,
    logger: ProjectLogger,
) -> str:
    """Resolve and cache the current version of ``project``.

    Args:
        ctx: Run context holding the cached version and git tag.
        project: Project being versioned.
        package_name: Package name from the project's manifest.
        version_on_disk: Version from the project's manifest, if any.
        manifest: Path of the manifest, for messages.
        logger: Project logger to buffer progress messages into.

    Raises:
        ConfigurationError: For an unknown resolver name.
        ResolutionError: When no version can be determined.
    """
    resolver = ctx.options.current_version_resolver
    if resolver == "disk":
        ctx.current_version = version_on_disk
        if not ctx.current_version:
            raise ResolutionError(
                "Unable to determine the current version for project "
                f'"{project.name}" from {manifest}'
            )
        logger.buffer(
            f"📄 Resolved the current version as {ctx.current_version} "
            f"from {manifest}"
        )
    elif resolver == "git-tag":
        _resolve_from_git_tag(ctx, project, version_on_disk, logger)
    elif resolver == "registry":
        _resolve_from_registry(ctx, package_name, version_on_disk, logger)
    else:
        raise ConfigurationError(
            f'Invalid value for current_version_resolver: "{resolver}". '
            f"Valid values are: {', '.join(CURRENT_VERSION_RESOLVERS)}"
        )

    if not ctx.current_version:
        raise ResolutionError(
            f'The current version for project "{project.name}" could not be resolved.'
        )
    return ctx.current_version
