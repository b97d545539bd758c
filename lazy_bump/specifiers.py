"""Strategies that decide how a project's version should change.

Each strategy returns a semver keyword, an explicit version, or None when
no change is necessary:

- explicit: a specifier given on the command line
- conventional-commits: classify git history since the last release
- prompt: ask interactively
- version-plans: aggregate pre-authored version plan files
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import click

from .commits import resolve_specifier_from_conventional_commits
from .context import RunContext
from .errors import ConfigurationError, ResolutionError
from .git import first_commit
from .logger import ProjectLogger
from .models import IMPLICIT_DEFAULT_RELEASE_GROUP, ProjectNode, VersionPlan
from .versions import (
    RELATIVE_KEYWORDS,
    increment,
    is_prerelease,
    is_valid_specifier,
    is_valid_version,
    version_gt,
)

# Bump applied to a project only because something it depends on changed
UPDATE_DEPENDENTS_BUMP = "patch"

CUSTOM_VERSION_CHOICE = "custom"


def normalize_specifier(specifier: str) -> str:
    """Validate a user-supplied specifier and strip any leading ``v``.

    Raises:
        ConfigurationError: If it is neither a keyword nor a valid version.
    """
    if not is_valid_specifier(specifier):
        raise ConfigurationError(
            f'The given version specifier "{specifier}" is not valid. You can '
            "provide an exact version or a valid semver keyword such as "
            '"major", "minor", "patch", etc.'
        )
    return specifier[1:] if specifier.startswith("v") else specifier


class SpecifierSource(ABC):
    """Base class for specifier strategies."""

    name = ""

    def __init__(self, ctx: RunContext) -> None:
        self.ctx = ctx
        self.validate()

    def validate(self) -> None:
        """Raise ConfigurationError if the run cannot use this strategy."""

    @abstractmethod
    def resolve(self, project: ProjectNode, logger: ProjectLogger) -> str | None:
        """Return the specifier for ``project``, or None to leave it alone."""

    def _dependency_bump(
        self, project: ProjectNode, logger: ProjectLogger
    ) -> str | None:
        """Patch bump for a project whose local dependencies were bumped."""
        if (
            self.ctx.options.update_dependents != "never"
            and project.name in self.ctx.project_to_dependency_bumps
        ):
            logger.buffer(
                f'📄 Resolved the specifier as "{UPDATE_DEPENDENTS_BUMP}" because '
                '"update-dependents" is enabled'
            )
            return UPDATE_DEPENDENTS_BUMP
        return None

    def _with_release_group(self, text: str) -> str:
        group = self.ctx.options.release_group.name
        if group == IMPLICIT_DEFAULT_RELEASE_GROUP:
            return text
        return f'{text} within release group "{group}"'


class ExplicitSpecifier(SpecifierSource):
    """A specifier the user gave up front; applies to every project."""

    name = "explicit"

    def resolve(self, project: ProjectNode, logger: ProjectLogger) -> str | None:
        return self.ctx.specifier


class ConventionalCommitsSpecifier(SpecifierSource):
    name = "conventional-commits"

    def validate(self) -> None:
        resolver = self.ctx.options.current_version_resolver
        if resolver != "git-tag":
            raise ConfigurationError(
                f'Invalid current version resolver "{resolver}" provided for '
                f'release group "{self.ctx.options.release_group.name}". Must be '
                '"git-tag" when the specifier source is "conventional-commits"'
            )

    def _previous_version_ref(self, affected: list[str]) -> str:
        # Without a tag the version came from the disk fallback, so the whole
        # history since the first commit counts
        if self.ctx.latest_matching_git_tag is not None:
            return self.ctx.latest_matching_git_tag.tag
        if self.ctx.fallback_current_version_resolver == "disk":
            return first_commit()
        raise ResolutionError(
            "Unable to determine previous version ref for the projects "
            f"{', '.join(affected)}."
        )

    def resolve(self, project: ProjectNode, logger: ProjectLogger) -> str | None:
        affected = [project] if self.ctx.independent else self.ctx.projects
        ref = self._previous_version_ref([p.name for p in affected])
        specifier = resolve_specifier_from_conventional_commits(
            ref,
            [p.root for p in affected],
            self.ctx.options.conventional_commits,
        )

        if not specifier:
            bump = self._dependency_bump(project, logger)
            if bump is None:
                logger.buffer(
                    "🚫 No changes were detected using git history and the "
                    "conventional commits standard."
                )
            return bump

        # Graduating from a prerelease requires an explicit specifier
        if is_prerelease(self.ctx.current_version):
            logger.buffer(
                '📄 Resolved the specifier as "prerelease" since the current '
                "version is a prerelease."
            )
            return "prerelease"

        extra = ""
        preid = self.ctx.options.preid
        if preid and not specifier.startswith("pre"):
            specifier = f"pre{specifier}"
            extra = f', combined with your given preid "{preid}"'
        logger.buffer(
            f'📄 Resolved the specifier as "{specifier}" using git history and '
            f"the conventional commits standard{extra}."
        )
        return specifier


def _exact_version(value: str) -> str:
    if not is_valid_version(value):
        raise click.BadParameter(f'"{value}" is not a valid semver version')
    return value.lstrip("v")


def prompt_for_specifier(kind_question: str, version_question: str) -> str:
    """Ask for a bump keyword, then for an exact version if requested."""
    choice = click.prompt(
        kind_question,
        type=click.Choice([*RELATIVE_KEYWORDS, CUSTOM_VERSION_CHOICE]),
        default="patch",
    )
    if choice != CUSTOM_VERSION_CHOICE:
        return choice
    return click.prompt(version_question, value_proc=_exact_version)


class PromptSpecifier(SpecifierSource):
    name = "prompt"

    def resolve(self, project: ProjectNode, logger: ProjectLogger) -> str | None:
        if self.ctx.independent:
            subject = f'project "{project.name}"'
        else:
            subject = f"the {len(self.ctx.projects)} matched project(s)"
        return prompt_for_specifier(
            self._with_release_group(f"What kind of change is this for {subject}")
            + "?",
            self._with_release_group(f"What is the exact version for {subject}")
            + "?",
        )


class VersionPlansSpecifier(SpecifierSource):
    name = "version-plans"

    @property
    def plans(self) -> list[VersionPlan]:
        return self.ctx.options.release_group.resolved_version_plans

    def validate(self) -> None:
        group = self.ctx.options.release_group
        if group.version_plans:
            return
        if group.name == IMPLICIT_DEFAULT_RELEASE_GROUP:
            raise ConfigurationError(
                'Invalid specifier source "version-plans" provided. To enable '
                'version plans, set "version-plans = true" in [tool.lazy-bump].'
            )
        raise ConfigurationError(
            'Invalid specifier source "version-plans" provided. To enable version '
            f'plans for release group "{group.name}", set "version-plans = true" '
            "in [tool.lazy-bump]."
        )

    def _requested_bumps(self, project: ProjectNode) -> list[str]:
        if self.ctx.independent:
            return [
                plan.project_version_bumps[project.name]
                for plan in self.plans
                if plan.project_version_bumps
                and plan.project_version_bumps.get(project.name)
            ]
        return [
            plan.group_version_bump for plan in self.plans if plan.group_version_bump
        ]

    def _greatest(self, bumps: list[str]) -> str | None:
        """The bump producing the highest version; ties keep the first seen."""
        current = self.ctx.current_version
        best: str | None = None
        for bump in bumps:
            if best is None or version_gt(
                increment(current, bump), increment(current, best)
            ):
                best = bump
        return best

    def resolve(self, project: ProjectNode, logger: ProjectLogger) -> str | None:
        specifier = self._greatest(self._requested_bumps(project))

        if specifier:
            logger.buffer(
                f'📄 Resolved the specifier as "{specifier}" using version plans.'
            )
        else:
            specifier = self._dependency_bump(project, logger)
            if specifier is None:
                logger.buffer("🚫 No changes were detected within version plans.")

        if self.ctx.options.delete_version_plans:
            self.ctx.schedule_plan_deletion(self.plans)
        return specifier


SPECIFIER_SOURCES: dict[str, type[SpecifierSource]] = {
    "conventional-commits": ConventionalCommitsSpecifier,
    "prompt": PromptSpecifier,
    "version-plans": VersionPlansSpecifier,
}


def get_specifier_source(ctx: RunContext) -> SpecifierSource:
    """Pick and validate the strategy for this run.

    An explicit specifier always wins over the configured source.

    Raises:
        ConfigurationError: For an unknown or unusable specifier source.
    """
    if ctx.specifier:
        return ExplicitSpecifier(ctx)
    try:
        source = SPECIFIER_SOURCES[ctx.specifier_source]
    except KeyError:
        raise ConfigurationError(
            f'Invalid specifier source "{ctx.specifier_source}" provided. Must be '
            'one of "prompt", "conventional-commits" or "version-plans".'
        ) from None
    return source(ctx)
