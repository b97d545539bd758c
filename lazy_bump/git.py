"""Git queries used to resolve current versions and commit history."""

from __future__ import annotations

import re

from pydantic import BaseModel

from .shell import git

# Semver with optional prerelease and build metadata
_VERSION_GROUP = (
    r"(?P<version>\d+\.\d+\.\d+"
    r"(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?)"
)

# Fields are separated with ASCII unit separators, records with record separators
_LOG_FORMAT = "%H%x1f%s%x1f%b%x1e"


class GitTag(BaseModel):
    """A release tag together with the version it encodes."""

    tag: str
    extracted_version: str


class Commit(BaseModel):
    sha: str
    subject: str
    body: str = ""


def tag_pattern_regex(pattern: str, project_name: str) -> re.Pattern[str]:
    """Compile a release tag pattern into a regex.

    ``{projectName}`` is substituted literally and ``{version}`` captures a
    semver version.

    Example:
        tag_pattern_regex("{projectName}@{version}", "lib-a")
        matches "lib-a@1.2.3" with version "1.2.3".
    """
    literal = re.escape(pattern.replace("{projectName}", project_name))
    regex = literal.replace(re.escape("{version}"), _VERSION_GROUP)
    return re.compile(f"^{regex}$")


def latest_tag_for_pattern(pattern: str, project_name: str) -> GitTag | None:
    """Find the highest tag matching ``pattern`` for ``project_name``.

    Tags are listed newest version first (``--sort=-v:refname``), so the
    first match wins.

    Returns:
        The matching tag, or None if no tag matches.
    """
    regex = tag_pattern_regex(pattern, project_name)
    tags = git("tag", "--list", "--sort=-v:refname", check=False)
    for tag in tags.splitlines():
        match = regex.match(tag.strip())
        if match and match.groupdict().get("version"):
            return GitTag(tag=tag.strip(), extracted_version=match.group("version"))
    return None


def first_commit() -> str:
    """Return the sha of the repository's root commit."""
    return git("rev-list", "--max-parents=0", "HEAD").splitlines()[0]


def commits_since(ref: str, paths: list[str] | None = None) -> list[Commit]:
    """List commits in ``ref..HEAD``, optionally limited to ``paths``.

    Args:
        ref: Tag or sha to start from (exclusive).
        paths: Project roots; only commits touching them are returned.
    """
    args = ["log", f"{ref}..HEAD", f"--format={_LOG_FORMAT}"]
    if paths:
        args += ["--", *paths]
    output = git(*args)

    commits: list[Commit] = []
    for record in output.split("\x1e"):
        record = record.strip("\n")
        if not record.strip():
            continue
        sha, subject, body = (record.split("\x1f") + ["", ""])[:3]
        commits.append(Commit(sha=sha.strip(), subject=subject, body=body.strip()))
    return commits
