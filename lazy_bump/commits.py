"""Conventional commit parsing and classification.

Turns commit history into a semver bump level following the conventional
commits standard: breaking changes are ``major``, and every other commit
type maps through a configurable table.
"""

from __future__ import annotations

import re

from .git import Commit, commits_since
from .models import ConventionalCommitsConfig

HEADER_RE = re.compile(
    r"^(?P<type>[A-Za-z]+)(?:\((?P<scope>[^)]*)\))?"
    r"(?P<breaking>!)?:\s*(?P<subject>.+)$"
)
BREAKING_FOOTER_RE = re.compile(r"^BREAKING[ -]CHANGE:", re.MULTILINE)

_RANK = {"patch": 1, "minor": 2, "major": 3}


def commit_bump(commit: Commit, config: ConventionalCommitsConfig) -> str | None:
    """Return the bump a single commit asks for, or None.

    Non-conventional subjects never trigger a release.
    """
    match = HEADER_RE.match(commit.subject.strip())
    if not match:
        return None
    if match.group("breaking") or BREAKING_FOOTER_RE.search(commit.body):
        return "major"
    return config.types.get(match.group("type").lower())


def classify_commits(
    commits: list[Commit], config: ConventionalCommitsConfig
) -> str | None:
    """Return the highest bump requested by ``commits``, or None."""
    best: str | None = None
    for commit in commits:
        bump = commit_bump(commit, config)
        if bump and (best is None or _RANK[bump] > _RANK[best]):
            best = bump
            if best == "major":
                break
    return best


def resolve_specifier_from_conventional_commits(
    ref: str, paths: list[str], config: ConventionalCommitsConfig
) -> str | None:
    """Classify commits since ``ref`` that touched any of ``paths``."""
    return classify_commits(commits_since(ref, paths), config)
