"""Tests for lazy_bump.commits."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from lazy_bump.commits import (
    classify_commits,
    commit_bump,
    resolve_specifier_from_conventional_commits,
)
from lazy_bump.git import Commit
from lazy_bump.models import ConventionalCommitsConfig


def _commit(subject: str, body: str = "") -> Commit:
    return Commit(sha="0" * 40, subject=subject, body=body)


class TestCommitBump:
    @pytest.mark.parametrize(
        ("subject", "expected"),
        [
            ("feat: add streaming", "minor"),
            ("fix(parser): handle empty input", "patch"),
            ("perf: faster lookups", "patch"),
            ("feat!: drop python 3.9", "major"),
            ("refactor(core)!: new api", "major"),
            ("docs: typo", None),
            ("Merge branch 'main'", None),
        ],
    )
    def test_subjects(self, subject: str, expected: str | None) -> None:
        assert commit_bump(_commit(subject), ConventionalCommitsConfig()) == expected

    def test_breaking_change_footer(self) -> None:
        commit = _commit("fix: rename option", "BREAKING CHANGE: --foo is gone")
        assert commit_bump(commit, ConventionalCommitsConfig()) == "major"

    def test_breaking_footer_ignored_for_non_conventional(self) -> None:
        commit = _commit("rename option", "BREAKING CHANGE: --foo is gone")
        assert commit_bump(commit, ConventionalCommitsConfig()) is None

    def test_custom_types(self) -> None:
        config = ConventionalCommitsConfig(types={"docs": "patch"})
        assert commit_bump(_commit("docs: typo"), config) == "patch"
        assert commit_bump(_commit("feat: x"), config) is None


class TestClassifyCommits:
    def test_highest_wins(self) -> None:
        commits = [_commit("fix: a"), _commit("feat: b"), _commit("chore: c")]
        assert classify_commits(commits, ConventionalCommitsConfig()) == "minor"

    def test_nothing_releasable(self) -> None:
        commits = [_commit("chore: a"), _commit("docs: b")]
        assert classify_commits(commits, ConventionalCommitsConfig()) is None

    def test_empty(self) -> None:
        assert classify_commits([], ConventionalCommitsConfig()) is None


@patch("lazy_bump.commits.commits_since")
def test_resolve_specifier_reads_history(mock_commits_since: MagicMock) -> None:
    """Commits since the ref, limited to the given paths, are classified."""
    mock_commits_since.return_value = [_commit("fix: a")]
    result = resolve_specifier_from_conventional_commits(
        "v1.0.0", ["packages/lib-a"], ConventionalCommitsConfig()
    )
    assert result == "patch"
    mock_commits_since.assert_called_once_with("v1.0.0", ["packages/lib-a"])
