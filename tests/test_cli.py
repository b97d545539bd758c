"""Tests for lazy_bump.cli."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from lazy_bump.cli import cli


@pytest.fixture
def runner(workspace: Path, monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    monkeypatch.chdir(workspace)
    monkeypatch.delenv("LAZY_BUMP_VERBOSE", raising=False)
    return CliRunner()


def _manifest(workspace: Path, name: str) -> str:
    return (workspace / "packages" / name / "pyproject.toml").read_text()


class TestVersionCommand:
    def test_dry_run_reports_without_writing(
        self, runner: CliRunner, workspace: Path
    ) -> None:
        before = _manifest(workspace, "app-b")
        result = runner.invoke(
            cli,
            [
                "version",
                "patch",
                "-p",
                "lib-a",
                "--update-dependents",
                "auto",
                "--dry-run",
            ],
        )

        assert result.exit_code == 0, result.output
        assert "lib-a: 1.0.0 → 1.0.1" in result.output
        assert "app-b: 2.0.0 → 2.0.1" in result.output
        assert "Would update packages/app-b/pyproject.toml" in result.output
        assert "Would update packages/lib-a/poetry.lock" in result.output
        assert _manifest(workspace, "app-b") == before

    @patch("lazy_bump.shell.run")
    def test_writes_manifests_and_locks(
        self, mock_run: MagicMock, runner: CliRunner, workspace: Path
    ) -> None:
        result = runner.invoke(cli, ["version", "minor"])

        assert result.exit_code == 0, result.output
        assert 'version = "1.1.0"' in _manifest(workspace, "lib-a")
        assert 'version = "2.1.0"' in _manifest(workspace, "app-b")
        assert 'version = "^1.1.0"' in _manifest(workspace, "app-b")
        assert "Updated packages/lib-a/pyproject.toml" in result.output
        cwds = [c.kwargs["cwd"] for c in mock_run.call_args_list]
        assert str(workspace / "packages" / "lib-a") in cwds
        assert str(workspace) not in cwds
        mock_run.assert_any_call(
            "poetry", "lock", "--no-update", cwd=str(workspace / "packages" / "lib-a")
        )

    def test_prompts_for_specifier(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli, ["version", "-p", "lib-a", "--dry-run"], input="minor\n"
        )
        assert result.exit_code == 0, result.output
        assert "lib-a: 1.0.0 → 1.1.0" in result.output

    def test_config_from_pyproject(self, runner: CliRunner, workspace: Path) -> None:
        (workspace / "pyproject.toml").write_text(
            "[tool.lazy-bump]\n"
            'members = ["packages/*"]\n'
            'update-dependents = "auto"\n'
            'version-prefix = "~"\n'
        )
        result = runner.invoke(cli, ["version", "patch", "-p", "lib-a", "--dry-run"])
        assert result.exit_code == 0, result.output
        assert "app-b: 2.0.0 → 2.0.1" in result.output

    def test_version_plans(self, runner: CliRunner, workspace: Path) -> None:
        (workspace / "pyproject.toml").write_text(
            "[tool.lazy-bump]\n"
            'members = ["packages/*"]\n'
            'projects-relationship = "independent"\n'
            "version-plans = true\n"
            "delete-version-plans = true\n"
        )
        plans_dir = workspace / ".lazy-bump" / "version-plans"
        plans_dir.mkdir(parents=True)
        (plans_dir / "feature.md").write_text("---\nlib-a: minor\n---\nNew API.\n")

        result = runner.invoke(
            cli, ["version", "--specifier-source", "version-plans", "--dry-run"]
        )

        assert result.exit_code == 0, result.output
        assert "lib-a: 1.0.0 → 1.1.0" in result.output
        assert "app-b: 2.0.0 (unchanged)" in result.output
        assert "Would delete .lazy-bump/version-plans/feature.md" in result.output
        assert (plans_dir / "feature.md").exists()


class TestErrors:
    def test_invalid_specifier(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["version", "huge"])
        assert result.exit_code == 1
        assert '"huge" is not valid' in result.output
        assert "Traceback" not in result.output

    def test_unknown_project(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["version", "patch", "-p", "nope"])
        assert result.exit_code == 1
        assert "Unknown project(s): nope" in result.output

    def test_verbose_prints_traceback(self, runner: CliRunner) -> None:
        result = runner.invoke(
            cli, ["version", "huge"], env={"LAZY_BUMP_VERBOSE": "true"}
        )
        assert result.exit_code == 1
        assert "Traceback" in result.output

    def test_missing_members(self, runner: CliRunner, workspace: Path) -> None:
        (workspace / "pyproject.toml").write_text("[tool.lazy-bump]\n")
        result = runner.invoke(cli, ["version", "patch"])
        assert result.exit_code == 1
        assert "No members defined" in result.output
