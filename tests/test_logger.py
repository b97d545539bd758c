"""Tests for lazy_bump.logger and lazy_bump.version_data."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import click

from lazy_bump.logger import PALETTE, ProjectLogger, get_color
from lazy_bump.models import LocalPackageDependency
from lazy_bump.version_data import VersionDataAggregator


class TestGetColor:
    def test_deterministic(self) -> None:
        assert get_color("lib-a") == get_color("lib-a")

    def test_sum_of_code_points(self) -> None:
        # "a" is 97, 97 % 10 == 7
        assert get_color("a") == PALETTE[7]


class TestProjectLogger:
    def test_buffers_until_flush(self) -> None:
        lines: list[str] = []
        logger = ProjectLogger("lib-a", lines.append)
        logger.buffer("one")
        logger.buffer("two")
        assert lines == []

        logger.flush()
        label = click.style("lib-a", fg=get_color("lib-a"), bold=True)
        assert lines == [
            f"Running release version for project: {label}",
            f"{label} one",
            f"{label} two",
        ]
        assert logger.logs == []

    @patch("lazy_bump.logger.click.echo")
    def test_default_sink_is_click_echo(self, mock_echo: MagicMock) -> None:
        logger = ProjectLogger("lib-a")
        logger.buffer("hello")
        logger.flush()
        assert mock_echo.call_count == 2


class TestVersionDataAggregator:
    def test_first_record(self) -> None:
        data = VersionDataAggregator()
        edge = LocalPackageDependency(source="b", target="a", group_key="dev")
        data.record("a", "1.0.0", None, [edge])

        entry = data.data["a"]
        assert entry.current_version == "1.0.0"
        assert entry.new_version is None
        assert entry.dependent_projects == [
            LocalPackageDependency(source="b", target="a")
        ]

    def test_merge_keeps_original_current_and_new_version(self) -> None:
        data = VersionDataAggregator()
        data.record("a", "1.0.0", "1.0.1")
        data.record("a", "9.9.9", None)
        assert data.data["a"].current_version == "1.0.0"
        assert data.data["a"].new_version == "1.0.1"

    def test_merge_unions_dependents(self) -> None:
        data = VersionDataAggregator()
        b = LocalPackageDependency(source="b", target="a")
        c = LocalPackageDependency(source="c", target="a")
        data.record("a", "1.0.0", None, [b])
        data.record("a", "1.0.0", None, [b, c])
        assert data.data["a"].dependent_projects == [b, c]

    def test_set_new_version(self) -> None:
        data = VersionDataAggregator()
        data.record("a", "1.0.0")
        data.set_new_version("a", "2.0.0")
        assert data.data["a"].new_version == "2.0.0"
