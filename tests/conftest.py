"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
import tomlkit

AddProject = Callable[..., Path]


def render_manifest(
    name: str,
    version: str | None = "1.0.0",
    dependencies: dict[str, str] | None = None,
    groups: dict[str, dict[str, str]] | None = None,
) -> str:
    """Render a Poetry pyproject.toml; dependency values are raw TOML."""
    lines = ["[tool.poetry]", f'name = "{name}"']
    if version is not None:
        lines.append(f'version = "{version}"')
    lines += ["", "[tool.poetry.dependencies]", 'python = "^3.10"']
    lines += [f"{dep} = {spec}" for dep, spec in (dependencies or {}).items()]
    for group, deps in (groups or {}).items():
        lines += ["", f"[tool.poetry.group.{group}.dependencies]"]
        lines += [f"{dep} = {spec}" for dep, spec in deps.items()]
    return "\n".join(lines) + "\n"


@pytest.fixture
def add_project(tmp_path: Path) -> AddProject:
    """Write ``packages/<name>/pyproject.toml`` under ``tmp_path``."""

    def add(
        name: str,
        version: str | None = "1.0.0",
        dependencies: dict[str, str] | None = None,
        groups: dict[str, dict[str, str]] | None = None,
    ) -> Path:
        project_dir = tmp_path / "packages" / name
        project_dir.mkdir(parents=True, exist_ok=True)
        manifest = project_dir / "pyproject.toml"
        manifest.write_text(render_manifest(name, version, dependencies, groups))
        return manifest

    return add


@pytest.fixture
def workspace(tmp_path: Path, add_project: AddProject) -> Path:
    """lib-a 1.0.0, and app-b 2.0.0 depending on it through a path dependency."""
    (tmp_path / "pyproject.toml").write_text(
        '[tool.lazy-bump]\nmembers = ["packages/*"]\n'
    )
    add_project("lib-a", "1.0.0")
    add_project(
        "app-b",
        "2.0.0",
        {"lib-a": '{version = "^1.0.0", path = "../lib-a", develop = true}'},
    )
    return tmp_path


@pytest.fixture
def sample_toml_doc() -> tomlkit.TOMLDocument:
    """Create a sample Poetry manifest with main and group dependencies."""
    content = """\
[tool.poetry]
name = "My_Package"
version = "2.0.0"

[tool.poetry.dependencies]
python = "^3.10"
click = "^8.0"
lib-a = {version = "~1.2.0", path = "../lib-a"}
lib-b = {path = "../lib-b", develop = true}

[tool.poetry.group.dev.dependencies]
pytest = "^8.0"
lib-c = "^0.5.0"

[tool.poetry.group.docs.dependencies]
Lib_D = "1.0.0"

[tool.lazy-bump]
members = ["packages/*", "libs/*"]
update-dependents = "auto"
"""
    return tomlkit.parse(content)
