"""Tests for lazy_bump.toml."""

from __future__ import annotations

from pathlib import Path

import tomlkit

from lazy_bump.toml import (
    find_dependency,
    find_dependency_key,
    get_dependency_table,
    get_lazy_bump_table,
    get_package_name,
    get_package_version,
    iter_dependency_tables,
    load_pyproject,
    set_dependency_version,
)


class TestPackageMetadata:
    def test_name_as_written(self, sample_toml_doc: tomlkit.TOMLDocument) -> None:
        assert get_package_name(sample_toml_doc) == "My_Package"

    def test_name_fallback(self) -> None:
        assert get_package_name(tomlkit.parse(""), "fallback") == "fallback"

    def test_version(self, sample_toml_doc: tomlkit.TOMLDocument) -> None:
        assert get_package_version(sample_toml_doc) == "2.0.0"

    def test_missing_version(self) -> None:
        doc = tomlkit.parse('[tool.poetry]\nname = "x"\n')
        assert get_package_version(doc) is None


class TestIterDependencyTables:
    def test_collections(self, sample_toml_doc: tomlkit.TOMLDocument) -> None:
        found = [(c, g) for c, g, _ in iter_dependency_tables(sample_toml_doc)]
        assert found == [("main", None), ("dev", "dev"), ("optional", "docs")]

    def test_no_poetry_table(self) -> None:
        assert list(iter_dependency_tables(tomlkit.parse("[project]\n"))) == []


class TestFindDependency:
    def test_normalised_key(self, sample_toml_doc: tomlkit.TOMLDocument) -> None:
        table = get_dependency_table(sample_toml_doc, "docs")
        assert find_dependency_key(table, "lib-d") == "Lib_D"

    def test_main(self, sample_toml_doc: tomlkit.TOMLDocument) -> None:
        collection, group_key, value = find_dependency(sample_toml_doc, "lib-a")
        assert (collection, group_key) == ("main", None)
        assert value["version"] == "~1.2.0"

    def test_group(self, sample_toml_doc: tomlkit.TOMLDocument) -> None:
        collection, group_key, value = find_dependency(sample_toml_doc, "lib_c")
        assert (collection, group_key, value) == ("dev", "dev", "^0.5.0")

    def test_missing(self, sample_toml_doc: tomlkit.TOMLDocument) -> None:
        assert find_dependency(sample_toml_doc, "requests") is None


class TestSetDependencyVersion:
    def test_string_entry(self, sample_toml_doc: tomlkit.TOMLDocument) -> None:
        table = get_dependency_table(sample_toml_doc, "dev")
        assert set_dependency_version(table, "lib-c", "^0.6.0")
        assert table["lib-c"] == "^0.6.0"

    def test_inline_table_keeps_path(
        self, sample_toml_doc: tomlkit.TOMLDocument
    ) -> None:
        table = get_dependency_table(sample_toml_doc, None)
        assert set_dependency_version(table, "lib-a", "~1.3.0")
        assert table["lib-a"]["version"] == "~1.3.0"
        assert table["lib-a"]["path"] == "../lib-a"

    def test_path_only_entry_untouched(
        self, sample_toml_doc: tomlkit.TOMLDocument
    ) -> None:
        table = get_dependency_table(sample_toml_doc, None)
        assert not set_dependency_version(table, "lib-b", "1.0.0")
        assert "version" not in table["lib-b"]

    def test_preserves_formatting(self, tmp_path: Path) -> None:
        manifest = tmp_path / "pyproject.toml"
        manifest.write_text(
            "[tool.poetry]\n"
            'name = "app"  # the app\n'
            'version = "1.0.0"\n\n'
            "[tool.poetry.dependencies]\n"
            'lib = "^1.0.0"\n'
        )
        doc = load_pyproject(manifest)
        set_dependency_version(get_dependency_table(doc, None), "lib", "^1.1.0")
        content = tomlkit.dumps(doc)
        assert "# the app" in content
        assert 'lib = "^1.1.0"' in content


class TestGetLazyBumpTable:
    def test_plain_data(self, sample_toml_doc: tomlkit.TOMLDocument) -> None:
        table = get_lazy_bump_table(sample_toml_doc)
        assert table == {
            "members": ["packages/*", "libs/*"],
            "update-dependents": "auto",
        }

    def test_missing(self) -> None:
        assert get_lazy_bump_table(tomlkit.parse("")) == {}
