"""Tests for locating Go packages by import path."""

from __future__ import annotations

import os

import pytest
from conftest import MAPPER_PACKAGE, MODULE_PATH, SOURCE_PACKAGE, write_go

from stos_generator.errors import PackageResolutionError
from stos_generator.locator import PackageLocator, default_gopaths, find_module, read_module

GO_MOD_WITH_REPLACEMENTS = """module github.com/alterasi/stos // the module

go 1.22

require example.com/remote v1.0.0

replace example.com/money => ../money

replace (
	example.com/remote v1.0.0 => example.com/fork v1.0.1
	example.com/local => ./local
)
"""


class TestReadModule:
    """Tests for reading go.mod files."""

    def test_module_path(self, go_module):
        module = read_module(str(go_module / "go.mod"))
        assert module.path == MODULE_PATH
        assert module.root == str(go_module)
        assert module.replacements == {}

    def test_local_replacements(self, tmp_path):
        (tmp_path / "go.mod").write_text(GO_MOD_WITH_REPLACEMENTS, encoding="utf8")

        module = read_module(str(tmp_path / "go.mod"))

        assert module.path == MODULE_PATH
        assert module.replacements == {
            "example.com/money": os.path.normpath(str(tmp_path / ".." / "money")),
            "example.com/local": str(tmp_path / "local"),
        }

    def test_quoted_module_path(self, tmp_path):
        (tmp_path / "go.mod").write_text('module "example.com/quoted"\n', encoding="utf8")
        assert read_module(str(tmp_path / "go.mod")).path == "example.com/quoted"

    def test_missing_module_directive(self, tmp_path):
        (tmp_path / "go.mod").write_text("go 1.22\n", encoding="utf8")
        with pytest.raises(PackageResolutionError, match="No module directive"):
            read_module(str(tmp_path / "go.mod"))


class TestFindModule:
    """Tests for finding the enclosing module."""

    def test_walks_up(self, go_module):
        module = find_module(str(go_module / "example" / "source"))
        assert module is not None
        assert module.root == str(go_module)

    def test_default_gopaths_from_environment(self, monkeypatch, tmp_path):
        first, second = str(tmp_path / "a"), str(tmp_path / "b")
        monkeypatch.setenv("GOPATH", f"{first}{os.pathsep}{second}")
        assert default_gopaths() == [first, second]

    def test_default_gopath_is_home(self, monkeypatch):
        monkeypatch.delenv("GOPATH")
        assert default_gopaths() == [os.path.join(os.path.expanduser("~"), "go")]


class TestPackageLocator:
    """Tests for PackageLocator."""

    def test_module_package(self, go_module, mapper_dir):
        locator = PackageLocator(str(mapper_dir), gopaths=[])
        assert locator.locate(SOURCE_PACKAGE) == str(go_module / "example" / "source")

    def test_module_root(self, go_module, mapper_dir):
        locator = PackageLocator(str(mapper_dir), gopaths=[])
        assert locator.locate(MODULE_PATH) == str(go_module)

    def test_similar_prefix_is_not_the_module(self, mapper_dir):
        locator = PackageLocator(str(mapper_dir), gopaths=[])
        with pytest.raises(PackageResolutionError):
            locator.locate(f"{MODULE_PATH}-other/example/source")

    def test_replacement(self, tmp_path):
        module_dir = tmp_path / "app"
        write_go(module_dir, "main.go", "package main\n")
        (module_dir / "go.mod").write_text("module example.com/app\n\nreplace example.com/money => ../money\n")
        write_go(tmp_path / "money" / "currency", "currency.go", "package currency\n")

        locator = PackageLocator(str(module_dir), gopaths=[])

        assert locator.locate("example.com/money/currency") == str(tmp_path / "money" / "currency")

    def test_vendor(self, go_module, mapper_dir):
        write_go(go_module / "vendor" / "example.com" / "money", "money.go", "package money\n")
        locator = PackageLocator(str(mapper_dir), gopaths=[])
        assert locator.locate("example.com/money") == str(go_module / "vendor" / "example.com" / "money")

    def test_gopath(self, tmp_path, isolated_gopath):
        write_go(isolated_gopath / "src" / "example.com" / "money", "money.go", "package money\n")
        outside = tmp_path / "outside"
        outside.mkdir()

        locator = PackageLocator(str(outside))

        assert locator.module is None
        assert locator.locate("example.com/money") == str(isolated_gopath / "src" / "example.com" / "money")

    def test_unknown_package(self, mapper_dir):
        locator = PackageLocator(str(mapper_dir), gopaths=[])
        with pytest.raises(PackageResolutionError, match="example.com/missing"):
            locator.locate("example.com/missing")


class TestPackagePathFor:
    """Tests for mapping directories back to import paths."""

    def test_module_directory(self, mapper_dir):
        assert PackageLocator(str(mapper_dir), gopaths=[]).package_path_for(str(mapper_dir)) == MAPPER_PACKAGE

    def test_module_root(self, go_module):
        assert PackageLocator(str(go_module), gopaths=[]).package_path_for(str(go_module)) == MODULE_PATH

    def test_gopath_directory(self, isolated_gopath):
        package_dir = isolated_gopath / "src" / "example.com" / "money"
        package_dir.mkdir(parents=True)

        locator = PackageLocator(str(package_dir))

        assert locator.package_path_for(str(package_dir)) == "example.com/money"

    def test_outside_everything(self, tmp_path, mapper_dir):
        outside = tmp_path / "outside"
        outside.mkdir()
        with pytest.raises(PackageResolutionError):
            PackageLocator(str(mapper_dir), gopaths=[]).package_path_for(str(outside))
