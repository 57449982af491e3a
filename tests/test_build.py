"""Tests that compile generated mappers with the Go toolchain."""

from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path

import pytest
from conftest import MODULE_PATH, write_go

from stos_generator.locator import PackageLocator
from stos_generator.resolver import GoPackageResolver
from stos_generator.run import generate_file

SRC_GO = """package src

type User struct {
	Name string
	id   int
}
"""

DST_GO = """package dst

type UserDTO struct {
	Name string
	id   int
}
"""

ACCOUNTS_GO = f"""package accounts

import (
	"{MODULE_PATH}/example/dst"
	"{MODULE_PATH}/example/src"
)

type Account struct {{
	Name string
	id   int
}}

type AccountDTO struct {{
	Name string
	id   int
}}

type MapperAccount interface {{
	Convert(s src.User) dst.UserDTO
	ConvertLocal(a Account) AccountDTO
}}
"""

VERSIONED_GO = """package c

type X struct {
	Name string
}
"""

E_GO = f"""package e

import (
	c1 "{MODULE_PATH}/example/c/v1"
	c2 "{MODULE_PATH}/example/c/v2"
)

type Y struct {{
	Name string
}}

type Pair struct {{
	Old c1.X
	New c2.X
}}

type PairDTO struct {{
	Old Y
	New Y
}}
"""

PAIRS_GO = f"""package pairs

import (
	c1 "{MODULE_PATH}/example/c/v1"
	c2 "{MODULE_PATH}/example/c/v2"
	"{MODULE_PATH}/example/e"
)

type MapperPair interface {{
	FromV1(x c1.X) e.Y
	FromV2(x c2.X) e.Y
	ConvertPair(p e.Pair) e.PairDTO
}}
"""


def generate(package_dir: Path, interface_name: str) -> str:
    resolver = GoPackageResolver(PackageLocator(str(package_dir), gopaths=[]))
    path = generate_file(resolver, str(package_dir), interface_name, use_gofmt=False)
    return Path(path).read_text(encoding="utf8")


def go_build(module_dir: Path, cache_dir: Path) -> subprocess.CompletedProcess:
    env = dict(os.environ, GOCACHE=str(cache_dir), GOTOOLCHAIN="local", GOWORK="off", GOFLAGS="-mod=mod")
    return subprocess.run(
        ["go", "build", "./..."],
        cwd=module_dir,
        env=env,
        capture_output=True,
        text=True,
        check=False,
    )


@pytest.mark.skipif(shutil.which("go") is None, reason="requires go")
class TestGoBuild:
    """Generated mappers compile together with the packages they convert."""

    def test_example_mapper(self, go_module, mapper_dir, tmp_path):
        generate(mapper_dir, "MapperUser")

        result = go_build(go_module, tmp_path / "gocache")

        assert result.returncode == 0, result.stderr

    def test_unexported_fields(self, go_module, tmp_path):
        example = go_module / "example"
        write_go(example / "src", "src.go", SRC_GO)
        write_go(example / "dst", "dst.go", DST_GO)
        write_go(example / "accounts", "accounts.go", ACCOUNTS_GO)

        code = generate(example / "accounts", "MapperAccount")
        result = go_build(go_module, tmp_path / "gocache")

        assert result.returncode == 0, result.stderr
        assert "// TODO: unresolved mapping for id: int -> int (unexported field)" in code
        assert "\tobjTarget.id = objSource.id\n" in code

    def test_packages_with_the_same_name(self, go_module, tmp_path):
        example = go_module / "example"
        write_go(example / "c" / "v1", "c.go", VERSIONED_GO)
        write_go(example / "c" / "v2", "c.go", VERSIONED_GO)
        write_go(example / "e", "e.go", E_GO)
        write_go(example / "pairs", "pairs.go", PAIRS_GO)

        code = generate(example / "pairs", "MapperPair")
        result = go_build(go_module, tmp_path / "gocache")

        assert result.returncode == 0, result.stderr
        assert f'\tc2 "{MODULE_PATH}/example/c/v2"\n' in code
        assert "FromV2(objSource c2.X) e.Y {" in code
