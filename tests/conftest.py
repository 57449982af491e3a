"""Pytest configuration and fixtures for stos generator tests."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from stos_generator.shapes import (
    InterfaceDescriptor,
    MethodDescriptor,
    PointerShape,
    PrimitiveShape,
    SliceShape,
    StructField,
    StructShape,
    TypeShape,
)

MODULE_PATH = "github.com/alterasi/stos"
SOURCE_PACKAGE = f"{MODULE_PATH}/example/source"
TARGET_PACKAGE = f"{MODULE_PATH}/example/target"
MAPPER_PACKAGE = f"{MODULE_PATH}/example/mapper"

STRING = PrimitiveShape("string", underlying="string")
INT = PrimitiveShape("int", underlying="int")
INT64 = PrimitiveShape("int64", underlying="int64")
TIME = PrimitiveShape("Time", "time")
USER_ROLE = PrimitiveShape("UserRole", SOURCE_PACKAGE, "string")

# Go sources of the example module: a source and a target package, and the mapper interface.
SOURCE_GO = """package source

import "time"

type UserRole string

const (
	RoleAdmin    UserRole = "admin"
	RoleManager  UserRole = "manager"
	RoleEmployee UserRole = "employee"
	RoleGuest    UserRole = "guest"
)

type User struct {
	Name      string
	Age       int
	Gender    string
	WifeName  string
	Role      *UserRole
	Childrens []*Children
	CH        *Children
	Birthday  time.Time
}

type Children struct {
	Name     string
	Age      int
	Gender   string
	WifeName string
	Role     UserRole
	Birthday time.Time
}
"""

TARGET_GO = """package target

import (
	"github.com/alterasi/stos/example/source"
	"time"
)

type UserDTO struct {
	Name      string
	Age       int
	Role      source.UserRole
	Childrens []ChildrenDTO
	CH        ChildrenDTO
	Gender    string
	Birthday  time.Time
}

type ChildrenDTO struct {
	Name   string
	Age    int
	Role   source.UserRole
	Gender string
}
"""

MAPPER_GO = """package mapper

import (
	"github.com/alterasi/stos/example/source"
	"github.com/alterasi/stos/example/target"
)

type MapperUser interface {
	Convert(source source.User) (target target.UserDTO)
}
"""

# The mapper generated for MapperUser.
EXPECTED_USER_MAPPER = "\n".join(
    [
        "// Code generated by stos-generator from the MapperUser interface.",
        "",
        "package mapper",
        "",
        "import (",
        f'\t"{SOURCE_PACKAGE}"',
        f'\t"{TARGET_PACKAGE}"',
        ")",
        "",
        "type mapperUserImpl struct{}",
        "",
        "func NewMapperUserImpl() MapperUser {",
        "\treturn &mapperUserImpl{}",
        "}",
        "",
        "func (impl *mapperUserImpl) Convert(objSource source.User) target.UserDTO {",
        "\tobjTarget := target.UserDTO{}",
        "\tobjTarget.Name = objSource.Name",
        "\tobjTarget.Age = objSource.Age",
        "\tobjTarget.Gender = objSource.Gender",
        "\tif objSource.Role != nil {",
        "\t\tobjTarget.Role = *objSource.Role",
        "\t} else {",
        "\t\tvar zeroValue source.UserRole",
        "\t\tobjTarget.Role = zeroValue",
        "\t}",
        "\tif len(objSource.Childrens) > 0 {",
        "\t\tobjTarget.Childrens = make([]target.ChildrenDTO, len(objSource.Childrens))",
        "\t\tfor i, v := range objSource.Childrens {",
        "\t\t\tif v != nil {",
        "\t\t\t\tobjTarget.Childrens[i] = impl.mapChildrenToChildrenDTO(*v)",
        "\t\t\t}",
        "\t\t}",
        "\t}",
        "\tif objSource.CH != nil {",
        "\t\tobjTarget.CH = impl.mapChildrenToChildrenDTO(*objSource.CH)",
        "\t} else {",
        "\t\tvar zeroValue target.ChildrenDTO",
        "\t\tobjTarget.CH = zeroValue",
        "\t}",
        "\tobjTarget.Birthday = objSource.Birthday",
        "\treturn objTarget",
        "}",
        "",
        "func (impl *mapperUserImpl) mapChildrenToChildrenDTO(objSource source.Children) target.ChildrenDTO {",
        "\tobjTarget := target.ChildrenDTO{}",
        "\tobjTarget.Name = objSource.Name",
        "\tobjTarget.Age = objSource.Age",
        "\tobjTarget.Gender = objSource.Gender",
        "\tobjTarget.Role = objSource.Role",
        "\treturn objTarget",
        "}",
        "",
    ]
)


def struct(name: str, package: str, fields: list[tuple[str, TypeShape]]) -> StructShape:
    """Build a struct shape from (name, shape) pairs."""
    return StructShape(name, package, tuple(StructField(field_name, shape) for field_name, shape in fields))


def interface(*methods: tuple[str, TypeShape, TypeShape], name: str = "MapperUser") -> InterfaceDescriptor:
    """Build a mapper interface of single conversion methods."""
    return InterfaceDescriptor(
        name=name,
        package_path=MAPPER_PACKAGE,
        methods=[MethodDescriptor(method_name, [source], [target]) for method_name, source, target in methods],
    )


@pytest.fixture
def children_shape() -> StructShape:
    return struct(
        "Children",
        SOURCE_PACKAGE,
        [
            ("Name", STRING),
            ("Age", INT),
            ("Gender", STRING),
            ("WifeName", STRING),
            ("Role", USER_ROLE),
            ("Birthday", TIME),
        ],
    )


@pytest.fixture
def children_dto_shape() -> StructShape:
    return struct(
        "ChildrenDTO",
        TARGET_PACKAGE,
        [("Name", STRING), ("Age", INT), ("Role", USER_ROLE), ("Gender", STRING)],
    )


@pytest.fixture
def user_shape(children_shape) -> StructShape:
    return struct(
        "User",
        SOURCE_PACKAGE,
        [
            ("Name", STRING),
            ("Age", INT),
            ("Gender", STRING),
            ("WifeName", STRING),
            ("Role", PointerShape(USER_ROLE)),
            ("Childrens", SliceShape(PointerShape(children_shape))),
            ("CH", PointerShape(children_shape)),
            ("Birthday", TIME),
        ],
    )


@pytest.fixture
def user_dto_shape(children_dto_shape) -> StructShape:
    return struct(
        "UserDTO",
        TARGET_PACKAGE,
        [
            ("Name", STRING),
            ("Age", INT),
            ("Role", USER_ROLE),
            ("Childrens", SliceShape(children_dto_shape)),
            ("CH", children_dto_shape),
            ("Gender", STRING),
            ("Birthday", TIME),
        ],
    )


@pytest.fixture
def user_interface(user_shape, user_dto_shape) -> InterfaceDescriptor:
    return interface(("Convert", user_shape, user_dto_shape))


@pytest.fixture
def go_module(tmp_path) -> Path:
    """Create a temporary Go module with the example source, target and mapper packages."""
    logger = logging.getLogger(__name__)

    root = tmp_path / "stos"
    for package, text in (("source", SOURCE_GO), ("target", TARGET_GO), ("mapper", MAPPER_GO)):
        package_dir = root / "example" / package
        package_dir.mkdir(parents=True)
        (package_dir / f"{package}.go").write_text(text, encoding="utf8")

    (root / "go.mod").write_text(f"module {MODULE_PATH}\n\ngo 1.18\n", encoding="utf8")
    logger.info(f"Created example module in {root}")

    return root


@pytest.fixture
def mapper_dir(go_module) -> Path:
    return go_module / "example" / "mapper"


def write_go(directory: Path, file_name: str, text: str) -> Path:
    """Write a Go file, creating its directory."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / file_name
    path.write_text(text, encoding="utf8")
    return path


@pytest.fixture(autouse=True)
def isolated_gopath(tmp_path, monkeypatch) -> Path:
    """Point GOPATH at an empty directory, so that no packages of the machine are found."""
    gopath = tmp_path / "gopath"
    gopath.mkdir()
    monkeypatch.setenv("GOPATH", str(gopath))
    return gopath
