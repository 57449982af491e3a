"""A reader for the declarations of Go source files.

Only what the mapper generator needs is understood: the package clause, imports, and type
declarations (structs, interfaces, named types and aliases). Everything else, function bodies
included, is skipped token by token.
"""

from __future__ import annotations

import logging
import os.path
import pathlib
from dataclasses import dataclass, field

from stos_generator import helper
from stos_generator.errors import GoSyntaxError

logger = logging.getLogger(__name__)

GO_SUFFIX = ".go"
GO_TEST_SUFFIX = "_test.go"

GO_KEYWORDS = frozenset(
    {
        "break",
        "case",
        "chan",
        "const",
        "continue",
        "default",
        "defer",
        "else",
        "fallthrough",
        "for",
        "func",
        "go",
        "goto",
        "if",
        "import",
        "interface",
        "map",
        "package",
        "range",
        "return",
        "select",
        "struct",
        "switch",
        "type",
        "var",
    }
)

# Keywords after which a newline terminates the statement.
_SEMICOLON_KEYWORDS = frozenset({"break", "continue", "fallthrough", "return"})
_SEMICOLON_PUNCTUATION = frozenset({")", "]", "}", "++", "--"})

_PUNCTUATION = (
    "...",
    "<<=",
    ">>=",
    "&^=",
    "&&",
    "||",
    "<-",
    "++",
    "--",
    "==",
    "!=",
    "<=",
    ">=",
    ":=",
    "<<",
    ">>",
    "&^",
    "+=",
    "-=",
    "*=",
    "/=",
    "%=",
    "&=",
    "|=",
    "^=",
    "~",
    "+",
    "-",
    "*",
    "/",
    "%",
    "&",
    "|",
    "^",
    "<",
    ">",
    "=",
    "!",
    "(",
    ")",
    "[",
    "]",
    "{",
    "}",
    ",",
    ";",
    ".",
    ":",
)

# Tokens that may start a type.
_TYPE_STARTS = frozenset({"*", "[", "(", "<-", "..."})


class TokenKind:
    """Kinds of Go tokens."""

    IDENT = "ident"
    NUMBER = "number"
    STRING = "string"
    PUNCT = "punct"
    SEMI = "semi"
    EOF = "eof"


@dataclass(frozen=True)
class Token:
    kind: str
    value: str
    line: int
    start: int
    end: int

    def is_punct(self, value: str) -> bool:
        return self.kind == TokenKind.PUNCT and self.value == value

    def is_keyword(self, value: str) -> bool:
        return self.kind == TokenKind.IDENT and self.value == value

    @property
    def is_identifier(self) -> bool:
        return self.kind == TokenKind.IDENT and self.value not in GO_KEYWORDS


def _inserts_semicolon(token: Token | None) -> bool:
    if token is None:
        return False
    if token.kind == TokenKind.IDENT:
        return token.value not in GO_KEYWORDS or token.value in _SEMICOLON_KEYWORDS
    if token.kind in (TokenKind.NUMBER, TokenKind.STRING):
        return True
    return token.kind == TokenKind.PUNCT and token.value in _SEMICOLON_PUNCTUATION


def tokenize(text: str, path: str = "") -> list[Token]:  # noqa: C901
    """Split Go source into tokens, inserting semicolons where the Go grammar does.

    Comments are dropped.

    Args:
        text (str): The source text.
        path (str): The file the text was read from, for error messages.

    Returns:
        list[Token]: The tokens, terminated by an EOF token.
    """
    tokens: list[Token] = []
    position = 0
    line = 1
    length = len(text)

    def last() -> Token | None:
        return tokens[-1] if tokens else None

    def add_semicolon() -> None:
        if _inserts_semicolon(last()):
            tokens.append(Token(TokenKind.SEMI, "\n", line, position, position))

    while position < length:
        char = text[position]

        if char == "\n":
            add_semicolon()
            line += 1
            position += 1

        elif char in " \t\r\ufeff":
            position += 1

        elif text.startswith("//", position):
            end = text.find("\n", position)
            position = length if end == -1 else end

        elif text.startswith("/*", position):
            end = text.find("*/", position + 2)
            if end == -1:
                raise GoSyntaxError("comment not terminated", path, line)
            comment = text[position : end + 2]
            if "\n" in comment:
                add_semicolon()
                line += comment.count("\n")
            position = end + 2

        elif char.isalpha() or char == "_":
            start = position
            while position < length and (text[position].isalnum() or text[position] == "_"):
                position += 1
            tokens.append(Token(TokenKind.IDENT, text[start:position], line, start, position))

        elif char.isdigit() or (char == "." and position + 1 < length and text[position + 1].isdigit()):
            start = position
            while position < length:
                current = text[position]
                if current in "eEpP" and position + 1 < length and text[position + 1] in "+-":
                    position += 2
                elif current.isalnum() or current in "._":
                    position += 1
                else:
                    break
            tokens.append(Token(TokenKind.NUMBER, text[start:position], line, start, position))

        elif char in "\"'":
            start = position
            position += 1
            while position < length and text[position] != char:
                if text[position] == "\n":
                    raise GoSyntaxError("string literal not terminated", path, line)
                position += 2 if text[position] == "\\" else 1
            if position >= length:
                raise GoSyntaxError("string literal not terminated", path, line)
            position += 1
            tokens.append(Token(TokenKind.STRING, text[start:position], line, start, position))

        elif char == "`":
            start = position
            end = text.find("`", position + 1)
            if end == -1:
                raise GoSyntaxError("raw string literal not terminated", path, line)
            position = end + 1
            tokens.append(Token(TokenKind.STRING, text[start:position], line, start, position))
            line += text.count("\n", start, position)

        else:
            for punctuation in _PUNCTUATION:
                if text.startswith(punctuation, position):
                    start = position
                    position += len(punctuation)
                    if punctuation == ";":
                        tokens.append(Token(TokenKind.SEMI, ";", line, start, position))
                    else:
                        tokens.append(Token(TokenKind.PUNCT, punctuation, line, start, position))
                    break
            else:
                raise GoSyntaxError(f"unexpected character {char!r}", path, line)

    add_semicolon()
    tokens.append(Token(TokenKind.EOF, "", line, length, length))
    return tokens


# ===== Declarations =====


@dataclass(frozen=True)
class NamedExpr:
    """A reference to a named type, optionally qualified by an import alias."""

    name: str
    package: str = ""


@dataclass(frozen=True)
class PointerExpr:
    elem: TypeExpr


@dataclass(frozen=True)
class SliceExpr:
    elem: TypeExpr


@dataclass(frozen=True)
class OpaqueExpr:
    """A type the generator does not look into, kept as normalised source text."""

    text: str


@dataclass(frozen=True)
class FieldExpr:
    name: str
    type: TypeExpr
    embedded: bool = False


@dataclass(frozen=True)
class StructExpr:
    fields: tuple[FieldExpr, ...]
    text: str = ""


@dataclass(frozen=True)
class ParamExpr:
    name: str
    type: TypeExpr


@dataclass(frozen=True)
class MethodExpr:
    name: str
    params: tuple[ParamExpr, ...]
    results: tuple[ParamExpr, ...]


@dataclass(frozen=True)
class InterfaceExpr:
    methods: tuple[MethodExpr, ...]
    embeds: tuple[TypeExpr, ...] = ()
    text: str = ""


TypeExpr = NamedExpr | PointerExpr | SliceExpr | OpaqueExpr | StructExpr | InterfaceExpr


@dataclass
class TypeDecl:
    """A top-level `type` declaration, together with the imports of the file declaring it."""

    name: str
    type: TypeExpr
    is_alias: bool = False
    imports: dict[str, str] = field(default_factory=dict)
    path: str = ""
    line: int = 0


@dataclass
class GoFile:
    path: str
    package_name: str
    imports: dict[str, str] = field(default_factory=dict)
    type_decls: list[TypeDecl] = field(default_factory=list)


@dataclass
class GoPackage:
    """The type declarations of all non-test files of a package directory."""

    name: str
    directory: str
    files: list[GoFile] = field(default_factory=list)
    type_decls: dict[str, TypeDecl] = field(default_factory=dict)


class GoFileParser:
    """Parses the declarations of one Go file from its tokens."""

    def __init__(self, text: str, path: str = ""):
        self.text = text
        self.path = path
        self.tokens = tokenize(text, path)
        self.index = 0

    # ----- token helpers -----

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def peek(self, offset: int = 1) -> Token:
        return self.tokens[min(self.index + offset, len(self.tokens) - 1)]

    def advance(self) -> Token:
        token = self.current
        if token.kind != TokenKind.EOF:
            self.index += 1
        return token

    def error(self, message: str) -> GoSyntaxError:
        return GoSyntaxError(f"{message}, found {self.current.value!r}", self.path, self.current.line)

    def expect_punct(self, value: str) -> Token:
        if not self.current.is_punct(value):
            raise self.error(f"expected {value!r}")
        return self.advance()

    def expect_identifier(self) -> str:
        if not self.current.is_identifier:
            raise self.error("expected identifier")
        return self.advance().value

    def skip_semicolons(self) -> None:
        while self.current.kind == TokenKind.SEMI:
            self.advance()

    def text_between(self, start: Token, end: Token) -> str:
        return " ".join(self.text[start.start : end.end].split())

    def skip_balanced(self, opening: str, closing: str) -> None:
        """Skip from an opening bracket to just past its closing counterpart."""
        self.expect_punct(opening)
        depth = 1
        while depth:
            token = self.advance()
            if token.kind == TokenKind.EOF:
                raise self.error(f"expected {closing!r}")
            if token.is_punct(opening):
                depth += 1
            elif token.is_punct(closing):
                depth -= 1

    def skip_declaration(self) -> None:
        """Skip tokens up to the semicolon that ends the current top-level declaration."""
        depth = 0
        while self.current.kind != TokenKind.EOF:
            token = self.advance()
            if token.kind == TokenKind.PUNCT and token.value in "([{":
                depth += 1
            elif token.kind == TokenKind.PUNCT and token.value in ")]}":
                depth -= 1
            elif token.kind == TokenKind.SEMI and depth <= 0:
                return

    # ----- file level -----

    def parse(self) -> GoFile:
        """Parse the whole file.

        Raises:
            GoSyntaxError: If the file has no package clause or a declaration cannot be read.
        """
        self.skip_semicolons()
        if not self.current.is_keyword("package"):
            raise self.error("expected package clause")
        self.advance()
        go_file = GoFile(path=self.path, package_name=self.expect_identifier())

        while self.current.kind != TokenKind.EOF:
            self.skip_semicolons()
            if self.current.is_keyword("import"):
                self.advance()
                self._parse_group(lambda: self._parse_import_spec(go_file))
            elif self.current.is_keyword("type"):
                self.advance()
                self._parse_group(lambda: self._parse_type_spec(go_file))
            elif self.current.kind != TokenKind.EOF:
                self.skip_declaration()

        return go_file

    def _parse_group(self, parse_spec) -> None:
        if self.current.is_punct("("):
            self.advance()
            self.skip_semicolons()
            while not self.current.is_punct(")"):
                parse_spec()
                self.skip_semicolons()
            self.advance()
        else:
            parse_spec()

    def _parse_import_spec(self, go_file: GoFile) -> None:
        alias = ""
        if self.current.is_identifier or self.current.is_punct("."):
            alias = self.advance().value
        if self.current.kind != TokenKind.STRING:
            raise self.error("expected import path")
        path = self.advance().value[1:-1]
        if alias in ("_", "."):
            logger.debug("Ignoring %s import of %s in %s.", alias, path, self.path)
        else:
            go_file.imports[alias or helper.package_name(path)] = path
        self._end_spec()

    def _parse_type_spec(self, go_file: GoFile) -> None:
        name_token = self.current
        name = self.expect_identifier()

        # Type parameters, e.g. `type Page[T any] struct`, as opposed to an array `type Buf [4]byte`.
        if self.current.is_punct("[") and self.peek().is_identifier and not self.peek(2).is_punct("]"):
            self.skip_balanced("[", "]")

        is_alias = False
        if self.current.is_punct("="):
            self.advance()
            is_alias = True

        type_expr = self.parse_type()
        go_file.type_decls.append(
            TypeDecl(
                name=name,
                type=type_expr,
                is_alias=is_alias,
                imports=go_file.imports,
                path=self.path,
                line=name_token.line,
            )
        )
        self._end_spec()

    def _end_spec(self) -> None:
        if self.current.kind == TokenKind.SEMI:
            self.advance()
        elif not self.current.is_punct(")") and self.current.kind != TokenKind.EOF:
            raise self.error("expected end of declaration")

    # ----- types -----

    def starts_type(self, token: Token) -> bool:
        if token.kind == TokenKind.IDENT:
            return token.value not in GO_KEYWORDS or token.value in ("map", "chan", "func", "struct", "interface")
        return token.kind == TokenKind.PUNCT and token.value in _TYPE_STARTS

    def parse_type(self) -> TypeExpr:  # noqa: C901
        """Parse a type expression."""
        start = self.current

        if start.is_punct("*"):
            self.advance()
            return PointerExpr(self.parse_type())

        if start.is_punct("..."):
            self.advance()
            return SliceExpr(self.parse_type())

        if start.is_punct("("):
            self.advance()
            inner = self.parse_type()
            self.expect_punct(")")
            return inner

        if start.is_punct("["):
            if self.peek().is_punct("]"):
                self.advance()
                self.advance()
                return SliceExpr(self.parse_type())
            self.skip_balanced("[", "]")
            self.parse_type()
            return OpaqueExpr(self.text_between(start, self.tokens[self.index - 1]))

        if start.is_keyword("map"):
            self.advance()
            self.expect_punct("[")
            self.parse_type()
            self.expect_punct("]")
            self.parse_type()
            return OpaqueExpr(self.text_between(start, self.tokens[self.index - 1]))

        if start.is_keyword("chan") or start.is_punct("<-"):
            self.advance()
            if self.current.is_punct("<-") or self.current.is_keyword("chan"):
                self.advance()
            self.parse_type()
            return OpaqueExpr(self.text_between(start, self.tokens[self.index - 1]))

        if start.is_keyword("func"):
            self.advance()
            self.parse_parameters()
            self.parse_results()
            return OpaqueExpr(self.text_between(start, self.tokens[self.index - 1]))

        if start.is_keyword("struct"):
            self.advance()
            fields = self.parse_struct_body()
            return StructExpr(fields, self.text_between(start, self.tokens[self.index - 1]))

        if start.is_keyword("interface"):
            self.advance()
            methods, embeds = self.parse_interface_body()
            return InterfaceExpr(methods, embeds, self.text_between(start, self.tokens[self.index - 1]))

        if start.is_identifier:
            self.advance()
            named = NamedExpr(start.value)
            if self.current.is_punct(".") and self.peek().is_identifier:
                self.advance()
                named = NamedExpr(self.advance().value, start.value)
            if self.current.is_punct("["):
                # Instantiated generic type, e.g. `Page[User]`.
                self.skip_balanced("[", "]")
                return OpaqueExpr(self.text_between(start, self.tokens[self.index - 1]))
            return named

        raise self.error("expected type")

    def parse_struct_body(self) -> tuple[FieldExpr, ...]:
        self.expect_punct("{")
        fields: list[FieldExpr] = []
        self.skip_semicolons()
        while not self.current.is_punct("}"):
            fields.extend(self._parse_field_decl())
            if self.current.kind == TokenKind.STRING:
                self.advance()
            if self.current.kind == TokenKind.SEMI:
                self.skip_semicolons()
            elif not self.current.is_punct("}"):
                raise self.error("expected ';' or '}' after field")
        self.advance()
        return tuple(fields)

    def _parse_field_decl(self) -> list[FieldExpr]:
        token = self.current
        following = self.peek()

        embedded = token.is_punct("*") or (
            token.is_identifier
            and (following.kind in (TokenKind.SEMI, TokenKind.STRING) or following.is_punct("}") or following.is_punct("."))
        )
        if embedded:
            type_expr = self.parse_type()
            base = type_expr.elem if isinstance(type_expr, PointerExpr) else type_expr
            if not isinstance(base, NamedExpr):
                raise self.error("expected embedded type name")
            return [FieldExpr(base.name, type_expr, embedded=True)]

        names = [self.expect_identifier()]
        while self.current.is_punct(","):
            self.advance()
            names.append(self.expect_identifier())
        type_expr = self.parse_type()
        return [FieldExpr(name, type_expr) for name in names]

    def parse_interface_body(self) -> tuple[tuple[MethodExpr, ...], tuple[TypeExpr, ...]]:
        self.expect_punct("{")
        methods: list[MethodExpr] = []
        embeds: list[TypeExpr] = []
        self.skip_semicolons()
        while not self.current.is_punct("}"):
            if self.current.is_identifier and self.peek().is_punct("("):
                name = self.advance().value
                params = self.parse_parameters()
                results = self.parse_results()
                methods.append(MethodExpr(name, params, results))
            else:
                # Embedded interface or type constraint union.
                while True:
                    if self.current.is_punct("~"):
                        self.advance()
                    embeds.append(self.parse_type())
                    if not self.current.is_punct("|"):
                        break
                    self.advance()
            if self.current.kind == TokenKind.SEMI:
                self.skip_semicolons()
            elif not self.current.is_punct("}"):
                raise self.error("expected ';' or '}' after interface element")
        self.advance()
        return tuple(methods), tuple(embeds)

    def parse_parameters(self) -> tuple[ParamExpr, ...]:
        """Parse a parenthesized parameter list, e.g. `(source source.User)` or `(a, b int)`."""
        self.expect_punct("(")
        entries: list[tuple[str, TypeExpr | None]] = []
        while not self.current.is_punct(")"):
            token = self.current
            if (
                token.is_identifier
                and self.starts_type(self.peek())
                and not self.peek().is_punct(".")
                and not self.peek().is_punct("(")
            ):
                self.advance()
                entries.append((token.value, self.parse_type()))
            else:
                entries.append(("", self.parse_type()))
            if self.current.is_punct(","):
                self.advance()
                self.skip_semicolons()
            elif not self.current.is_punct(")"):
                raise self.error("expected ',' or ')' in parameter list")
        self.advance()

        if not any(name for name, _ in entries):
            return tuple(ParamExpr("", type_expr) for _, type_expr in entries if type_expr is not None)

        # Named parameters: bare identifiers are names sharing the type that follows them.
        params: list[ParamExpr] = []
        pending: list[str] = []
        for name, type_expr in entries:
            if not name:
                if isinstance(type_expr, NamedExpr) and not type_expr.package:
                    pending.append(type_expr.name)
                    continue
                raise self.error("mixed named and unnamed parameters")
            assert type_expr is not None
            params.extend(ParamExpr(pending_name, type_expr) for pending_name in pending)
            pending.clear()
            params.append(ParamExpr(name, type_expr))
        if pending:
            raise self.error("mixed named and unnamed parameters")
        return tuple(params)

    def parse_results(self) -> tuple[ParamExpr, ...]:
        if self.current.is_punct("("):
            return self.parse_parameters()
        if self.starts_type(self.current) and not self.current.is_punct("..."):
            return (ParamExpr("", self.parse_type()),)
        return ()


def parse_file(path: str) -> GoFile:
    """Parse the declarations of a Go file."""
    with open(path, encoding="utf8") as source_file:
        text = source_file.read()
    return GoFileParser(text, path).parse()


def parse_package(directory: str, excluded_suffixes: tuple[str, ...] = ()) -> GoPackage:
    """Parse all non-test Go files of a package directory.

    Args:
        directory (str): The package directory.
        excluded_suffixes (tuple[str, ...]): File name suffixes to skip, e.g. previously generated mappers.

    Returns:
        GoPackage: The package with its type declarations by name.

    Raises:
        GoSyntaxError: If a file cannot be read, or files disagree about the package name.
    """
    file_names = sorted(
        name
        for name in os.listdir(directory)
        if name.endswith(GO_SUFFIX)
        and not name.endswith(GO_TEST_SUFFIX)
        and not any(name.endswith(suffix) for suffix in excluded_suffixes)
        and os.path.isfile(os.path.join(directory, name))
    )

    package = GoPackage(name="", directory=directory)
    for file_name in file_names:
        go_file = parse_file(os.path.join(directory, file_name))
        if package.name and go_file.package_name != package.name:
            raise GoSyntaxError(
                f"found packages {package.name} and {go_file.package_name} in {directory}", go_file.path
            )
        package.name = go_file.package_name
        package.files.append(go_file)
        for type_decl in go_file.type_decls:
            package.type_decls[type_decl.name] = type_decl

    if not package.name:
        package.name = pathlib.Path(directory).name
        logger.warning("No Go files found in %s.", directory)

    return package
