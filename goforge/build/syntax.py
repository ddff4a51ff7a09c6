"""Syntax checks for generated files.

Each checker parses one file in isolation and returns
:class:`ValidationIssue` records; a broken file never stops the others
from being checked.  ``.go`` files go through a small tokenizer and a
top-level declaration parser.  That is enough to catch unterminated
literals, unbalanced brackets, a missing package clause, malformed
imports and stray top-level tokens.  It is not a Go type checker; the
toolchain covers that in the compile stage.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Callable, Iterable

import yaml

from goforge.build.results import Severity, ValidationIssue
from goforge.generator.accumulator import GeneratedFile

# ---------------------------------------------------------------------------
# Go tokenizer
# ---------------------------------------------------------------------------

GO_KEYWORDS = frozenset({
    "break", "case", "chan", "const", "continue", "default", "defer", "else",
    "fallthrough", "for", "func", "go", "goto", "if", "import", "interface",
    "map", "package", "range", "return", "select", "struct", "switch", "type",
    "var",
})

# Longest first so the scanner is greedy.
_OPERATORS = sorted(
    [
        "<<=", ">>=", "&^=", "...", "&&", "||", "<-", "++", "--", "==", "!=",
        "<=", ">=", ":=", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<",
        ">>", "&^", "~", "+", "-", "*", "/", "%", "&", "|", "^", "<", ">", "=",
        "!", "(", ")", "[", "]", "{", "}", ",", ";", ".", ":",
    ],
    key=len,
    reverse=True,
)

_NUMBER_RE = re.compile(
    r"0[xX][0-9a-fA-F_]*(\.[0-9a-fA-F_]*)?([pP][+-]?[0-9_]+)?i?"
    r"|0[bB][01_]+|0[oO][0-7_]+"
    r"|([0-9][0-9_]*(\.[0-9_]*)?|\.[0-9][0-9_]*)([eE][+-]?[0-9_]+)?i?"
)

_CLOSERS = {")": "(", "]": "[", "}": "{"}
_SEMICOLON_AFTER = frozenset({"break", "continue", "fallthrough", "return", "++", "--", ")", "]", "}"})


class GoSyntaxError(Exception):
    def __init__(self, message: str, line: int, column: int) -> None:
        self.line = line
        self.column = column
        super().__init__(message)


@dataclass(frozen=True)
class Token:
    kind: str  # ident, keyword, number, string, rune, op, semi
    value: str
    line: int
    column: int

    @property
    def is_word(self) -> bool:
        return self.kind in ("ident", "keyword")


class _Lexer:
    def __init__(self, source: str) -> None:
        self.src = source
        self.pos = 0
        self.line = 1
        self.col = 1
        self.tokens: list[Token] = []

    def _advance(self, count: int) -> None:
        for ch in self.src[self.pos:self.pos + count]:
            if ch == "\n":
                self.line += 1
                self.col = 1
            else:
                self.col += 1
        self.pos += count

    def _emit(self, kind: str, value: str, line: int, col: int) -> None:
        self.tokens.append(Token(kind, value, line, col))

    def _needs_semicolon(self) -> bool:
        if not self.tokens:
            return False
        last = self.tokens[-1]
        if last.kind in ("ident", "number", "string", "rune"):
            return True
        return last.value in _SEMICOLON_AFTER and last.kind in ("keyword", "op")

    def _newline(self) -> None:
        if self._needs_semicolon():
            self._emit("semi", "\n", self.line, self.col)

    def tokenize(self) -> list[Token]:
        src = self.src
        while self.pos < len(src):
            ch = src[self.pos]
            line, col = self.line, self.col

            if ch == "\n":
                self._newline()
                self._advance(1)
            elif ch in " \t\r\ufeff":
                self._advance(1)
            elif src.startswith("//", self.pos):
                end = src.find("\n", self.pos)
                self._advance((len(src) if end == -1 else end) - self.pos)
            elif src.startswith("/*", self.pos):
                end = src.find("*/", self.pos + 2)
                if end == -1:
                    raise GoSyntaxError("comment not terminated", line, col)
                if "\n" in src[self.pos:end]:
                    self._newline()
                self._advance(end + 2 - self.pos)
            elif ch == '"':
                self._emit("string", self._interpreted('"', "string literal"), line, col)
            elif ch == "'":
                self._emit("rune", self._interpreted("'", "rune literal"), line, col)
            elif ch == "`":
                end = src.find("`", self.pos + 1)
                if end == -1:
                    raise GoSyntaxError("raw string literal not terminated", line, col)
                text = src[self.pos:end + 1]
                self._advance(len(text))
                self._emit("string", text, line, col)
            elif ch.isalpha() or ch == "_":
                end = self.pos
                while end < len(src) and (src[end].isalnum() or src[end] == "_"):
                    end += 1
                word = src[self.pos:end]
                self._advance(len(word))
                self._emit("keyword" if word in GO_KEYWORDS else "ident", word, line, col)
            elif ch.isdigit() or (ch == "." and src[self.pos + 1:self.pos + 2].isdigit()):
                match = _NUMBER_RE.match(src, self.pos)
                text = match.group(0) if match else ch
                self._advance(len(text))
                self._emit("number", text, line, col)
            else:
                for op in _OPERATORS:
                    if src.startswith(op, self.pos):
                        self._advance(len(op))
                        self._emit("semi" if op == ";" else "op", op, line, col)
                        break
                else:
                    raise GoSyntaxError(f"invalid character {ch!r}", line, col)

        self._newline()
        return self.tokens

    def _interpreted(self, quote: str, what: str) -> str:
        src = self.src
        line, col = self.line, self.col
        end = self.pos + 1
        while True:
            if end >= len(src) or src[end] == "\n":
                raise GoSyntaxError(f"{what} not terminated", line, col)
            if src[end] == "\\":
                end += 2
                continue
            if src[end] == quote:
                break
            end += 1
        text = src[self.pos:end + 1]
        self._advance(len(text))
        return text


def tokenize(source: str) -> list[Token]:
    """Tokenize Go *source*, inserting automatic semicolons.

    Raises:
        GoSyntaxError: On an unterminated literal or comment, or a
            character Go does not allow outside literals.
    """
    return _Lexer(source).tokenize()


# ---------------------------------------------------------------------------
# Go declaration parser
# ---------------------------------------------------------------------------


def _check_brackets(tokens: list[Token]) -> None:
    stack: list[Token] = []
    for tok in tokens:
        if tok.kind != "op":
            continue
        if tok.value in "([{":
            stack.append(tok)
        elif tok.value in _CLOSERS:
            if not stack:
                raise GoSyntaxError(f"unexpected {tok.value!r}", tok.line, tok.column)
            opener = stack.pop()
            if opener.value != _CLOSERS[tok.value]:
                raise GoSyntaxError(
                    f"mismatched {tok.value!r}; {opener.value!r} opened at line {opener.line}",
                    tok.line,
                    tok.column,
                )
    if stack:
        opener = stack[-1]
        raise GoSyntaxError(f"{opener.value!r} is never closed", opener.line, opener.column)


def _split_statements(tokens: list[Token]) -> list[list[Token]]:
    """Split *tokens* on semicolons at bracket depth zero."""
    statements: list[list[Token]] = []
    current: list[Token] = []
    depth = 0
    for tok in tokens:
        if tok.kind == "op" and tok.value in "([{":
            depth += 1
        elif tok.kind == "op" and tok.value in _CLOSERS:
            depth -= 1
        if tok.kind == "semi" and depth == 0:
            if current:
                statements.append(current)
            current = []
            continue
        current.append(tok)
    if current:
        statements.append(current)
    return statements


def _check_import_spec(spec: list[Token]) -> None:
    if len(spec) == 1 and spec[0].kind == "string":
        return
    if len(spec) == 2 and spec[1].kind == "string" and (spec[0].kind == "ident" or spec[0].value == "."):
        return
    raise GoSyntaxError("malformed import declaration", spec[0].line, spec[0].column)


def _check_import(decl: list[Token]) -> None:
    body = decl[1:]
    if not body:
        raise GoSyntaxError("import declaration without a path", decl[0].line, decl[0].column)
    if body[0].value == "(":
        if body[-1].value != ")":
            raise GoSyntaxError("malformed import block", body[0].line, body[0].column)
        for spec in _split_statements(body[1:-1]):
            _check_import_spec(spec)
    else:
        _check_import_spec(body)


_DECL_STARTS = frozenset({"func", "type", "var", "const"})


def parse_go(source: str) -> list[list[Token]]:
    """Parse Go *source* into top-level declarations.

    Returns the token list of each declaration after the package clause.

    Raises:
        GoSyntaxError: On the first structural problem found.
    """
    tokens = tokenize(source)
    _check_brackets(tokens)
    statements = _split_statements(tokens)
    if not statements:
        raise GoSyntaxError("empty file; expected package clause", 1, 1)

    clause = statements[0]
    if clause[0].value != "package" or len(clause) != 2 or clause[1].kind != "ident":
        raise GoSyntaxError("expected 'package <name>' clause", clause[0].line, clause[0].column)

    declarations: list[list[Token]] = []
    seen_declaration = False
    for decl in statements[1:]:
        head = decl[0]
        if head.value == "import" and head.kind == "keyword":
            if seen_declaration:
                raise GoSyntaxError("imports must appear before other declarations", head.line, head.column)
            _check_import(decl)
        elif head.kind == "keyword" and head.value in _DECL_STARTS:
            seen_declaration = True
            if len(decl) < 2:
                raise GoSyntaxError(f"incomplete {head.value} declaration", head.line, head.column)
            declarations.append(decl)
        else:
            raise GoSyntaxError(
                f"expected declaration, found {head.value!r}", head.line, head.column
            )
    return declarations


def join_type(tokens: Iterable[Token]) -> str:
    """Re-assemble a type from its tokens (``map [ string ] any`` -> ``map[string]any``)."""
    text = ""
    previous: Token | None = None
    for tok in tokens:
        if previous is not None and previous.is_word and tok.is_word:
            text += " "
        text += tok.value
        previous = tok
    return text


def parse_structs(source: str) -> dict[str, list[tuple[str, str]]]:
    """Map each top-level struct type in *source* to its ``(name, type)`` fields.

    Embedded fields are reported with their type as the name.

    Raises:
        GoSyntaxError: If *source* does not parse.
    """
    structs: dict[str, list[tuple[str, str]]] = {}
    for decl in parse_go(source):
        if decl[0].value != "type" or len(decl) < 4:
            continue
        name, keyword, brace = decl[1], decl[2], decl[3]
        if keyword.value != "struct" or brace.value != "{":
            continue
        body = decl[4:-1]
        fields: list[tuple[str, str]] = []
        for line in _split_statements(body):
            if line and line[-1].kind == "string":
                line = line[:-1]  # tag
            if not line:
                continue
            names: list[str] = []
            rest = line
            while len(rest) >= 2 and rest[0].kind == "ident" and rest[1].value == ",":
                names.append(rest[0].value)
                rest = rest[2:]
            if rest and rest[0].kind == "ident" and len(rest) > 1 and rest[1].value != ".":
                names.append(rest[0].value)
                rest = rest[1:]
            type_text = join_type(rest)
            for field_name in names or [type_text.lstrip("*").rsplit(".", 1)[-1]]:
                fields.append((field_name, type_text))
        structs[name.value] = fields
    return structs


def struct_fields(source: str, name: str | None = None) -> list[tuple[str, str]]:
    """Return the fields of struct *name* (or the first struct) in *source*."""
    structs = parse_structs(source)
    if name is None:
        return next(iter(structs.values()), [])
    return structs.get(name, [])


# ---------------------------------------------------------------------------
# Checkers
# ---------------------------------------------------------------------------


def check_go(path: str, content: str) -> list[ValidationIssue]:
    try:
        parse_go(content)
    except GoSyntaxError as exc:
        return [
            ValidationIssue(
                file=path, line=exc.line, column=exc.column,
                severity=Severity.ERROR, message=str(exc), rule="go-syntax",
            )
        ]
    return []


def check_json(path: str, content: str) -> list[ValidationIssue]:
    try:
        json.loads(content)
    except json.JSONDecodeError as exc:
        return [
            ValidationIssue(
                file=path, line=exc.lineno, column=exc.colno,
                severity=Severity.ERROR, message=exc.msg, rule="json-syntax",
            )
        ]
    return []


def check_yaml(path: str, content: str) -> list[ValidationIssue]:
    try:
        list(yaml.safe_load_all(content))
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        return [
            ValidationIssue(
                file=path,
                line=mark.line + 1 if mark is not None else None,
                column=mark.column + 1 if mark is not None else None,
                severity=Severity.ERROR,
                message=getattr(exc, "problem", None) or str(exc),
                rule="yaml-syntax",
            )
        ]
    return []


_GO_MOD_DIRECTIVES = frozenset({
    "module", "go", "toolchain", "godebug", "require", "replace", "exclude", "retract",
})
_GO_VERSION_RE = re.compile(r"^1(\.\d+){1,2}([a-z]+\d+)?$")


def check_go_mod(path: str, content: str) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []

    def issue(line: int, message: str) -> None:
        issues.append(
            ValidationIssue(file=path, line=line, severity=Severity.ERROR, message=message, rule="go-mod")
        )

    module_seen = False
    in_block: tuple[str, int] | None = None
    for number, raw in enumerate(content.splitlines(), start=1):
        line = raw.split("//", 1)[0].strip()
        if not line:
            continue
        if in_block is not None:
            if line == ")":
                in_block = None
            continue
        words = line.split()
        directive = words[0]
        if directive not in _GO_MOD_DIRECTIVES:
            issue(number, f"unknown directive {directive!r}")
            continue
        if len(words) >= 2 and words[1] == "(":
            in_block = (directive, number)
            continue
        if directive == "module":
            if module_seen:
                issue(number, "repeated module directive")
            module_seen = True
            if len(words) != 2:
                issue(number, "usage: module <path>")
        elif directive == "go":
            if len(words) != 2 or not _GO_VERSION_RE.match(words[1]):
                issue(number, f"invalid go version {' '.join(words[1:])!r}")
        elif len(words) < 2:
            issue(number, f"{directive} directive needs arguments")
    if in_block is not None:
        issue(in_block[1], f"{in_block[0]} block is never closed")
    if not module_seen:
        issue(1, "missing module directive")
    return issues


Checker = Callable[[str, str], list[ValidationIssue]]


class SyntaxChecker:
    """Registry of per-file checkers keyed by file name or extension."""

    def __init__(self) -> None:
        self._by_name: dict[str, Checker] = {"go.mod": check_go_mod}
        self._by_suffix: dict[str, Checker] = {
            ".go": check_go,
            ".json": check_json,
            ".yaml": check_yaml,
            ".yml": check_yaml,
        }

    def register(self, key: str, checker: Checker) -> None:
        """Register *checker* for a suffix (``".toml"``) or a file name (``"go.sum"``)."""
        if key.startswith("."):
            self._by_suffix[key] = checker
        else:
            self._by_name[key] = checker

    def checker_for(self, path: str) -> Checker | None:
        pure = PurePosixPath(path)
        return self._by_name.get(pure.name) or self._by_suffix.get(pure.suffix)

    def supports(self, path: str) -> bool:
        return self.checker_for(path) is not None

    def check(self, path: str, content: str) -> list[ValidationIssue]:
        """Check one file; unsupported files yield no issues."""
        checker = self.checker_for(path)
        return checker(path, content) if checker is not None else []

    def check_files(self, files: Iterable[GeneratedFile]) -> tuple[int, list[ValidationIssue]]:
        """Check every supported file; returns ``(checked_count, issues)``."""
        checked = 0
        issues: list[ValidationIssue] = []
        for f in files:
            if not self.supports(f.path):
                continue
            checked += 1
            issues.extend(self.check(f.path, f.content))
        return checked, issues
