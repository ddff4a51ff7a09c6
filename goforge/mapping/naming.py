"""Go-specific naming utilities.

Converts specification names (``total_amount``, ``TotalAmount``,
``order-item``) into Go identifiers, honouring Go's common initialisms
(``ID``, ``URL``, ``HTTP`` ...) and steering clear of reserved words and
predeclared identifiers.
"""

from __future__ import annotations

import re

# Go reserved words
GO_RESERVED_WORDS = frozenset({
    "break", "case", "chan", "const", "continue", "default", "defer", "else",
    "fallthrough", "for", "func", "go", "goto", "if", "import", "interface",
    "map", "package", "range", "return", "select", "struct", "switch", "type",
    "var",
})

# Predeclared types and functions that should not be shadowed
GO_PREDECLARED = frozenset({
    "any", "bool", "byte", "comparable", "complex64", "complex128", "error",
    "float32", "float64", "int", "int8", "int16", "int32", "int64", "rune",
    "string", "uint", "uint8", "uint16", "uint32", "uint64", "uintptr",
    "append", "cap", "clear", "close", "complex", "copy", "delete", "imag",
    "len", "make", "max", "min", "new", "panic", "print", "println", "real",
    "recover", "true", "false", "iota", "nil",
})

# Initialisms written fully upper-case in exported names (golint list)
GO_INITIALISMS = frozenset({
    "acl", "api", "ascii", "cpu", "css", "dns", "eof", "guid", "html", "http",
    "https", "id", "ip", "json", "lhs", "qps", "ram", "rhs", "rpc", "sla",
    "smtp", "sql", "ssh", "tcp", "tls", "ttl", "udp", "ui", "uid", "uuid",
    "uri", "url", "utf8", "vm", "xml", "xmpp", "xsrf", "xss",
})

_WORD_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|[0-9]+")
_MODULE_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._~\-]*(/[A-Za-z0-9._~\-]+)*$")


def split_words(name: str) -> list[str]:
    """Split *name* on separators and case boundaries.

    Examples::

        split_words("total_amount") -> ["total", "amount"]
        split_words("HTTPServer")   -> ["HTTP", "Server"]
        split_words("userID")       -> ["user", "ID"]
    """
    words: list[str] = []
    for chunk in re.split(r"[^A-Za-z0-9]+", name):
        words.extend(_WORD_RE.findall(chunk))
    return words


def _capitalize(word: str) -> str:
    if word.lower() in GO_INITIALISMS:
        return word.upper()
    return word[:1].upper() + word[1:].lower()


def exported_name(name: str) -> str:
    """Return the exported (PascalCase) Go identifier for *name*."""
    words = split_words(name)
    if not words:
        return "X"
    result = "".join(_capitalize(w) for w in words)
    if result[0].isdigit():
        result = f"X{result}"
    return result


def unexported_name(name: str) -> str:
    """Return an unexported (camelCase) Go identifier for *name*.

    Reserved words and predeclared identifiers get a trailing underscore
    so the result is always usable as a parameter or variable name.
    """
    words = split_words(name)
    if not words:
        return "x"
    head = words[0].lower()
    result = head + "".join(_capitalize(w) for w in words[1:])
    if result[0].isdigit():
        result = f"x{result}"
    if result in GO_RESERVED_WORDS or result in GO_PREDECLARED:
        result = f"{result}_"
    return result


def snake_name(name: str) -> str:
    """Return ``snake_case`` for *name* (used for JSON keys and columns)."""
    return "_".join(w.lower() for w in split_words(name))


def pluralize(word: str) -> str:
    """Naive English plural, good enough for table and route names."""
    if not word:
        return word
    lower = word.lower()
    if lower.endswith("y") and len(word) > 1 and lower[-2] not in "aeiou":
        return word[:-1] + "ies"
    if lower.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"


def package_name(module: str) -> str:
    """Derive a Go package name from a module path.

    Takes the last path segment, lowercases it and drops ``-``/``_`` and any
    other character Go does not allow in package names.
    """
    last = module.rstrip("/").rsplit("/", 1)[-1].lower()
    cleaned = re.sub(r"[^a-z0-9]", "", last)
    if not cleaned or cleaned[0].isdigit() or cleaned in GO_RESERVED_WORDS:
        return "app"
    return cleaned


def is_valid_module_path(module: str) -> bool:
    """Return ``True`` when *module* looks like a usable Go module path."""
    return bool(module) and bool(_MODULE_RE.match(module))


def is_valid_identifier_source(name: str) -> bool:
    """Return ``True`` when *name* can be turned into a Go identifier.

    Names must start with a letter and contain only letters, digits,
    underscores, hyphens or spaces.
    """
    return bool(re.match(r"^[A-Za-z][A-Za-z0-9_\- ]*$", name or ""))


def local_name(name: str, avoid: frozenset[str] | set[str] = frozenset()) -> str:
    """Return an unexported local variable name for *name* not in *avoid*.

    Clashing names get an ``Entity`` suffix (``order`` stays ``order``,
    ``ctx`` becomes ``ctxEntity``).
    """
    result = unexported_name(name).rstrip("_")
    if result in avoid or result in GO_RESERVED_WORDS or result in GO_PREDECLARED:
        result = f"{result}Entity"
    return result
