"""Logical type -> Go type mapping table.

``resolve`` is a pure lookup over a static table.  Every entry carries the
Go type, the JSON tag options, the default validation token, the SQL column
type used in storage tags and the imports the Go type needs.  Lookups are
case-insensitive and never raise: unknown names resolve to the opaque
``any`` type with ``known=False`` so rendering always produces valid Go.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum


class TypeCategory(str, Enum):
    """Coarse family of a logical type; decides which rules apply to it."""

    TEXT = "text"
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    TEMPORAL = "temporal"
    STRUCTURED = "structured"
    COLLECTION = "collection"
    BINARY = "binary"
    OPAQUE = "opaque"


@dataclass(frozen=True)
class TypeResolution:
    """Immutable result of resolving one logical type."""

    logical_type: str
    target_type: str
    category: TypeCategory
    serialization_tag: str = ""
    validation_tag: str = ""
    storage_tag: str = ""
    imports: frozenset[str] = field(default_factory=frozenset)
    known: bool = True

    @property
    def is_nilable(self) -> bool:
        """True when the Go zero value is already ``nil``."""
        t = self.target_type
        return t.startswith(("*", "[]", "map[")) or t in ("any", "json.RawMessage")

    def as_nullable(self) -> "TypeResolution":
        """Return a pointer version unless the type is already nilable."""
        if self.is_nilable:
            return self
        return replace(self, target_type=f"*{self.target_type}")


OPAQUE_TYPE = "any"

_TIME = frozenset({"time"})
_BIG = frozenset({"math/big"})
_JSON = frozenset({"encoding/json"})

C = TypeCategory

# logical name -> (go type, category, json options, validate token, sql type, imports)
_TYPE_TABLE: dict[str, tuple[str, TypeCategory, str, str, str, frozenset[str]]] = {
    # text
    "string": ("string", C.TEXT, "", "", "VARCHAR(255)", frozenset()),
    "text": ("string", C.TEXT, "", "", "TEXT", frozenset()),
    "longtext": ("string", C.TEXT, "", "", "TEXT", frozenset()),
    "varchar": ("string", C.TEXT, "", "", "VARCHAR(255)", frozenset()),
    "char": ("string", C.TEXT, "", "", "CHAR(1)", frozenset()),
    "slug": ("string", C.TEXT, "", "", "VARCHAR(255)", frozenset()),
    "identifier": ("string", C.TEXT, "", "", "VARCHAR(64)", frozenset()),
    "id": ("string", C.TEXT, "", "", "VARCHAR(64)", frozenset()),
    "uuid": ("string", C.TEXT, "", "uuid", "UUID", frozenset()),
    "email": ("string", C.TEXT, "", "email", "VARCHAR(320)", frozenset()),
    "password": ("string", C.TEXT, "-", "", "VARCHAR(255)", frozenset()),
    "url": ("string", C.TEXT, "", "url", "TEXT", frozenset()),
    "phone": ("string", C.TEXT, "", "e164", "VARCHAR(32)", frozenset()),
    "ip": ("string", C.TEXT, "", "ip", "INET", frozenset()),
    "hostname": ("string", C.TEXT, "", "hostname", "VARCHAR(253)", frozenset()),
    "color": ("string", C.TEXT, "", "hexcolor", "VARCHAR(9)", frozenset()),
    "enum": ("string", C.TEXT, "", "", "VARCHAR(64)", frozenset()),
    "enumerated": ("string", C.TEXT, "", "", "VARCHAR(64)", frozenset()),
    # integers
    "integer": ("int", C.INTEGER, "", "", "INTEGER", frozenset()),
    "int": ("int", C.INTEGER, "", "", "INTEGER", frozenset()),
    "smallint": ("int16", C.INTEGER, "", "", "SMALLINT", frozenset()),
    "int32": ("int32", C.INTEGER, "", "", "INTEGER", frozenset()),
    "int64": ("int64", C.INTEGER, "", "", "BIGINT", frozenset()),
    "bigint": ("int64", C.INTEGER, "", "", "BIGINT", frozenset()),
    "long": ("int64", C.INTEGER, "", "", "BIGINT", frozenset()),
    "uint": ("uint", C.INTEGER, "", "", "BIGINT", frozenset()),
    # floating point
    "float": ("float64", C.FLOAT, "", "", "DOUBLE PRECISION", frozenset()),
    "float32": ("float32", C.FLOAT, "", "", "REAL", frozenset()),
    "float64": ("float64", C.FLOAT, "", "", "DOUBLE PRECISION", frozenset()),
    "double": ("float64", C.FLOAT, "", "", "DOUBLE PRECISION", frozenset()),
    "percentage": ("float64", C.FLOAT, "", "", "NUMERIC(5,2)", frozenset()),
    # exact decimals
    "decimal": ("*big.Rat", C.DECIMAL, "", "", "NUMERIC(19,4)", _BIG),
    "numeric": ("*big.Rat", C.DECIMAL, "", "", "NUMERIC(19,4)", _BIG),
    "money": ("*big.Rat", C.DECIMAL, "", "", "NUMERIC(19,4)", _BIG),
    "currency": ("*big.Rat", C.DECIMAL, "", "", "NUMERIC(19,4)", _BIG),
    # boolean
    "boolean": ("bool", C.BOOLEAN, "", "", "BOOLEAN", frozenset()),
    "bool": ("bool", C.BOOLEAN, "", "", "BOOLEAN", frozenset()),
    # temporal
    "timestamp": ("time.Time", C.TEMPORAL, "", "", "TIMESTAMPTZ", _TIME),
    "datetime": ("time.Time", C.TEMPORAL, "", "", "TIMESTAMPTZ", _TIME),
    "date": ("time.Time", C.TEMPORAL, "", "", "DATE", _TIME),
    "time": ("time.Time", C.TEMPORAL, "", "", "TIME", _TIME),
    "duration": ("time.Duration", C.TEMPORAL, "", "", "BIGINT", _TIME),
    # structured
    "json": ("json.RawMessage", C.STRUCTURED, "", "", "JSONB", _JSON),
    "jsonb": ("json.RawMessage", C.STRUCTURED, "", "", "JSONB", _JSON),
    "object": ("map[string]any", C.STRUCTURED, "", "", "JSONB", frozenset()),
    "map": ("map[string]any", C.STRUCTURED, "", "", "JSONB", frozenset()),
    # collections
    "array": ("[]any", C.COLLECTION, "", "", "JSONB", frozenset()),
    "list": ("[]string", C.COLLECTION, "", "", "TEXT[]", frozenset()),
    "slice": ("[]string", C.COLLECTION, "", "", "TEXT[]", frozenset()),
    "tags": ("[]string", C.COLLECTION, "", "", "TEXT[]", frozenset()),
    # binary
    "binary": ("[]byte", C.BINARY, "", "", "BYTEA", frozenset()),
    "bytes": ("[]byte", C.BINARY, "", "", "BYTEA", frozenset()),
    "blob": ("[]byte", C.BINARY, "", "", "BYTEA", frozenset()),
}

del C


def known_types() -> list[str]:
    """Return every logical type name the table understands."""
    return sorted(_TYPE_TABLE)


def resolve(logical_type: str) -> TypeResolution:
    """Resolve a logical type name to its Go representation.

    Never raises.  Unknown or empty names resolve to the opaque ``any``
    type with ``known=False``; callers decide whether to record a warning.
    """
    key = (logical_type or "").strip().lower()
    entry = _TYPE_TABLE.get(key)
    if entry is None:
        return TypeResolution(
            logical_type=logical_type,
            target_type=OPAQUE_TYPE,
            category=TypeCategory.OPAQUE,
            storage_tag="JSONB",
            known=False,
        )
    go_type, category, json_opts, validate, sql_type, imports = entry
    return TypeResolution(
        logical_type=key,
        target_type=go_type,
        category=category,
        serialization_tag=json_opts,
        validation_tag=validate,
        storage_tag=sql_type,
        imports=imports,
    )
