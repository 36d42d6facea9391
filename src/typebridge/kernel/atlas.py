"""Type atlas: source ORM primitive names -> canonical scalar kinds."""

from enum import Enum
from typing import Dict, Optional


class ScalarKind(str, Enum):
    """Canonical scalar kinds shared by every adapter."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"  # ISO-8601 text on the wire, kept distinct from STRING
    OBJECT = "object"  # Untyped object (Json, Mixed, Map)
    UNKNOWN = "unknown"


PRISMA_TYPES: Dict[str, ScalarKind] = {
    "String": ScalarKind.STRING,
    "Int": ScalarKind.NUMBER,
    "Float": ScalarKind.NUMBER,
    "Decimal": ScalarKind.NUMBER,
    "BigInt": ScalarKind.NUMBER,
    "Boolean": ScalarKind.BOOLEAN,
    "DateTime": ScalarKind.DATE,
    "Json": ScalarKind.OBJECT,
    "Bytes": ScalarKind.STRING,
    "Unsupported": ScalarKind.UNKNOWN,
}

MONGOOSE_TYPES: Dict[str, ScalarKind] = {
    "String": ScalarKind.STRING,
    "Number": ScalarKind.NUMBER,
    "Decimal128": ScalarKind.NUMBER,
    "Double": ScalarKind.NUMBER,
    "Int32": ScalarKind.NUMBER,
    "BigInt": ScalarKind.NUMBER,
    "Boolean": ScalarKind.BOOLEAN,
    "Date": ScalarKind.DATE,
    "Buffer": ScalarKind.STRING,
    "ObjectId": ScalarKind.STRING,
    "UUID": ScalarKind.STRING,
    "Mixed": ScalarKind.OBJECT,
    "Map": ScalarKind.OBJECT,
    "Object": ScalarKind.OBJECT,
}

# Qualified spellings of the Mongoose constructors, longest first.
MONGOOSE_PREFIXES = ("mongoose.Schema.Types.", "Schema.Types.", "mongoose.Types.", "Types.")

TS_SPELLING: Dict[ScalarKind, str] = {
    ScalarKind.STRING: "string",
    ScalarKind.NUMBER: "number",
    ScalarKind.BOOLEAN: "boolean",
    ScalarKind.DATE: "string",
    ScalarKind.OBJECT: "Record<string, unknown>",
    ScalarKind.UNKNOWN: "unknown",
}


def lookup_prisma(token: str) -> Optional[ScalarKind]:
    """Resolve a Prisma type token (``Int``, ``Unsupported("x")``)."""
    base = token.split("(", 1)[0]
    return PRISMA_TYPES.get(base)


def lookup_mongoose(token: str) -> Optional[ScalarKind]:
    """Resolve a Mongoose constructor name, with or without its namespace."""
    for prefix in MONGOOSE_PREFIXES:
        if token.startswith(prefix):
            token = token[len(prefix):]
            break
    return MONGOOSE_TYPES.get(token)


def ts_spelling(kind: ScalarKind, date_type: str = "string") -> str:
    """TypeScript spelling of a scalar kind."""
    if kind is ScalarKind.DATE:
        return date_type
    return TS_SPELLING[kind]
