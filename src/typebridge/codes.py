"""Error and warning code constants for typebridge results.

These constants prevent stringly-typed error codes and let callers
(the CLI, watchers) pick an exit code without matching on messages.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Issue codes carried by pipeline results."""

    # Fatal (run-aborting)
    SOURCE_NOT_FOUND = "SOURCE_NOT_FOUND"
    SOURCE_UNREADABLE = "SOURCE_UNREADABLE"
    NO_MODELS_FOUND = "NO_MODELS_FOUND"
    DUPLICATE_MODEL = "DUPLICATE_MODEL"
    OUTPUT_UNWRITABLE = "OUTPUT_UNWRITABLE"
    OUTPUT_NAME_CONFLICT = "OUTPUT_NAME_CONFLICT"
    INVALID_OPTIONS = "INVALID_OPTIONS"

    # Recoverable (block-scoped, block skipped)
    SCHEMA_PARSE_ERROR = "SCHEMA_PARSE_ERROR"
    MODULE_LOAD_ERROR = "MODULE_LOAD_ERROR"
    MALFORMED_FIELD = "MALFORMED_FIELD"
    DUPLICATE_ENUM = "DUPLICATE_ENUM"

    # Advisory (non-blocking)
    CYCLE_DETECTED = "CYCLE_DETECTED"
    UNRESOLVED_REFERENCE = "UNRESOLVED_REFERENCE"


class Stage(str, Enum):
    """Pipeline stage an issue was raised in."""

    READ = "read"
    PARSE = "parse"
    NORMALIZE = "normalize"
    ANALYZE = "analyze"
    RENDER = "render"
    WRITE = "write"


FATAL_CODES = frozenset({
    ErrorCode.SOURCE_NOT_FOUND,
    ErrorCode.SOURCE_UNREADABLE,
    ErrorCode.NO_MODELS_FOUND,
    ErrorCode.DUPLICATE_MODEL,
    ErrorCode.OUTPUT_UNWRITABLE,
    ErrorCode.OUTPUT_NAME_CONFLICT,
    ErrorCode.INVALID_OPTIONS,
})

# CLI exit status per fatal code; anything else that fails exits 1.
EXIT_CODES = {
    ErrorCode.SOURCE_NOT_FOUND: 2,
    ErrorCode.SOURCE_UNREADABLE: 2,
    ErrorCode.NO_MODELS_FOUND: 3,
    ErrorCode.DUPLICATE_MODEL: 4,
    ErrorCode.OUTPUT_UNWRITABLE: 5,
    ErrorCode.OUTPUT_NAME_CONFLICT: 4,
    ErrorCode.INVALID_OPTIONS: 6,
}
