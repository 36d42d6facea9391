"""Exception hierarchy and the Issue result model."""

from typing import List, Optional

from pydantic import BaseModel

from typebridge.codes import ErrorCode, Stage


class Issue(BaseModel):
    """A single error or warning attached to a run result."""
    code: ErrorCode
    message: str
    stage: Stage
    path: Optional[str] = None  # Source or output path involved
    element_id: Optional[str] = None  # Model, enum, field or module name
    cycle_path: Optional[List[str]] = None  # For CYCLE_DETECTED


class TypeBridgeError(Exception):
    """Base exception for pipeline errors."""
    code: ErrorCode = ErrorCode.SCHEMA_PARSE_ERROR
    stage: Stage = Stage.PARSE

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        element_id: Optional[str] = None,
        code: Optional[ErrorCode] = None,
    ):
        self.message = message
        self.path = path
        self.element_id = element_id
        if code is not None:
            self.code = code
        super().__init__(message)

    def to_issue(self) -> Issue:
        return Issue(
            code=self.code,
            message=self.message,
            stage=self.stage,
            path=self.path,
            element_id=self.element_id,
        )


class SchemaReadError(TypeBridgeError):
    """Raised when a schema source exists but cannot be read."""
    code = ErrorCode.SOURCE_UNREADABLE
    stage = Stage.READ


class SourceNotFoundError(SchemaReadError):
    """Raised when a schema source does not exist."""
    code = ErrorCode.SOURCE_NOT_FOUND

    def __init__(self, path: str):
        super().__init__(f"Schema source not found: {path}", path=path)


class SchemaParseError(TypeBridgeError):
    """Raised for one model/enum block (or module) that cannot be parsed.

    Adapters catch it per block and turn it into a warning.
    """
    code = ErrorCode.SCHEMA_PARSE_ERROR
    stage = Stage.PARSE


class MalformedFieldError(TypeBridgeError):
    """Raised when a raw field has no name or no single resolvable shape."""
    code = ErrorCode.MALFORMED_FIELD
    stage = Stage.NORMALIZE


class DuplicateModelError(TypeBridgeError):
    """Raised when two models in one batch share a name."""
    code = ErrorCode.DUPLICATE_MODEL
    stage = Stage.NORMALIZE

    def __init__(self, name: str, paths: List[Optional[str]]):
        self.paths = paths
        where = ", ".join(p for p in paths if p) or "same source"
        super().__init__(
            f"Model '{name}' is declared more than once ({where})",
            path=paths[-1] if paths else None,
            element_id=name,
        )


class NoModelsFoundError(TypeBridgeError):
    """Raised when parsing yields zero models."""
    code = ErrorCode.NO_MODELS_FOUND
    stage = Stage.PARSE

    def __init__(self, path: Optional[str] = None):
        super().__init__("No models found", path=path)


class OutputWriteError(TypeBridgeError):
    """Raised when the writer reports a failure for an output path."""
    code = ErrorCode.OUTPUT_UNWRITABLE
    stage = Stage.WRITE

    def __init__(self, path: str, reason: str):
        self.reason = reason
        super().__init__(f"Failed to write {path}: {reason}", path=path)


class ModuleLoadError(SchemaParseError):
    """Raised when one Mongoose model module cannot be introspected."""
    code = ErrorCode.MODULE_LOAD_ERROR


class OutputNameConflictError(TypeBridgeError):
    """Raised when a model's document would replace a generated aggregate file."""
    code = ErrorCode.OUTPUT_NAME_CONFLICT
    stage = Stage.RENDER

    def __init__(self, name: str, document: str, path: Optional[str] = None):
        super().__init__(
            f"Model '{name}' would overwrite the generated '{document}' document; "
            "rename the model or use combined output",
            path=path,
            element_id=name,
        )
