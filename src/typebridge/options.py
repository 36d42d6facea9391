"""Generation options: the immutable bag every run is configured with.

Options come from CLI flags or an explicit JSON file passed with
``--config``; there is no discovery and no layering beyond explicit overrides.
"""

import json
from pathlib import Path
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from typebridge.codes import ErrorCode, Stage
from typebridge.errors import TypeBridgeError
from typebridge.kernel.render import RenderOptions

OrmKind = Literal["prisma", "mongoose"]
OutputMode = Literal["combined", "per-model"]


class InvalidOptionsError(TypeBridgeError):
    """Raised when an options file or override set does not validate."""
    code = ErrorCode.INVALID_OPTIONS
    stage = Stage.READ


class GenerationOptions(BaseModel):
    """Everything one run needs. ``orm`` is always explicit here; ``auto`` is
    resolved by the caller before the pipeline runs."""
    orm: OrmKind
    schema_path: Path
    output_path: Path
    output_mode: OutputMode = "combined"
    include_comments: bool = True
    readonly: bool = False
    enum_order: Literal["insertion", "sorted"] = "insertion"
    date_type: str = Field(default="string", min_length=1)
    banner: Optional[str] = None

    # Mongoose source selection
    include: Optional[List[str]] = None  # None: loader-specific default
    exclude: Optional[List[str]] = None
    mongoose_loader: Literal["contract", "node"] = "contract"
    node_executable: str = "node"

    model_config = ConfigDict(extra="forbid", frozen=True)

    def render_options(self) -> RenderOptions:
        return RenderOptions(
            include_comments=self.include_comments,
            readonly=self.readonly,
            enum_order=self.enum_order,
            date_type=self.date_type,
            banner=self.banner,
        )


def _describe_validation_error(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "options"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def build_options(**values: Any) -> GenerationOptions:
    """Validate keyword values into options.

    Raises:
        InvalidOptionsError: a value is missing, unknown or of the wrong type.
    """
    try:
        return GenerationOptions(**values)
    except ValidationError as e:
        raise InvalidOptionsError(f"Invalid options: {_describe_validation_error(e)}") from e


def load_options(path: Union[str, Path], **overrides: Any) -> GenerationOptions:
    """Read an options file; keyword ``overrides`` that are not None win.

    Relative ``schema_path``/``output_path`` in the file are resolved against
    the file's directory.

    Raises:
        InvalidOptionsError: the file is missing, not JSON, or not valid options.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise InvalidOptionsError(f"Cannot read options file {path}: {e}", path=str(path)) from e
    except ValueError as e:
        raise InvalidOptionsError(f"Options file {path} is not valid JSON: {e}", path=str(path)) from e
    if not isinstance(data, dict):
        raise InvalidOptionsError(f"Options file {path} must contain a JSON object", path=str(path))

    for key in ("schema_path", "output_path"):
        value = data.get(key)
        if isinstance(value, str) and not Path(value).is_absolute():
            data[key] = str(path.parent / value)

    data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return GenerationOptions(**data)
    except ValidationError as e:
        raise InvalidOptionsError(
            f"Invalid options in {path}: {_describe_validation_error(e)}",
            path=str(path),
        ) from e
