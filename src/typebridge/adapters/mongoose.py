"""Mongoose schema adapter.

Consumes schema-introspection contracts (see
``typebridge._internal.schemas.contract``) and interprets the raw Mongoose
field maps they carry. Each matched source file is one module; a module that
cannot be loaded is skipped with a ``MODULE_LOAD_ERROR`` warning.

Field map shapes::

    email: "String"                                       # constructor name
    tags: ["String"]                                      # array
    role: {"type": "String", "enum": ["user", "admin"]}   # descriptor
    author: {"type": "ObjectId", "ref": "User"}           # reference
    address: {"street": "String", "city": "String"}       # embedded document
"""

import fnmatch
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set, Union

import structlog

from typebridge.errors import ModuleLoadError, SourceNotFoundError
from typebridge.kernel.atlas import ScalarKind, lookup_mongoose
from typebridge.kernel.ir import AdapterResult, RawField, RawModel
from typebridge._internal.bridge import ContractFileLoader, ContractLoader
from typebridge._internal.schemas.contract import ContractModel, SchemaContract

log = structlog.get_logger(__name__)

CONTRACT_INCLUDE = ("**/*.schema.json",)
MODULE_INCLUDE = ("**/*.js", "**/*.cjs")
DEFAULT_EXCLUDE = ("**/node_modules/**", "**/*.test.*", "**/*.spec.*")

# A `ref` key alone is an ordinary subdocument field; real refs carry `type`.
DESCRIPTOR_KEYS = ("type", "enum")


def _matches(relative: str, pattern: str) -> bool:
    if fnmatch.fnmatch(relative, pattern):
        return True
    # "**/x" also matches "x" at the top level
    while pattern.startswith("**/"):
        pattern = pattern[3:]
        if fnmatch.fnmatch(relative, pattern):
            return True
    return False


def find_modules(directory: Path, include: Sequence[str], exclude: Sequence[str] = ()) -> List[Path]:
    """Files under ``directory`` matching ``include`` and none of ``exclude``, sorted."""
    found: Set[Path] = set()
    for pattern in include:
        for path in directory.glob(pattern):
            if not path.is_file():
                continue
            relative = path.relative_to(directory).as_posix()
            if any(_matches(relative, p) for p in exclude):
                continue
            found.add(path)
    return sorted(found)


def model_name_from_path(path: Path) -> str:
    """``user.schema.json`` -> ``User``."""
    stem = path.name.split(".", 1)[0]
    return stem[:1].upper() + stem[1:]


def is_descriptor(definition: Any) -> bool:
    return isinstance(definition, dict) and any(k in definition for k in DESCRIPTOR_KEYS)


def is_required_flag(value: Any) -> bool:
    """``required: true`` or ``required: [true, "message"]``."""
    if value is True:
        return True
    return isinstance(value, list) and bool(value) and value[0] is True


def _enum_values(value: Any) -> Optional[List[str]]:
    if isinstance(value, dict):
        value = value.get("values")
    if not isinstance(value, list):
        return None
    values = [str(v) for v in value if v is not None]
    return values or None


def _describe(
    raw: RawField,
    definition: Any,
    path: str,
    required_paths: Set[str],
    in_array: bool = False,
) -> None:
    """Set the shape attributes of ``raw`` from a type definition.

    Inside an array the attributes describe the element. Arrays of arrays
    have no element shape and degrade to ``unknown``.
    """
    if isinstance(definition, str):
        raw.type_token = definition
        raw.scalar = lookup_mongoose(definition) or ScalarKind.UNKNOWN
        return

    if isinstance(definition, list):
        if in_array:
            raw.scalar = ScalarKind.UNKNOWN
            return
        raw.is_array = True
        if not definition:
            raw.scalar = ScalarKind.UNKNOWN
            return
        _describe(raw, definition[0], path, required_paths, in_array=True)
        return

    if not isinstance(definition, dict):
        raw.scalar = ScalarKind.UNKNOWN
        return

    if not is_descriptor(definition):
        raw.nested = fields_from_map(definition, path, required_paths)
        return

    type_def = definition.get("type")
    array_type = isinstance(type_def, list)
    if array_type and not in_array:
        raw.is_array = True

    ref = definition.get("ref")
    if isinstance(ref, str) and ref:
        raw.reference_target = ref
        return

    values = _enum_values(definition.get("enum"))
    if values is not None:
        raw.enum_values = values
        return

    if array_type:
        if in_array or not type_def:
            raw.scalar = ScalarKind.UNKNOWN
        else:
            _describe(raw, type_def[0], path, required_paths, in_array=True)
        return

    if type_def is None:
        raw.scalar = ScalarKind.UNKNOWN
        return
    _describe(raw, type_def, path, required_paths, in_array=in_array)


def interpret_field(
    name: str,
    definition: Any,
    path: Optional[str] = None,
    required_paths: Optional[Set[str]] = None,
) -> RawField:
    """Turn one entry of a Mongoose field map into a raw field."""
    path = path or name
    required_paths = required_paths or set()
    raw = RawField(name=name, required=path in required_paths)
    _describe(raw, definition, path, required_paths)

    if is_descriptor(definition):
        if is_required_flag(definition.get("required")):
            raw.required = True
        if "default" in definition:
            raw.default_value = json.dumps(definition["default"], sort_keys=True)
        raw.is_unique = definition.get("unique") is True
    return raw


def fields_from_map(
    field_map: Dict[str, Any],
    prefix: str = "",
    required_paths: Optional[Set[str]] = None,
) -> List[RawField]:
    """Raw fields for a field map, in declaration order. ``_``-prefixed keys are internal."""
    fields = []
    for name, definition in field_map.items():
        if name.startswith("_"):
            continue
        path = f"{prefix}.{name}" if prefix else name
        fields.append(interpret_field(name, definition, path, required_paths))
    return fields


def model_from_contract(entry: ContractModel, source: Path) -> RawModel:
    return RawModel(
        name=entry.name or model_name_from_path(source),
        fields=fields_from_map(entry.fields, required_paths=set(entry.required_paths)),
        source_kind="mongoose",
        source_path=str(source),
    )


@dataclass
class MongooseAdapter:
    """Adapter for a directory of Mongoose model modules."""
    include: Sequence[str] = CONTRACT_INCLUDE
    exclude: Sequence[str] = DEFAULT_EXCLUDE
    loader: ContractLoader = field(default_factory=ContractFileLoader)
    source_kind = "mongoose"

    def parse(self, location: Union[str, os.PathLike, Path]) -> AdapterResult:
        """Load every matched module and interpret its models.

        Raises:
            SourceNotFoundError: ``location`` does not exist.
        """
        location = Path(location)
        if not location.exists():
            raise SourceNotFoundError(str(location))
        if location.is_file():
            files = [location]
        else:
            files = find_modules(location, self.include, self.exclude)

        result = AdapterResult()
        for path in files:
            try:
                contract = self.loader.load(path)
            except ModuleLoadError as e:
                result.issues.append(e.to_issue())
                log.warning("module_skipped", path=str(path), reason=e.message)
                continue
            result.models.extend(self.models_from(contract, path))

        log.info(
            "mongoose_models_parsed",
            files=len(files),
            models=len(result.models),
            skipped=len(result.issues),
        )
        return result

    def models_from(self, contract: SchemaContract, source: Path) -> List[RawModel]:
        if not contract.models:
            log.debug("module_without_schema", path=str(source))
        return [model_from_contract(entry, source) for entry in contract.models]
