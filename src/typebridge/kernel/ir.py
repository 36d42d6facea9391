"""Intermediate representation shared by every adapter and the generator.

Raw* dataclasses are what adapters produce: every attribute except the name
is optional and nothing is validated. The normalizer turns them into the
pydantic models below, which are frozen and enforce the one-shape-per-field
invariant.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from typebridge.errors import Issue
from typebridge.kernel.atlas import ScalarKind

SourceKind = Literal["prisma", "mongoose"]
FieldShape = Literal["scalar", "enum", "reference", "nested", "array"]


def _check_unique_names(fields: Tuple["NormalizedField", ...], owner: str) -> None:
    seen = set()
    duplicates = set()
    for f in fields:
        if f.name in seen:
            duplicates.add(f.name)
        seen.add(f.name)
    if duplicates:
        raise ValueError(f"Duplicate field names in {owner}: {sorted(duplicates)}")


class ElementType(BaseModel):
    """Element of an array field: scalar, enum, reference or inline object."""
    scalar: Optional[ScalarKind] = None
    enum_name: Optional[str] = None
    enum_values: Optional[Tuple[str, ...]] = None
    reference_target: Optional[str] = None
    nested_fields: Optional[Tuple[NormalizedField, ...]] = None
    is_self_reference: bool = False

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def _one_shape(self) -> "ElementType":
        shapes = [
            self.scalar is not None,
            self.enum_values is not None,
            self.reference_target is not None,
            self.nested_fields is not None,
        ]
        if sum(shapes) != 1:
            raise ValueError("Array element must describe exactly one shape")
        if self.enum_name is not None and self.enum_values is None:
            raise ValueError(f"Element enum '{self.enum_name}' has no values")
        if self.nested_fields is not None:
            _check_unique_names(self.nested_fields, "array element")
        return self

    @property
    def shape(self) -> FieldShape:
        if self.enum_values is not None:
            return "enum"
        if self.reference_target is not None:
            return "reference"
        if self.nested_fields is not None:
            return "nested"
        return "scalar"


class NormalizedField(BaseModel):
    """One schema attribute."""
    name: str = Field(..., min_length=1)
    scalar: Optional[ScalarKind] = None
    required: bool = True
    is_array: bool = False
    element: Optional[ElementType] = None
    is_enum: bool = False
    enum_name: Optional[str] = None  # Declared enum (Prisma); None for inline value lists
    enum_values: Optional[Tuple[str, ...]] = None
    is_reference: bool = False
    reference_target: Optional[str] = None  # Singular relations only
    is_self_reference: bool = False  # Set by the dependency analyzer
    nested_fields: Optional[Tuple[NormalizedField, ...]] = None
    default_value: Optional[str] = None  # Opaque source literal, informational
    is_primary: bool = False
    is_unique: bool = False
    description: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def _one_shape(self) -> "NormalizedField":
        shapes = {
            "scalar": self.scalar is not None,
            "enum": self.is_enum,
            "reference": self.is_reference,
            "nested": self.nested_fields is not None,
            "array": self.is_array,
        }
        claimed = [name for name, present in shapes.items() if present]
        if len(claimed) != 1:
            raise ValueError(
                f"Field '{self.name}' must have exactly one shape, got {claimed or 'none'}"
            )
        if self.is_array and self.element is None:
            raise ValueError(f"Array field '{self.name}' has no element type")
        if not self.is_array and self.element is not None:
            raise ValueError(f"Field '{self.name}' has an element type but is not an array")
        if self.is_enum != (self.enum_values is not None):
            raise ValueError(f"Field '{self.name}': is_enum and enum_values disagree")
        if self.enum_name is not None and not self.is_enum:
            raise ValueError(f"Field '{self.name}' names enum '{self.enum_name}' but is not an enum")
        if self.is_reference != (self.reference_target is not None):
            raise ValueError(f"Field '{self.name}': is_reference and reference_target disagree")
        if self.nested_fields is not None:
            _check_unique_names(self.nested_fields, f"field '{self.name}'")
        return self

    @property
    def shape(self) -> FieldShape:
        if self.is_enum:
            return "enum"
        if self.is_array:
            return "array"
        if self.is_reference:
            return "reference"
        if self.nested_fields is not None:
            return "nested"
        return "scalar"


ElementType.model_rebuild()
NormalizedField.model_rebuild()


class NormalizedModel(BaseModel):
    """One named entity."""
    name: str = Field(..., min_length=1)
    fields: Tuple[NormalizedField, ...]
    source_kind: SourceKind
    source_path: Optional[str] = None
    description: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("fields")
    @classmethod
    def validate_fields(cls, v: Tuple[NormalizedField, ...]) -> Tuple[NormalizedField, ...]:
        _check_unique_names(v, "model")
        return v

    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def get_field(self, name: str) -> NormalizedField | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None


class EnumDefinition(BaseModel):
    """A declared enum; collected once per run, keyed by name."""
    name: str = Field(..., min_length=1)
    values: Tuple[str, ...] = Field(..., min_length=1)
    source_path: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("values")
    @classmethod
    def validate_values(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        if len(set(v)) != len(v):
            raise ValueError(f"Duplicate enum values: {sorted(x for x in set(v) if v.count(x) > 1)}")
        return v


@dataclass
class RawField:
    """A field as an adapter saw it.

    When ``is_array`` is true, ``scalar``/``enum_*``/``reference_target``/
    ``nested`` describe the array element, not the field.
    """
    name: Optional[str]
    scalar: Optional[ScalarKind] = None
    required: Optional[bool] = None
    is_array: Optional[bool] = None
    enum_name: Optional[str] = None
    enum_values: Optional[List[str]] = None
    reference_target: Optional[str] = None
    nested: Optional[List["RawField"]] = None
    default_value: Optional[str] = None
    is_primary: Optional[bool] = None
    is_unique: Optional[bool] = None
    description: Optional[str] = None
    type_token: Optional[str] = None  # Source spelling, for diagnostics


@dataclass
class RawModel:
    name: str
    fields: List[RawField]
    source_kind: SourceKind
    source_path: Optional[str] = None
    description: Optional[str] = None


@dataclass
class RawEnum:
    name: str
    values: List[str]
    source_path: Optional[str] = None


@dataclass
class AdapterResult:
    """Everything one adapter run produced, including skipped-block warnings."""
    models: List[RawModel] = field(default_factory=list)
    enums: List[RawEnum] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)
