"""Shape completion: raw adapter output -> canonical IR.

The normalizer performs no ORM-specific logic and no type inference. It fills
defaults, moves array element facts onto ``ElementType`` and enforces the
one-shape-per-field invariant.
"""

from typing import Dict, List, Optional, Sequence, Tuple, Union

import structlog
from pydantic import ValidationError

from typebridge.errors import DuplicateModelError, Issue, MalformedFieldError
from typebridge.codes import ErrorCode, Stage
from typebridge.kernel.ir import (
    ElementType,
    EnumDefinition,
    NormalizedField,
    NormalizedModel,
    RawEnum,
    RawField,
    RawModel,
)

log = structlog.get_logger(__name__)


def _shape_count(raw: RawField) -> int:
    return sum([
        raw.scalar is not None,
        raw.enum_values is not None,
        raw.reference_target is not None,
        raw.nested is not None,
    ])


def _element_from_raw(raw: RawField, owner: str) -> ElementType:
    return ElementType(
        scalar=raw.scalar,
        enum_name=raw.enum_name if raw.enum_values is not None else None,
        enum_values=tuple(raw.enum_values) if raw.enum_values is not None else None,
        reference_target=raw.reference_target,
        nested_fields=_normalize_fields(raw.nested, owner) if raw.nested is not None else None,
    )


def normalize_field(raw: RawField, owner: str = "") -> NormalizedField:
    """Normalize one raw field (recursively for nested fields).

    Raises:
        MalformedFieldError: missing name, no shape, or conflicting shapes.
    """
    label = f"{owner}.{raw.name}" if owner else str(raw.name)
    if not raw.name:
        raise MalformedFieldError(f"Field in '{owner}' has no name", element_id=owner or None)

    count = _shape_count(raw)
    if count == 0:
        raise MalformedFieldError(
            f"Field '{label}' has no resolvable type (token: {raw.type_token!r})",
            element_id=label,
        )
    if count > 1:
        raise MalformedFieldError(f"Field '{label}' claims more than one shape", element_id=label)

    common = dict(
        name=raw.name,
        required=True if raw.required is None else raw.required,
        default_value=raw.default_value,
        is_primary=bool(raw.is_primary),
        is_unique=bool(raw.is_unique),
        description=raw.description,
    )

    try:
        if raw.is_array:
            return NormalizedField(is_array=True, element=_element_from_raw(raw, label), **common)
        if raw.enum_values is not None:
            return NormalizedField(
                is_enum=True,
                enum_name=raw.enum_name,
                enum_values=tuple(raw.enum_values),
                **common,
            )
        if raw.reference_target is not None:
            return NormalizedField(is_reference=True, reference_target=raw.reference_target, **common)
        if raw.nested is not None:
            return NormalizedField(nested_fields=_normalize_fields(raw.nested, label), **common)
        return NormalizedField(scalar=raw.scalar, **common)
    except ValidationError as e:
        raise MalformedFieldError(f"Field '{label}' is malformed: {e}", element_id=label) from e


def _normalize_fields(raws: Sequence[RawField], owner: str) -> Tuple[NormalizedField, ...]:
    fields = tuple(normalize_field(raw, owner) for raw in raws)
    seen = set()
    for f in fields:
        if f.name in seen:
            raise MalformedFieldError(
                f"Field '{owner}.{f.name}' is declared more than once",
                element_id=f"{owner}.{f.name}",
            )
        seen.add(f.name)
    return fields


def normalize(model: Union[RawModel, NormalizedModel]) -> NormalizedModel:
    """Normalize a raw model. Already-normalized models come back unchanged.

    Raises:
        MalformedFieldError: if any field cannot be normalized.
    """
    if isinstance(model, NormalizedModel):
        return NormalizedModel.model_validate(model.model_dump())

    return NormalizedModel(
        name=model.name,
        fields=_normalize_fields(model.fields, model.name),
        source_kind=model.source_kind,
        source_path=model.source_path,
        description=model.description,
    )


def normalize_batch(raw_models: Sequence[RawModel]) -> Tuple[List[NormalizedModel], List[Issue]]:
    """Normalize every model, skipping (and reporting) malformed ones.

    Raises:
        DuplicateModelError: two models share a name.
    """
    models: List[NormalizedModel] = []
    issues: List[Issue] = []
    paths_by_name: Dict[str, List[Optional[str]]] = {}

    for raw in raw_models:
        paths_by_name.setdefault(raw.name, []).append(raw.source_path)
        if len(paths_by_name[raw.name]) > 1:
            raise DuplicateModelError(raw.name, paths_by_name[raw.name])

        try:
            models.append(normalize(raw))
        except MalformedFieldError as e:
            issue = e.to_issue()
            issue.path = issue.path or raw.source_path
            issue.element_id = issue.element_id or raw.name
            issues.append(issue)
            log.warning("model_skipped", model=raw.name, reason=e.message)

    log.debug("models_normalized", count=len(models), skipped=len(issues))
    return models, issues


def collect_enums(raw_enums: Sequence[RawEnum]) -> Tuple[List[EnumDefinition], List[Issue]]:
    """Collect enums for the run, keyed by declared name.

    An identical redeclaration is dropped silently; a conflicting one is
    reported and the first declaration wins.
    """
    enums: Dict[str, EnumDefinition] = {}
    issues: List[Issue] = []

    for raw in raw_enums:
        try:
            definition = EnumDefinition(name=raw.name, values=tuple(raw.values), source_path=raw.source_path)
        except ValidationError as e:
            issues.append(Issue(
                code=ErrorCode.SCHEMA_PARSE_ERROR,
                message=f"Enum '{raw.name}' is malformed: {e.errors()[0]['msg']}",
                stage=Stage.NORMALIZE,
                path=raw.source_path,
                element_id=raw.name,
            ))
            continue

        existing = enums.get(definition.name)
        if existing is None:
            enums[definition.name] = definition
        elif existing.values != definition.values:
            issues.append(Issue(
                code=ErrorCode.DUPLICATE_ENUM,
                message=(
                    f"Enum '{definition.name}' redeclared with different values; "
                    f"keeping {list(existing.values)}"
                ),
                stage=Stage.NORMALIZE,
                path=raw.source_path,
                element_id=definition.name,
            ))

    return list(enums.values()), issues
