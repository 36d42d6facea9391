"""Render normalized models into TypeScript declarations.

Rendering is a pure function of (IR, options): the same input always yields
byte-identical text, so generated files can be verified by re-rendering.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from typebridge.errors import OutputNameConflictError
from typebridge.kernel.atlas import ScalarKind, ts_spelling
from typebridge.kernel.ir import ElementType, EnumDefinition, NormalizedField, NormalizedModel

GENERATOR_NAME = "typebridge"
INDENT = "  "
ENUMS_MODULE = "enums"
INDEX_MODULE = "index"

_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


class RenderOptions(BaseModel):
    """Options that affect emitted text."""
    include_comments: bool = True
    readonly: bool = False
    enum_order: Literal["insertion", "sorted"] = "insertion"
    date_type: str = "string"
    banner: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)


@dataclass
class RenderContext:
    """Everything needed to resolve names while rendering one batch."""
    models: Dict[str, NormalizedModel]
    enums: Dict[str, EnumDefinition]
    options: RenderOptions = field(default_factory=RenderOptions)

    @classmethod
    def build(
        cls,
        models: Sequence[NormalizedModel],
        enums: Sequence[EnumDefinition] = (),
        options: Optional[RenderOptions] = None,
    ) -> "RenderContext":
        return cls(
            models={m.name: m for m in models},
            enums={e.name: e for e in enums},
            options=options or RenderOptions(),
        )


@dataclass
class ModelImports:
    """Names a per-model document must import, in first-use order."""
    enums: List[str] = field(default_factory=list)
    models: List[str] = field(default_factory=list)


def quote_literal(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def property_name(name: str) -> str:
    """Property key as written in a declaration; quoted if not an identifier."""
    return name if _IDENTIFIER.match(name) else quote_literal(name)


def render_enum_union(values: Sequence[str]) -> str:
    return " | ".join(quote_literal(v) for v in values)


def _render_enum_type(enum_name: Optional[str], values: Sequence[str], context: RenderContext) -> str:
    # Declared enums are emitted once as TS enums and referenced by name
    if enum_name is not None and enum_name in context.enums:
        return enum_name
    return render_enum_union(values)


def _render_element(element: ElementType, context: RenderContext, depth: int) -> str:
    if element.enum_values is not None:
        return _render_enum_type(element.enum_name, element.enum_values, context)
    if element.reference_target is not None:
        return element.reference_target
    if element.nested_fields is not None:
        return _render_inline_object(element.nested_fields, context, depth)
    return ts_spelling(element.scalar or ScalarKind.UNKNOWN, context.options.date_type)


def render_field_type(field: NormalizedField, context: RenderContext, depth: int = 0) -> str:
    """TypeScript type for one field, including the ``| null`` union for optional fields.

    Priority: enum, array, reference, nested object, scalar.
    """
    if field.is_enum:
        ts_type = _render_enum_type(field.enum_name, field.enum_values or (), context)
    elif field.is_array and field.element is not None:
        inner = _render_element(field.element, context, depth)
        if " | " in inner and not inner.startswith("{"):
            inner = f"({inner})"
        ts_type = f"{inner}[]"
    elif field.is_reference and field.reference_target:
        ts_type = field.reference_target
    elif field.nested_fields is not None:
        ts_type = _render_inline_object(field.nested_fields, context, depth)
    else:
        ts_type = ts_spelling(field.scalar or ScalarKind.UNKNOWN, context.options.date_type)

    return ts_type if field.required else f"{ts_type} | null"


def _render_property(field: NormalizedField, context: RenderContext, depth: int) -> List[str]:
    pad = INDENT * (depth + 1)
    lines = []
    if context.options.include_comments and field.description:
        lines.append(f"{pad}/** {field.description} */")
    prefix = "readonly " if context.options.readonly else ""
    optional = "" if field.required else "?"
    ts_type = render_field_type(field, context, depth + 1)
    lines.append(f"{pad}{prefix}{property_name(field.name)}{optional}: {ts_type};")
    return lines


def _render_inline_object(fields: Sequence[NormalizedField], context: RenderContext, depth: int) -> str:
    if not fields:
        return "{}"
    lines = ["{"]
    for f in fields:
        lines.extend(_render_property(f, context, depth))
    lines.append(INDENT * depth + "}")
    return "\n".join(lines)


def _doc_comment(text: str) -> List[str]:
    lines = text.splitlines() or [text]
    if len(lines) == 1:
        return [f"/** {lines[0]} */"]
    return ["/**"] + [f" * {line}".rstrip() for line in lines] + [" */"]


def render_model(model: NormalizedModel, context: RenderContext) -> str:
    """Render one model as an exported interface declaration."""
    lines: List[str] = []
    if context.options.include_comments:
        if model.description:
            lines.extend(_doc_comment(model.description))
        lines.append(f"/** Auto-generated from {model.source_kind} schema */")
    lines.append(f"export interface {model.name} {{")
    for f in model.fields:
        lines.extend(_render_property(f, context, 0))
    lines.append("}")
    return "\n".join(lines)


def render_enum(enum: EnumDefinition, options: Optional[RenderOptions] = None) -> str:
    """Render a declared enum as a string-valued TS enum."""
    options = options or RenderOptions()
    lines: List[str] = []
    if options.include_comments:
        lines.append("/** Auto-generated enum */")
    lines.append(f"export enum {enum.name} {{")
    for i, value in enumerate(enum.values):
        comma = "," if i < len(enum.values) - 1 else ""
        lines.append(f"{INDENT}{property_name(value)} = {quote_literal(value)}{comma}")
    lines.append("}")
    return "\n".join(lines)


def _collect_from_fields(
    fields: Sequence[NormalizedField],
    owner: str,
    context: RenderContext,
    imports: ModelImports,
) -> None:
    def add_enum(name: Optional[str]) -> None:
        if name is not None and name in context.enums and name not in imports.enums:
            imports.enums.append(name)

    def add_model(name: Optional[str]) -> None:
        if name is None or name == owner or name not in context.models:
            return
        if name not in imports.models:
            imports.models.append(name)

    for f in fields:
        if f.is_enum:
            add_enum(f.enum_name)
        elif f.is_array and f.element is not None:
            add_enum(f.element.enum_name)
            add_model(f.element.reference_target)
            if f.element.nested_fields:
                _collect_from_fields(f.element.nested_fields, owner, context, imports)
        elif f.is_reference:
            add_model(f.reference_target)
        elif f.nested_fields:
            _collect_from_fields(f.nested_fields, owner, context, imports)


def collect_imports(model: NormalizedModel, context: RenderContext) -> ModelImports:
    """Enums and models a standalone document for ``model`` depends on.

    Excludes the model's own name and reference targets outside the batch.
    """
    imports = ModelImports()
    _collect_from_fields(model.fields, model.name, context, imports)
    return imports


def render_import_lines(imports: ModelImports) -> List[str]:
    # Enums are runtime values; models are type-only
    lines = []
    if imports.enums:
        lines.append(f"import {{ {', '.join(imports.enums)} }} from './{ENUMS_MODULE}';")
    for name in imports.models:
        lines.append(f"import type {{ {name} }} from './{name}';")
    return lines


def render_header(options: RenderOptions, *subtitle: str) -> str:
    lines = ["/**", f" * AUTO-GENERATED by {GENERATOR_NAME}"]
    lines.extend(f" * {s}" for s in subtitle)
    lines.append(" */")
    header = "\n".join(lines)
    if options.banner:
        header += f"\n\n/* {options.banner} */"
    return header


def _ordered_enums(enums: Sequence[EnumDefinition], options: RenderOptions) -> List[EnumDefinition]:
    if options.enum_order == "sorted":
        return sorted(enums, key=lambda e: e.name)
    return list(enums)


def _document(blocks: Sequence[str]) -> str:
    return "\n\n".join(b for b in blocks if b) + "\n"


def render_combined(
    models: Sequence[NormalizedModel],
    enums: Sequence[EnumDefinition] = (),
    options: Optional[RenderOptions] = None,
) -> str:
    """One document: header, every enum once, then models in discovery order."""
    context = RenderContext.build(models, enums, options)
    blocks = [render_header(context.options, "Do not edit manually")]
    blocks.extend(render_enum(e, context.options) for e in _ordered_enums(enums, context.options))
    blocks.extend(render_model(m, context) for m in models)
    return _document(blocks)


def render_model_document(model: NormalizedModel, context: RenderContext) -> str:
    """Standalone document for one model, with its import list."""
    imports = render_import_lines(collect_imports(model, context))
    return _document(["\n".join(imports), render_model(model, context)])


def render_enums_document(enums: Sequence[EnumDefinition], options: RenderOptions) -> str:
    blocks = [render_header(options, "Enum definitions")]
    ordered = _ordered_enums(enums, options)
    if ordered:
        blocks.extend(render_enum(e, options) for e in ordered)
    else:
        blocks.append("export {};")
    return _document(blocks)


def render_index_document(
    models: Sequence[NormalizedModel],
    enums: Sequence[EnumDefinition],
    options: RenderOptions,
) -> str:
    blocks = [render_header(options, "Type exports")]
    ordered = _ordered_enums(enums, options)
    if ordered:
        names = ", ".join(e.name for e in ordered)
        blocks.append(f"export {{ {names} }} from './{ENUMS_MODULE}';")
    if models:
        blocks.append("\n".join(f"export type {{ {m.name} }} from './{m.name}';" for m in models))
    return _document(blocks)


def render_per_model(
    models: Sequence[NormalizedModel],
    enums: Sequence[EnumDefinition] = (),
    options: Optional[RenderOptions] = None,
) -> List[Tuple[str, str]]:
    """N+2 documents as ``(file name, content)``: one per model, enums, index.

    Raises:
        OutputNameConflictError: a model file would replace ``enums.ts`` or
            ``index.ts``. Compared case-insensitively, as file systems may.
    """
    reserved = {ENUMS_MODULE, INDEX_MODULE}
    for m in models:
        if m.name.lower() in reserved:
            raise OutputNameConflictError(m.name, f"{m.name.lower()}.ts", path=m.source_path)

    context = RenderContext.build(models, enums, options)
    documents = [(f"{m.name}.ts", render_model_document(m, context)) for m in models]
    documents.append((f"{ENUMS_MODULE}.ts", render_enums_document(enums, context.options)))
    documents.append((f"{INDEX_MODULE}.ts", render_index_document(models, enums, context.options)))
    return documents
