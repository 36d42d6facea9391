"""Pipeline orchestration: adapter -> normalizer -> analyzer -> generator.

``build_documents`` produces the complete set of rendered documents in
memory. Writing them is the caller's job (see ``typebridge.api``).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Protocol, Union

import structlog

from typebridge.adapters.mongoose import CONTRACT_INCLUDE, DEFAULT_EXCLUDE, MODULE_INCLUDE, MongooseAdapter
from typebridge.adapters.prisma import PrismaAdapter
from typebridge.errors import Issue, NoModelsFoundError
from typebridge.kernel.graph import analyze
from typebridge.kernel.ir import AdapterResult, EnumDefinition, NormalizedModel
from typebridge.kernel.normalizer import collect_enums, normalize_batch
from typebridge.kernel.render import INDEX_MODULE, render_combined, render_per_model
from typebridge.options import GenerationOptions
from typebridge._internal.bridge import ContractFileLoader, NodeSchemaBridge

log = structlog.get_logger(__name__)


class SourceAdapter(Protocol):
    source_kind: str

    def parse(self, location: Union[str, os.PathLike, Path]) -> AdapterResult:
        ...


@dataclass
class GeneratedDocument:
    path: Path
    content: str


@dataclass
class PipelineOutput:
    """Rendered documents plus the IR and warnings that produced them."""
    documents: List[GeneratedDocument]
    models: List[NormalizedModel]
    enums: List[EnumDefinition]
    cycles: List[List[str]] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)


def select_adapter(options: GenerationOptions) -> SourceAdapter:
    """Build the adapter for ``options.orm``."""
    if options.orm == "prisma":
        return PrismaAdapter()

    if options.mongoose_loader == "node":
        loader = NodeSchemaBridge(node_executable=options.node_executable)
        include = MODULE_INCLUDE
    else:
        loader = ContractFileLoader()
        include = CONTRACT_INCLUDE
    return MongooseAdapter(
        include=tuple(options.include) if options.include is not None else include,
        exclude=tuple(options.exclude) if options.exclude is not None else DEFAULT_EXCLUDE,
        loader=loader,
    )


def combined_output_path(output_path: Path) -> Path:
    """An explicit ``.ts`` path is the file itself; anything else is a directory."""
    if output_path.suffix == ".ts":
        return output_path
    return output_path / f"{INDEX_MODULE}.ts"


def build_documents(
    options: GenerationOptions,
    adapter: Optional[SourceAdapter] = None,
) -> PipelineOutput:
    """Run one full, independent generation pass in memory.

    Raises:
        SourceNotFoundError / SchemaReadError: the source cannot be read.
        DuplicateModelError: two models share a name.
        NoModelsFoundError: nothing survived parsing and normalization.
    """
    adapter = adapter or select_adapter(options)
    parsed = adapter.parse(options.schema_path)
    issues: List[Issue] = list(parsed.issues)

    models, model_issues = normalize_batch(parsed.models)
    issues.extend(model_issues)
    if not models:
        raise NoModelsFoundError(str(options.schema_path))

    enums, enum_issues = collect_enums(parsed.enums)
    issues.extend(enum_issues)

    analysis = analyze(models)
    issues.extend(analysis.issues)

    render_options = options.render_options()
    if options.output_mode == "per-model":
        rendered = render_per_model(analysis.models, enums, render_options)
        documents = [GeneratedDocument(options.output_path / name, text) for name, text in rendered]
    else:
        text = render_combined(analysis.models, enums, render_options)
        documents = [GeneratedDocument(combined_output_path(options.output_path), text)]

    log.info(
        "models_parsed",
        orm=options.orm,
        models=len(analysis.models),
        enums=len(enums),
        documents=len(documents),
        warnings=len(issues),
    )
    return PipelineOutput(
        documents=documents,
        models=analysis.models,
        enums=enums,
        cycles=analysis.cycles,
        issues=issues,
    )
