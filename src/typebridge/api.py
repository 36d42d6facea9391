"""Public API for typebridge.

High-level functions that run the whole pipeline and return structured
results. They never raise for pipeline failures: a fatal condition is
reported in ``error`` with a machine-readable ``ErrorCode``; block-scoped and
advisory conditions are collected in ``warnings``.
"""

from pathlib import Path
from typing import Dict, List, Optional

import structlog
from pydantic import BaseModel, Field

from typebridge.errors import Issue, OutputWriteError, TypeBridgeError
from typebridge.kernel.ir import EnumDefinition, NormalizedModel
from typebridge.options import GenerationOptions
from typebridge.pipeline import SourceAdapter, build_documents
from typebridge.writer import FileWriter, Writer

log = structlog.get_logger(__name__)


class GenerationResult(BaseModel):
    """Result of one generation run."""
    ok: bool
    error: Optional[Issue] = None  # Fatal condition that aborted the run
    warnings: List[Issue] = Field(default_factory=list)
    written: List[str] = Field(default_factory=list)  # Paths written, in order
    documents: Dict[str, str] = Field(default_factory=dict)  # path -> text, dry runs only
    model_count: int = 0
    enum_count: int = 0
    cycles: List[List[str]] = Field(default_factory=list)


class VerificationResult(BaseModel):
    """Whether generated files on disk match a fresh in-memory run."""
    ok: bool
    in_sync: bool = False
    stale: List[str] = Field(default_factory=list)  # Present but different
    missing: List[str] = Field(default_factory=list)
    error: Optional[Issue] = None
    warnings: List[Issue] = Field(default_factory=list)


class InspectionResult(BaseModel):
    """Normalized IR for one run, for debugging schemas."""
    ok: bool
    models: List[NormalizedModel] = Field(default_factory=list)
    enums: List[EnumDefinition] = Field(default_factory=list)
    cycles: List[List[str]] = Field(default_factory=list)
    error: Optional[Issue] = None
    warnings: List[Issue] = Field(default_factory=list)


def generate(
    options: GenerationOptions,
    writer: Optional[Writer] = None,
    dry_run: bool = False,
    adapter: Optional[SourceAdapter] = None,
) -> GenerationResult:
    """Run the pipeline and hand every document to ``writer``.

    This is the single entry point for the CLI and for file watchers: each
    call is an independent full run. With ``dry_run`` nothing is written and
    the rendered text is returned in ``documents``.

    The run stops at the first document the writer fails to persist.
    """
    try:
        output = build_documents(options, adapter=adapter)
    except TypeBridgeError as e:
        log.error("generation_failed", code=e.code.value, message=e.message)
        return GenerationResult(ok=False, error=e.to_issue())

    result = GenerationResult(
        ok=True,
        warnings=output.issues,
        model_count=len(output.models),
        enum_count=len(output.enums),
        cycles=output.cycles,
    )

    if dry_run:
        result.documents = {str(doc.path): doc.content for doc in output.documents}
        return result

    writer = writer or FileWriter()
    for doc in output.documents:
        outcome = writer.write(doc.path, doc.content)
        if not outcome.ok:
            error = OutputWriteError(str(doc.path), outcome.error or "write failed")
            result.ok = False
            result.error = error.to_issue()
            return result
        result.written.append(str(doc.path))

    log.info("generation_complete", written=len(result.written), warnings=len(result.warnings))
    return result


def verify(options: GenerationOptions, adapter: Optional[SourceAdapter] = None) -> VerificationResult:
    """Re-render in memory and compare with the files on disk.

    Rendering is deterministic, so any difference means the files are stale.
    """
    try:
        output = build_documents(options, adapter=adapter)
    except TypeBridgeError as e:
        return VerificationResult(ok=False, error=e.to_issue())

    stale: List[str] = []
    missing: List[str] = []
    for doc in output.documents:
        path = Path(doc.path)
        if not path.is_file():
            missing.append(str(path))
            continue
        try:
            current = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            stale.append(str(path))
            continue
        if current != doc.content:
            stale.append(str(path))

    return VerificationResult(
        ok=True,
        in_sync=not stale and not missing,
        stale=stale,
        missing=missing,
        warnings=output.issues,
    )


def inspect(options: GenerationOptions, adapter: Optional[SourceAdapter] = None) -> InspectionResult:
    """Parse, normalize and analyze without rendering to disk."""
    try:
        output = build_documents(options, adapter=adapter)
    except TypeBridgeError as e:
        return InspectionResult(ok=False, error=e.to_issue())
    return InspectionResult(
        ok=True,
        models=output.models,
        enums=output.enums,
        cycles=output.cycles,
        warnings=output.issues,
    )
