"""Writer collaborator: the only component that touches output files."""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Protocol

import structlog

log = structlog.get_logger(__name__)


@dataclass
class WriteOutcome:
    path: Path
    ok: bool
    error: Optional[str] = None


class Writer(Protocol):
    def write(self, path: Path, content: str) -> WriteOutcome:
        """Persist one document. Failures are reported, not raised."""
        ...


@dataclass
class FileWriter:
    """Writes UTF-8 text, creating parent directories as needed."""
    encoding: str = "utf-8"

    def write(self, path: Path, content: str) -> WriteOutcome:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding=self.encoding)
        except OSError as e:
            log.error("document_write_failed", path=str(path), error=str(e))
            return WriteOutcome(path=path, ok=False, error=str(e))
        log.debug("document_written", path=str(path), bytes=len(content))
        return WriteOutcome(path=path, ok=True)


class MemoryWriter:
    """Keeps documents in a dict; used for dry runs and tests."""

    def __init__(self):
        self.files: Dict[Path, str] = {}

    def write(self, path: Path, content: str) -> WriteOutcome:
        self.files[path] = content
        return WriteOutcome(path=path, ok=True)
