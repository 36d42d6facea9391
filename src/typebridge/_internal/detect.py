"""ORM detection for a project root.

Used by the CLI to resolve ``--orm auto`` before the pipeline runs; the
pipeline itself always receives an explicit ORM choice.
"""

import json
from pathlib import Path
from typing import Dict, Optional

PRISMA_SCHEMA_CANDIDATES = (
    Path("schema.prisma"),
    Path("prisma") / "schema.prisma",
    Path("prisma") / "schema" / "schema.prisma",
)

PRISMA_PACKAGES = ("prisma", "@prisma/client")
MONGOOSE_PACKAGES = ("mongoose",)


def find_prisma_schema(root: Path) -> Optional[Path]:
    """First conventional Prisma schema location that exists under ``root``."""
    for candidate in PRISMA_SCHEMA_CANDIDATES:
        path = root / candidate
        if path.is_file():
            return path
    return None


def _package_dependencies(root: Path) -> Dict[str, str]:
    package_json = root / "package.json"
    if not package_json.is_file():
        return {}
    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    deps: Dict[str, str] = {}
    for key in ("dependencies", "devDependencies"):
        section = data.get(key) if isinstance(data, dict) else None
        if isinstance(section, dict):
            deps.update(section)
    return deps


def detect_prisma(root: Path) -> bool:
    if find_prisma_schema(root) is not None:
        return True
    deps = _package_dependencies(root)
    return any(name in deps for name in PRISMA_PACKAGES)


def detect_mongoose(root: Path) -> bool:
    deps = _package_dependencies(root)
    return any(name in deps for name in MONGOOSE_PACKAGES)


def detect_orm(root: Path) -> Optional[str]:
    """``"prisma"``, ``"mongoose"`` or None. Prisma wins when both are present."""
    if detect_prisma(root):
        return "prisma"
    if detect_mongoose(root):
        return "mongoose"
    return None
