"""Prisma schema adapter.

Reads ``.prisma`` files and produces raw models/enums. This is a best-effort
block scanner, not a full grammar: blocks that cannot be parsed are skipped
with a warning and the rest of the file is still used.

Example input::

    model User {
      id        String   @id @default(cuid())
      email     String   @unique
      name      String?
      posts     Post[]
      role      Role     @default(USER)
      createdAt DateTime @default(now())
    }
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import structlog

from typebridge.errors import Issue, SchemaParseError, SchemaReadError, SourceNotFoundError
from typebridge.kernel.atlas import ScalarKind, lookup_prisma
from typebridge.kernel.ir import AdapterResult, RawEnum, RawField, RawModel
from typebridge._internal.detect import find_prisma_schema

log = structlog.get_logger(__name__)

MODEL_KEYWORDS = ("model", "type", "view")

_BLOCK_HEADER = re.compile(
    r"^[ \t]*(model|enum|type|view|datasource|generator)[ \t]+(\w+)[ \t]*\{",
    re.MULTILINE,
)
_FIELD_HEAD = re.compile(r"^(\w+)\s+(\w+)")
_FIELD_TAIL = re.compile(r"^(\[\])?(\?)?(?:\s+(.*))?$")
_ENUM_VALUE = re.compile(r"^(\w+)\b")
_ID_ATTR = re.compile(r"(?<!@)@id\b")
_UNIQUE_ATTR = re.compile(r"(?<!@)@unique\b")


@dataclass
class PrismaBlock:
    """One top-level ``keyword Name { ... }`` block."""
    keyword: str
    name: str
    body: str
    source_path: Optional[str] = None
    description: Optional[str] = None
    line: int = 0


@dataclass
class ParsedField:
    """A field line after tokenizing, before type resolution."""
    name: str
    base_type: str
    is_array: bool
    optional: bool
    attributes: str = ""
    is_primary: bool = False
    is_unique: bool = False
    default_value: Optional[str] = None
    description: Optional[str] = None


def _skip_string(text: str, i: int) -> int:
    """Index just past the string literal opening at ``text[i]``."""
    i += 1
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == '"':
            return i + 1
        i += 1
    return i


def find_block_end(text: str, open_brace: int) -> int:
    """Index of the brace closing the one at ``open_brace``, or -1.

    Braces inside string literals and ``//`` comments do not count.
    """
    depth = 0
    i = open_brace
    while i < len(text):
        c = text[i]
        if c == '"':
            i = _skip_string(text, i)
            continue
        if c == "/" and text.startswith("//", i):
            newline = text.find("\n", i)
            if newline == -1:
                return -1
            i = newline
            continue
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def strip_comment(line: str) -> str:
    """Drop a trailing ``//`` comment, leaving ``//`` inside strings alone."""
    i = 0
    while i < len(line):
        if line[i] == '"':
            i = _skip_string(line, i)
            continue
        if line.startswith("//", i):
            return line[:i]
        i += 1
    return line


def _doc_lines_before(text: str, pos: int) -> Optional[str]:
    """Collect the ``///`` doc comment lines directly above ``pos``."""
    preceding = text[:pos].splitlines()
    docs: List[str] = []
    for line in reversed(preceding):
        stripped = line.strip()
        if stripped.startswith("///"):
            docs.append(stripped[3:].strip())
        else:
            break
    if not docs:
        return None
    return "\n".join(reversed(docs))


def scan_blocks(
    text: str,
    source_path: Optional[str] = None,
) -> Tuple[List[PrismaBlock], List[Issue]]:
    """Locate every top-level block using balanced-brace matching."""
    blocks: List[PrismaBlock] = []
    issues: List[Issue] = []
    pos = 0

    while True:
        match = _BLOCK_HEADER.search(text, pos)
        if match is None:
            break
        keyword, name = match.group(1), match.group(2)
        open_brace = match.end() - 1
        line = text.count("\n", 0, match.start()) + 1
        close_brace = find_block_end(text, open_brace)

        if close_brace == -1:
            issues.append(SchemaParseError(
                f"{keyword} '{name}' (line {line}) has no matching closing brace",
                path=source_path,
                element_id=name,
            ).to_issue())
            log.warning("block_skipped", keyword=keyword, name=name, line=line, reason="unbalanced")
            pos = match.end()
            continue

        blocks.append(PrismaBlock(
            keyword=keyword,
            name=name,
            body=text[open_brace + 1:close_brace],
            source_path=source_path,
            description=_doc_lines_before(text, match.start()),
            line=line,
        ))
        pos = close_brace + 1

    return blocks, issues


def find_paren_end(text: str, open_paren: int) -> int:
    """Index of the parenthesis closing the one at ``open_paren``, or -1.

    Parentheses inside string literals do not count.
    """
    depth = 0
    i = open_paren
    while i < len(text):
        c = text[i]
        if c == '"':
            i = _skip_string(text, i)
            continue
        if c == "(":
            depth += 1
        elif c == ")":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def extract_attribute_args(attributes: str, attribute: str) -> Optional[str]:
    """Argument text of ``@attribute(...)``, with nested parentheses kept.

    ``@default(cuid())`` -> ``cuid()``; ``@default(dbgenerated("gen()"))`` ->
    ``dbgenerated("gen()")``. Returns None if the attribute is absent.
    """
    match = re.search(rf"(?<!@)@{re.escape(attribute)}\s*\(", attributes)
    if match is None:
        return None
    start = match.end()
    end = find_paren_end(attributes, start - 1)
    if end == -1:
        return attributes[start:].strip()
    return attributes[start:end].strip()


def parse_field_line(line: str, description: Optional[str] = None) -> Optional[ParsedField]:
    """Tokenize one model body line. Returns None for blank/comment/``@@`` lines.

    Raises:
        SchemaParseError: the line is not a recognizable field declaration.
    """
    line = strip_comment(line).strip()
    if not line or line.startswith("@@"):
        return None

    head = _FIELD_HEAD.match(line)
    if head is None:
        raise SchemaParseError(f"Unrecognized field declaration: {line!r}")
    name, base_type = head.groups()
    rest = line[head.end():]

    # Type arguments may nest: Unsupported("polygon(4326)")
    if rest.startswith("("):
        end = find_paren_end(rest, 0)
        if end == -1:
            raise SchemaParseError(f"Unbalanced type arguments: {line!r}")
        base_type += rest[:end + 1]
        rest = rest[end + 1:]

    tail = _FIELD_TAIL.match(rest)
    if tail is None:
        raise SchemaParseError(f"Unrecognized field declaration: {line!r}")
    array_suffix, optional, attributes = tail.groups()
    attributes = attributes or ""
    return ParsedField(
        name=name,
        base_type=base_type,
        is_array=bool(array_suffix),
        optional=bool(optional),
        attributes=attributes,
        is_primary=bool(_ID_ATTR.search(attributes)),
        is_unique=bool(_UNIQUE_ATTR.search(attributes)),
        default_value=extract_attribute_args(attributes, "default"),
        description=description,
    )


def resolve_field(parsed: ParsedField, enums: Dict[str, RawEnum]) -> RawField:
    """Resolve a tokenized field against the atlas and the declared enums.

    Order: atlas scalar, declared enum, capitalized name (model reference),
    otherwise unknown. A primary key is always required.
    """
    raw = RawField(
        name=parsed.name,
        required=(not parsed.optional) or parsed.is_primary,
        is_array=parsed.is_array,
        default_value=parsed.default_value,
        is_primary=parsed.is_primary,
        is_unique=parsed.is_unique,
        description=parsed.description,
        type_token=parsed.base_type,
    )

    scalar = lookup_prisma(parsed.base_type)
    if scalar is not None:
        raw.scalar = scalar
    elif parsed.base_type in enums:
        raw.enum_name = parsed.base_type
        raw.enum_values = list(enums[parsed.base_type].values)
    elif parsed.base_type[0].isupper():
        raw.reference_target = parsed.base_type
    else:
        raw.scalar = ScalarKind.UNKNOWN
    return raw


def parse_enum_block(block: PrismaBlock) -> RawEnum:
    """Parse an ``enum`` block.

    Raises:
        SchemaParseError: the enum declares no values.
    """
    values: List[str] = []
    for line in block.body.splitlines():
        line = strip_comment(line).strip()
        if not line or line.startswith("@@"):
            continue
        match = _ENUM_VALUE.match(line)
        if match is None:
            raise SchemaParseError(
                f"Unrecognized value in enum '{block.name}': {line!r}",
                path=block.source_path,
                element_id=block.name,
            )
        values.append(match.group(1))

    if not values:
        raise SchemaParseError(
            f"Enum '{block.name}' declares no values",
            path=block.source_path,
            element_id=block.name,
        )
    return RawEnum(name=block.name, values=values, source_path=block.source_path)


def parse_model_block(block: PrismaBlock, enums: Dict[str, RawEnum]) -> RawModel:
    """Parse a ``model``/``type``/``view`` block.

    Raises:
        SchemaParseError: a body line is not a field declaration. The whole
            block is unusable; a model missing a field would emit a wrong type.
    """
    fields: List[RawField] = []
    pending_doc: List[str] = []

    for offset, line in enumerate(block.body.splitlines()):
        stripped = line.strip()
        if stripped.startswith("///"):
            pending_doc.append(stripped[3:].strip())
            continue
        try:
            parsed = parse_field_line(line, "\n".join(pending_doc) or None)
        except SchemaParseError as e:
            raise SchemaParseError(
                f"{block.keyword} '{block.name}' line {block.line + offset}: {e.message}",
                path=block.source_path,
                element_id=block.name,
            ) from e
        if parsed is None:
            if stripped:
                pending_doc = []
            continue
        fields.append(resolve_field(parsed, enums))
        pending_doc = []

    return RawModel(
        name=block.name,
        fields=fields,
        source_kind="prisma",
        source_path=block.source_path,
        description=block.description,
    )


@dataclass
class PrismaAdapter:
    """Adapter for a Prisma schema file, or a directory of ``.prisma`` files."""
    encoding: str = "utf-8"
    source_kind = "prisma"

    def _schema_files(self, location: Path) -> List[Path]:
        if not location.exists():
            raise SourceNotFoundError(str(location))
        if location.is_file():
            return [location]
        files = sorted(p for p in location.glob("*.prisma") if p.is_file())
        if files:
            return files
        found = find_prisma_schema(location)
        if found is None:
            raise SourceNotFoundError(str(location))
        return [found]

    def _read(self, path: Path) -> str:
        try:
            return path.read_text(encoding=self.encoding)
        except FileNotFoundError:
            raise SourceNotFoundError(str(path))
        except (OSError, UnicodeDecodeError) as e:
            raise SchemaReadError(f"Cannot read Prisma schema {path}: {e}", path=str(path))

    def parse(self, location: Union[str, os.PathLike, Path]) -> AdapterResult:
        """Parse every block of the schema at ``location``.

        Raises:
            SourceNotFoundError: the file (or a schema in the directory) is missing.
            SchemaReadError: the file cannot be read.
        """
        sources = [(str(p), self._read(p)) for p in self._schema_files(Path(location))]
        return self.parse_sources(sources)

    def parse_text(self, text: str, source_path: Optional[str] = None) -> AdapterResult:
        return self.parse_sources([(source_path, text)])

    def parse_sources(self, sources: Sequence[Tuple[Optional[str], str]]) -> AdapterResult:
        result = AdapterResult()
        blocks: List[PrismaBlock] = []
        for source_path, text in sources:
            found, issues = scan_blocks(text, source_path)
            blocks.extend(found)
            result.issues.extend(issues)

        # Enums first: model fields resolve enum names regardless of block order
        enums: Dict[str, RawEnum] = {}
        for block in blocks:
            if block.keyword != "enum":
                continue
            try:
                raw_enum = parse_enum_block(block)
            except SchemaParseError as e:
                result.issues.append(e.to_issue())
                log.warning("block_skipped", keyword="enum", name=block.name, reason=e.message)
                continue
            enums.setdefault(raw_enum.name, raw_enum)
            result.enums.append(raw_enum)

        for block in blocks:
            if block.keyword not in MODEL_KEYWORDS:
                continue
            try:
                result.models.append(parse_model_block(block, enums))
            except SchemaParseError as e:
                result.issues.append(e.to_issue())
                log.warning("block_skipped", keyword=block.keyword, name=block.name, reason=e.message)

        log.info(
            "prisma_schema_parsed",
            models=len(result.models),
            enums=len(result.enums),
            skipped=len(result.issues),
        )
        return result
