"""typebridge CLI: generate, verify and inspect TypeScript declarations."""

import argparse
import json
import sys
from importlib.metadata import version as get_version, PackageNotFoundError
from pathlib import Path
from typing import Any, Dict, List, Optional

from typebridge.codes import EXIT_CODES
from typebridge.errors import Issue

DEFAULT_PRISMA_SCHEMA = Path("prisma") / "schema.prisma"
DEFAULT_MONGOOSE_DIR = Path("models")
DEFAULT_OUTPUT = Path("types")


def _exit_code(issue: Optional[Issue]) -> int:
    if issue is None:
        return 1
    return EXIT_CODES.get(issue.code, 1)


def _print_warnings(warnings: List[Issue], quiet: bool) -> None:
    if quiet:
        return
    for warning in warnings:
        where = f" ({warning.element_id})" if warning.element_id else ""
        print(f"Warning [{warning.code.value}]{where}: {warning.message}", file=sys.stderr)


def _fail(issue: Issue) -> None:
    location = f" [{issue.path}]" if issue.path else ""
    print(f"Error [{issue.code.value}]{location}: {issue.message}", file=sys.stderr)
    sys.exit(_exit_code(issue))


def _flag_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Option values given explicitly on the command line (None when absent)."""
    return {
        "schema_path": args.schema,
        "output_path": args.out,
        "output_mode": args.mode,
        "include_comments": False if args.no_comments else None,
        "readonly": True if args.readonly else None,
        "enum_order": "sorted" if args.sorted_enums else None,
        "date_type": args.date_type,
        "banner": args.banner,
        "mongoose_loader": args.loader,
        "node_executable": args.node,
    }


def _resolve_orm(requested: Optional[str]) -> str:
    """Turn ``auto`` (or nothing) into a concrete ORM by looking at the cwd."""
    from typebridge._internal.detect import detect_orm
    from typebridge.options import InvalidOptionsError

    if requested in ("prisma", "mongoose"):
        return requested
    detected = detect_orm(Path.cwd())
    if detected is None:
        raise InvalidOptionsError(
            "Could not detect Prisma or Mongoose in the current directory; pass --orm"
        )
    return detected


def _build_options(args: argparse.Namespace):
    from typebridge.options import build_options, load_options
    from typebridge._internal.detect import find_prisma_schema

    overrides = _flag_overrides(args)

    if args.config is not None:
        if args.orm not in (None, "auto"):
            overrides["orm"] = args.orm
        return load_options(args.config, **overrides)

    orm = _resolve_orm(args.orm)
    if overrides["schema_path"] is None:
        if orm == "prisma":
            overrides["schema_path"] = find_prisma_schema(Path.cwd()) or DEFAULT_PRISMA_SCHEMA
        else:
            overrides["schema_path"] = DEFAULT_MONGOOSE_DIR
    if overrides["output_path"] is None:
        overrides["output_path"] = DEFAULT_OUTPUT

    values = {k: v for k, v in overrides.items() if v is not None}
    return build_options(orm=orm, **values)


def main():
    """Main CLI entry point for typebridge commands."""
    try:
        typebridge_version = get_version("typebridge")
    except PackageNotFoundError:
        typebridge_version = "dev"

    parser = argparse.ArgumentParser(
        prog="typebridge",
        description="typebridge: TypeScript declarations from Prisma and Mongoose schemas"
    )
    parser.add_argument("--version", action="version", version=f"typebridge {typebridge_version}")
    # Common arguments
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument(
        "--orm",
        choices=["prisma", "mongoose", "auto"],
        default=None,
        help="Schema source (default: auto-detect from the current directory)"
    )
    parent_parser.add_argument(
        "--schema",
        type=Path,
        default=None,
        help="Prisma schema file, or directory of Mongoose models"
    )
    parent_parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Output directory, or a .ts file in combined mode (default: types/)"
    )
    parent_parser.add_argument(
        "--mode",
        choices=["combined", "per-model"],
        default=None,
        help="One combined document, or one document per model plus enums and index"
    )
    parent_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON options file; command-line flags override its values"
    )
    parent_parser.add_argument(
        "--no-comments",
        action="store_true",
        help="Omit doc and provenance comments"
    )
    parent_parser.add_argument(
        "--readonly",
        action="store_true",
        help="Emit readonly properties"
    )
    parent_parser.add_argument(
        "--sorted-enums",
        action="store_true",
        help="Emit enums sorted by name instead of declaration order"
    )
    parent_parser.add_argument(
        "--date-type",
        default=None,
        help="TypeScript type for date fields (default: string)"
    )
    parent_parser.add_argument(
        "--banner",
        default=None,
        help="Extra comment placed under the generated header"
    )
    parent_parser.add_argument(
        "--loader",
        choices=["contract", "node"],
        default=None,
        help="Mongoose loader: exported contract JSON files, or run modules under node"
    )
    parent_parser.add_argument(
        "--node",
        default=None,
        help="Node.js executable for --loader node"
    )
    parent_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress all non-error output."
    )
    parent_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log pipeline progress to stderr."
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate TypeScript declarations",
        parents=[parent_parser]
    )
    generate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the generated documents instead of writing them"
    )

    subparsers.add_parser(
        "verify",
        help="Check that generated files are up to date",
        parents=[parent_parser]
    )

    subparsers.add_parser(
        "inspect",
        help="Print the normalized models, enums and cycles as JSON",
        parents=[parent_parser]
    )

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    from typebridge.logging import configure_logging
    from typebridge.errors import TypeBridgeError

    if args.verbose:
        configure_logging(level="DEBUG")
    elif args.quiet:
        configure_logging(level="ERROR")
    else:
        configure_logging(level="WARNING")

    try:
        options = _build_options(args)
    except TypeBridgeError as e:
        _fail(e.to_issue())

    if args.command == "generate":
        from typebridge.api import generate

        result = generate(options, dry_run=args.dry_run)
        if result.error is not None:
            _print_warnings(result.warnings, args.quiet)
            _fail(result.error)
        _print_warnings(result.warnings, args.quiet)

        if args.dry_run:
            for path, content in result.documents.items():
                print(f"// {path}")
                print(content)
            sys.exit(0)

        if not args.quiet:
            print("[OK] Generation complete")
            print(f"  Models: {result.model_count}")
            print(f"  Enums: {result.enum_count}")
            for path in result.written:
                print(f"  Wrote: {path}")
            for cycle in result.cycles:
                print(f"  Cycle: {' -> '.join(cycle)}")
        sys.exit(0)

    elif args.command == "verify":
        from typebridge.api import verify

        result = verify(options)
        if result.error is not None:
            _fail(result.error)
        _print_warnings(result.warnings, args.quiet)

        if result.in_sync:
            if not args.quiet:
                print("[OK] Generated files are up to date")
            sys.exit(0)

        if not args.quiet:
            print("[STALE] Generated files are out of date")
            for path in result.missing:
                print(f"  Missing: {path}")
            for path in result.stale:
                print(f"  Stale: {path}")
        sys.exit(1)

    elif args.command == "inspect":
        from typebridge.api import inspect

        result = inspect(options)
        if result.error is not None:
            _fail(result.error)
        _print_warnings(result.warnings, args.quiet)
        print(json.dumps(result.model_dump(mode="json"), indent=2))
        sys.exit(0)


if __name__ == "__main__":
    main()
