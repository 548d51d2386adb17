"""Command line entry point: ``dashgen [--module M] [--root DIR] [--model FILE] ...``"""
import argparse
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from dashgen import BUILD_TIME, GIT_COMMIT, __version__
from dashgen.core.config import load_settings
from dashgen.core.errors import DashgenError
from dashgen.core.logging import configure_logging
from dashgen.generators.crud_gen.generator import generate

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dashgen",
        description="Generate Go CRUD artifacts from @entity annotated definitions.",
    )
    parser.add_argument("--module", dest="module_path", help="Go module path (default: github.com/your-org/app)")
    parser.add_argument("--root", dest="project_root", help="Project root directory (default: .)")
    parser.add_argument("--model", dest="model_file", help="Generate from a single definition file instead of discovering model/**/data.go")
    # store_true with default None so unset flags leave DASHGEN_* values alone
    parser.add_argument("--force", action="store_true", default=None, help="Overwrite existing per-entity files")
    parser.add_argument("--dry", dest="dry_run", action="store_true", default=None, help="Report what would change without writing")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging with timestamps and context")
    parser.add_argument("--version", action="store_true", help="Print version information and exit")
    return parser


def version_text() -> str:
    return f"dashgen {__version__}\nGit commit: {GIT_COMMIT}\nBuild time: {BUILD_TIME}"


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.version:
        print(version_text())
        return 0

    try:
        settings = load_settings(
            module_path=args.module_path,
            project_root=args.project_root,
            model_file=args.model_file,
            force=args.force,
            dry_run=args.dry_run,
        )
    except ValidationError as e:
        print(f"error: invalid configuration: {e}", file=sys.stderr)
        return 1

    configure_logging(settings.log_level, verbose=args.verbose)

    try:
        generate(settings)
    except DashgenError as e:
        log.debug("Generation aborted", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1

    print("✅ Generation finished.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
