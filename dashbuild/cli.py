"""dashbuild command line.

Examples:
    dashbuild build dashboard.yaml
    dashbuild build dashboard.yaml --render --open browser
    dashbuild build dashboard.yaml --preview Overview --incremental
    dashbuild batch sales.yaml ops.yaml --continue-on-error
    dashbuild blocks
"""

import argparse
import json
import logging
import sys

from .blocks.registry import get_block_registry
from .config import STRICT_DEFAULT, configure_logging, log_level
from .errors import DashbuildError
from .project.batch import generate_many
from .project.writer import OpenMode, generate_project
from .specs.loader import load_project

logger = logging.getLogger(__name__)


def _add_build_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--render", action="store_true", help="Run quarto render after writing")
    parser.add_argument(
        "--open",
        choices=[m.value for m in OpenMode],
        default=OpenMode.NONE.value,
        help="Open the rendered site",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        default=STRICT_DEFAULT,
        help="Fail on unsupported block types instead of skipping them",
    )
    parser.add_argument("--incremental", action="store_true", help="Skip unchanged files")
    parser.add_argument("--quiet", action="store_true", help="Only log warnings and errors")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dashbuild",
        description="Compile dashboard project files into Quarto websites",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    build = sub.add_parser("build", help="Build one project")
    build.add_argument("project", help="Project YAML file")
    build.add_argument(
        "--preview",
        nargs="+",
        metavar="PAGE",
        help="Only build these pages",
    )
    _add_build_options(build)

    batch = sub.add_parser("batch", help="Build several projects")
    batch.add_argument("projects", nargs="+", help="Project YAML files")
    batch.add_argument(
        "--continue-on-error",
        action="store_true",
        help="Keep building remaining projects after a failure",
    )
    _add_build_options(batch)

    sub.add_parser("blocks", help="List registered block types")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging("WARNING" if getattr(args, "quiet", False) else log_level())

    if args.command == "blocks":
        for definition in get_block_registry().list_all():
            print(f"{definition.type_key:12} {definition.category:8} {definition.description}")
        return 0

    options = {
        "render": args.render,
        "open": args.open,
        "strict": args.strict,
        "incremental": args.incremental,
        "show_progress": not args.quiet,
    }
    try:
        if args.command == "build":
            result = generate_project(
                load_project(args.project), preview=args.preview, **options
            )
            print(f"Built {len(result.pages)} pages in {result.output_dir}")
            return 0

        batch = generate_many(
            args.projects, continue_on_error=args.continue_on_error, **options
        )
    except DashbuildError as e:
        logger.error(str(e))
        stderr = getattr(e, "stderr", "")
        if stderr:
            print(stderr, file=sys.stderr)
        return 1

    for key, failure in batch.failures.items():
        print(f"FAILED {key}: {json.dumps(failure)}", file=sys.stderr)
    print(f"Built {len(batch.results)} of {len(args.projects)} projects")
    return 0 if batch.ok else 1


if __name__ == "__main__":
    sys.exit(main())
