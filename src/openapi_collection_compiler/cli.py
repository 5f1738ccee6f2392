"""Command line interface for OpenAPI to collection compilation."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import NoReturn

from .compiler import run_compile
from .dependencies import DependencyConfigError
from .loader import SpecLoadError
from .verify import format_report
from .workflow import WorkflowConfigError
from .writer import WriteError

PROG = "openapi-collection-compiler"


class CompilerArgumentParser(argparse.ArgumentParser):
    """Argument parser whose usage errors exit with status 1."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser."""
    parser = CompilerArgumentParser(
        prog=PROG,
        description="Compile an OpenAPI/Swagger document into a Postman collection",
    )
    parser.add_argument("input", help="Path to an OpenAPI/Swagger JSON or YAML file")
    parser.add_argument("output", help="Path of the collection file to write")
    parser.add_argument("--env", help="Also write an environment template to this path")
    parser.add_argument(
        "--dependencies",
        help="JSON or YAML file replacing the built-in endpoint dependency table",
    )
    parser.add_argument(
        "--workflow",
        help="JSON or YAML file replacing the built-in end-to-end workflow steps",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="FRAGMENT",
        help="Skip operations whose path contains FRAGMENT (repeatable)",
    )
    parser.add_argument(
        "--no-workflow",
        action="store_true",
        help="Do not append the end-to-end workflow folder",
    )
    parser.add_argument("--env-name", help="Override the environment name")
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Validate synthesized request bodies against their schemas",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging")
    return parser


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")


def main(argv: list[str] | None = None) -> int:
    """Run CLI and return process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        run = run_compile(
            input_path=Path(args.input),
            output_path=Path(args.output),
            env_path=Path(args.env) if args.env else None,
            dependencies_path=Path(args.dependencies) if args.dependencies else None,
            workflow_path=Path(args.workflow) if args.workflow else None,
            exclude=tuple(args.exclude),
            workflow=not args.no_workflow,
            environment_name=args.env_name,
            verify=bool(args.verify),
        )
    except (SpecLoadError, DependencyConfigError, WorkflowConfigError, WriteError) as exc:
        print(f"{parser.prog}: error: {exc}", file=sys.stderr)
        return 1

    for warning in run.result.warnings:
        print(f"Warning: {warning}")

    print(f"Collection written to {run.result.output_path} ({run.result.item_count} requests)")
    if run.result.workflow_step_count:
        print(f"Workflow steps: {run.result.workflow_step_count}")
    if run.result.environment_path is not None:
        print(f"Environment written to {run.result.environment_path}")

    if run.verification_report is not None:
        print(format_report(run.verification_report))

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
