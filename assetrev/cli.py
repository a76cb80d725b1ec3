"""CLI entrypoints for assetrev commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .blocks import parse_blocks
from .config import CONFIG_FILENAME, FILES_TARGET, ConfigError, load_config
from .graph import DependencyCycleError
from .logging import configure_logging
from .orchestrator import Orchestrator


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="assetrev",
        description="Point asset references at revisioned build outputs.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write log output to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser(
        "run",
        help="Rewrite a target's files, or revision everything with the 'files' target.",
    )
    _add_verbose_option(run_parser, suppress_default=True)
    run_parser.add_argument(
        "target",
        help=f"Target name from {CONFIG_FILENAME}; '{FILES_TARGET}' runs the aggregate pass.",
    )
    run_parser.add_argument(
        "--config",
        type=Path,
        default=Path("."),
        help=f"Path to {CONFIG_FILENAME} or the directory holding it (defaults to current directory).",
    )

    blocks_parser = subparsers.add_parser(
        "blocks",
        help="List the build blocks declared in a markup file.",
    )
    _add_verbose_option(blocks_parser, suppress_default=True)
    blocks_parser.add_argument("path", type=Path, help="Markup file to inspect.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for assetrev commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "run":
        try:
            config = load_config(args.config)
            result = Orchestrator(config).run(args.target)
        except (ConfigError, DependencyCycleError) as exc:
            parser.exit(1, f"assetrev: {exc}\n")
        except OSError as exc:
            parser.exit(1, f"assetrev run failed: {exc}\nRun with --verbose for more details.\n")
        print(
            f"Rewrote {len(result.rewritten)} file(s), revisioned {len(result.revisioned)} file(s)"
        )
    elif args.command == "blocks":
        try:
            content = args.path.read_text(encoding="utf-8")
        except OSError as exc:
            parser.exit(1, f"assetrev: {exc}\n")
        for block in parse_blocks(content):
            inputs = ", ".join(block.input_paths) or "-"
            print(f"{block.asset_type}\t{block.output_path or '-'}\t{inputs}")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


if __name__ == "__main__":
    main(sys.argv[1:])
