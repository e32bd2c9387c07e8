#!/usr/bin/env python3
"""
shrup: A shell script preprocessor that expands #include directives

Common usage:
  shrup main.sh build/main.sh
  shrup --debug main.sh build/main.sh
  shrup --max-depth 20 --base-dir lib/ main.sh -

Directive forms (one per line):
  #include <path>  #include "path"  #include 'path'  #include path

Relative paths resolve against the including file's directory. Absolute paths
resolve under the base directory (default: the input file's directory).
Settings can also come from .shrup.toml, shrup.toml or [tool.shrup] in
pyproject.toml.
"""

from __future__ import annotations

import argparse
import importlib.metadata
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from shrup.config import (
    DEFAULT_MAX_INCLUDE_DEPTH,
    ProcessingConfig,
    find_config_file,
    load_config,
    merge_cli_with_config,
)
from shrup.errors import ShrupError, error_chain
from shrup.preprocessor import ShellPreprocessor


@dataclass
class Options:
    """Command-line options for the shrup tool."""

    input: str | None
    output: str | None
    debug: bool
    max_depth: int
    base_directory: Path | None
    verbose: bool
    version: bool


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be a non-negative integer: {value}")
    return number


def _parse_args(args: list[str] | None = None) -> tuple[Options, set[str]]:
    """
    Parse command-line arguments.

    Returns a tuple of (options, explicit_flags) where `explicit_flags` tracks
    which flags the user explicitly passed (for config merge precedence).
    """
    module_doc = __doc__ or ""
    doc_parts = module_doc.split("\n\n")
    description = doc_parts[0]
    epilog = "\n\n".join(doc_parts[1:])

    parser = argparse.ArgumentParser(
        prog="shrup",
        description=description,
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("input", nargs="?", metavar="INPUT", help="Input file to process")
    parser.add_argument(
        "output", nargs="?", metavar="OUTPUT", help="Output file path (use '-' for stdout)"
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Add debug comments around included content",
    )
    parser.add_argument(
        "--max-depth",
        type=_non_negative_int,
        default=DEFAULT_MAX_INCLUDE_DEPTH,
        dest="max_depth",
        metavar="N",
        help="Maximum include depth (default: %(default)s)",
    )
    parser.add_argument(
        "--base-dir",
        type=Path,
        default=None,
        dest="base_directory",
        metavar="DIR",
        help="Directory that absolute include paths resolve under "
        "(default: the input file's directory)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log each included file to stderr"
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version information and exit",
    )
    opts = parser.parse_args(args)

    # Re-parse with sentinel defaults to detect which flags were actually supplied,
    # so passing a flag with its default value still overrides the config file.
    _SENTINEL = object()
    _tracked_flags: dict[str, str] = {
        "debug": "debug",
        "max_depth": "max_depth",
        "base_directory": "base_directory",
    }
    sentinel_parser = argparse.ArgumentParser(add_help=False)
    sentinel_parser.add_argument("-d", "--debug", action="store_true", default=_SENTINEL)
    sentinel_parser.add_argument("--max-depth", dest="max_depth", default=_SENTINEL)
    sentinel_parser.add_argument("--base-dir", dest="base_directory", default=_SENTINEL)
    # Untracked flags are still registered so combined short flags like `-dv` parse.
    sentinel_parser.add_argument("-v", "--verbose", action="store_true")
    sentinel_parser.add_argument("--version", action="store_true")
    sentinel_opts, _ = sentinel_parser.parse_known_args(args if args is not None else sys.argv[1:])

    explicit_flags: set[str] = set()
    for dest_name, field_name in _tracked_flags.items():
        if getattr(sentinel_opts, dest_name, _SENTINEL) is not _SENTINEL:
            explicit_flags.add(field_name)

    return (
        Options(
            input=opts.input,
            output=opts.output,
            debug=opts.debug,
            max_depth=opts.max_depth,
            base_directory=opts.base_directory,
            verbose=opts.verbose,
            version=opts.version,
        ),
        explicit_flags,
    )


def _print_error(error: BaseException) -> None:
    """Print the top-level message followed by each chained cause."""
    messages = error_chain(error)
    print(f"Error: {messages[0]}", file=sys.stderr)
    for message in messages[1:]:
        print(f"  Caused by: {message}", file=sys.stderr)


def main(args: list[str] | None = None) -> int:
    """
    Main entry point for the shrup CLI.

    Args:
        args: Command-line arguments (uses sys.argv if None)

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    options, explicit_flags = _parse_args(args)

    if options.version:
        try:
            version = importlib.metadata.version("shrup")
            print(f"v{version}")
        except importlib.metadata.PackageNotFoundError:
            print("unknown (package not installed)")
        return 0

    if options.input is None or options.output is None:
        print(
            "Error: Both INPUT and OUTPUT are required. Use --help for more options.",
            file=sys.stderr,
        )
        return 1

    logging.basicConfig(
        level=logging.DEBUG if options.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    input_path = Path(options.input)
    if not input_path.exists():
        print(f"Error: Input file does not exist: {input_path}", file=sys.stderr)
        return 1
    if not input_path.is_file():
        print(f"Error: Input path is not a file: {input_path}", file=sys.stderr)
        return 1

    try:
        config_path = find_config_file(Path.cwd())
        if config_path:
            merge_cli_with_config(options, load_config(config_path), explicit_flags)
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    config = ProcessingConfig(
        debug_mode=options.debug,
        max_include_depth=options.max_depth,
        base_directory=(
            options.base_directory
            if options.base_directory is not None
            else input_path.parent
        ),
    )

    try:
        ShellPreprocessor(config).process_file(input_path, options.output)
    except ShrupError as e:
        _print_error(e)
        return 1

    if options.debug:
        print(f"Successfully processed {input_path} -> {options.output}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
