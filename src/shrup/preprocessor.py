"""
Recursive include expansion.

`ShellPreprocessor` expands every `#include` line of a file into the
(recursively expanded) content of the file it names. The whole result is built
in memory and written once, so a failed run never leaves partial output.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from strif import atomic_output_file

from shrup.config import DEFAULT_MAX_INCLUDE_DEPTH, ProcessingConfig
from shrup.errors import ShrupError, SourceIOError
from shrup.parser import IncludeDirective, parse_includes
from shrup.resolver import read_file_content, render_marker, resolve_include_path
from shrup.traversal import TraversalContext

logger = logging.getLogger(__name__)


class ShellPreprocessor:
    """Expands include directives in shell scripts according to a `ProcessingConfig`."""

    def __init__(self, config: ProcessingConfig | None = None) -> None:
        self.config: ProcessingConfig = config or ProcessingConfig()

    def process_file(self, input_path: Path, output_path: Path | str) -> None:
        """
        Expand `input_path` and write the result to `output_path` (`-` for stdout).

        Nothing is written unless the entire include tree expands successfully.
        """
        try:
            content = read_file_content(input_path)
        except ShrupError as e:
            e.add_context(f"Failed to read input file: {input_path}")
            raise

        result = self.process_text(content, input_path)

        if str(output_path) == "-":
            sys.stdout.write(result)
            sys.stdout.flush()
            logger.debug("Wrote %d characters to stdout", len(result))
            return

        output_path = Path(output_path)
        try:
            with atomic_output_file(output_path, make_parents=True) as temp_path:
                Path(temp_path).write_bytes(result.encode("utf-8"))
        except OSError as e:
            raise SourceIOError(output_path, f"Failed to write output file: {output_path}") from e
        logger.debug("Wrote %d characters to %s", len(result), output_path)

    def process_text(self, text: str, source_path: Path) -> str:
        """Expand `text` as the content of `source_path`, with a fresh traversal context."""
        context = TraversalContext(self.config)
        return self.expand(text, source_path, context)

    def expand(self, text: str, source_path: Path, context: TraversalContext) -> str:
        """
        Expand all directives in `text`, recursing into included files.

        Lines are split and rejoined on `\\n`. Directive lines are replaced
        wholesale; all other lines, and a trailing newline if present, are kept
        exactly. Text without directives is returned unchanged.
        """
        context.enter(source_path)
        try:
            directives = parse_includes(text, source_path)
            if not directives:
                return text

            by_line = {d.line_number: d for d in directives}
            has_trailing_newline = text.endswith("\n")
            body = text[:-1] if has_trailing_newline else text

            lines: list[str] = []
            for index, line in enumerate(body.split("\n")):
                directive = by_line.get(index + 1)
                if directive is None:
                    lines.append(line)
                else:
                    lines.append(self._expand_directive(directive, context))

            result = "\n".join(lines)
            if has_trailing_newline:
                result += "\n"
            return result
        finally:
            context.exit()

    def _expand_directive(self, directive: IncludeDirective, context: TraversalContext) -> str:
        """Resolve, read, and recursively expand the file a directive names."""
        try:
            resolved = resolve_include_path(directive, self.config)
            logger.debug(
                "Including %s (line %d of %s)",
                resolved,
                directive.line_number,
                directive.source_file,
            )
            content = read_file_content(resolved)
            expanded = self.expand(content, resolved, context)
        except ShrupError as e:
            e.add_context(
                f"Failed to include {directive.file_path} "
                f"(line {directive.line_number} of {directive.source_file})"
            )
            raise

        if not self.config.debug_mode:
            return expanded

        parts = [render_marker(resolved, is_start=True), "\n", expanded]
        if not expanded.endswith("\n"):
            parts.append("\n")
        parts.append(render_marker(resolved, is_start=False))
        return "".join(parts)


def preprocess_file(
    input_path: Path,
    output_path: Path | str,
    *,
    debug_mode: bool = False,
    max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH,
    base_directory: Path | None = None,
) -> None:
    """
    Convenience wrapper: expand `input_path` into `output_path`.

    `base_directory` defaults to the input file's parent directory.
    """
    config = ProcessingConfig(
        debug_mode=debug_mode,
        base_directory=base_directory if base_directory is not None else input_path.parent,
        max_include_depth=max_include_depth,
    )
    ShellPreprocessor(config).process_file(input_path, output_path)
