"""
Error types for include expansion.

Every failure raised by the preprocessor is a `ShrupError` subclass carrying
the structured fields needed to render or inspect it. Underlying OS errors are
chained as `__cause__`, and callers up the recursion can attach context lines
with `add_context()` without changing the error's type.
"""

from __future__ import annotations

from pathlib import Path


class ShrupError(Exception):
    """Base class for all preprocessor errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message
        # Outermost annotation last.
        self.context: list[str] = []

    def add_context(self, message: str) -> None:
        """Annotate this error with a line of context from an enclosing step."""
        self.context.append(message)

    def __str__(self) -> str:
        return self.message


class SourceNotFoundError(ShrupError):
    def __init__(self, path: Path) -> None:
        super().__init__(f"File not found: {path}")
        self.path: Path = path


class SourceIOError(ShrupError):
    """Generic I/O failure not covered by a more specific kind."""

    def __init__(self, path: Path, detail: str) -> None:
        super().__init__(f"IO error: {detail}")
        self.path: Path = path
        self.detail: str = detail


class SourcePermissionError(ShrupError):
    def __init__(self, path: Path) -> None:
        super().__init__(f"Permission denied: {path}")
        self.path: Path = path


class CircularDependencyError(ShrupError):
    """
    A file was entered a second time in the same run. `stack` is the active
    include chain at the point of detection, rendered as `a -> b -> c`.
    """

    def __init__(self, path: Path, stack: str) -> None:
        super().__init__(f"Circular dependency detected: {path} (include stack: {stack})")
        self.path: Path = path
        self.stack: str = stack


class InvalidIncludeDirectiveError(ShrupError):
    def __init__(self, line_number: int, raw_line: str) -> None:
        super().__init__(f"Invalid include directive at line {line_number}: {raw_line}")
        self.line_number: int = line_number
        self.raw_line: str = raw_line


class MaxDepthExceededError(ShrupError):
    def __init__(self, path: Path, max_include_depth: int) -> None:
        super().__init__(f"Maximum include depth ({max_include_depth}) exceeded at: {path}")
        self.path: Path = path
        self.max_include_depth: int = max_include_depth


def error_chain(error: BaseException) -> list[str]:
    """
    Render an error as a list of messages, outermost first: any context
    annotations (most recently added first), the error itself, then each
    chained `__cause__`.
    """
    messages: list[str] = []
    if isinstance(error, ShrupError):
        messages.extend(reversed(error.context))
    messages.append(str(error))

    cause = error.__cause__
    seen: set[int] = {id(error)}
    while cause is not None and id(cause) not in seen:
        seen.add(id(cause))
        messages.append(str(cause))
        cause = cause.__cause__
    return messages
