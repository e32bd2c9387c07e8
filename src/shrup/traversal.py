"""
Cycle and depth tracking for a single expansion run.
"""

from __future__ import annotations

import logging
from pathlib import Path

from shrup.config import ProcessingConfig
from shrup.errors import CircularDependencyError, MaxDepthExceededError, SourceIOError

logger = logging.getLogger(__name__)


def canonicalize_path(path: Path) -> Path:
    """Resolve symlinks and relative segments. The path must exist."""
    try:
        return path.resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise SourceIOError(path, f"Failed to canonicalize path: {path}") from e


class TraversalContext:
    """
    Tracks which files have been entered during one run.

    `enter()` and `exit()` bracket the processing of every file, the top-level
    input included. Two collections are kept, both of canonical paths:

    - `active_chain`: the files currently being expanded, outermost first.
    - `visited`: every file ever entered. It only grows, so a file expanded
      once anywhere in the tree cannot be entered again, even after its
      expansion finished. Diamond inclusion is therefore reported as a
      circular dependency.
    """

    def __init__(self, config: ProcessingConfig) -> None:
        self._config: ProcessingConfig = config
        self._visited: set[Path] = set()
        self._active_chain: list[Path] = []

    @property
    def config(self) -> ProcessingConfig:
        return self._config

    @property
    def depth(self) -> int:
        return len(self._active_chain)

    @property
    def visited(self) -> frozenset[Path]:
        return frozenset(self._visited)

    @property
    def active_chain(self) -> tuple[Path, ...]:
        return tuple(self._active_chain)

    def stack_string(self) -> str:
        """The active chain rendered as `a -> b -> c`."""
        return " -> ".join(str(p) for p in self._active_chain)

    def enter(self, path: Path) -> Path:
        """
        Push `path` onto the active chain, returning its canonical form.

        Raises `MaxDepthExceededError` if the chain is already at the configured
        limit, or `CircularDependencyError` if the file was entered before.
        """
        canonical = canonicalize_path(path)

        if self.depth >= self._config.max_include_depth:
            raise MaxDepthExceededError(canonical, self._config.max_include_depth)

        if canonical in self._visited:
            raise CircularDependencyError(canonical, self.stack_string())

        self._visited.add(canonical)
        self._active_chain.append(canonical)
        logger.debug("Entered %s (depth %d)", canonical, self.depth)
        return canonical

    def exit(self) -> None:
        """Pop the innermost file. `visited` is left untouched."""
        self._active_chain.pop()
