"""
shrup: a shell script preprocessor that expands `#include` directives.

Usage::

    from pathlib import Path
    from shrup import ProcessingConfig, ShellPreprocessor

    config = ProcessingConfig(debug_mode=True, base_directory=Path("scripts"))
    ShellPreprocessor(config).process_file(Path("scripts/main.sh"), Path("build/main.sh"))
"""

from shrup.config import ProcessingConfig
from shrup.errors import (
    CircularDependencyError,
    InvalidIncludeDirectiveError,
    MaxDepthExceededError,
    ShrupError,
    SourceIOError,
    SourceNotFoundError,
    SourcePermissionError,
)
from shrup.parser import IncludeDirective, QuoteStyle, parse_includes
from shrup.preprocessor import ShellPreprocessor, preprocess_file
from shrup.resolver import render_marker, resolve_include_path
from shrup.traversal import TraversalContext

__all__ = [
    "CircularDependencyError",
    "IncludeDirective",
    "InvalidIncludeDirectiveError",
    "MaxDepthExceededError",
    "ProcessingConfig",
    "QuoteStyle",
    "ShellPreprocessor",
    "ShrupError",
    "SourceIOError",
    "SourceNotFoundError",
    "SourcePermissionError",
    "TraversalContext",
    "parse_includes",
    "preprocess_file",
    "render_marker",
    "resolve_include_path",
]
