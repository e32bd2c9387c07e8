"""
Path resolution and file reading for include directives.

Absolute include paths are sandboxed: `#include /lib/x.sh` resolves to
`<base_directory>/lib/x.sh`, never to the real filesystem root. Relative
include paths resolve against the directory of the file containing the
directive, regardless of the base directory.
"""

from __future__ import annotations

from pathlib import Path

from shrup.config import ProcessingConfig
from shrup.errors import SourceIOError, SourceNotFoundError, SourcePermissionError
from shrup.parser import IncludeDirective


def join_include_path(directive: IncludeDirective, base_directory: Path) -> Path:
    """Compute the path a directive refers to, without touching the filesystem."""
    include_path = Path(directive.file_path)
    if include_path.is_absolute():
        return base_directory / include_path.relative_to(include_path.anchor)
    return directive.source_file.parent / include_path


def resolve_include_path(directive: IncludeDirective, config: ProcessingConfig) -> Path:
    """
    Resolve a directive to an existing regular file.

    Raises `SourceNotFoundError` if the resolved path is missing or is not a
    regular file (a directory, for example).
    """
    resolved = join_include_path(directive, config.base_directory)
    if not resolved.is_file():
        raise SourceNotFoundError(resolved)
    return resolved


def read_file_content(path: Path) -> str:
    """
    Read a whole file as UTF-8, mapping OS failures onto the error taxonomy.
    The original exception is kept as `__cause__`.

    Bytes are decoded directly so line endings are preserved exactly.
    """
    try:
        return path.read_bytes().decode("utf-8")
    except FileNotFoundError as e:
        raise SourceNotFoundError(path) from e
    except PermissionError as e:
        raise SourcePermissionError(path) from e
    except OSError as e:
        raise SourceIOError(path, f"Failed to read file: {path}") from e
    except UnicodeDecodeError as e:
        raise SourceIOError(path, f"File is not valid UTF-8: {path}") from e


def render_marker(path: Path, is_start: bool) -> str:
    """Debug comment placed before (`is_start`) or after an included file's content."""
    if is_start:
        return f"# --- Included from {path} ---"
    return f"# --- End of {path} ---"
