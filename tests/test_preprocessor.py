"""Tests for recursive include expansion."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from shrup.config import ProcessingConfig
from shrup.errors import (
    CircularDependencyError,
    InvalidIncludeDirectiveError,
    MaxDepthExceededError,
    SourceNotFoundError,
)
from shrup.preprocessor import ShellPreprocessor, preprocess_file
from shrup.traversal import TraversalContext


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


def _run(tmp_path: Path, main: Path, debug: bool = False, max_depth: int = 100) -> str:
    output = tmp_path / "out" / "output.sh"
    config = ProcessingConfig(
        debug_mode=debug, max_include_depth=max_depth, base_directory=tmp_path
    )
    ShellPreprocessor(config).process_file(main, output)
    return output.read_text()


def test_simple_include(tmp_path: Path) -> None:
    main = _write(tmp_path / "main.sh", "#!/bin/bash\n#include utils.sh\necho done")
    _write(tmp_path / "utils.sh", "echo util")
    assert _run(tmp_path, main) == "#!/bin/bash\necho util\necho done"


def test_simple_include_debug(tmp_path: Path) -> None:
    main = _write(tmp_path / "main.sh", "#!/bin/bash\n#include utils.sh\necho done")
    _write(tmp_path / "utils.sh", "echo util")
    utils = tmp_path / "utils.sh"
    assert _run(tmp_path, main, debug=True) == (
        "#!/bin/bash\n"
        f"# --- Included from {utils} ---\n"
        "echo util\n"
        f"# --- End of {utils} ---\n"
        "echo done"
    )


def test_debug_no_extra_newline_when_content_ends_with_one(tmp_path: Path) -> None:
    main = _write(tmp_path / "main.sh", "#include utils.sh")
    utils = _write(tmp_path / "utils.sh", "echo util\n")
    assert _run(tmp_path, main, debug=True) == (
        f"# --- Included from {utils} ---\necho util\n# --- End of {utils} ---"
    )


def test_no_directives_is_byte_identical(tmp_path: Path) -> None:
    text = "#!/bin/bash\r\n\n  echo 'hi'  \n# include-ish comment\n\n"
    main = tmp_path / "main.sh"
    main.write_bytes(text.encode("utf-8"))
    output = tmp_path / "output.sh"
    ShellPreprocessor(ProcessingConfig(base_directory=tmp_path)).process_file(main, output)
    assert output.read_bytes() == text.encode("utf-8")


def test_trailing_newline_shape_preserved(tmp_path: Path) -> None:
    main = _write(tmp_path / "main.sh", "#include a.sh\necho main\n")
    _write(tmp_path / "a.sh", "echo a")
    assert _run(tmp_path, main) == "echo a\necho main\n"


def test_included_trailing_newline_kept_verbatim(tmp_path: Path) -> None:
    # The included content replaces the directive line as-is, newline included.
    main = _write(tmp_path / "main.sh", "#include a.sh\necho main")
    _write(tmp_path / "a.sh", "echo a\n")
    assert _run(tmp_path, main) == "echo a\n\necho main"


def test_all_quote_styles(tmp_path: Path) -> None:
    main = _write(
        tmp_path / "main.sh",
        "#include <a.sh>\n#include \"b.sh\"\n#include 'c.sh'\n#include d.sh",
    )
    for name in "abcd":
        _write(tmp_path / f"{name}.sh", f"echo {name}")
    assert _run(tmp_path, main) == "echo a\necho b\necho c\necho d"


def test_recursive_include(tmp_path: Path) -> None:
    main = _write(tmp_path / "main.sh", '#include middle.sh\necho "main"')
    _write(tmp_path / "middle.sh", '#include nested.sh\necho "middle"')
    _write(tmp_path / "nested.sh", 'echo "nested"')
    assert _run(tmp_path, main) == 'echo "nested"\necho "middle"\necho "main"'


def test_nested_debug_markers(tmp_path: Path) -> None:
    main = _write(tmp_path / "main.sh", "#include middle.sh")
    middle = _write(tmp_path / "middle.sh", "#include nested.sh")
    nested = _write(tmp_path / "nested.sh", "echo nested")
    assert _run(tmp_path, main, debug=True) == (
        f"# --- Included from {middle} ---\n"
        f"# --- Included from {nested} ---\n"
        "echo nested\n"
        f"# --- End of {nested} ---\n"
        f"# --- End of {middle} ---"
    )


def test_relative_paths_resolve_per_level(tmp_path: Path) -> None:
    main = _write(tmp_path / "main.sh", "#include lib/a.sh")
    _write(tmp_path / "lib" / "a.sh", "#include helpers/b.sh")
    _write(tmp_path / "lib" / "helpers" / "b.sh", "echo b")
    # A same-named file at the base directory must not be picked up.
    _write(tmp_path / "helpers" / "b.sh", "echo wrong")
    assert _run(tmp_path, main) == "echo b"


def test_absolute_paths_resolve_under_base_directory(tmp_path: Path) -> None:
    main = _write(tmp_path / "src" / "main.sh", "#include /lib/log.sh")
    _write(tmp_path / "lib" / "log.sh", "#include /lib/fmt.sh\nlog() { :; }")
    _write(tmp_path / "lib" / "fmt.sh", "fmt() { :; }")
    assert _run(tmp_path, main) == "fmt() { :; }\nlog() { :; }"


def test_circular_dependency(tmp_path: Path) -> None:
    a = _write(tmp_path / "a.sh", "#include b.sh")
    b = _write(tmp_path / "b.sh", "#include a.sh")

    with pytest.raises(CircularDependencyError) as exc:
        _run(tmp_path, a)
    assert exc.value.path == a.resolve()
    assert exc.value.stack == f"{a.resolve()} -> {b.resolve()}"
    assert not (tmp_path / "out").exists()


def test_self_include(tmp_path: Path) -> None:
    a = _write(tmp_path / "a.sh", "echo a\n#include a.sh")
    with pytest.raises(CircularDependencyError) as exc:
        _run(tmp_path, a)
    assert exc.value.stack == str(a.resolve())


def test_diamond_inclusion_rejected(tmp_path: Path) -> None:
    """
    A includes B and C, both of which include D. There is no true cycle, but D
    has already been visited when C reaches it, so the run fails.
    """
    a = _write(tmp_path / "a.sh", "#include b.sh\n#include c.sh")
    b = _write(tmp_path / "b.sh", "#include d.sh")
    _write(tmp_path / "c.sh", "#include d.sh")
    d = _write(tmp_path / "d.sh", "echo d")

    with pytest.raises(CircularDependencyError) as exc:
        _run(tmp_path, a)
    assert exc.value.path == d.resolve()
    # B has finished and left the active chain; only A and C remain.
    assert exc.value.stack == f"{a.resolve()} -> {(tmp_path / 'c.sh').resolve()}"
    assert str(b.resolve()) not in exc.value.stack


def test_repeated_include_in_same_file_rejected(tmp_path: Path) -> None:
    a = _write(tmp_path / "a.sh", "#include util.sh\n#include util.sh")
    _write(tmp_path / "util.sh", "echo util")
    with pytest.raises(CircularDependencyError):
        _run(tmp_path, a)


def _make_chain(tmp_path: Path, length: int) -> Path:
    """Create f0.sh -> f1.sh -> ... -> f{length-1}.sh, returning f0.sh."""
    for i in range(length - 1):
        _write(tmp_path / f"f{i}.sh", f"#include f{i + 1}.sh")
    _write(tmp_path / f"f{length - 1}.sh", "echo leaf")
    return tmp_path / "f0.sh"


def test_max_depth_chain_within_limit(tmp_path: Path) -> None:
    main = _make_chain(tmp_path, 3)
    assert _run(tmp_path, main, max_depth=3) == "echo leaf"


def test_max_depth_chain_exceeds_limit(tmp_path: Path) -> None:
    main = _make_chain(tmp_path, 4)
    with pytest.raises(MaxDepthExceededError) as exc:
        _run(tmp_path, main, max_depth=3)
    assert exc.value.path == (tmp_path / "f3.sh").resolve()
    assert exc.value.max_include_depth == 3


def test_missing_include(tmp_path: Path) -> None:
    main = _write(tmp_path / "main.sh", "echo start\n#include missing.sh")
    with pytest.raises(SourceNotFoundError) as exc:
        _run(tmp_path, main)
    assert exc.value.path == tmp_path / "missing.sh"
    assert exc.value.context == [f"Failed to include missing.sh (line 2 of {main})"]


def test_context_added_at_each_level(tmp_path: Path) -> None:
    main = _write(tmp_path / "main.sh", "#include a.sh")
    a = _write(tmp_path / "a.sh", "echo a\n#include b.sh")
    _write(tmp_path / "b.sh", "#include")

    with pytest.raises(InvalidIncludeDirectiveError) as exc:
        _run(tmp_path, main)
    assert exc.value.line_number == 1
    assert exc.value.context == [
        f"Failed to include b.sh (line 2 of {a})",
        f"Failed to include a.sh (line 1 of {main})",
    ]


def test_missing_input_file(tmp_path: Path) -> None:
    missing = tmp_path / "missing.sh"
    with pytest.raises(SourceNotFoundError) as exc:
        ShellPreprocessor().process_file(missing, tmp_path / "out.sh")
    assert exc.value.context == [f"Failed to read input file: {missing}"]
    assert not (tmp_path / "out.sh").exists()


def test_failure_leaves_existing_output_untouched(tmp_path: Path) -> None:
    main = _write(tmp_path / "main.sh", "#include missing.sh")
    output = _write(tmp_path / "output.sh", "previous")
    with pytest.raises(SourceNotFoundError):
        ShellPreprocessor(ProcessingConfig(base_directory=tmp_path)).process_file(main, output)
    assert output.read_text() == "previous"


def test_output_to_stdout(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main = _write(tmp_path / "main.sh", "#include utils.sh\necho done")
    _write(tmp_path / "utils.sh", "echo util")
    ShellPreprocessor(ProcessingConfig(base_directory=tmp_path)).process_file(main, "-")
    assert capsys.readouterr().out == "echo util\necho done"


def test_runs_are_independent(tmp_path: Path) -> None:
    main = _write(tmp_path / "main.sh", "#include utils.sh")
    _write(tmp_path / "utils.sh", "echo util")
    preprocessor = ShellPreprocessor(ProcessingConfig(base_directory=tmp_path))
    assert preprocessor.process_text(main.read_text(), main) == "echo util"
    assert preprocessor.process_text(main.read_text(), main) == "echo util"


def test_expand_leaves_context_balanced(tmp_path: Path) -> None:
    main = _write(tmp_path / "main.sh", "#include utils.sh")
    utils = _write(tmp_path / "utils.sh", "echo util")
    context = TraversalContext(ProcessingConfig(base_directory=tmp_path))
    result = ShellPreprocessor(context.config).expand(main.read_text(), main, context)
    assert result == "echo util"
    assert context.depth == 0
    assert context.visited == frozenset({main.resolve(), utils.resolve()})


def test_preprocess_file_defaults_base_to_input_dir(tmp_path: Path) -> None:
    main = _write(tmp_path / "scripts" / "main.sh", "#include /lib.sh")
    _write(tmp_path / "scripts" / "lib.sh", "echo lib")
    output = tmp_path / "out.sh"
    preprocess_file(main, output)
    assert output.read_text() == "echo lib"


def test_output_write_logged_for_stdout(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], caplog: pytest.LogCaptureFixture
) -> None:
    main = _write(tmp_path / "main.sh", "echo done")
    with caplog.at_level(logging.DEBUG, logger="shrup.preprocessor"):
        ShellPreprocessor(ProcessingConfig(base_directory=tmp_path)).process_file(main, "-")
    assert capsys.readouterr().out == "echo done"
    assert "Wrote 9 characters to stdout" in caplog.text


def test_output_write_logged_for_file(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    main = _write(tmp_path / "main.sh", "echo done")
    output = tmp_path / "out.sh"
    with caplog.at_level(logging.DEBUG, logger="shrup.preprocessor"):
        ShellPreprocessor(ProcessingConfig(base_directory=tmp_path)).process_file(main, output)
    assert f"Wrote 9 characters to {output}" in caplog.text
