from __future__ import annotations

from pathlib import Path

import pytest

import gl3w_gen

V = gl3w_gen.ApiVersion


def _make_write_config(
    *,
    api: str = "gl",
    major: int = 4,
    minor: int = 6,
    profile: gl3w_gen.Profile = gl3w_gen.Profile.CORE,
    extensions: tuple[str, ...] = (),
) -> gl3w_gen.WriteConfig:
    return gl3w_gen.WriteConfig(
        prefix="gl3w",
        api=api,
        version=V(major, minor),
        profile=profile,
        extensions=extensions,
    )


def _make_file_result(filename: str, line_count: int) -> gl3w_gen.FileWriteResult:
    return gl3w_gen.FileWriteResult(
        filename=filename,
        path=Path("/tmp/out") / filename,
        line_count=line_count,
        byte_count=line_count * 10,
    )


def _make_summary(
    *,
    counts: gl3w_gen.GenerationCounts | None = None,
    files: tuple[gl3w_gen.FileWriteResult, ...] = (),
) -> gl3w_gen.GenerationSummary:
    if counts is None:
        counts = gl3w_gen.GenerationCounts(
            types=gl3w_gen.CategoryCount(9, 9, 0),
            enums=gl3w_gen.CategoryCount(12, 11, 1),
            commands=gl3w_gen.CategoryCount(7, 6, 1),
        )
    return gl3w_gen.GenerationSummary(
        target_label="gl 3.2 core + GL_ARB_foo",
        source_label="gl.xml",
        output_dir="out",
        counts=counts,
        files=files,
    )


def _resolve(
    registry: gl3w_gen.Registry, extensions: tuple[str, ...] = ()
) -> gl3w_gen.SymbolSet:
    return gl3w_gen.resolve(
        registry,
        gl3w_gen.ResolutionRequest("gl", V(3, 2), gl3w_gen.Profile.CORE, extensions),
    )


def test_t_01_build_target_label_without_extensions() -> None:
    assert gl3w_gen.build_target_label(_make_write_config()) == "gl 4.6 core"


def test_t_02_build_target_label_keeps_request_order() -> None:
    config = _make_write_config(extensions=("GL_KHR_debug", "GL_ARB_foo"))

    assert gl3w_gen.build_target_label(config) == "gl 4.6 core + GL_KHR_debug, GL_ARB_foo"


def test_t_03_build_target_label_profile_and_api() -> None:
    config = _make_write_config(
        api="gles2", major=3, minor=0, profile=gl3w_gen.Profile.COMPATIBILITY
    )

    assert gl3w_gen.build_target_label(config) == "gles2 3.0 compatibility"


def test_t_04_counts_without_extensions_are_all_core(
    gl_registry: gl3w_gen.Registry,
) -> None:
    counts = gl3w_gen.build_generation_counts(gl_registry, _resolve(gl_registry))

    assert counts.types == gl3w_gen.CategoryCount(9, 9, 0)
    assert counts.enums == gl3w_gen.CategoryCount(11, 11, 0)
    assert counts.commands == gl3w_gen.CategoryCount(6, 6, 0)


def test_t_05_counts_attribute_extension_symbols_and_types(
    gl_registry: gl3w_gen.Registry,
) -> None:
    symbols = _resolve(gl_registry, ("GL_ARB_foo", "GL_KHR_debug"))

    counts = gl3w_gen.build_generation_counts(gl_registry, symbols)

    assert counts.commands == gl3w_gen.CategoryCount(8, 6, 2)
    assert counts.enums == gl3w_gen.CategoryCount(13, 11, 2)
    assert counts.types == gl3w_gen.CategoryCount(11, 9, 2)


@pytest.mark.parametrize("extensions", [(), ("GL_ARB_foo",), ("GL_KHR_debug",)])
def test_t_06_category_invariant_holds(
    gl_registry: gl3w_gen.Registry, extensions: tuple[str, ...]
) -> None:
    counts = gl3w_gen.build_generation_counts(gl_registry, _resolve(gl_registry, extensions))

    for category in (counts.types, counts.enums, counts.commands):
        assert category.core + category.ext == category.total


def test_t_07_build_generation_summary_copies_metadata(
    gl_registry: gl3w_gen.Registry,
) -> None:
    files = (_make_file_result("include/GL/gl3w.h", 120), _make_file_result("src/gl3w.c", 200))
    write_result = gl3w_gen.ArtifactWriteResult(output_dir=Path("out"), files=files)
    config = _make_write_config(major=3, minor=2, extensions=("GL_ARB_foo",))

    summary = gl3w_gen.build_generation_summary(
        config,
        gl_registry,
        _resolve(gl_registry, ("GL_ARB_foo",)),
        write_result,
        source_label="gl.xml",
    )

    assert summary.target_label == "gl 3.2 core + GL_ARB_foo"
    assert summary.source_label == "gl.xml"
    assert summary.output_dir == "out"
    assert summary.files == files
    assert summary.counts.commands.ext == 1


def test_t_08_format_generation_summary_section_skeleton() -> None:
    files = (_make_file_result("include/GL/gl3w.h", 1200), _make_file_result("src/gl3w.c", 300))

    text = gl3w_gen.format_generation_summary(_make_summary(files=files))
    lines = text.splitlines()

    assert lines[0] == "Loader generated:"
    assert "  Target:     gl 3.2 core + GL_ARB_foo" in lines
    assert "  Source:     gl.xml" in lines
    assert "  Output:     out" in lines
    assert lines.index("  Symbols:") < lines.index("  Files written:")
    assert "  Total: 1,500 lines across 2 files" in lines
    assert any("1,200 lines" in line for line in lines)


def test_t_09_split_suffix_appears_only_when_ext_positive() -> None:
    text = gl3w_gen.format_generation_summary(_make_summary())

    types_line = next(line for line in text.splitlines() if "Types:" in line)
    enums_line = next(line for line in text.splitlines() if "Enums:" in line)

    assert "from extensions" not in types_line
    assert "(11 core + 1 from extensions)" in enums_line


def test_t_10_format_generation_summary_is_deterministic_and_newline_terminated() -> None:
    summary = _make_summary(files=(_make_file_result("src/gl3w.c", 10),))

    first = gl3w_gen.format_generation_summary(summary)
    second = gl3w_gen.format_generation_summary(summary)

    assert first == second
    assert first.endswith("\n")
    assert not first.endswith("\n\n")


def test_t_11_print_generation_summary_prints_formatter_output_once(
    capsys: pytest.CaptureFixture[str],
) -> None:
    summary = _make_summary()

    gl3w_gen.print_generation_summary(summary)

    assert capsys.readouterr().out == gl3w_gen.format_generation_summary(summary)
