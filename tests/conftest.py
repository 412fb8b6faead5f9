import argparse
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

import gl3w_gen

GENERATOR_DIR = Path(__file__).resolve().parent.parent
if str(GENERATOR_DIR) not in sys.path:
    sys.path.insert(0, str(GENERATOR_DIR))

FIXTURE_GL_XML = Path(__file__).resolve().parent / "fixtures" / "gl_minimal.xml"

MINIMAL_TYPES = """
<types>
    <type name="khrplatform">#include &lt;KHR/khrplatform.h&gt;</type>
    <type>typedef unsigned int <name>GLenum</name>;</type>
    <type>typedef unsigned int <name>GLbitfield</name>;</type>
    <type requires="khrplatform">typedef khronos_float_t <name>GLfloat</name>;</type>
</types>
"""


@pytest.fixture
def fixture_gl_xml() -> Path:
    return FIXTURE_GL_XML


@pytest.fixture
def gl_registry() -> gl3w_gen.Registry:
    return gl3w_gen.parse_registry(FIXTURE_GL_XML.read_text(encoding="utf-8"))


@pytest.fixture
def make_registry() -> Callable[[str], gl3w_gen.Registry]:
    def _make_registry(inner_xml: str) -> gl3w_gen.Registry:
        return gl3w_gen.parse_registry(f"<registry>{inner_xml}</registry>")

    return _make_registry


@pytest.fixture
def existing_paths(tmp_path: Path) -> dict[str, Path]:
    registry = tmp_path / "gl.xml"
    registry.write_text("<registry />\n", encoding="utf-8")
    return {
        "registry": registry,
        "output_dir": tmp_path / "out",
    }


@pytest.fixture
def make_args(existing_paths: dict[str, Path]) -> Callable[..., argparse.Namespace]:
    def _make_args(**overrides: object) -> argparse.Namespace:
        base_args: dict[str, object] = {
            "api": gl3w_gen.DEFAULT_API,
            "version": None,
            "profile": "core",
            "ext": None,
            "single_file": False,
            "prefix": gl3w_gen.DEFAULT_PREFIX,
            "registry": existing_paths["registry"],
            "registry_url": gl3w_gen.DEFAULT_REGISTRY_URL,
            "no_cache": False,
            "offline": False,
            "output_dir": existing_paths["output_dir"],
            "list_versions": False,
            "list_extensions": False,
            "info": None,
            "filter": None,
        }
        base_args.update(overrides)
        return argparse.Namespace(**base_args)

    return _make_args
