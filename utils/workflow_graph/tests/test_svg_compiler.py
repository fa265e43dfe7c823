"""Tests for DOT to SVG compilation."""

import shutil
import tempfile
from unittest.mock import patch

import graphviz
import pytest

from utils.workflow_graph.exceptions import DotParseError, GraphCompileError, SvgRenderError
from utils.workflow_graph.visualization.svg_compiler import CompilerWorkspace, SvgCompiler

DOT_TEXT = 'digraph workflow {\n    "a" -> "b";\n}\n'


@pytest.fixture
def scratch_dir(tmp_path, monkeypatch):
    """Place compiler workspaces under a per-test directory."""
    monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))
    return tmp_path


def fake_render(engine, fmt, filepath, outfile=None, quiet=False):
    if fmt == "svg":
        with open(outfile, "w", encoding="utf-8") as f:
            f.write("<svg>ok</svg>")
    return outfile


class TestCompilerWorkspace:
    def test_write_and_release(self, scratch_dir):
        workspace = CompilerWorkspace()
        path = workspace.write_source(DOT_TEXT, "dot")

        with open(path, encoding="utf-8") as f:
            assert "digraph workflow" in f.read()
        assert workspace.output_path("svg").endswith("workflow.svg")

        assert workspace.release() == []
        assert list(scratch_dir.iterdir()) == []

    def test_release_reports_failures(self, scratch_dir):
        workspace = CompilerWorkspace()
        with patch(
            "utils.workflow_graph.visualization.svg_compiler.shutil.rmtree",
            side_effect=OSError("directory busy"),
        ):
            errors = workspace.release()

        assert len(errors) == 1
        assert "directory busy" in str(errors[0])


class TestSvgCompiler:
    def test_compile_success_releases_workspace(self, scratch_dir):
        with patch("graphviz.render", side_effect=fake_render) as mock_render:
            svg = SvgCompiler().compile(DOT_TEXT)

        assert svg == "<svg>ok</svg>"
        formats = [call.args[1] for call in mock_render.call_args_list]
        assert formats == ["canon", "svg"]
        assert list(scratch_dir.iterdir()) == []

    def test_engine_is_passed_through(self, scratch_dir):
        with patch("graphviz.render", side_effect=fake_render) as mock_render:
            SvgCompiler(engine="neato").compile(DOT_TEXT)

        assert all(call.args[0] == "neato" for call in mock_render.call_args_list)

    def test_parse_failure(self, scratch_dir):
        with patch(
            "graphviz.render",
            side_effect=graphviz.CalledProcessError(1, ["dot"], stderr=b"syntax error in line 1"),
        ):
            with pytest.raises(DotParseError) as exc_info:
                SvgCompiler().compile("digraph {")

        assert exc_info.value.stage == "parse"
        assert str(exc_info.value).startswith("failed to parse DOT graph:")
        assert exc_info.value.cleanup_errors == []
        assert list(scratch_dir.iterdir()) == []

    def test_render_failure(self, scratch_dir):
        def fail_svg(engine, fmt, filepath, outfile=None, quiet=False):
            if fmt == "svg":
                raise graphviz.CalledProcessError(1, ["dot"])
            return outfile

        with patch("graphviz.render", side_effect=fail_svg):
            with pytest.raises(SvgRenderError) as exc_info:
                SvgCompiler().compile(DOT_TEXT)

        assert exc_info.value.stage == "render"
        assert list(scratch_dir.iterdir()) == []

    def test_missing_executable(self, scratch_dir):
        with patch("graphviz.render", side_effect=graphviz.ExecutableNotFound(["dot"])):
            with pytest.raises(SvgRenderError):
                SvgCompiler().compile(DOT_TEXT)

    def test_cleanup_failure_after_success(self, scratch_dir):
        with patch("graphviz.render", side_effect=fake_render), patch(
            "utils.workflow_graph.visualization.svg_compiler.shutil.rmtree",
            side_effect=OSError("directory busy"),
        ):
            with pytest.raises(GraphCompileError) as exc_info:
                SvgCompiler().compile(DOT_TEXT)

        assert exc_info.value.stage == "cleanup"
        assert len(exc_info.value.cleanup_errors) == 1
        assert str(exc_info.value) == (
            "failed to release graph compiler resources (cleanup errors: directory busy)"
        )

    def test_cleanup_failure_attached_to_primary_error(self, scratch_dir):
        with patch(
            "graphviz.render", side_effect=graphviz.CalledProcessError(1, ["dot"])
        ), patch(
            "utils.workflow_graph.visualization.svg_compiler.shutil.rmtree",
            side_effect=OSError("directory busy"),
        ):
            with pytest.raises(DotParseError) as exc_info:
                SvgCompiler().compile("digraph {")

        assert exc_info.value.stage == "parse"
        assert len(exc_info.value.cleanup_errors) == 1
        assert "cleanup errors: directory busy" in str(exc_info.value)

    def test_workspace_setup_failure(self):
        with patch(
            "utils.workflow_graph.visualization.svg_compiler.tempfile.mkdtemp",
            side_effect=OSError("no space left"),
        ):
            with pytest.raises(GraphCompileError) as exc_info:
                SvgCompiler().compile(DOT_TEXT)

        assert exc_info.value.stage == "setup"
        assert "no space left" in str(exc_info.value)

    @pytest.mark.skipif(shutil.which("dot") is None, reason="Graphviz executables not installed")
    def test_real_graphviz(self, scratch_dir):
        svg = SvgCompiler().compile(DOT_TEXT)

        assert "<svg" in svg
        assert list(scratch_dir.iterdir()) == []

    @pytest.mark.skipif(shutil.which("dot") is None, reason="Graphviz executables not installed")
    def test_real_graphviz_rejects_bad_dot(self, scratch_dir):
        with pytest.raises(DotParseError):
            SvgCompiler().compile("digraph { a -> }")
