"""Compile DOT text to SVG with Graphviz.

Each compile call owns a private scratch directory and the DOT source file
written into it. Both are released on every exit path; release failures are
attached to the raised error instead of replacing it.
"""

import logging
import os
import shutil
import tempfile
from typing import List, Optional

import graphviz

from ..exceptions import DotParseError, GraphCompileError, SvgRenderError

logger = logging.getLogger(__name__)

SOURCE_FILENAME = "workflow.gv"


class CompilerWorkspace:
    """Scratch directory plus the DOT source file written into it."""

    def __init__(self, prefix: str = "workflow-graph-"):
        self.directory = tempfile.mkdtemp(prefix=prefix)
        self.source_path: Optional[str] = None

    def write_source(self, dot_text: str, engine: str) -> str:
        source = graphviz.Source(
            dot_text, filename=SOURCE_FILENAME, directory=self.directory, engine=engine
        )
        self.source_path = source.save()
        return self.source_path

    def output_path(self, fmt: str) -> str:
        return os.path.join(self.directory, f"workflow.{fmt}")

    def release(self) -> List[OSError]:
        """Remove the source file and the directory, returning any failures."""
        errors: List[OSError] = []
        if self.source_path is not None:
            try:
                os.remove(self.source_path)
            except FileNotFoundError:
                pass
            except OSError as e:
                errors.append(e)
            self.source_path = None
        try:
            shutil.rmtree(self.directory)
        except OSError as e:
            errors.append(e)
        return errors


class SvgCompiler:
    """Turn DOT text into SVG markup using a Graphviz layout engine."""

    def __init__(self, engine: str = "dot"):
        self.engine = engine

    def compile(self, dot_text: str) -> str:
        """Compile DOT text to SVG.

        Args:
            dot_text: DOT source

        Returns:
            SVG document as a string

        Raises:
            DotParseError: If Graphviz rejects the DOT source
            SvgRenderError: If layout or SVG output fails
            GraphCompileError: If setup fails, or only resource release fails
        """
        try:
            workspace = CompilerWorkspace()
        except OSError as e:
            raise GraphCompileError(f"failed to create graph compiler workspace: {e}", stage="setup") from e

        error: Optional[GraphCompileError] = None
        svg = ""
        try:
            source_path = self._write(workspace, dot_text)
            self._parse(workspace, source_path)
            svg = self._render(workspace, source_path)
        except GraphCompileError as e:
            error = e
        finally:
            cleanup_errors = workspace.release()
            for cleanup_error in cleanup_errors:
                logger.warning(f"Failed to release graph compiler resource: {cleanup_error}")

        if error is not None:
            error.add_cleanup_errors(cleanup_errors)
            raise error
        if cleanup_errors:
            raise GraphCompileError(
                "failed to release graph compiler resources",
                stage="cleanup",
                cleanup_errors=cleanup_errors,
            )
        return svg

    def _write(self, workspace: CompilerWorkspace, dot_text: str) -> str:
        try:
            return workspace.write_source(dot_text, self.engine)
        except OSError as e:
            raise GraphCompileError(f"failed to write DOT source: {e}", stage="setup") from e

    def _parse(self, workspace: CompilerWorkspace, source_path: str) -> None:
        try:
            graphviz.render(
                self.engine, "canon", source_path, outfile=workspace.output_path("canon"), quiet=True
            )
        except graphviz.ExecutableNotFound as e:
            raise SvgRenderError(str(e)) from e
        except graphviz.CalledProcessError as e:
            raise DotParseError(str(e)) from e

    def _render(self, workspace: CompilerWorkspace, source_path: str) -> str:
        svg_path = workspace.output_path("svg")
        try:
            graphviz.render(self.engine, "svg", source_path, outfile=svg_path, quiet=True)
            with open(svg_path, "r", encoding="utf-8") as f:
                svg = f.read()
        except (graphviz.ExecutableNotFound, graphviz.CalledProcessError, OSError) as e:
            raise SvgRenderError(str(e)) from e
        logger.debug(f"Rendered SVG ({len(svg)} bytes) with engine '{self.engine}'")
        return svg
