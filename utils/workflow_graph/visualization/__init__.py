"""Renderers for workflow graphs.

Mermaid, ASCII and DOT generators share the GraphRenderer base; the SVG
compiler turns DOT output into an image through Graphviz.
"""

from .ascii_generator import AsciiTreeGenerator
from .base import GraphRenderer, PhaseStyle, phase_style, sanitize_id
from .dot_generator import DotGenerator
from .mermaid_generator import MermaidGenerator
from .svg_compiler import SvgCompiler

__all__ = [
    "AsciiTreeGenerator",
    "DotGenerator",
    "GraphRenderer",
    "MermaidGenerator",
    "PhaseStyle",
    "SvgCompiler",
    "phase_style",
    "sanitize_id",
]
