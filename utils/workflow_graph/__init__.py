"""Workflow graph extraction and rendering for Argo Workflows."""

from .classifier import classify_template
from .exceptions import (
    CyclicGraphError,
    DotParseError,
    EntrypointNotFoundError,
    GraphCompileError,
    IdentifierCollisionError,
    InvalidFormatError,
    ManifestParseError,
    SvgRenderError,
    WorkflowGraphError,
)
from .live_graph import build_live_graph
from .models import (
    GraphNode,
    GraphSource,
    NodePhase,
    NodeStatus,
    Template,
    TemplateKind,
    WorkflowGraph,
    WorkflowSpec,
    WorkflowStatus,
)
from .render import (
    GraphFormat,
    GraphRenderResult,
    parse_manifest,
    render_graph,
    render_manifest_graph,
    render_workflow_graph,
)
from .spec_graph import build_spec_graph

__all__ = [
    # Extraction
    "classify_template",
    "build_spec_graph",
    "build_live_graph",

    # Rendering
    "GraphFormat",
    "GraphRenderResult",
    "parse_manifest",
    "render_graph",
    "render_manifest_graph",
    "render_workflow_graph",

    # Data models
    "GraphNode",
    "GraphSource",
    "NodePhase",
    "NodeStatus",
    "Template",
    "TemplateKind",
    "WorkflowGraph",
    "WorkflowSpec",
    "WorkflowStatus",

    # Exceptions
    "WorkflowGraphError",
    "ManifestParseError",
    "EntrypointNotFoundError",
    "InvalidFormatError",
    "CyclicGraphError",
    "IdentifierCollisionError",
    "GraphCompileError",
    "DotParseError",
    "SvgRenderError",
]
