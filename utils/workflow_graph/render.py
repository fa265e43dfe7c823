"""Render service: format selection, manifest parsing, extraction and rendering."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional, Type

import yaml
from pydantic import ValidationError

from .exceptions import InvalidFormatError, ManifestParseError
from .live_graph import build_live_graph
from .models import ManifestMetadata, WorkflowGraph, WorkflowSpec, WorkflowStatus
from .spec_graph import build_spec_graph
from .visualization.ascii_generator import AsciiTreeGenerator
from .visualization.base import GraphRenderer
from .visualization.dot_generator import DotGenerator
from .visualization.mermaid_generator import MermaidGenerator
from .visualization.svg_compiler import SvgCompiler

logger = logging.getLogger(__name__)

MAX_MANIFEST_BYTES = 1 << 20

KIND_WORKFLOW = "Workflow"
KIND_WORKFLOW_TEMPLATE = "WorkflowTemplate"
KIND_CLUSTER_WORKFLOW_TEMPLATE = "ClusterWorkflowTemplate"
KIND_CRON_WORKFLOW = "CronWorkflow"

SUPPORTED_KINDS = (
    KIND_WORKFLOW,
    KIND_WORKFLOW_TEMPLATE,
    KIND_CLUSTER_WORKFLOW_TEMPLATE,
    KIND_CRON_WORKFLOW,
)


class GraphFormat(str, Enum):
    """Output formats of a rendered graph."""

    MERMAID = "mermaid"
    ASCII = "ascii"
    DOT = "dot"
    SVG = "svg"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Optional[str]) -> "GraphFormat":
        """Parse a case-insensitive format name; empty means mermaid.

        Raises:
            InvalidFormatError: If the value names no known format
        """
        normalized = (value or "").strip().lower()
        if not normalized:
            return cls.MERMAID
        try:
            return cls(normalized)
        except ValueError:
            raise InvalidFormatError(normalized, [f.value for f in cls]) from None


_TEXT_RENDERERS: Dict[GraphFormat, Type[GraphRenderer]] = {
    GraphFormat.MERMAID: MermaidGenerator,
    GraphFormat.ASCII: AsciiTreeGenerator,
    GraphFormat.DOT: DotGenerator,
}


class ParsedManifest(NamedTuple):
    spec: WorkflowSpec
    kind: str
    name: str


@dataclass
class GraphRenderResult:
    """A rendered graph together with what it was rendered from."""

    graph: str
    format: GraphFormat
    node_count: int
    kind: str = KIND_WORKFLOW
    name: str = ""

    def summary(self) -> str:
        return f'Rendered {self.kind} "{self.name}" as {self.format.value} graph with {self.node_count} nodes'

    def to_dict(self) -> Dict[str, Any]:
        return {
            "graph": self.graph,
            "format": self.format.value,
            "node_count": self.node_count,
            "kind": self.kind,
            "name": self.name,
            "summary": self.summary(),
        }


def parse_manifest(text: str) -> ParsedManifest:
    """Parse manifest YAML into its workflow spec, kind and name.

    Args:
        text: Workflow, WorkflowTemplate, ClusterWorkflowTemplate or
            CronWorkflow manifest

    Raises:
        ManifestParseError: If the manifest is empty, oversized, malformed
            or of an unsupported kind
    """
    if not text or not text.strip():
        raise ManifestParseError("manifest cannot be empty")

    size = len(text.encode("utf-8"))
    if size > MAX_MANIFEST_BYTES:
        raise ManifestParseError(
            f"manifest too large ({size} bytes), max {MAX_MANIFEST_BYTES}",
            details={"size": size},
        )

    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ManifestParseError(f"failed to parse manifest: {e}") from e

    return parse_manifest_object(document)


def parse_manifest_object(document: Any) -> ParsedManifest:
    """Parse an already-decoded manifest object."""
    if not isinstance(document, dict):
        raise ManifestParseError("failed to parse manifest: expected a mapping at the top level")

    kind = document.get("kind") or KIND_WORKFLOW
    if kind not in SUPPORTED_KINDS:
        raise ManifestParseError(
            f"unsupported manifest kind: {kind} (must be {', '.join(SUPPORTED_KINDS[:-1])}, or {SUPPORTED_KINDS[-1]})",
            kind=kind,
        )

    spec_data = document.get("spec") or {}
    if kind == KIND_CRON_WORKFLOW and isinstance(spec_data, dict):
        spec_data = spec_data.get("workflowSpec") or {}

    try:
        metadata = ManifestMetadata.model_validate(document.get("metadata") or {})
        spec = WorkflowSpec.model_validate(spec_data)
    except ValidationError as e:
        raise ManifestParseError(f"failed to parse {kind} manifest: {e}", kind=kind) from e

    return ParsedManifest(spec=spec, kind=kind, name=metadata.display_name)


def render_graph(
    graph: WorkflowGraph, fmt: GraphFormat, include_status: bool = True, engine: str = "dot"
) -> str:
    """Serialize a graph in the requested format.

    ``engine`` selects the Graphviz layout program used for SVG output.
    """
    if fmt == GraphFormat.SVG:
        dot_text = DotGenerator(include_status=include_status).render(graph)
        return SvgCompiler(engine=engine).compile(dot_text)
    renderer = _TEXT_RENDERERS[fmt](include_status=include_status)
    return renderer.render(graph)


def render_manifest_graph(
    manifest: str, fmt: Optional[str] = "mermaid", engine: str = "dot"
) -> GraphRenderResult:
    """Render the structure of a manifest without submitting it.

    The format is validated before the manifest is parsed.
    """
    graph_format = GraphFormat.parse(fmt)
    parsed = parse_manifest(manifest)
    graph = build_spec_graph(parsed.spec)
    output = render_graph(graph, graph_format, include_status=False, engine=engine)
    logger.debug(f"Rendered {parsed.kind} '{parsed.name}' as {graph_format.value}")
    return GraphRenderResult(
        graph=output,
        format=graph_format,
        node_count=len(graph),
        kind=parsed.kind,
        name=parsed.name,
    )


def render_workflow_graph(
    workflow: Dict[str, Any],
    fmt: Optional[str] = "mermaid",
    include_status: bool = True,
    engine: str = "dot",
) -> GraphRenderResult:
    """Render the live node graph of a workflow object returned by the server."""
    graph_format = GraphFormat.parse(fmt)
    if not isinstance(workflow, dict):
        raise ManifestParseError("failed to parse workflow: expected a mapping", kind=KIND_WORKFLOW)

    try:
        metadata = ManifestMetadata.model_validate(workflow.get("metadata") or {})
        status = WorkflowStatus.model_validate(workflow.get("status") or {})
    except ValidationError as e:
        raise ManifestParseError(f"failed to parse workflow status: {e}", kind=KIND_WORKFLOW) from e

    graph = build_live_graph(status)
    output = render_graph(graph, graph_format, include_status=include_status, engine=engine)
    return GraphRenderResult(
        graph=output,
        format=graph_format,
        node_count=len(graph),
        kind=KIND_WORKFLOW,
        name=metadata.display_name,
    )
