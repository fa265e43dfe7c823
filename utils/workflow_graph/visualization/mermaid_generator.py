"""Mermaid flowchart generator for workflow graphs."""

import logging
from typing import List

from ..models import GraphNode, NodePhase, WorkflowGraph
from .base import PHASE_STYLES, GraphRenderer, phase_style, placeholder_text

logger = logging.getLogger(__name__)

_STATUS_CLASS_DEFS = {
    NodePhase.SUCCEEDED: "fill:#22c55e,color:#fff,stroke:#16a34a",
    NodePhase.FAILED: "fill:#ef4444,color:#fff,stroke:#dc2626",
    NodePhase.RUNNING: "fill:#3b82f6,color:#fff,stroke:#2563eb",
    NodePhase.PENDING: "fill:#9ca3af,color:#fff,stroke:#6b7280",
    NodePhase.ERROR: "fill:#dc2626,color:#fff,stroke:#b91c1c",
    NodePhase.SKIPPED: "fill:#d1d5db,color:#374151,stroke:#9ca3af",
    NodePhase.OMITTED: "fill:#e5e7eb,color:#6b7280,stroke:#d1d5db",
}

_DEFAULT_CLASS_DEF = "classDef default fill:#e5e7eb,color:#374151,stroke:#9ca3af"

# Words the flowchart parser reads as statements rather than node ids
_RESERVED_IDS = frozenset(
    {
        "end",
        "graph",
        "flowchart",
        "subgraph",
        "direction",
        "style",
        "classdef",
        "class",
        "click",
        "linkstyle",
        "default",
    }
)
_RESERVED_PREFIX = "n_"


class MermaidGenerator(GraphRenderer):
    """Render a WorkflowGraph as a Mermaid ``flowchart TD`` diagram."""

    format_name = "mermaid"

    def node_id(self, key: str) -> str:
        identifier = super().node_id(key)
        if identifier.lower() in _RESERVED_IDS:
            return _RESERVED_PREFIX + identifier
        return identifier

    def render(self, graph: WorkflowGraph) -> str:
        """Generate the flowchart.

        Args:
            graph: Graph to render

        Returns:
            Mermaid markup; node lines first, then edges, then class definitions
        """
        if len(graph) == 0:
            return f"flowchart TD\n    Start[{placeholder_text(graph)}]"

        show_status = self.show_status(graph)
        ids = self.safe_ids(graph)
        lines: List[str] = ["flowchart TD"]

        for key in graph.sorted_keys():
            node = graph[key]
            line = f'    {ids[key]}["{self._escape(self._node_label(node))}"]'
            if show_status:
                line += f":::{phase_style(node.phase).class_name}"
            lines.append(line)

        for src, dst, conditional in graph.edges():
            arrow = "-.->" if conditional else "-->"
            lines.append(f"    {ids[src]} {arrow} {ids[dst]}")

        lines.append("")
        if show_status:
            for phase, style in PHASE_STYLES.items():
                lines.append(f"    classDef {style.class_name} {_STATUS_CLASS_DEFS[phase]}")
        else:
            lines.append(f"    {_DEFAULT_CLASS_DEF}")

        logger.debug(f"Generated mermaid flowchart with {len(graph)} nodes")
        return "\n".join(lines) + "\n"

    @staticmethod
    def _node_label(node: GraphNode) -> str:
        label = node.label
        if node.with_items:
            label += " [loop]"
        if node.with_param:
            label += " [param-loop]"
        if node.is_conditional:
            label += " [conditional]"
        return label

    @staticmethod
    def _escape(text: str) -> str:
        return text.replace('"', "#quot;")
