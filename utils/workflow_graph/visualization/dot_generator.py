"""Graphviz DOT generator for workflow graphs."""

import logging
from typing import List

from ..models import GraphNode, WorkflowGraph
from .base import GraphRenderer, phase_style, placeholder_text

logger = logging.getLogger(__name__)

DEFAULT_FILL_COLOR = "#e5e7eb"


def escape_dot_string(text: str) -> str:
    """Escape text for use inside a double-quoted DOT string."""
    return text.replace("\\", "\\\\").replace('"', '\\"')


class DotGenerator(GraphRenderer):
    """Render a WorkflowGraph as a DOT ``digraph``."""

    format_name = "dot"

    def render(self, graph: WorkflowGraph) -> str:
        if len(graph) == 0:
            return f'digraph workflow {{\n    "{placeholder_text(graph)}"\n}}\n'

        show_status = self.show_status(graph)
        ids = self.safe_ids(graph)
        lines: List[str] = [
            "digraph workflow {",
            "    rankdir=TB;",
            f'    node [shape=box, style=filled, fillcolor="{DEFAULT_FILL_COLOR}"];',
            "",
        ]

        for key in graph.sorted_keys():
            node = graph[key]
            attrs = f'label="{self._node_label(node)}"'
            if show_status:
                attrs += f', fillcolor="{phase_style(node.phase).color}"'
            lines.append(f'    "{ids[key]}" [{attrs}];')

        for src, dst, conditional in graph.edges():
            style = " [style=dashed]" if conditional else ""
            lines.append(f'    "{ids[src]}" -> "{ids[dst]}"{style};')

        lines.append("}")
        logger.debug(f"Generated DOT graph with {len(graph)} nodes")
        return "\n".join(lines) + "\n"

    @staticmethod
    def _node_label(node: GraphNode) -> str:
        # \n is a DOT line break inside the label
        label = escape_dot_string(node.name)
        if node.template_name and node.template_name != node.name:
            label += f"\\n({escape_dot_string(node.template_name)})"
        if node.with_items:
            label += " [loop]"
        if node.with_param:
            label += " [param-loop]"
        if node.is_conditional:
            label += " [conditional]"
        return label
