"""ASCII tree generator for workflow graphs."""

import logging
from typing import List, Set, Tuple

from ..models import GraphNode, WorkflowGraph
from .base import GraphRenderer, phase_style, placeholder_text

logger = logging.getLogger(__name__)

BRANCH = "├── "
LAST_BRANCH = "└── "
PIPE_PREFIX = "│   "
SPACE_PREFIX = "    "

LOOP_GLYPH = "↻"
CONDITIONAL_GLYPH = "?"


class AsciiTreeGenerator(GraphRenderer):
    """Render a WorkflowGraph as an indented tree.

    Traversal is depth-first from each root in sorted order. A node reached
    again, through a second parent or from a later root, is not printed a
    second time, so every subtree appears once at its first visit.
    """

    format_name = "ascii"

    def render(self, graph: WorkflowGraph) -> str:
        if len(graph) == 0:
            return placeholder_text(graph)

        show_status = self.show_status(graph)
        children = graph.child_map()
        roots = graph.roots()

        lines: List[str] = []
        visited: Set[str] = set()
        # (key, prefix, is_last); pushed in reverse so pops follow sorted order
        stack: List[Tuple[str, str, bool]] = [
            (root, "", i == len(roots) - 1) for i, root in reversed(list(enumerate(roots)))
        ]

        while stack:
            key, prefix, is_last = stack.pop()
            if key in visited:
                continue
            visited.add(key)

            branch = LAST_BRANCH if is_last else BRANCH
            lines.append(prefix + branch + self._node_text(graph[key], show_status))

            child_prefix = prefix + (SPACE_PREFIX if is_last else PIPE_PREFIX)
            node_children = children[key]
            for i in reversed(range(len(node_children))):
                stack.append((node_children[i], child_prefix, i == len(node_children) - 1))

        logger.debug(f"Generated ASCII tree with {len(lines)} lines from {len(roots)} roots")
        return "\n".join(lines) + "\n"

    @staticmethod
    def _node_text(node: GraphNode, show_status: bool) -> str:
        text = node.label
        if node.is_loop:
            text += f" {LOOP_GLYPH}"
        if node.is_conditional:
            text += f" {CONDITIONAL_GLYPH}"
        if show_status:
            text += f" {phase_style(node.phase).symbol}"
        return text
