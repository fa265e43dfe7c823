"""Shared pieces of the graph renderers."""

import re
from abc import ABC, abstractmethod
from typing import Dict, List, NamedTuple, Optional

from ..exceptions import IdentifierCollisionError
from ..models import GraphSource, NodePhase, WorkflowGraph

_UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9_]")


class PhaseStyle(NamedTuple):
    """Presentation of a node phase."""

    class_name: str
    color: str
    symbol: str


PHASE_STYLES: Dict[NodePhase, PhaseStyle] = {
    NodePhase.SUCCEEDED: PhaseStyle("succeeded", "#22c55e", "✓"),
    NodePhase.FAILED: PhaseStyle("failed", "#ef4444", "✗"),
    NodePhase.RUNNING: PhaseStyle("running", "#3b82f6", "◉"),
    NodePhase.PENDING: PhaseStyle("pending", "#9ca3af", "○"),
    NodePhase.ERROR: PhaseStyle("error", "#dc2626", "⚠"),
    NodePhase.SKIPPED: PhaseStyle("skipped", "#d1d5db", "⊘"),
    NodePhase.OMITTED: PhaseStyle("omitted", "#e5e7eb", "⊗"),
}


def phase_style(phase: Optional[NodePhase]) -> PhaseStyle:
    """Style for a phase; unset or unknown phases look pending."""
    return PHASE_STYLES.get(phase, PHASE_STYLES[NodePhase.PENDING])


def sanitize_id(key: str) -> str:
    """Map every character outside ``[A-Za-z0-9_]`` to ``_``."""
    return _UNSAFE_ID_CHARS.sub("_", key)


def placeholder_text(graph: WorkflowGraph) -> str:
    if graph.source == GraphSource.WORKFLOW:
        return "No nodes in workflow"
    return "No templates in workflow"


class GraphRenderer(ABC):
    """Base class for text renderers of a WorkflowGraph."""

    format_name: str = ""

    def __init__(self, include_status: bool = True):
        self.include_status = include_status

    def show_status(self, graph: WorkflowGraph) -> bool:
        return self.include_status and graph.has_status

    @abstractmethod
    def render(self, graph: WorkflowGraph) -> str:
        """Render the graph as text."""
        pass

    def node_id(self, key: str) -> str:
        return sanitize_id(key)

    def safe_ids(self, graph: WorkflowGraph) -> Dict[str, str]:
        """Sanitized identifier per node key and per dangling dependency key.

        Raises:
            IdentifierCollisionError: If two distinct keys share an identifier
        """
        keys = set(graph.sorted_keys())
        for src, dst, _ in graph.edges():
            keys.add(src)
            keys.add(dst)

        owners: Dict[str, List[str]] = {}
        for key in sorted(keys):
            owners.setdefault(self.node_id(key), []).append(key)
        for identifier, claimed_by in owners.items():
            if len(claimed_by) > 1:
                raise IdentifierCollisionError(identifier, claimed_by)
        return {key: self.node_id(key) for key in keys}
