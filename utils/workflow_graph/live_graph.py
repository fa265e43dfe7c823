"""Build a normalized graph from a workflow's live node-status map."""

import logging
from typing import Dict, List, Optional

from .exceptions import CyclicGraphError
from .models import GraphNode, GraphSource, NodePhase, NodeStatus, WorkflowGraph, WorkflowStatus

logger = logging.getLogger(__name__)

# Engine bookkeeping nodes with no visual meaning of their own.
VIRTUAL_NODE_TYPES = frozenset({"Retry", "StepGroup", "TaskGroup"})

# Node types known to carry work.
RENDERABLE_NODE_TYPES = frozenset(
    {"Pod", "Container", "Steps", "DAG", "Skipped", "Suspend", "HTTP", "Plugin"}
)


def is_renderable_node(node: Optional[NodeStatus]) -> bool:
    """Whether a node should appear in a rendered graph.

    Virtual types are excluded; unrecognized types are rendered.
    """
    if node is None:
        return False
    if node.type in VIRTUAL_NODE_TYPES:
        return False
    if node.type not in RENDERABLE_NODE_TYPES:
        logger.debug(f"Rendering node '{node.id}' with unrecognized type '{node.type}'")
    return True


def build_live_graph(status: WorkflowStatus) -> WorkflowGraph:
    """Extract the renderable nodes of a workflow's status.

    Virtual nodes are dropped together with every edge that touches them,
    so a node is a root exactly when no renderable node lists it as a child.

    Args:
        status: Workflow status holding the id -> node map

    Returns:
        WorkflowGraph keyed by node id, carrying phases and child pointers

    Raises:
        CyclicGraphError: If child pointers form a cycle
    """
    renderable: Dict[str, NodeStatus] = {
        node_id: node
        for node_id, node in status.nodes.items()
        if is_renderable_node(node)
    }
    dropped = len(status.nodes) - len(renderable)
    if dropped:
        logger.debug(f"Dropped {dropped} virtual nodes from live graph")

    nodes: List[GraphNode] = []
    for node_id, node in renderable.items():
        nodes.append(
            GraphNode(
                key=node_id,
                name=node.label,
                template_name=node.template_name,
                kind=node.type,
                phase=NodePhase.from_value(node.phase),
                children=tuple(child for child in node.children if child in renderable),
            )
        )

    graph = WorkflowGraph(nodes, source=GraphSource.WORKFLOW, has_status=True)
    cycle = graph.find_cycle()
    if cycle:
        raise CyclicGraphError(cycle)
    return graph
