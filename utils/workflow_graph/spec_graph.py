"""Build a normalized graph from a static workflow specification.

Only the entrypoint's immediate structure is graphed: DAG tasks become one
node each, step-groups are flattened into per-step nodes that depend on the
whole previous group, and any other template becomes a single node. Nested
DAG/steps templates referenced by a task or step are not expanded.
"""

import logging
from typing import List

from .exceptions import CyclicGraphError, EntrypointNotFoundError
from .models import (
    GraphNode,
    GraphSource,
    Template,
    TemplateKind,
    WorkflowGraph,
    WorkflowSpec,
)

logger = logging.getLogger(__name__)


def step_node_key(group_index: int, step_name: str) -> str:
    """Key of a flattened step; the group index keeps keys unique across groups."""
    return f"step-{group_index}-{step_name}"


def resolve_entrypoint(spec: WorkflowSpec) -> str:
    """The declared entrypoint, or the first template's name when unset."""
    if spec.entrypoint:
        return spec.entrypoint
    if spec.templates:
        return spec.templates[0].name
    return ""


def build_spec_graph(spec: WorkflowSpec) -> WorkflowGraph:
    """Extract the entrypoint's node graph from a workflow specification.

    Args:
        spec: Parsed workflow specification

    Returns:
        WorkflowGraph keyed by task name (DAG), synthesized step key (steps),
        or the entrypoint name (any other template kind). Empty when the spec
        declares no templates.

    Raises:
        EntrypointNotFoundError: If the entrypoint names no declared template
        CyclicGraphError: If DAG dependencies form a cycle
    """
    entrypoint = resolve_entrypoint(spec)
    if not entrypoint:
        logger.debug("Workflow spec declares no templates, returning empty graph")
        return WorkflowGraph(source=GraphSource.MANIFEST)

    entry_template = spec.get_template(entrypoint)
    if entry_template is None:
        raise EntrypointNotFoundError(entrypoint)

    kind = entry_template.kind
    if kind == TemplateKind.DAG:
        nodes = _dag_nodes(spec, entry_template)
    elif kind == TemplateKind.STEPS:
        nodes = _steps_nodes(spec, entry_template)
    else:
        nodes = [
            GraphNode(
                key=entrypoint,
                name=entrypoint,
                template_name=entrypoint,
                kind=kind.value,
            )
        ]

    graph = WorkflowGraph(nodes, source=GraphSource.MANIFEST)
    logger.debug(f"Extracted {len(graph)} nodes from {kind.value} entrypoint '{entrypoint}'")

    cycle = graph.find_cycle()
    if cycle:
        raise CyclicGraphError(cycle)
    return graph


def _referenced_kind(spec: WorkflowSpec, template_name: str) -> str:
    template = spec.get_template(template_name) if template_name else None
    return template.kind.value if template is not None else TemplateKind.UNKNOWN.value


def _dag_nodes(spec: WorkflowSpec, template: Template) -> List[GraphNode]:
    return [
        GraphNode(
            key=task.name,
            name=task.name,
            template_name=task.template,
            kind=_referenced_kind(spec, task.template),
            dependencies=tuple(task.dependencies),
            condition=task.when,
            with_items=len(task.with_items) > 0,
            with_param=bool(task.with_param),
        )
        for task in template.dag.tasks
    ]


def _steps_nodes(spec: WorkflowSpec, template: Template) -> List[GraphNode]:
    nodes: List[GraphNode] = []
    previous_group: List[str] = []
    for group_index, group in enumerate(template.steps):
        current_group: List[str] = []
        for step in group.steps:
            key = step_node_key(group_index, step.name)
            nodes.append(
                GraphNode(
                    key=key,
                    name=step.name,
                    template_name=step.template,
                    kind=_referenced_kind(spec, step.template),
                    dependencies=tuple(previous_group),
                    condition=step.when,
                    with_items=len(step.with_items) > 0,
                    with_param=bool(step.with_param),
                )
            )
            current_group.append(key)
        previous_group = current_group
    return nodes
