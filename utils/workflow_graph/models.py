"""Data models for workflow manifests, live node status, and the normalized graph."""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class TemplateKind(str, Enum):
    """Kind tag of a single workflow template."""

    CONTAINER = "container"
    SCRIPT = "script"
    DAG = "dag"
    STEPS = "steps"
    RESOURCE = "resource"
    SUSPEND = "suspend"
    HTTP = "http"
    PLUGIN = "plugin"
    CONTAINER_SET = "containerSet"
    DATA = "data"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        return self.value


class NodePhase(str, Enum):
    """Runtime phase of a live workflow node."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    ERROR = "Error"
    SKIPPED = "Skipped"
    OMITTED = "Omitted"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_value(cls, value: Optional[str]) -> Optional["NodePhase"]:
        """Map a raw phase string to a NodePhase, or None when unset/unknown."""
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class GraphSource(str, Enum):
    """Where a graph was extracted from."""

    MANIFEST = "manifest"
    WORKFLOW = "workflow"

    def __str__(self) -> str:
        return self.value


class ArgoModel(BaseModel):
    """Base model accepting Argo's camelCase field names."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class DagTask(ArgoModel):
    """One task inside a DAG template."""

    name: str = Field(..., description="Task name")
    template: str = Field("", description="Template the task instantiates")
    dependencies: List[str] = Field(default_factory=list, description="Names of upstream tasks")
    depends: str = Field("", description="Enhanced depends expression")
    when: str = Field("", description="Guard expression")
    with_items: List[Any] = Field(default_factory=list, alias="withItems")
    with_param: str = Field("", alias="withParam")

    @field_validator("dependencies", "with_items", mode="before")
    @classmethod
    def none_as_empty_list(cls, v):
        return [] if v is None else v

    @field_validator("template", "depends", "when", "with_param", mode="before")
    @classmethod
    def none_as_empty_string(cls, v):
        return "" if v is None else v


class WorkflowStep(ArgoModel):
    """One step inside a step-group."""

    name: str = Field(..., description="Step name")
    template: str = Field("", description="Template the step instantiates")
    when: str = Field("", description="Guard expression")
    with_items: List[Any] = Field(default_factory=list, alias="withItems")
    with_param: str = Field("", alias="withParam")

    @field_validator("with_items", mode="before")
    @classmethod
    def none_as_empty_list(cls, v):
        return [] if v is None else v

    @field_validator("template", "when", "with_param", mode="before")
    @classmethod
    def none_as_empty_string(cls, v):
        return "" if v is None else v


class ParallelSteps(ArgoModel):
    """A step-group: every step runs after the whole previous group completes."""

    steps: List[WorkflowStep] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def accept_bare_list(cls, data):
        # Argo serialises a step-group as a plain list of steps
        if data is None:
            return {"steps": []}
        if isinstance(data, list):
            return {"steps": data}
        return data


class DagTemplate(ArgoModel):
    """Body of a DAG template."""

    tasks: List[DagTask] = Field(default_factory=list)

    @field_validator("tasks", mode="before")
    @classmethod
    def none_as_empty_list(cls, v):
        return [] if v is None else v


class Template(ArgoModel):
    """A named template.

    Exactly one body is expected to be populated. ``kind`` and ``body``
    expose which one, so callers never probe the individual fields.
    """

    name: str = ""
    container: Optional[Dict[str, Any]] = None
    script: Optional[Dict[str, Any]] = None
    dag: Optional[DagTemplate] = None
    steps: List[ParallelSteps] = Field(default_factory=list)
    resource: Optional[Dict[str, Any]] = None
    suspend: Optional[Dict[str, Any]] = None
    http: Optional[Dict[str, Any]] = None
    plugin: Optional[Dict[str, Any]] = None
    container_set: Optional[Dict[str, Any]] = Field(None, alias="containerSet")
    data: Optional[Dict[str, Any]] = None

    @field_validator("steps", mode="before")
    @classmethod
    def none_as_empty_list(cls, v):
        return [] if v is None else v

    @property
    def kind(self) -> TemplateKind:
        from .classifier import classify_template

        return classify_template(self)

    @property
    def body(self) -> Any:
        """The populated payload for this template's kind, or None."""
        kind = self.kind
        if kind == TemplateKind.UNKNOWN:
            return None
        if kind == TemplateKind.CONTAINER_SET:
            return self.container_set
        return getattr(self, kind.value)


class WorkflowSpec(ArgoModel):
    """Structural part of a workflow: entrypoint plus templates."""

    entrypoint: str = ""
    templates: List[Template] = Field(default_factory=list)

    @field_validator("entrypoint", mode="before")
    @classmethod
    def none_as_empty_string(cls, v):
        return "" if v is None else v

    @field_validator("templates", mode="before")
    @classmethod
    def none_as_empty_list(cls, v):
        return [] if v is None else v

    def get_template(self, name: str) -> Optional[Template]:
        """Look up a template by name."""
        for template in self.templates:
            if template.name == name:
                return template
        return None


class ManifestMetadata(ArgoModel):
    """Subset of Kubernetes object metadata used for naming."""

    name: str = ""
    generate_name: str = Field("", alias="generateName")
    namespace: str = ""

    @field_validator("name", "generate_name", "namespace", mode="before")
    @classmethod
    def none_as_empty_string(cls, v):
        return "" if v is None else v

    @property
    def display_name(self) -> str:
        return self.name or self.generate_name


class NodeStatus(ArgoModel):
    """Status of one node of a running or finished workflow."""

    id: str = ""
    name: str = ""
    display_name: str = Field("", alias="displayName")
    template_name: str = Field("", alias="templateName")
    type: str = ""
    phase: str = ""
    children: List[str] = Field(default_factory=list)

    @field_validator("id", "name", "display_name", "template_name", "type", "phase", mode="before")
    @classmethod
    def none_as_empty_string(cls, v):
        return "" if v is None else v

    @field_validator("children", mode="before")
    @classmethod
    def none_as_empty_list(cls, v):
        return [] if v is None else v

    @property
    def label(self) -> str:
        return self.display_name or self.template_name or self.name


class WorkflowStatus(ArgoModel):
    """Execution status of a workflow."""

    phase: str = ""
    message: str = ""
    nodes: Dict[str, NodeStatus] = Field(default_factory=dict)

    @field_validator("phase", "message", mode="before")
    @classmethod
    def none_as_empty_string(cls, v):
        return "" if v is None else v

    @field_validator("nodes", mode="before")
    @classmethod
    def none_as_empty_dict(cls, v):
        return {} if v is None else v


@dataclass(frozen=True)
class GraphNode:
    """A vertex of the normalized workflow graph, shared by every renderer."""

    key: str
    name: str
    template_name: str = ""
    kind: str = TemplateKind.UNKNOWN.value
    dependencies: Tuple[str, ...] = ()
    condition: str = ""
    with_items: bool = False
    with_param: bool = False
    phase: Optional[NodePhase] = None
    children: Tuple[str, ...] = ()

    @property
    def is_conditional(self) -> bool:
        return bool(self.condition)

    @property
    def is_loop(self) -> bool:
        return self.with_items or self.with_param

    @property
    def label(self) -> str:
        """``name``, or ``name (templateName)`` when the two differ."""
        if self.template_name and self.template_name != self.name:
            return f"{self.name} ({self.template_name})"
        return self.name


class WorkflowGraph(Mapping):
    """Immutable mapping of node key to GraphNode.

    Static graphs carry backward ``dependencies`` pointers, live graphs carry
    forward ``children`` pointers. ``edges()`` folds both into ``(from, to)``
    pairs so renderers traverse a single direction.
    """

    def __init__(
        self,
        nodes: Iterable[GraphNode] = (),
        source: GraphSource = GraphSource.MANIFEST,
        has_status: bool = False,
    ):
        self._nodes = MappingProxyType({node.key: node for node in nodes})
        self.source = source
        self.has_status = has_status

    def __getitem__(self, key: str) -> GraphNode:
        return self._nodes[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.sorted_keys())

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"WorkflowGraph(source={self.source.value}, nodes={self.sorted_keys()})"

    def sorted_keys(self) -> List[str]:
        return sorted(self._nodes)

    def edges(self) -> List[Tuple[str, str, bool]]:
        """Deduplicated ``(from, to, conditional)`` triples in sorted order.

        An edge is conditional when its target node carries a guard.
        """
        pairs: Set[Tuple[str, str]] = set()
        for key, node in self._nodes.items():
            for dep in node.dependencies:
                pairs.add((dep, key))
            for child in node.children:
                pairs.add((key, child))

        edges = []
        for src, dst in sorted(pairs):
            target = self._nodes.get(dst)
            edges.append((src, dst, target is not None and target.is_conditional))
        return edges

    def child_map(self) -> Dict[str, List[str]]:
        """Forward adjacency restricted to nodes present in the graph."""
        children: Dict[str, List[str]] = {key: [] for key in self.sorted_keys()}
        for src, dst, _ in self.edges():
            if src in self._nodes and dst in self._nodes:
                children[src].append(dst)
        return children

    def roots(self) -> List[str]:
        """Keys with no incoming edge from another node of this graph."""
        has_parent: Set[str] = set()
        for src, dst, _ in self.edges():
            if src in self._nodes and dst in self._nodes:
                has_parent.add(dst)
        return [key for key in self.sorted_keys() if key not in has_parent]

    def find_cycle(self) -> Optional[List[str]]:
        """Return one cycle as a key path (first key repeated at the end), or None."""
        children = self.child_map()
        done: Set[str] = set()

        for start in self.sorted_keys():
            if start in done:
                continue
            path: List[str] = [start]
            on_path: Set[str] = {start}
            # one iterator per path entry, so long chains need no recursion
            pending: List[Iterator[str]] = [iter(children[start])]
            while pending:
                child = next(pending[-1], None)
                if child is None:
                    pending.pop()
                    finished = path.pop()
                    on_path.discard(finished)
                    done.add(finished)
                elif child in on_path:
                    return path[path.index(child):] + [child]
                elif child not in done:
                    path.append(child)
                    on_path.add(child)
                    pending.append(iter(children[child]))
        return None
