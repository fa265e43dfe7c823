"""Template classification."""

from typing import TYPE_CHECKING, Callable, List, Tuple

from .models import TemplateKind

if TYPE_CHECKING:
    from .models import Template


# First match wins, in this order.
_KIND_CHECKS: List[Tuple[TemplateKind, Callable[["Template"], bool]]] = [
    (TemplateKind.CONTAINER, lambda t: t.container is not None),
    (TemplateKind.SCRIPT, lambda t: t.script is not None),
    (TemplateKind.DAG, lambda t: t.dag is not None),
    (TemplateKind.STEPS, lambda t: len(t.steps) > 0),
    (TemplateKind.RESOURCE, lambda t: t.resource is not None),
    (TemplateKind.SUSPEND, lambda t: t.suspend is not None),
    (TemplateKind.HTTP, lambda t: t.http is not None),
    (TemplateKind.PLUGIN, lambda t: t.plugin is not None),
    (TemplateKind.CONTAINER_SET, lambda t: t.container_set is not None),
    (TemplateKind.DATA, lambda t: t.data is not None),
]


def classify_template(template: "Template") -> TemplateKind:
    """Return the kind of a template, or ``TemplateKind.UNKNOWN`` if no body is set."""
    for kind, is_populated in _KIND_CHECKS:
        if is_populated(template):
            return kind
    return TemplateKind.UNKNOWN
