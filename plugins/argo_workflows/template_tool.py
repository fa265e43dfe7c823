from typing import Any, Dict

from argo_mcp.constants import Ecosystem, OSType
from argo_mcp.plugin import register_tool

from plugins.argo_workflows.base import ArgoToolBase
from plugins.argo_workflows.client import ArgoAPIError, ArgoServerClient
from plugins.argo_workflows.helpers import (
    load_manifest,
    require_name,
    resolve_namespace,
    resource_summary,
)


@register_tool(ecosystem=Ecosystem.ARGO, os_type=OSType.ALL)
class ArgoWorkflowTemplateTool(ArgoToolBase):
    """Manage WorkflowTemplates and ClusterWorkflowTemplates."""

    operations = ("list", "get", "create", "delete", "lint")

    @property
    def name(self) -> str:
        return "argo_workflow_template"

    @property
    def description(self) -> str:
        return (
            "Manage Argo WorkflowTemplates (or ClusterWorkflowTemplates with cluster_scoped): "
            "list, get, create, delete and lint"
        )

    @property
    def input_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "operation": self.operation_schema(),
                "name": {
                    "type": "string",
                    "description": "Template name",
                    "nullable": True,
                },
                "namespace": {
                    "type": "string",
                    "description": "Kubernetes namespace (ignored for cluster-scoped templates)",
                    "nullable": True,
                },
                "manifest": {
                    "type": "string",
                    "description": "Template YAML manifest for create and lint",
                    "nullable": True,
                },
                "labels": {
                    "type": "string",
                    "description": "Label selector for list",
                    "nullable": True,
                },
                "cluster_scoped": {
                    "type": "boolean",
                    "description": "Operate on ClusterWorkflowTemplates",
                    "default": False,
                },
            },
            "required": ["operation"],
        }

    @staticmethod
    def _scope(parameters: Dict[str, Any]):
        cluster_scoped = bool(parameters.get("cluster_scoped"))
        namespace = None if cluster_scoped else resolve_namespace(parameters.get("namespace"))
        kind = "ClusterWorkflowTemplate" if cluster_scoped else "WorkflowTemplate"
        return cluster_scoped, namespace, kind

    def _load(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        cluster_scoped, namespace, kind = self._scope(parameters)
        template = load_manifest(parameters.get("manifest"), kind)
        metadata = template.get("metadata") or {}
        template["metadata"] = metadata
        if cluster_scoped:
            metadata.pop("namespace", None)
        else:
            metadata["namespace"] = namespace
        return template

    async def _op_list(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        cluster_scoped, namespace, kind = self._scope(parameters)
        async with ArgoServerClient() as client:
            items = await client.list_workflow_templates(
                namespace, cluster_scoped=cluster_scoped, label_selector=parameters.get("labels") or None
            )

        templates = [resource_summary(item) for item in items]
        return {"kind": kind, "templates": templates, "total": len(templates)}

    async def _op_get(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        name = require_name(parameters.get("name"), "template")
        cluster_scoped, namespace, kind = self._scope(parameters)
        async with ArgoServerClient() as client:
            template = await client.get_workflow_template(name, namespace, cluster_scoped=cluster_scoped)

        spec = template.get("spec") or {}
        result = resource_summary(template)
        result["kind"] = kind
        result["entrypoint"] = spec.get("entrypoint", "")
        result["templates"] = [t.get("name", "") for t in spec.get("templates") or []]
        parameters_spec = (spec.get("arguments") or {}).get("parameters") or []
        if parameters_spec:
            result["parameters"] = [
                {"name": p.get("name", ""), "value": p.get("value", "")} for p in parameters_spec
            ]
        return {"template": result}

    async def _op_create(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        template = self._load(parameters)
        cluster_scoped, namespace, kind = self._scope(parameters)
        async with ArgoServerClient() as client:
            created = await client.create_workflow_template(template, namespace, cluster_scoped=cluster_scoped)

        summary = resource_summary(created)
        self.logger.info(f"Created {kind} {summary.get('name')}")
        return {"template": summary, "message": f'{kind} "{summary.get("name", "")}" created'}

    async def _op_delete(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        name = require_name(parameters.get("name"), "template")
        cluster_scoped, namespace, kind = self._scope(parameters)
        async with ArgoServerClient() as client:
            await client.delete_workflow_template(name, namespace, cluster_scoped=cluster_scoped)

        result = {"name": name, "message": f'{kind} "{name}" deleted'}
        if namespace:
            result["namespace"] = namespace
        return result

    async def _op_lint(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        template = self._load(parameters)
        cluster_scoped, namespace, kind = self._scope(parameters)

        errors = []
        async with ArgoServerClient() as client:
            try:
                await client.lint_workflow_template(template, namespace, cluster_scoped=cluster_scoped)
            except ArgoAPIError as e:
                if e.status_code == 0:
                    raise
                errors.append(e.message)

        result = {"valid": not errors, "kind": kind, "name": template["metadata"].get("name", "")}
        if errors:
            result["errors"] = errors
        return result
