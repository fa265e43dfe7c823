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


def cron_summary(cron_workflow: Dict[str, Any]) -> Dict[str, Any]:
    """Schedule and last run of a cron workflow on top of the resource summary."""
    summary = resource_summary(cron_workflow)
    spec = cron_workflow.get("spec") or {}
    status = cron_workflow.get("status") or {}

    schedules = list(spec.get("schedules") or [])
    if spec.get("schedule") and spec["schedule"] not in schedules:
        schedules.insert(0, spec["schedule"])
    summary["schedules"] = schedules
    summary["suspended"] = bool(spec.get("suspend"))
    if spec.get("timezone"):
        summary["timezone"] = spec["timezone"]
    if spec.get("concurrencyPolicy"):
        summary["concurrency_policy"] = spec["concurrencyPolicy"]
    if status.get("lastScheduledTime"):
        summary["last_scheduled_at"] = status["lastScheduledTime"]
    summary["active"] = len(status.get("active") or [])
    return summary


@register_tool(ecosystem=Ecosystem.ARGO, os_type=OSType.ALL)
class ArgoCronWorkflowTool(ArgoToolBase):
    """Manage CronWorkflows."""

    operations = ("list", "get", "create", "delete", "suspend", "resume", "lint")

    @property
    def name(self) -> str:
        return "argo_cron_workflow"

    @property
    def description(self) -> str:
        return "Manage Argo CronWorkflows: list, get, create, delete, suspend, resume and lint"

    @property
    def input_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "operation": self.operation_schema(),
                "name": {
                    "type": "string",
                    "description": "CronWorkflow name",
                    "nullable": True,
                },
                "namespace": {
                    "type": "string",
                    "description": "Kubernetes namespace (uses the configured default if not specified)",
                    "nullable": True,
                },
                "manifest": {
                    "type": "string",
                    "description": "CronWorkflow YAML manifest for create and lint",
                    "nullable": True,
                },
                "labels": {
                    "type": "string",
                    "description": "Label selector for list",
                    "nullable": True,
                },
            },
            "required": ["operation"],
        }

    def _load(self, parameters: Dict[str, Any], namespace: str) -> Dict[str, Any]:
        cron_workflow = load_manifest(parameters.get("manifest"), "CronWorkflow")
        metadata = cron_workflow.get("metadata") or {}
        cron_workflow["metadata"] = metadata
        metadata["namespace"] = namespace
        return cron_workflow

    async def _op_list(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        namespace = resolve_namespace(parameters.get("namespace"))
        async with ArgoServerClient() as client:
            items = await client.list_cron_workflows(namespace, label_selector=parameters.get("labels") or None)

        cron_workflows = [cron_summary(item) for item in items]
        return {"cron_workflows": cron_workflows, "total": len(cron_workflows)}

    async def _op_get(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        name = require_name(parameters.get("name"), "cron workflow")
        namespace = resolve_namespace(parameters.get("namespace"))
        async with ArgoServerClient() as client:
            cron_workflow = await client.get_cron_workflow(namespace, name)

        result = cron_summary(cron_workflow)
        workflow_spec = (cron_workflow.get("spec") or {}).get("workflowSpec") or {}
        result["entrypoint"] = workflow_spec.get("entrypoint", "")
        return {"cron_workflow": result}

    async def _op_create(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        namespace = resolve_namespace(parameters.get("namespace"))
        cron_workflow = self._load(parameters, namespace)
        async with ArgoServerClient() as client:
            created = await client.create_cron_workflow(namespace, cron_workflow)

        summary = cron_summary(created)
        self.logger.info(f"Created cron workflow {summary.get('name')} in namespace {namespace}")
        return {"cron_workflow": summary, "message": f'CronWorkflow "{summary.get("name", "")}" created'}

    async def _op_delete(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        name = require_name(parameters.get("name"), "cron workflow")
        namespace = resolve_namespace(parameters.get("namespace"))
        async with ArgoServerClient() as client:
            await client.delete_cron_workflow(namespace, name)
        return {
            "name": name,
            "namespace": namespace,
            "message": f'CronWorkflow "{name}" deleted from namespace "{namespace}"',
        }

    async def _set_suspended(self, parameters: Dict[str, Any], suspended: bool) -> Dict[str, Any]:
        name = require_name(parameters.get("name"), "cron workflow")
        namespace = resolve_namespace(parameters.get("namespace"))
        async with ArgoServerClient() as client:
            updated = await client.set_cron_workflow_suspended(namespace, name, suspended)

        summary = cron_summary(updated) if updated else {"name": name, "namespace": namespace}
        summary["suspended"] = suspended
        verb = "suspended" if suspended else "resumed"
        return {"cron_workflow": summary, "message": f'CronWorkflow "{name}" {verb}'}

    async def _op_suspend(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        return await self._set_suspended(parameters, True)

    async def _op_resume(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        return await self._set_suspended(parameters, False)

    async def _op_lint(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        namespace = resolve_namespace(parameters.get("namespace"))
        cron_workflow = self._load(parameters, namespace)

        errors = []
        async with ArgoServerClient() as client:
            try:
                await client.lint_cron_workflow(namespace, cron_workflow)
            except ArgoAPIError as e:
                if e.status_code == 0:
                    raise
                errors.append(e.message)

        result = {
            "valid": not errors,
            "name": cron_workflow["metadata"].get("name", ""),
            "namespace": namespace,
        }
        if errors:
            result["errors"] = errors
        return result
