from typing import Any, Dict, Optional

from argo_mcp.constants import Ecosystem, OSType
from argo_mcp.plugin import register_tool

from plugins.argo_workflows.base import ArgoToolBase
from plugins.argo_workflows.client import ArgoServerClient
from plugins.argo_workflows.helpers import parse_count, workflow_details, workflow_summary


def require_uid(uid: Optional[str]) -> str:
    uid = (uid or "").strip()
    if not uid:
        raise ValueError("workflow UID cannot be empty")
    return uid


@register_tool(ecosystem=Ecosystem.ARGO, os_type=OSType.ALL)
class ArgoArchivedWorkflowTool(ArgoToolBase):
    """Browse and act on workflows kept in the Argo workflow archive.

    Archived workflows are addressed by UID. Retry and resubmit create a new
    live workflow from the archived one. The archive is only reachable
    through the Argo Server and needs persistence to be enabled there.
    """

    operations = ("list", "get", "delete", "retry", "resubmit")

    @property
    def name(self) -> str:
        return "argo_archived_workflow"

    @property
    def description(self) -> str:
        return "Work with the Argo workflow archive: list, get, delete, retry and resubmit archived workflows"

    @property
    def input_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "operation": self.operation_schema(),
                "uid": {
                    "type": "string",
                    "description": "Archived workflow UID",
                    "nullable": True,
                },
                "namespace": {
                    "type": "string",
                    "description": (
                        "Namespace filter for list (all namespaces if omitted), or the namespace "
                        "to run a retried or resubmitted workflow in (its original one if omitted)"
                    ),
                    "nullable": True,
                },
                "labels": {
                    "type": "string",
                    "description": "Label selector for list",
                    "nullable": True,
                },
                "limit": {
                    "type": "integer",
                    "description": "Maximum number of archived workflows to list",
                    "nullable": True,
                },
                "parameters": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Parameter overrides in key=value format (retry, resubmit)",
                    "nullable": True,
                },
                "node_field_selector": {
                    "type": "string",
                    "description": "Selector for the nodes to retry (e.g. phase=Failed)",
                    "nullable": True,
                },
                "restart_successful": {
                    "type": "boolean",
                    "description": "Also restart successful nodes on retry",
                    "default": False,
                },
                "memoized": {
                    "type": "boolean",
                    "description": "Reuse memoized results on resubmit",
                    "default": False,
                },
            },
            "required": ["operation"],
        }

    async def _op_list(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        namespace = (parameters.get("namespace") or "").strip() or None
        limit = parse_count(parameters.get("limit"), "limit")
        async with ArgoServerClient() as client:
            items = await client.list_archived_workflows(
                namespace,
                label_selector=parameters.get("labels") or None,
                limit=limit if limit and limit > 0 else None,
            )

        workflows = [workflow_summary(item) for item in items]
        scope = f'in namespace "{namespace}"' if namespace else "across all namespaces"
        return {
            "workflows": workflows,
            "total": len(workflows),
            "message": f"Found {len(workflows)} archived workflow(s) {scope}",
        }

    async def _op_get(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        uid = require_uid(parameters.get("uid"))
        async with ArgoServerClient() as client:
            workflow = await client.get_archived_workflow(uid)
        return {"workflow": workflow_details(workflow)}

    async def _op_delete(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        uid = require_uid(parameters.get("uid"))
        async with ArgoServerClient() as client:
            await client.delete_archived_workflow(uid)
        return {"uid": uid, "message": f"Archived workflow {uid} deleted"}

    async def _run_archived(
        self, action: str, parameters: Dict[str, Any], options: Dict[str, Any]
    ) -> Dict[str, Any]:
        uid = require_uid(parameters.get("uid"))
        namespace = (parameters.get("namespace") or "").strip() or None
        if parameters.get("parameters"):
            options["parameters"] = list(parameters["parameters"])

        async with ArgoServerClient() as client:
            workflow = await client.archived_workflow_action(uid, action, namespace=namespace, options=options)

        summary = workflow_summary(workflow)
        verb = "retried" if action == "retry" else "resubmitted"
        self.logger.info(f"Archived workflow {uid} {verb} as {summary.get('name')}")
        return {
            "archived_uid": uid,
            "workflow": summary,
            "message": (
                f'Archived workflow {verb} as "{summary.get("name", "")}" '
                f'in namespace "{summary.get("namespace", "")}"'
            ),
        }

    async def _op_retry(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        options: Dict[str, Any] = {}
        if parameters.get("node_field_selector"):
            options["nodeFieldSelector"] = parameters["node_field_selector"]
        if parameters.get("restart_successful"):
            options["restartSuccessful"] = True
        return await self._run_archived("retry", parameters, options)

    async def _op_resubmit(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        options: Dict[str, Any] = {}
        if parameters.get("memoized"):
            options["memoized"] = True
        return await self._run_archived("resubmit", parameters, options)
