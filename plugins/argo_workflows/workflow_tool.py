import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from argo_mcp.constants import Ecosystem, OSType
from argo_mcp.plugin import register_tool
from config import env_manager

from plugins.argo_workflows.base import ArgoToolBase
from plugins.argo_workflows.client import ArgoAPIError, ArgoServerClient
from plugins.argo_workflows.helpers import (
    TERMINAL_PHASES,
    apply_parameter_overrides,
    find_node,
    load_manifest,
    node_details,
    parse_count,
    parse_duration,
    require_name,
    resolve_namespace,
    validate_status_filter,
    workflow_details,
    workflow_duration,
    workflow_summary,
)

DEFAULT_TAIL_LINES = 100
MAX_LOG_BYTES = 1 << 20


@register_tool(ecosystem=Ecosystem.ARGO, os_type=OSType.ALL)
class ArgoWorkflowTool(ArgoToolBase):
    """Submit, inspect and control Argo Workflows through the Argo Server."""

    operations = (
        "submit",
        "list",
        "get",
        "node",
        "delete",
        "lint",
        "logs",
        "watch",
        "wait",
        "retry",
        "resubmit",
        "suspend",
        "resume",
        "stop",
        "terminate",
    )

    @property
    def name(self) -> str:
        return "argo_workflow"

    @property
    def description(self) -> str:
        return (
            "Manage Argo Workflows: submit, list, get, node, delete, lint, logs, watch, wait, "
            "retry, resubmit, suspend, resume, stop and terminate"
        )

    @property
    def input_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "operation": self.operation_schema(),
                "name": {
                    "type": "string",
                    "description": "Workflow name",
                    "nullable": True,
                },
                "namespace": {
                    "type": "string",
                    "description": "Kubernetes namespace (uses the configured default if not specified)",
                    "nullable": True,
                },
                "manifest": {
                    "type": "string",
                    "description": "Workflow YAML manifest for submit and lint",
                    "nullable": True,
                },
                "node": {
                    "type": "string",
                    "description": "Node ID, name or display name (node)",
                    "nullable": True,
                },
                "generate_name": {
                    "type": "string",
                    "description": "Name prefix replacing the manifest's name on submit",
                    "nullable": True,
                },
                "labels": {
                    "type": ["object", "string"],
                    "description": "Labels to add on submit, or a label selector for list",
                    "nullable": True,
                },
                "parameters": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Parameter overrides in key=value format (submit, retry, resubmit)",
                    "nullable": True,
                },
                "status": {
                    "type": "array",
                    "items": {"type": "string", "enum": ["Pending", "Running", "Succeeded", "Failed", "Error"]},
                    "description": "Phase filter for list",
                    "nullable": True,
                },
                "limit": {
                    "type": "integer",
                    "description": "Maximum number of workflows to list",
                    "nullable": True,
                },
                "pod_name": {
                    "type": "string",
                    "description": "Pod to read logs from (all pods if omitted)",
                    "nullable": True,
                },
                "container": {
                    "type": "string",
                    "description": "Container to read logs from",
                    "default": "main",
                },
                "tail_lines": {
                    "type": "integer",
                    "description": "Number of log lines from the end",
                    "default": DEFAULT_TAIL_LINES,
                },
                "grep": {
                    "type": "string",
                    "description": "Only return log lines containing this string",
                    "nullable": True,
                },
                "timeout": {
                    "type": "string",
                    "description": "Maximum time to watch or wait (e.g. 30s, 5m, 1h)",
                    "nullable": True,
                },
                "node_field_selector": {
                    "type": "string",
                    "description": "Selector for the nodes to retry, resume or stop (e.g. phase=Failed)",
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
                "message": {
                    "type": "string",
                    "description": "Message to record when stopping a workflow",
                    "nullable": True,
                },
                "force": {
                    "type": "boolean",
                    "description": "Force deletion",
                    "default": False,
                },
            },
            "required": ["operation"],
        }

    async def _op_submit(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        workflow = load_manifest(parameters.get("manifest"), "Workflow")
        namespace = resolve_namespace(parameters.get("namespace"))

        metadata = workflow.get("metadata") or {}
        workflow["metadata"] = metadata
        metadata["namespace"] = namespace

        generate_name = (parameters.get("generate_name") or "").strip()
        if generate_name:
            metadata.pop("name", None)
            metadata["generateName"] = generate_name

        labels = parameters.get("labels") or {}
        if labels:
            if not isinstance(labels, dict):
                raise ValueError("labels must be a mapping of label name to value")
            metadata["labels"] = {**(metadata.get("labels") or {}), **labels}

        if parameters.get("parameters"):
            apply_parameter_overrides(workflow, parameters["parameters"])

        async with ArgoServerClient() as client:
            created = await client.create_workflow(namespace, workflow)

        summary = workflow_summary(created)
        self.logger.info(f"Submitted workflow {summary.get('name')} in namespace {namespace}")
        return {"workflow": summary, "message": f'Workflow "{summary.get("name", "")}" submitted'}

    async def _op_list(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        namespace = resolve_namespace(parameters.get("namespace"))
        statuses = set(validate_status_filter(parameters.get("status")))

        labels = parameters.get("labels")
        if isinstance(labels, dict):
            labels = ",".join(f"{k}={v}" for k, v in labels.items())
        limit = parse_count(parameters.get("limit"), "limit")

        async with ArgoServerClient() as client:
            items = await client.list_workflows(
                namespace, label_selector=labels or None, limit=limit if limit and limit > 0 else None
            )

        workflows = []
        for item in items:
            phase = (item.get("status") or {}).get("phase") or ""
            if statuses and phase not in statuses:
                continue
            workflows.append(workflow_summary(item))

        return {"workflows": workflows, "total": len(workflows)}

    async def _op_get(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        name = require_name(parameters.get("name"))
        namespace = resolve_namespace(parameters.get("namespace"))
        async with ArgoServerClient() as client:
            workflow = await client.get_workflow(namespace, name)
        return {"workflow": workflow_details(workflow)}

    async def _op_node(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        name = require_name(parameters.get("name"))
        node_name = require_name(parameters.get("node"), "node")
        namespace = resolve_namespace(parameters.get("namespace"))
        async with ArgoServerClient() as client:
            workflow = await client.get_workflow(namespace, name)

        node = find_node((workflow.get("status") or {}).get("nodes"), node_name)
        return {"workflow": name, "namespace": namespace, "node": node_details(node)}

    async def _op_delete(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        name = require_name(parameters.get("name"))
        namespace = resolve_namespace(parameters.get("namespace"))
        async with ArgoServerClient() as client:
            await client.delete_workflow(namespace, name, force=bool(parameters.get("force")))
        return {
            "name": name,
            "namespace": namespace,
            "message": f'Workflow "{name}" deleted from namespace "{namespace}"',
        }

    async def _op_lint(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        workflow = load_manifest(parameters.get("manifest"), "Workflow")
        namespace = resolve_namespace(parameters.get("namespace"))
        metadata = workflow.get("metadata") or {}
        workflow["metadata"] = metadata
        metadata["namespace"] = namespace

        errors: List[str] = []
        async with ArgoServerClient() as client:
            try:
                await client.lint_workflow(namespace, workflow)
            except ArgoAPIError as e:
                # Unreachable server is a failure, a rejected manifest is a lint result
                if e.status_code == 0:
                    raise
                errors.append(e.message)

        result = {
            "valid": not errors,
            "name": metadata.get("name", ""),
            "generate_name": metadata.get("generateName", ""),
            "namespace": namespace,
        }
        if errors:
            result["errors"] = errors
        return result

    async def _op_logs(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        name = require_name(parameters.get("name"))
        namespace = resolve_namespace(parameters.get("namespace"))
        tail_lines = parse_count(parameters.get("tail_lines"), "tail_lines")
        if tail_lines is None or tail_lines <= 0:
            tail_lines = DEFAULT_TAIL_LINES

        async with ArgoServerClient() as client:
            entries = await client.get_workflow_logs(
                namespace,
                name,
                pod_name=parameters.get("pod_name"),
                container=parameters.get("container") or "main",
                tail_lines=tail_lines,
                grep=parameters.get("grep"),
            )

        logs = []
        total_bytes = 0
        truncated = False
        for entry in entries:
            total_bytes += len(entry["content"].encode("utf-8"))
            if total_bytes > MAX_LOG_BYTES:
                truncated = True
                break
            logs.append(entry)

        if truncated:
            message = f"Logs truncated after {MAX_LOG_BYTES} bytes"
        else:
            message = f"Retrieved {len(logs)} log entries"
        return {"name": name, "namespace": namespace, "logs": logs, "truncated": truncated, "message": message}

    async def _poll_until_done(
        self, namespace: str, name: str, timeout: float
    ) -> Dict[str, Any]:
        """Poll a workflow until it reaches a terminal phase or the timeout expires.

        Returns:
            The last workflow seen, the phase transitions observed and whether
            the timeout expired first
        """
        interval = float(env_manager.get_setting("watch_poll_interval", 2.0))
        deadline = time.monotonic() + timeout
        events: List[Dict[str, Any]] = []
        last_phase: Optional[str] = None
        workflow: Dict[str, Any] = {}

        async with ArgoServerClient() as client:
            while True:
                workflow = await client.get_workflow(namespace, name)
                status = workflow.get("status") or {}
                phase = status.get("phase") or "Pending"
                if phase != last_phase:
                    events.append(
                        {
                            "type": "ADDED" if last_phase is None else "MODIFIED",
                            "phase": phase,
                            "timestamp": datetime.now(timezone.utc).isoformat(),
                            "progress": status.get("progress", ""),
                        }
                    )
                    self.logger.debug(f"Workflow {namespace}/{name} phase: {phase}")
                    last_phase = phase

                if phase in TERMINAL_PHASES:
                    return {"workflow": workflow, "events": events, "timed_out": False}

                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return {"workflow": workflow, "events": events, "timed_out": True}
                await asyncio.sleep(min(interval, remaining))

    def _poll_result(self, name: str, namespace: str, polled: Dict[str, Any], verb: str) -> Dict[str, Any]:
        workflow = polled["workflow"]
        status = workflow.get("status") or {}
        phase = status.get("phase") or "Pending"
        result = {
            "name": name,
            "namespace": namespace,
            "phase": phase,
            "started_at": status.get("startedAt") or "",
            "finished_at": status.get("finishedAt") or "",
            "duration": workflow_duration(status),
            "progress": status.get("progress") or "",
            "timed_out": polled["timed_out"],
            "message": status.get("message") or "",
        }
        if polled["timed_out"]:
            timeout_message = f"{verb} timed out. Last phase: {phase}"
            result["message"] = (
                f"{result['message']} | {timeout_message}" if result["message"] else timeout_message
            )
        return result

    async def _op_watch(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        name = require_name(parameters.get("name"))
        namespace = resolve_namespace(parameters.get("namespace"))
        timeout = parse_duration(parameters.get("timeout")) or float(
            env_manager.get_setting("watch_timeout", 300.0)
        )

        polled = await self._poll_until_done(namespace, name, timeout)
        result = self._poll_result(name, namespace, polled, "Watch")
        result["events"] = polled["events"]
        return result

    async def _op_wait(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        name = require_name(parameters.get("name"))
        namespace = resolve_namespace(parameters.get("namespace"))
        timeout = parse_duration(parameters.get("timeout")) or float(
            env_manager.get_setting("wait_timeout", 600.0)
        )

        polled = await self._poll_until_done(namespace, name, timeout)
        return self._poll_result(name, namespace, polled, "Wait")

    async def _lifecycle(
        self, action: str, parameters: Dict[str, Any], options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        name = require_name(parameters.get("name"))
        namespace = resolve_namespace(parameters.get("namespace"))
        async with ArgoServerClient() as client:
            workflow = await client.workflow_action(namespace, name, action, options)

        summary = workflow_summary(workflow)
        summary.setdefault("name", name)
        summary.setdefault("namespace", namespace)
        return {
            "workflow": summary,
            "message": f'Workflow "{name}" in namespace "{namespace}": {action} requested. Phase: {summary["phase"]}',
        }

    @staticmethod
    def _selector_options(parameters: Dict[str, Any]) -> Dict[str, Any]:
        selector = parameters.get("node_field_selector")
        return {"nodeFieldSelector": selector} if selector else {}

    async def _op_retry(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        options = self._selector_options(parameters)
        if parameters.get("restart_successful"):
            options["restartSuccessful"] = True
        if parameters.get("parameters"):
            options["parameters"] = list(parameters["parameters"])
        return await self._lifecycle("retry", parameters, options)

    async def _op_resubmit(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        options: Dict[str, Any] = {}
        if parameters.get("memoized"):
            options["memoized"] = True
        if parameters.get("parameters"):
            options["parameters"] = list(parameters["parameters"])
        return await self._lifecycle("resubmit", parameters, options)

    async def _op_suspend(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        return await self._lifecycle("suspend", parameters)

    async def _op_resume(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        return await self._lifecycle("resume", parameters, self._selector_options(parameters))

    async def _op_stop(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        options = self._selector_options(parameters)
        if parameters.get("message"):
            options["message"] = parameters["message"]
        return await self._lifecycle("stop", parameters, options)

    async def _op_terminate(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        return await self._lifecycle("terminate", parameters)
