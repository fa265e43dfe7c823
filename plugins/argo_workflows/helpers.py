"""Shared helpers for the Argo Workflows tools."""

import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

import yaml

from config import env_manager

MAX_MANIFEST_BYTES = 1 << 20

# Phases accepted by the list status filter
LIST_STATUS_PHASES = ("Pending", "Running", "Succeeded", "Failed", "Error")

# Workflow phases after which nothing changes any more
TERMINAL_PHASES = frozenset({"Succeeded", "Failed", "Error"})

NODE_PHASES = ("Succeeded", "Failed", "Running", "Pending", "Skipped", "Error", "Omitted")

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def resolve_namespace(namespace: Optional[str]) -> str:
    """Trimmed namespace, or the configured default when blank."""
    namespace = (namespace or "").strip()
    if namespace:
        return namespace
    return env_manager.get_argo_parameter("namespace", "default")


def require_name(name: Optional[str], kind: str = "workflow") -> str:
    """Trimmed resource name.

    Raises:
        ValueError: If the name is blank
    """
    name = (name or "").strip()
    if not name:
        raise ValueError(f"{kind} name cannot be empty")
    return name


def load_manifest(text: Optional[str], expected_kind: str) -> Dict[str, Any]:
    """Parse a YAML manifest and check its kind.

    A missing ``kind`` is accepted and filled in with ``expected_kind``.

    Raises:
        ValueError: If the manifest is empty, oversized, malformed or of another kind
    """
    if not text or not text.strip():
        raise ValueError("manifest cannot be empty")
    if len(text.encode("utf-8")) > MAX_MANIFEST_BYTES:
        raise ValueError(f"manifest too large, max {MAX_MANIFEST_BYTES} bytes")

    try:
        manifest = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"failed to parse {expected_kind} manifest: {e}") from e

    if not isinstance(manifest, dict):
        raise ValueError(f"failed to parse {expected_kind} manifest: expected a mapping")

    kind = manifest.get("kind") or expected_kind
    if kind != expected_kind:
        raise ValueError(f'manifest must be a {expected_kind}, got "{kind}"')
    manifest["kind"] = kind
    manifest.setdefault("apiVersion", "argoproj.io/v1alpha1")
    return manifest


def apply_parameter_overrides(workflow: Dict[str, Any], overrides: Iterable[str]) -> None:
    """Apply ``key=value`` overrides to ``spec.arguments.parameters`` in place.

    Existing parameters get the new value; unknown keys are appended.

    Raises:
        ValueError: If an override is not of the form key=value
    """
    spec = workflow.get("spec") or {}
    workflow["spec"] = spec
    arguments = spec.get("arguments") or {}
    spec["arguments"] = arguments
    parameters = arguments.get("parameters") or []
    arguments["parameters"] = parameters

    for override in overrides:
        if "=" not in override:
            raise ValueError(f'invalid parameter format "{override}", expected key=value')
        key, value = override.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError(f'invalid parameter format "{override}", key cannot be empty')

        for parameter in parameters:
            if parameter.get("name") == key:
                parameter["value"] = value
                break
        else:
            parameters.append({"name": key, "value": value})


def validate_status_filter(statuses: Optional[Sequence[str]]) -> List[str]:
    """Raises ValueError for any phase outside LIST_STATUS_PHASES."""
    for status in statuses or []:
        if status not in LIST_STATUS_PHASES:
            raise ValueError(
                f'invalid status filter "{status}", must be one of: {", ".join(LIST_STATUS_PHASES)}'
            )
    return list(statuses or [])


def parse_count(value: Any, field: str) -> Optional[int]:
    """Parse an integer argument that may arrive as a string.

    Returns None for a missing or blank value.

    Raises:
        ValueError: If the value is not a whole number
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValueError(f"invalid {field}: expected an integer, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"invalid {field}: expected an integer, got {value!r}")
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"invalid {field}: expected an integer, got {value!r}") from e


def parse_duration(value: Optional[str]) -> Optional[float]:
    """Parse a duration such as ``90s``, ``5m`` or ``1h30m`` into seconds.

    Returns None for an empty value.

    Raises:
        ValueError: If the value is malformed or not positive
    """
    value = (value or "").strip()
    if not value:
        return None

    position = 0
    seconds = 0.0
    for match in _DURATION_PART.finditer(value):
        if match.start() != position:
            break
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position != len(value):
        raise ValueError(f'invalid timeout format: "{value}"')
    if seconds <= 0:
        raise ValueError("invalid timeout: must be a positive duration")
    return seconds


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp as returned by the server."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def format_duration(seconds: float) -> str:
    """Format seconds as ``45s``, ``2m5s`` or ``1h2m3s``."""
    total = int(seconds)
    if total < 60:
        return f"{total}s"
    if total < 3600:
        return f"{total // 60}m{total % 60}s"
    return f"{total // 3600}h{(total % 3600) // 60}m{total % 60}s"


def workflow_duration(status: Dict[str, Any], now: Optional[datetime] = None) -> str:
    """Elapsed time from start to finish, or to ``now`` while still running."""
    started = parse_timestamp(status.get("startedAt"))
    if started is None:
        return ""
    finished = parse_timestamp(status.get("finishedAt")) or now or datetime.now(timezone.utc)
    return format_duration(max((finished - started).total_seconds(), 0))


def node_summary(nodes: Optional[Dict[str, Any]]) -> Dict[str, int]:
    """Count nodes per phase."""
    summary = {"total": len(nodes or {})}
    for phase in NODE_PHASES:
        summary[phase.lower()] = 0
    for node in (nodes or {}).values():
        key = (node.get("phase") or "").lower()
        if key in summary and key != "total":
            summary[key] += 1
    return summary


def workflow_summary(workflow: Dict[str, Any]) -> Dict[str, Any]:
    """Flat view of a workflow used by list, submit and lifecycle results."""
    metadata = workflow.get("metadata") or {}
    status = workflow.get("status") or {}
    summary = {
        "name": metadata.get("name", ""),
        "namespace": metadata.get("namespace", ""),
        "uid": metadata.get("uid", ""),
        "phase": status.get("phase") or "Pending",
        "created_at": metadata.get("creationTimestamp", ""),
        "started_at": status.get("startedAt") or "",
        "finished_at": status.get("finishedAt") or "",
        "message": status.get("message") or "",
    }
    return {k: v for k, v in summary.items() if v != ""}


def workflow_details(workflow: Dict[str, Any]) -> Dict[str, Any]:
    """Detailed view of a single workflow."""
    details = workflow_summary(workflow)
    status = workflow.get("status") or {}
    spec = workflow.get("spec") or {}

    duration = workflow_duration(status)
    if duration:
        details["duration"] = duration
    if status.get("progress"):
        details["progress"] = status["progress"]

    parameters = (spec.get("arguments") or {}).get("parameters") or []
    if parameters:
        details["parameters"] = [
            {"name": p.get("name", ""), "value": p.get("value", "")} for p in parameters
        ]

    if status.get("nodes"):
        details["node_summary"] = node_summary(status["nodes"])
    return details


def find_node(nodes: Optional[Dict[str, Any]], name_or_id: str) -> Dict[str, Any]:
    """Look a node up by ID, then by full name, then by display name.

    Raises:
        ValueError: If no node matches
    """
    nodes = nodes or {}
    if name_or_id in nodes:
        return nodes[name_or_id]
    for field in ("name", "displayName"):
        for node_id in sorted(nodes):
            if nodes[node_id].get(field) == name_or_id:
                return nodes[node_id]
    raise ValueError(f'node "{name_or_id}" not found in workflow')


def _io_details(section: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    section = section or {}
    details: Dict[str, Any] = {}
    parameters = section.get("parameters") or []
    if parameters:
        details["parameters"] = [
            {"name": p.get("name", ""), "value": p.get("value", "")} for p in parameters
        ]
    artifacts = section.get("artifacts") or []
    if artifacts:
        details["artifacts"] = [
            {k: v for k, v in (("name", a.get("name", "")), ("path", a.get("path", ""))) if v}
            for a in artifacts
        ]
    return details


def node_details(node: Dict[str, Any]) -> Dict[str, Any]:
    """Detailed view of one workflow node, including its inputs and outputs."""
    details = {
        "id": node.get("id", ""),
        "name": node.get("name", ""),
        "display_name": node.get("displayName", ""),
        "type": node.get("type", ""),
        "template_name": node.get("templateName", ""),
        "phase": node.get("phase") or "Pending",
        "message": node.get("message", ""),
        "started_at": node.get("startedAt") or "",
        "finished_at": node.get("finishedAt") or "",
        "duration": workflow_duration(node),
        "progress": node.get("progress", ""),
        "pod_ip": node.get("podIP", ""),
        "boundary_id": node.get("boundaryID", ""),
        "host_node_name": node.get("hostNodeName", ""),
    }
    details = {k: v for k, v in details.items() if v != ""}

    if node.get("children"):
        details["children"] = list(node["children"])
    inputs = _io_details(node.get("inputs"))
    if inputs:
        details["inputs"] = inputs
    outputs = _io_details(node.get("outputs"))
    node_outputs = node.get("outputs") or {}
    if node_outputs.get("exitCode") is not None:
        outputs["exit_code"] = str(node_outputs["exitCode"])
    if node_outputs.get("result") is not None:
        outputs["result"] = node_outputs["result"]
    if outputs:
        details["outputs"] = outputs
    return details


def resource_summary(resource: Dict[str, Any]) -> Dict[str, Any]:
    """Name, namespace and creation time of a template or cron workflow."""
    metadata = resource.get("metadata") or {}
    summary = {
        "name": metadata.get("name", ""),
        "namespace": metadata.get("namespace", ""),
        "created_at": metadata.get("creationTimestamp", ""),
    }
    return {k: v for k, v in summary.items() if v != ""}
