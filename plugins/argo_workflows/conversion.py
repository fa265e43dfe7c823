"""Migrate Argo manifests off deprecated fields.

Handles Workflow, WorkflowTemplate, ClusterWorkflowTemplate and CronWorkflow
documents:

- ``synchronization.mutex`` becomes an entry of ``synchronization.mutexes``
- ``synchronization.semaphore`` becomes an entry of ``synchronization.semaphores``
- a CronWorkflow's ``spec.schedule`` becomes an entry of ``spec.schedules``

Synchronization is migrated both at workflow level and per template.
"""

import json
import logging
from typing import Any, Dict, List, Tuple

import yaml

from plugins.argo_workflows.helpers import MAX_MANIFEST_BYTES

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("yaml", "json")

CONVERTIBLE_KINDS = ("Workflow", "WorkflowTemplate", "ClusterWorkflowTemplate", "CronWorkflow")

# Deprecated single-value field -> list field that replaces it
_SYNC_MIGRATIONS = (("mutex", "mutexes"), ("semaphore", "semaphores"))


def _migrate_synchronization(owner: Dict[str, Any], path: str) -> List[str]:
    sync = owner.get("synchronization")
    if not isinstance(sync, dict):
        return []

    changes = []
    for old, new in _SYNC_MIGRATIONS:
        if old not in sync:
            continue
        value = sync.pop(old)
        if value is None:
            continue
        sync[new] = list(sync.get(new) or []) + [value]
        changes.append(f"Migrated {path}.synchronization.{old} to {path}.synchronization.{new} array")
    return changes


def _migrate_workflow_spec(spec: Dict[str, Any], path: str) -> List[str]:
    changes = _migrate_synchronization(spec, path)
    for template in spec.get("templates") or []:
        if isinstance(template, dict):
            template_path = f"{path}.templates[{template.get('name', '')}]"
            changes.extend(_migrate_synchronization(template, template_path))
    return changes


def _migrate_cron_spec(spec: Dict[str, Any]) -> Tuple[List[str], List[str]]:
    changes = []
    warnings = []

    schedule = spec.pop("schedule", None)
    if schedule:
        schedules = list(spec.get("schedules") or [])
        if schedule not in schedules:
            schedules.append(schedule)
        spec["schedules"] = schedules
        changes.append("Migrated spec.schedule to spec.schedules array")

    if not spec.get("concurrencyPolicy"):
        warnings.append("No concurrencyPolicy set, defaults to 'Allow' which may cause overlapping runs")

    workflow_spec = spec.get("workflowSpec")
    if isinstance(workflow_spec, dict):
        changes.extend(_migrate_workflow_spec(workflow_spec, "spec.workflowSpec"))
    return changes, warnings


def serialize_manifest(document: Dict[str, Any], output_format: str) -> str:
    if output_format == "json":
        return json.dumps(document, indent=2)
    return yaml.safe_dump(document, sort_keys=False, default_flow_style=False)


def convert_manifest(text: str, output_format: str = "yaml") -> Dict[str, Any]:
    """Convert a manifest to the current schema.

    Args:
        text: Manifest YAML (or JSON)
        output_format: ``yaml`` or ``json``

    Returns:
        Dictionary with the converted ``manifest`` text, ``format``, ``kind``,
        ``name`` and the ``changes`` and ``warnings`` found

    Raises:
        ValueError: If the manifest is empty, oversized, malformed or of an
            unsupported kind, or the output format is unknown
    """
    if not text or not text.strip():
        raise ValueError("manifest cannot be empty")
    if len(text.encode("utf-8")) > MAX_MANIFEST_BYTES:
        raise ValueError(f"manifest too large, max {MAX_MANIFEST_BYTES} bytes")

    output_format = (output_format or "yaml").strip().lower() or "yaml"
    if output_format not in OUTPUT_FORMATS:
        raise ValueError(f"invalid output format: {output_format} (must be yaml or json)")

    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"failed to parse manifest: {e}") from e
    if not isinstance(document, dict):
        raise ValueError("failed to parse manifest: expected a mapping")

    kind = document.get("kind") or "Workflow"
    if kind not in CONVERTIBLE_KINDS:
        raise ValueError(f"unsupported manifest kind: {kind} (must be {', '.join(CONVERTIBLE_KINDS)})")
    document["kind"] = kind

    metadata = document.get("metadata") or {}
    name = metadata.get("name") or metadata.get("generateName") or ""

    spec = document.get("spec")
    changes: List[str] = []
    warnings: List[str] = []
    if isinstance(spec, dict):
        if kind == "CronWorkflow":
            changes, warnings = _migrate_cron_spec(spec)
        else:
            changes = _migrate_workflow_spec(spec, "spec")

    logger.debug(f"Converted {kind} '{name}' with {len(changes)} change(s)")
    return {
        "manifest": serialize_manifest(document, output_format),
        "format": output_format,
        "kind": kind,
        "name": name,
        "changes": changes,
        "warnings": warnings,
    }
