"""Async client for the Argo Server REST API.

Connection settings come from the ARGO_* environment parameters held by the
environment manager. Each client instance owns one httpx.AsyncClient for the
duration of an ``async with`` block.

Example:
    async with ArgoServerClient() as client:
        workflow = await client.get_workflow("argo", "hello-world-abc12")
"""

import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from config import env_manager

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

# Lifecycle actions exposed as PUT /workflows/{namespace}/{name}/{action}
WORKFLOW_ACTIONS = ("retry", "resubmit", "suspend", "resume", "stop", "terminate")

# Actions exposed as PUT /archived-workflows/{uid}/{action}
ARCHIVED_WORKFLOW_ACTIONS = ("retry", "resubmit")


class ArgoAPIError(Exception):
    """Raised when the Argo Server rejects a request or cannot be reached.

    ``status_code`` is 0 for transport failures.
    """

    def __init__(self, status_code: int, message: str, details: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self.message = message
        self.details = details or {}
        super().__init__(f"Argo Server error ({status_code}): {message}" if status_code else message)


def _segment(value: str) -> str:
    return quote(value, safe="")


class ArgoServerClient:
    """Thin async wrapper over the Argo Server ``/api/v1`` routes."""

    def __init__(
        self,
        server: Optional[str] = None,
        token: Optional[str] = None,
        namespace: Optional[str] = None,
        secure: Optional[bool] = None,
        insecure_skip_verify: Optional[bool] = None,
        request_timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        params = env_manager.get_argo_parameters()
        self.server = server if server is not None else params.get("server")
        self.token = token if token is not None else params.get("token")
        self.default_namespace = namespace or params.get("namespace") or "default"
        self.secure = secure if secure is not None else params.get("secure", True)
        self.insecure_skip_verify = (
            insecure_skip_verify
            if insecure_skip_verify is not None
            else params.get("insecure_skip_verify", False)
        )
        self.request_timeout = request_timeout or params.get("request_timeout") or 30.0
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def base_url(self) -> str:
        if not self.server:
            raise ArgoAPIError(0, "ARGO_SERVER is not configured")
        server = self.server.strip().rstrip("/")
        if "://" in server:
            return server
        scheme = "https" if self.secure else "http"
        return f"{scheme}://{server}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            token = self.token.strip()
            headers["Authorization"] = token if token.lower().startswith("bearer ") else f"Bearer {token}"
        return headers

    async def __aenter__(self) -> "ArgoServerClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=self.request_timeout,
            verify=not self.insecure_skip_verify,
            transport=self._transport,
        )
        logger.debug(f"Opened Argo Server session to {self.base_url}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.debug("Closed Argo Server session")

    async def _send(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        if self._client is None:
            raise RuntimeError("ArgoServerClient must be used as an async context manager")

        # Drop unset query parameters
        query = {k: v for k, v in (params or {}).items() if v is not None and v != ""}
        logger.debug(f"{method} {path} params={query}")
        try:
            response = await self._client.request(method, API_PREFIX + path, params=query, json=body)
        except httpx.HTTPError as e:
            raise ArgoAPIError(0, f"request to Argo Server failed: {e}") from e

        if response.status_code >= 400:
            raise ArgoAPIError(response.status_code, self._error_message(response))
        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        if isinstance(payload, dict) and payload.get("message"):
            return payload["message"]
        return response.text

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Send a request and decode the JSON response body.

        Raises:
            ArgoAPIError: On a non-2xx status or a transport failure
        """
        response = await self._send(method, path, params=params, body=body)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ArgoAPIError(response.status_code, f"invalid JSON in response: {e}") from e

    # Workflows

    async def list_workflows(
        self, namespace: str, label_selector: Optional[str] = None, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        result = await self.request(
            "GET",
            f"/workflows/{_segment(namespace)}",
            params={"listOptions.labelSelector": label_selector, "listOptions.limit": limit},
        )
        return result.get("items") or []

    async def get_workflow(self, namespace: str, name: str) -> Dict[str, Any]:
        return await self.request("GET", f"/workflows/{_segment(namespace)}/{_segment(name)}")

    async def create_workflow(self, namespace: str, workflow: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request(
            "POST",
            f"/workflows/{_segment(namespace)}",
            body={"namespace": namespace, "workflow": workflow},
        )

    async def delete_workflow(self, namespace: str, name: str, force: bool = False) -> Dict[str, Any]:
        return await self.request(
            "DELETE",
            f"/workflows/{_segment(namespace)}/{_segment(name)}",
            params={"force": "true" if force else None},
        )

    async def lint_workflow(self, namespace: str, workflow: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request(
            "POST",
            f"/workflows/{_segment(namespace)}/lint",
            body={"namespace": namespace, "workflow": workflow},
        )

    async def workflow_action(
        self, namespace: str, name: str, action: str, options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Run a lifecycle action (retry, resubmit, suspend, resume, stop, terminate)."""
        if action not in WORKFLOW_ACTIONS:
            raise ValueError(f"Unknown workflow action: {action}")
        body = {"namespace": namespace, "name": name}
        body.update(options or {})
        return await self.request(
            "PUT", f"/workflows/{_segment(namespace)}/{_segment(name)}/{action}", body=body
        )

    async def get_workflow_logs(
        self,
        namespace: str,
        name: str,
        pod_name: Optional[str] = None,
        container: str = "main",
        tail_lines: Optional[int] = None,
        grep: Optional[str] = None,
    ) -> List[Dict[str, str]]:
        """Fetch log entries; the server answers with one JSON object per line."""
        response = await self._send(
            "GET",
            f"/workflows/{_segment(namespace)}/{_segment(name)}/log",
            params={
                "podName": pod_name,
                "logOptions.container": container,
                "logOptions.tailLines": tail_lines,
                "grep": grep,
            },
        )

        entries = []
        for line in response.text.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                payload = json.loads(line)
            except ValueError:
                logger.debug(f"Skipping undecodable log line: {line[:80]}")
                continue
            if "error" in payload:
                error = payload["error"]
                message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
                raise ArgoAPIError(response.status_code, message)
            result = payload.get("result") or {}
            entries.append({"pod_name": result.get("podName", ""), "content": result.get("content", "")})
        return entries

    # Archived workflows

    async def list_archived_workflows(
        self,
        namespace: Optional[str] = None,
        label_selector: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """List archived workflows; all namespaces when ``namespace`` is empty."""
        result = await self.request(
            "GET",
            "/archived-workflows",
            params={
                "namespace": namespace,
                "listOptions.labelSelector": label_selector,
                "listOptions.limit": limit,
            },
        )
        return result.get("items") or []

    async def get_archived_workflow(self, uid: str) -> Dict[str, Any]:
        return await self.request("GET", f"/archived-workflows/{_segment(uid)}")

    async def delete_archived_workflow(self, uid: str) -> Dict[str, Any]:
        return await self.request("DELETE", f"/archived-workflows/{_segment(uid)}")

    async def archived_workflow_action(
        self, uid: str, action: str, namespace: Optional[str] = None, options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Retry or resubmit an archived workflow; returns the new live workflow."""
        if action not in ARCHIVED_WORKFLOW_ACTIONS:
            raise ValueError(f"Unknown archived workflow action: {action}")
        body: Dict[str, Any] = {"uid": uid}
        if namespace:
            body["namespace"] = namespace
        body.update(options or {})
        return await self.request("PUT", f"/archived-workflows/{_segment(uid)}/{action}", body=body)

    # Workflow templates

    def _template_path(self, namespace: Optional[str], cluster_scoped: bool) -> str:
        if cluster_scoped:
            return "/cluster-workflow-templates"
        return f"/workflow-templates/{_segment(namespace or self.default_namespace)}"

    async def list_workflow_templates(
        self, namespace: Optional[str] = None, cluster_scoped: bool = False, label_selector: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        result = await self.request(
            "GET",
            self._template_path(namespace, cluster_scoped),
            params={"listOptions.labelSelector": label_selector},
        )
        return result.get("items") or []

    async def get_workflow_template(
        self, name: str, namespace: Optional[str] = None, cluster_scoped: bool = False
    ) -> Dict[str, Any]:
        return await self.request("GET", f"{self._template_path(namespace, cluster_scoped)}/{_segment(name)}")

    async def create_workflow_template(
        self, template: Dict[str, Any], namespace: Optional[str] = None, cluster_scoped: bool = False
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"template": template}
        if not cluster_scoped:
            body["namespace"] = namespace or self.default_namespace
        return await self.request("POST", self._template_path(namespace, cluster_scoped), body=body)

    async def delete_workflow_template(
        self, name: str, namespace: Optional[str] = None, cluster_scoped: bool = False
    ) -> Dict[str, Any]:
        return await self.request("DELETE", f"{self._template_path(namespace, cluster_scoped)}/{_segment(name)}")

    async def lint_workflow_template(
        self, template: Dict[str, Any], namespace: Optional[str] = None, cluster_scoped: bool = False
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"template": template}
        if not cluster_scoped:
            body["namespace"] = namespace or self.default_namespace
        return await self.request("POST", f"{self._template_path(namespace, cluster_scoped)}/lint", body=body)

    # Cron workflows

    async def list_cron_workflows(
        self, namespace: str, label_selector: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        result = await self.request(
            "GET",
            f"/cron-workflows/{_segment(namespace)}",
            params={"listOptions.labelSelector": label_selector},
        )
        return result.get("items") or []

    async def get_cron_workflow(self, namespace: str, name: str) -> Dict[str, Any]:
        return await self.request("GET", f"/cron-workflows/{_segment(namespace)}/{_segment(name)}")

    async def create_cron_workflow(self, namespace: str, cron_workflow: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request(
            "POST",
            f"/cron-workflows/{_segment(namespace)}",
            body={"namespace": namespace, "cronWorkflow": cron_workflow},
        )

    async def delete_cron_workflow(self, namespace: str, name: str) -> Dict[str, Any]:
        return await self.request("DELETE", f"/cron-workflows/{_segment(namespace)}/{_segment(name)}")

    async def lint_cron_workflow(self, namespace: str, cron_workflow: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request(
            "POST",
            f"/cron-workflows/{_segment(namespace)}/lint",
            body={"namespace": namespace, "cronWorkflow": cron_workflow},
        )

    async def set_cron_workflow_suspended(self, namespace: str, name: str, suspended: bool) -> Dict[str, Any]:
        action = "suspend" if suspended else "resume"
        return await self.request(
            "PUT",
            f"/cron-workflows/{_segment(namespace)}/{_segment(name)}/{action}",
            body={"namespace": namespace, "name": name},
        )
