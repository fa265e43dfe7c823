"""Tests for the Argo Server REST client."""

import json

import httpx
import pytest

from plugins.argo_workflows.client import ArgoAPIError, ArgoServerClient


class RecordingHandler:
    """httpx.MockTransport handler returning canned responses."""

    def __init__(self, response=None):
        self.requests = []
        self.response = response or httpx.Response(200, json={})

    def __call__(self, request):
        self.requests.append(request)
        if callable(self.response):
            return self.response(request)
        return self.response

    @property
    def last(self):
        return self.requests[-1]


def make_client(handler, **kwargs):
    kwargs.setdefault("server", "argo.example.com:2746")
    kwargs.setdefault("token", "secret-token")
    return ArgoServerClient(transport=httpx.MockTransport(handler), **kwargs)


class TestConnection:
    def test_base_url_defaults_to_https(self):
        assert ArgoServerClient(server="argo.example.com:2746").base_url == "https://argo.example.com:2746"

    def test_base_url_insecure(self):
        client = ArgoServerClient(server="localhost:2746", secure=False)
        assert client.base_url == "http://localhost:2746"

    def test_base_url_keeps_explicit_scheme(self):
        client = ArgoServerClient(server="http://argo:2746/")
        assert client.base_url == "http://argo:2746"

    def test_base_url_requires_server(self):
        with pytest.raises(ArgoAPIError, match="ARGO_SERVER is not configured") as exc_info:
            ArgoServerClient(server="").base_url
        assert exc_info.value.status_code == 0

    @pytest.mark.asyncio
    async def test_bearer_token_header(self):
        handler = RecordingHandler()
        async with make_client(handler) as client:
            await client.get_workflow("argo", "wf")

        assert handler.last.headers["Authorization"] == "Bearer secret-token"

    @pytest.mark.asyncio
    async def test_bearer_prefix_not_doubled(self):
        handler = RecordingHandler()
        async with make_client(handler, token="Bearer abc") as client:
            await client.get_workflow("argo", "wf")

        assert handler.last.headers["Authorization"] == "Bearer abc"

    @pytest.mark.asyncio
    async def test_request_outside_context(self):
        client = make_client(RecordingHandler())
        with pytest.raises(RuntimeError):
            await client.get_workflow("argo", "wf")


class TestErrors:
    @pytest.mark.asyncio
    async def test_error_status_uses_server_message(self):
        handler = RecordingHandler(
            httpx.Response(404, json={"code": 5, "message": 'workflows.argoproj.io "wf" not found'})
        )
        async with make_client(handler) as client:
            with pytest.raises(ArgoAPIError) as exc_info:
                await client.get_workflow("argo", "wf")

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == 'workflows.argoproj.io "wf" not found'
        assert str(exc_info.value) == 'Argo Server error (404): workflows.argoproj.io "wf" not found'

    @pytest.mark.asyncio
    async def test_error_status_plain_text(self):
        handler = RecordingHandler(httpx.Response(502, text="bad gateway"))
        async with make_client(handler) as client:
            with pytest.raises(ArgoAPIError, match="bad gateway") as exc_info:
                await client.list_workflows("argo")
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(RecordingHandler(fail)) as client:
            with pytest.raises(ArgoAPIError) as exc_info:
                await client.get_workflow("argo", "wf")

        assert exc_info.value.status_code == 0
        assert "connection refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_empty_body(self):
        handler = RecordingHandler(httpx.Response(200))
        async with make_client(handler) as client:
            assert await client.delete_workflow("argo", "wf") == {}


class TestWorkflowRoutes:
    @pytest.mark.asyncio
    async def test_list_workflows(self):
        handler = RecordingHandler(httpx.Response(200, json={"items": [{"metadata": {"name": "a"}}]}))
        async with make_client(handler) as client:
            items = await client.list_workflows("argo", label_selector="app=ci", limit=5)

        assert items == [{"metadata": {"name": "a"}}]
        assert handler.last.method == "GET"
        assert handler.last.url.path == "/api/v1/workflows/argo"
        assert handler.last.url.params["listOptions.labelSelector"] == "app=ci"
        assert handler.last.url.params["listOptions.limit"] == "5"

    @pytest.mark.asyncio
    async def test_list_workflows_null_items(self):
        handler = RecordingHandler(httpx.Response(200, json={"items": None}))
        async with make_client(handler) as client:
            assert await client.list_workflows("argo") == []
        assert "listOptions.labelSelector" not in handler.last.url.params

    @pytest.mark.asyncio
    async def test_create_workflow(self):
        handler = RecordingHandler(httpx.Response(200, json={"metadata": {"name": "hello-x1"}}))
        workflow = {"kind": "Workflow", "metadata": {"generateName": "hello-"}}
        async with make_client(handler) as client:
            created = await client.create_workflow("argo", workflow)

        assert created["metadata"]["name"] == "hello-x1"
        assert handler.last.method == "POST"
        assert handler.last.url.path == "/api/v1/workflows/argo"
        assert json.loads(handler.last.content) == {"namespace": "argo", "workflow": workflow}

    @pytest.mark.asyncio
    async def test_delete_force(self):
        handler = RecordingHandler()
        async with make_client(handler) as client:
            await client.delete_workflow("argo", "wf", force=True)

        assert handler.last.method == "DELETE"
        assert handler.last.url.path == "/api/v1/workflows/argo/wf"
        assert handler.last.url.params["force"] == "true"

    @pytest.mark.asyncio
    async def test_lint(self):
        handler = RecordingHandler()
        async with make_client(handler) as client:
            await client.lint_workflow("argo", {"kind": "Workflow"})
        assert handler.last.url.path == "/api/v1/workflows/argo/lint"

    @pytest.mark.asyncio
    async def test_workflow_action(self):
        handler = RecordingHandler(httpx.Response(200, json={"metadata": {"name": "wf"}}))
        async with make_client(handler) as client:
            await client.workflow_action("argo", "wf", "retry", {"restartSuccessful": True})

        assert handler.last.method == "PUT"
        assert handler.last.url.path == "/api/v1/workflows/argo/wf/retry"
        assert json.loads(handler.last.content) == {
            "namespace": "argo",
            "name": "wf",
            "restartSuccessful": True,
        }

    @pytest.mark.asyncio
    async def test_unknown_action(self):
        async with make_client(RecordingHandler()) as client:
            with pytest.raises(ValueError, match="Unknown workflow action"):
                await client.workflow_action("argo", "wf", "explode")

    @pytest.mark.asyncio
    async def test_names_are_escaped(self):
        handler = RecordingHandler()
        async with make_client(handler) as client:
            await client.get_workflow("argo", "a/b")
        assert handler.last.url.raw_path.decode().startswith("/api/v1/workflows/argo/a%2Fb")

    @pytest.mark.asyncio
    async def test_logs(self):
        body = "\n".join(
            [
                json.dumps({"result": {"podName": "wf-1", "content": "hello"}}),
                "",
                json.dumps({"result": {"podName": "wf-2", "content": "world"}}),
            ]
        )
        handler = RecordingHandler(httpx.Response(200, text=body))
        async with make_client(handler) as client:
            entries = await client.get_workflow_logs("argo", "wf", tail_lines=10, grep="o")

        assert entries == [
            {"pod_name": "wf-1", "content": "hello"},
            {"pod_name": "wf-2", "content": "world"},
        ]
        assert handler.last.url.path == "/api/v1/workflows/argo/wf/log"
        assert handler.last.url.params["logOptions.container"] == "main"
        assert handler.last.url.params["logOptions.tailLines"] == "10"
        assert handler.last.url.params["grep"] == "o"
        assert "podName" not in handler.last.url.params

    @pytest.mark.asyncio
    async def test_logs_stream_error(self):
        body = json.dumps({"error": {"message": "pod not found"}})
        async with make_client(RecordingHandler(httpx.Response(200, text=body))) as client:
            with pytest.raises(ArgoAPIError, match="pod not found"):
                await client.get_workflow_logs("argo", "wf")


class TestArchivedWorkflowRoutes:
    @pytest.mark.asyncio
    async def test_list_archived_workflows(self):
        handler = RecordingHandler(httpx.Response(200, json={"items": [{"metadata": {"uid": "u1"}}]}))
        async with make_client(handler) as client:
            items = await client.list_archived_workflows("argo", label_selector="app=ci", limit=20)

        assert items == [{"metadata": {"uid": "u1"}}]
        assert handler.last.method == "GET"
        assert handler.last.url.path == "/api/v1/archived-workflows"
        assert handler.last.url.params["namespace"] == "argo"
        assert handler.last.url.params["listOptions.labelSelector"] == "app=ci"
        assert handler.last.url.params["listOptions.limit"] == "20"

    @pytest.mark.asyncio
    async def test_list_archived_workflows_all_namespaces(self):
        handler = RecordingHandler(httpx.Response(200, json={}))
        async with make_client(handler) as client:
            assert await client.list_archived_workflows() == []
        assert "namespace" not in handler.last.url.params

    @pytest.mark.asyncio
    async def test_get_and_delete_archived_workflow(self):
        handler = RecordingHandler()
        async with make_client(handler) as client:
            await client.get_archived_workflow("u1")
            assert (handler.last.method, handler.last.url.path) == ("GET", "/api/v1/archived-workflows/u1")
            await client.delete_archived_workflow("u1")
            assert (handler.last.method, handler.last.url.path) == ("DELETE", "/api/v1/archived-workflows/u1")

    @pytest.mark.asyncio
    async def test_archived_workflow_action(self):
        handler = RecordingHandler(httpx.Response(200, json={"metadata": {"name": "wf-retry"}}))
        async with make_client(handler) as client:
            created = await client.archived_workflow_action(
                "u1", "retry", namespace="ci", options={"restartSuccessful": True}
            )

        assert created["metadata"]["name"] == "wf-retry"
        assert handler.last.method == "PUT"
        assert handler.last.url.path == "/api/v1/archived-workflows/u1/retry"
        assert json.loads(handler.last.content) == {"uid": "u1", "namespace": "ci", "restartSuccessful": True}

    @pytest.mark.asyncio
    async def test_archived_workflow_action_without_namespace(self):
        handler = RecordingHandler(httpx.Response(200, json={}))
        async with make_client(handler) as client:
            await client.archived_workflow_action("u1", "resubmit")
        assert json.loads(handler.last.content) == {"uid": "u1"}

    @pytest.mark.asyncio
    async def test_unknown_archived_action(self):
        async with make_client(RecordingHandler()) as client:
            with pytest.raises(ValueError, match="Unknown archived workflow action"):
                await client.archived_workflow_action("u1", "suspend")


class TestTemplateAndCronRoutes:
    @pytest.mark.asyncio
    async def test_namespaced_template(self):
        handler = RecordingHandler()
        async with make_client(handler, namespace="ci") as client:
            await client.create_workflow_template({"kind": "WorkflowTemplate"})

        assert handler.last.url.path == "/api/v1/workflow-templates/ci"
        assert json.loads(handler.last.content)["namespace"] == "ci"

    @pytest.mark.asyncio
    async def test_cluster_template(self):
        handler = RecordingHandler()
        async with make_client(handler) as client:
            await client.get_workflow_template("shared", cluster_scoped=True)
            assert handler.last.url.path == "/api/v1/cluster-workflow-templates/shared"

            await client.lint_workflow_template({"kind": "ClusterWorkflowTemplate"}, cluster_scoped=True)
            assert handler.last.url.path == "/api/v1/cluster-workflow-templates/lint"
            assert "namespace" not in json.loads(handler.last.content)

    @pytest.mark.asyncio
    async def test_cron_routes(self):
        handler = RecordingHandler()
        async with make_client(handler) as client:
            await client.create_cron_workflow("argo", {"kind": "CronWorkflow"})
            assert handler.last.url.path == "/api/v1/cron-workflows/argo"
            assert "cronWorkflow" in json.loads(handler.last.content)

            await client.set_cron_workflow_suspended("argo", "nightly", True)
            assert handler.last.method == "PUT"
            assert handler.last.url.path == "/api/v1/cron-workflows/argo/nightly/suspend"

            await client.set_cron_workflow_suspended("argo", "nightly", False)
            assert handler.last.url.path == "/api/v1/cron-workflows/argo/nightly/resume"
