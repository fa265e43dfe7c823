"""Fixtures shared by the Argo Workflows plugin tests."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from config import env_manager
from plugins.argo_workflows.client import ArgoServerClient


@pytest.fixture(autouse=True)
def argo_settings():
    """Pin the default namespace and polling settings."""
    with patch.dict(env_manager.argo_parameters, {"namespace": "argo"}), patch.dict(
        env_manager.settings,
        {
            "watch_poll_interval": 2.0,
            "watch_timeout": 300.0,
            "wait_timeout": 600.0,
            "graph_layout_engine": "dot",
            "graph_include_status": True,
        },
    ):
        yield


@pytest.fixture
def argo_client():
    """AsyncMock standing in for an open ArgoServerClient session."""
    return AsyncMock(spec=ArgoServerClient)


@pytest.fixture
def patch_argo_client(argo_client):
    """Patch ArgoServerClient in a tool module so every session yields ``argo_client``."""
    patchers = []

    def _patch(module_name):
        client_class = MagicMock()
        client_class.return_value.__aenter__.return_value = argo_client
        client_class.return_value.__aexit__.return_value = False
        patcher = patch(f"{module_name}.ArgoServerClient", client_class)
        patchers.append(patcher)
        return patcher.start()

    yield _patch

    for patcher in patchers:
        patcher.stop()
