"""Argo MCP - tool framework for the Argo Workflows MCP tools."""

from argo_mcp.interfaces import ToolInterface
from argo_mcp.plugin import (
    register_tool,
    registry,
    discover_and_register_tools,
    PluginRegistry,
)
from argo_mcp.plugin_config import config, PluginConfig

__all__ = [
    "ToolInterface",
    "register_tool",
    "registry",
    "discover_and_register_tools",
    "PluginRegistry",
    "config",
    "PluginConfig",
]
