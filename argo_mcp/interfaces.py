"""Interfaces for MCP tools.

Every tool exposed by this package implements ToolInterface so the plugin
registry can discover, describe and invoke it.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict


class ToolInterface(ABC):
    """Base interface for all tools."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the tool name."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Get the tool description."""
        pass

    @property
    @abstractmethod
    def input_schema(self) -> Dict[str, Any]:
        """Get the JSON schema for the tool input."""
        pass

    @abstractmethod
    async def execute_tool(self, arguments: Dict[str, Any]) -> Any:
        """Execute the tool with the provided arguments.

        Args:
            arguments: Dictionary of arguments for the tool

        Returns:
            Tool execution result
        """
        pass
