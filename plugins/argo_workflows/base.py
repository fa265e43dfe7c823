"""Operation dispatch shared by the Argo Workflows tools."""

import logging
from typing import Any, Dict, Tuple

from argo_mcp.interfaces import ToolInterface

from plugins.argo_workflows.client import ArgoAPIError
from utils.workflow_graph.exceptions import WorkflowGraphError


class ArgoToolBase(ToolInterface):
    """Base for tools that take an ``operation`` argument.

    Subclasses list their operations and implement one ``_op_<operation>``
    coroutine per entry. Handlers return a result dictionary; expected
    failures are raised and turned into an error envelope here.
    """

    operations: Tuple[str, ...] = ()

    def __init__(self) -> None:
        super().__init__()
        self.logger = logging.getLogger(self.__class__.__module__)

    def operation_schema(self) -> Dict[str, Any]:
        return {
            "type": "string",
            "enum": list(self.operations),
            "description": f"{self.name} operation to perform",
        }

    async def execute_tool(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        operation = arguments.get("operation")
        if not operation:
            return {"success": False, "error": "Missing required parameter: operation"}
        return await self.execute_function(operation, arguments)

    async def execute_function(
        self, function_name: str, parameters: Dict[str, Any]
    ) -> Dict[str, Any]:
        if function_name not in self.operations:
            return {"success": False, "error": f"Unknown {self.name} operation: {function_name}"}

        handler = getattr(self, f"_op_{function_name}")
        self.logger.info(f"Running {self.name} operation '{function_name}'")
        try:
            result = await handler(parameters)
        except (ValueError, ArgoAPIError, WorkflowGraphError) as e:
            self.logger.error(f"{self.name} operation '{function_name}' failed: {e}")
            return {"success": False, "error": str(e)}

        return {"success": True, **result}
