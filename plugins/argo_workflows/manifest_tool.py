from typing import Any, Dict

from argo_mcp.constants import Ecosystem, OSType
from argo_mcp.plugin import register_tool

from plugins.argo_workflows.base import ArgoToolBase
from plugins.argo_workflows.conversion import CONVERTIBLE_KINDS, OUTPUT_FORMATS, convert_manifest


@register_tool(ecosystem=Ecosystem.ARGO, os_type=OSType.ALL)
class ArgoManifestTool(ArgoToolBase):
    """Offline manifest utilities that never contact the Argo Server."""

    operations = ("convert",)

    @property
    def name(self) -> str:
        return "argo_manifest"

    @property
    def description(self) -> str:
        return (
            "Convert an Argo manifest (" + ", ".join(CONVERTIBLE_KINDS) + ") to the current "
            "format, migrating deprecated fields"
        )

    @property
    def input_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "operation": self.operation_schema(),
                "manifest": {
                    "type": "string",
                    "description": "Manifest YAML to convert",
                    "nullable": True,
                },
                "output_format": {
                    "type": "string",
                    "enum": list(OUTPUT_FORMATS),
                    "description": "Format of the converted manifest",
                    "default": "yaml",
                },
            },
            "required": ["operation"],
        }

    async def _op_convert(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        result = convert_manifest(parameters.get("manifest") or "", parameters.get("output_format") or "yaml")
        if result["changes"]:
            message = f'Converted {result["kind"]} "{result["name"]}" with {len(result["changes"])} change(s)'
        else:
            message = f'{result["kind"]} "{result["name"]}" is already up to date'
        self.logger.info(message)
        result["message"] = message
        return result
