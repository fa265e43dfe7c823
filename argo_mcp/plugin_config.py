"""Plugin configuration for the tool registry.

Settings come from MCP_* environment variables and control which plugin
directories are scanned and which tools are allowed to register.
"""

import os
import logging
from typing import List, Optional, Set
from pathlib import Path

from argo_mcp.constants import FILTER_MODES

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes")
_FALSE_VALUES = ("0", "false", "no")


def _env_list(name: str, lower: bool = False) -> Set[str]:
    """Comma separated environment value as a set, blanks dropped."""
    items = set()
    for item in os.environ.get(name, "").split(","):
        item = item.strip()
        if item:
            items.add(item.lower() if lower else item)
    return items


def _env_mode(name: str) -> str:
    mode = os.environ.get(name, "all").lower()
    if mode not in FILTER_MODES:
        logger.warning(f"Invalid {name} value: {mode}. Using 'all'")
        return "all"
    return mode


def _is_allowed(value: str, mode: str, enabled: Set[str], disabled: Set[str]) -> bool:
    """Shared whitelist/blacklist rule for plugins, ecosystems and OS types."""
    if value in disabled:
        return False
    if mode == "whitelist":
        return value in enabled
    if mode not in FILTER_MODES:
        logger.warning(f"Unknown enable mode: {mode}")
    return True


class PluginConfig:
    """Configuration for the plugin system."""

    def __init__(self):
        # Whether plugin directories are scanned for tools at all
        self.register_code_tools = True

        # Classes that are never registered as tools
        self.excluded_base_classes = {"ToolInterface"}

        self.plugin_roots: List[Path] = []
        self.excluded_tool_names: Set[str] = set()

        self.enabled_plugins: Set[str] = set()
        self.disabled_plugins: Set[str] = set()
        self.plugin_enable_mode = "all"

        self.enabled_ecosystems: Set[str] = set()
        self.disabled_ecosystems: Set[str] = set()
        self.ecosystem_enable_mode = "all"

        self.enabled_os: Set[str] = set()
        self.disabled_os: Set[str] = set()
        self.os_enable_mode = "all"

        self._load_from_env()

    def _load_from_env(self):
        """Load configuration from environment variables."""
        env_code_tools = os.environ.get("MCP_REGISTER_CODE_TOOLS", "").lower()
        if env_code_tools in _FALSE_VALUES:
            self.register_code_tools = False
        elif env_code_tools in _TRUE_VALUES:
            self.register_code_tools = True

        self.excluded_base_classes.update(_env_list("MCP_EXCLUDED_BASE_CLASSES"))
        self.excluded_tool_names = _env_list("MCP_EXCLUDED_TOOL_NAMES")

        env_plugin_roots = os.environ.get("MCP_PLUGIN_ROOTS", "")
        if env_plugin_roots.strip():
            self.plugin_roots = [
                Path(p.strip()) for p in env_plugin_roots.split(",") if p.strip()
            ]
        else:
            default_plugin_root = Path(__file__).resolve().parent.parent / "plugins"
            if default_plugin_root.is_dir():
                self.plugin_roots = [default_plugin_root]
                logger.info(f"Using default plugin root: {default_plugin_root}")

        self.plugin_enable_mode = _env_mode("MCP_PLUGIN_MODE")
        self.enabled_plugins = _env_list("MCP_ENABLED_PLUGINS")
        self.disabled_plugins = _env_list("MCP_DISABLED_PLUGINS")

        self.ecosystem_enable_mode = _env_mode("MCP_ECOSYSTEM_MODE")
        self.enabled_ecosystems = _env_list("MCP_ENABLED_ECOSYSTEMS", lower=True)
        self.disabled_ecosystems = _env_list("MCP_DISABLED_ECOSYSTEMS", lower=True)

        self.os_enable_mode = _env_mode("MCP_OS_MODE")
        self.enabled_os = _env_list("MCP_ENABLED_OS", lower=True)
        self.disabled_os = _env_list("MCP_DISABLED_OS", lower=True)

        logger.debug(
            f"Plugin configuration loaded from environment: "
            f"register_code_tools={self.register_code_tools}, "
            f"plugin_roots={self.plugin_roots}, "
            f"plugin_enable_mode={self.plugin_enable_mode}, "
            f"ecosystem_enable_mode={self.ecosystem_enable_mode}, "
            f"os_enable_mode={self.os_enable_mode}"
        )

    def should_register_tool_class(
        self,
        class_name: str,
        tool_name: str,
        ecosystem: Optional[str] = None,
        os_type: Optional[str] = None,
    ) -> bool:
        """Determine if a tool class should be registered.

        Args:
            class_name: Name of the class
            tool_name: Name of the tool
            ecosystem: Ecosystem the tool belongs to (e.g., "argo", "general")
            os_type: OS compatibility ("windows", "non-windows", "all")

        Returns:
            True if the tool should be registered, False otherwise
        """
        if class_name in self.excluded_base_classes:
            logger.debug(f"Skipping registration of excluded base class: {class_name}")
            return False

        if tool_name in self.excluded_tool_names:
            logger.debug(f"Skipping registration of excluded tool: {tool_name}")
            return False

        if not self.is_plugin_enabled(tool_name):
            logger.debug(f"Skipping registration of disabled plugin: {tool_name}")
            return False

        if not self.is_ecosystem_enabled(ecosystem):
            logger.debug(f"Skipping registration of tool '{tool_name}' from disabled ecosystem: {ecosystem}")
            return False

        if not self.is_os_enabled(os_type):
            logger.debug(f"Skipping registration of tool '{tool_name}' from disabled OS: {os_type}")
            return False

        return True

    def is_plugin_enabled(self, plugin_name: str) -> bool:
        return _is_allowed(
            plugin_name, self.plugin_enable_mode, self.enabled_plugins, self.disabled_plugins
        )

    def is_ecosystem_enabled(self, ecosystem: Optional[str]) -> bool:
        """Untagged tools are always enabled; names compare case-insensitively."""
        if ecosystem is None:
            return True
        return _is_allowed(
            str(ecosystem).lower(),
            self.ecosystem_enable_mode,
            self.enabled_ecosystems,
            self.disabled_ecosystems,
        )

    def is_os_enabled(self, os_type: Optional[str]) -> bool:
        if os_type is None:
            return True
        return _is_allowed(
            str(os_type).lower(), self.os_enable_mode, self.enabled_os, self.disabled_os
        )

    def enable_plugin(self, plugin_name: str) -> None:
        self.enabled_plugins.add(plugin_name)
        self.disabled_plugins.discard(plugin_name)
        logger.info(f"Plugin '{plugin_name}' has been enabled")

    def disable_plugin(self, plugin_name: str) -> None:
        self.disabled_plugins.add(plugin_name)
        self.enabled_plugins.discard(plugin_name)
        logger.info(f"Plugin '{plugin_name}' has been disabled")

    def get_plugin_roots(self) -> List[Path]:
        """Get the plugin root directories."""
        return self.plugin_roots


# Create a singleton instance
config = PluginConfig()
