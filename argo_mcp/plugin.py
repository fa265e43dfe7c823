import importlib.util
import inspect
import logging
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Type, Union

from argo_mcp.constants import Ecosystem, OSType
from argo_mcp.interfaces import ToolInterface
from argo_mcp.plugin_config import config

logger = logging.getLogger(__name__)


@contextmanager
def time_plugin_operation(name: str):
    start_time = time.time()
    logger.info(f"🚀 Starting {name}...")
    try:
        yield
    finally:
        duration = time.time() - start_time
        logger.info(f"✅ {name} completed in {duration:.2f}s")


class PluginRegistry:
    """Registry for MCP tool plugins.

    This class handles the registration, discovery, and management of tool plugins
    that implement the ToolInterface.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(PluginRegistry, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        self.tools: Dict[str, Type[ToolInterface]] = {}
        self.instances: Dict[str, ToolInterface] = {}
        self.discovered_paths: Set[str] = set()
        self.tool_ecosystems: Dict[str, Optional[str]] = {}
        self.tool_os: Dict[str, Optional[str]] = {}

    def register_tool(
        self,
        tool_class: Type[ToolInterface],
        ecosystem: Optional[Union[str, Ecosystem]] = None,
        os_type: Optional[Union[str, OSType]] = None,
    ) -> Optional[Type[ToolInterface]]:
        """Register a tool class.

        Args:
            tool_class: A class that implements ToolInterface
            ecosystem: Ecosystem the tool belongs to (e.g., "argo", "general")
            os_type: OS compatibility ("windows", "non-windows", "all")

        Returns:
            The registered tool class or None if it wasn't registered

        Raises:
            TypeError: If the provided class doesn't implement ToolInterface
        """
        if not inspect.isclass(tool_class):
            raise TypeError(f"Expected a class, got {type(tool_class)}")

        if not issubclass(tool_class, ToolInterface):
            raise TypeError(
                f"Class {tool_class.__name__} does not implement ToolInterface"
            )

        if inspect.isabstract(tool_class):
            logger.debug(
                f"Skipping registration of abstract class {tool_class.__name__}"
            )
            return None

        ecosystem_name = str(ecosystem) if ecosystem is not None else None
        os_name = str(os_type) if os_type is not None else None

        # A temporary instance supplies the tool name
        try:
            tool_name = tool_class().name
        except Exception as e:
            logger.error(f"Error creating instance of {tool_class.__name__}: {e}")
            return None

        if not config.should_register_tool_class(
            tool_class.__name__, tool_name, ecosystem=ecosystem_name, os_type=os_name
        ):
            return None

        logger.info(
            f"Registering tool: {tool_name} ({tool_class.__name__})"
            f"{f' [ecosystem: {ecosystem_name}]' if ecosystem_name else ''}"
            f"{f' [os: {os_name}]' if os_name else ''}"
        )
        if self.tools.get(tool_name) is not tool_class:
            # Cached instances belong to the class being replaced
            self.instances.pop(tool_name, None)
        self.tools[tool_name] = tool_class
        self.tool_ecosystems[tool_name] = ecosystem_name
        self.tool_os[tool_name] = os_name
        return tool_class

    def get_tool_instance(self, tool_name: str) -> Optional[ToolInterface]:
        """Get or create an instance of a registered tool.

        Lookup is case-sensitive first, then case-insensitive.

        Args:
            tool_name: Name of the tool to get

        Returns:
            Instance of the tool, or None if not found
        """
        registered_name = self._resolve_name(tool_name)
        if registered_name is None:
            logger.warning(f"Tool '{tool_name}' not found")
            return None

        if registered_name in self.instances:
            return self.instances[registered_name]

        logger.debug(f"Creating new instance for tool '{registered_name}'")
        try:
            instance = self.tools[registered_name]()
        except Exception as e:
            logger.error(f"Error creating instance of tool {registered_name}: {e}")
            return None
        self.instances[registered_name] = instance
        return instance

    def _resolve_name(self, tool_name: str) -> Optional[str]:
        if tool_name in self.tools:
            return tool_name
        for registered_name in self.tools:
            if registered_name.lower() == tool_name.lower():
                logger.debug(
                    f"Matched tool '{tool_name}' case-insensitively to '{registered_name}'"
                )
                return registered_name
        return None

    def _scan_module_for_tools(self, module) -> int:
        """Register every concrete ToolInterface class defined in a module.

        Returns:
            Number of tools registered from the module
        """
        module_name = getattr(module, "__name__", "Unknown")
        logger.debug(f"Scanning module {module_name} for tool classes")

        registered = 0
        for name, obj in inspect.getmembers(module, inspect.isclass):
            if (
                obj.__module__ != module_name
                or not issubclass(obj, ToolInterface)
                or obj is ToolInterface
                or inspect.isabstract(obj)
            ):
                continue

            try:
                instance = obj()
                self._validate_tool(name, instance)
            except Exception as e:
                logger.warning(f"Tool {name} failed validation: {e}")
                continue

            ecosystem = getattr(obj, "_mcp_ecosystem", None)
            os_type = getattr(obj, "_mcp_os", None)
            if self.register_tool(obj, ecosystem=ecosystem, os_type=os_type) is not None:
                registered += 1
            else:
                logger.debug(f"Tool {name} was not registered (likely due to configuration)")

        if registered == 0:
            logger.debug(f"No tool classes registered from module {module_name}")
        return registered

    @staticmethod
    def _validate_tool(class_name: str, instance: ToolInterface) -> None:
        if not instance.name or not isinstance(instance.name, str):
            raise ValueError(f"Tool {class_name} has invalid name: {instance.name}")
        if not instance.description or not isinstance(instance.description, str):
            raise ValueError(f"Tool {class_name} has invalid description: {instance.description}")
        if not isinstance(instance.input_schema, dict):
            raise ValueError(
                f"Tool {class_name} has invalid input_schema: {type(instance.input_schema)}"
            )

    def discover_plugin_directory(self, plugin_dir: Path) -> None:
        """Discover and load plugins from a directory.

        A plugin is a subdirectory with an ``__init__.py``; its tools live in
        files whose names end in ``tool.py``.

        Args:
            plugin_dir: Path to the plugin directory
        """
        if not plugin_dir.exists() or not plugin_dir.is_dir():
            logger.warning(
                f"Plugin directory does not exist or is not a directory: {plugin_dir}"
            )
            return

        logger.info(f"🔍 Scanning plugin directory: {plugin_dir}")

        plugin_subdirs = sorted(
            item for item in plugin_dir.iterdir()
            if item.is_dir() and (item / "__init__.py").exists()
        )
        if not plugin_subdirs:
            logger.info(f"📁 No plugin directories found in: {plugin_dir}")
            return

        # Tool modules import their package siblings by absolute name
        root_parent = str(plugin_dir.resolve().parent)
        if root_parent not in sys.path:
            sys.path.insert(0, root_parent)

        for item in plugin_subdirs:
            plugin_name = item.name
            if plugin_name in self.discovered_paths:
                logger.debug(f"Skipping already processed plugin: {plugin_name}")
                continue
            self.discovered_paths.add(plugin_name)

            tool_files = sorted(item.glob("*tool.py"))
            if not tool_files:
                logger.info(f"  📄 No tool modules found in {plugin_name} (*tool.py)")
                continue

            logger.info(f"🔌 Loading plugin: {plugin_name}")
            start = time.time()
            for tool_file in tool_files:
                self._load_tool_module(plugin_dir.name, plugin_name, tool_file)
            logger.info(f"  ⏱️  Plugin loaded in {time.time() - start:.3f}s")

    def _load_tool_module(self, root_name: str, plugin_name: str, tool_file: Path) -> None:
        module_name = f"{root_name}.{plugin_name}.{tool_file.stem}"
        try:
            module = sys.modules.get(module_name)
            if module is None:
                spec = importlib.util.spec_from_file_location(module_name, str(tool_file))
                if spec is None or spec.loader is None:
                    logger.error(f"  ❌ Failed to create spec for {tool_file}")
                    return
                module = importlib.util.module_from_spec(spec)
                sys.modules[module_name] = module
                spec.loader.exec_module(module)

            tools_added = self._scan_module_for_tools(module)
            if tools_added > 0:
                logger.info(f"  ✅ Successfully loaded: {tool_file.stem} ({tools_added} tools)")
            else:
                logger.info(f"  ⚠️  No tools found in: {tool_file.stem}")
        except Exception as e:
            sys.modules.pop(module_name, None)
            logger.error(f"  ❌ Error importing tool module from {tool_file}: {e}")

    def get_all_tools(self) -> List[Type[ToolInterface]]:
        return list(self.tools.values())

    def get_tools_by_ecosystem(self, ecosystem: str) -> List[Type[ToolInterface]]:
        """Get all tools from a specific ecosystem (case-insensitive)."""
        ecosystem_lower = ecosystem.lower()
        return [
            tool_class
            for tool_name, tool_class in self.tools.items()
            if (self.tool_ecosystems.get(tool_name) or "").lower() == ecosystem_lower
        ]

    def get_all_instances(self) -> List[ToolInterface]:
        """Get instances of all registered and enabled tools."""
        instances = []
        for tool_name in self.tools:
            if not config.is_plugin_enabled(tool_name):
                continue
            instance = self.get_tool_instance(tool_name)
            if instance is not None:
                instances.append(instance)
        return instances

    def get_available_plugins(self) -> Dict[str, Dict[str, Any]]:
        """Metadata for every registered tool and every explicitly configured name."""
        available_plugins = {}

        for tool_name, tool_class in self.tools.items():
            available_plugins[tool_name] = {
                "name": tool_name,
                "class_name": tool_class.__name__,
                "registered": True,
                "enabled": config.is_plugin_enabled(tool_name),
                "explicitly_configured": (
                    tool_name in config.enabled_plugins or
                    tool_name in config.disabled_plugins
                ),
                "has_instance": tool_name in self.instances,
                "ecosystem": self.tool_ecosystems.get(tool_name),
                "os": self.tool_os.get(tool_name),
            }

        for plugin_name in config.enabled_plugins.union(config.disabled_plugins):
            if plugin_name not in available_plugins:
                available_plugins[plugin_name] = {
                    "name": plugin_name,
                    "class_name": "Unknown",
                    "registered": False,
                    "enabled": config.is_plugin_enabled(plugin_name),
                    "explicitly_configured": True,
                    "has_instance": False,
                    "ecosystem": None,
                    "os": None,
                }

        return available_plugins

    def clear(self) -> None:
        """Clear all registered tools and instances."""
        self.tools.clear()
        self.instances.clear()
        self.discovered_paths.clear()
        self.tool_ecosystems.clear()
        self.tool_os.clear()


# Create singleton instance
registry = PluginRegistry()


def register_tool(
    cls=None,
    *,
    ecosystem: Optional[Union[str, Ecosystem]] = None,
    os_type: Optional[Union[str, OSType]] = None,
):
    """Decorator to register a tool class with the plugin registry.

    Args:
        cls: The class to register
        ecosystem: Ecosystem the tool belongs to (e.g., "argo", "general")
        os_type: OS compatibility ("windows", "non-windows", "all")

    Example:
        @register_tool
        class MyTool(ToolInterface):
            ...

        @register_tool(ecosystem=Ecosystem.ARGO, os_type=OSType.ALL)
        class WorkflowTool(ToolInterface):
            ...
    """

    def _register(cls):
        # Stored on the class so directory discovery can re-read them
        cls._mcp_ecosystem = str(ecosystem) if ecosystem is not None else None
        cls._mcp_os = str(os_type) if os_type is not None else None

        registry.register_tool(cls, ecosystem=ecosystem, os_type=os_type)
        return cls

    if cls is None:
        return _register
    return _register(cls)


def discover_and_register_tools() -> int:
    """Discover and register tools from every configured plugin root.

    Returns:
        Number of tools registered after discovery
    """
    if not config.register_code_tools:
        logger.info("🔧 Code tool registration is disabled")
        return len(registry.tools)

    plugin_roots = config.get_plugin_roots()
    logger.info(f"🔍 Discovering tools in {len(plugin_roots)} plugin root directories")

    with time_plugin_operation("Plugin Directories Discovery"):
        for plugin_dir in plugin_roots:
            try:
                registry.discover_plugin_directory(plugin_dir)
            except OSError as e:
                logger.error(f"❌ Error discovering tools in plugin directory {plugin_dir}: {e}")

    logger.info(f"🔧 Total tools registered: {len(registry.tools)}")
    logger.debug(f"Registered tool names: {list(registry.tools.keys())}")
    return len(registry.tools)
