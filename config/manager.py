import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional


class EnvironmentManager:
    """
    Environment manager holding the settings and Argo connection parameters
    read from a .env file, the OS environment and registered providers.
    """

    _instance = None

    # Default settings with their types
    DEFAULT_SETTINGS = {
        # Watch / wait polling of workflow phase
        "watch_poll_interval": (2.0, float),
        "watch_timeout": (300.0, float),
        "wait_timeout": (600.0, float),
        # Graph rendering
        "graph_layout_engine": ("dot", str),
        "graph_include_status": (True, bool),
    }

    # Default Argo Server connection settings with their types
    DEFAULT_ARGO_SETTINGS = {
        "server": (None, str),
        "token": (None, str),
        "namespace": ("default", str),
        "secure": (True, bool),
        "insecure_skip_verify": (False, bool),
        "request_timeout": (30.0, float),
    }

    ARGO_PREFIX = "ARGO_"

    # Each setting can be set via its uppercase env var
    ENV_MAPPING = {setting.upper(): setting for setting in DEFAULT_SETTINGS.keys()}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        """Initialize environment with default values"""
        self.env_variables: Dict[str, str] = {}
        self._providers: List[Callable[[], Dict[str, Any]]] = []
        self.argo_parameters: Dict[str, Any] = {}
        self.settings: Dict[str, Any] = {}
        self.env_file: Optional[Path] = None
        self.logger = logging.getLogger(__name__)

        for key, (default_value, _) in self.DEFAULT_SETTINGS.items():
            self.settings[key] = default_value

        self._load_from_env_file()

    def _get_git_root(self) -> Optional[Path]:
        """Walk up from the working directory looking for a .git directory"""
        dir_to_check = Path.cwd()
        for _ in range(10):  # Limit the search depth
            if (dir_to_check / ".git").is_dir():
                return dir_to_check

            parent_dir = dir_to_check.parent
            if parent_dir == dir_to_check:
                break
            dir_to_check = parent_dir

        return None

    @staticmethod
    def _convert_value(value: Any, target_type: type) -> Any:
        """Convert string value to target type"""
        if not isinstance(value, str):
            return value
        if target_type == bool:
            return value.strip().lower() in ("true", "1", "yes")
        return target_type(value)

    def _candidate_env_files(self) -> List[Path]:
        env_file_paths = [Path.cwd() / ".env"]

        git_root = self._get_git_root()
        if git_root:
            env_file_paths.append(git_root / ".env")

        try:
            env_file_paths.append(Path.home() / ".env")
        except (RuntimeError, OSError):
            # Home directory cannot be determined
            pass

        return env_file_paths

    def _load_from_env_file(self):
        """Find and load variables from the first .env file found"""
        env_file_paths = self._candidate_env_files()
        for env_path in env_file_paths:
            if env_path.is_file():
                self.logger.info(f"Loading environment from: {env_path}")
                self._parse_env_file(env_path)
                self.env_file = env_path
                return

        self.logger.debug(
            f"No .env file found, tried: {', '.join(str(p) for p in env_file_paths)}"
        )

    def _parse_env_file(self, env_file_path: Path):
        """Parse a .env file and apply its variables"""
        try:
            with open(env_file_path, "r") as f:
                for line in f:
                    line = line.strip()
                    if not line or line.startswith("#") or "=" not in line:
                        continue

                    key, value = line.split("=", 1)
                    key = key.strip()
                    value = value.strip()

                    # Remove quotes if present
                    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
                        value = value[1:-1]

                    self._apply_variable(key, value)
        except OSError as e:
            self.logger.error(f"Error parsing .env file {env_file_path}: {e}")

    def _apply_variable(self, key: str, value: str):
        """Store one variable and route it to a setting or the Argo parameters"""
        self.env_variables[key] = value

        if key in self.ENV_MAPPING:
            setting_name = self.ENV_MAPPING[key]
            _, target_type = self.DEFAULT_SETTINGS[setting_name]
            try:
                self.settings[setting_name] = self._convert_value(value, target_type)
            except ValueError:
                self.logger.warning(f"Ignoring invalid value for {key}: {value!r}")
        elif key.startswith(self.ARGO_PREFIX):
            param_name = key[len(self.ARGO_PREFIX):].lower()
            self.argo_parameters[param_name] = value

    def register_provider(self, provider: Callable[[], Dict[str, Any]]):
        """Register a provider function that returns additional environment data"""
        self._providers.append(provider)
        return self

    def load(self):
        """Load the .env file, then the OS environment, then providers"""
        self._load_from_env_file()

        for key, value in os.environ.items():
            self._apply_variable(key, value)

        for provider in self._providers:
            try:
                additional_data = provider()
            except Exception as e:
                self.logger.error(f"Error from provider: {e}")
                continue

            for key, value in additional_data.get("argo_parameters", {}).items():
                self.argo_parameters[key] = value

            for key, value in additional_data.get("settings", {}).items():
                if key in self.settings:
                    self.settings[key] = value

        return self

    def get_setting(self, name: str, default: Any = None) -> Any:
        """Get a setting value by name"""
        return self.settings.get(name, default)

    def get_argo_parameters(self) -> Dict[str, Any]:
        """Get Argo Server parameters with defaults applied and values typed"""
        result = {}
        for key, (default_value, _) in self.DEFAULT_ARGO_SETTINGS.items():
            result[key] = default_value

        for key, value in self.argo_parameters.items():
            if key in self.DEFAULT_ARGO_SETTINGS:
                _, target_type = self.DEFAULT_ARGO_SETTINGS[key]
                try:
                    value = self._convert_value(value, target_type)
                except ValueError:
                    self.logger.warning(f"Ignoring invalid value for ARGO_{key.upper()}: {value!r}")
                    continue
            result[key] = value

        return result

    def get_argo_parameter(self, name: str, default: Any = None) -> Any:
        """Get a specific Argo Server parameter"""
        value = self.get_argo_parameters().get(name)
        return default if value is None else value

    def get_parameter_dict(self) -> Dict[str, Any]:
        """Return settings plus ``argo_`` prefixed parameters as one dictionary"""
        result = dict(self.settings)
        for key, value in self.get_argo_parameters().items():
            result[f"argo_{key}"] = value
        return result


# Create a global instance
env_manager = EnvironmentManager()
