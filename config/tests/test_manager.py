import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from config.manager import EnvironmentManager


class TestEnvironmentManager(unittest.TestCase):
    """Test cases for the EnvironmentManager class."""

    def setUp(self):
        """Set up test fixtures."""
        # Create a new instance for each test to avoid singleton issues
        self.original_instance = EnvironmentManager._instance
        EnvironmentManager._instance = None
        self.env_manager = EnvironmentManager()

        self.temp_dir = tempfile.mkdtemp()
        self.original_cwd = os.getcwd()

    def tearDown(self):
        """Clean up after tests."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)
        os.chdir(self.original_cwd)
        EnvironmentManager._instance = self.original_instance

    def create_env_file(self, content):
        """Create a temporary .env file with the given content."""
        env_file = Path(self.temp_dir) / ".env"
        env_file.write_text(content)
        return env_file

    def test_initialization(self):
        """Test that EnvironmentManager initializes correctly."""
        self.assertIsInstance(self.env_manager.env_variables, dict)
        self.assertIsInstance(self.env_manager._providers, list)
        self.assertIsInstance(self.env_manager.argo_parameters, dict)
        self.assertIsInstance(self.env_manager.settings, dict)

        self.assertIn("watch_poll_interval", self.env_manager.settings)
        self.assertIn("graph_layout_engine", self.env_manager.settings)
        self.assertIn("graph_include_status", self.env_manager.settings)

    def test_singleton_pattern(self):
        """Test that EnvironmentManager follows singleton pattern."""
        EnvironmentManager._instance = None

        manager1 = EnvironmentManager()
        manager2 = EnvironmentManager()

        self.assertIs(manager1, manager2)

    def test_parse_env_file(self):
        """Test parsing an environment file."""
        env_content = """
        # Test environment file
        ARGO_SERVER=argo.example.com:2746
        ARGO_NAMESPACE=workflows
        ARGO_SECURE=false
        ARGO_REQUEST_TIMEOUT=12.5
        WATCH_POLL_INTERVAL=0.5
        GRAPH_INCLUDE_STATUS=false
        GRAPH_LAYOUT_ENGINE=neato
        """
        env_file = self.create_env_file(env_content)

        self.env_manager.argo_parameters = {}
        self.env_manager._parse_env_file(env_file)

        self.assertEqual(self.env_manager.argo_parameters.get("server"), "argo.example.com:2746")
        self.assertEqual(self.env_manager.argo_parameters.get("namespace"), "workflows")
        self.assertEqual(self.env_manager.settings["watch_poll_interval"], 0.5)
        self.assertFalse(self.env_manager.settings["graph_include_status"])
        self.assertEqual(self.env_manager.settings["graph_layout_engine"], "neato")

        params = self.env_manager.get_argo_parameters()
        self.assertFalse(params["secure"])
        self.assertEqual(params["request_timeout"], 12.5)

    def test_parse_env_file_with_quotes(self):
        """Test parsing an environment file with quoted values."""
        env_content = """
        ARGO_TOKEN="Bearer abc def"
        ARGO_NAMESPACE='quoted-ns'
        """
        env_file = self.create_env_file(env_content)

        self.env_manager._parse_env_file(env_file)

        self.assertEqual(self.env_manager.argo_parameters.get("token"), "Bearer abc def")
        self.assertEqual(self.env_manager.argo_parameters.get("namespace"), "quoted-ns")

    def test_invalid_setting_value_is_ignored(self):
        """Test that a setting that cannot be converted keeps its default."""
        env_file = self.create_env_file("WATCH_TIMEOUT=soon\n")

        self.env_manager._parse_env_file(env_file)

        self.assertEqual(self.env_manager.settings["watch_timeout"], 300.0)

    def test_argo_parameter_defaults(self):
        """Test that Argo parameters fall back to their defaults."""
        self.env_manager.argo_parameters = {}

        params = self.env_manager.get_argo_parameters()

        self.assertIsNone(params["server"])
        self.assertEqual(params["namespace"], "default")
        self.assertTrue(params["secure"])
        self.assertFalse(params["insecure_skip_verify"])
        self.assertEqual(params["request_timeout"], 30.0)
        self.assertEqual(self.env_manager.get_argo_parameter("server", "fallback"), "fallback")

    def test_load_from_os_environment(self):
        """Test that OS environment variables override the .env file."""
        env_file = self.create_env_file("ARGO_NAMESPACE=from-file\n")
        os.chdir(self.temp_dir)

        with mock.patch.object(
            EnvironmentManager, "_candidate_env_files", return_value=[env_file]
        ), mock.patch.dict(
            os.environ, {"ARGO_NAMESPACE": "from-env", "ARGO_INSECURE_SKIP_VERIFY": "yes"}
        ):
            self.env_manager.load()

        self.assertEqual(self.env_manager.env_file, env_file)
        self.assertEqual(self.env_manager.get_argo_parameter("namespace"), "from-env")
        self.assertTrue(self.env_manager.get_argo_parameter("insecure_skip_verify"))

    def test_register_provider(self):
        """Test registering a provider function."""
        provider = mock.Mock(
            return_value={
                "argo_parameters": {"server": "provider.example.com", "namespace": "provided"},
                "settings": {"wait_timeout": 42.0, "unknown_setting": "ignored"},
            }
        )

        self.env_manager.register_provider(provider)
        self.assertIn(provider, self.env_manager._providers)

        self.env_manager.load()

        provider.assert_called_once()
        self.assertEqual(self.env_manager.get_argo_parameter("server"), "provider.example.com")
        self.assertEqual(self.env_manager.get_argo_parameter("namespace"), "provided")
        self.assertEqual(self.env_manager.get_setting("wait_timeout"), 42.0)
        self.assertNotIn("unknown_setting", self.env_manager.settings)

    def test_provider_exception_handling(self):
        """Test that exceptions from providers are handled gracefully."""

        def failing_provider():
            raise Exception("Provider failure test")

        self.env_manager.register_provider(failing_provider)

        try:
            self.env_manager.load()
        except Exception:
            self.fail("load() raised an exception from a failing provider")

    def test_get_parameter_dict(self):
        """Test getting a parameter dictionary."""
        self.env_manager.argo_parameters = {"server": "argo:2746", "namespace": "ci"}

        params = self.env_manager.get_parameter_dict()

        self.assertEqual(params["argo_server"], "argo:2746")
        self.assertEqual(params["argo_namespace"], "ci")
        self.assertEqual(params["argo_request_timeout"], 30.0)
        self.assertIn("watch_poll_interval", params)

    def test_get_git_root(self):
        """Test finding the git root from a nested directory."""
        repo = Path(self.temp_dir) / "repo"
        nested = repo / "a" / "b"
        nested.mkdir(parents=True)
        (repo / ".git").mkdir()
        os.chdir(nested)

        self.assertEqual(self.env_manager._get_git_root().resolve(), repo.resolve())


if __name__ == "__main__":
    unittest.main()
