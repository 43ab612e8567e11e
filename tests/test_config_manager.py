"""
Tests for ConfigManager

Unit tests for configuration loading and validation.
"""

import unittest
import tempfile
import shutil
import json
import os
import sys
from json.decoder import JSONDecodeError
from unittest.mock import patch

# Add project root to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from top1000.config_manager import ConfigManager, ENV_OVERRIDES


class TestConfigManager(unittest.TestCase):
    """Test cases for ConfigManager class."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.settings_path = os.path.join(self.temp_dir, 'settings.json')
        self.env_file = os.path.join(self.temp_dir, '.env')

        self.env_patcher = patch.dict(os.environ)
        self.env_patcher.start()
        for env_var in ENV_OVERRIDES:
            os.environ.pop(env_var, None)

        self.sample_settings = {
            "networking": {
                "api_url": "https://mirror.example.com/top1000.php",
                "timeout_seconds": 20
            },
            "storage": {
                "static_dir": "/srv/www"
            },
            "schedule": {
                "times": ["07:30"]
            }
        }

    def tearDown(self):
        """Clean up test fixtures."""
        self.env_patcher.stop()
        shutil.rmtree(self.temp_dir)

    def _write_settings(self, settings):
        with open(self.settings_path, 'w', encoding='utf-8') as f:
            json.dump(settings, f)

    def test_defaults_without_settings_file(self):
        """Test defaults are used when no file is given."""
        config = ConfigManager(env_file=self.env_file)

        self.assertEqual(config.get_config_value("networking.api_url"), "https://api.iyuu.cn/top1000.php")
        self.assertEqual(config.get_config_value("parser.lines_per_group"), 3)
        self.assertEqual(config.get_config_value("freshness.max_age_hours"), 24)
        self.assertEqual(config.get_config_value("schedule.times"), ["09:00"])
        self.assertTrue(config.get_config_value("networking.verify_ssl"))

    def test_file_values_merge_with_defaults(self):
        """Test file settings take precedence and missing keys get defaults."""
        self._write_settings(self.sample_settings)

        config = ConfigManager(self.settings_path, env_file=self.env_file)

        self.assertEqual(config.get_config_value("networking.api_url"), "https://mirror.example.com/top1000.php")
        self.assertEqual(config.get_config_value("networking.timeout_seconds"), 20)
        self.assertTrue(config.get_config_value("networking.verify_ssl"))
        self.assertEqual(config.get_config_value("storage.static_dir"), "/srv/www")
        self.assertEqual(config.get_config_value("storage.snapshot_file"), "top1000.json")
        self.assertEqual(config.get_config_value("schedule.times"), ["07:30"])

    def test_defaults_are_not_shared(self):
        """Test mutating one config does not leak into another."""
        first = ConfigManager(env_file=self.env_file)
        first.settings["schedule"]["times"].append("23:00")

        second = ConfigManager(env_file=self.env_file)

        self.assertEqual(second.get_config_value("schedule.times"), ["09:00"])

    def test_get_config_value_default(self):
        """Test missing keys return the given default."""
        config = ConfigManager(env_file=self.env_file)

        self.assertEqual(config.get_config_value("nope.missing", "fallback"), "fallback")
        self.assertIsNone(config.get_config_value("networking.api_url.deeper"))

    def test_missing_settings_file(self):
        """Test an explicit but missing file raises."""
        with self.assertRaises(FileNotFoundError):
            ConfigManager(os.path.join(self.temp_dir, 'absent.json'), env_file=self.env_file)

    def test_invalid_json(self):
        """Test a malformed file raises JSONDecodeError."""
        with open(self.settings_path, 'w', encoding='utf-8') as f:
            f.write('{"networking": ')

        with self.assertRaises(JSONDecodeError):
            ConfigManager(self.settings_path, env_file=self.env_file)

    def test_invalid_values(self):
        """Test invalid values are rejected."""
        cases = [
            {"networking": {"timeout_seconds": "slow"}},
            {"networking": {"verify_ssl": "no"}},
            {"parser": {"lines_per_group": 2}},
            {"freshness": {"max_age_hours": 0}},
            {"schedule": {"times": "09:00"}},
            {"storage": "web-dist"},
            {"networking": {"proxy_url": 3128}},
            {"networking": {"proxy_url": "proxy.local:3128"}},
        ]
        for settings in cases:
            with self.subTest(settings=settings):
                self._write_settings(settings)
                with self.assertRaises((ValueError, TypeError)):
                    ConfigManager(self.settings_path, env_file=self.env_file)

    def test_environment_overrides(self):
        """Test environment variables override file settings."""
        self._write_settings(self.sample_settings)
        os.environ["TOP1000_API_URL"] = "https://other.example.com/feed"
        os.environ["TOP1000_STATIC_DIR"] = "/tmp/static"

        config = ConfigManager(self.settings_path, env_file=self.env_file)

        self.assertEqual(config.get_config_value("networking.api_url"), "https://other.example.com/feed")
        self.assertEqual(config.get_config_value("storage.static_dir"), "/tmp/static")

    def test_proxy_url_override(self):
        """Test the proxy can be set from the environment."""
        os.environ["TOP1000_PROXY_URL"] = "http://proxy.local:3128"

        config = ConfigManager(env_file=self.env_file)

        self.assertEqual(config.get_config_value("networking.proxy_url"), "http://proxy.local:3128")

    def test_insecure_skip_verify_from_dotenv(self):
        """Test INSECURE_SKIP_VERIFY in a .env file disables certificate validation."""
        with open(self.env_file, 'w', encoding='utf-8') as f:
            f.write("INSECURE_SKIP_VERIFY=yes\n")

        with self.assertLogs('top1000.config_manager', level='WARNING'):
            config = ConfigManager(env_file=self.env_file)

        self.assertFalse(config.get_config_value("networking.verify_ssl"))

    def test_insecure_skip_verify_false(self):
        """Test INSECURE_SKIP_VERIFY=false keeps validation on."""
        os.environ["INSECURE_SKIP_VERIFY"] = "false"

        config = ConfigManager(env_file=self.env_file)

        self.assertTrue(config.get_config_value("networking.verify_ssl"))


if __name__ == '__main__':
    unittest.main()
