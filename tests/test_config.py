import unittest
from pathlib import Path
from unittest.mock import patch, mock_open
import sys
import os

# Add parent directory to path to import codebase_requirements
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from codebase_requirements.config import AppConfig, ConfigError, RetryConfig
from codebase_requirements.utils import (
    build_file_tree,
    format_duration,
    format_progress,
    format_timestamp,
)


class TestHelpers(unittest.TestCase):
    def test_format_duration(self):
        self.assertEqual(format_duration(30), "30s")
        self.assertEqual(format_duration(60), "1m 0s")
        self.assertEqual(format_duration(65), "1m 5s")
        self.assertEqual(format_duration(3600), "60m 0s")

    def test_format_progress(self):
        self.assertEqual(format_progress(3, 10), "3/10 (30%)")
        self.assertEqual(format_progress(0, 0), "0/0")

    def test_format_timestamp_keeps_unparseable_values(self):
        self.assertEqual(format_timestamp("yesterday"), "yesterday")

    def test_build_file_tree(self):
        files = ["src/main.py", "src/img/logo.png", "README.md", "__MACOSX/src/._main.py"]
        skipped = {"src/img/logo.png": "binary", "__MACOSX/src/._main.py": "filtered"}

        tree = build_file_tree(files, skipped)

        self.assertIn("src/", tree)
        self.assertIn("main.py", tree)
        self.assertIn("img/", tree)
        self.assertIn("logo.png # skipped (binary)", tree)
        self.assertIn("._main.py # skipped (filtered)", tree)
        self.assertNotIn("README.md #", tree)


class TestConfig(unittest.TestCase):
    def test_load_config_success(self):
        yaml_content = """
project:
  output_dir: "out"
  store_dir: "projects"
model:
  name: "gemini-pro"
  timeout: 60
  synthesis_temperature: 0.1
retry:
  max_retries: 3
processing:
  ignore_prefixes: ["__MACOSX/"]
  ignore_filenames: [".DS_Store", "Thumbs.db"]
"""
        with patch("pathlib.Path.open", mock_open(read_data=yaml_content)):
            with patch("pathlib.Path.exists", return_value=True):
                config = AppConfig.load("config.yaml")
                self.assertEqual(config.project.output_dir, Path("out"))
                self.assertEqual(config.project.store_dir, Path("projects"))
                self.assertEqual(config.model.name, "gemini-pro")
                self.assertEqual(config.model.synthesis_temperature, 0.1)
                self.assertEqual(config.retry.max_retries, 3)
                self.assertEqual(config.retry.base_delay, 1.0)
                self.assertEqual(config.processing.ignore_filenames, [".DS_Store", "Thumbs.db"])
                self.assertEqual(config.logging.level, "INFO")

    def test_missing_sections_use_defaults(self):
        with patch("pathlib.Path.open", mock_open(read_data="model:\n  name: x\n")):
            with patch("pathlib.Path.exists", return_value=True):
                config = AppConfig.load("config.yaml")
        self.assertEqual(config.retry, RetryConfig())
        self.assertEqual(config.processing.ignore_prefixes, ["__MACOSX/"])
        self.assertEqual(config.project.document_file, "requirements.md")

    def test_unknown_keys_are_ignored_with_warning(self):
        yaml_content = "retry:\n  max_retries: 2\n  colour: blue\n"
        with patch("pathlib.Path.open", mock_open(read_data=yaml_content)):
            with patch("pathlib.Path.exists", return_value=True):
                with self.assertLogs("codebase_requirements.config.models", level="WARNING") as logs:
                    config = AppConfig.load("config.yaml")
        self.assertEqual(config.retry.max_retries, 2)
        self.assertTrue(any("colour" in line for line in logs.output))

    def test_load_config_not_found(self):
        with patch("pathlib.Path.exists", return_value=False):
            with self.assertRaises(ConfigError):
                AppConfig.load("missing.yaml")

    def test_invalid_yaml(self):
        with patch("pathlib.Path.open", mock_open(read_data="model: [unclosed")):
            with patch("pathlib.Path.exists", return_value=True):
                with self.assertRaises(ConfigError):
                    AppConfig.load("config.yaml")


if __name__ == '__main__':
    unittest.main()
