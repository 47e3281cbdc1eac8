#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Unit tests for adocflat CLI configuration management.

This module tests configuration file discovery, loading and priority
handling.
"""

import argparse
import json
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from adocflat.cli.config import (
    discover_config_file,
    find_config_in_parents,
    load_config_file,
    load_config_with_priority,
    merge_configs,
)


@pytest.mark.unit
@pytest.mark.cli
class TestConfigDiscovery:
    """Test configuration file discovery functionality."""

    def test_discover_config_in_cwd(self, tmp_path: Path) -> None:
        """Test discovering a config file in the current working directory."""
        config_file = tmp_path / ".adocflat.toml"
        config_file.write_text('output_mode = "asciidoc"\n')

        with patch("pathlib.Path.cwd", return_value=tmp_path):
            discovered = discover_config_file()

        assert discovered is not None
        assert discovered.resolve() == config_file.resolve()

    def test_discover_config_in_parent(self, tmp_path: Path) -> None:
        """Test discovery walks up from nested directories."""
        config_file = tmp_path / ".adocflat.yaml"
        config_file.write_text("max_include_depth: 8\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)

        assert find_config_in_parents(nested) == config_file.resolve()

    def test_discover_config_in_home(self, tmp_path: Path) -> None:
        """Test the home directory is searched last."""
        home = tmp_path / "home"
        work = tmp_path / "work"
        home.mkdir()
        work.mkdir()
        config_file = home / ".adocflat.json"
        config_file.write_text('{"output_mode": "asciidoc"}')

        with patch("adocflat.cli.config.find_config_in_parents", return_value=None):
            with patch("pathlib.Path.home", return_value=home):
                discovered = discover_config_file(work)

        assert discovered == config_file

    def test_toml_preferred_over_json(self, tmp_path: Path) -> None:
        """Test TOML files are preferred when several formats exist."""
        toml_file = tmp_path / ".adocflat.toml"
        toml_file.write_text('output_mode = "text"\n')
        (tmp_path / ".adocflat.json").write_text('{"output_mode": "asciidoc"}')

        assert find_config_in_parents(tmp_path) == toml_file.resolve()

    def test_pyproject_with_section(self, tmp_path: Path) -> None:
        """Test a pyproject.toml with [tool.adocflat] is discovered."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text('[project]\nname = "docs"\n\n[tool.adocflat]\noutput_mode = "asciidoc"\n')

        assert find_config_in_parents(tmp_path) == pyproject.resolve()
        assert load_config_file(pyproject) == {"output_mode": "asciidoc"}

    def test_pyproject_without_section_skipped(self, tmp_path: Path) -> None:
        """Test a pyproject.toml without our section does not stop the search."""
        (tmp_path / ".adocflat.json").write_text("{}")
        nested = tmp_path / "pkg"
        nested.mkdir()
        (nested / "pyproject.toml").write_text('[project]\nname = "pkg"\n')

        assert find_config_in_parents(nested) == (tmp_path / ".adocflat.json").resolve()


@pytest.mark.unit
@pytest.mark.cli
class TestConfigLoading:
    """Test loading each supported format."""

    def test_load_toml(self, tmp_path: Path) -> None:
        """Test TOML tables load as nested dictionaries."""
        path = tmp_path / "cfg.toml"
        path.write_text('max_include_depth = 4\n\n[attributes]\nversion = "2.0"\n')

        assert load_config_file(path) == {"max_include_depth": 4, "attributes": {"version": "2.0"}}

    def test_load_yaml(self, tmp_path: Path) -> None:
        """Test YAML mappings load."""
        path = tmp_path / "cfg.yml"
        path.write_text(yaml.safe_dump({"allow_remote": True, "http": {"timeout": 2.5}}))

        assert load_config_file(path) == {"allow_remote": True, "http": {"timeout": 2.5}}

    def test_load_empty_yaml(self, tmp_path: Path) -> None:
        """Test an empty YAML file is an empty config."""
        path = tmp_path / "cfg.yaml"
        path.write_text("")

        assert load_config_file(path) == {}

    def test_load_json(self, tmp_path: Path) -> None:
        """Test JSON objects load."""
        path = tmp_path / "cfg.json"
        path.write_text(json.dumps({"validate_anchors": False}))

        assert load_config_file(path) == {"validate_anchors": False}

    @pytest.mark.parametrize(
        "name,content",
        [
            ("cfg.toml", "output_mode = "),
            ("cfg.json", "{not json"),
            ("cfg.json", "[1, 2]"),
            ("cfg.yaml", "- just\n- a list\n"),
            ("cfg.ini", "[section]\n"),
        ],
    )
    def test_invalid_files(self, tmp_path: Path, name: str, content: str) -> None:
        """Test malformed or unsupported files raise ArgumentTypeError."""
        path = tmp_path / name
        path.write_text(content)

        with pytest.raises(argparse.ArgumentTypeError):
            load_config_file(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a missing file raises ArgumentTypeError."""
        with pytest.raises(argparse.ArgumentTypeError, match="does not exist"):
            load_config_file(tmp_path / "missing.toml")


@pytest.mark.unit
@pytest.mark.cli
class TestConfigPriority:
    """Test merging and priority order."""

    def test_merge_configs_recursive(self) -> None:
        """Test nested tables merge and scalars are replaced."""
        base = {"attributes": {"a": "1", "b": "2"}, "output_mode": "text"}
        override = {"attributes": {"b": "3"}, "output_mode": "asciidoc"}

        assert merge_configs(base, override) == {"attributes": {"a": "1", "b": "3"}, "output_mode": "asciidoc"}
        assert base["attributes"] == {"a": "1", "b": "2"}

    def test_explicit_path_wins(self, tmp_path: Path) -> None:
        """Test --config takes precedence over the environment variable and discovery."""
        explicit = tmp_path / "explicit.json"
        explicit.write_text('{"output_mode": "asciidoc"}')
        env = tmp_path / "env.json"
        env.write_text('{"output_mode": "text"}')

        assert load_config_with_priority(str(explicit), str(env)) == {"output_mode": "asciidoc"}

    def test_env_path_before_discovery(self, tmp_path: Path) -> None:
        """Test ADOCFLAT_CONFIG is used before discovered files."""
        (tmp_path / ".adocflat.json").write_text('{"max_include_depth": 1}')
        env = tmp_path / "env.json"
        env.write_text('{"max_include_depth": 2}')

        assert load_config_with_priority(None, str(env), start_dir=tmp_path) == {"max_include_depth": 2}

    def test_discovery_fallback(self, tmp_path: Path) -> None:
        """Test discovery is used when nothing is named."""
        (tmp_path / ".adocflat.json").write_text('{"max_include_depth": 1}')

        assert load_config_with_priority(start_dir=tmp_path) == {"max_include_depth": 1}

    def test_nothing_found(self, tmp_path: Path) -> None:
        """Test an empty config when no file exists anywhere."""
        with patch("adocflat.cli.config.discover_config_file", return_value=None):
            assert load_config_with_priority(start_dir=tmp_path) == {}
