"""
Tests for configuration loading — project.yml parsing and validation.
"""

import textwrap
from pathlib import Path

import pytest

from src.core.config.loader import (
    ConfigError,
    find_project_file,
    load_graph,
    load_project,
)


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "project.yml"
    path.write_text(textwrap.dedent(content))
    return path


class TestLoadProject:
    def test_load_valid_project(self, project_yml: Path):
        project = load_project(project_yml)
        assert project.name == "shop"
        assert project.version == 1
        assert project.module_names == ["a", "b", "c"]

    def test_services_claimed_by_module(self, project_yml: Path):
        project = load_project(project_yml)
        module = project.get_module("b")
        assert module is not None
        assert module.dependencies == ["a"]
        assert module.services[0].module == "b"
        assert [t.name for t in module.tests] == ["unit", "integ"]

    def test_wrapped_project_key(self, tmp_path: Path):
        path = _write(tmp_path, """\
            version: 2
            project:
              name: wrapped
            modules:
              - name: api
        """)
        project = load_project(path)
        assert project.name == "wrapped"
        assert project.version == 2
        assert project.module_names == ["api"]

    def test_section_values_win_over_siblings(self, tmp_path: Path):
        path = _write(tmp_path, """\
            version: 2
            project:
              name: wrapped
              version: 3
        """)
        assert load_project(path).version == 3

    def test_empty_project_section(self, tmp_path: Path):
        path = _write(tmp_path, "project:\nmodules: []\n")
        with pytest.raises(ConfigError, match="Expected a mapping under 'project'"):
            load_project(path)

    def test_scalar_project_section(self, tmp_path: Path):
        path = _write(tmp_path, "project: shop\nversion: 1\n")
        with pytest.raises(ConfigError, match="Expected a mapping under 'project'"):
            load_project(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_project(tmp_path / "nope.yml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = _write(tmp_path, "name: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_project(path)

    def test_not_a_mapping(self, tmp_path: Path):
        path = _write(tmp_path, "- just\n- a list\n")
        with pytest.raises(ConfigError, match="Expected a YAML mapping"):
            load_project(path)

    def test_missing_name(self, tmp_path: Path):
        path = _write(tmp_path, "description: nameless\n")
        with pytest.raises(ConfigError, match="Invalid project configuration"):
            load_project(path)

    def test_no_project_file_found(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ConfigError, match="No project.yml found"):
            load_project()


class TestLoadGraph:
    def test_builds_graph(self, project_yml: Path):
        project, graph = load_graph(project_yml)
        assert project.name == "shop"
        assert [m.name for m in graph.with_dependants("a")] == ["a", "b"]

    def test_unknown_dependency(self, tmp_path: Path):
        path = _write(tmp_path, """\
            name: broken
            modules:
              - name: api
                dependencies: [ghost]
        """)
        with pytest.raises(ConfigError, match="Invalid module graph"):
            load_graph(path)

    def test_duplicate_service(self, tmp_path: Path):
        path = _write(tmp_path, """\
            name: broken
            modules:
              - name: a
                services: [{name: web}]
              - name: b
                services: [{name: web}]
        """)
        with pytest.raises(ConfigError, match="Duplicate service"):
            load_graph(path)


class TestFindProjectFile:
    def test_finds_in_current_dir(self, project_yml: Path):
        assert find_project_file(project_yml.parent) == project_yml.resolve()

    def test_walks_up(self, project_yml: Path):
        nested = project_yml.parent / "a" / "src"
        nested.mkdir(parents=True)
        assert find_project_file(nested) == project_yml.resolve()

