"""
Tests for domain models — selections, settings, tasks, log entries.
"""

from datetime import UTC, datetime

import pytest

from src.core.models import (
    BaseTask,
    BuildTask,
    DeployTask,
    Module,
    Project,
    Selection,
    Service,
    ServiceLogEntry,
    SessionSettings,
    TaskType,
    TestConfig,
    TestTask,
    dedupe_tasks,
)


class TestSelection:
    def test_sole_wildcard_is_all(self):
        assert Selection.parse(["*"]).is_all

    def test_mixed_list_is_not_wildcard(self):
        sel = Selection.parse(["*", "api"])
        assert not sel.is_all
        assert sel.names == ("*", "api")
        assert not sel.includes("web")

    def test_empty_selects_nothing(self):
        sel = Selection.parse([])
        assert sel.is_empty
        assert not sel.includes("api")
        assert Selection.parse(None).is_empty

    def test_named_keeps_order(self):
        assert Selection.parse(["b", "a"]).names == ("b", "a")

    def test_expand(self):
        assert Selection.all().expand(["x", "y"]) == ["x", "y"]
        assert Selection.named(["z"]).expand(["x", "y"]) == ["z"]

    def test_service_named_star(self):
        """A named selection holding "*" only matches a service literally named "*"."""
        sel = Selection.named(["*"])
        assert not sel.is_all
        assert sel.includes("*")
        assert not sel.includes("api")

    def test_to_raw(self):
        assert Selection.all().to_raw() == ["*"]
        assert Selection.named(["a"]).to_raw() == ["a"]


class TestSessionSettings:
    def test_defaults(self):
        s = SessionSettings()
        assert s.deploy_services.is_all
        assert s.test_modules.is_all
        assert s.hot_reload_services.is_empty

    def test_to_dict_uses_wire_keys(self):
        d = SessionSettings(hot_reload_services=Selection.named(["api"])).to_dict()
        assert d == {
            "deployServiceNames": ["*"],
            "testModuleNames": ["*"],
            "testConfigNames": ["*"],
            "devModeServiceNames": ["*"],
            "hotReloadServiceNames": ["api"],
        }

    def test_from_raw(self):
        s = SessionSettings.from_raw({"deployServiceNames": ["api"], "testModuleNames": []})
        assert s.deploy_services.names == ("api",)
        assert s.test_modules.is_empty
        assert s.test_names.is_all


class TestModule:
    def test_services_claimed_by_module(self):
        m = Module(name="api", services=[Service(name="api-svc")])
        assert m.services[0].module == "api"
        assert m.service_names == ["api-svc"]

    def test_lookups(self):
        m = Module(name="api", services=[Service(name="s")], tests=[TestConfig(name="unit")])
        assert m.get_service("s") is not None
        assert m.get_service("nope") is None
        assert m.get_test("unit") is not None

    def test_project_get_module(self):
        p = Project(name="p", modules=[Module(name="api")])
        assert p.get_module("api") is not None
        assert p.get_module("web") is None
        assert p.module_names == ["api"]


class TestTasks:
    def test_keys(self):
        m = Module(name="api", services=[Service(name="api-svc")], tests=[TestConfig(name="unit")])
        assert BuildTask(module=m).key == "build.api"
        assert TestTask(module=m, test=m.tests[0]).key == "test.api.unit"
        assert DeployTask(service=m.services[0]).key == "deploy.api-svc"

    def test_deploy_flags(self):
        svc = Service(name="api-svc", module="api")
        task = DeployTask(
            service=svc,
            hot_reload_service_names=frozenset({"api-svc"}),
        )
        assert task.type == TaskType.DEPLOY
        assert task.hot_reload
        assert not task.dev_mode
        d = task.to_dict()
        assert d["hotReload"] is True
        assert d["module"] == "api"

    def test_base_task_has_no_target(self):
        task = BaseTask(type=TaskType.BUILD)
        with pytest.raises(NotImplementedError, match="BaseTask"):
            task.key

    def test_dedupe_keeps_first(self):
        m = Module(name="api")
        first = BuildTask(module=m)
        forced = BuildTask(module=m, force=True)
        other = BuildTask(module=Module(name="web"))
        result = dedupe_tasks([first, forced, other])
        assert result == [first, other]


class TestServiceLogEntry:
    def test_timestamp_ms(self):
        ts = datetime(2024, 1, 1, tzinfo=UTC)
        entry = ServiceLogEntry(service_name="api", message="hi", timestamp=ts)
        assert entry.timestamp_ms == 1704067200000

    def test_no_timestamp(self):
        assert ServiceLogEntry(service_name="api", message="hi").timestamp_ms is None
