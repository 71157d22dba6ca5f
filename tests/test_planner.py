"""
Tests for the planners — initial tasks and per-change watch tasks.
"""

import pytest

from src.core.engine.graph import DependencyGraph
from src.core.engine.planner import PlanningError, initial_tasks, watch_tasks
from src.core.engine.tasks import TaskFactory
from src.core.models import (
    BuildTask,
    DeployTask,
    Module,
    Selection,
    Service,
    SessionSettings,
    TestConfig,
    TestTask,
)

EVERYTHING = SessionSettings(
    deploy_services=Selection.all(),
    test_modules=Selection.all(),
    test_names=Selection.all(),
    dev_mode_services=Selection.none(),
    hot_reload_services=Selection.none(),
)


def _two_module_graph() -> DependencyGraph:
    return DependencyGraph([
        Module(name="a", services=[Service(name="svc-a")], tests=[TestConfig(name="unit")]),
        Module(
            name="b",
            dependencies=["a"],
            services=[Service(name="svc-b")],
            tests=[TestConfig(name="unit")],
        ),
    ])


def _keys(tasks) -> list[str]:
    return [t.key for t in tasks]


class TestInitialTasks:
    def test_scenario_everything_selected(self):
        tasks = initial_tasks(_two_module_graph(), EVERYTHING)
        assert _keys(tasks) == [
            "build.a",
            "build.b",
            "test.a.unit",
            "test.b.unit",
            "deploy.svc-a",
            "deploy.svc-b",
        ]
        assert not any(t.force for t in tasks)
        deploys = [t for t in tasks if isinstance(t, DeployTask)]
        assert all(not t.from_watch and not t.force_build for t in deploys)

    def test_one_build_per_module_regardless_of_settings(self, graph: DependencyGraph):
        for settings in (
            EVERYTHING,
            SessionSettings(test_modules=Selection.none(), deploy_services=Selection.none()),
            SessionSettings(deploy_services=Selection.named(["b-svc"])),
        ):
            builds = [t for t in initial_tasks(graph, settings) if isinstance(t, BuildTask)]
            assert [t.module.name for t in builds] == ["a", "b", "c"]

    def test_disabled_service_not_deployed(self, graph: DependencyGraph):
        tasks = initial_tasks(graph, EVERYTHING)
        assert "deploy.c-svc" not in _keys(tasks)

    def test_skip_tests(self, graph: DependencyGraph):
        settings = SessionSettings(test_modules=Selection.none())
        assert not any(isinstance(t, TestTask) for t in initial_tasks(graph, settings))

    def test_test_modules_filter(self, graph: DependencyGraph):
        settings = SessionSettings(test_modules=Selection.named(["b"]))
        tests = [t.key for t in initial_tasks(graph, settings) if isinstance(t, TestTask)]
        assert tests == ["test.b.unit", "test.b.integ"]

    def test_test_name_glob(self, graph: DependencyGraph):
        settings = SessionSettings(test_names=Selection.named(["int*"]))
        tests = [t.key for t in initial_tasks(graph, settings) if isinstance(t, TestTask)]
        assert tests == ["test.b.integ"]

    def test_disabled_test_skipped(self):
        graph = DependencyGraph([
            Module(name="a", tests=[TestConfig(name="slow", disabled=True), TestConfig(name="unit")])
        ])
        tests = [t.key for t in initial_tasks(graph, EVERYTHING) if isinstance(t, TestTask)]
        assert tests == ["test.a.unit"]

    def test_tasks_carry_resolved_modes(self, graph: DependencyGraph):
        settings = SessionSettings(hot_reload_services=Selection.named(["a-svc"]))
        tasks = initial_tasks(graph, settings)
        deploy_a = next(t for t in tasks if t.key == "deploy.a-svc")
        deploy_b = next(t for t in tasks if t.key == "deploy.b-svc")
        assert deploy_a.hot_reload and not deploy_a.dev_mode
        assert deploy_b.dev_mode and not deploy_b.hot_reload
        test_task = next(t for t in tasks if isinstance(t, TestTask))
        assert test_task.hot_reload_service_names == {"a-svc"}
        assert test_task.dev_mode_service_names == {"b-svc"}

    def test_force_deploy(self, graph: DependencyGraph):
        tasks = initial_tasks(graph, EVERYTHING, force_deploy=True)
        assert all(t.force for t in tasks if isinstance(t, DeployTask))
        assert not any(t.force for t in tasks if isinstance(t, BuildTask))

    def test_factory_failure_raises_planning_error(self, graph: DependencyGraph):
        class BrokenFactory(TaskFactory):
            def test_tasks(self, graph, module, **kwargs):
                if module.name == "b":
                    raise RuntimeError("no test runner")
                return super().test_tasks(graph, module, **kwargs)

        with pytest.raises(PlanningError, match="module 'b'") as exc_info:
            initial_tasks(graph, EVERYTHING, factory=BrokenFactory())
        assert exc_info.value.target == "module 'b'"
        assert isinstance(exc_info.value.__cause__, RuntimeError)


class TestWatchTasks:
    def test_scenario_change_in_dependency(self):
        graph = _two_module_graph()
        tasks = watch_tasks(graph, graph.get_module("a"), EVERYTHING)
        assert _keys(tasks) == [
            "build.a",
            "build.b",
            "deploy.svc-a",
            "deploy.svc-b",
            "test.a.unit",
            "test.b.unit",
        ]
        deploys = [t for t in tasks if isinstance(t, DeployTask)]
        assert all(t.from_watch and t.force for t in deploys)

    def test_tests_only_within_dependant_closure(self, graph: DependencyGraph):
        tasks = watch_tasks(graph, graph.get_module("b"), EVERYTHING)
        tested = {t.module.name for t in tasks if isinstance(t, TestTask)}
        assert tested == {"b"}

    def test_tests_respect_module_selection(self, graph: DependencyGraph):
        settings = SessionSettings(test_modules=Selection.named(["a"]))
        tasks = watch_tasks(graph, graph.get_module("a"), settings)
        tested = {t.module.name for t in tasks if isinstance(t, TestTask)}
        assert tested == {"a"}

    def test_tests_respect_name_filter(self, graph: DependencyGraph):
        settings = SessionSettings(test_names=Selection.named(["integ"]))
        tasks = watch_tasks(graph, graph.get_module("a"), settings)
        assert [t.key for t in tasks if isinstance(t, TestTask)] == ["test.b.integ"]

    def test_dev_mode_and_hot_reload_services_not_redeployed(self, graph: DependencyGraph):
        settings = SessionSettings(hot_reload_services=Selection.named(["a-svc"]))
        tasks = watch_tasks(graph, graph.get_module("a"), settings)
        assert not any(isinstance(t, DeployTask) for t in tasks)

    def test_unwatched_services_not_redeployed(self, graph: DependencyGraph):
        settings = SessionSettings(
            deploy_services=Selection.named(["b-svc"]),
            dev_mode_services=Selection.none(),
        )
        tasks = watch_tasks(graph, graph.get_module("a"), settings)
        assert [t.key for t in tasks if isinstance(t, DeployTask)] == ["deploy.b-svc"]

    def test_delegates_to_module_watch_tasks(self, graph: DependencyGraph):
        calls = []

        class RecordingFactory(TaskFactory):
            def module_watch_tasks(self, graph, module, **kwargs):
                calls.append((module.name, kwargs))
                return []

        settings = SessionSettings(hot_reload_services=Selection.named(["a-svc"]))
        tasks = watch_tasks(graph, graph.get_module("a"), settings, factory=RecordingFactory())

        assert len(calls) == 1
        name, kwargs = calls[0]
        assert name == "a"
        assert kwargs["services_watched"] == {"a-svc", "b-svc", "c-svc"}
        assert kwargs["hot_reload_service_names"] == {"a-svc"}
        assert kwargs["dev_mode_service_names"] == {"b-svc"}
        assert all(isinstance(t, TestTask) for t in tasks)
