"""
Task factory — turns graph nodes into Build/Test/Deploy tasks.

The planners only decide *which* targets need work; this layer decides
what a task for one target looks like. Swap in a subclass to customize
task construction (e.g. extra build tasks for generated sources).
"""

from __future__ import annotations

import logging
from fnmatch import fnmatch
from typing import Collection, Iterable

from src.core.engine.graph import DependencyGraph
from src.core.models.module import Module, Service, TestConfig
from src.core.models.task import BaseTask, BuildTask, DeployTask, TestTask

logger = logging.getLogger(__name__)


def matches_test_names(test: TestConfig, filter_names: Collection[str] | None) -> bool:
    """Whether a test config passes the name filter (glob patterns, None = all)."""
    if filter_names is None:
        return True
    return any(fnmatch(test.name, pattern) for pattern in filter_names)


class TaskFactory:
    """Default task construction."""

    def build_tasks(
        self,
        graph: DependencyGraph,
        module: Module,
        force: bool = False,
    ) -> list[BaseTask]:
        return [BuildTask(module=module, force=force)]

    def test_tasks(
        self,
        graph: DependencyGraph,
        module: Module,
        *,
        filter_names: Collection[str] | None = None,
        dev_mode_service_names: Iterable[str] = (),
        hot_reload_service_names: Iterable[str] = (),
        force: bool = False,
        force_build: bool = False,
    ) -> list[BaseTask]:
        dev_mode = frozenset(dev_mode_service_names)
        hot_reload = frozenset(hot_reload_service_names)
        return [
            TestTask(
                module=module,
                test=test,
                force=force,
                force_build=force_build,
                dev_mode_service_names=dev_mode,
                hot_reload_service_names=hot_reload,
            )
            for test in module.tests
            if not test.disabled and matches_test_names(test, filter_names)
        ]

    def deploy_task(
        self,
        graph: DependencyGraph,
        service: Service,
        *,
        force: bool = False,
        force_build: bool = False,
        from_watch: bool = False,
        dev_mode_service_names: Iterable[str] = (),
        hot_reload_service_names: Iterable[str] = (),
    ) -> BaseTask:
        return DeployTask(
            service=service,
            force=force,
            force_build=force_build,
            from_watch=from_watch,
            dev_mode_service_names=frozenset(dev_mode_service_names),
            hot_reload_service_names=frozenset(hot_reload_service_names),
        )

    def module_watch_tasks(
        self,
        graph: DependencyGraph,
        module: Module,
        *,
        services_watched: Collection[str],
        dev_mode_service_names: Collection[str] = (),
        hot_reload_service_names: Collection[str] = (),
    ) -> list[BaseTask]:
        """Rebuild and redeploy what a change in ``module`` affects.

        The changed module and its transitive dependants are rebuilt.
        Their watched services are redeployed, except dev-mode services
        (they sync changes themselves) and hot-reload services (they are
        patched in place).
        """
        affected = graph.with_dependants(module)

        tasks: list[BaseTask] = []
        for m in affected:
            tasks.extend(self.build_tasks(graph, m, force=True))

        for m in affected:
            for service in m.services:
                if service.disabled or service.name not in services_watched:
                    continue
                if service.name in dev_mode_service_names:
                    logger.debug("Skipping redeploy of '%s' (dev mode)", service.name)
                    continue
                if service.name in hot_reload_service_names:
                    logger.debug("Skipping redeploy of '%s' (hot reload)", service.name)
                    continue
                tasks.append(
                    self.deploy_task(
                        graph,
                        service,
                        force=True,
                        force_build=False,
                        from_watch=True,
                        dev_mode_service_names=dev_mode_service_names,
                        hot_reload_service_names=hot_reload_service_names,
                    )
                )

        return tasks
