"""
Planner — the initial task list and the per-change task list.

Flow (initial):
    settings + graph → resolve → build every module → test selected modules
    → deploy selected services

Flow (watch):
    changed module + fresh graph → resolve → module watch tasks
    → tests for the module and everything that depends on it

Output order is deterministic (builds, then tests, then deploys, each in
graph order) but carries no scheduling meaning; the executor derives the
real order from the graph.
"""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from src.core.engine.graph import DependencyGraph
from src.core.engine.resolver import module_should_be_tested, resolve
from src.core.engine.tasks import TaskFactory
from src.core.models.module import Module
from src.core.models.settings import SessionSettings
from src.core.models.task import BaseTask

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PlanningError(Exception):
    """Raised when tasks can't be created for a module or service."""

    def __init__(self, target: str, message: str):
        super().__init__(f"Failed to plan tasks for {target}: {message}")
        self.target = target


def _plan_item(target: str, fn: Callable[[], T]) -> T:
    try:
        return fn()
    except PlanningError:
        raise
    except Exception as e:
        raise PlanningError(target, str(e)) from e


def initial_tasks(
    graph: DependencyGraph,
    settings: SessionSettings,
    factory: TaskFactory | None = None,
    force_deploy: bool = False,
) -> list[BaseTask]:
    """Build the task list for a full dev run.

    Args:
        graph: Current dependency graph.
        settings: Session settings.
        factory: Task factory (default: ``TaskFactory()``).
        force_deploy: Force redeploy of the selected services.

    Returns:
        Build tasks for every module, test tasks for every tested module,
        then deploy tasks for every enabled selected service.
    """
    factory = factory or TaskFactory()
    resolution = resolve(graph, settings)
    modules = graph.get_modules()

    build_tasks: list[BaseTask] = []
    test_tasks: list[BaseTask] = []

    for module in modules:
        build_tasks.extend(
            _plan_item(
                f"module '{module.name}'",
                lambda: factory.build_tasks(graph, module, force=False),
            )
        )
        if module_should_be_tested(settings, module):
            test_tasks.extend(
                _plan_item(
                    f"module '{module.name}'",
                    lambda: factory.test_tasks(
                        graph,
                        module,
                        filter_names=resolution.test_names,
                        dev_mode_service_names=resolution.dev_mode_service_names,
                        hot_reload_service_names=resolution.hot_reload_service_names,
                        force=False,
                        force_build=False,
                    ),
                )
            )

    deploy_tasks: list[BaseTask] = []
    for service in resolution.services_to_deploy:
        if service.disabled:
            continue
        deploy_tasks.append(
            _plan_item(
                f"service '{service.name}'",
                lambda: factory.deploy_task(
                    graph,
                    service,
                    force=force_deploy,
                    force_build=False,
                    from_watch=False,
                    dev_mode_service_names=resolution.dev_mode_service_names,
                    hot_reload_service_names=resolution.hot_reload_service_names,
                ),
            )
        )

    tasks = [*build_tasks, *test_tasks, *deploy_tasks]
    logger.info(
        "Planned %d initial tasks (%d build, %d test, %d deploy)",
        len(tasks),
        len(build_tasks),
        len(test_tasks),
        len(deploy_tasks),
    )
    return tasks


def watch_tasks(
    updated_graph: DependencyGraph,
    changed_module: Module,
    settings: SessionSettings,
    factory: TaskFactory | None = None,
) -> list[BaseTask]:
    """Build the task list for one detected change.

    Build/deploy work for the change is delegated to
    ``factory.module_watch_tasks``. On top of that, every module that
    transitively depends on the changed module (and the module itself)
    gets its tests re-run if it's selected for testing.
    """
    factory = factory or TaskFactory()
    resolution = resolve(updated_graph, settings)

    tasks = _plan_item(
        f"module '{changed_module.name}'",
        lambda: factory.module_watch_tasks(
            updated_graph,
            changed_module,
            services_watched=set(resolution.deploy_service_names),
            dev_mode_service_names=resolution.dev_mode_service_names,
            hot_reload_service_names=resolution.hot_reload_service_names,
        ),
    )

    test_tasks: list[BaseTask] = []
    for module in updated_graph.with_dependants(changed_module):
        if not module_should_be_tested(settings, module):
            continue
        test_tasks.extend(
            _plan_item(
                f"module '{module.name}'",
                lambda: factory.test_tasks(
                    updated_graph,
                    module,
                    filter_names=resolution.test_names,
                    dev_mode_service_names=resolution.dev_mode_service_names,
                    hot_reload_service_names=resolution.hot_reload_service_names,
                ),
            )
        )

    logger.info(
        "Module '%s' changed: %d tasks (%d test)",
        changed_module.name,
        len(tasks) + len(test_tasks),
        len(test_tasks),
    )
    return [*tasks, *test_tasks]
