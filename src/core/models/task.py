"""
Task models — the work items handed to the executor.

Planning produces a flat list of tasks. The list carries no scheduling
meaning: the executor derives the real dependency order from the graph
and may drop duplicates (same ``key``) before running anything.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

from src.core.models.module import Module, Service, TestConfig


class TaskType(StrEnum):
    """Kinds of work a task can represent."""

    BUILD = "build"
    TEST = "test"
    DEPLOY = "deploy"


class BaseTask(BaseModel):
    """Fields shared by every task kind."""

    type: TaskType
    force: bool = False

    @property
    def target_name(self) -> str:
        """Name of the module, test or service the task targets.

        Every task kind overrides this; ``BaseTask`` itself is never
        instantiated by the planners.
        """
        raise NotImplementedError(f"{type(self).__name__} does not define a target")

    @property
    def key(self) -> str:
        """Target identity, e.g. ``build.api`` or ``test.api.unit``."""
        return f"{self.type.value}.{self.target_name}"

    def describe(self) -> str:
        return f"{self.type.value} {self.target_name}"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "key": self.key, "force": self.force}


class BuildTask(BaseTask):
    """Build one module."""

    type: Literal[TaskType.BUILD] = TaskType.BUILD
    module: Module

    @property
    def target_name(self) -> str:
        return self.module.name


class TestTask(BaseTask):
    """Run one test suite of a module."""

    __test__ = False

    type: Literal[TaskType.TEST] = TaskType.TEST
    module: Module
    test: TestConfig
    force_build: bool = False
    dev_mode_service_names: frozenset[str] = frozenset()
    hot_reload_service_names: frozenset[str] = frozenset()

    @property
    def target_name(self) -> str:
        return f"{self.module.name}.{self.test.name}"

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "module": self.module.name,
            "test": self.test.name,
            "forceBuild": self.force_build,
        }


class DeployTask(BaseTask):
    """Deploy one service."""

    type: Literal[TaskType.DEPLOY] = TaskType.DEPLOY
    service: Service
    force_build: bool = False
    from_watch: bool = False
    dev_mode_service_names: frozenset[str] = frozenset()
    hot_reload_service_names: frozenset[str] = frozenset()

    @property
    def target_name(self) -> str:
        return self.service.name

    @property
    def dev_mode(self) -> bool:
        return self.service.name in self.dev_mode_service_names

    @property
    def hot_reload(self) -> bool:
        return self.service.name in self.hot_reload_service_names

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "service": self.service.name,
            "module": self.service.module,
            "forceBuild": self.force_build,
            "fromWatch": self.from_watch,
            "devMode": self.dev_mode,
            "hotReload": self.hot_reload,
        }


Task = Annotated[Union[BuildTask, TestTask, DeployTask], Field(discriminator="type")]


def dedupe_tasks(tasks: list[BaseTask]) -> list[BaseTask]:
    """Drop later tasks whose key was already seen, keeping first-seen order."""
    seen: set[str] = set()
    unique: list[BaseTask] = []
    for task in tasks:
        if task.key in seen:
            continue
        seen.add(task.key)
        unique.append(task)
    return unique
