"""
Domain models — Pydantic types and value objects for the dev loop.

All models are re-exported here for convenient access:

    from src.core.models import Project, Module, Service, SessionSettings, BuildTask
"""

from src.core.models.log_entry import ServiceLogEntry
from src.core.models.module import Module, Service, TestConfig
from src.core.models.project import Project
from src.core.models.settings import (
    ResolvedSelection,
    Selection,
    SessionSettings,
)
from src.core.models.task import (
    BaseTask,
    BuildTask,
    DeployTask,
    Task,
    TaskType,
    TestTask,
    dedupe_tasks,
)

__all__ = [
    # task.py
    "BaseTask",
    "BuildTask",
    "DeployTask",
    # module.py
    "Module",
    # project.py
    "Project",
    # settings.py
    "ResolvedSelection",
    "Selection",
    "Service",
    # log_entry.py
    "ServiceLogEntry",
    "SessionSettings",
    "Task",
    "TaskType",
    "TestConfig",
    "TestTask",
    "dedupe_tasks",
]
