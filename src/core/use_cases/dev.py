"""
Dev use case — start a continuous-development session.

This is the top-level orchestrator: it loads config, builds the graph,
resolves the session settings, plans the initial tasks, opens the
remote event channel and log streams when a remote session exists, and
hands everything to the executor for the rest of the process lifetime.

Flow:
    settings → emit sessionSettings → load graph → validate → initial tasks
    → event channel + log streams → executor(initial tasks, change handler)
"""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from src.adapters.base import LogSource, RemoteSession
from src.core.config.loader import ConfigError, load_graph
from src.core.engine.graph import DependencyGraph
from src.core.engine.planner import PlanningError, initial_tasks, watch_tasks
from src.core.engine.resolver import (
    dev_mode_modules,
    resolve,
    validate_hot_reload_service_names,
)
from src.core.engine.tasks import TaskFactory
from src.core.models.module import Module
from src.core.models.project import Project
from src.core.models.settings import SessionSettings
from src.core.models.task import BaseTask
from src.core.reliability.reconnect import ReconnectPolicy
from src.core.services.event_bus import EventBus, EventName, bus
from src.core.services.event_channel import EventChannel
from src.core.services.log_stream import LogMultiplexer, start_log_stream

logger = logging.getLogger(__name__)

ENV_SESSION_ID = "DEVLOOP_SESSION_ID"

ChangeHandler = Callable[[DependencyGraph, Module], list[BaseTask]]
Executor = Callable[..., Any]
"""Runs tasks for the rest of the session.

Called as ``executor(graph=..., initial_tasks=..., change_handler=...,
skip_watch_modules=...)``. It calls ``change_handler(updated_graph,
changed_module)`` on every detected change and runs what it returns.
"""


def new_session_id() -> str:
    """Session id from DEVLOOP_SESSION_ID, or a fresh one."""
    return os.environ.get(ENV_SESSION_ID) or uuid.uuid4().hex


@dataclass
class DevResult:
    """Outcome of starting a dev session."""

    project: Project | None = None
    graph: DependencyGraph | None = None
    settings: SessionSettings | None = None
    session_id: str = ""
    initial_tasks: list[BaseTask] = field(default_factory=list)
    skip_watch_modules: list[str] = field(default_factory=list)
    channel: EventChannel | None = None
    log_stream: LogMultiplexer | None = None
    executor_result: Any = None
    aborted: str | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["project_name"] = self.project.name if self.project else ""
        result["session_id"] = self.session_id
        if self.aborted:
            result["aborted"] = self.aborted
            return result

        if self.settings:
            result["settings"] = self.settings.to_dict()
        result["tasks"] = [t.to_dict() for t in self.initial_tasks]
        result["skip_watch_modules"] = self.skip_watch_modules
        if self.channel:
            result["channel"] = self.channel.to_dict()
        if self.log_stream:
            result["log_stream"] = self.log_stream.to_dict()
        return result


@dataclass
class WatchPreview:
    """Tasks a change in one module would trigger."""

    module: str = ""
    tasks: list[BaseTask] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {"module": self.module, "tasks": [t.to_dict() for t in self.tasks]}


def start_dev(
    settings: SessionSettings,
    config_path: Path | None = None,
    *,
    events: EventBus | None = None,
    remote: RemoteSession | None = None,
    log_source: LogSource | None = None,
    executor: Executor | None = None,
    session_id: str | None = None,
    force_deploy: bool = False,
    reconnect_policy: ReconnectPolicy | None = None,
    factory: TaskFactory | None = None,
) -> DevResult:
    """Start a dev session.

    Args:
        settings: Session settings (see ``prepare_session_settings``).
        config_path: Optional explicit path to project.yml.
        events: Event bus (default: the process-wide bus).
        remote: Remote session capability. None = work locally only.
        log_source: Log source for streaming service logs to the remote session.
        executor: Runs the tasks. None = plan only.
        session_id: Remote session id (default: DEVLOOP_SESSION_ID or random).
        force_deploy: Force redeploy of services in the initial tasks.
        reconnect_policy: Event channel reconnect policy.
        factory: Task factory override.

    Returns:
        DevResult with the plan and the running channel/log streams.
    """
    events = events or bus
    result = DevResult(settings=settings, session_id=session_id or new_session_id())

    events.emit(EventName.SESSION_SETTINGS, settings.to_dict())

    # ── Load project + graph ─────────────────────────────────────
    try:
        project, graph = load_graph(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result
    result.project = project
    result.graph = graph

    if not graph.get_modules():
        logger.info("No enabled modules found in project '%s'", project.name)
        result.aborted = "No enabled modules found in project. Aborting..."
        return result

    # ── Validate ─────────────────────────────────────────────────
    err = validate_hot_reload_service_names(graph, settings.hot_reload_services)
    if err:
        result.error = err
        return result

    # ── Plan ─────────────────────────────────────────────────────
    try:
        result.initial_tasks = initial_tasks(
            graph, settings, factory=factory, force_deploy=force_deploy
        )
    except PlanningError as e:
        result.error = str(e)
        return result

    resolution = resolve(graph, settings)
    result.skip_watch_modules = [
        m.name for m in dev_mode_modules(graph, resolution.dev_mode_service_names)
    ]

    # ── Remote collaboration ─────────────────────────────────────
    if remote is not None:
        channel = EventChannel(remote, result.session_id, events, policy=reconnect_policy)
        channel.start()
        result.channel = channel

        if log_source is not None:
            services = [s for s in graph.get_services() if not s.disabled]
            result.log_stream = start_log_stream(services, channel, log_source)
            logger.debug("Started log stream")

    # ── Hand off to the executor ─────────────────────────────────
    if executor is not None:
        def change_handler(updated_graph: DependencyGraph, module: Module) -> list[BaseTask]:
            return watch_tasks(updated_graph, module, settings, factory=factory)

        result.executor_result = executor(
            graph=graph,
            initial_tasks=result.initial_tasks,
            change_handler=change_handler,
            skip_watch_modules=result.skip_watch_modules,
        )

    return result


def terminate(result: DevResult, events: EventBus | None = None) -> None:
    """End a dev session: announce the exit, then stop logs and the channel."""
    events = events or bus
    events.emit(EventName.EXIT, {})
    if result.log_stream is not None:
        result.log_stream.stop()
    if result.channel is not None:
        result.channel.close()


def preview_watch(
    settings: SessionSettings,
    module_name: str,
    config_path: Path | None = None,
) -> WatchPreview:
    """Plan the tasks a change in ``module_name`` would trigger, without running them."""
    preview = WatchPreview(module=module_name)
    try:
        _, graph = load_graph(config_path)
    except ConfigError as e:
        preview.error = str(e)
        return preview

    module = graph.get_module(module_name)
    if module is None:
        preview.error = f"Module '{module_name}' not found in project."
        return preview

    try:
        preview.tasks = watch_tasks(graph, module, settings)
    except PlanningError as e:
        preview.error = str(e)
    return preview
