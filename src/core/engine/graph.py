"""
Dependency graph — an immutable snapshot of modules and services.

The graph is rebuilt from the project config on every invocation (and
again after every detected change) and is never mutated afterwards.
Module order is the declaration order from project.yml; every query
that returns several modules or services keeps that order so planning
output is reproducible.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterable

from src.core.models.module import Module, Service
from src.core.models.project import Project

logger = logging.getLogger(__name__)


class GraphError(Exception):
    """Raised when modules or services can't form a valid graph."""


class DependencyGraph:
    """Modules, their services, and the dependant relation between modules."""

    def __init__(self, modules: Iterable[Module]):
        self._modules: list[Module] = list(modules)
        self._by_name: dict[str, Module] = {}
        self._services: dict[str, Service] = {}
        self._dependants: dict[str, list[str]] = {}

        for module in self._modules:
            if module.name in self._by_name:
                raise GraphError(f"Duplicate module name '{module.name}'")
            self._by_name[module.name] = module
            self._dependants[module.name] = []

        for module in self._modules:
            for dep in module.dependencies:
                if dep not in self._by_name:
                    raise GraphError(
                        f"Module '{module.name}' depends on unknown module '{dep}'"
                    )
                self._dependants[dep].append(module.name)

            for service in module.services:
                if service.name in self._services:
                    raise GraphError(f"Duplicate service name '{service.name}'")
                if service.module and service.module != module.name:
                    raise GraphError(
                        f"Service '{service.name}' is declared in module "
                        f"'{module.name}' but claims module '{service.module}'"
                    )
                self._services[service.name] = service

    @classmethod
    def from_project(cls, project: Project) -> DependencyGraph:
        graph = cls(project.modules)
        logger.debug(
            "Built graph for '%s': %d modules, %d services",
            project.name,
            len(graph._modules),
            len(graph._services),
        )
        return graph

    # ── Modules ─────────────────────────────────────────────────

    def get_modules(
        self,
        names: Iterable[str] | None = None,
        include_disabled: bool = False,
    ) -> list[Module]:
        """Modules in graph order, optionally restricted to ``names``."""
        wanted = set(names) if names is not None else None
        return [
            m
            for m in self._modules
            if (include_disabled or not m.disabled)
            and (wanted is None or m.name in wanted)
        ]

    def get_module(self, name: str) -> Module | None:
        return self._by_name.get(name)

    def with_dependants(self, module: Module | str) -> list[Module]:
        """The module plus every enabled module that transitively depends on it.

        Returned in graph order. Cycles are tolerated.
        """
        root = module if isinstance(module, str) else module.name
        if root not in self._by_name:
            return []

        seen = {root}
        pending = deque([root])
        while pending:
            current = pending.popleft()
            for dependant in self._dependants.get(current, []):
                if dependant not in seen:
                    seen.add(dependant)
                    pending.append(dependant)

        return [
            m for m in self._modules
            if m.name in seen and (m.name == root or not m.disabled)
        ]

    # ── Services ────────────────────────────────────────────────

    def get_services(self, names: Iterable[str] | None = None) -> list[Service]:
        """Services of enabled modules in graph order.

        Unknown names are skipped; use ``missing_services`` to report them.
        Services flagged ``disabled`` are included so callers can decide.
        """
        wanted = set(names) if names is not None else None
        return [
            s
            for m in self._modules
            if not m.disabled
            for s in m.services
            if wanted is None or s.name in wanted
        ]

    def get_service(self, name: str) -> Service | None:
        return self._services.get(name)

    def module_for_service(self, service: Service | str) -> Module | None:
        name = service if isinstance(service, str) else service.name
        svc = self._services.get(name)
        if svc is None:
            return None
        return self._by_name.get(svc.module)

    def missing_services(self, names: Iterable[str]) -> list[str]:
        return [n for n in names if n not in self._services]

    def hot_reload_service_names(self) -> list[str]:
        """Names of all services that support hot reloading."""
        return [s.name for s in self.get_services() if s.hot_reload]

    def dev_mode_service_names(self) -> list[str]:
        """Names of all services that support dev mode."""
        return [s.name for s in self.get_services() if s.dev_mode]
