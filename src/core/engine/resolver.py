"""
Session settings resolver — selections + graph → concrete targets.

Everything here is pure: the same graph and settings always resolve to
the same targets, and nothing is mutated. The planners call ``resolve``
afresh on every planning call because the graph changes between calls.

Precedence rule: dev mode is the implicit default for deployed services,
so an explicit hot-reload request for a service always wins over dev
mode for that same service.
"""

from __future__ import annotations

import logging
from typing import Iterable

from src.core.engine.graph import DependencyGraph
from src.core.models.module import Module
from src.core.models.settings import ResolvedSelection, Selection, SessionSettings

logger = logging.getLogger(__name__)


def resolve(graph: DependencyGraph, settings: SessionSettings) -> ResolvedSelection:
    """Resolve session settings against the current graph."""
    hot_reload = frozenset(
        settings.hot_reload_services.expand(graph.hot_reload_service_names())
    )

    if settings.deploy_services.is_all:
        services_to_deploy = graph.get_services()
    else:
        services_to_deploy = graph.get_services(names=settings.deploy_services.names)

    requested_dev_mode = set(
        settings.dev_mode_services.expand(graph.dev_mode_service_names())
    )
    dev_mode = frozenset(
        s.name
        for s in services_to_deploy
        if s.name in requested_dev_mode and s.name not in hot_reload
    )

    test_names = None if settings.test_names.is_all else frozenset(settings.test_names.names or ())

    return ResolvedSelection(
        services_to_deploy=tuple(services_to_deploy),
        hot_reload_service_names=hot_reload,
        dev_mode_service_names=dev_mode,
        test_names=test_names,
    )


def module_should_be_tested(settings: SessionSettings, module: Module) -> bool:
    """Whether tests for ``module`` are part of this session."""
    return settings.test_modules.includes(module.name)


def validate_hot_reload_service_names(
    graph: DependencyGraph,
    selection: Selection,
) -> str | None:
    """Check explicitly requested hot-reload services.

    Returns an error message, or None if every requested service exists
    and supports hot reloading. A wildcard selection is always valid
    since it only expands to capable services.
    """
    if selection.is_all or not selection.names:
        return None

    missing = graph.missing_services(selection.names)
    if missing:
        return f"Could not find service(s) requested for hot reloading: {', '.join(missing)}"

    incompatible = [
        name for name in selection.names
        if not graph.get_service(name).hot_reload  # type: ignore[union-attr]
    ]
    if incompatible:
        return (
            "The following services were requested for hot reloading, "
            f"but don't support it: {', '.join(incompatible)}. "
            "Enable hot_reload for them in project.yml or leave them out of --hot-reload."
        )
    return None


def dev_mode_modules(graph: DependencyGraph, service_names: Iterable[str]) -> list[Module]:
    """Modules owning any of the given dev-mode services, in graph order.

    Changes in these modules are synced live by the services themselves,
    so the watch loop skips them.
    """
    owners = set()
    for name in service_names:
        module = graph.module_for_service(name)
        if module is not None:
            owners.add(module.name)
    return graph.get_modules(names=owners)


def prepare_session_settings(
    services: Iterable[str] | None = None,
    hot_reload: Iterable[str] | None = None,
    skip_tests: bool = False,
    test_names: Iterable[str] | None = None,
) -> SessionSettings:
    """Build settings from command-line selections.

    With no explicit services every service is deployed in dev mode.
    Tests run for every module unless skipped, filtered by ``test_names``
    when given. Hot reload is off unless requested.
    """
    service_list = list(services) if services else None
    test_name_list = list(test_names) if test_names else None
    hot_reload_list = list(hot_reload) if hot_reload else []

    settings = SessionSettings(
        deploy_services=Selection.parse(service_list) if service_list else Selection.all(),
        test_modules=Selection.none() if skip_tests else Selection.all(),
        test_names=Selection.parse(test_name_list) if test_name_list else Selection.all(),
        dev_mode_services=Selection.parse(service_list) if service_list else Selection.all(),
        hot_reload_services=Selection.parse(hot_reload_list),
    )
    logger.debug("Prepared session settings: %s", settings.to_dict())
    return settings
