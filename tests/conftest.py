"""
Shared test fixtures and configuration.
"""

import textwrap
from pathlib import Path

import pytest

from src.core.engine.graph import DependencyGraph
from src.core.models import Module, Service, TestConfig
from src.core.services.event_bus import EventBus


def make_modules() -> list[Module]:
    """Three modules: ``b`` depends on ``a``, ``c`` stands alone.

    a → a-svc (hot reload, dev mode), tests: unit
    b → b-svc (dev mode), tests: unit, integ
    c → c-svc (disabled), tests: none
    """
    return [
        Module(
            name="a",
            path="a",
            services=[Service(name="a-svc", hot_reload=True, dev_mode=True)],
            tests=[TestConfig(name="unit")],
        ),
        Module(
            name="b",
            path="b",
            dependencies=["a"],
            services=[Service(name="b-svc", dev_mode=True)],
            tests=[TestConfig(name="unit"), TestConfig(name="integ")],
        ),
        Module(
            name="c",
            path="c",
            services=[Service(name="c-svc", disabled=True)],
        ),
    ]


@pytest.fixture
def graph() -> DependencyGraph:
    return DependencyGraph(make_modules())


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def project_yml(tmp_path: Path) -> Path:
    """A project.yml matching ``make_modules``."""
    content = textwrap.dedent("""\
        name: shop
        description: "Test shop"
        modules:
          - name: a
            path: a
            services:
              - name: a-svc
                hot_reload: true
                dev_mode: true
            tests:
              - name: unit
                command: pytest
          - name: b
            path: b
            dependencies: [a]
            services:
              - name: b-svc
                dev_mode: true
            tests:
              - name: unit
              - name: integ
          - name: c
            path: c
            services:
              - name: c-svc
                disabled: true
    """)
    path = tmp_path / "project.yml"
    path.write_text(content)
    return path
