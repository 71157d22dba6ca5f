"""
Module model — buildable units, the services they own, and their tests.

Modules are the building blocks of a project. Each module is built as
a unit, may own any number of deployable services, and may declare
test suites. Dependants are not stored here; the dependency graph
derives them from ``dependencies``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class Service(BaseModel):
    """A deployable unit owned by a module.

    The capability flags say what the service supports, not what the
    user asked for. A session only enables hot reload or dev mode for
    services that both support it and were selected.
    """

    name: str
    module: str = ""             # owning module name (filled in by Module)
    disabled: bool = False
    hot_reload: bool = False     # can receive code changes without a redeploy
    dev_mode: bool = False       # can run in live-development mode
    dependencies: list[str] = Field(default_factory=list)  # runtime deps (service names)


class TestConfig(BaseModel):
    """A named test suite declared by a module."""

    __test__ = False

    name: str
    disabled: bool = False
    command: str = ""
    dependencies: list[str] = Field(default_factory=list)  # services the suite needs running


class Module(BaseModel):
    """A buildable unit of the project."""

    # ── Declared (from project.yml) ──────────────────────────────
    name: str
    path: str = "."
    description: str = ""
    disabled: bool = False
    dependencies: list[str] = Field(default_factory=list)  # build deps (module names)

    services: list[Service] = Field(default_factory=list)
    tests: list[TestConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def _claim_services(self) -> Module:
        for service in self.services:
            if not service.module:
                service.module = self.name
        return self

    @property
    def service_names(self) -> list[str]:
        """Names of all services owned by this module."""
        return [s.name for s in self.services]

    def get_service(self, name: str) -> Service | None:
        """Look up an owned service by name."""
        for service in self.services:
            if service.name == name:
                return service
        return None

    def get_test(self, name: str) -> TestConfig | None:
        """Look up a test config by name."""
        for test in self.tests:
            if test.name == name:
                return test
        return None
