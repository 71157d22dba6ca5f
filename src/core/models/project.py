"""
Project model — the root identity of a managed project.

Loaded from project.yml, this is the declared truth about which
modules exist, what they depend on, and which services and test
suites they own. The dependency graph is built from it.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from src.core.models.module import Module


class Project(BaseModel):
    """Root project identity — loaded from project.yml."""

    version: int = 1

    name: str
    description: str = ""
    repository: str = ""

    modules: list[Module] = Field(default_factory=list)

    def get_module(self, name: str) -> Module | None:
        """Look up a module by name."""
        for mod in self.modules:
            if mod.name == name:
                return mod
        return None

    @property
    def module_names(self) -> list[str]:
        return [m.name for m in self.modules]
