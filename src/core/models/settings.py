"""
Session settings — what the user selected for one dev session.

Raw selections arrive as name lists where ``["*"]`` means "everything".
They are parsed once into ``Selection`` values so the wildcard can
never be confused with a service or module that is literally named
``*``. Only the exact list ``["*"]`` is a wildcard; a mixed list like
``["*", "api"]`` is a plain list of names.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from src.core.models.module import Service

WILDCARD = "*"


@dataclass(frozen=True)
class Selection:
    """Either every candidate (``names is None``) or an ordered list of names."""

    names: tuple[str, ...] | None = None

    @classmethod
    def all(cls) -> Selection:
        return cls(names=None)

    @classmethod
    def none(cls) -> Selection:
        return cls(names=())

    @classmethod
    def named(cls, names: Iterable[str]) -> Selection:
        return cls(names=tuple(names))

    @classmethod
    def parse(cls, raw: Selection | Iterable[str] | None) -> Selection:
        """Parse a raw name list. ``None`` and ``[]`` both select nothing."""
        if isinstance(raw, Selection):
            return raw
        if raw is None:
            return cls.none()
        names = list(raw)
        if names == [WILDCARD]:
            return cls.all()
        return cls.named(names)

    @property
    def is_all(self) -> bool:
        return self.names is None

    @property
    def is_empty(self) -> bool:
        return self.names == ()

    def includes(self, name: str) -> bool:
        return self.names is None or name in self.names

    def expand(self, candidates: Iterable[str]) -> list[str]:
        """Resolve to concrete names.

        ``ALL`` expands to ``candidates``; a named selection is returned
        as-is, whether or not the names are candidates.
        """
        if self.names is None:
            return list(candidates)
        return list(self.names)

    def to_raw(self) -> list[str]:
        return [WILDCARD] if self.names is None else list(self.names)


@dataclass(frozen=True)
class SessionSettings:
    """User-selected targets and modes for one continuous-development run."""

    deploy_services: Selection = field(default_factory=Selection.all)
    test_modules: Selection = field(default_factory=Selection.all)
    test_names: Selection = field(default_factory=Selection.all)
    dev_mode_services: Selection = field(default_factory=Selection.all)
    hot_reload_services: Selection = field(default_factory=Selection.none)

    @classmethod
    def from_raw(cls, data: dict[str, Any]) -> SessionSettings:
        """Build settings from the camelCase wire form (missing keys keep defaults)."""
        kwargs: dict[str, Selection] = {}
        for attr, key in _RAW_KEYS.items():
            if key in data:
                kwargs[attr] = Selection.parse(data[key])
        return cls(**kwargs)

    def to_dict(self) -> dict[str, list[str]]:
        return {key: getattr(self, attr).to_raw() for attr, key in _RAW_KEYS.items()}


_RAW_KEYS = {
    "deploy_services": "deployServiceNames",
    "test_modules": "testModuleNames",
    "test_names": "testConfigNames",
    "dev_mode_services": "devModeServiceNames",
    "hot_reload_services": "hotReloadServiceNames",
}


@dataclass(frozen=True)
class ResolvedSelection:
    """Concrete targets for one planning call.

    Invariant: ``hot_reload_service_names`` and ``dev_mode_service_names``
    never overlap; hot reload wins.
    """

    services_to_deploy: tuple[Service, ...] = ()
    hot_reload_service_names: frozenset[str] = frozenset()
    dev_mode_service_names: frozenset[str] = frozenset()
    test_names: frozenset[str] | None = None  # None = no filter

    @property
    def deploy_service_names(self) -> list[str]:
        return [s.name for s in self.services_to_deploy]

    def to_dict(self) -> dict[str, Any]:
        return {
            "servicesToDeploy": self.deploy_service_names,
            "hotReloadServiceNames": sorted(self.hot_reload_service_names),
            "devModeServiceNames": sorted(self.dev_mode_service_names),
            "testNames": sorted(self.test_names) if self.test_names is not None else None,
        }
