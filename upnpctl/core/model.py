"""Core data models used across discovery, binding, service, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class FilterCriteria:
    device_udn: str | None = None
    device_urn: str | None = None
    device_friendly_name: str | None = None
    service_id: str | None = None
    service_urn: str | None = None

    @property
    def has_service_filter(self) -> bool:
        return self.service_id is not None or self.service_urn is not None


class Direction(str, Enum):
    IN = "in"
    OUT = "out"


@dataclass
class ArgumentDescriptor:
    """One typed argument slot of an action.

    Only `value` is written after construction: once by the binder before
    invocation and once by the invoke call for `out` arguments.
    """

    name: str
    direction: Direction
    declared_type: str
    is_return_value: bool = False
    value: Any = None


@dataclass(frozen=True)
class ActionDescriptor:
    name: str
    arguments: tuple[ArgumentDescriptor, ...] = ()

    def argument(self, name: str) -> ArgumentDescriptor | None:
        for arg in self.arguments:
            if arg.name == name:
                return arg
        return None


@dataclass(frozen=True)
class DiscoveredService:
    service_id: str
    service_urn: str
    device_udn: str
    actions: tuple[ActionDescriptor, ...] = ()

    @property
    def identity(self) -> tuple[str, str]:
        return (self.device_udn, self.service_id)

    def find_action(self, name: str) -> ActionDescriptor | None:
        for action in self.actions:
            if action.name == name:
                return action
        return None

    def __str__(self) -> str:
        return f"{self.service_id} ({self.service_urn}) on {self.device_udn}"


@dataclass(frozen=True)
class DiscoveredDevice:
    udn: str
    urn: str
    friendly_name: str
    services: tuple[DiscoveredService, ...] = ()


@dataclass(frozen=True)
class RunOptions:
    action: str | None = None
    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    timeout_ms: int = 30000
    rescan_ms: int = 1000
    poll_ms: int = 100
    verbose_discovery: bool = False
    set_vars: tuple[tuple[str, str], ...] = ()
    get_vars: tuple[str, ...] = ()
    expect_vars: tuple[tuple[str, str], ...] = ()
    dump_vars: bool = False
    profile: str | None = None


@dataclass(frozen=True)
class Profile:
    id: str
    description: str
    criteria: FilterCriteria
    action: str | None
    set_vars: tuple[tuple[str, str], ...]
    get_vars: tuple[str, ...]
    expect_vars: tuple[tuple[str, str], ...]
    timeout_ms: int | None = None
    rescan_ms: int | None = None
