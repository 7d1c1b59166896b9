"""Stable public API for building tooling on top of upnpctl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from upnpctl.core.errors import (
    ActionNotFoundError,
    CoercionError,
    ErrorKind,
    ExecutionError,
    ExpectationMismatchError,
    ProfileLoadError,
    ProfileValidationError,
    RunFailure,
    RunResult,
    ServiceNotFoundError,
    SubstrateError,
    UpnpctlError,
    UsageError,
    VariableNotFoundError,
)
from upnpctl.core.model import (
    ActionDescriptor,
    ArgumentDescriptor,
    Direction,
    DiscoveredDevice,
    DiscoveredService,
    FilterCriteria,
    Profile,
    RunOptions,
)
from upnpctl.core.options import parse_arguments, validate
from upnpctl.core.profile_loader import available_profile_ids, resolve_profile
from upnpctl.core.service import InvocationService
from upnpctl.substrate.base import ControlPoint
from upnpctl.substrate.upnpclient_backend import UPnPClientControlPoint

__all__ = [
    "UpnpctlError",
    "UsageError",
    "ProfileLoadError",
    "ProfileValidationError",
    "SubstrateError",
    "ExecutionError",
    "ServiceNotFoundError",
    "ActionNotFoundError",
    "VariableNotFoundError",
    "CoercionError",
    "ExpectationMismatchError",
    "ErrorKind",
    "RunFailure",
    "RunResult",
    "ActionDescriptor",
    "ArgumentDescriptor",
    "Direction",
    "DiscoveredDevice",
    "DiscoveredService",
    "FilterCriteria",
    "Profile",
    "RunOptions",
    "ControlPoint",
    "UPnPClientControlPoint",
    "Client",
]


class Client:
    """Public client for interacting with upnpctl core capabilities.

    A `Client` instance wraps discovery, action lookup and invocation behind a
    stable API intended for third-party tools (scripts/services/test rigs).
    Output lines (get-var values, dump listings) go to `output`.
    """

    def __init__(
        self,
        *,
        control_point: ControlPoint | None = None,
        output: Callable[[str], None] | None = None,
    ) -> None:
        self._lines: list[str] = []
        self._service = InvocationService(
            control_point=control_point,
            output=output or self._lines.append,
        )

    @property
    def lines(self) -> tuple[str, ...]:
        """Lines emitted so far when no `output` callback was given."""
        return tuple(self._lines)

    @staticmethod
    def options_from_args(args: Sequence[str]) -> RunOptions:
        return validate(parse_arguments(args))

    def list_profiles(self) -> list[Profile]:
        return [resolve_profile(profile_id).profile for profile_id in available_profile_ids()]

    def run(self, options: RunOptions) -> RunResult:
        return self._service.run(validate(options))

    def find_service(
        self,
        criteria: FilterCriteria,
        *,
        timeout_ms: int = 30000,
        rescan_ms: int = 1000,
    ) -> DiscoveredService:
        options = RunOptions(criteria=criteria, timeout_ms=timeout_ms, rescan_ms=rescan_ms)
        return self._service.find_service(options)

    def describe_action(
        self,
        criteria: FilterCriteria,
        action: str,
        *,
        timeout_ms: int = 30000,
        rescan_ms: int = 1000,
    ) -> ActionDescriptor:
        options = RunOptions(
            action=action,
            criteria=criteria,
            timeout_ms=timeout_ms,
            rescan_ms=rescan_ms,
        )
        return self._service.describe_action(options)
