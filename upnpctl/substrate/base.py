"""Control point interfaces."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Protocol

from upnpctl.core.model import ArgumentDescriptor, DiscoveredDevice, DiscoveredService

DeviceAddedHandler = Callable[[DiscoveredDevice], None]
ServiceAddedHandler = Callable[[DiscoveredDevice, DiscoveredService], None]


class ControlPoint(Protocol):
    def start(
        self,
        on_device_added: DeviceAddedHandler,
        on_service_added: ServiceAddedHandler,
    ) -> None:
        """Begin searching; handlers may be called from backend-owned threads."""

    def rescan(self) -> None:
        """Re-broadcast the search request without blocking the caller."""

    def stop(self) -> None:
        """Stop searching; handlers are not called once the backend sees the stop."""

    def invoke(
        self,
        service: DiscoveredService,
        action_name: str,
        arguments: Sequence[ArgumentDescriptor],
    ) -> None:
        """Call an action synchronously, writing results into `out` argument values."""
