"""Discovery supervisor: matches notifications and captures the first target service."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from enum import Enum

from upnpctl.core.matcher import matches_device, matches_service
from upnpctl.core.model import DiscoveredDevice, DiscoveredService, FilterCriteria
from upnpctl.substrate.base import ControlPoint

LOGGER = logging.getLogger(__name__)


class DiscoveryState(Enum):
    SEARCHING = "searching"
    FOUND = "found"
    TIMED_OUT = "timed-out"


class CapturedService:
    """Single-assignment cell shared between the supervisor and backend threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._service: DiscoveredService | None = None

    @property
    def service(self) -> DiscoveredService | None:
        return self._service

    def set_if_empty(self, service: DiscoveredService) -> DiscoveredService | None:
        """Store `service` unless the cell is filled; return the previous content."""
        with self._lock:
            previous = self._service
            if previous is None:
                self._service = service
            return previous


class DiscoveryLoop:
    """Drives a control point until a matching service is captured or time runs out.

    Two timers start with `run()`: the overall discovery timeout and the rescan
    interval. Between checks the loop sleeps for the poll interval, shortened so
    neither timer is overshot.
    """

    def __init__(
        self,
        control_point: ControlPoint,
        criteria: FilterCriteria,
        *,
        timeout_ms: int = 30000,
        rescan_ms: int = 1000,
        poll_ms: int = 100,
        on_status: Callable[[str], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._control_point = control_point
        self._criteria = criteria
        self._timeout_s = timeout_ms / 1000.0
        self._rescan_s = rescan_ms / 1000.0
        self._poll_s = poll_ms / 1000.0
        self._on_status = on_status
        self._clock = clock
        self._warnings: list[str] = []
        self.captured = CapturedService()
        self.state = DiscoveryState.SEARCHING
        self.rescan_count = 0

    @property
    def warnings(self) -> tuple[str, ...]:
        return tuple(self._warnings)

    def _status(self, message: str) -> None:
        LOGGER.debug(message)
        if self._on_status is not None:
            self._on_status(message)

    def handle_device_added(self, device: DiscoveredDevice) -> None:
        prefix = (
            f'Discovered Device "{device.friendly_name}", URN={device.urn}, UDN={device.udn}: '
        )
        if not matches_device(self._criteria, device):
            self._status(prefix + "Device does not match")
            return
        self._status(prefix + "Device matches")
        for service in device.services:
            self._offer(service)

    def handle_service_added(self, device: DiscoveredDevice, service: DiscoveredService) -> None:
        if not matches_device(self._criteria, device):
            self._status(
                f"Discovered service ID={service.service_id}, URN={service.service_urn}: "
                f"Owning device {device.udn} does not match"
            )
            return
        self._offer(service)

    def _offer(self, service: DiscoveredService) -> None:
        prefix = f"Discovered service ID={service.service_id}, URN={service.service_urn}: "
        if not matches_service(self._criteria, service):
            self._status(prefix + "Does not match filter")
            return
        self._status(prefix + "Matches filter")

        previous = self.captured.set_if_empty(service)
        if previous is None or previous.identity == service.identity:
            return
        warning = f"Ignoring duplicate service {service}, already got {previous}"
        LOGGER.info(warning)
        self._warnings.append(warning)

    async def run(self) -> DiscoveredService | None:
        self._control_point.start(self.handle_device_added, self.handle_service_added)
        try:
            started = rescan_started = self._clock()
            deadline = started + self._timeout_s
            while self.captured.service is None:
                now = self._clock()
                if now >= deadline:
                    break
                if now - rescan_started >= self._rescan_s:
                    self._status("Rescanning")
                    self._control_point.rescan()
                    self.rescan_count += 1
                    rescan_started = now
                wait = min(self._poll_s, deadline - now)
                if self._rescan_s > 0:
                    wait = min(wait, rescan_started + self._rescan_s - now)
                await asyncio.sleep(max(wait, 0.0))
        finally:
            self._control_point.stop()

        service = self.captured.service
        self.state = DiscoveryState.FOUND if service is not None else DiscoveryState.TIMED_OUT
        return service

    def run_sync(self) -> DiscoveredService | None:
        return asyncio.run(self.run())
