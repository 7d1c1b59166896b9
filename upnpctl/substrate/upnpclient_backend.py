"""Control point backed by the `upnpclient` library (SSDP discovery, SOAP actions)."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from typing import Any
from urllib.parse import ParseResult

from upnpctl.core.coercion import wire_value
from upnpctl.core.errors import SubstrateError
from upnpctl.core.model import (
    ActionDescriptor,
    ArgumentDescriptor,
    DiscoveredDevice,
    DiscoveredService,
    Direction,
)
from upnpctl.substrate.base import DeviceAddedHandler, ServiceAddedHandler

LOGGER = logging.getLogger(__name__)


def _load_discover() -> Callable[..., list[Any]]:
    try:
        import upnpclient  # type: ignore
    except ImportError as exc:  # pragma: no cover - import failure path
        raise SubstrateError(
            "UPnP control requires 'upnpclient'. Install dependency and retry."
        ) from exc
    return upnpclient.discover


def _from_native(value: Any) -> Any:
    # upnpclient parses uri values with urlparse.
    if isinstance(value, ParseResult):
        return value.geturl()
    return value


def describe_action(native_action: Any) -> ActionDescriptor:
    arguments = [
        ArgumentDescriptor(
            name=name,
            direction=Direction.IN,
            declared_type=statevar.get("datatype") or "string",
        )
        for name, statevar in native_action.argsdef_in
    ]
    arguments.extend(
        ArgumentDescriptor(
            name=name,
            direction=Direction.OUT,
            declared_type=statevar.get("datatype") or "string",
        )
        for name, statevar in native_action.argsdef_out
    )
    return ActionDescriptor(name=native_action.name, arguments=tuple(arguments))


def describe_device(native_device: Any) -> DiscoveredDevice:
    # Older upnpclient releases do not expose the UDN; fall back to the description URL.
    udn = getattr(native_device, "udn", None) or native_device.location
    services = tuple(
        DiscoveredService(
            service_id=native_service.service_id,
            service_urn=native_service.service_type,
            device_udn=udn,
            actions=tuple(describe_action(a) for a in native_service.actions),
        )
        for native_service in native_device.services
    )
    return DiscoveredDevice(
        udn=udn,
        urn=native_device.device_type,
        friendly_name=native_device.friendly_name,
        services=services,
    )


class UPnPClientControlPoint:
    """Turns blocking `upnpclient.discover()` calls into added-notifications.

    Searches run on a worker thread. `rescan()` only flags that another search
    is wanted, so it never blocks the caller.
    """

    def __init__(
        self,
        *,
        search_timeout_s: float = 2.0,
        discover: Callable[..., list[Any]] | None = None,
    ) -> None:
        self._search_timeout_s = search_timeout_s
        self._discover = discover
        self._trigger = threading.Event()
        self._stopping = threading.Event()
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._native_services: dict[tuple[str, str], Any] = {}
        self._announced: dict[str, set[str]] = {}

    def start(
        self,
        on_device_added: DeviceAddedHandler,
        on_service_added: ServiceAddedHandler,
    ) -> None:
        discover = self._discover or _load_discover()
        self._stopping.clear()
        self._trigger.set()
        self._thread = threading.Thread(
            target=self._worker,
            args=(discover, on_device_added, on_service_added),
            name="upnpctl-discovery",
            daemon=True,
        )
        self._thread.start()

    def rescan(self) -> None:
        self._trigger.set()

    def stop(self) -> None:
        self._stopping.set()
        self._trigger.set()
        if self._thread is not None:
            self._thread.join(timeout=0.1)
            self._thread = None

    def _worker(
        self,
        discover: Callable[..., list[Any]],
        on_device_added: DeviceAddedHandler,
        on_service_added: ServiceAddedHandler,
    ) -> None:
        while True:
            self._trigger.wait()
            self._trigger.clear()
            if self._stopping.is_set():
                return
            try:
                native_devices = discover(timeout=self._search_timeout_s)
            except Exception as exc:
                # The next rescan repeats the search.
                LOGGER.warning("SSDP search failed: %s", exc)
                continue
            for native_device in native_devices:
                if self._stopping.is_set():
                    return
                self._announce(native_device, on_device_added, on_service_added)

    def _announce(
        self,
        native_device: Any,
        on_device_added: DeviceAddedHandler,
        on_service_added: ServiceAddedHandler,
    ) -> None:
        device = describe_device(native_device)
        with self._lock:
            for native_service, service in zip(native_device.services, device.services):
                self._native_services[service.identity] = native_service
            previous = self._announced.get(device.udn)
            known = None if previous is None else frozenset(previous)
            self._announced.setdefault(device.udn, set()).update(
                s.service_id for s in device.services
            )

        if known is None:
            LOGGER.debug("Device added: %s (%s)", device.friendly_name, device.udn)
            on_device_added(device)
            return
        for service in device.services:
            if service.service_id not in known:
                LOGGER.debug("Service added: %s", service)
                on_service_added(device, service)

    def invoke(
        self,
        service: DiscoveredService,
        action_name: str,
        arguments: Sequence[ArgumentDescriptor],
    ) -> None:
        with self._lock:
            native_service = self._native_services.get(service.identity)
        if native_service is None:
            raise SubstrateError(f"No control binding for service {service}")

        native_action = next((a for a in native_service.actions if a.name == action_name), None)
        if native_action is None:
            raise SubstrateError(f"Service {service} has no action '{action_name}'")

        kwargs = {
            arg.name: wire_value(arg.value, arg.declared_type)
            for arg in arguments
            if arg.direction is Direction.IN and arg.value is not None
        }
        LOGGER.debug("Invoking %s with %s", action_name, sorted(kwargs))
        results = native_action(**kwargs) or {}
        for arg in arguments:
            if arg.direction is Direction.OUT and arg.name in results:
                arg.value = _from_native(results[arg.name])
