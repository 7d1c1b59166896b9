from __future__ import annotations

import logging
import threading
import time

import pytest

from upnpctl.core.discovery import CapturedService, DiscoveryLoop, DiscoveryState
from upnpctl.core.model import DiscoveredDevice, DiscoveredService, FilterCriteria

WANIP_URN = "urn:schemas-upnp-org:service:WANIPConnection:1"


def _device(udn: str, name: str = "Gateway", service_urn: str = WANIP_URN) -> DiscoveredDevice:
    return DiscoveredDevice(
        udn=udn,
        urn="urn:schemas-upnp-org:device:WANConnectionDevice:1",
        friendly_name=name,
        services=(
            DiscoveredService(
                service_id="urn:upnp-org:serviceId:WANIPConn1",
                service_urn=service_urn,
                device_udn=udn,
            ),
        ),
    )


class FakeControlPoint:
    def __init__(self, devices: list[DiscoveredDevice] | None = None) -> None:
        self.devices = devices or []
        self.rescans = 0
        self.started = False
        self.stopped = False
        self.on_device_added = None
        self.on_service_added = None

    def start(self, on_device_added, on_service_added) -> None:
        self.started = True
        self.on_device_added = on_device_added
        self.on_service_added = on_service_added
        for device in self.devices:
            on_device_added(device)

    def rescan(self) -> None:
        self.rescans += 1

    def stop(self) -> None:
        self.stopped = True

    def invoke(self, service, action_name, arguments) -> None:
        raise AssertionError("discovery must not invoke actions")


def test_first_matching_service_is_captured() -> None:
    control_point = FakeControlPoint([_device("uuid:a", service_urn="urn:other:1"), _device("uuid:b")])
    loop = DiscoveryLoop(control_point, FilterCriteria(service_urn=WANIP_URN), timeout_ms=1000)

    service = loop.run_sync()

    assert service is not None
    assert service.device_udn == "uuid:b"
    assert loop.state is DiscoveryState.FOUND
    assert control_point.started and control_point.stopped
    assert control_point.rescans == 0


def test_services_of_unmatched_device_are_ignored() -> None:
    control_point = FakeControlPoint([_device("uuid:a", name="Printer")])
    loop = DiscoveryLoop(
        control_point,
        FilterCriteria(device_friendly_name="Gateway", service_urn=WANIP_URN),
        timeout_ms=50,
    )

    assert loop.run_sync() is None
    assert loop.state is DiscoveryState.TIMED_OUT


def test_service_added_later_is_matched_through_its_device() -> None:
    device = _device("uuid:a")
    service = device.services[0]
    loop = DiscoveryLoop(FakeControlPoint(), FilterCriteria(device_udn="uuid:a", service_urn=WANIP_URN))

    loop.handle_service_added(DiscoveredDevice(udn="uuid:x", urn="", friendly_name=""), service)
    assert loop.captured.service is None

    loop.handle_service_added(device, service)
    assert loop.captured.service is service


def test_timeout_is_not_reported_early() -> None:
    loop = DiscoveryLoop(FakeControlPoint(), FilterCriteria(service_urn=WANIP_URN), timeout_ms=200)

    started = time.monotonic()
    service = loop.run_sync()
    elapsed = time.monotonic() - started

    assert service is None
    assert loop.state is DiscoveryState.TIMED_OUT
    assert elapsed >= 0.2
    assert elapsed < 1.0


def test_rescan_fires_on_its_own_interval() -> None:
    control_point = FakeControlPoint()
    loop = DiscoveryLoop(control_point, FilterCriteria(service_urn=WANIP_URN), timeout_ms=500, rescan_ms=50)

    loop.run_sync()

    assert control_point.rescans >= 8
    assert loop.rescan_count == control_point.rescans


def test_no_rescan_once_found() -> None:
    control_point = FakeControlPoint([_device("uuid:a")])
    loop = DiscoveryLoop(control_point, FilterCriteria(service_urn=WANIP_URN), timeout_ms=500, rescan_ms=1)

    loop.run_sync()

    assert control_point.rescans == 0


def test_verbose_status_reports_match_verdicts() -> None:
    lines: list[str] = []
    control_point = FakeControlPoint([_device("uuid:a", service_urn="urn:other:1"), _device("uuid:b")])
    loop = DiscoveryLoop(
        control_point,
        FilterCriteria(service_urn=WANIP_URN),
        timeout_ms=500,
        on_status=lines.append,
    )

    loop.run_sync()

    assert any("Device matches" in line for line in lines)
    assert any("Does not match filter" in line for line in lines)
    assert any("Matches filter" in line for line in lines)


def test_concurrent_matches_capture_exactly_one_service() -> None:
    loop = DiscoveryLoop(FakeControlPoint(), FilterCriteria(service_urn=WANIP_URN))
    devices = [_device(f"uuid:{index}") for index in range(8)]
    barrier = threading.Barrier(len(devices))

    def announce(device: DiscoveredDevice) -> None:
        barrier.wait()
        loop.handle_device_added(device)

    threads = [threading.Thread(target=announce, args=(device,)) for device in devices]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    winner = loop.captured.service
    assert winner is not None
    assert winner in [device.services[0] for device in devices]
    assert len(loop.warnings) == len(devices) - 1

    late = _device("uuid:late")
    loop.handle_device_added(late)
    assert loop.captured.service is winner
    assert len(loop.warnings) == len(devices)
    assert "Ignoring duplicate service" in loop.warnings[-1]


def test_reannounced_service_is_not_a_duplicate() -> None:
    loop = DiscoveryLoop(FakeControlPoint(), FilterCriteria(service_urn=WANIP_URN))
    loop.handle_device_added(_device("uuid:a"))
    loop.handle_device_added(_device("uuid:a"))

    assert loop.warnings == ()


def test_captured_service_is_single_assignment() -> None:
    cell = CapturedService()
    first = _device("uuid:a").services[0]
    second = _device("uuid:b").services[0]

    assert cell.set_if_empty(first) is None
    assert cell.set_if_empty(second) is first
    assert cell.service is first


def test_duplicate_service_is_logged_at_info(caplog: pytest.LogCaptureFixture) -> None:
    loop = DiscoveryLoop(FakeControlPoint(), FilterCriteria(service_urn=WANIP_URN))
    with caplog.at_level(logging.DEBUG, logger="upnpctl.core.discovery"):
        loop.handle_device_added(_device("uuid:a"))
        loop.handle_device_added(_device("uuid:b"))

    duplicates = [r for r in caplog.records if "Ignoring duplicate service" in r.getMessage()]
    assert [r.levelno for r in duplicates] == [logging.INFO]
