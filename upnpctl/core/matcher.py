"""Filter matching for discovered devices and services."""

from __future__ import annotations

from upnpctl.core.model import DiscoveredDevice, DiscoveredService, FilterCriteria


def _field_matches(expected: str | None, actual: str) -> bool:
    return expected is None or expected == actual


def matches_device(criteria: FilterCriteria, device: DiscoveredDevice) -> bool:
    return (
        _field_matches(criteria.device_friendly_name, device.friendly_name)
        and _field_matches(criteria.device_udn, device.udn)
        and _field_matches(criteria.device_urn, device.urn)
    )


def matches_service(criteria: FilterCriteria, service: DiscoveredService) -> bool:
    return _field_matches(criteria.service_id, service.service_id) and _field_matches(
        criteria.service_urn, service.service_urn
    )
