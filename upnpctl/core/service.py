"""Service layer used by CLI and the public API."""

from __future__ import annotations

import logging
import traceback
from collections.abc import Callable

from upnpctl.core.binder import apply_set, dump_arguments, read_expect, read_get
from upnpctl.core.discovery import DiscoveryLoop
from upnpctl.core.errors import (
    ActionNotFoundError,
    ErrorKind,
    ExecutionError,
    RunFailure,
    RunResult,
    ServiceNotFoundError,
)
from upnpctl.core.model import ActionDescriptor, DiscoveredService, RunOptions
from upnpctl.substrate.base import ControlPoint
from upnpctl.substrate.upnpclient_backend import UPnPClientControlPoint

LOGGER = logging.getLogger(__name__)


class InvocationService:
    """Runs discovery, action lookup, variable binding and invocation in sequence.

    Every failure is returned as a `RunFailure` on the `RunResult` rather than
    raised, so callers branch on `failure.kind`.
    """

    def __init__(
        self,
        *,
        control_point: ControlPoint | None = None,
        output: Callable[[str], None] = print,
        status: Callable[[str], None] | None = None,
    ) -> None:
        self.control_point = control_point or UPnPClientControlPoint()
        self._output = output
        self._status = status
        self.discovery_warnings: tuple[str, ...] = ()

    def find_service(self, options: RunOptions) -> DiscoveredService:
        loop = DiscoveryLoop(
            self.control_point,
            options.criteria,
            timeout_ms=options.timeout_ms,
            rescan_ms=options.rescan_ms,
            poll_ms=options.poll_ms,
            on_status=self._status if options.verbose_discovery else None,
        )
        try:
            service = loop.run_sync()
        finally:
            self.discovery_warnings = loop.warnings
        if service is None:
            raise ServiceNotFoundError(
                f"Service not found within {options.timeout_ms} ms "
                f"({loop.rescan_count} rescans)."
            )
        LOGGER.debug("Target service: %s", service)
        return service

    def resolve_action(self, service: DiscoveredService, name: str) -> ActionDescriptor:
        action = service.find_action(name)
        if action is None:
            available = ", ".join(a.name for a in service.actions) or "<none>"
            raise ActionNotFoundError(f'Action "{name}" not found. Available: {available}')
        return action

    def describe_action(self, options: RunOptions) -> ActionDescriptor:
        service = self.find_service(options)
        return self.resolve_action(service, options.action or "")

    def run(self, options: RunOptions) -> RunResult:
        values: list[str] = []
        invoked = False
        try:
            service = self.find_service(options)
            action = self.resolve_action(service, options.action or "")

            if options.dump_vars:
                for line in dump_arguments(action):
                    self._output(line)
                return RunResult(warnings=self.discovery_warnings)

            apply_set(action, options.set_vars)
            self.control_point.invoke(service, action.name, action.arguments)
            invoked = True

            for name in options.get_vars:
                value = read_get(action, (name,))[0]
                self._output(value)
                values.append(value)

            read_expect(action, options.expect_vars)
        except ExecutionError as exc:
            return self._failed(RunFailure(kind=exc.kind, message=str(exc)), values, invoked)
        except Exception as exc:
            LOGGER.debug("Unclassified failure", exc_info=True)
            failure = RunFailure(
                kind=ErrorKind.UNCLASSIFIED,
                message=f"{type(exc).__name__}: {exc}",
                detail=traceback.format_exc(),
            )
            return self._failed(failure, values, invoked)

        return RunResult(values=tuple(values), warnings=self.discovery_warnings, invoked=invoked)

    def _failed(self, failure: RunFailure, values: list[str], invoked: bool) -> RunResult:
        return RunResult(
            failure=failure,
            values=tuple(values),
            warnings=self.discovery_warnings,
            invoked=invoked,
        )
