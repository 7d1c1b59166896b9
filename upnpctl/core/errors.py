"""Domain-specific errors and run outcomes for upnpctl."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class UpnpctlError(Exception):
    """Base error for upnpctl."""


class UsageError(UpnpctlError):
    """Raised when command-line configuration is malformed or incomplete."""


class ProfileLoadError(UsageError):
    """Raised when reading profile sources fails."""


class ProfileValidationError(UsageError):
    """Raised when a profile file does not conform to schema or semantics."""


class SubstrateError(UpnpctlError):
    """Raised when the discovery/invocation backend cannot serve a request."""


class ErrorKind(Enum):
    USAGE = "usage"
    SERVICE_NOT_FOUND = "service-not-found"
    ACTION_NOT_FOUND = "action-not-found"
    VARIABLE_NOT_FOUND = "variable-not-found"
    COERCION_FAILED = "coercion-failed"
    EXPECTATION_MISMATCH = "expectation-mismatch"
    UNCLASSIFIED = "unclassified"


class ExecutionError(UpnpctlError):
    """Base for failures after configuration has been accepted."""

    kind = ErrorKind.UNCLASSIFIED


class ServiceNotFoundError(ExecutionError):
    """Raised when discovery times out without a matching service."""

    kind = ErrorKind.SERVICE_NOT_FOUND


class ActionNotFoundError(ExecutionError):
    """Raised when the target service has no action of the requested name."""

    kind = ErrorKind.ACTION_NOT_FOUND


class VariableNotFoundError(ExecutionError):
    """Raised when a set/get/expect name is not an argument of the action."""

    kind = ErrorKind.VARIABLE_NOT_FOUND


class CoercionError(ExecutionError):
    """Raised when a value cannot be converted to the argument's declared type."""

    kind = ErrorKind.COERCION_FAILED


class ExpectationMismatchError(ExecutionError):
    """Raised when an argument's value after invocation differs from the expected one."""

    kind = ErrorKind.EXPECTATION_MISMATCH

    def __init__(self, name: str, expected: str, actual: str) -> None:
        super().__init__(
            f'Variable "{name}" expected to be "{expected}", but is actually "{actual}".'
        )
        self.name = name
        self.expected = expected
        self.actual = actual


@dataclass(frozen=True)
class RunFailure:
    kind: ErrorKind
    message: str
    detail: str | None = None

    @property
    def is_execution(self) -> bool:
        return self.kind not in (ErrorKind.USAGE, ErrorKind.UNCLASSIFIED)


@dataclass(frozen=True)
class RunResult:
    """Outcome of one orchestrated run, successful or not."""

    failure: RunFailure | None = None
    values: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    invoked: bool = False

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def exit_code(self) -> int:
        return 0 if self.failure is None else 1
