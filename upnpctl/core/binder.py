"""Binding user variables onto an action's argument list and reading them back."""

from __future__ import annotations

from collections.abc import Sequence

from upnpctl.core.coercion import coerce_value, format_value
from upnpctl.core.errors import ExpectationMismatchError, VariableNotFoundError
from upnpctl.core.model import ActionDescriptor, ArgumentDescriptor


def _require_argument(action: ActionDescriptor, name: str) -> ArgumentDescriptor:
    arg = action.argument(name)
    if arg is None:
        available = ", ".join(a.name for a in action.arguments) or "<none>"
        raise VariableNotFoundError(
            f'Variable "{name}" not found on action "{action.name}". Available: {available}'
        )
    return arg


def apply_set(action: ActionDescriptor, set_vars: Sequence[tuple[str, str]]) -> None:
    for name, text in set_vars:
        arg = _require_argument(action, name)
        arg.value = coerce_value(text, arg.declared_type, context=f"{action.name}.{name}")


def read_get(action: ActionDescriptor, get_vars: Sequence[str]) -> list[str]:
    values: list[str] = []
    for name in get_vars:
        arg = _require_argument(action, name)
        values.append(format_value(arg.value, arg.declared_type))
    return values


def read_expect(action: ActionDescriptor, expect_vars: Sequence[tuple[str, str]]) -> None:
    for name, expected in expect_vars:
        arg = _require_argument(action, name)
        actual = format_value(arg.value, arg.declared_type)
        if actual != expected:
            raise ExpectationMismatchError(name, expected, actual)


def dump_arguments(action: ActionDescriptor) -> list[str]:
    return [
        f'var name={arg.name} (direction={arg.direction.value} type={arg.declared_type} '
        f'value="{format_value(arg.value, arg.declared_type)}" isReturnValue={str(arg.is_return_value).lower()})'
        for arg in action.arguments
    ]
