from __future__ import annotations

import pytest

from upnpctl.core.binder import apply_set, dump_arguments, read_expect, read_get
from upnpctl.core.errors import CoercionError, ExpectationMismatchError, VariableNotFoundError
from upnpctl.core.model import ActionDescriptor, ArgumentDescriptor, Direction


def _action() -> ActionDescriptor:
    return ActionDescriptor(
        name="AddPortMapping",
        arguments=(
            ArgumentDescriptor("NewExternalPort", Direction.IN, "ui2"),
            ArgumentDescriptor("NewProtocol", Direction.IN, "string"),
            ArgumentDescriptor("NewEnabled", Direction.IN, "boolean", value=True),
            ArgumentDescriptor("NewLeaseDuration", Direction.IN, "ui4"),
            ArgumentDescriptor("NewResult", Direction.OUT, "string", is_return_value=True),
        ),
    )


def test_apply_set_coerces_to_declared_types() -> None:
    action = _action()
    apply_set(action, [("NewExternalPort", "8080"), ("NewProtocol", "TCP"), ("NewEnabled", "0")])

    assert action.argument("NewExternalPort").value == 8080
    assert action.argument("NewProtocol").value == "TCP"
    assert action.argument("NewEnabled").value is False


def test_apply_set_unknown_variable() -> None:
    with pytest.raises(VariableNotFoundError) as exc:
        apply_set(_action(), [("NewInternalClient", "10.0.0.2")])

    assert "NewInternalClient" in str(exc.value)
    assert "NewExternalPort" in str(exc.value)


def test_apply_set_coercion_failure() -> None:
    with pytest.raises(CoercionError) as exc:
        apply_set(_action(), [("NewLeaseDuration", "abc")])

    assert "AddPortMapping.NewLeaseDuration" in str(exc.value)


def test_apply_set_out_of_range_value() -> None:
    with pytest.raises(CoercionError):
        apply_set(_action(), [("NewExternalPort", "70000")])


def test_apply_set_reports_first_failure_in_order() -> None:
    action = _action()
    with pytest.raises(VariableNotFoundError):
        apply_set(action, [("NewProtocol", "UDP"), ("Missing", "1"), ("NewLeaseDuration", "abc")])

    assert action.argument("NewProtocol").value == "UDP"


def test_read_get_preserves_order_and_formats() -> None:
    action = _action()
    apply_set(action, [("NewExternalPort", "443"), ("NewProtocol", "UDP")])

    assert read_get(action, ["NewProtocol", "NewEnabled", "NewExternalPort", "NewResult"]) == [
        "UDP",
        "true",
        "443",
        "",
    ]


def test_read_get_unknown_variable() -> None:
    with pytest.raises(VariableNotFoundError):
        read_get(_action(), ["NewRemoteHost"])


def test_read_expect_match_and_mismatch() -> None:
    action = _action()
    action.argument("NewResult").value = "OK"

    read_expect(action, [("NewResult", "OK"), ("NewEnabled", "true")])

    with pytest.raises(ExpectationMismatchError) as exc:
        read_expect(action, [("NewResult", "Failed")])

    assert exc.value.expected == "Failed"
    assert exc.value.actual == "OK"
    assert '"Failed"' in str(exc.value)
    assert '"OK"' in str(exc.value)


def test_read_expect_unknown_variable() -> None:
    with pytest.raises(VariableNotFoundError):
        read_expect(_action(), [("Nope", "x")])


def test_round_trip_through_set_and_get() -> None:
    action = _action()
    apply_set(action, [("NewLeaseDuration", "3600"), ("NewProtocol", "TCP")])

    assert read_get(action, ["NewLeaseDuration", "NewProtocol"]) == ["3600", "TCP"]


def test_dump_lists_every_argument() -> None:
    lines = dump_arguments(_action())

    assert len(lines) == 5
    assert lines[0] == 'var name=NewExternalPort (direction=in type=ui2 value="" isReturnValue=false)'
    assert lines[2] == 'var name=NewEnabled (direction=in type=boolean value="true" isReturnValue=false)'
    assert lines[4] == 'var name=NewResult (direction=out type=string value="" isReturnValue=true)'
