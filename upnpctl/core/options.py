"""Parsing and validation of slash-style command-line flags."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

from upnpctl.core.errors import UsageError
from upnpctl.core.model import FilterCriteria, Profile, RunOptions

_DEFAULTS = RunOptions()

HELP = (
    "upnpctl arguments:\n"
    f"\t/t:{_DEFAULTS.timeout_ms}\tDiscovery timeout in ms\n"
    f"\t/r:{_DEFAULTS.rescan_ms}\tRediscovery every ms\n"
    "\t/vd\tVerbose discovery\n"
    "\n"
    "\t/du:urn:...\tDevice URN\n"
    "\t/di:uuid:...\tDevice UDN (ID)\n"
    "\t/df:ABCD...\tDevice friendly name\n"
    "\t/su:urn:...\tService URN\n"
    "\t/si:urn:...:1\tService ID\n"
    "\n"
    "\t/a:action\tCall action 'action'\n"
    "\t/sv:var=value\tSet variable 'var' to 'value'\n"
    "\t/gv:var\tPrint (get) the value of 'var' before exiting\n"
    "\t/dv\tDump all variables instead of calling the action\n"
    "\t/ev:var=value\tAfter the call, expect 'var' to be 'value'\n"
    "\n"
    "\t/p:profile\tLoad filters, action and variables from a named profile\n"
)

_TEXT_FLAGS = {
    "/du:": "device_urn",
    "/di:": "device_udn",
    "/df:": "device_friendly_name",
    "/su:": "service_urn",
    "/si:": "service_id",
}


def _parse_ms(flag: str, text: str) -> int:
    try:
        value = int(text, 10)
    except ValueError as exc:
        raise UsageError(f"{flag} expects a number of milliseconds, got '{text}'") from exc
    if value < 0:
        raise UsageError(f"{flag} must not be negative, got {value}")
    return value


def _split_pair(flag: str, text: str) -> tuple[str, str]:
    name, sep, value = text.partition("=")
    if not sep or not name:
        raise UsageError(f"Usage: {flag}name=value")
    return name, value


def _put_pair(
    pairs: list[tuple[str, str]],
    seen: set[str],
    flag: str,
    text: str,
    verb: str,
) -> None:
    name, value = _split_pair(flag, text)
    if name in seen:
        raise UsageError(f'{flag} attempted to {verb} "{name}" twice.')
    seen.add(name)
    for index, (existing, _) in enumerate(pairs):
        if existing == name:
            pairs[index] = (name, value)
            return
    pairs.append((name, value))


def profile_defaults(profile: Profile) -> RunOptions:
    return RunOptions(
        action=profile.action,
        criteria=profile.criteria,
        timeout_ms=profile.timeout_ms if profile.timeout_ms is not None else _DEFAULTS.timeout_ms,
        rescan_ms=profile.rescan_ms if profile.rescan_ms is not None else _DEFAULTS.rescan_ms,
        set_vars=profile.set_vars,
        get_vars=profile.get_vars,
        expect_vars=profile.expect_vars,
        profile=profile.id,
    )


def parse_arguments(args: Sequence[str], base: RunOptions | None = None) -> RunOptions:
    """Apply raw flags on top of `base` (defaults, or a profile's settings).

    Mandatory settings are not checked here; see `validate`.
    """
    options = base or RunOptions()
    criteria = {
        name: value
        for name, value in vars(options.criteria).items()
        if value is not None
    }
    set_vars = list(options.set_vars)
    expect_vars = list(options.expect_vars)
    get_vars = list(options.get_vars)
    set_names: set[str] = set()
    expect_names: set[str] = set()

    for arg in args:
        text_flag = next((flag for flag in _TEXT_FLAGS if arg.startswith(flag)), None)
        if text_flag is not None:
            criteria[_TEXT_FLAGS[text_flag]] = arg[len(text_flag):]
        elif arg.startswith("/t:"):
            options = replace(options, timeout_ms=_parse_ms("/t:", arg[3:]))
        elif arg.startswith("/r:"):
            options = replace(options, rescan_ms=_parse_ms("/r:", arg[3:]))
        elif arg == "/vd":
            options = replace(options, verbose_discovery=True)
        elif arg == "/dv":
            options = replace(options, dump_vars=True)
        elif arg.startswith("/a:"):
            options = replace(options, action=arg[3:])
        elif arg.startswith("/p:"):
            options = replace(options, profile=arg[3:])
        elif arg.startswith("/sv:"):
            _put_pair(set_vars, set_names, "/sv:", arg[4:], "set")
        elif arg.startswith("/ev:"):
            _put_pair(expect_vars, expect_names, "/ev:", arg[4:], "expect")
        elif arg.startswith("/gv:"):
            get_vars.append(arg[4:])
        else:
            raise UsageError(f'Illegal argument "{arg}". (Missing value?)')

    return replace(
        options,
        criteria=FilterCriteria(**criteria),
        set_vars=tuple(set_vars),
        get_vars=tuple(get_vars),
        expect_vars=tuple(expect_vars),
    )


def profile_name(args: Sequence[str]) -> str | None:
    """Name given by the last `/p:` flag, looked up before full parsing."""
    name = None
    for arg in args:
        if arg.startswith("/p:"):
            name = arg[3:]
    return name


def validate(options: RunOptions) -> RunOptions:
    if not options.criteria.has_service_filter:
        raise UsageError("One of service ID (/si:) or URN (/su:) must be specified.")
    if not options.action:
        raise UsageError("Action (/a:) is mandatory.")
    return options
