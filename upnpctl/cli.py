"""Typer CLI entrypoint."""

from __future__ import annotations

from collections.abc import Sequence

import typer

from upnpctl.core.errors import ErrorKind, RunFailure, UsageError
from upnpctl.core.model import RunOptions
from upnpctl.core.options import HELP, parse_arguments, profile_defaults, profile_name, validate
from upnpctl.core.profile_loader import resolve_profile
from upnpctl.core.service import InvocationService
from upnpctl.substrate.upnpclient_backend import UPnPClientControlPoint

app = typer.Typer(
    help="UPnP control point: find one service and invoke one of its actions",
    add_completion=False,
    rich_markup_mode=None,
)

# \b keeps click from rewrapping each block of the flag table.
_EPILOG = "\n\n".join("\b\n" + block for block in HELP.strip().split("\n\n"))


def _build_service() -> InvocationService:
    return InvocationService(
        control_point=UPnPClientControlPoint(),
        output=typer.echo,
        status=typer.echo,
    )


def _report(failure: RunFailure) -> None:
    if failure.kind is ErrorKind.USAGE:
        typer.echo(f"Error: {failure.message}\nUsage: {HELP}", err=True)
    elif failure.kind is ErrorKind.UNCLASSIFIED:
        typer.echo(failure.detail or failure.message, err=True)
    else:
        typer.echo(f"Error during execution: {failure.message}", err=True)


def _resolve_options(args: Sequence[str]) -> RunOptions:
    base: RunOptions | None = None
    name = profile_name(args)
    if name is not None:
        resolved = resolve_profile(name)
        for warning in resolved.warnings:
            typer.echo(f"Warning: {warning}", err=True)
        base = profile_defaults(resolved.profile)
    return validate(parse_arguments(args, base))


@app.command(context_settings={"ignore_unknown_options": True}, epilog=_EPILOG)
def main(
    args: list[str] | None = typer.Argument(None, metavar="[/FLAG[:VALUE]]...", show_default=False),
) -> None:
    """Discover a matching service and invoke one action on it.

    Flags use the /name:value form, e.g. /su:urn:... /a:GetStatusInfo /gv:NewConnectionStatus.
    Run without flags to print the full flag reference.
    """
    try:
        options = _resolve_options(args or [])
    except UsageError as exc:
        _report(RunFailure(kind=ErrorKind.USAGE, message=str(exc)))
        raise typer.Exit(code=1) from None

    result = _build_service().run(options)
    for warning in result.warnings:
        typer.echo(f"Warning: {warning}", err=True)

    if result.failure is None:
        return
    _report(result.failure)
    raise typer.Exit(code=result.exit_code)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
