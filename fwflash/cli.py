"""Typer CLI entrypoint."""

from __future__ import annotations

import logging

import typer

from fwflash.core.errors import FwflashError
from fwflash.core.module_info import parse_module
from fwflash.core.service import FlashService

app = typer.Typer(help="Flash firmware over USB (DFU), serial (YModem), or the cloud")


def _confirm(message: str) -> bool:
    return typer.confirm(message, default=False)


def _build_service() -> FlashService:
    service = FlashService(confirm=_confirm)
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.ERROR,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command("flash")
def flash(
    target: str | None = typer.Argument(None, help="Device ID/name, or the image for --usb/--serial"),
    files: list[str] | None = typer.Argument(None, help="Firmware or source files"),
    usb: bool = typer.Option(False, "--usb", help="Flash over USB using dfu-util"),
    serial: bool = typer.Option(False, "--serial", help="Flash over a serial port using YModem"),
    factory: bool = typer.Option(False, "--factory", help="Write to the factory reset segment"),
    force: bool = typer.Option(False, "--force", help="Flash even when CRC, platform, or module checks fail"),
    build_target: str | None = typer.Option(None, "--target", help="Firmware version to compile against"),
    port: str | None = typer.Option(None, "--port", help="Serial port to use"),
    yes: bool = typer.Option(False, "--yes", help="Answer yes to all questions"),
) -> None:
    """Flash a firmware image to a device.

    With --usb or --serial, TARGET is the image (or a device followed by the
    image). Otherwise TARGET is the device and FILES are sent to the cloud.
    """
    try:
        service = _build_service()
        result = service.flash(
            target,
            target,
            files or [],
            usb=usb,
            serial=serial,
            factory=factory,
            force=force,
            target=build_target,
            port=port,
            yes=yes,
        )
        for warning in result.warnings:
            typer.echo(f"Warning: {warning}", err=True)
        if result.plan is not None:
            typer.echo(f"Wrote {result.plan.segment} at {result.plan.address}")
        typer.echo("\nFlash success!")
    except FwflashError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("inspect")
def inspect_image(path: str) -> None:
    """Print the module descriptor embedded in a firmware image."""
    try:
        info = parse_module(path)
    except FwflashError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    typer.echo(f"{info.path}")
    typer.echo(f"  platform id: {info.platform_id}")
    typer.echo(f"  module function: {info.function_name}")
    typer.echo(f"  module index: {info.module_index}")
    typer.echo(f"  module version: {info.module_version}")
    typer.echo(f"  address range: 0x{info.module_start_address:08X}-0x{info.module_end_address:08X}")
    typer.echo(f"  CRC: {'ok' if info.crc_valid else 'INVALID'}")
    if not info.verifiable:
        typer.echo("  suffix: missing (unable to verify)")
    if info.drop_module_info:
        typer.echo("  flags: drop module info")


@app.command("platforms")
def list_platforms() -> None:
    """List known platforms and their flash segments."""
    try:
        service = _build_service()
        platforms = service.list_platforms()
        if not platforms:
            typer.echo("No platforms loaded")
            raise typer.Exit(code=1)

        for platform in platforms:
            typer.echo(f"{platform.id}: {platform.name} (product {platform.product_id}, dfu {platform.dfu_id})")
            for name, segment in sorted(platform.segments.items(), key=lambda kv: kv[1].address):
                typer.echo(f"  {name}: {segment.address}")
    except FwflashError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
