"""Stable public API for building tooling on top of fwflash.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from fwflash.core.errors import (
    CloudApiError,
    CRCInvalidError,
    DeviceLookupError,
    DeviceSelectionError,
    FwflashError,
    ImageFileError,
    ImageParseError,
    ImageValidationError,
    PlatformMismatchError,
    ToolchainMissingError,
    TransportError,
    UnknownDestinationError,
    UnknownModuleFunctionError,
    UsageError,
    WriteError,
)
from fwflash.core.model import (
    Destination,
    DfuDevice,
    FlashMode,
    FlashResult,
    ImageDescriptor,
    ModuleFunction,
    PlatformSpec,
    SegmentSpec,
)
from fwflash.core.module_info import parse_module
from fwflash.core.resolver import resolve_destination
from fwflash.core.service import FlashService
from fwflash.transports.base import CloudFlasher, DeviceDirectory, DfuTransport, SerialFlasher

__all__ = [
    "CloudApiError",
    "CRCInvalidError",
    "DeviceLookupError",
    "DeviceSelectionError",
    "FwflashError",
    "ImageFileError",
    "ImageParseError",
    "ImageValidationError",
    "PlatformMismatchError",
    "ToolchainMissingError",
    "TransportError",
    "UnknownDestinationError",
    "UnknownModuleFunctionError",
    "UsageError",
    "WriteError",
    "Destination",
    "DfuDevice",
    "FlashMode",
    "FlashResult",
    "ImageDescriptor",
    "ModuleFunction",
    "PlatformSpec",
    "SegmentSpec",
    "Client",
]


class Client:
    """Public client for interacting with fwflash core capabilities.

    A `Client` instance wraps platform table loading, image inspection,
    destination resolution and the three flash modes behind a stable API
    intended for third-party tools (GUI/TUI/services/scripts).
    """

    def __init__(
        self,
        *,
        dfu: DfuTransport | None = None,
        serial_flasher: SerialFlasher | None = None,
        cloud_flasher: CloudFlasher | None = None,
        directory: DeviceDirectory | None = None,
    ) -> None:
        self._service = FlashService(
            dfu=dfu,
            serial_flasher=serial_flasher,
            cloud_flasher=cloud_flasher,
            directory=directory,
        )

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    def list_platforms(self) -> list[PlatformSpec]:
        return self._service.list_platforms()

    def inspect(self, image: str | Path) -> ImageDescriptor:
        return parse_module(image)

    def resolve(
        self,
        image: str | Path,
        platform_id: str,
        *,
        factory: bool = False,
        force: bool = False,
    ) -> Destination:
        platform = self._service.platforms.get(platform_id)
        if platform is None:
            raise UsageError(f"Unknown platform '{platform_id}'")
        return resolve_destination(parse_module(image), platform, factory=factory, force=force)

    def flash_usb(
        self,
        image: str,
        *,
        device: str | None = None,
        factory: bool = False,
        force: bool = False,
    ) -> FlashResult:
        if device:
            return self._service.flash(device, device, [image], usb=True, factory=factory, force=force)
        return self._service.flash(image, image, [], usb=True, factory=factory, force=force)

    def flash_serial(self, image: str, *, port: str | None = None, yes: bool = False) -> FlashResult:
        return self._service.flash(image, image, [], serial=True, port=port, yes=yes)

    def flash_cloud(
        self,
        device: str,
        files: Sequence[str],
        *,
        target: str | None = None,
        yes: bool = False,
    ) -> FlashResult:
        return self._service.flash(device, device, list(files), target=target, yes=yes)
