"""Service layer used by CLI and future UI frontends."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from fwflash.core.device_match import is_device_id
from fwflash.core.errors import (
    DeviceLookupError,
    DeviceSelectionError,
    FwflashError,
    ImageFileError,
    ToolchainMissingError,
    TransportError,
    UsageError,
    WriteError,
)
from fwflash.core.model import FlashMode, FlashResult, PlatformSpec
from fwflash.core.module_info import parse_module
from fwflash.core.platform_loader import known_app, load_platforms
from fwflash.core.resolver import plan_flash
from fwflash.core.settings import Settings, load_settings
from fwflash.transports.base import (
    CloudFlasher,
    ConfirmFn,
    DeviceDirectory,
    DfuTransport,
    SerialFlasher,
)

DFU_INTERFACE_INDEX = 0
LOGGER = logging.getLogger(__name__)


class FlashService:
    def __init__(
        self,
        *,
        dfu: DfuTransport | None = None,
        serial_flasher: SerialFlasher | None = None,
        cloud_flasher: CloudFlasher | None = None,
        directory: DeviceDirectory | None = None,
        settings: Settings | None = None,
        confirm: ConfirmFn | None = None,
    ) -> None:
        loaded = load_platforms()
        self.platforms = loaded.platforms
        self.load_warnings = loaded.warnings
        self.settings = settings or load_settings()
        self.confirm = confirm
        self._dfu = dfu
        self._serial_flasher = serial_flasher
        self._cloud_flasher = cloud_flasher
        self._directory = directory

    @property
    def dfu(self) -> DfuTransport:
        if self._dfu is None:
            from fwflash.transports.dfu_util import DfuUtilTransport

            self._dfu = DfuUtilTransport(self.platforms)
        return self._dfu

    @property
    def serial_flasher(self) -> SerialFlasher:
        if self._serial_flasher is None:
            from fwflash.transports.ymodem import SerialYModemFlasher

            self._serial_flasher = SerialYModemFlasher(confirm=self.confirm)
        return self._serial_flasher

    @property
    def directory(self) -> DeviceDirectory:
        if self._directory is None:
            from fwflash.transports.cloud import CloudApi

            self._directory = CloudApi(self.settings)
        return self._directory

    @property
    def cloud_flasher(self) -> CloudFlasher:
        if self._cloud_flasher is None:
            from fwflash.transports.cloud import CloudApi, CloudFlasher as ApiCloudFlasher

            directory = self.directory
            api = directory if isinstance(directory, CloudApi) else CloudApi(self.settings)
            self._cloud_flasher = ApiCloudFlasher(api, confirm=self.confirm)
        return self._cloud_flasher

    def list_platforms(self) -> list[PlatformSpec]:
        return sorted(self.platforms.values(), key=lambda p: p.product_id)

    def flash(
        self,
        device: str | None,
        binary: str | None,
        files: Sequence[str] = (),
        *,
        usb: bool = False,
        serial: bool = False,
        factory: bool = False,
        force: bool = False,
        target: str | None = None,
        port: str | None = None,
        yes: bool = False,
    ) -> FlashResult:
        """Flash over USB, serial, or the cloud depending on the mode flags.

        ``device`` and ``binary`` both receive the first positional argument;
        ``files`` receives the rest.
        """
        if not device and not binary:
            raise UsageError("Specify a device and/or a firmware image to flash")

        if usb:
            if files:
                binary = files[0]
            else:
                device = None

            if device and not is_device_id(device):
                device = self.lookup_device_id(device)

            if not binary:
                raise UsageError("Specify a firmware image to flash over USB")
            return self.flash_dfu(device, binary, factory=factory, force=force)

        if serial:
            if not binary:
                raise UsageError("Specify a firmware image to flash over serial")
            return self.flash_serial(binary, port=port, yes=yes)

        if not device:
            raise UsageError("Specify a device to flash over the cloud")
        return self.flash_cloud(device, list(files) or ["."], target=target, yes=yes)

    def lookup_device_id(self, name: str) -> str:
        try:
            info = self.directory.get_device(name)
        except FwflashError as exc:
            raise DeviceLookupError(f"Device ID lookup failed for '{name}': {exc}") from exc
        if not info or not info.get("id"):
            raise DeviceLookupError(f"Device ID lookup failed for '{name}'")
        LOGGER.debug("Resolved device '%s' to %s", name, info["id"])
        return info["id"]

    def flash_dfu(
        self,
        device: str | None,
        binary: str,
        *,
        factory: bool = False,
        force: bool = False,
        leave: bool | None = None,
    ) -> FlashResult:
        if not self.dfu.is_available():
            raise ToolchainMissingError("dfu-util is not installed. Install it to flash over USB.")

        target_device = self.dfu.find_compatible_device(device)
        platform = self.platforms.get(target_device.platform_id)
        if platform is None:
            raise DeviceSelectionError(f"No platform table for DFU device {target_device.dfu_id}")

        image = Path(binary)
        descriptor = None
        if not image.exists():
            app = known_app(platform, binary)
            if app is None:
                raise ImageFileError(f"{binary}: file does not exist and no known app found")
            LOGGER.info("Flashing known app '%s' from %s", binary, app)
            image = app
        elif not image.is_file():
            raise ImageFileError(f"{binary}: you cannot flash a directory over USB")
        else:
            descriptor = parse_module(image)

        with plan_flash(image, descriptor, platform, factory=factory, force=force, leave=leave) as plan:
            LOGGER.info("Writing %s to %s at %s (leave=%s)", plan.image, plan.segment, plan.address, plan.leave)
            try:
                self.dfu.write(DFU_INTERFACE_INDEX, plan.image, plan.address, plan.leave, target_device)
            except TransportError as exc:
                raise WriteError(f"Error writing firmware to {plan.segment} at {plan.address}: {exc}") from exc

        return FlashResult(
            mode=FlashMode.USB,
            device=device or target_device.serial,
            plan=plan,
            warnings=plan.warnings,
        )

    def flash_serial(self, binary: str, *, port: str | None = None, yes: bool = False) -> FlashResult:
        try:
            self.serial_flasher.flash(Path(binary), port=port, yes=yes)
        except TransportError as exc:
            raise WriteError(f"Error writing firmware over serial: {exc}") from exc
        return FlashResult(mode=FlashMode.SERIAL, device=port)

    def flash_cloud(
        self,
        device: str,
        files: Sequence[str],
        *,
        target: str | None = None,
        yes: bool = False,
    ) -> FlashResult:
        try:
            self.cloud_flasher.flash_device(device, files, target=target, yes=yes)
        except TransportError as exc:
            raise WriteError(f"Error flashing {device} over the cloud: {exc}") from exc
        return FlashResult(mode=FlashMode.CLOUD, device=device)
