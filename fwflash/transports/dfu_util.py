"""DFU transport implementation driving the dfu-util executable."""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path

from fwflash.core.device_match import device_matches, parse_dfu_listing
from fwflash.core.errors import (
    DeviceSelectionError,
    ToolchainMissingError,
    TransportConnectError,
    TransportSendError,
)
from fwflash.core.model import DfuDevice, PlatformSpec

DFU_UTIL = "dfu-util"
LOGGER = logging.getLogger(__name__)


class DfuUtilTransport:
    def __init__(self, platforms: dict[str, PlatformSpec], *, executable: str = DFU_UTIL) -> None:
        self.platforms = platforms
        self.executable = executable

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    def list_devices(self) -> list[DfuDevice]:
        result = self._run([self.executable, "-l"])
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise TransportConnectError(f"{self.executable} -l failed: {stderr or result.returncode}")
        return parse_dfu_listing(result.stdout, self.platforms)

    def find_compatible_device(self, device_id: str | None = None) -> DfuDevice:
        devices = self.list_devices()
        if not devices:
            raise DeviceSelectionError(
                "No DFU device found. Put the device in DFU mode (blinking yellow) and retry."
            )

        if device_id:
            devices = [d for d in devices if device_matches(d, device_id)]
            if not devices:
                raise DeviceSelectionError(f"No DFU device found matching '{device_id}'")

        if len(devices) > 1:
            candidate_desc = ", ".join(f"{d.platform_id} [{d.dfu_id}] {d.serial or '?'}" for d in devices)
            raise DeviceSelectionError(
                f"Multiple DFU devices found: {candidate_desc}. Pass a device ID to choose one."
            )

        LOGGER.debug("Selected DFU device %s", devices[0])
        return devices[0]

    def write(
        self,
        interface_index: int,
        image: Path,
        address: str,
        leave: bool,
        device: DfuDevice,
    ) -> None:
        cmd = [
            self.executable,
            "-d",
            device.dfu_id,
            "-a",
            str(interface_index),
            "-i",
            "0",
            "-s",
            f"{address}:leave" if leave else address,
            "-D",
            str(image),
        ]
        if device.serial:
            cmd.extend(["-S", device.serial])

        LOGGER.info("Running %s", " ".join(cmd))
        result = self._run(cmd)
        if result.returncode != 0:
            stderr = (result.stderr or result.stdout or "").strip()
            raise TransportSendError(f"{self.executable} exited with code {result.returncode}: {stderr}")

    def _run(self, cmd: Sequence[str]) -> subprocess.CompletedProcess[str]:
        try:
            return subprocess.run(
                cmd,
                check=False,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as exc:
            raise ToolchainMissingError(
                f"{self.executable} was not found. Install dfu-util and retry."
            ) from exc
