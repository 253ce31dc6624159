"""Transport interfaces."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, Protocol

from fwflash.core.model import DfuDevice

ConfirmFn = Callable[[str], bool]


class DfuTransport(Protocol):
    def is_available(self) -> bool:
        """Return True when the DFU toolchain can be invoked."""

    def find_compatible_device(self, device_id: str | None = None) -> DfuDevice:
        """Return the single connected DFU device, optionally matching ``device_id``."""

    def write(
        self,
        interface_index: int,
        image: Path,
        address: str,
        leave: bool,
        device: DfuDevice,
    ) -> None:
        """Write ``image`` at ``address``; raise TransportError on failure."""


class SerialFlasher(Protocol):
    def flash(self, image: Path, *, port: str | None = None, yes: bool = False) -> None:
        """Send ``image`` to a device in listening mode."""


class CloudFlasher(Protocol):
    def flash_device(
        self,
        device: str,
        files: Sequence[str],
        *,
        target: str | None = None,
        yes: bool = False,
    ) -> None:
        """Ask the cloud to flash ``files`` onto ``device``."""


class DeviceDirectory(Protocol):
    def get_device(self, device: str) -> dict[str, Any]:
        """Return the directory record (with at least ``id``) for an ID or name."""
