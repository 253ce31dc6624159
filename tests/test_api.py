from __future__ import annotations

from pathlib import Path

import pytest

from fwflash.api import Client, PlatformMismatchError, UsageError
from fwflash.core.model import DfuDevice, ModuleFunction


class FakeDfu:
    def __init__(self) -> None:
        self.writes: list[tuple[Path, str, bool]] = []

    def is_available(self) -> bool:
        return True

    def find_compatible_device(self, device_id=None) -> DfuDevice:
        return DfuDevice(dfu_id="2b04:d00a", platform_id="electron", serial="AAAAAAAAAAAAAAAAAAAAAAAA")

    def write(self, interface_index, image, address, leave, device) -> None:
        self.writes.append((image, address, leave))


def test_public_client_list_platforms() -> None:
    client = Client(dfu=FakeDfu())
    platforms = client.list_platforms()
    assert platforms
    assert [p.id for p in platforms][:2] == ["core", "photon"]


def test_public_client_inspect_and_resolve(write_image) -> None:
    client = Client(dfu=FakeDfu())
    path = write_image(platform_id=10, function=ModuleFunction.SYSTEM_PART, index=2, start=0x08040000)

    assert client.inspect(path).module_index == 2
    dest = client.resolve(path, "electron")
    assert dest.segment == "systemFirmwareTwo"
    assert dest.address == "0x08040000"

    with pytest.raises(PlatformMismatchError):
        client.resolve(path, "photon")
    with pytest.raises(UsageError):
        client.resolve(path, "toaster")


def test_public_client_flash_usb(write_image) -> None:
    dfu = FakeDfu()
    client = Client(dfu=dfu)
    path = write_image(platform_id=10)

    result = client.flash_usb(str(path))
    assert result.plan.segment == "userFirmware"
    assert dfu.writes == [(path, "0x08080000", True)]
