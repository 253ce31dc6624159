from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from fwflash.core.errors import DeviceSelectionError, ToolchainMissingError, TransportSendError
from fwflash.core.model import DfuDevice
from fwflash.core.platform_loader import load_platforms
from fwflash.transports.dfu_util import DfuUtilTransport

PHOTON_LINE = (
    'Found DFU: [2b04:d006] ver=0200, devnum=21, cfg=1, intf=0, path="1-1", alt=0, '
    'name="@Internal Flash   /0x08000000/03*016Ka", serial="{serial}"\n'
)


def _cp(cmd: list[str], rc: int, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(cmd, rc, stdout=stdout, stderr=stderr)


@pytest.fixture
def transport() -> DfuUtilTransport:
    return DfuUtilTransport(load_platforms().platforms)


def test_find_single_device(monkeypatch: pytest.MonkeyPatch, transport: DfuUtilTransport) -> None:
    def fake_run(cmd, check, capture_output, text):
        assert cmd == ["dfu-util", "-l"]
        return _cp(cmd, 0, stdout=PHOTON_LINE.format(serial="3C0025000D47343432313031"))

    monkeypatch.setattr(subprocess, "run", fake_run)

    device = transport.find_compatible_device()
    assert device.platform_id == "photon"
    assert device.serial == "3C0025000D47343432313031"


def test_find_device_by_id(monkeypatch: pytest.MonkeyPatch, transport: DfuUtilTransport) -> None:
    listing = PHOTON_LINE.format(serial="AAAAAAAAAAAAAAAAAAAAAAAA") + PHOTON_LINE.format(
        serial="BBBBBBBBBBBBBBBBBBBBBBBB"
    )
    monkeypatch.setattr(subprocess, "run", lambda cmd, check, capture_output, text: _cp(cmd, 0, stdout=listing))

    with pytest.raises(DeviceSelectionError) as exc:
        transport.find_compatible_device()
    assert "Multiple DFU devices" in str(exc.value)

    device = transport.find_compatible_device("bbbbbbbbbbbbbbbbbbbbbbbb")
    assert device.serial == "BBBBBBBBBBBBBBBBBBBBBBBB"


def test_no_devices_raises(monkeypatch: pytest.MonkeyPatch, transport: DfuUtilTransport) -> None:
    monkeypatch.setattr(subprocess, "run", lambda cmd, check, capture_output, text: _cp(cmd, 0, stdout="dfu-util 0.11\n"))

    with pytest.raises(DeviceSelectionError):
        transport.find_compatible_device()


def test_missing_executable_is_toolchain_error(monkeypatch: pytest.MonkeyPatch, transport: DfuUtilTransport) -> None:
    def fake_run(cmd, check, capture_output, text):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(ToolchainMissingError):
        transport.list_devices()


def test_write_builds_dfu_util_command(monkeypatch: pytest.MonkeyPatch, transport: DfuUtilTransport) -> None:
    calls: list[list[str]] = []

    def fake_run(cmd, check, capture_output, text):
        calls.append(list(cmd))
        return _cp(cmd, 0)

    monkeypatch.setattr(subprocess, "run", fake_run)
    device = DfuDevice(dfu_id="2b04:d006", platform_id="photon", serial="3C0025000D47343432313031")

    transport.write(0, Path("/tmp/app.bin"), "0x080A0000", True, device)
    transport.write(0, Path("/tmp/sys.bin"), "0x08020000", False, DfuDevice(dfu_id="2b04:d006", platform_id="photon"))

    assert calls[0] == [
        "dfu-util", "-d", "2b04:d006", "-a", "0", "-i", "0",
        "-s", "0x080A0000:leave", "-D", "/tmp/app.bin",
        "-S", "3C0025000D47343432313031",
    ]
    assert calls[1] == [
        "dfu-util", "-d", "2b04:d006", "-a", "0", "-i", "0",
        "-s", "0x08020000", "-D", "/tmp/sys.bin",
    ]


def test_write_failure_raises(monkeypatch: pytest.MonkeyPatch, transport: DfuUtilTransport) -> None:
    monkeypatch.setattr(
        subprocess, "run", lambda cmd, check, capture_output, text: _cp(cmd, 74, stderr="Error during download")
    )

    with pytest.raises(TransportSendError) as exc:
        transport.write(0, Path("/tmp/app.bin"), "0x080A0000", True, DfuDevice(dfu_id="2b04:d006", platform_id="photon"))
    assert "Error during download" in str(exc.value)
