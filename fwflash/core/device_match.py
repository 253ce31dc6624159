"""Device identification and DFU listing matching logic."""

from __future__ import annotations

import re

from fwflash.core.model import DfuDevice, PlatformSpec

_DEVICE_ID_RE = re.compile(r"^[0-9a-f]{24}$", re.IGNORECASE)
_DFU_LINE_RE = re.compile(
    r"^Found DFU:\s+\[([0-9a-f]{4}:[0-9a-f]{4})\](?P<rest>.*)$",
    re.IGNORECASE,
)
_SERIAL_RE = re.compile(r'serial="([^"]*)"')


def is_device_id(value: str) -> bool:
    return bool(_DEVICE_ID_RE.match(value))


def parse_dfu_listing(output: str, platforms: dict[str, PlatformSpec]) -> list[DfuDevice]:
    """Return one DfuDevice per (vid:pid, serial) that belongs to a known platform."""
    by_dfu_id = {p.dfu_id: p for p in platforms.values()}
    seen: set[tuple[str, str | None]] = set()
    devices: list[DfuDevice] = []

    for line in output.splitlines():
        match = _DFU_LINE_RE.match(line.strip())
        if not match:
            continue
        dfu_id = match.group(1).lower()
        platform = by_dfu_id.get(dfu_id)
        if platform is None:
            continue
        serial_match = _SERIAL_RE.search(match.group("rest"))
        serial = serial_match.group(1) if serial_match and serial_match.group(1) else None
        key = (dfu_id, serial.lower() if serial else None)
        if key in seen:
            continue
        seen.add(key)
        devices.append(DfuDevice(dfu_id=dfu_id, platform_id=platform.id, serial=serial))
    return devices


def device_matches(device: DfuDevice, device_id: str) -> bool:
    return device.serial is not None and device.serial.lower() == device_id.lower()
