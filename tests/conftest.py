from __future__ import annotations

import struct
import zlib
from collections.abc import Callable
from pathlib import Path

import pytest

from fwflash.core.model import ModuleFunction


def build_image(
    *,
    platform_id: int = 6,
    function: int = ModuleFunction.USER_PART,
    index: int = 1,
    start: int = 0x080A0000,
    flags: int = 0,
    body: bytes = b"\xab" * 64,
    suffix_size: int = 36,
    corrupt_crc: bool = False,
) -> bytes:
    prefix = struct.pack(
        "<IIBBHHBBBBHBBH",
        start,
        start + 24 + len(body) + 36,
        0,
        flags,
        1,
        platform_id,
        function,
        index,
        0,
        0,
        0,
        0,
        0,
        0,
    )
    data = prefix + body + b"\x00\x00" + bytes(range(32)) + struct.pack("<H", suffix_size)
    crc = zlib.crc32(data) & 0xFFFFFFFF
    if corrupt_crc:
        crc ^= 0xFFFFFFFF
    return data + struct.pack(">I", crc)


@pytest.fixture
def write_image(tmp_path: Path) -> Callable[..., Path]:
    def _write(name: str = "firmware.bin", **kwargs) -> Path:
        path = tmp_path / name
        path.write_bytes(build_image(**kwargs))
        return path

    return _write


@pytest.fixture(autouse=True)
def isolated_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("FWFLASH_API_URL", raising=False)
    monkeypatch.delenv("FWFLASH_ACCESS_TOKEN", raising=False)
