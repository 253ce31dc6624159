from __future__ import annotations

from pathlib import Path

import pytest

from fwflash.core.errors import PlatformValidationError
from fwflash.core.platform_loader import known_app, load_platforms


def _write_platform(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_load_packaged_platforms() -> None:
    loaded = load_platforms()
    assert {"core", "photon", "p1", "electron", "argon", "boron", "xenon"} <= set(loaded.platforms)
    photon = loaded.platforms["photon"]
    assert photon.product_id == 6
    assert photon.dfu_id == "2b04:d006"
    assert photon.segment("userFirmware").address == "0x080A0000"
    assert photon.segment("radioStack") is None
    assert loaded.warnings == ()


def test_addresses_are_normalized(tmp_path: Path) -> None:
    _write_platform(
        tmp_path / "cfg" / "fwflash" / "platforms" / "custom.yaml",
        """
id: custom
name: Custom
product_id: 200
dfu_id: "1234:ABCD"
segments:
  userFirmware:
    address: "0x8000"
  factoryReset:
    address: 0x10000
""",
    )

    platform = load_platforms().platforms["custom"]
    assert platform.dfu_id == "1234:abcd"
    assert platform.segment("userFirmware").address == "0x00008000"
    assert platform.segment("factoryReset").address == "0x00010000"


def test_invalid_address_rejected(tmp_path: Path) -> None:
    _write_platform(
        tmp_path / "cfg" / "fwflash" / "platforms" / "bad.yaml",
        """
id: bad_address
name: Bad Address
product_id: 201
dfu_id: "1234:0001"
segments:
  userFirmware:
    address: "somewhere"
""",
    )

    with pytest.raises(PlatformValidationError):
        load_platforms()


def test_missing_required_keys_rejected(tmp_path: Path) -> None:
    _write_platform(
        tmp_path / "cfg" / "fwflash" / "platforms" / "missing.yaml",
        """
id: missing
name: Missing
product_id: 202
dfu_id: "1234:0002"
""",
    )

    with pytest.raises(PlatformValidationError):
        load_platforms()


def test_user_platform_override_packaged(tmp_path: Path) -> None:
    _write_platform(
        tmp_path / "cfg" / "fwflash" / "platforms" / "photon.yaml",
        """
id: photon
name: User Photon
product_id: 6
dfu_id: "2b04:d006"
segments:
  userFirmware:
    address: "0x080C0000"
""",
    )

    loaded = load_platforms()
    assert loaded.platforms["photon"].name == "User Photon"
    assert loaded.platforms["photon"].segment("userFirmware").address == "0x080C0000"
    assert any("overrides" in warning for warning in loaded.warnings)


def test_duplicate_yaml_keys_rejected(tmp_path: Path) -> None:
    _write_platform(
        tmp_path / "cfg" / "fwflash" / "platforms" / "dup.yaml",
        """
id: dup
name: Duplicate
product_id: 203
dfu_id: "1234:0003"
segments:
  userFirmware:
    address: "0x1000"
  userFirmware:
    address: "0x2000"
""",
    )

    with pytest.raises(PlatformValidationError):
        load_platforms()


def test_duplicate_dfu_id_rejected(tmp_path: Path) -> None:
    _write_platform(
        tmp_path / "cfg" / "fwflash" / "platforms" / "clone.yaml",
        """
id: photon_clone
name: Photon Clone
product_id: 6
dfu_id: "2b04:d006"
segments:
  userFirmware:
    address: "0x080A0000"
""",
    )

    with pytest.raises(PlatformValidationError) as exc:
        load_platforms()
    assert "2b04:d006" in str(exc.value)


def test_known_app_resolves_from_data_dir(tmp_path: Path) -> None:
    photon = load_platforms().platforms["photon"]
    assert known_app(photon, "tinker") is None
    assert known_app(photon, "not-an-app") is None

    binary = tmp_path / "data" / "fwflash" / "apps" / "photon" / "tinker-photon.bin"
    binary.parent.mkdir(parents=True)
    binary.write_bytes(b"\x00" * 32)

    assert known_app(photon, "tinker") == binary
