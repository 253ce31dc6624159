"""Core data models used across decoder, resolver, service, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from pathlib import Path

UNKNOWN_SUFFIX_SIZE = 0xFFFF
MODULE_HEADER_SIZE = 24
DROP_MODULE_INFO_FLAG = 0x01


class ModuleFunction(IntEnum):
    NONE = 0
    RESOURCE = 1
    BOOTLOADER = 2
    MONO_FIRMWARE = 3
    SYSTEM_PART = 4
    USER_PART = 5
    SETTINGS = 6
    NCP_FIRMWARE = 7
    RADIO_STACK = 8


class FlashMode(str, Enum):
    USB = "usb"
    SERIAL = "serial"
    CLOUD = "cloud"


def format_address(value: int) -> str:
    return f"0x{value:08X}"


@dataclass(frozen=True)
class ImageDescriptor:
    path: str
    platform_id: int
    module_function: ModuleFunction | int
    module_index: int
    module_start_address: int
    module_end_address: int
    module_version: int
    module_flags: int
    crc_valid: bool
    crc_stored: int
    crc_computed: int
    suffix_size: int
    fw_unique_id: str

    @property
    def function_name(self) -> str:
        if isinstance(self.module_function, ModuleFunction):
            return self.module_function.name
        return f"UNKNOWN({self.module_function})"

    @property
    def drop_module_info(self) -> bool:
        return bool(self.module_flags & DROP_MODULE_INFO_FLAG)

    @property
    def verifiable(self) -> bool:
        return self.suffix_size != UNKNOWN_SUFFIX_SIZE


@dataclass(frozen=True)
class SegmentSpec:
    name: str
    address: str


@dataclass(frozen=True)
class PlatformSpec:
    id: str
    name: str
    product_id: int
    dfu_id: str
    segments: dict[str, SegmentSpec]
    known_apps: dict[str, str] = field(default_factory=dict)

    def segment(self, name: str) -> SegmentSpec | None:
        return self.segments.get(name)


@dataclass(frozen=True)
class DfuDevice:
    dfu_id: str
    platform_id: str
    serial: str | None = None


@dataclass(frozen=True)
class Destination:
    segment: str
    address: str


@dataclass(frozen=True)
class FlashPlan:
    segment: str
    address: str
    image: Path
    leave: bool
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class FlashResult:
    mode: FlashMode
    device: str | None
    plan: FlashPlan | None = None
    warnings: tuple[str, ...] = ()


def module_function_from(value: int) -> ModuleFunction | int:
    """Return the ModuleFunction member for ``value``, or the raw value if unknown."""
    try:
        return ModuleFunction(value)
    except ValueError:
        return value
