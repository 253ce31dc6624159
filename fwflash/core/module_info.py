"""Decoder for the module prefix/suffix embedded in firmware images.

The prefix sits at the start of the image and describes where the module
lives and what it is. The suffix sits at the end, just before a big-endian
CRC32 of everything that precedes it.
"""

from __future__ import annotations

import logging
import struct
import zlib
from pathlib import Path

from fwflash.core.errors import ImageParseError
from fwflash.core.model import MODULE_HEADER_SIZE, ImageDescriptor, module_function_from

_PREFIX = struct.Struct("<IIBBHHBBBBHBBH")
_CRC_SIZE = 4
_SUFFIX_SIZE_FIELD = 2
_FW_UNIQUE_ID_SIZE = 32
LOGGER = logging.getLogger(__name__)


def parse_module_bytes(data: bytes, *, path: str = "<memory>") -> ImageDescriptor:
    min_size = MODULE_HEADER_SIZE + _SUFFIX_SIZE_FIELD + _CRC_SIZE
    if len(data) < min_size:
        raise ImageParseError(path, f"file is {len(data)} bytes, expected at least {min_size}")

    (
        start_address,
        end_address,
        _reserved,
        flags,
        version,
        platform_id,
        function,
        index,
        _dep_function,
        _dep_index,
        _dep_version,
        _dep2_function,
        _dep2_index,
        _dep2_version,
    ) = _PREFIX.unpack_from(data, 0)

    crc_stored = struct.unpack(">I", data[-_CRC_SIZE:])[0]
    crc_computed = zlib.crc32(data[:-_CRC_SIZE]) & 0xFFFFFFFF
    suffix_size = struct.unpack("<H", data[-_CRC_SIZE - _SUFFIX_SIZE_FIELD : -_CRC_SIZE])[0]

    unique_id_end = len(data) - _CRC_SIZE - _SUFFIX_SIZE_FIELD
    unique_id_start = unique_id_end - _FW_UNIQUE_ID_SIZE
    fw_unique_id = data[unique_id_start:unique_id_end].hex() if unique_id_start >= MODULE_HEADER_SIZE else ""

    descriptor = ImageDescriptor(
        path=path,
        platform_id=platform_id,
        module_function=module_function_from(function),
        module_index=index,
        module_start_address=start_address,
        module_end_address=end_address,
        module_version=version,
        module_flags=flags,
        crc_valid=crc_stored == crc_computed,
        crc_stored=crc_stored,
        crc_computed=crc_computed,
        suffix_size=suffix_size,
        fw_unique_id=fw_unique_id,
    )
    LOGGER.debug("Parsed %s: %s", path, descriptor)
    return descriptor


def parse_module(path: str | Path) -> ImageDescriptor:
    """Read an image from disk and decode its module descriptor."""
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise ImageParseError(str(path), str(exc)) from exc
    return parse_module_bytes(data, path=str(path))
