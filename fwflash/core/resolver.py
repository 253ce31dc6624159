"""Destination resolution: which segment and address an image is written to."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from fwflash.core.errors import (
    CRCInvalidError,
    PlatformMismatchError,
    UnknownDestinationError,
    UnknownModuleFunctionError,
)
from fwflash.core.model import (
    Destination,
    FlashPlan,
    ImageDescriptor,
    ModuleFunction,
    PlatformSpec,
    format_address,
)
from fwflash.core.preprocess import drop_module_info

USER_FIRMWARE = "userFirmware"
FACTORY_RESET = "factoryReset"
RADIO_STACK = "radioStack"
SYSTEM_FIRMWARE_ONE = "systemFirmwareOne"

SYSTEM_MODULE_SEGMENTS = {
    1: "systemFirmwareOne",
    2: "systemFirmwareTwo",
    3: "systemFirmwareThree",
}
LOGGER = logging.getLogger(__name__)


def _warn(warnings: list[str], message: str) -> None:
    LOGGER.warning(message)
    warnings.append(message)


def _validate(
    descriptor: ImageDescriptor,
    platform: PlatformSpec,
    *,
    force: bool,
    warnings: list[str],
) -> None:
    if not descriptor.crc_valid:
        message = (
            f"CRC is invalid for {descriptor.path} "
            f"(stored 0x{descriptor.crc_stored:08x}, computed 0x{descriptor.crc_computed:08x})"
        )
        if not force:
            raise CRCInvalidError(
                f"{message}, use --force to override",
                {"crc_stored": descriptor.crc_stored, "crc_computed": descriptor.crc_computed},
            )
        _warn(warnings, f"{message}; continuing because of --force")

    if descriptor.platform_id != platform.product_id:
        message = (
            f"Incorrect platform id (expected {platform.product_id} for {platform.id}, "
            f"parsed {descriptor.platform_id})"
        )
        if not force:
            raise PlatformMismatchError(
                f"{message}, use --force to override",
                {"expected": platform.product_id, "parsed": descriptor.platform_id},
            )
        _warn(warnings, f"{message}; continuing because of --force")


def _lookup_address(platform: PlatformSpec, segment: str | None) -> str:
    spec = platform.segment(segment) if segment else None
    if spec is None:
        raise UnknownDestinationError(
            f"Unknown destination: platform {platform.id} has no segment '{segment}'",
            {"platform": platform.id, "segment": segment},
        )
    return spec.address


def resolve_destination(
    descriptor: ImageDescriptor | None,
    platform: PlatformSpec,
    *,
    factory: bool = False,
    force: bool = False,
    warnings: list[str] | None = None,
) -> Destination:
    """Pick the segment and absolute address for an image on ``platform``.

    ``descriptor`` is None for known apps, which always go to the default
    segment. Images without suffix metadata skip the CRC and platform checks
    but are still routed by module function.
    """
    if warnings is None:
        warnings = []
    segment: str | None = FACTORY_RESET if factory else USER_FIRMWARE
    address: str | None = None

    if descriptor is not None:
        if descriptor.verifiable:
            _validate(descriptor, platform, force=force, warnings=warnings)
        else:
            _warn(warnings, f"Unable to verify binary info for {descriptor.path}")

        function = descriptor.module_function
        if function is ModuleFunction.MONO_FIRMWARE:
            if platform.segment(SYSTEM_FIRMWARE_ONE) is not None:
                segment = SYSTEM_FIRMWARE_ONE
        elif function is ModuleFunction.SYSTEM_PART:
            segment = SYSTEM_MODULE_SEGMENTS.get(descriptor.module_index)
            if segment is None:
                raise UnknownDestinationError(
                    f"Unknown destination: no segment for system module index {descriptor.module_index}",
                    {"module_index": descriptor.module_index},
                )
            address = format_address(descriptor.module_start_address)
        elif function is ModuleFunction.USER_PART:
            pass
        elif function is ModuleFunction.RADIO_STACK:
            segment = RADIO_STACK
            address = format_address(descriptor.module_start_address)
        else:
            message = f"Unknown module function {descriptor.function_name}"
            if not force:
                raise UnknownModuleFunctionError(
                    f"{message}, use --force to override",
                    {"module_function": int(function)},
                )
            _warn(warnings, f"{message}; flashing to {segment} because of --force")

    if address is None:
        address = _lookup_address(platform, segment)

    if not address or segment is None:
        raise UnknownDestinationError("Unknown destination", {"segment": segment, "address": address})
    return Destination(segment=segment, address=address)


@contextmanager
def plan_flash(
    image: Path,
    descriptor: ImageDescriptor | None,
    platform: PlatformSpec,
    *,
    factory: bool = False,
    force: bool = False,
    leave: bool | None = None,
) -> Iterator[FlashPlan]:
    """Resolve a FlashPlan whose image stays readable until the context exits."""
    warnings: list[str] = []
    destination = resolve_destination(
        descriptor,
        platform,
        factory=factory,
        force=force,
        warnings=warnings,
    )
    if leave is None:
        leave = destination.segment == USER_FIRMWARE

    def _plan(path: Path) -> FlashPlan:
        return FlashPlan(
            segment=destination.segment,
            address=destination.address,
            image=path,
            leave=leave,
            warnings=tuple(warnings),
        )

    if descriptor is not None and descriptor.drop_module_info:
        with drop_module_info(image) as stripped:
            yield _plan(stripped)
    else:
        yield _plan(image)
