"""Domain-specific errors for fwflash."""

from __future__ import annotations

from typing import Any


class FwflashError(Exception):
    """Base error for fwflash."""


class UsageError(FwflashError):
    """Raised when neither a device nor an image was supplied."""


class ConfigError(FwflashError):
    """Raised when the settings file cannot be read or parsed."""


class PlatformLoadError(FwflashError):
    """Raised when loading platform table sources fails."""


class PlatformValidationError(FwflashError):
    """Raised when a platform file does not conform to schema or semantics."""


class DeviceLookupError(FwflashError):
    """Raised when a device name cannot be resolved to a device ID."""


class DeviceSelectionError(FwflashError):
    """Raised when device discovery cannot resolve a single target."""


class ToolchainMissingError(FwflashError):
    """Raised when dfu-util is not installed."""


class ImageFileError(FwflashError):
    """Raised when the image path is missing (and not a known app) or is a directory."""


class ImageParseError(FwflashError):
    """Raised when the module descriptor of an image cannot be decoded."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Could not parse {path}: {reason}")


class ImageValidationError(FwflashError):
    """Base for refusals that --force can override.

    Attributes:
        details: Offending descriptor values, for diagnostics.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class CRCInvalidError(ImageValidationError):
    """Raised when the image CRC does not match its contents."""


class PlatformMismatchError(ImageValidationError):
    """Raised when the image was built for a different platform than the device."""


class UnknownModuleFunctionError(ImageValidationError):
    """Raised when the image module function has no known destination."""


class UnknownDestinationError(FwflashError):
    """Raised when no flash address can be resolved for an image."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class WriteError(FwflashError):
    """Raised when writing the image to the device fails."""


class TransportError(FwflashError):
    """Base transport error."""


class TransportConnectError(TransportError):
    """Raised when a port or device cannot be opened."""


class TransportSendError(TransportError):
    """Raised when sending an image fails."""


class TransportTimeoutError(TransportError):
    """Raised when a device stops responding."""


class CloudApiError(TransportError):
    """Raised on cloud API request failures."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
