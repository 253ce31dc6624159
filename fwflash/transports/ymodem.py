"""Serial transport: YModem upload to a device in listening mode."""

from __future__ import annotations

import binascii
import logging
import struct
import time
from pathlib import Path

import serial
import serial.tools.list_ports
import xmodem

from fwflash.core.errors import (
    DeviceSelectionError,
    TransportConnectError,
    TransportSendError,
    TransportTimeoutError,
)
from fwflash.transports.base import ConfirmFn

DEVICE_USB_VENDOR_ID = 0x2B04
LISTENING_BAUDRATE = 9600
READY_MARKER = b"Waiting for the binary file"
LOGGER = logging.getLogger(__name__)


class YModem:
    """YMODEM sender layered over an xmodem1k data phase."""

    CRC_TIMEOUT = 5.0
    NAK_TIMEOUT = 10.0
    MAX_ERRORS = 10

    def __init__(self, getc, putc) -> None:
        self._getc = getc
        self._putc = putc
        self._xmodem = xmodem.XMODEM(getc, putc, mode="xmodem1k")

    def _header_packet(self, payload: bytes) -> bytes:
        frame = payload.ljust(128, b"\x00")
        crc = binascii.crc_hqx(frame, 0)
        return struct.pack("!cBB128sH", xmodem.SOH, 0, 0xFF, frame, crc)

    def send(self, image: Path) -> None:
        size = image.stat().st_size
        header = image.name.encode("utf-8") + b"\x00" + str(size).encode("ascii") + b" "

        with image.open("rb") as stream:
            for _ in range(self.MAX_ERRORS):
                if self._getc(1, self.CRC_TIMEOUT) != xmodem.CRC:
                    continue
                self._putc(self._header_packet(header))
                if self._getc(1, self.NAK_TIMEOUT) == xmodem.ACK:
                    break
            else:
                raise TransportTimeoutError("Device did not acknowledge the YModem header")

            if not self._xmodem.send(stream, quiet=True):
                raise TransportSendError(f"YModem transfer of {image} failed")

            # xmodem has already sent EOT; an empty block 0 ends the batch.
            if self._getc(1, self.NAK_TIMEOUT) != xmodem.CRC:
                LOGGER.debug("Receiver did not request another file after EOT")
                return
            self._putc(self._header_packet(b""))
            self._getc(1, self.NAK_TIMEOUT)


class SerialYModemFlasher:
    def __init__(self, *, confirm: ConfirmFn | None = None, ready_timeout_s: float = 5.0) -> None:
        self.confirm = confirm
        self.ready_timeout_s = ready_timeout_s

    def find_port(self) -> str:
        ports = [p.device for p in serial.tools.list_ports.comports() if p.vid == DEVICE_USB_VENDOR_ID]
        if not ports:
            raise DeviceSelectionError("No serial device found. Connect the device over USB or pass --port.")
        if len(ports) > 1:
            raise DeviceSelectionError(f"Multiple serial devices found: {', '.join(ports)}. Use --port to choose one.")
        return ports[0]

    def flash(self, image: Path, *, port: str | None = None, yes: bool = False) -> None:
        image = Path(image)
        if not image.is_file():
            raise TransportSendError(f"{image} is not a file")
        port = port or self.find_port()

        if not yes and self.confirm is not None:
            if not self.confirm(f"Is the device on {port} in listening mode (blinking blue)?"):
                raise TransportConnectError("Serial flash cancelled")

        try:
            conn = serial.Serial(port, baudrate=LISTENING_BAUDRATE, timeout=0.25)
        except serial.SerialException as exc:
            raise TransportConnectError(f"Could not open serial port {port}: {exc}") from exc

        try:
            conn.reset_input_buffer()
            conn.write(b"f")
            self._wait_ready(conn)

            def getc(size: int, timeout: float = 1) -> bytes | None:
                conn.timeout = timeout
                data = conn.read(size)
                return data or None

            def putc(data: bytes, timeout: float = 1) -> int:
                conn.write_timeout = timeout
                return conn.write(data)

            LOGGER.info("Sending %s over YModem on %s", image, port)
            YModem(getc, putc).send(image)
        except serial.SerialException as exc:
            raise TransportSendError(f"Serial I/O failed on {port}: {exc}") from exc
        finally:
            conn.close()

    def _wait_ready(self, conn: serial.Serial) -> None:
        buffer = b""
        deadline = time.monotonic() + self.ready_timeout_s
        while time.monotonic() < deadline:
            buffer += conn.read(64)
            if READY_MARKER in buffer:
                return
        raise TransportTimeoutError("Device did not enter YModem mode; is it in listening mode?")
