"""Firmware flashing over DFU, serial, and the cloud."""

__version__ = "0.1.0"
