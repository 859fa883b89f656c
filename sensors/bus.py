from __future__ import annotations

import logging
from typing import Optional

from smbus2 import SMBus

logger = logging.getLogger(__name__)


class I2CBus:
    """Register level access to a single device on an I2C bus."""

    def __init__(self, device_path: str, address: int, bus: Optional[SMBus] = None) -> None:
        self.device_path = device_path
        self.address = address
        self._bus = bus if bus is not None else SMBus(device_path)

    @classmethod
    def open(cls, device_path: str, address: int) -> "I2CBus":
        """Open ``device_path``; raises ``OSError`` when the device file is unusable."""

        logger.info(
            "Connecting to i2c bus",
            extra={"device_path": device_path, "address": f"0x{address:02x}"},
        )
        return cls(device_path=device_path, address=address)

    def read(self, register: int, length: int) -> bytes:
        return bytes(self._bus.read_i2c_block_data(self.address, register, length))

    def write(self, register: int, data: bytes) -> None:
        self._bus.write_i2c_block_data(self.address, register, list(data))

    def close(self) -> None:
        self._bus.close()
