from __future__ import annotations

import logging
from typing import List, Tuple

import pytest

from sensors.bus import I2CBus


class StubSMBus:
    def __init__(self) -> None:
        self.reads: List[Tuple[int, int, int]] = []
        self.writes: List[Tuple[int, int, List[int]]] = []
        self.closed = False

    def read_i2c_block_data(self, address: int, register: int, length: int) -> List[int]:
        self.reads.append((address, register, length))
        return list(range(length))

    def write_i2c_block_data(self, address: int, register: int, data: List[int]) -> None:
        self.writes.append((address, register, data))

    def close(self) -> None:
        self.closed = True


def test_reads_and_writes_target_the_device_address() -> None:
    stub = StubSMBus()
    bus = I2CBus("/dev/i2c-1", 0x77, bus=stub)  # type: ignore[arg-type]

    data = bus.read(0xF7, 8)
    bus.write(0xF4, bytes([0x91]))
    bus.close()

    assert data == bytes(range(8))
    assert stub.reads == [(0x77, 0xF7, 8)]
    assert stub.writes == [(0x77, 0xF4, [0x91])]
    assert stub.closed is True


def test_open_missing_device_raises_os_error(tmp_path, caplog) -> None:
    device = tmp_path / "i2c-9"

    with caplog.at_level(logging.INFO), pytest.raises(OSError):
        I2CBus.open(str(device), 0x77)

    assert any(getattr(record, "address", None) == "0x77" for record in caplog.records)
