"""Emulated main memory stored as byte-swapped 32-bit words."""

from __future__ import annotations

KSEG0_BASE = 0x80000000
DEFAULT_SIZE = 0x800000


class Rdram:
    """Main memory addressed by KSEG0 virtual addresses.

    Each 32-bit word is kept in host (little-endian) order, so single bytes are
    reached by xoring the address with 3 and whole words load directly.
    """

    def __init__(self, size: int = DEFAULT_SIZE) -> None:
        if size <= 0 or size % 4:
            raise ValueError("RDRAM size must be a positive multiple of 4")
        self.data = bytearray(size)

    def __len__(self) -> int:
        return len(self.data)

    @staticmethod
    def _address(offset: int, address: int) -> int:
        return (offset + address) & 0xFFFFFFFF

    def _byte_index(self, offset: int, address: int) -> int:
        index = (self._address(offset, address) ^ 3) - KSEG0_BASE
        if not 0 <= index < len(self.data):
            raise IndexError(f"RDRAM byte access out of range: 0x{self._address(offset, address):08X}")
        return index

    def _word_index(self, offset: int, address: int) -> int:
        index = self._address(offset, address) - KSEG0_BASE
        if not 0 <= index <= len(self.data) - 4:
            raise IndexError(f"RDRAM word access out of range: 0x{self._address(offset, address):08X}")
        return index

    def read_u8(self, offset: int, address: int) -> int:
        """Read one byte at ``offset + address``."""
        return self.data[self._byte_index(offset, address)]

    def write_u8(self, offset: int, address: int, value: int) -> None:
        """Write one byte at ``offset + address``."""
        self.data[self._byte_index(offset, address)] = value & 0xFF

    def read_u32(self, offset: int, address: int) -> int:
        """Read the unsigned 32-bit word at ``offset + address``."""
        index = self._word_index(offset, address)
        return int.from_bytes(self.data[index:index + 4], "little")

    def write_u32(self, offset: int, address: int, value: int) -> None:
        """Write a 32-bit word at ``offset + address``."""
        index = self._word_index(offset, address)
        self.data[index:index + 4] = (value & 0xFFFFFFFF).to_bytes(4, "little")

    def read_bytes(self, address: int, count: int) -> bytes:
        """Read ``count`` bytes in the guest's big-endian order."""
        return bytes(self.read_u8(i, address) for i in range(count))

    def write_bytes(self, address: int, data: bytes) -> None:
        """Write ``data`` in the guest's big-endian order."""
        for i, value in enumerate(data):
            self.write_u8(i, address, value)