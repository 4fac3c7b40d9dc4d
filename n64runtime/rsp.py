"""RSP data memory, vector-unit helpers and execution of recompiled microcode."""

from __future__ import annotations

import logging
from dataclasses import astuple, dataclass
from enum import IntEnum
from functools import lru_cache
from math import isqrt
from typing import Callable, Optional

from .rdram import Rdram

logger = logging.getLogger(__name__)

DMEM_SIZE = 0x1000
TASK_DMEM_ADDR = 0xFC0
UCODE_DATA_LENGTH = 0xF80 - 1
_DMEM_MASK = DMEM_SIZE - 1
_KSEG0_BASE = 0x80000000
_DRAM_ALIGN_MASK = 0xFFFFF8


class RspExitReason(IntEnum):
    """Why a recompiled microcode function returned."""

    INVALID = 0
    BROKE = 1
    IMEM_OVERRUN = 2
    UNHANDLED_JUMP_TARGET = 3
    UNSUPPORTED = 4
    SWAP_OVERLAY = 5
    UNHANDLED_RESUME_TARGET = 6


class RspError(Exception):
    """The RSP was asked to do something it cannot."""


@dataclass
class RspTask:
    """A task handed to the RSP, laid out as sixteen 32-bit words."""

    type: int = 0
    flags: int = 0
    ucode_boot: int = 0
    ucode_boot_size: int = 0
    ucode: int = 0
    ucode_size: int = 0
    ucode_data: int = 0
    ucode_data_size: int = 0
    dram_stack: int = 0
    dram_stack_size: int = 0
    output_buff: int = 0
    output_buff_size: int = 0
    data_ptr: int = 0
    data_size: int = 0
    yield_data_ptr: int = 0
    yield_data_size: int = 0


Microcode = Callable[[Rdram, int], RspExitReason]


def sclamp(value: int, bits: int) -> int:
    """Saturate ``value`` to a signed integer of ``bits`` bits."""
    low = -(1 << (bits - 1))
    high = (1 << (bits - 1)) - 1
    return max(low, min(high, value))


def sclip(value: int, bits: int) -> int:
    """Wrap ``value`` to a signed integer of ``bits`` bits."""
    sign = 1 << (bits - 1)
    mask = (1 << bits) - 1
    return ((value & mask) ^ sign) - sign


@lru_cache(maxsize=None)
def reciprocals() -> tuple[int, ...]:
    """The 512-entry reciprocal lookup table used by VRCP."""
    table = [0xFFFF]
    for index in range(1, 512):
        divisor = index + 512
        quotient = (1 << 34) // divisor
        table.append(((quotient + 1) >> 8) & 0xFFFF)
    return tuple(table)


@lru_cache(maxsize=None)
def inverse_square_roots() -> tuple[int, ...]:
    """The 512-entry inverse square root lookup table used by VRSQ."""
    table = []
    for index in range(512):
        a = (index + 512) >> (1 if index % 2 == 1 else 0)
        # Largest b >= 2**17 with a * (b + 1)**2 < 2**44 does not hold for b + 1.
        b = max(1 << 17, isqrt(((1 << 44) - 1) // a) - 1)
        table.append((b >> 1) & 0xFFFF)
    return tuple(table)


class Dmem:
    """The RSP's 4 KiB data memory, stored with 32-bit words in host order."""

    def __init__(self) -> None:
        self.data = bytearray(DMEM_SIZE)

    @staticmethod
    def _index(offset: int, address: int) -> int:
        return ((offset + address) ^ 3) & _DMEM_MASK

    def read_u8(self, offset: int, address: int) -> int:
        """Read an unsigned byte; addresses wrap within DMEM."""
        return self.data[self._index(offset, address)]

    def read_s8(self, offset: int, address: int) -> int:
        """Read a signed byte."""
        value = self.read_u8(offset, address)
        return value - 0x100 if value & 0x80 else value

    def write_u8(self, offset: int, address: int, value: int) -> None:
        """Write one byte."""
        self.data[self._index(offset, address)] = value & 0xFF

    def load_word(self, offset: int, address: int) -> int:
        """Read a big-endian 32-bit word, one byte at a time."""
        value = 0
        for i in range(4):
            value = (value << 8) | self.read_u8(offset + i, address)
        return value

    def store_word(self, offset: int, address: int, value: int) -> None:
        """Write a big-endian 32-bit word, one byte at a time."""
        for i, byte in enumerate((value & 0xFFFFFFFF).to_bytes(4, "big")):
            self.write_u8(offset + i, address, byte)

    def load_half_unsigned(self, offset: int, address: int) -> int:
        """Read an unsigned big-endian 16-bit value."""
        return (self.read_u8(offset, address) << 8) | self.read_u8(offset + 1, address)

    def load_half(self, offset: int, address: int) -> int:
        """Read a signed big-endian 16-bit value."""
        value = self.load_half_unsigned(offset, address)
        return value - 0x10000 if value & 0x8000 else value

    def store_half(self, offset: int, address: int, value: int) -> None:
        """Write the low 16 bits of ``value`` big-endian."""
        self.write_u8(offset, address, (value >> 8) & 0xFF)
        self.write_u8(offset + 1, address, value & 0xFF)

    @staticmethod
    def _check_range(dmem_addr: int, count: int) -> None:
        if dmem_addr + count > DMEM_SIZE:
            raise RspError(
                f"DMA of 0x{count:X} bytes at DMEM 0x{dmem_addr:X} runs past the end of DMEM"
            )

    def dma_from_rdram(self, rdram: Rdram, dmem_addr: int, dram_addr: int, length: int) -> None:
        """Copy ``length + 1`` bytes from RDRAM into DMEM; ``dram_addr`` is 8-byte aligned."""
        count = length + 1
        dram_addr &= _DRAM_ALIGN_MASK
        self._check_range(dmem_addr, count)
        for i in range(count):
            self.write_u8(i, dmem_addr, rdram.read_u8(0, dram_addr + i + _KSEG0_BASE))

    def dma_to_rdram(self, rdram: Rdram, dmem_addr: int, dram_addr: int, length: int) -> None:
        """Copy ``length + 1`` bytes from DMEM into RDRAM; ``dram_addr`` is 8-byte aligned."""
        count = length + 1
        dram_addr &= _DRAM_ALIGN_MASK
        self._check_range(dmem_addr, count)
        for i in range(count):
            rdram.write_u8(0, dram_addr + i + _KSEG0_BASE, self.read_u8(i, dmem_addr))


class RspRunner:
    """Runs RSP tasks by dispatching to recompiled microcode functions."""

    def __init__(self, get_microcode: Optional[Callable[[RspTask], Optional[Microcode]]]) -> None:
        self.get_microcode = get_microcode
        self.dmem = Dmem()

    def run_task(self, rdram: Rdram, task: RspTask) -> bool:
        """Load ``task`` into DMEM and run its microcode; True if it exited by break."""
        if self.get_microcode is None:
            raise RspError("No RSP microcode lookup was provided")
        ucode = self.get_microcode(task)
        if ucode is None:
            logger.error("No registered RSP ucode for %d (returned None)", task.type)
            return False

        for i, word in enumerate(astuple(task)):
            self.dmem.store_word(TASK_DMEM_ADDR + 4 * i, 0, word)

        self.dmem.dma_from_rdram(rdram, 0, task.ucode_data, UCODE_DATA_LENGTH)

        exit_reason = ucode(rdram, task.ucode)
        if exit_reason != RspExitReason.BROKE:
            logger.error(
                "RSP ucode %d exited unexpectedly. exit_reason: %d", task.type, int(exit_reason)
            )
            return False
        return True