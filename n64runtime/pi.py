"""Peripheral interface: cartridge ROM access and DMA to ROM and SRAM."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .rdram import Rdram
from .roms import SaveType
from .saving import SaveFile

logger = logging.getLogger(__name__)

ROM_BASE = 0x10000000
SRAM_BASE = 0x08000000
DRIVE_BASE = 0x06000000

DIRECTION_READ = 0
DIRECTION_WRITE = 1

_MASK32 = 0xFFFFFFFF


def k1_to_phys(addr: int) -> int:
    """Convert a KSEG1 address to a physical address."""
    return addr & 0x1FFFFFFF


def phys_to_k1(addr: int) -> int:
    """Convert a physical address to a KSEG1 address."""
    return (addr | 0xA0000000) & _MASK32


class PiError(Exception):
    """A peripheral interface transfer cannot be performed."""


@dataclass
class PiHandle:
    """A handle describing a device on the peripheral bus."""

    type: int
    base_address: int
    domain: int = 0


class CartRom:
    """The cartridge ROM image, addressed by physical address."""

    def __init__(self, contents: bytes = b"") -> None:
        self.contents = bytes(contents)

    def is_loaded(self) -> bool:
        """Whether a ROM image has been set."""
        return bool(self.contents)

    def set_contents(self, contents: bytes) -> None:
        """Replace the ROM image."""
        self.contents = bytes(contents)

    def _slice(self, physical_addr: int, count: int) -> bytes:
        start = physical_addr - ROM_BASE
        if start < 0 or count < 0 or start + count > len(self.contents):
            raise PiError(
                f"ROM read of 0x{count:X} bytes at 0x{physical_addr:08X} is outside the ROM"
            )
        return self.contents[start:start + count]

    def read_into(self, rdram: Rdram, ram_address: int, physical_addr: int, num_bytes: int) -> None:
        """DMA ``num_bytes`` of ROM at ``physical_addr`` into RDRAM."""
        if physical_addr & 0x1:
            raise PiError("Only PI DMA from aligned ROM addresses is currently supported")
        if ram_address & 0x7:
            raise PiError("Only PI DMA to aligned RDRAM addresses is currently supported")
        rdram.write_bytes(ram_address, self._slice(physical_addr, num_bytes))

    def pio_read(self, rdram: Rdram, ram_address: int, physical_addr: int) -> None:
        """Copy one 4-byte word of ROM into RDRAM."""
        if physical_addr & 0x3:
            raise PiError("PIO not 4-byte aligned in device, currently unsupported")
        if ram_address & 0x3:
            raise PiError("PIO not 4-byte aligned in RDRAM, currently unsupported")
        rdram.write_bytes(ram_address, self._slice(physical_addr, 4))


class PiBus:
    """Routes PI DMA and I/O requests to the cartridge ROM or the save memory.

    ``on_complete`` is called with the message queue of each finished transfer.
    """

    def __init__(
        self,
        rom: CartRom,
        save_file: Optional[SaveFile] = None,
        save_type: SaveType = SaveType.NONE,
        on_complete: Optional[Callable[[Any], None]] = None,
    ) -> None:
        self.rom = rom
        self.save_file = save_file
        self.save_type = save_type
        self.on_complete = on_complete

    def cart_rom_init(self) -> PiHandle:
        """Handle for the cartridge ROM."""
        return PiHandle(type=0, base_address=phys_to_k1(ROM_BASE), domain=0)

    def drive_rom_init(self) -> PiHandle:
        """Handle for the disk drive ROM."""
        return PiHandle(type=1, base_address=phys_to_k1(DRIVE_BASE), domain=0)

    def _complete(self, queue: Any) -> None:
        if self.on_complete is not None:
            self.on_complete(queue)

    def _sram(self) -> SaveFile:
        if not self.save_type.sram_allowed():
            raise PiError("Attempted to use SRAM saving with other save type")
        if self.save_file is None:
            raise PiError("SRAM access with no save file")
        return self.save_file

    def do_dma(
        self,
        rdram: Rdram,
        queue: Any,
        rdram_address: int,
        physical_addr: int,
        size: int,
        direction: int,
    ) -> None:
        """Transfer between RDRAM and the device at ``physical_addr``.

        Direction 0 reads from the device, anything else writes to it.
        """
        if direction == DIRECTION_READ:
            if physical_addr >= ROM_BASE:
                self.rom.read_into(rdram, rdram_address, physical_addr, size)
                self._complete(queue)
            elif physical_addr >= SRAM_BASE:
                self._sram().read_into_rdram(rdram, rdram_address, physical_addr - SRAM_BASE, size)
                self._complete(queue)
            else:
                logger.warning(
                    "PI DMA read from unknown region, phys address 0x%08X", physical_addr
                )
        else:
            if physical_addr >= ROM_BASE:
                raise PiError("ROM DMA write unimplemented")
            if physical_addr >= SRAM_BASE:
                self._sram().write_from_rdram(rdram, rdram_address, physical_addr - SRAM_BASE, size)
                self._complete(queue)
            else:
                logger.warning(
                    "PI DMA write to unknown region, phys address 0x%08X", physical_addr
                )

    def start_dma(
        self,
        rdram: Rdram,
        queue: Any,
        dev_addr: int,
        rdram_address: int,
        size: int,
        direction: int,
    ) -> int:
        """Start a DMA with a cartridge-relative device address; returns 0."""
        device = (dev_addr | ROM_BASE) & _MASK32
        physical = k1_to_phys(device)
        logger.debug(
            "[pi] DMA from 0x%08X into 0x%08X of size 0x%08X", device, rdram_address, size
        )
        self.do_dma(rdram, queue, rdram_address, physical, size, direction)
        return 0

    def epi_start_dma(
        self,
        rdram: Rdram,
        handle: PiHandle,
        queue: Any,
        dev_addr: int,
        rdram_address: int,
        size: int,
        direction: int,
    ) -> int:
        """Start a DMA with a device address relative to ``handle``; returns 0."""
        device = (handle.base_address | dev_addr) & _MASK32
        physical = k1_to_phys(device)
        logger.debug(
            "[pi] DMA from 0x%08X into 0x%08X of size 0x%08X", device, rdram_address, size
        )
        self.do_dma(rdram, queue, rdram_address, physical, size, direction)
        return 0

    def read_io(self, rdram: Rdram, handle: PiHandle, dev_addr: int, rdram_address: int) -> int:
        """Read one word from the device through ``handle``; returns 0."""
        physical = k1_to_phys((handle.base_address | dev_addr) & _MASK32)
        if physical > ROM_BASE:
            self.rom.pio_read(rdram, rdram_address, physical)
        else:
            raise PiError("SRAM ReadIo unimplemented")
        return 0