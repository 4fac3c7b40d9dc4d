"""Game registration, ROM byte-order detection and ROM validation."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Union

logger = logging.getLogger(__name__)

FIRST_ROM_BYTES = bytes((0x80, 0x37, 0x12, 0x40))
INTERNAL_NAME_OFFSET = 0x20
_NOT_YET_NAME_LENGTH = 19

RomHasher = Callable[[bytes], int]
PathLike = Union[str, Path]


class ByteswapType(Enum):
    """Byte order in which a ROM image was dumped."""

    NOT_BYTESWAPPED = "not_byteswapped"
    BYTESWAPPED4 = "byteswapped4"
    BYTESWAPPED2 = "byteswapped2"
    INVALID = "invalid"


class RomValidationError(Enum):
    """Outcome of checking a ROM file against a registered game."""

    GOOD = "good"
    FAILED_TO_OPEN = "failed_to_open"
    NOT_A_ROM = "not_a_rom"
    INCORRECT_ROM = "incorrect_rom"
    NOT_YET = "not_yet"
    INCORRECT_VERSION = "incorrect_version"
    OTHER_ERROR = "other_error"


class SaveType(Enum):
    """Kind of save storage a game uses."""

    NONE = "none"
    EEP4K = "eep4k"
    EEP16K = "eep16k"
    SRAM = "sram"
    FLASHRAM = "flashram"
    ALLOW_ALL = "allow_all"

    def eeprom_allowed(self) -> bool:
        """Whether EEPROM saving may be used."""
        return self in (SaveType.EEP4K, SaveType.EEP16K, SaveType.ALLOW_ALL)

    def sram_allowed(self) -> bool:
        """Whether SRAM saving may be used."""
        return self in (SaveType.SRAM, SaveType.ALLOW_ALL)

    def flashram_allowed(self) -> bool:
        """Whether FlashRAM saving may be used."""
        return self in (SaveType.FLASHRAM, SaveType.ALLOW_ALL)


@dataclass(frozen=True)
class GameEntry:
    """A game the runtime can start, identified by the hash of its ROM."""

    game_id: str
    rom_hash: int
    internal_name: str
    mod_game_id: str = ""
    save_type: SaveType = SaveType.NONE
    is_enabled: bool = False
    entrypoint_address: int = 0
    entrypoint: Optional[Callable[..., Any]] = None
    thread_create_callback: Optional[Callable[..., Any]] = None
    on_init_callback: Optional[Callable[..., Any]] = None

    def stored_filename(self) -> str:
        """Name of the file the validated ROM is kept under."""
        return f"{self.game_id}.z64"


def check_rom_start(data: bytes) -> ByteswapType:
    """Detect the byte order of a ROM from its first four bytes."""
    if len(data) < 4:
        return ByteswapType.INVALID
    head = bytes(data[:4])
    orders = (
        (ByteswapType.NOT_BYTESWAPPED, (0, 1, 2, 3)),
        (ByteswapType.BYTESWAPPED4, (3, 2, 1, 0)),
        (ByteswapType.BYTESWAPPED2, (1, 0, 3, 2)),
    )
    for swap_type, order in orders:
        if head == bytes(FIRST_ROM_BYTES[i] for i in order):
            return swap_type
    return ByteswapType.INVALID


def byteswap_data(data: bytes, index_xor: int) -> bytes:
    """Move each byte of every 4-byte group to its index xored with ``index_xor``."""
    if len(data) % 4:
        raise ValueError("data length must be a multiple of 4")
    if not 0 <= index_xor <= 3:
        raise ValueError("index_xor must be between 0 and 3")
    out = bytearray(len(data))
    for k in range(4):
        out[k ^ index_xor::4] = data[k::4]
    return bytes(out)


def _read_file(path: PathLike) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError:
        return b""


class GameRegistry:
    """Registered games and the validated ROMs stored in the config folder."""

    def __init__(self, config_path: PathLike, rom_hasher: RomHasher) -> None:
        self.config_path = Path(config_path)
        self._hasher = rom_hasher
        self._games: dict[str, GameEntry] = {}
        self._valid: set[str] = set()
        self._lock = threading.Lock()

    def __contains__(self, game_id: object) -> bool:
        return game_id in self._games

    def get(self, game_id: str) -> Optional[GameEntry]:
        """The entry registered under ``game_id``, or None."""
        return self._games.get(game_id)

    def register_game(self, entry: GameEntry) -> bool:
        """Register a game; an existing entry with the same id is kept."""
        with self._lock:
            self._games.setdefault(entry.game_id, entry)
        return True

    def _stored_path(self, entry: GameEntry) -> Path:
        return self.config_path / entry.stored_filename()

    def _hash_matches(self, data: bytes, expected: int) -> bool:
        return self._hasher(bytes(data)) == expected

    def _read_checked_stored_rom(self, entry: GameEntry) -> Optional[bytes]:
        path = self._stored_path(entry)
        data = _read_file(path)
        if not self._hash_matches(data, entry.rom_hash):
            path.unlink(missing_ok=True)
            return None
        return data

    def check_all_stored_roms(self) -> None:
        """Mark games whose stored ROM is intact; delete stored ROMs that are not."""
        for game_id, entry in list(self._games.items()):
            if self._read_checked_stored_rom(entry) is not None:
                self._valid.add(game_id)

    def is_rom_valid(self, game_id: str) -> bool:
        """Whether the last check found a good stored ROM for ``game_id``."""
        return game_id in self._valid

    def load_stored_rom(self, game_id: str) -> Optional[bytes]:
        """Return the stored ROM for ``game_id`` if its hash still matches."""
        entry = self._games.get(game_id)
        if entry is None:
            return None
        return self._read_checked_stored_rom(entry)

    def select_rom(self, rom_path: PathLike, game_id: str) -> RomValidationError:
        """Validate a ROM file for ``game_id`` and store it in native byte order."""
        entry = self._games.get(game_id)
        if entry is None:
            return RomValidationError.OTHER_ERROR

        data = _read_file(rom_path)
        if not data:
            return RomValidationError.FAILED_TO_OPEN

        data += bytes(-len(data) % 4)

        swap_type = check_rom_start(data)
        if swap_type is ByteswapType.INVALID:
            return RomValidationError.NOT_A_ROM
        if swap_type is ByteswapType.BYTESWAPPED2:
            data = byteswap_data(data, 1)
        elif swap_type is ByteswapType.BYTESWAPPED4:
            data = byteswap_data(data, 3)

        if not self._hash_matches(data, entry.rom_hash):
            name = entry.internal_name.encode("latin-1")
            start = INTERNAL_NAME_OFFSET
            if data[start:start + len(name)] == name:
                return RomValidationError.INCORRECT_VERSION
            if entry.is_enabled and data[start:start + _NOT_YET_NAME_LENGTH] == name:
                return RomValidationError.NOT_YET
            return RomValidationError.INCORRECT_ROM

        try:
            path = self._stored_path(entry)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            logger.warning("Failed to store ROM for %s: %s", game_id, exc)

        return RomValidationError.GOOD