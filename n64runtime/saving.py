"""Save memory backed by a file and written out by a background thread."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Optional, Union

from .rdram import Rdram
from .roms import SaveType

logger = logging.getLogger(__name__)

SAVE_FOLDER = "saves"
_WAIT_SECONDS = 0.01
_MAX_COALESCED_WRITES = 128
_SWAP_POLL_SECONDS = 0.05

_SAVE_SIZES = {
    SaveType.ALLOW_ALL: 0x20000,
    SaveType.FLASHRAM: 0x20000,
    SaveType.SRAM: 0x8000,
    SaveType.EEP16K: 0x800,
    SaveType.EEP4K: 0x200,
    SaveType.NONE: 0,
}

PathLike = Union[str, Path]


def save_size(save_type: SaveType) -> int:
    """Size in bytes of the save memory for ``save_type``."""
    return _SAVE_SIZES[SaveType(save_type)]


def save_file_path(config_path: PathLike, subfolder: str, name: str) -> Path:
    """Path of a save file inside the config folder's save directory."""
    folder = Path(config_path) / SAVE_FOLDER
    if subfolder:
        folder = folder / subfolder
    return folder / f"{name}.bin"


class SaveFile:
    """An in-memory save buffer mirrored to a file.

    Writes mark the buffer dirty and wake the saving thread, which lets bursts
    of writes coalesce before writing the whole buffer out.
    """

    def __init__(self, path: PathLike, size: int) -> None:
        if size < 0:
            raise ValueError("save size must not be negative")
        self.path = Path(path)
        self._buffer = bytearray(size)
        self._lock = threading.Lock()
        self._dirty = False
        self._writes = threading.Semaphore(0)
        self._swap_pending = threading.Semaphore(0)
        self._swap_ready = threading.Semaphore(0)
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def __len__(self) -> int:
        return len(self._buffer)

    def __enter__(self) -> "SaveFile":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def _check_range(self, offset: int, count: int) -> None:
        if offset < 0 or count < 0 or offset + count > len(self._buffer):
            raise ValueError(
                f"save access of {count} bytes at offset 0x{offset:X} is out of range"
            )

    def load(self) -> None:
        """Read the save file into the buffer, or zero the buffer if it cannot be read."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            contents = self.path.read_bytes()
        except OSError:
            contents = b""
        with self._lock:
            size = len(self._buffer)
            count = min(len(contents), size)
            self._buffer[:] = contents[:count] + bytes(size - count)
            self._dirty = False

    def flush(self) -> None:
        """Write the whole buffer to the save file, replacing it atomically."""
        with self._lock:
            data = bytes(self._buffer)
            path = self.path
            self._dirty = False
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp = path.with_name(path.name + ".tmp")
            temp.write_bytes(data)
            os.replace(temp, path)
        except OSError:
            self._dirty = True
            raise

    def _flush_if_dirty(self) -> None:
        if not self._dirty:
            return
        try:
            self.flush()
        except OSError as exc:
            logger.error(
                "Failed to write to the save file %s: %s. Check your file permissions.",
                self.path,
                exc,
            )

    def write(self, offset: int, data: bytes) -> None:
        """Copy ``data`` into the buffer at ``offset``."""
        self._check_range(offset, len(data))
        with self._lock:
            self._buffer[offset:offset + len(data)] = data
            self._dirty = True
        self._writes.release()

    def write_from_rdram(self, rdram: Rdram, rdram_address: int, offset: int, count: int) -> None:
        """Copy ``count`` bytes from RDRAM into the buffer at ``offset``."""
        self._check_range(offset, count)
        self.write(offset, rdram.read_bytes(rdram_address, count))

    def read_into_rdram(self, rdram: Rdram, rdram_address: int, offset: int, count: int) -> None:
        """Copy ``count`` bytes from the buffer at ``offset`` into RDRAM."""
        rdram.write_bytes(rdram_address, self.read(offset, count))

    def read(self, offset: int, count: int) -> bytes:
        """Return ``count`` bytes of the buffer starting at ``offset``."""
        self._check_range(offset, count)
        with self._lock:
            return bytes(self._buffer[offset:offset + count])

    def clear(self, start: int, size: int, value: int) -> None:
        """Fill ``size`` bytes from ``start`` with ``value``."""
        self._check_range(start, size)
        with self._lock:
            self._buffer[start:start + size] = bytes((value & 0xFF,)) * size
            self._dirty = True
        self._writes.release()

    def _run(self) -> None:
        while not self._stop_event.is_set():
            count = 0
            while self._writes.acquire(timeout=_WAIT_SECONDS) and count < _MAX_COALESCED_WRITES:
                count += 1
            self._flush_if_dirty()
            if self._swap_pending.acquire(blocking=False):
                self._swap_ready.release()

    def start(self) -> None:
        """Start the background saving thread."""
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("saving thread already running")
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="Saving Thread", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the saving thread and write out anything still pending."""
        if self._thread is not None:
            self._stop_event.set()
            self._thread.join()
            self._thread = None
        if self._dirty:
            self.flush()

    def change_file(self, path: PathLike) -> None:
        """Finish pending saves to the current file, then switch to and load ``path``."""
        thread = self._thread
        if thread is not None and thread.is_alive():
            self._swap_pending.release()
            while not self._swap_ready.acquire(timeout=_SWAP_POLL_SECONDS):
                if not thread.is_alive():
                    self._swap_pending.acquire(blocking=False)
                    break
        if self._dirty:
            self.flush()
        with self._lock:
            self.path = Path(path)
        self.load()