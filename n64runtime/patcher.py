"""Applying BPS patches to ROM images."""

from __future__ import annotations

import zlib
from enum import IntEnum

FOOTER_SIZE = 12
MAGIC = b"BPS1"


class PatchError(Exception):
    """A patch could not be applied."""


class InvalidPatchFileError(PatchError):
    """The patch data is malformed."""


class WrongRomError(PatchError):
    """The patch does not belong to the given ROM."""


class PatchAction(IntEnum):
    """Actions encoded in the low two bits of each BPS command."""

    SOURCE_READ = 0
    TARGET_READ = 1
    SOURCE_COPY = 2
    TARGET_COPY = 3


def read_number(data: bytes, offset: int) -> tuple[int, int]:
    """Decode a variable-length number; return it and the offset after it."""
    number = 0
    shift = 1
    while True:
        if offset >= len(data):
            raise InvalidPatchFileError("truncated number in patch")
        byte = data[offset]
        offset += 1
        number += (byte & 0x7F) * shift
        if byte & 0x80:
            return number, offset
        shift <<= 7
        number += shift


def read_signed_number(data: bytes, offset: int) -> tuple[int, int]:
    """Decode a signed variable-length number; return it and the next offset."""
    raw, offset = read_number(data, offset)
    value = raw >> 1
    return (-value if raw & 1 else value), offset


def _read_u32(data: bytes, offset: int) -> tuple[int, int]:
    if offset > len(data) - 4:
        raise InvalidPatchFileError("truncated checksum in patch")
    return int.from_bytes(data[offset:offset + 4], "little"), offset + 4


def calculate_crc32(data: bytes) -> int:
    """Return the standard CRC-32 of ``data``."""
    return zlib.crc32(bytes(data)) & 0xFFFFFFFF


def patch_rom(rom: bytes, patch_data: bytes) -> bytes:
    """Apply a BPS patch to ``rom`` and return the patched image.

    Raises InvalidPatchFileError for malformed patches and WrongRomError when
    the source size does not match the ROM. Checksums are read but not checked.
    """
    rom = bytes(rom)
    patch = bytes(patch_data)
    if len(patch) < 4 or patch[:4] != MAGIC:
        raise InvalidPatchFileError("missing BPS1 header")

    offset = 4
    source_size, offset = read_number(patch, offset)
    _target_size, offset = read_number(patch, offset)
    metadata_size, offset = read_number(patch, offset)

    offset += metadata_size
    if offset >= len(patch):
        raise InvalidPatchFileError("patch ends inside metadata")

    if source_size != len(rom):
        raise WrongRomError("source size does not match the ROM")

    out = bytearray()
    source_offset = 0
    target_offset = 0
    actions_end = len(patch) - FOOTER_SIZE

    while offset < actions_end:
        command, offset = read_number(patch, offset)
        length = (command >> 2) + 1
        action = PatchAction(command & 0b11)

        if action is PatchAction.SOURCE_READ:
            start = len(out)
            if start + length > len(rom):
                raise InvalidPatchFileError("source read past end of ROM")
            out += rom[start:start + length]

        elif action is PatchAction.TARGET_READ:
            if offset + length > len(patch):
                raise InvalidPatchFileError("target read past end of patch")
            out += patch[offset:offset + length]
            offset += length

        elif action is PatchAction.SOURCE_COPY:
            relative, offset = read_signed_number(patch, offset)
            source_offset += relative
            if source_offset < 0 or source_offset + length > len(rom):
                raise InvalidPatchFileError("source copy out of range")
            out += rom[source_offset:source_offset + length]
            source_offset += length

        else:
            relative, offset = read_signed_number(patch, offset)
            target_offset += relative
            if not 0 <= target_offset < len(out):
                raise InvalidPatchFileError("target copy out of range")
            # Byte at a time so that overlapping copies repeat earlier output.
            for _ in range(length):
                out.append(out[target_offset])
                target_offset += 1

    for _ in range(3):
        _checksum, offset = _read_u32(patch, offset)

    if offset != len(patch):
        raise InvalidPatchFileError("trailing data after patch footer")

    return bytes(out)