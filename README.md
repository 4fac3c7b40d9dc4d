# n64runtime

Runtime support for statically recompiled Nintendo 64 programs. The package
holds the runtime state that recompiled code works against: main memory
(RDRAM), the RSP's data memory, the cartridge ROM, and save memory that is
mirrored to a file. It also applies BPS patches, validates ROM dumps and
parses version strings.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

## Modules

- `n64runtime.rdram`: `Rdram`, emulated main memory addressed by KSEG0
  addresses (from `0x80000000`). Words are kept in host order, so single
  bytes are reached with the address xored with 3. It has `read_u8`,
  `write_u8`, `read_u32`, `write_u32`, and `read_bytes` / `write_bytes`,
  which work in the guest's big-endian byte order. Accesses outside the
  memory raise `IndexError`.
- `n64runtime.patcher`: `patch_rom(rom, patch_data)` applies a BPS patch and
  returns the patched image as `bytes`. It raises `InvalidPatchFileError` for
  malformed patches and `WrongRomError` when the patch's source size does not
  match the ROM. Both derive from `PatchError`. The three footer checksums are
  read but not verified. `calculate_crc32`, `read_number` and
  `read_signed_number` are available on their own.
- `n64runtime.rsp`: `Dmem`, the RSP's 4 KiB data memory, with byte, half-word
  and word access and DMA to and from an `Rdram`. `RspRunner` runs an
  `RspTask` by looking up its microcode through a callback you supply. It
  copies the task into DMEM at `0xFC0`, loads the task's ucode data, calls the
  microcode, and returns `True` only when the microcode reports
  `RspExitReason.BROKE`. `reciprocals()` and `inverse_square_roots()` build the
  512-entry lookup tables, and `sclamp` / `sclip` saturate or wrap signed
  values.
- `n64runtime.version`: `Version.from_string("1.2.3-beta")` parses
  `major.minor.patch` with an optional suffix that starts with `+` or `-`.
  Each component must fit in 16 bits. Invalid text raises `ValueError`.
  `str(version)` gives the text back.
- `n64runtime.cpu`: `CpuContext` holds the general-purpose and floating-point
  registers. With FR clear, an odd single-precision register is the upper half
  of the even register before it. `cop0_status_write` toggles the FR bit and
  raises `StatusRegisterError` if any other bit changes. `cop0_status_read`
  returns the status register sign-extended. `switch_error` and `do_break`
  raise `SwitchOutOfBoundsError` and `BreakError`. All of these errors derive
  from `RecompError`.
- `n64runtime.roms`: `GameRegistry` keeps `GameEntry` records and validates
  ROM files against them.
  - You pass the hash function in as `rom_hasher`: a callable from `bytes` to
    an integer.
  - `select_rom` pads the ROM, detects its byte order with `check_rom_start`,
    converts it with `byteswap_data`, checks the hash, and stores a good ROM as
    `<game_id>.z64` in the config folder. It returns a `RomValidationError`
    value.
  - `check_all_stored_roms` checks every stored ROM, and `load_stored_rom`
    returns one. Stored ROMs whose hash no longer matches are deleted.
  - `SaveType` says which save memories a game may use.
- `n64runtime.saving`: `SaveFile` is a save buffer mirrored to a file.
  - Writes mark the buffer dirty. After `start()`, a background thread gathers
    bursts of writes and writes the whole buffer out, replacing the file
    atomically.
  - `stop()` ends the thread and flushes. `SaveFile` also works as a context
    manager.
  - `change_file` finishes pending saves and then switches to another file.
  - `save_size` gives the buffer size for a `SaveType`, and `save_file_path`
    builds `<config>/saves/[subfolder/]<name>.bin`.
- `n64runtime.pi`: `CartRom` holds the cartridge image. `PiBus` routes DMA and
  I/O requests:
  - Reads at or above `0x10000000` come from the ROM.
  - Accesses from `0x08000000` go to SRAM through a `SaveFile`, if the save
    type allows SRAM.
  - Other regions are logged and ignored.
  - Writes to ROM, SRAM access the save type does not allow, and misaligned
    transfers raise `PiError`.
  - `start_dma`, `epi_start_dma` and `read_io` return 0. `on_complete` is
    called with the message queue after each finished transfer.

## Example: applying a BPS patch

```python
from n64runtime.patcher import patch_rom, InvalidPatchFileError, WrongRomError

with open("game.z64", "rb") as f:
    rom = f.read()
with open("fix.bps", "rb") as f:
    patch = f.read()

try:
    patched = patch_rom(rom, patch)
except WrongRomError:
    print("This patch is for a different ROM")
except InvalidPatchFileError:
    print("The patch file is damaged")
```

## Example: DMA from the cartridge

```python
from n64runtime.rdram import Rdram
from n64runtime.pi import CartRom, PiBus

rdram = Rdram()
bus = PiBus(CartRom(rom), on_complete=lambda queue: print("done", queue))
bus.start_dma(rdram, queue="mq", dev_addr=0x1000, rdram_address=0x80000400,
              size=0x100, direction=0)
```

## What the package does not do

The package has no section table or overlay handling. It does not track which
code sections are loaded at which addresses, and it does not map addresses to
recompiled functions. It does not start or run a game. It provides no
threads, graphics, audio, input or mod loading. It has no command-line
program. It computes no ROM hash of its own, so the caller supplies one to
`GameRegistry`.

## Running the tests

```
pip install .[test]
pytest
```