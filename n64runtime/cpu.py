"""Recompiled CPU register context and its coprocessor 0 status register."""

from __future__ import annotations

from dataclasses import dataclass, field

FR_BIT = 0x04000000

_MASK32 = 0xFFFFFFFF


def _s32(value: int) -> int:
    value &= _MASK32
    return value - 0x100000000 if value & 0x80000000 else value


class RecompError(Exception):
    """Recompiled code reached a state the runtime cannot handle."""


class StatusRegisterError(RecompError):
    """Status register bits other than FR were changed."""

    def __init__(self, changed: int) -> None:
        super().__init__(f"Unhandled status register bits changed: 0x{changed:08X}")
        self.changed = changed


class SwitchOutOfBoundsError(RecompError):
    """A jump table was indexed past its end."""

    def __init__(self, func: str, vram: int, jtbl: int) -> None:
        super().__init__(
            f"Switch-case out of bounds in {func} at 0x{vram & _MASK32:08X} "
            f"for jump table at 0x{jtbl & _MASK32:08X}"
        )
        self.func = func
        self.vram = vram
        self.jtbl = jtbl


class BreakError(RecompError):
    """A break instruction was executed."""

    def __init__(self, vram: int) -> None:
        super().__init__(f"Encountered break at original vram 0x{vram & _MASK32:08X}")
        self.vram = vram


@dataclass
class CpuContext:
    """General and floating-point registers plus the status register.

    With FR clear, an odd single-precision register is the upper half of the
    even register before it; with FR set every register stands on its own.
    """

    gpr: list[int] = field(default_factory=lambda: [0] * 32)
    fpr: list[int] = field(default_factory=lambda: [0] * 32)
    status_reg: int = 0
    mips3_float_mode: bool = False

    def _single_location(self, index: int) -> tuple[int, int]:
        if not 0 <= index < 32:
            raise IndexError(f"floating-point register {index} out of range")
        if index % 2 == 1 and not self.mips3_float_mode:
            return index - 1, 32
        return index, 0

    def get_single(self, index: int) -> int:
        """Raw 32 bits of single-precision register ``index``."""
        register, shift = self._single_location(index)
        return (self.fpr[register] >> shift) & _MASK32

    def set_single(self, index: int, bits: int) -> None:
        """Store raw 32 bits into single-precision register ``index``."""
        register, shift = self._single_location(index)
        kept = self.fpr[register] & ~(_MASK32 << shift) & 0xFFFFFFFFFFFFFFFF
        self.fpr[register] = kept | ((bits & _MASK32) << shift)


def cop0_status_write(ctx: CpuContext, value: int) -> None:
    """Write the status register; only the FR bit may change."""
    old_sr = ctx.status_reg & _MASK32
    new_sr = value & _MASK32
    changed = old_sr ^ new_sr

    if changed & FR_BIT:
        ctx.mips3_float_mode = bool(new_sr & FR_BIT)
        changed &= ~FR_BIT

    if changed:
        raise StatusRegisterError(changed)

    ctx.status_reg = new_sr


def cop0_status_read(ctx: CpuContext) -> int:
    """Read the status register, sign-extended from 32 bits."""
    return _s32(ctx.status_reg)


def switch_error(func: str, vram: int, jtbl: int) -> None:
    """Report a jump table index out of bounds."""
    raise SwitchOutOfBoundsError(func, vram, jtbl)


def do_break(vram: int) -> None:
    """Report a break instruction."""
    raise BreakError(vram)