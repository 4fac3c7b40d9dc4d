import pytest

from n64runtime.cpu import (
    FR_BIT,
    BreakError,
    CpuContext,
    RecompError,
    StatusRegisterError,
    SwitchOutOfBoundsError,
    cop0_status_read,
    cop0_status_write,
    do_break,
    switch_error,
)


def test_setting_fr_enables_mips3_mode():
    ctx = CpuContext()
    cop0_status_write(ctx, FR_BIT)
    assert ctx.mips3_float_mode is True
    assert ctx.status_reg == FR_BIT


def test_clearing_fr_disables_mips3_mode():
    ctx = CpuContext()
    cop0_status_write(ctx, FR_BIT)
    cop0_status_write(ctx, 0)
    assert ctx.mips3_float_mode is False
    assert ctx.status_reg == 0


def test_writing_same_value_keeps_state():
    ctx = CpuContext()
    cop0_status_write(ctx, FR_BIT)
    cop0_status_write(ctx, FR_BIT)
    assert ctx.mips3_float_mode is True
    assert ctx.status_reg == FR_BIT


def test_other_bits_raise():
    ctx = CpuContext()
    with pytest.raises(StatusRegisterError) as info:
        cop0_status_write(ctx, FR_BIT | 0x1)
    assert info.value.changed == 0x1
    assert ctx.status_reg == 0


def test_status_error_is_recomp_error():
    with pytest.raises(RecompError):
        cop0_status_write(CpuContext(), 0x80000000)


def test_status_read_sign_extends():
    ctx = CpuContext(status_reg=0x80000000 | FR_BIT)
    value = cop0_status_read(ctx)
    assert value < 0
    assert value & 0xFFFFFFFF == 0x80000000 | FR_BIT


def test_status_read_positive():
    ctx = CpuContext()
    cop0_status_write(ctx, FR_BIT)
    assert cop0_status_read(ctx) == FR_BIT


def test_odd_single_shares_even_register_without_fr():
    ctx = CpuContext()
    ctx.set_single(0, 0x11111111)
    ctx.set_single(1, 0x22222222)
    assert ctx.fpr[1] == 0
    assert ctx.fpr[0] >> 32 == 0x22222222
    assert ctx.fpr[0] & 0xFFFFFFFF == 0x11111111
    assert ctx.get_single(1) == 0x22222222


def test_odd_single_is_own_register_with_fr():
    ctx = CpuContext()
    cop0_status_write(ctx, FR_BIT)
    ctx.set_single(1, 0x22222222)
    assert ctx.fpr[0] == 0
    assert ctx.fpr[1] == 0x22222222
    assert ctx.get_single(1) == 0x22222222


def test_single_out_of_range():
    with pytest.raises(IndexError):
        CpuContext().get_single(32)


def test_switch_error_carries_details():
    with pytest.raises(SwitchOutOfBoundsError) as info:
        switch_error("func_80001000", 0x80001000, 0x80002000)
    assert info.value.func == "func_80001000"
    assert info.value.vram == 0x80001000
    assert "0x80002000" in str(info.value)


def test_do_break_raises():
    with pytest.raises(BreakError) as info:
        do_break(0x80001234)
    assert info.value.vram == 0x80001234
    assert "0x80001234" in str(info.value)