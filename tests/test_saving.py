import pytest

from n64runtime.rdram import Rdram
from n64runtime.roms import SaveType
from n64runtime.saving import SaveFile, save_file_path, save_size

BASE = 0x80000000


@pytest.mark.parametrize(
    "save_type, expected",
    [
        (SaveType.ALLOW_ALL, 0x20000),
        (SaveType.FLASHRAM, 0x20000),
        (SaveType.SRAM, 0x8000),
        (SaveType.EEP16K, 0x800),
        (SaveType.EEP4K, 0x200),
        (SaveType.NONE, 0),
    ],
)
def test_save_size(save_type, expected):
    assert save_size(save_type) == expected


def test_save_file_path(tmp_path):
    assert save_file_path(tmp_path, "", "game") == tmp_path / "saves" / "game.bin"
    assert save_file_path(tmp_path, "slot", "game") == tmp_path / "saves" / "slot" / "game.bin"


def test_load_missing_file_zeroes(tmp_path):
    path = tmp_path / "saves" / "a.bin"
    save = SaveFile(path, 16)
    save.write(0, b"\xff" * 16)
    save.load()
    assert save.read(0, 16) == bytes(16)
    assert path.parent.is_dir()


def test_load_existing_file(tmp_path):
    path = tmp_path / "a.bin"
    path.write_bytes(bytes(range(16)))
    save = SaveFile(path, 16)
    save.load()
    assert save.read(0, 16) == bytes(range(16))


def test_load_longer_file_is_truncated(tmp_path):
    path = tmp_path / "a.bin"
    path.write_bytes(bytes(range(32)))
    save = SaveFile(path, 8)
    save.load()
    assert save.read(0, 8) == bytes(range(8))
    assert len(save) == 8


def test_write_read_round_trip(tmp_path):
    save = SaveFile(tmp_path / "a.bin", 32)
    save.write(4, b"hello")
    assert save.read(4, 5) == b"hello"
    assert save.read(0, 4) == bytes(4)


@pytest.mark.parametrize("offset, count", [(30, 4), (-1, 1), (0, 33)])
def test_out_of_range_access_raises(tmp_path, offset, count):
    save = SaveFile(tmp_path / "a.bin", 32)
    with pytest.raises(ValueError):
        save.read(offset, count)
    with pytest.raises(ValueError):
        save.write(offset, bytes(max(count, 0)))


def test_rdram_round_trip(tmp_path):
    rdram = Rdram(0x100)
    rdram.write_bytes(BASE + 0x10, b"SAVEDATA")
    save = SaveFile(tmp_path / "a.bin", 64)
    save.write_from_rdram(rdram, BASE + 0x10, 8, 8)
    assert save.read(8, 8) == b"SAVEDATA"
    save.read_into_rdram(rdram, BASE + 0x40, 8, 8)
    assert rdram.read_bytes(BASE + 0x40, 8) == b"SAVEDATA"


def test_clear_fills_range(tmp_path):
    save = SaveFile(tmp_path / "a.bin", 16)
    save.clear(2, 4, 0xAB)
    assert save.read(2, 4) == b"\xab" * 4
    assert save.read(0, 2) == bytes(2)
    assert save.read(6, 10) == bytes(10)


def test_flush_then_load_in_new_instance(tmp_path):
    path = tmp_path / "nested" / "a.bin"
    save = SaveFile(path, 16)
    save.write(0, b"abcd")
    save.flush()
    other = SaveFile(path, 16)
    other.load()
    assert other.read(0, 16) == save.read(0, 16)


def test_thread_writes_on_stop(tmp_path):
    path = tmp_path / "a.bin"
    save = SaveFile(path, 16)
    save.load()
    with save:
        save.write(0, b"data")
    assert path.read_bytes()[:4] == b"data"
    assert len(path.read_bytes()) == 16


def test_change_file_while_running(tmp_path):
    first = tmp_path / "first.bin"
    second = tmp_path / "second.bin"
    second.write_bytes(b"\x01" * 8)
    save = SaveFile(first, 8)
    save.load()
    save.start()
    try:
        save.write(0, b"old!")
        save.change_file(second)
        assert save.path == second
        assert save.read(0, 8) == b"\x01" * 8
    finally:
        save.stop()
    assert first.read_bytes()[:4] == b"old!"


def test_change_file_without_thread(tmp_path):
    first = tmp_path / "first.bin"
    second = tmp_path / "second.bin"
    save = SaveFile(first, 4)
    save.load()
    save.write(0, b"wxyz")
    save.change_file(second)
    assert first.read_bytes() == b"wxyz"
    assert save.read(0, 4) == bytes(4)


def test_start_twice_raises(tmp_path):
    save = SaveFile(tmp_path / "a.bin", 4)
    save.start()
    try:
        with pytest.raises(RuntimeError):
            save.start()
    finally:
        save.stop()