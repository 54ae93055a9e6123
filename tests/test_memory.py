'''
Tests for the 4 KiB memory and its read-only blocks.
'''
import pytest

from chip8vm.errors import ReadOnlyError
from chip8vm.memory import Memory, MEMORY_SIZE


@pytest.fixture
def memory():
    return Memory()


def test_size(memory):
    assert len(memory) == MEMORY_SIZE == 4096
    assert len(memory.memory) == 4096


def test_write_valid(memory):
    memory.write(0x300, 0xea)
    assert memory.read(0x300) == 0xea


def test_write_truncates_to_byte(memory):
    memory.write(0x300, 0x1ff)
    assert memory.read(0x300) == 0xff


def test_addresses_wrap(memory):
    memory.write(0x1000, 0x42)
    assert memory.read(0x000) == 0x42
    memory.write(0xfff, 0x11)
    assert memory.read_block(0xfff, 2) == bytes((0x11, 0x42))


def test_protected_write_raises(memory):
    memory.protect(0x000, 0x50)
    assert memory.is_read_only(0x04f)
    assert not memory.is_read_only(0x050)
    with pytest.raises(ReadOnlyError):
        memory.write(0x010, 1)


def test_write_block_is_all_or_nothing(memory):
    memory.protect(0x000, 0x50)
    with pytest.raises(ReadOnlyError):
        memory.write_block(0xffe, (1, 2, 3))
    # wrapped into the protected block, so nothing at all was written
    assert memory.read(0xffe) == 0
    assert memory.read(0xfff) == 0


def test_load_ignores_protection(memory):
    memory.protect(0x000, 0x50)
    memory.load(0x000, b"\x01\x02")
    assert memory.read_block(0, 2) == b"\x01\x02"


def test_clear(memory):
    memory.protect(0x000, 0x10)
    memory.write(0x200, 5)
    memory.clear()
    assert memory.read(0x200) == 0
    assert not memory.is_read_only(0x000)
