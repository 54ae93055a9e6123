'''
Tests for the state store and program loader.
'''
import pytest

from chip8vm.errors import CapacityError, LoadError
from chip8vm.machine import (
    DISPLAY_HEIGHT, DISPLAY_WIDTH, FONTSET, PROGRAM_CAPACITY, PROGRAM_START,
    Machine, State,
)


@pytest.fixture
def machine():
    return Machine()


def test_reset_state(machine):
    assert machine.pc == 0x200
    assert machine.V == [0] * 16
    assert machine.index == 0
    assert machine.sp == 0
    assert machine.delay_timer == 0
    assert machine.sound_timer == 0
    assert machine.key_inputs == [False] * 16
    assert machine.state is State.RUNNING
    assert not any(machine.framebuffer)


def test_reset_loads_font(machine):
    assert len(FONTSET) == 80
    assert machine.memory.read_block(0x000, 80) == bytes(FONTSET)
    assert machine.memory.is_read_only(0x04f)
    assert not machine.memory.is_read_only(0x200)


def test_reset_sets_redraw_flag(machine):
    assert machine.consume_redraw_flag() is True
    assert machine.consume_redraw_flag() is False


def test_reset_clears_everything(machine):
    machine.load_program(b"\x12\x34")
    machine.V[3] = 9
    machine.index = 0x300
    machine.delay_timer = 5
    machine.sound_timer = 5
    machine.set_key(4, True)
    machine.display_buffer[10] = 1
    machine.consume_redraw_flag()

    machine.reset()

    assert machine.memory.read(0x200) == 0
    assert machine.V[3] == 0
    assert machine.index == 0
    assert machine.delay_timer == machine.sound_timer == 0
    assert not machine.is_pressed(4)
    assert not machine.get_pixel(10, 0)
    assert machine.consume_redraw_flag()


def test_set_key(machine):
    machine.set_key(0xF, True)
    assert machine.is_pressed(0xF)
    machine.set_key(0xF, False)
    assert not machine.is_pressed(0xF)


@pytest.mark.parametrize("key", [-1, 16, 255])
def test_set_key_out_of_range_ignored(machine, key):
    machine.set_key(key, True)
    assert machine.key_inputs == [False] * 16


def test_get_pixel(machine):
    machine.display_buffer[5 * DISPLAY_WIDTH + 7] = 1
    assert machine.get_pixel(7, 5)
    assert not machine.get_pixel(5, 7)


@pytest.mark.parametrize("x, y", [(-1, 0), (0, -1), (DISPLAY_WIDTH, 0), (0, DISPLAY_HEIGHT)])
def test_get_pixel_out_of_range(machine, x, y):
    machine.display_buffer = [1] * (DISPLAY_WIDTH * DISPLAY_HEIGHT)
    assert machine.get_pixel(x, y) is False


def test_rows(machine):
    machine.display_buffer[DISPLAY_WIDTH + 2] = 1
    rows = list(machine.rows())
    assert len(rows) == DISPLAY_HEIGHT
    assert rows[1][2] == 1
    assert sum(map(sum, rows)) == 1


def test_should_beep(machine):
    assert not machine.should_beep()
    machine.sound_timer = 1
    assert machine.should_beep()


def test_load_program_copies_bytes(machine):
    data = bytes(range(256)) * 3
    machine.load_program(data)
    assert machine.memory.read_block(PROGRAM_START, len(data)) == data
    assert machine.memory.read(PROGRAM_START + len(data)) == 0


def test_load_program_full_capacity(machine):
    data = bytes((i * 7) & 0xFF for i in range(PROGRAM_CAPACITY))
    assert len(data) == 3584
    machine.load_program(data)
    assert machine.memory.read_block(PROGRAM_START, len(data)) == data


def test_load_program_too_large(machine):
    with pytest.raises(CapacityError) as excinfo:
        machine.load_program(b"\xAA" * (PROGRAM_CAPACITY + 1))
    assert isinstance(excinfo.value, LoadError)
    assert excinfo.value.size == 3585
    # nothing copied
    assert machine.memory.read(PROGRAM_START) == 0


def test_load_program_resets_pc_only(machine):
    machine.pc = 0x300
    machine.V[1] = 7
    machine.delay_timer = 3
    machine.load_program(b"\x00\xE0")
    assert machine.pc == PROGRAM_START
    assert machine.V[1] == 7
    assert machine.delay_timer == 3


def test_load_rom(machine, tmp_path):
    rom = tmp_path / "test.ch8"
    rom.write_bytes(b"\x60\x05\x70\x0A")
    machine.load_rom(str(rom))
    assert machine.memory.read_block(PROGRAM_START, 4) == b"\x60\x05\x70\x0A"


def test_load_rom_missing_file(machine, tmp_path):
    with pytest.raises(LoadError):
        machine.load_rom(str(tmp_path / "missing.ch8"))


def test_load_rom_too_large(machine, tmp_path):
    rom = tmp_path / "big.ch8"
    rom.write_bytes(bytes(PROGRAM_CAPACITY + 1))
    with pytest.raises(CapacityError):
        machine.load_rom(str(rom))
