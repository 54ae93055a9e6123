# CHIP8 Virtual Machine state:
# Memory - 4096 bytes holding the font glyphs (0x000-0x04F) and the program (0x200 onwards).
# Registers - 16 8-bit registers V0..VF (VF doubles as carry/borrow/collision flag),
# the 16-bit index register I and the program counter.
# Stack - 16 return addresses plus a stack pointer.
# Output - 64x32 monochrome display buffer & the sound timer that gates the buzzer.
# Input - 16 key states, one per hex key, written by the frontend.
#----------------------------------------------------------------------------------------------
import enum
from collections import deque

from .errors import CapacityError, LoadError
from .log import log, log_error
from .memory import Memory, MEMORY_SIZE

REGISTER_COUNT = 16
STACK_SIZE = 16
KEY_COUNT = 16
DISPLAY_WIDTH, DISPLAY_HEIGHT = 64, 32
PROGRAM_START = 0x200
PROGRAM_CAPACITY = MEMORY_SIZE - PROGRAM_START
FONT_START = 0x000
MAX_FAULTS = 64

# Standard CHIP-8 fontset (80 bytes)
FONTSET = (
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
)
GLYPH_SIZE = 5


class State(enum.Enum):
    RUNNING = "running"
    AWAITING_KEY = "awaiting_key"


class Machine:
    '''
    Holds every piece of CHIP-8 state and knows how to load programs into it.
    Execution lives in Chip8 (cpu.py), which builds on this class.
    '''
    def __init__(self):
        self.memory = Memory()
        self.faults = deque(maxlen=MAX_FAULTS)
        self.reset()

    # ---- Reset ----
    def reset(self):
        self.memory.clear()
        self.memory.load(FONT_START, FONTSET)
        self.memory.protect(FONT_START, len(FONTSET))

        self.V = [0] * REGISTER_COUNT
        self.index = 0                  # I register (memory pointer)
        self.pc = PROGRAM_START         # program counter starts at 0x200
        self.stack = [0] * STACK_SIZE
        self.sp = 0                     # next free stack slot
        self.delay_timer = 0
        self.sound_timer = 0
        self.display_buffer = [0] * (DISPLAY_WIDTH * DISPLAY_HEIGHT)
        self.key_inputs = [False] * KEY_COUNT
        self.should_draw = True         # present the blank screen once
        self.state = State.RUNNING
        self.cycles = 0
        self.faults.clear()
        log("System initialized")

    # ---- Load ROM ----
    def load_program(self, data):
        data = bytes(data)
        if len(data) > PROGRAM_CAPACITY:
            raise CapacityError(len(data), PROGRAM_CAPACITY)
        self.memory.load(PROGRAM_START, data)
        self.pc = PROGRAM_START
        self.state = State.RUNNING
        log("Loaded", len(data), "bytes at", hex(PROGRAM_START))

    def load_rom(self, path):
        log("Loading ROM:", path)
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            log_error("Failed to open ROM: %s", path)
            raise LoadError(f"Failed to open ROM {path}: {e.strerror or e}") from e
        try:
            self.load_program(data)
        except CapacityError:
            log_error("ROM too large: %s (%d bytes)", path, len(data))
            raise

    # ---- Input ----
    def set_key(self, key, pressed):
        if 0 <= key < KEY_COUNT:
            self.key_inputs[key] = bool(pressed)

    def is_pressed(self, key):
        return 0 <= key < KEY_COUNT and self.key_inputs[key]

    # ---- Output ----
    def get_pixel(self, x, y):
        if not (0 <= x < DISPLAY_WIDTH and 0 <= y < DISPLAY_HEIGHT):
            return False
        return self.display_buffer[y * DISPLAY_WIDTH + x] == 1

    @property
    def framebuffer(self):
        return self.display_buffer

    def rows(self):
        for y in range(DISPLAY_HEIGHT):
            start = y * DISPLAY_WIDTH
            yield tuple(self.display_buffer[start:start + DISPLAY_WIDTH])

    def consume_redraw_flag(self):
        flag = self.should_draw
        self.should_draw = False
        return flag

    def should_beep(self):
        return self.sound_timer > 0

    # ---- Faults ----
    @property
    def last_fault(self):
        return self.faults[-1] if self.faults else None

    def clear_faults(self):
        self.faults.clear()

    def _record_fault(self, fault):
        self.faults.append(fault)
        log_error("Emulation fault: %s", fault)
