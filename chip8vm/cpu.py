# CHIP8 interpreter: fetch two bytes at PC, decode the nibbles, dispatch through
# the opcode function map. CPU reference - Cowgod's CHIP8 Technical reference
# http://devernay.free.fr/hacks/chip8/C8TECH10.HTM
#----------------------------------------------------------------------------------------------
import random
from collections import namedtuple

from .errors import DecodeError, RuntimeFault, StackOverflowError, StackUnderflowError
from .log import log
from .machine import (
    DISPLAY_HEIGHT, DISPLAY_WIDTH, FONT_START, GLYPH_SIZE, KEY_COUNT,
    STACK_SIZE, Machine, State,
)

Instruction = namedtuple("Instruction", "opcode family x y n nn nnn")

# Which bits of an opcode select its handler, per family (first nibble).
# Families not listed are identified by their first nibble alone.
FAMILY_MASKS = {
    0x0: 0xFFFF,  # 00E0, 00EE
    0x5: 0xF00F,  # 5xy0
    0x8: 0xF00F,  # 8xy0..8xyE
    0x9: 0xF00F,  # 9xy0
    0xE: 0xF0FF,  # Ex9E, ExA1
    0xF: 0xF0FF,  # Fx07..Fx65
}


def decode(opcode):
    return Instruction(
        opcode=opcode,
        family=(opcode >> 12) & 0xF,
        x=(opcode >> 8) & 0xF,
        y=(opcode >> 4) & 0xF,
        n=opcode & 0xF,
        nn=opcode & 0xFF,
        nnn=opcode & 0xFFF,
    )


def dispatch_key(opcode):
    return opcode & FAMILY_MASKS.get(opcode >> 12, 0xF000)


class Chip8(Machine):
    '''
    The interpreter. step() runs exactly one instruction and tick_timers()
    does one 60Hz timer pass; the caller decides how often to call each.
    '''
    def __init__(self, rng=None):
        self.rng = rng if rng is not None else random.Random()
        self.opcode = 0
        self._instr_pc = 0
        self._latched_key = None

        # Prepare opcode function map
        self.setup_funcmap()
        super().__init__()

    def reset(self):
        super().reset()
        self.opcode = 0
        self._latched_key = None

    def load_program(self, data):
        super().load_program(data)
        self._latched_key = None

    # ---- Opcode function map ----
    def setup_funcmap(self):
        self.funcmap = {
            0x00E0: self._00E0,  # 00E0 - Clear the screen
            0x00EE: self._00EE,  # 00EE - Return from a subroutine
            0x1000: self._1nnn,  # 1nnn - Jump to a specific memory address
            0x2000: self._2nnn,  # 2nnn - Call a function (subroutine) at a memory address
            0x3000: self._3xkk,  # 3xkk - Skip next instruction if a register equals a specific number
            0x4000: self._4xkk,  # 4xkk - Skip next instruction if a register does NOT equal a number
            0x5000: self._5xy0,  # 5xy0 - Skip next instruction if two registers are equal
            0x6000: self._6xkk,  # 6xkk - Set a register to a specific number
            0x7000: self._7xkk,  # 7xkk - Add a number to a register
            0x8000: self._8xy0,  # 8xy0 - Vx = Vy
            0x8001: self._8xy1,  # 8xy1 - Vx |= Vy
            0x8002: self._8xy2,  # 8xy2 - Vx &= Vy
            0x8003: self._8xy3,  # 8xy3 - Vx ^= Vy
            0x8004: self._8xy4,  # 8xy4 - Vx += Vy, VF = carry
            0x8005: self._8xy5,  # 8xy5 - Vx -= Vy, VF = NOT borrow
            0x8006: self._8xy6,  # 8xy6 - Vx >>= 1, VF = bit shifted out
            0x8007: self._8xy7,  # 8xy7 - Vx = Vy - Vx, VF = NOT borrow
            0x800E: self._8xyE,  # 8xyE - Vx <<= 1, VF = bit shifted out
            0x9000: self._9xy0,  # 9xy0 - Skip next instruction if two registers are NOT equal
            0xA000: self._Annn,  # Annn - Set a special memory pointer (I) to a specific address
            0xB000: self._Bnnn,  # Bnnn - Jump to an address plus the value of register V0
            0xC000: self._Cxkk,  # Cxkk - Set a register to a random number ANDed with a value
            0xD000: self._Dxyn,  # Dxyn - Draw a small image (sprite) on the screen at X,Y coordinates
            0xE09E: self._Ex9E,  # Ex9E - Skip next instruction if a key is pressed
            0xE0A1: self._ExA1,  # ExA1 - Skip next instruction if a key is NOT pressed
            0xF007: self._Fx07,  # Fx07 - Vx = delay timer
            0xF00A: self._Fx0A,  # Fx0A - Wait for a key press, store it in Vx
            0xF015: self._Fx15,  # Fx15 - delay timer = Vx
            0xF018: self._Fx18,  # Fx18 - sound timer = Vx
            0xF01E: self._Fx1E,  # Fx1E - I += Vx
            0xF029: self._Fx29,  # Fx29 - I = address of font glyph for Vx
            0xF033: self._Fx33,  # Fx33 - store BCD of Vx at I, I+1, I+2
            0xF055: self._Fx55,  # Fx55 - store V0..Vx at I
            0xF065: self._Fx65,  # Fx65 - load V0..Vx from I
        }

    def lookup(self, opcode):
        return self.funcmap.get(dispatch_key(opcode))

    # ---- Cycle ----
    def fetch(self):
        return (self.memory.read(self.pc) << 8) | self.memory.read(self.pc + 1)

    def step(self):
        self.cycles += 1
        pc = self._instr_pc = self.pc
        self.opcode = self.fetch()

        # Default PC increment; handlers that branch overwrite it
        self.pc = (pc + 2) & 0xFFFF

        handler = self.lookup(self.opcode)
        try:
            if handler is None:
                raise DecodeError("Unknown opcode")
            handler(decode(self.opcode))
        except RuntimeFault as fault:
            fault.opcode = self.opcode
            fault.pc = pc
            self._record_fault(fault)
            self.pc = (pc + 2) & 0xFFFF
        return self.state

    # ---- Timers ----
    def tick_timers(self):
        if self.delay_timer > 0:
            self.delay_timer -= 1
        if self.sound_timer > 0:
            self.sound_timer -= 1

    # ---- Input ----
    def set_key(self, key, pressed):
        was_pressed = self.is_pressed(key)
        super().set_key(key, pressed)
        if (self.state is State.AWAITING_KEY and pressed and not was_pressed
                and self._latched_key is None and 0 <= key < KEY_COUNT):
            self._latched_key = key

    def _skip(self):
        self.pc = (self.pc + 2) & 0xFFFF

    # ---- Opcode Handlers ----

    # 00E0 - CLS
    def _00E0(self, ins):
        self.display_buffer = [0] * (DISPLAY_WIDTH * DISPLAY_HEIGHT)
        self.should_draw = True
        log("Clear the display (all pixels turned off)")

    # 00EE - RET
    def _00EE(self, ins):
        if self.sp == 0:
            raise StackUnderflowError("Stack underflow on return")
        self.sp -= 1
        self.pc = self.stack[self.sp]
        log("Return to", hex(self.pc))

    # 1nnn - Jump to address NNN
    def _1nnn(self, ins):
        self.pc = ins.nnn
        log("Jump to address", hex(ins.nnn))

    # 2nnn - Call subroutine at NNN
    def _2nnn(self, ins):
        if self.sp >= STACK_SIZE:
            raise StackOverflowError("Stack overflow on call")
        # self.pc already points past the call, which is where RET lands
        self.stack[self.sp] = self.pc
        self.sp += 1
        self.pc = ins.nnn
        log("Call subroutine at", hex(ins.nnn))

    # 3xkk - Skip next instruction if Vx == kk
    def _3xkk(self, ins):
        if self.V[ins.x] == ins.nn:
            self._skip()
            log(f"Skip next instruction: V{ins.x} == {ins.nn}")

    # 4xkk - Skip next instruction if Vx != kk
    def _4xkk(self, ins):
        if self.V[ins.x] != ins.nn:
            self._skip()
            log(f"Skip next instruction: V{ins.x} != {ins.nn}")

    # 5xy0 - Skip next instruction if Vx == Vy
    def _5xy0(self, ins):
        if self.V[ins.x] == self.V[ins.y]:
            self._skip()
            log(f"Skip next instruction: V{ins.x} == V{ins.y}")

    # 6xkk - Set Vx = kk
    def _6xkk(self, ins):
        self.V[ins.x] = ins.nn
        log(f"Set V{ins.x} = {ins.nn}")

    # 7xkk - Add immediate, VF untouched
    def _7xkk(self, ins):
        self.V[ins.x] = (self.V[ins.x] + ins.nn) & 0xFF
        log(f"Add {ins.nn} to V{ins.x}: {self.V[ins.x]}")

    # 8xy0..8xyE - register to register. VF is always written last, so when
    # x is F the flag wins over the arithmetic result.
    def _8xy0(self, ins):
        self.V[ins.x] = self.V[ins.y]
        log(f"Copy V{ins.y} ({self.V[ins.y]}) into V{ins.x}")

    def _8xy1(self, ins):
        self.V[ins.x] |= self.V[ins.y]
        log(f"V{ins.x} = V{ins.x} OR V{ins.y} -> {self.V[ins.x]}")

    def _8xy2(self, ins):
        self.V[ins.x] &= self.V[ins.y]
        log(f"V{ins.x} = V{ins.x} AND V{ins.y} -> {self.V[ins.x]}")

    def _8xy3(self, ins):
        self.V[ins.x] ^= self.V[ins.y]
        log(f"V{ins.x} = V{ins.x} XOR V{ins.y} -> {self.V[ins.x]}")

    def _8xy4(self, ins):
        s = self.V[ins.x] + self.V[ins.y]
        self.V[ins.x] = s & 0xFF
        self.V[0xF] = 1 if s > 0xFF else 0
        log(f"Add V{ins.y} to V{ins.x}: result {self.V[ins.x]}, carry={self.V[0xF]}")

    def _8xy5(self, ins):
        vx, vy = self.V[ins.x], self.V[ins.y]
        self.V[ins.x] = (vx - vy) & 0xFF
        self.V[0xF] = 1 if vx >= vy else 0
        log(f"Subtract V{ins.y} from V{ins.x}: result {self.V[ins.x]}, NOT borrow={self.V[0xF]}")

    def _8xy6(self, ins):
        vx = self.V[ins.x]
        self.V[ins.x] = vx >> 1
        self.V[0xF] = vx & 1
        log(f"Shift V{ins.x} right by 1: {self.V[ins.x]}, least significant bit={self.V[0xF]}")

    def _8xy7(self, ins):
        vx, vy = self.V[ins.x], self.V[ins.y]
        self.V[ins.x] = (vy - vx) & 0xFF
        self.V[0xF] = 1 if vy >= vx else 0
        log(f"Set V{ins.x} = V{ins.y} - V{ins.x}: result {self.V[ins.x]}, NOT borrow={self.V[0xF]}")

    def _8xyE(self, ins):
        vx = self.V[ins.x]
        self.V[ins.x] = (vx << 1) & 0xFF
        self.V[0xF] = (vx >> 7) & 1
        log(f"Shift V{ins.x} left by 1: {self.V[ins.x]}, most significant bit={self.V[0xF]}")

    # 9xy0 - Skip next instruction if Vx != Vy
    def _9xy0(self, ins):
        if self.V[ins.x] != self.V[ins.y]:
            self._skip()
            log(f"Skip next instruction: V{ins.x} != V{ins.y}")

    # Annn - Set I = NNN
    def _Annn(self, ins):
        self.index = ins.nnn
        log(f"Set I = {self.index:03X}")

    # Bnnn - Jump to address NNN + V0
    def _Bnnn(self, ins):
        self.pc = ins.nnn + self.V[0]
        log(f"Jump to address V0 + {ins.nnn:03X} = {self.pc:03X}")

    # Cxkk - RND Vx, byte
    def _Cxkk(self, ins):
        self.V[ins.x] = self.rng.getrandbits(8) & ins.nn
        log(f"Set V{ins.x} = random_byte & {ins.nn} -> {self.V[ins.x]}")

    # Dxyn - DRW Vx, Vy, nibble
    def _Dxyn(self, ins):
        x = self.V[ins.x]
        y = self.V[ins.y]
        buf = self.display_buffer
        collision = 0
        for row, sprite in enumerate(self.memory.read_block(self.index, ins.n)):
            if sprite == 0:
                continue
            base = ((y + row) % DISPLAY_HEIGHT) * DISPLAY_WIDTH
            for bit in range(8):
                if sprite & (0x80 >> bit):
                    idx = base + (x + bit) % DISPLAY_WIDTH
                    collision |= buf[idx]
                    buf[idx] ^= 1
        self.V[0xF] = 1 if collision else 0
        self.should_draw = True
        log(f"Drew sprite at ({x}, {y}), collision={self.V[0xF]}")

    # Ex9E - SKP Vx
    def _Ex9E(self, ins):
        if self.is_pressed(self.V[ins.x]):
            self._skip()

    # ExA1 - SKNP Vx
    def _ExA1(self, ins):
        if not self.is_pressed(self.V[ins.x]):
            self._skip()

    # Fx07 - Vx = delay_timer
    def _Fx07(self, ins):
        self.V[ins.x] = self.delay_timer

    # Fx0A - LD Vx, K: stall on this instruction until a key goes down
    def _Fx0A(self, ins):
        if self.state is not State.AWAITING_KEY:
            self.state = State.AWAITING_KEY
            self._latched_key = None
        if self._latched_key is None:
            self.pc = self._instr_pc
            return
        self.V[ins.x] = self._latched_key
        self._latched_key = None
        self.state = State.RUNNING
        log(f"Key {self.V[ins.x]:X} pressed, stored in V{ins.x}")

    # Fx15 - delay_timer = Vx
    def _Fx15(self, ins):
        self.delay_timer = self.V[ins.x]

    # Fx18 - sound_timer = Vx
    def _Fx18(self, ins):
        self.sound_timer = self.V[ins.x]

    # Fx1E - I += Vx, VF untouched
    def _Fx1E(self, ins):
        self.index = (self.index + self.V[ins.x]) & 0xFFFF

    # Fx29 - I = glyph address for the digit in Vx
    def _Fx29(self, ins):
        self.index = FONT_START + GLYPH_SIZE * self.V[ins.x]

    # Fx33 - BCD of Vx at I, I+1, I+2
    def _Fx33(self, ins):
        val = self.V[ins.x]
        self.memory.write_block(self.index, (val // 100, (val // 10) % 10, val % 10))

    # Fx55 - store V0..Vx at I, I unchanged
    def _Fx55(self, ins):
        self.memory.write_block(self.index, self.V[:ins.x + 1])

    # Fx65 - load V0..Vx from I, I unchanged
    def _Fx65(self, ins):
        for i in range(ins.x + 1):
            self.V[i] = self.memory.read(self.index + i)
