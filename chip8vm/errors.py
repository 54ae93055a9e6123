# Exceptions raised by the CHIP-8 virtual machine.
# Load errors go straight back to whoever asked for the load. Runtime errors
# (decode, stack, read-only writes) are caught by Chip8.step() and recorded in
# Machine.faults so a bad ROM can't crash the emulator.


class Chip8Error(Exception):
    pass


class LoadError(Chip8Error):
    pass


class CapacityError(LoadError):
    def __init__(self, size, capacity):
        super().__init__(f"ROM too large: {size} bytes (maximum {capacity} bytes)")
        self.size = size
        self.capacity = capacity


class RuntimeFault(Chip8Error):
    '''
    Base for errors raised while executing an instruction. The opcode and the
    address it was fetched from are filled in by the interpreter.
    '''
    def __init__(self, message, opcode=None, pc=None):
        super().__init__(message)
        self.opcode = opcode
        self.pc = pc

    def __str__(self):
        msg = super().__str__()
        if self.opcode is not None and self.pc is not None:
            return f"{msg} (opcode {self.opcode:04X} at {self.pc:03X})"
        return msg


class DecodeError(RuntimeFault):
    pass


class StackError(RuntimeFault):
    pass


class StackOverflowError(StackError):
    pass


class StackUnderflowError(StackError):
    pass


class ReadOnlyError(RuntimeFault):
    pass
