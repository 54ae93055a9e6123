from .cpu import Chip8, Instruction, decode
from .errors import (
    CapacityError, Chip8Error, DecodeError, LoadError, ReadOnlyError,
    RuntimeFault, StackError, StackOverflowError, StackUnderflowError,
)
from .machine import Machine, State
from .memory import Memory

__version__ = "0.1.0"
