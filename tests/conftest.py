'''
Shared fixtures for the CHIP-8 test suite.
'''
import random

import pytest

from chip8vm.cpu import Chip8


def words_to_bytes(words):
    '''
    Turn a list of 16-bit instruction words into big-endian ROM bytes.
    '''
    data = bytearray()
    for word in words:
        data += bytes(((word >> 8) & 0xFF, word & 0xFF))
    return bytes(data)


@pytest.fixture
def chip8():
    '''
    Freshly reset machine with a seeded random source.
    '''
    return Chip8(rng=random.Random(1234))


@pytest.fixture
def run():
    '''
    Load a program made of instruction words and step through it.
    '''
    def _run(machine, words, steps=None):
        machine.load_program(words_to_bytes(words))
        for _ in range(len(words) if steps is None else steps):
            machine.step()
        return machine
    return _run
