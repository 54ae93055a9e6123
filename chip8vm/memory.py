from .errors import ReadOnlyError

MEMORY_SIZE = 4096
ADDRESS_MASK = MEMORY_SIZE - 1


class Memory:
    '''
    The 4 KiB of CHIP-8 RAM. Every address is 8 bits wide and addresses wrap
    around at 0x1000, so an I register pointing near the top of memory reads
    back from 0x000 instead of falling off the end.

    Blocks can be marked read only (the interpreter uses this for the font
    glyphs); writes to them raise ReadOnlyError.
    '''
    def __init__(self):
        self.memory = bytearray(MEMORY_SIZE)

        # Mask of protected addresses, one flag per byte
        self._read_only = bytearray(MEMORY_SIZE)

    def __len__(self):
        return MEMORY_SIZE

    def clear(self):
        '''
        Zero every byte and drop all protection.
        '''
        self.memory[:] = bytes(MEMORY_SIZE)
        self._read_only[:] = bytes(MEMORY_SIZE)

    def protect(self, start_addr, length):
        for addr in range(start_addr, start_addr + length):
            self._read_only[addr & ADDRESS_MASK] = 1

    def is_read_only(self, addr):
        return bool(self._read_only[addr & ADDRESS_MASK])

    def load(self, start_addr, data):
        '''
        Bulk copy used at reset and ROM load time. Ignores protection, and
        expects the caller to have checked that data fits.
        '''
        end = start_addr + len(data)
        self.memory[start_addr:end] = bytes(data)

    def read(self, addr):
        return self.memory[addr & ADDRESS_MASK]

    def write(self, addr, value):
        addr &= ADDRESS_MASK
        if self._read_only[addr]:
            raise ReadOnlyError(f"Write to read-only address {addr:03X}")
        self.memory[addr] = value & 0xFF

    def read_block(self, start_addr, length):
        return bytes(self.read(start_addr + i) for i in range(length))

    def write_block(self, start_addr, data):
        '''
        Write a run of bytes. Either every byte is written or, if any target
        address is protected, none are.
        '''
        for i in range(len(data)):
            addr = (start_addr + i) & ADDRESS_MASK
            if self._read_only[addr]:
                raise ReadOnlyError(f"Write to read-only address {addr:03X}")
        for i, value in enumerate(data):
            self.memory[(start_addr + i) & ADDRESS_MASK] = value & 0xFF
