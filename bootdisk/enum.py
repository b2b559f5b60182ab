from enum import Enum


class PackingMethod(Enum):
    '''Transform applied to a payload before it lands on the disk.

    The value is the code stored in the upper nibble of the size word of
    the file table, the boot-time loader uses it to choose the unpacker.'''
    NONE      = 0
    SHRINKLER = 1
    ZX0       = 2
    LZ        = 3  # reserved, no packer exists for it
    DEFLATE   = 4
    TRIM      = 5
