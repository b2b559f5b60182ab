'''
We are implementing fields to handle the boot block checksum.
'''
import logging
import struct

from .. import fields
from ..exceptions import InvalidBootSectorSize


logger = logging.getLogger(__name__)

BOOTBLOCK_SIZE = 0x400
CHECKSUM_OFFSET = 4
MASK32 = 0xffffffff


def checksum_words(data: bytes) -> int:
    '''Sum the big-endian longwords of data with end-around carry: when the
    addition wraps past 32 bits the lost carry is added back.'''
    checksum = 0
    for word in struct.unpack('>%dI' % (len(data) // 4), data):
        precsum = checksum
        checksum = (checksum + word) & MASK32
        if checksum < precsum:
            checksum += 1

    return checksum


def bootblock_checksum(bootblock) -> bytearray:
    """The checksum of the boot block is the ones' complement of the sum of its
    256 longwords, calculated with the checksum field (bytes 4-7) set to zero.

    The result is written back big-endian into the field and the patched
    boot block is returned (a bytearray passed in is patched in place).
    """
    if len(bootblock) != BOOTBLOCK_SIZE:
        raise InvalidBootSectorSize(
            chain=[],
            message='bootblock incorrect size: %d bytes instead of %d' % (len(bootblock), BOOTBLOCK_SIZE))

    if not isinstance(bootblock, bytearray):
        bootblock = bytearray(bootblock)

    bootblock[CHECKSUM_OFFSET:CHECKSUM_OFFSET + 4] = b'\x00' * 4

    checksum = ~checksum_words(bootblock) & MASK32
    logger.debug('bootblock checksum 0x%08x' % checksum)

    struct.pack_into('>I', bootblock, CHECKSUM_OFFSET, checksum)

    return bootblock


def is_valid_bootblock(bootblock) -> bool:
    '''A checksummed boot block sums (with carry) to all ones.'''
    return len(bootblock) == BOOTBLOCK_SIZE and checksum_words(bytes(bootblock)) == MASK32


class BootBlockChecksumField(fields.StructField):
    """Longword holding the checksum of the whole boot block this field is part of.

    It's calculated over the raw data of the father, so it needs to be
    updated every time the other fields change: packing does that.
    """

    def __init__(self, *args, **kwargs):
        super().__init__('I', *args, **kwargs)

    def calculate(self):
        raw = bytearray()
        for field_name, field in self.father.get_fields():
            raw += b'\x00' * field.size if field is self else field.raw

        return struct.unpack_from('>I', bootblock_checksum(raw), CHECKSUM_OFFSET)[0]

    def is_valid(self):
        return self.value == self.calculate()

    def pack(self, stream):
        self.value = self.calculate()

        return super().pack(stream)
