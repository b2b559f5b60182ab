'''
# Trackloaded ADF image

A double density floppy has 80 cylinders, 2 heads, 11 sectors of 512 bytes
for a total of 901120 bytes; here the disk is not formatted with a filesystem
but laid out in a flat way read at boot by a custom loader

  .-------------------------------.  0x000
  | boot block (1024 bytes)       |
  |-------------------------------|  0x400
  | file table (16 bytes x N)     |
  |-------------------------------|  0x400 + 16N
  | payload of entry 0            |
  | payload of entry 1            |
  |  ...                          |
  |-------------------------------|
  | zero padding                  |
  '-------------------------------'  capacity

each row of the file table is big-endian

  .--------.-----------------------------------------------------.
  | 0-3    | identifier, ASCII zero padded                       |
  | 4-7    | absolute offset of the payload                      |
  | 8-11   | method << 28 | cacheable << 24 | even packed size   |
  | 12-15  | size of the data before packing                     |
  '--------'-----------------------------------------------------'

The boot block is the one of AmigaDOS: the checksum is at offset 4 and
the code starts at offset 12.
'''
import logging
from typing import List, NamedTuple

from bitstring import BitArray, pack as bitpack
from capstone import Cs, CS_ARCH_M68K, CS_MODE_BIG_ENDIAN, CS_MODE_M68K_000

from ..core import Chunk
from .. import fields
from ..common.checksum import BootBlockChecksumField, is_valid_bootblock, BOOTBLOCK_SIZE
from ..enum import PackingMethod
from ..exceptions import UnpackException


logger = logging.getLogger(__name__)

DISK_SIZE = 0xdc000  # 880KB
BOOTBLOCK_CODE_OFFSET = 12
FILE_TABLE_ENTRY_SIZE = 4 * 4
MAX_PACKED_SIZE = 1 << 24  # the size word has 24 bits for it


class SizeWord(NamedTuple):
    method: PackingMethod
    cacheable: bool
    packed_size: int


class SizeWordField(fields.Field):
    '''Longword packing together the method, the cacheable flag and the
    size of the packed data (always rounded up to an even number).

      31   28 27  25  24  23                     0
      .------.------.---.------------------------.
      |method| zero |C  | packed size            |
      '------'------'---'------------------------'
    '''
    FORMAT = 'uint:4, uint:3, bool, uint:24'

    def value_from_default(self):
        return SizeWord(PackingMethod.NONE, False, 0)

    def __repr__(self):
        return '<%s(%s,cacheable=%s,size=%d)>' % (
            self.__class__.__name__, self.value.method.name, self.value.cacheable, self.value.packed_size)

    def _set_value(self, value):
        super()._set_value(SizeWord(*value))

    def _get_size(self):
        return 4

    def _get_raw(self) -> bytes:
        packed_size = self.value.packed_size
        # make even
        if packed_size & 1:
            packed_size += 1

        if packed_size >= MAX_PACKED_SIZE:
            raise ValueError(f'packed size {packed_size} does not fit in 24 bits')

        return bitpack(self.FORMAT, self.value.method.value, 0, bool(self.value.cacheable), packed_size).bytes

    def _set_raw(self, raw: bytes) -> None:
        method, _, cacheable, packed_size = BitArray(raw).unpack(self.FORMAT)
        try:
            method = PackingMethod(method)
        except ValueError:
            raise UnpackException(chain=[self.name], message='unknown packing method %d' % method)

        self.value = SizeWord(method, cacheable, packed_size)


class BootBlock(Chunk):
    disk_type  = fields.StringField(4, default=b'DOS\x00')
    checksum   = BootBlockChecksumField()
    root_block = fields.StructField('I', default=880)
    code       = fields.StringField(BOOTBLOCK_SIZE - BOOTBLOCK_CODE_OFFSET)

    def is_valid(self):
        return self.checksum.is_valid()


class FileTableEntry(Chunk):
    file_id   = fields.AsciiField(4)
    location  = fields.UInt32Field()
    size_word = SizeWordField()
    file_size = fields.UInt32Field()

    def __str__(self):
        return '%-4s 0x%06x %7d %7d %-9s %s' % (
            self.file_id.value,
            self.location.value,
            self.size_word.value.packed_size,
            self.file_size.value,
            self.size_word.value.method.name,
            'cacheable' if self.size_word.value.cacheable else '',
        )


class DiskImage(object):
    '''Read back an image: the number of entries is not stored anywhere but
    the first payload starts right after the table so its offset tells us.'''

    def __init__(self, data):
        self.data = bytes(data)

        if len(self.data) < BOOTBLOCK_SIZE:
            raise UnpackException(chain=['DiskImage'], message='image shorter than a boot block')

        self.bootblock = BootBlock(self.data[:BOOTBLOCK_SIZE])
        self.entries: List[FileTableEntry] = [
            FileTableEntry(self.data[_:_ + FILE_TABLE_ENTRY_SIZE]) for _ in self._iter_table_offsets()
        ]

    def _iter_table_offsets(self):
        first = self.data[BOOTBLOCK_SIZE:BOOTBLOCK_SIZE + FILE_TABLE_ENTRY_SIZE]
        if len(first) < FILE_TABLE_ENTRY_SIZE:
            return

        offset = FileTableEntry(first).location.value
        if offset == 0:
            return

        n, remainder = divmod(offset - BOOTBLOCK_SIZE, FILE_TABLE_ENTRY_SIZE)
        if n <= 0 or remainder or offset > len(self.data):
            raise UnpackException(chain=['DiskImage'], message='first entry points to 0x%x, not after a table' % offset)

        logger.debug('file table with %d entries' % n)

        for idx in range(n):
            yield BOOTBLOCK_SIZE + idx * FILE_TABLE_ENTRY_SIZE

    @property
    def table_size(self):
        return len(self.entries) * FILE_TABLE_ENTRY_SIZE

    def is_valid(self):
        return is_valid_bootblock(self.data[:BOOTBLOCK_SIZE])

    def get_entry(self, file_id):
        entry = list(filter(lambda x: x.file_id.value == file_id, self.entries))

        if len(entry) == 0:
            raise KeyError(f'no entry with id {file_id}')

        return entry[0]

    def payload(self, entry: FileTableEntry) -> bytes:
        '''The data of the entry, as long as the size in the table (so maybe
        with one extra byte coming from the next payload).'''
        offset = entry.location.value

        return self.data[offset:offset + entry.size_word.value.packed_size]


def read_disk_image(data) -> DiskImage:
    '''Decode an image refusing it if the boot block checksum is wrong.'''
    image = DiskImage(data)

    if not image.is_valid():
        raise UnpackException(
            chain=['DiskImage'],
            message='boot block checksum is 0x%08x, not valid' % image.bootblock.checksum.value)

    return image


def disasm(code, start=0, detail: bool = False):
    md = Cs(CS_ARCH_M68K, CS_MODE_BIG_ENDIAN | CS_MODE_M68K_000)
    md.detail = detail

    for _ in md.disasm(code, start):
        yield _


def disassemble_bootblock(bootblock: BootBlock):
    '''The boot code is executed from offset 12 of the boot block.'''
    return disasm(bootblock.code.value, start=BOOTBLOCK_CODE_OFFSET)
