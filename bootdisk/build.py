'''
Build of the disk image.

Each entry of the manifest goes through the following phases, each one
producing a new record

    DiskItem --read--> LoadedItem --pack--> PackedItem --merge--> PlacedItem

reading and packing are independent between entries so they run in a pool
of workers; merging and writing the table need all the entries packed and
follow the order of the manifest.
'''
import logging
import os
import tempfile
from concurrent.futures import ThreadPoolExecutor
from typing import List, NamedTuple, Optional, Tuple

from .common.checksum import MASK32, bootblock_checksum
from .compression.packers import get_packer
from .compression.process import ToolRunner
from .config import BuildConfig
from .exceptions import (
    BootDiskException,
    FileTableOverflow,
    ImageCapacityExceeded,
    ManifestMissing,
    SourceFileNotFound,
)
from .images.adf import (
    BOOTBLOCK_SIZE,
    DISK_SIZE,
    FILE_TABLE_ENTRY_SIZE,
    MAX_PACKED_SIZE,
    FileTableEntry,
    SizeWord,
)
from .manifest import DiskItem, load_manifest
from .streams import LayoutWriter


logger = logging.getLogger(__name__)


class LoadedItem(NamedTuple):
    item: DiskItem
    data: bytes

    @property
    def file_size(self):
        return len(self.data)


class PackedItem(NamedTuple):
    item: DiskItem
    file_size: int
    packed_data: bytes

    @property
    def packed_size(self):
        return len(self.packed_data)


class PlacedItem(NamedTuple):
    '''disk_location is relative to the start of the payloads.'''
    packed: PackedItem
    disk_location: int


def read_source(item: DiskItem, source_path) -> LoadedItem:
    path = os.path.join(source_path, item.filename)

    try:
        with open(path, 'rb') as f:
            data = f.read()
    except OSError as e:
        raise SourceFileNotFound(chain=[], message=f'cannot read \'{path}\': {e.strerror}')

    return LoadedItem(item, data)


def pack_item(loaded: LoadedItem, runner=None, tools=None) -> PackedItem:
    packer = get_packer(loaded.item.packing_method, runner=runner, tools=tools)

    return PackedItem(loaded.item, loaded.file_size, packer.pack(loaded.data))


def load_disk_item(item: DiskItem, source_path, runner=None, tools=None) -> PackedItem:
    '''Read the file of the entry and pack it with the method it indicates.'''
    logger.info('Packing %s - %s' % (item.packing_method.name, item.tag))

    try:
        packed = pack_item(read_source(item, source_path), runner=runner, tools=tools)
    except BootDiskException as e:
        e.chain.append(item.tag)
        raise

    logger.info('Finished - %s (%d -> %d bytes)' % (item.tag, packed.file_size, packed.packed_size))

    return packed


def load_disk_items(items: List[DiskItem], source_path, runner=None, tools=None, workers=1) -> List[PackedItem]:
    '''Load all the entries, the result is in the order of the manifest.

    The first failure aborts the whole build: the entries not started yet
    are cancelled.'''
    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        futures = [executor.submit(load_disk_item, item, source_path, runner, tools) for item in items]
        try:
            return [_.result() for _ in futures]
        except BaseException:
            for future in futures:
                future.cancel()
            raise


def merge_data(packed_items: List[PackedItem]) -> Tuple[List[PlacedItem], bytes]:
    '''Concatenate the payloads assigning to each one its location; the
    locations are contiguous, the rounding to even of the size is only
    in the encoding of the table.'''
    writer = LayoutWriter()
    placed = []

    for packed in packed_items:
        placed.append(PlacedItem(packed, writer.position))
        writer.write(packed.packed_data)

    return placed, writer.getvalue()


def read_bootblock(path) -> bytes:
    try:
        with open(path, 'rb') as f:
            return f.read()
    except OSError as e:
        raise SourceFileNotFound(chain=['bootblock'], message=f'cannot read \'{path}\': {e.strerror}')


def check_table_limits(entry: PlacedItem, offset):
    '''With a large enough capacity an entry can have values that the
    row of the table can't represent.'''
    packed_size = entry.packed.packed_size + (entry.packed.packed_size & 1)
    tag = entry.packed.item.tag

    if packed_size >= MAX_PACKED_SIZE:
        raise FileTableOverflow(
            chain=[tag], message='packed size %d does not fit in 24 bits' % packed_size)

    for name, value in (('location', entry.disk_location + offset), ('file size', entry.packed.file_size)):
        if value > MASK32:
            raise FileTableOverflow(chain=[tag], message='%s %d does not fit in 32 bits' % (name, value))


def make_disk(placed: List[PlacedItem], data: bytes, bootblock: bytes, capacity=DISK_SIZE) -> bytes:
    '''Put together boot block, file table and payloads and pad to fill
    the disk; nothing is produced if it doesn't fit.'''
    file_table_size = len(placed) * FILE_TABLE_ENTRY_SIZE
    offset = BOOTBLOCK_SIZE + file_table_size

    bootblock = bootblock_checksum(bootblock)

    space_needed = capacity - (offset + len(data))
    if space_needed < 0:
        raise ImageCapacityExceeded(chain=[], overflow=-space_needed)

    for entry in placed:
        check_table_limits(entry, offset)

    writer = LayoutWriter()
    writer.write(bootblock)

    for entry in placed:
        item = entry.packed.item
        row = FileTableEntry(
            file_id=item.file_id,
            location=entry.disk_location + offset,
            size_word=SizeWord(item.packing_method, item.cacheable, entry.packed.packed_size),
            file_size=entry.packed.file_size,
        )
        logger.debug('table entry %r' % row)
        row.pack(writer)

    writer.write(data)
    writer.write(bytes(space_needed))

    logger.info('FYI: you have %d bytes remaining on this disk' % space_needed)

    return writer.getvalue()


def write_image(path, disk: bytes):
    '''The image appears at its final path only when complete.'''
    fd, tmp_path = tempfile.mkstemp(prefix='.bootdisk_', dir=os.path.dirname(os.path.abspath(path)))
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(disk)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError as e:
            logger.warning('cannot remove \'%s\': %s' % (tmp_path, e))
        raise


def build_disk(source_path, config: Optional[BuildConfig] = None, runner=None) -> Optional[str]:
    '''Build the image described by the manifest into the source directory,
    it returns the path of the image or None if there is no manifest.'''
    config = config or BuildConfig()

    try:
        items = load_manifest(os.path.join(source_path, config.manifest_name))
    except ManifestMissing as e:
        logger.info(str(e))
        return None

    runner = runner or ToolRunner(timeout=config.timeout, retries=config.retries)

    logger.info('Adding files...')
    packed = load_disk_items(items, source_path, runner=runner, tools=config.tools, workers=config.workers)

    placed, data = merge_data(packed)
    bootblock = read_bootblock(os.path.join(source_path, config.bootblock_name))
    disk = make_disk(placed, data, bootblock, capacity=config.capacity)

    output = os.path.join(source_path, config.output_name)
    write_image(output, disk)
    logger.debug('written %d bytes to \'%s\'' % (len(disk), output))

    return output
