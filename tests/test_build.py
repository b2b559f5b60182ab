import struct

import pytest

from bootdisk.build import (
    PackedItem,
    build_disk,
    load_disk_item,
    load_disk_items,
    make_disk,
    merge_data,
)
from bootdisk.common.checksum import is_valid_bootblock
from bootdisk.config import BuildConfig
from bootdisk.enum import PackingMethod
from bootdisk.exceptions import (
    FileTableOverflow,
    ImageCapacityExceeded,
    InvalidBootSectorSize,
    ManifestParseError,
    PackingProcessFailed,
    SourceFileNotFound,
)
from bootdisk.images.adf import DiskImage, SizeWord
from bootdisk.manifest import DiskItem

from conftest import FakeRunner


DISK_SIZE = 901120


def _packed(file_id, data, method=PackingMethod.NONE, cacheable=False, file_size=None):
    item = DiskItem(file_id, file_id.lower() + '.bin', method, cacheable)
    return PackedItem(item, len(data) if file_size is None else file_size, data)


def test_merge_data_locations_are_contiguous():
    packed = [
        _packed('AAAA', b'\x01' * 10),
        _packed('BBBB', b''),
        _packed('CCCC', b'\x03' * 7),
    ]

    placed, data = merge_data(packed)

    assert [_.disk_location for _ in placed] == [0, 10, 10]
    assert [_.packed for _ in placed] == packed
    assert data == b'\x01' * 10 + b'\x03' * 7


def test_merge_data_odd_sizes_are_not_padded():
    placed, data = merge_data([_packed('A', b'\x01' * 3), _packed('B', b'\x02' * 4)])

    assert [_.disk_location for _ in placed] == [0, 3]
    assert len(data) == 7


def test_make_disk_layout(bootblock):
    packed = [
        _packed('MAIN', b'\x01' * 11, PackingMethod.SHRINKLER, cacheable=True, file_size=100),
        _packed('GFX', b'\x02' * 4, PackingMethod.TRIM, file_size=64),
        _packed('LONGNAME', b'\x03' * 5, PackingMethod.DEFLATE, file_size=5),
    ]
    placed, data = merge_data(packed)

    disk = make_disk(placed, data, bootblock)

    assert len(disk) == DISK_SIZE
    assert is_valid_bootblock(disk[:0x400])
    assert disk[:4] == bootblock[:4]
    assert disk[8:0x400] == bootblock[8:]

    table_end = 0x400 + 3 * 16
    assert disk[table_end:table_end + 20] == data
    assert disk[table_end + 20:] == b'\x00' * (DISK_SIZE - table_end - 20)

    image = DiskImage(disk)

    assert [_.file_id.value for _ in image.entries] == ['MAIN', 'GFX', 'LONG']
    assert [_.location.value for _ in image.entries] == [table_end, table_end + 11, table_end + 15]
    assert [_.file_size.value for _ in image.entries] == [100, 64, 5]
    assert [_.size_word.value for _ in image.entries] == [
        SizeWord(PackingMethod.SHRINKLER, True, 12),
        SizeWord(PackingMethod.TRIM, False, 4),
        SizeWord(PackingMethod.DEFLATE, False, 6),
    ]
    assert image.payload(image.get_entry('GFX')) == b'\x02' * 4


def test_make_disk_raw_size_word(bootblock):
    placed, data = merge_data([_packed('A', b'\x01' * 9, PackingMethod.ZX0, cacheable=True, file_size=20)])

    disk = make_disk(placed, data, bootblock)

    assert struct.unpack('>4s3I', disk[0x400:0x410]) == (
        b'A\x00\x00\x00',
        0x410,
        (2 << 28) | (1 << 24) | 10,
        20,
    )


def test_make_disk_empty(bootblock):
    disk = make_disk([], b'', bootblock)

    assert len(disk) == DISK_SIZE
    assert disk[0x400:] == b'\x00' * (DISK_SIZE - 0x400)


def test_make_disk_exactly_full(bootblock):
    placed, data = merge_data([_packed('A', b'\xaa' * (DISK_SIZE - 0x400 - 16))])

    disk = make_disk(placed, data, bootblock)

    assert len(disk) == DISK_SIZE
    assert disk[-1] == 0xaa


def test_make_disk_over_capacity(bootblock):
    placed, data = merge_data([_packed('A', b'\xaa' * (DISK_SIZE - 0x400 - 16 + 5))])

    with pytest.raises(ImageCapacityExceeded) as exc:
        make_disk(placed, data, bootblock)

    assert exc.value.overflow == 5
    assert 'disk is 5 bytes over budget!' in str(exc.value)


def test_make_disk_custom_capacity(bootblock):
    placed, data = merge_data([_packed('A', b'\xaa' * 10)])

    assert len(make_disk(placed, data, bootblock, capacity=0x800)) == 0x800

    with pytest.raises(ImageCapacityExceeded):
        make_disk(placed, data, bootblock, capacity=0x400 + 16 + 9)


def test_make_disk_packed_size_over_24_bits(bootblock):
    # odd, so it becomes 1 << 24 once made even
    placed, data = merge_data([_packed('A', b'\xaa' * 0xffffff)])

    with pytest.raises(FileTableOverflow) as exc:
        make_disk(placed, data, bootblock, capacity=0x2000000)

    assert exc.value.chain == ['A - [a.bin]']
    assert 'does not fit in 24 bits' in str(exc.value)


def test_make_disk_largest_packed_size(bootblock):
    placed, data = merge_data([_packed('A', b'\xaa' * 0xfffffe)])

    disk = make_disk(placed, data, bootblock, capacity=0x2000000)

    assert disk[0x408:0x40c] == b'\x00\xff\xff\xfe'


def test_make_disk_unsigned_file_size(bootblock):
    placed, data = merge_data([_packed('A', b'\xaa' * 4, method=PackingMethod.ZX0, file_size=0x80000000)])

    disk = make_disk(placed, data, bootblock)

    assert DiskImage(disk).get_entry('A').file_size.value == 0x80000000


def test_make_disk_file_size_over_32_bits(bootblock):
    placed, data = merge_data([_packed('A', b'\xaa' * 4, method=PackingMethod.ZX0, file_size=1 << 32)])

    with pytest.raises(FileTableOverflow) as exc:
        make_disk(placed, data, bootblock)

    assert exc.value.chain == ['A - [a.bin]']


@pytest.mark.parametrize('size', [0x3ff, 0x401])
def test_make_disk_bad_bootblock(size):
    with pytest.raises(InvalidBootSectorSize):
        make_disk([], b'', b'\x00' * size)


def test_load_disk_item(tmp_path, fake_runner):
    (tmp_path / 'a.bin').write_bytes(b'\x01\x02\x03')

    packed = load_disk_item(DiskItem('A', 'a.bin', PackingMethod.SHRINKLER, False), str(tmp_path), runner=fake_runner)

    assert packed.file_size == 3
    assert packed.packed_data == b'\x03\x02\x01'
    assert packed.packed_size == 3


def test_load_disk_item_trim_keeps_original_size(tmp_path):
    (tmp_path / 'a.bin').write_bytes(b'\x01\x02' + b'\x00' * 30)

    packed = load_disk_item(DiskItem('A', 'a.bin', PackingMethod.TRIM, False), str(tmp_path))

    assert packed.file_size == 32
    assert packed.packed_data == b'\x01\x02'


def test_load_disk_item_missing_source(tmp_path):
    with pytest.raises(SourceFileNotFound) as exc:
        load_disk_item(DiskItem('A', 'a.bin', PackingMethod.NONE, False), str(tmp_path))

    assert exc.value.chain == ['A - [a.bin]']


def test_load_disk_items_keeps_manifest_order(tmp_path):
    items = []
    for idx in range(20):
        (tmp_path / f'{idx}.bin').write_bytes(bytes([idx]) * (idx + 1))
        items.append(DiskItem(f'F{idx}', f'{idx}.bin', PackingMethod.ZX0, False))

    runner = FakeRunner(transform=lambda data: data[:1])

    packed = load_disk_items(items, str(tmp_path), runner=runner, workers=4)

    assert [_.item for _ in packed] == items
    assert [_.packed_data for _ in packed] == [bytes([_]) for _ in range(20)]
    assert [_.file_size for _ in packed] == list(range(1, 21))


def test_load_disk_items_failure_aborts(tmp_path):
    (tmp_path / 'a.bin').write_bytes(b'\x01')
    runner = FakeRunner(exception=PackingProcessFailed(chain=['shrinkler'], message='boom'))
    items = [
        DiskItem('A', 'a.bin', PackingMethod.NONE, False),
        DiskItem('B', 'a.bin', PackingMethod.SHRINKLER, False),
    ]

    with pytest.raises(PackingProcessFailed) as exc:
        load_disk_items(items, str(tmp_path), runner=runner, workers=2)

    assert exc.value.chain == ['shrinkler', 'B - [a.bin]']


def test_build_disk(make_source):
    """One uncompressed file of 10 bytes on a standard disk."""
    payload = bytes(range(10))
    source = make_source(
        [{'FileID': 'TEST', 'Filename': 'a.bin', 'PackingMethod': 0, 'Cacheable': False}],
        {'a.bin': payload},
    )

    output = build_disk(str(source))

    assert output == str(source / 'final.adf')

    disk = (source / 'final.adf').read_bytes()

    assert len(disk) == DISK_SIZE
    assert disk[0x400:0x410] == b'TEST' + struct.pack('>3I', 0x410, 10, 10)

    offset = struct.unpack('>I', disk[0x404:0x408])[0]
    assert disk[offset:offset + 10] == payload
    assert is_valid_bootblock(disk[:0x400])


def test_build_disk_with_packers(make_source, fake_runner):
    source = make_source(
        [
            {'FileID': 'CODE', 'Filename': 'code.bin', 'PackingMethod': 1, 'Cacheable': True},
            {'FileID': 'DATA', 'Filename': 'data.bin', 'PackingMethod': 5, 'Cacheable': False},
            {'FileID': 'MODS', 'Filename': 'mods.bin', 'PackingMethod': 4, 'Cacheable': True},
        ],
        {
            'code.bin': b'\x01\x02\x03',
            'data.bin': b'\x04' + b'\x00' * 9,
            'mods.bin': b'\x05\x06',
        },
    )

    build_disk(str(source), config=BuildConfig(workers=3), runner=fake_runner)

    image = DiskImage((source / 'final.adf').read_bytes())

    assert image.is_valid()
    assert [(_.file_id.value, _.file_size.value, _.size_word.value) for _ in image.entries] == [
        ('CODE', 3, SizeWord(PackingMethod.SHRINKLER, True, 4)),
        ('DATA', 10, SizeWord(PackingMethod.TRIM, False, 2)),
        ('MODS', 2, SizeWord(PackingMethod.DEFLATE, True, 2)),
    ]
    assert image.payload(image.get_entry('MODS')) == b'\x06\x05'
    assert sorted(_[0] for _ in fake_runner.calls) == ['shrinkler', 'zopfli']


def test_build_disk_without_manifest(tmp_path):
    assert build_disk(str(tmp_path)) is None
    assert not (tmp_path / 'final.adf').exists()


def test_build_disk_invalid_manifest(make_source):
    source = make_source([{'FileID': 'TEST'}], {})

    with pytest.raises(ManifestParseError):
        build_disk(str(source))


def test_build_disk_missing_bootblock(make_source):
    source = make_source(
        [{'FileID': 'TEST', 'Filename': 'a.bin', 'PackingMethod': 0}],
        {'a.bin': b'\x01'},
        bootblock=None,
    )

    with pytest.raises(SourceFileNotFound):
        build_disk(str(source))

    assert not (source / 'final.adf').exists()


def test_build_disk_over_capacity_writes_nothing(make_source):
    source = make_source(
        [{'FileID': 'TEST', 'Filename': 'a.bin', 'PackingMethod': 0}],
        {'a.bin': b'\x01' * 0x800},
    )

    with pytest.raises(ImageCapacityExceeded):
        build_disk(str(source), config=BuildConfig(capacity=0x800))

    assert sorted(_.name for _ in source.iterdir()) == ['a.bin', 'bootblock', 'disk.json']


def test_build_disk_packer_failure_writes_nothing(make_source):
    source = make_source(
        [{'FileID': 'TEST', 'Filename': 'a.bin', 'PackingMethod': 2}],
        {'a.bin': b'\x01'},
    )
    runner = FakeRunner(exception=PackingProcessFailed(chain=['salvador'], message='boom'))

    with pytest.raises(PackingProcessFailed):
        build_disk(str(source), runner=runner)

    assert not (source / 'final.adf').exists()


def test_build_disk_packed_size_over_24_bits_writes_nothing(make_source):
    source = make_source(
        [{'FileID': 'HUGE', 'Filename': 'a.bin', 'PackingMethod': 0}],
        {'a.bin': b'\x01' * 0x1000000},
    )

    with pytest.raises(FileTableOverflow) as exc:
        build_disk(str(source), config=BuildConfig(capacity=0x2000000))

    assert exc.value.chain == ['HUGE - [a.bin]']
    assert not (source / 'final.adf').exists()
