'''
The manifest is a JSON file (disk.json) listing in order the files to put
on the disk

    [
        {"FileID": "MAIN", "Filename": "main.bin", "PackingMethod": 1, "Cacheable": false},
        {"FileID": "MUSI", "Filename": "music.mod", "PackingMethod": 4, "Cacheable": true}
    ]

the order is the one of the file table and of the payloads.
'''
import json
import logging
import os
from typing import List, NamedTuple

from .enum import PackingMethod
from .exceptions import ManifestMissing, ManifestParseError, InvalidPackingMethod


logger = logging.getLogger(__name__)


class DiskItem(NamedTuple):
    file_id: str
    filename: str
    packing_method: PackingMethod
    cacheable: bool = False

    @property
    def tag(self):
        return f'{self.file_id} - [{self.filename}]'


def _get(record, key, _type, chain):
    if key not in record:
        raise ManifestParseError(chain=chain, message=f'missing field \'{key}\'')

    value = record[key]
    # bool is a subclass of int, we don't want True as a method
    if not isinstance(value, _type) or (_type is int and isinstance(value, bool)):
        raise ManifestParseError(chain=chain, message=f'field \'{key}\' must be of type {_type.__name__}')

    return value


def parse_cacheable(record, chain) -> bool:
    '''Older manifests use 0/1 for the flag.'''
    value = record.get('Cacheable', False)

    if isinstance(value, bool):
        return value

    if isinstance(value, int) and value in (0, 1):
        return bool(value)

    raise ManifestParseError(chain=chain, message='field \'Cacheable\' must be a bool or 0/1')


def parse_record(record, index) -> DiskItem:
    chain = [f'entry #{index}']

    if not isinstance(record, dict):
        raise ManifestParseError(chain=chain, message='entry must be an object')

    file_id = _get(record, 'FileID', str, chain)
    filename = _get(record, 'Filename', str, chain)
    method = _get(record, 'PackingMethod', int, chain)
    cacheable = parse_cacheable(record, chain)

    if not file_id.isascii():
        raise ManifestParseError(chain=chain, message=f'FileID \'{file_id}\' is not ASCII')

    try:
        method = PackingMethod(method)
    except ValueError:
        raise InvalidPackingMethod(
            chain=[f'{file_id} - [{filename}]'],
            message=f'Invalid packing method {method}')

    return DiskItem(file_id, filename, method, cacheable)


def parse_manifest(content: str) -> List[DiskItem]:
    try:
        records = json.loads(content)
    except ValueError as e:
        raise ManifestParseError(chain=[], message=f'manifest is not valid JSON: {e}')

    if not isinstance(records, list):
        raise ManifestParseError(chain=[], message='manifest must be a list of entries')

    return [parse_record(record, idx) for idx, record in enumerate(records)]


def load_manifest(path) -> List[DiskItem]:
    if not os.path.isfile(path):
        raise ManifestMissing(chain=[], message=f'Cannot find {os.path.basename(path)}!')

    logger.debug('reading manifest from \'%s\'' % path)

    try:
        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestParseError(chain=[], message=f'cannot read manifest: {e}')

    return parse_manifest(content)
