import os

from .enum import PackingMethod
from .images.adf import DISK_SIZE


ENV_PREFIX = 'BOOTDISK_'


def _int_from_environ(environ, name, default):
    key = ENV_PREFIX + name
    if key not in environ:
        return default

    try:
        # allow 0x-prefixed values, disk sizes are always written in hex
        return int(environ[key], 0)
    except ValueError:
        raise ValueError(f'{key} must be an integer, not \'{environ[key]}\'')


class BuildConfig(object):
    '''Knobs of a build, all with a sensible default.'''

    def __init__(self, capacity=DISK_SIZE, workers=None, timeout=300, retries=0,
                 manifest_name='disk.json', bootblock_name='bootblock', output_name='final.adf',
                 tools=None):
        if capacity <= 0:
            raise ValueError(f'capacity must be positive, not {capacity}')

        self.capacity = capacity
        self.workers = workers or min(32, os.cpu_count() or 1)
        self.timeout = timeout or None
        self.retries = retries
        self.manifest_name = manifest_name
        self.bootblock_name = bootblock_name
        self.output_name = output_name
        self.tools = tools or {}

    def __repr__(self):
        return '<%s(capacity=0x%x,workers=%d,timeout=%s,retries=%d)>' % (
            self.__class__.__name__, self.capacity, self.workers, self.timeout, self.retries)

    @classmethod
    def from_environ(cls, environ=None):
        '''Read BOOTDISK_CAPACITY, BOOTDISK_WORKERS, BOOTDISK_TIMEOUT, BOOTDISK_RETRIES
        and the paths of the packers BOOTDISK_SHRINKLER, BOOTDISK_SALVADOR, BOOTDISK_ZOPFLI.'''
        environ = os.environ if environ is None else environ

        tools = {}
        for method, name in (
                (PackingMethod.SHRINKLER, 'SHRINKLER'),
                (PackingMethod.ZX0, 'SALVADOR'),
                (PackingMethod.DEFLATE, 'ZOPFLI')):
            if ENV_PREFIX + name in environ:
                tools[method] = environ[ENV_PREFIX + name]

        return cls(
            capacity=_int_from_environ(environ, 'CAPACITY', DISK_SIZE),
            workers=_int_from_environ(environ, 'WORKERS', None),
            timeout=_int_from_environ(environ, 'TIMEOUT', 300),
            retries=_int_from_environ(environ, 'RETRIES', 0),
            tools=tools,
        )
