import io
import logging
import struct

from .exceptions import UnpackException


logger = logging.getLogger(__name__)


class Stream(object):
    '''This is a simple wrapper around bytes/file object to
    uniform its properties: reading a structure back needs exactly
    the number of bytes asked, otherwise the data is truncated.'''
    def __init__(self, obj):
        '''Here we normalize the object in order to be accessed as a normal file object'''
        self._type = type(obj)
        self.obj = obj

        init_method_name = 'init_%s' % self.obj.__class__.__name__

        init_method = getattr(self, init_method_name)

        init_method()

    def __getattr__(self, name):
        return getattr(self.obj, name)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.obj.close()

    def init_str(self):
        '''We think this is a path'''
        logger.debug('opening path \'%s\'' % self.obj)
        self.obj = open(self.obj, 'rb')

    def init_bytes(self):
        '''We think these are raw bytes'''
        self.obj = io.BytesIO(self.obj)

    def init_bytearray(self):
        self.obj = io.BytesIO(bytes(self.obj))

    def read_exactly(self, size):
        offset = self.obj.tell()
        data = self.obj.read(size)

        if len(data) != size:
            raise UnpackException(
                chain=[],
                message='wanted %d bytes at offset 0x%x but only %d available' % (size, offset, len(data)))

        return data


class LayoutWriter(object):
    '''Append-only accumulator of big-endian binary data.

    Once written the data can't be touched anymore, the only thing
    we can ask is the length written so far (that is the offset where
    the next write lands).'''

    def __init__(self):
        self._chunks = []
        self._length = 0

    def __len__(self):
        return self._length

    @property
    def position(self):
        return self._length

    def write(self, data):
        data = bytes(data)
        self._chunks.append(data)
        self._length += len(data)

        return len(data)

    def write_ascii(self, text, length):
        '''Write the text as ASCII truncated or zero-padded to exactly "length" bytes.'''
        raw = text.encode('ascii')[:length] if isinstance(text, str) else bytes(text[:length])

        return self.write(raw.ljust(length, b'\x00'))

    def write_int32(self, value):
        return self.write(struct.pack('>i', value))

    def write_uint32(self, value):
        return self.write(struct.pack('>I', value))

    def getvalue(self):
        return b''.join(self._chunks)
