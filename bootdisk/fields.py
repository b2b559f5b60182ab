"""
A Field is "fundamental" datatype from the format point of view, something directly
packable/unpackable without subcomponents.

The disk format is big-endian throughout so that is the default here.
"""
import logging
import struct

from .meta import FieldBase, Endianess
from .exceptions import UnpackException


class Field(FieldBase):
    """Base class to subclass from"""

    def __init__(self, *args, name=None, father=None, default=None, offset=None,
                 endianess=Endianess.BIG_ENDIAN):
        super().__init__()
        self.logger = logging.getLogger(__name__)
        self.name = name
        self.father = father
        self.default = default
        self.offset = offset
        self.endianess = endianess

        self.init()

    def init(self):
        self.value = self.value_from_default()

    def value_from_default(self):
        return self.default

    def __str__(self):
        return str(self.value)

    value = property(
        fget=lambda self: self._get_value(),
        fset=lambda self, value: self._set_value(value))

    def _get_value(self):
        return self._value

    def _set_value(self, value):
        self._value = value

    def _get_size(self):
        raise NotImplementedError(f"method {self.__class__.__name__}._get_size() not implemented")

    size = property(
        fget=lambda self: self._get_size(),
    )

    def _get_raw(self) -> bytes:
        raise NotImplementedError(f"method {self.__class__.__name__}._get_raw() not implemented")

    def _set_raw(self, value) -> None:
        raise NotImplementedError(f"method {self.__class__.__name__}._set_raw() not implemented")

    raw = property(
        fget=lambda self: self._get_raw(),
        fset=lambda self, value: self._set_raw(value),
    )

    def relayout(self, offset=0):
        self.offset = offset

        return self.size

    def pack(self, stream):
        '''Append the binary representation of the field to the writer.'''
        return stream.write(self.raw)

    def unpack(self, stream):
        try:
            raw = stream.read_exactly(self.size)
        except UnpackException as e:
            e.chain.append(self.name)
            raise

        self.raw = raw


class StructField(Field):
    """
    Simplest of the fields: mimic the behaviour of the struct module packing/unpacking
    integers to/from bytes.
    """

    def __init__(self, format, default=0, **kw):
        self.format = format
        super().__init__(default=default, **kw)

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, hex(self.value))

    def get_format(self):
        return '%s%s' % ('<' if self.endianess == Endianess.LITTLE_ENDIAN else '>', self.format)

    def _get_size(self):
        return struct.calcsize(self.get_format())

    def _get_raw(self) -> bytes:
        return struct.pack(self.get_format(), self.value)

    def _set_raw(self, raw: bytes) -> None:
        self.value = struct.unpack(self.get_format(), raw)[0]


class UInt32Field(StructField):
    '''Unsigned 32-bit big-endian integer, used for offsets and sizes.'''

    def __init__(self, **kw):
        super().__init__('I', **kw)

    def pack(self, stream):
        return stream.write_uint32(self.value)


class StringField(Field):
    """Represent a contiguous chunk of bytes of fixed length."""

    def __init__(self, n=None, **kw):
        if n is None and 'default' not in kw:
            raise ValueError(f"{self.__class__.__name__} must have 'n' or 'default' indicated!")

        self.length = n or len(kw['default'])

        super().__init__(**kw)

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, repr(self.value))

    def __len__(self):
        return self.length

    def value_from_default(self):
        return b'\x00' * self.length if not self.default else self.default

    def _get_size(self):
        return self.length

    def _set_value(self, value) -> None:
        if len(value) != self.length:
            raise ValueError(f'you are trying to set a value with the wrong size (that is {self.length} bytes)')

        super()._set_value(bytes(value))

    def _get_raw(self):
        return self.value

    def _set_raw(self, raw):
        self.value = raw


class AsciiField(StringField):
    '''Text truncated or zero-padded to a fixed width.

    The value is kept as it was given, the width is enforced only when
    the field is packed.'''

    def value_from_default(self):
        return self.default or ''

    def _set_value(self, value) -> None:
        self._value = value

    def _get_raw(self):
        return self.value.encode('ascii')[:self.length].ljust(self.length, b'\x00')

    def _set_raw(self, raw):
        self.value = raw.rstrip(b'\x00').decode('latin1')

    def pack(self, stream):
        return stream.write_ascii(self.value, self.length)
