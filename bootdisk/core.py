"""
Core module for the abstraction of a binary structure on the disk

"""
from typing import Tuple, List, Dict

from .fields import Field
from .meta import MetaChunk
from .streams import Stream, LayoutWriter
from .exceptions import UnpackException


class Chunk(Field, metaclass=MetaChunk):
    """
    Together with Field is the main class that defines a structure: it's an ordered
    sequence of fields laid out one after the other, with no gaps.

    Since the image is built in one pass the packing simply appends each field
    to a LayoutWriter; unpacking reads the fields back in the same order.

    Values for the fields can be passed as keyword arguments, raw data
    (bytes or a path) can be passed as first argument to unpack it directly.
    """

    def __init__(self, data=None, name=None, father=None, **kwargs):
        super().__init__(name=name, father=father)

        for key, value in kwargs.items():
            if key not in self._meta.fields:
                raise TypeError(f"'{self.__class__.__name__}' has no field named '{key}'")
            setattr(self, key, value)

        if data is not None:
            self.logger.debug('unpacking \'%s\'' % self.__class__.__name__)
            with Stream(data) as stream:
                self.unpack(stream)

        self.relayout()

    def get_ordered_fields_name(self) -> List[str]:
        return self._meta.fields

    def get_fields(self) -> List[Tuple[str, Field]]:
        '''It returns a list of couples (name, instance) for each field.'''
        return [(_, getattr(self, _)) for _ in self.get_ordered_fields_name()]

    def __repr__(self):
        msg = []
        for field_name, field in self.get_fields():
            msg.append('%s=%s' % (field_name, repr(field)))
        return '<%s(%s)>' % (self.__class__.__name__, ','.join(msg))

    def __str__(self):
        msg = ''
        for field_name, field in self.get_fields():
            msg += '%s: %s\n' % (field_name, repr(field))
        return msg

    def init(self):
        for _, field in self.get_fields():
            field.init()

    def _get_value(self):
        return {name: field.value for name, field in self.get_fields()}

    def _set_value(self, value):
        for name, field_value in value.items():
            setattr(self, name, field_value)

    def _get_size(self):
        '''the size MUST be derived from the fields'''
        return sum(field.size for _, field in self.get_fields())

    def _get_raw(self):
        writer = LayoutWriter()
        self.pack(writer)

        return writer.getvalue()

    def _set_raw(self, raw):
        with Stream(raw) as stream:
            self.unpack(stream)

    @property
    def layout(self) -> Dict[str, Tuple[int, int]]:
        result = {}
        for name, field in self.get_fields():
            result[name] = (field.offset, field.size)

        return result

    def relayout(self, offset=0):
        '''Reset the offsets of the fields starting from the given one.'''
        self.offset = offset

        size = 0
        for field_name, field_instance in self.get_fields():
            size += field_instance.relayout(offset=offset + size)

        return size

    def pack(self, stream):
        '''Append all the fields to the writer, it returns the number of bytes written.'''
        self.relayout(offset=stream.position)

        written = 0
        for field_name, field_instance in self.get_fields():
            self.logger.debug('field %s.%s set at offset %08x' % (
                self.__class__.__name__, field_name, field_instance.offset))
            written += field_instance.pack(stream)

        return written

    def unpack(self, stream):
        for field_name, field in self.get_fields():
            offset = stream.tell()

            try:
                field.unpack(stream)
            except UnpackException as e:
                e.chain.append(self.__class__.__name__)
                raise

            field.offset = offset
