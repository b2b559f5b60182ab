'''
# Packing strategies

Each payload of the disk can be transformed before being placed, the
method used is stored into the file table so that the loader at boot
time knows how to restore it:

  .-----------.------------------------------------------.
  | NONE      | stored as it is                          |
  | SHRINKLER | shrinkler, data mode                     |
  | ZX0       | salvador (ZX0 format)                    |
  | LZ        | reserved, not implemented                |
  | DEFLATE   | zopfli, raw deflate stream               |
  | TRIM      | trailing zeroes removed                  |
  '-----------'------------------------------------------'

The compressors are external tools, they are invoked through a ToolRunner
so that they can be replaced when testing.
'''
import logging

from ..enum import PackingMethod
from ..exceptions import InvalidPackingMethod, UnimplementedPackingMethod
from .process import ToolRunner


logger = logging.getLogger(__name__)


def trim(data: bytes) -> bytes:
    '''Remove the zeroes at the end, the first byte is always kept.'''
    pos = len(data) - 1

    while pos > 0 and data[pos] == 0x00:
        pos -= 1

    return data[:pos + 1]


class Packer(object):
    method = None

    def __init__(self, runner=None):
        self.runner = runner

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, self.method)

    def pack(self, data: bytes) -> bytes:
        raise NotImplementedError(f"method {self.__class__.__name__}.pack() not implemented")


class NonePacker(Packer):
    method = PackingMethod.NONE

    def pack(self, data):
        return data


class TrimPacker(Packer):
    '''Lossy: the original size recorded into the file table tells the
    loader how many zeroes to put back.'''
    method = PackingMethod.TRIM

    def pack(self, data):
        return trim(data)


class LZPacker(Packer):
    method = PackingMethod.LZ

    def pack(self, data):
        raise UnimplementedPackingMethod(chain=[], message='packing method %s is not implemented' % self.method.name)


class ExternalPacker(Packer):
    tool = None
    args = []
    output_suffix = None

    def __init__(self, runner=None, tool=None):
        super().__init__(runner=runner or ToolRunner())
        if tool:
            self.tool = tool

    def pack(self, data):
        packed = self.runner.run(self.tool, self.args, data, output_suffix=self.output_suffix)
        logger.debug('%s: %d -> %d bytes' % (self.tool, len(data), len(packed)))

        return packed


class ShrinklerPacker(ExternalPacker):
    method = PackingMethod.SHRINKLER
    tool = 'shrinkler'
    args = ['-d', '{input}', '{output}']


class ZX0Packer(ExternalPacker):
    method = PackingMethod.ZX0
    tool = 'salvador'
    args = ['{input}', '{output}']


class DeflatePacker(ExternalPacker):
    '''zopfli chooses by itself the name of the output.'''
    method = PackingMethod.DEFLATE
    tool = 'zopfli'
    args = ['--deflate', '{input}']
    output_suffix = '.deflate'


method2packer = {
    PackingMethod.NONE: NonePacker,
    PackingMethod.SHRINKLER: ShrinklerPacker,
    PackingMethod.ZX0: ZX0Packer,
    PackingMethod.LZ: LZPacker,
    PackingMethod.DEFLATE: DeflatePacker,
    PackingMethod.TRIM: TrimPacker,
}


def get_packer(method, runner=None, tools=None) -> Packer:
    '''Build the packer for the given method, "tools" can override the
    executable used by the external packers (keyed by method).'''
    try:
        packer_cls = method2packer[method]
    except (KeyError, TypeError):
        raise InvalidPackingMethod(chain=[], message='invalid packing method %r' % (method,))

    if issubclass(packer_cls, ExternalPacker):
        return packer_cls(runner=runner, tool=(tools or {}).get(method))

    return packer_cls(runner=runner)


def pack(method, data, runner=None, tools=None) -> bytes:
    return get_packer(method, runner=runner, tools=tools).pack(data)
