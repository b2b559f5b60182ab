#!/usr/bin/env python3
'''
Dump the file table of an image built with diskbuild

 $ adfinfo.py [-d] final.adf

with -d the boot code is disassembled too.
'''
import sys
import os
import logging

from bootdisk.images.adf import DiskImage, disassemble_bootblock


logging.basicConfig(level=logging.DEBUG if 'DEBUG' in os.environ else logging.INFO)
logger = logging.getLogger(__name__)


def usage(progname):
    print(f'usage: {progname} [-d] <adf file>')
    sys.exit(1)


def dump_bootblock(image):
    bb = image.bootblock
    print(f'''Boot block:
  Disk type:  {bb.disk_type.value!r}
  Checksum:   0x{bb.checksum.value:08x} ({"valid" if image.is_valid() else "INVALID"})
  Root block: {bb.root_block.value}''')


def dump_table(image):
    print(f'''File table ({len(image.entries)} entries, {image.table_size} bytes):
  ID   Offset    Packed    Size Method''')
    for entry in image.entries:
        print(f'  {entry}')


def dump_code(image):
    print('Boot code:')
    for insn in disassemble_bootblock(image.bootblock):
        print(f'  0x{insn.address:04x}: {insn.mnemonic:<8} {insn.op_str}')
        if insn.mnemonic == 'rts':
            break


if __name__ == '__main__':
    args = sys.argv[1:]
    disassemble = '-d' in args
    args = [_ for _ in args if _ != '-d']

    if len(args) < 1:
        usage(sys.argv[0])

    with open(args[0], 'rb') as f:
        image = DiskImage(f.read())

    dump_bootblock(image)
    dump_table(image)

    if disassemble:
        dump_code(image)
