"""
# Bootdisk: trackloaded floppy images from a manifest.

A bootable disk here is not a filesystem but a flat image read at boot by
a custom loader: the boot block, a table describing each file and then
the files one after the other, each one optionally packed.

The structures on the disk are described declaratively: a Chunk is an
ordered sequence of fields and two operations are defined on it

 1. pack(): append the binary representation to a LayoutWriter,
    an append-only big-endian buffer that is the only way the image
    is written.

 2. unpack(): read the fields back from a Stream, used to inspect
    an image already built.

The build itself goes through the following steps

 1. the manifest is parsed into DiskItem's
 2. each item is read and packed (in parallel)
 3. the packed data are merged in the order of the manifest
 4. the boot block is checksummed, the table written and the image
    padded to the capacity of the disk

"""
