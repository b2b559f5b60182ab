class BootDiskException(Exception):
    '''Base class to extend in order to throw exception in bootdisk.

    It takes as first argument the chain of the layers that caused the
    exception (usually the tag of the disk item and/or the name of a field)
    and optionally a human readable message.
    '''

    def __init__(self, chain, message=None):
        self.chain = chain
        self.message = message
        super().__init__(message)

    def __str__(self):
        msg = self.message or self.__class__.__name__
        if self.chain:
            return '%s (%s)' % (msg, ' > '.join(str(_) for _ in self.chain))

        return msg


class ManifestMissing(BootDiskException):
    '''The manifest is not there: the build is simply a no-op.'''
    pass


class ManifestParseError(BootDiskException):
    pass


class SourceFileNotFound(BootDiskException):
    pass


class InvalidBootSectorSize(BootDiskException):
    pass


class InvalidPackingMethod(BootDiskException):
    pass


class UnimplementedPackingMethod(InvalidPackingMethod):
    '''The method is declared in the table encoding but nobody knows how to pack it.'''
    pass


class PackingProcessFailed(BootDiskException):
    '''The external packer failed: "transient" marks the failures worth a retry.'''
    transient = False


class TemporaryIOFailure(BootDiskException):
    pass


class ImageCapacityExceeded(BootDiskException):

    def __init__(self, chain, overflow):
        self.overflow = overflow
        super().__init__(chain, 'disk is %d bytes over budget!' % overflow)


class FileTableOverflow(BootDiskException):
    '''A value of the entry doesn't fit in its field of the file table.'''
    pass


class UnpackException(BootDiskException):
    '''Not enough data to read back a structure.'''
    pass
