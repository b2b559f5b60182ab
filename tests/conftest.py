import json
import os

import pytest


class FakeRunner(object):
    '''Stand-in for ToolRunner: no process, no file, just a function of the data.'''

    def __init__(self, transform=lambda data: data[::-1], exception=None):
        self.transform = transform
        self.exception = exception
        self.calls = []

    def run(self, tool, args, data, output_suffix=None):
        self.calls.append((tool, list(args), data, output_suffix))
        if self.exception:
            raise self.exception

        return self.transform(data)


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def bootblock():
    data = bytearray(os.urandom(0x400))
    data[:4] = b'DOS\x00'
    return bytes(data)


@pytest.fixture
def make_source(tmp_path, bootblock):
    '''Populate a build directory with the manifest, the boot block and the files.'''
    def _make_source(entries, files, bootblock=bootblock):
        (tmp_path / 'disk.json').write_text(json.dumps(entries))
        if bootblock is not None:
            (tmp_path / 'bootblock').write_bytes(bootblock)
        for name, data in files.items():
            (tmp_path / name).write_bytes(data)

        return tmp_path

    return _make_source
