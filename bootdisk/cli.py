'''
Command line entry point

    $ diskbuild <folder>

builds <folder>/final.adf from <folder>/disk.json and <folder>/bootblock.
Set DEBUG in the environment to have the layout details logged.
'''
import logging
import os
import sys

from .build import build_disk
from .config import BuildConfig
from .exceptions import BootDiskException


logger = logging.getLogger(__name__)

RED = '\x1b[31m'
RESET = '\x1b[0m'

BANNER = r'''.__.  .__.  .______.______________________ .
\\ |__|  |__|  ___//                      \\
| ____/ ____/ ___/:    THE TWITCH ELITE   //
|  |__|  |__|  |  |      ..PRESENTS..     \\
|  |  |  |  | :|  |                       //
>> |  | :|  |  `  >>  Disk Builder - PY  <<
| :|  |  |  |_____|                       \\
|  |  |  `  |::.tHE                       //
|  `  |_____|tWITCH                       \\
//____|::::::.eLITE::.________________fZn_//
'''


def usage(progname):
    print(f'''{RED}ERROR: No folder path provided!{RESET}

usage: {progname} <folder-path>

The folder must contain:
  - disk.json (configuration file)
  - bootblock (binary file)''', file=sys.stderr)


def main(argv=None, environ=None):
    argv = sys.argv if argv is None else argv
    environ = os.environ if environ is None else environ

    logging.basicConfig(
        level=logging.DEBUG if 'DEBUG' in environ else logging.INFO,
        format='%(message)s',
    )

    print(BANNER)

    if len(argv) < 2:
        usage(os.path.basename(argv[0]))
        return 1

    folder = argv[1]
    logger.info(f'Opening folder - {folder}')

    try:
        config = BuildConfig.from_environ(environ)
        build_disk(folder, config=config)
    except (BootDiskException, OSError, ValueError) as e:
        print(f'{RED}ERROR: {e}{RESET}', file=sys.stderr)
        return 1

    return 0


def run():
    sys.exit(main())
