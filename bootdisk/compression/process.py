'''
Invocation of the external packers.

The packers are command line tools that work on files so each invocation
gets its own private scratch directory with the input written into it;
the directory is removed whatever happens.
'''
import logging
import os
import shutil
import subprocess
import tempfile

from ..exceptions import PackingProcessFailed, TemporaryIOFailure


logger = logging.getLogger(__name__)


class ToolRunner(object):
    '''Run a tool over some bytes and give back the bytes it produced.

    The arguments can use the placeholders "{input}" and "{output}" that are
    replaced with the paths of the scratch files. Tools that decide by
    themselves where to write (appending an extension to the input) are
    handled with "output_suffix".

    Failures of the process (non-zero exit status or timeout) are retried
    "retries" times; a tool that can't be executed at all is not.
    '''

    def __init__(self, timeout=None, retries=0, tmpdir=None):
        self.timeout = timeout
        self.retries = retries
        self.tmpdir = tmpdir

    def run(self, tool, args, data, output_suffix=None):
        attempt = 0
        while True:
            try:
                return self._run_once(tool, args, data, output_suffix)
            except PackingProcessFailed as e:
                if not e.transient or attempt >= self.retries:
                    raise
                attempt += 1
                logger.warning('%s failed (%s), retrying %d/%d' % (tool, e.message, attempt, self.retries))

    def _run_once(self, tool, args, data, output_suffix):
        try:
            scratch = tempfile.mkdtemp(prefix='bootdisk_%s_' % os.path.basename(tool), dir=self.tmpdir)
        except OSError as e:
            raise TemporaryIOFailure(chain=[tool], message='cannot create scratch directory: %s' % e)

        try:
            infile = os.path.join(scratch, 'in')
            outfile = infile + output_suffix if output_suffix else os.path.join(scratch, 'out')

            try:
                with open(infile, 'wb') as f:
                    f.write(data)
            except OSError as e:
                raise TemporaryIOFailure(chain=[tool], message='cannot write scratch input: %s' % e)

            argv = [tool] + [_.format(input=infile, output=outfile) for _ in args]
            self._execute(argv)

            try:
                with open(outfile, 'rb') as f:
                    return f.read()
            except FileNotFoundError:
                raise PackingProcessFailed(chain=[tool], message='%s produced no output' % tool)
            except OSError as e:
                raise TemporaryIOFailure(chain=[tool], message='cannot read scratch output: %s' % e)
        finally:
            self._cleanup(scratch)

    def _execute(self, argv):
        tool = argv[0]
        logger.debug('running %s' % ' '.join(argv))

        try:
            subprocess.run(argv, check=True, timeout=self.timeout,
                           stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        except subprocess.CalledProcessError as e:
            stderr = e.stderr.decode(errors='replace').strip() if e.stderr else ''
            raise _transient(PackingProcessFailed(
                chain=[tool],
                message='%s exited with status %d%s' % (tool, e.returncode, ': ' + stderr if stderr else '')))
        except subprocess.TimeoutExpired:
            raise _transient(PackingProcessFailed(
                chain=[tool], message='%s timed out after %s seconds' % (tool, self.timeout)))
        except OSError as e:
            raise PackingProcessFailed(chain=[tool], message='cannot execute %s: %s' % (tool, e))

    def _cleanup(self, scratch):
        try:
            shutil.rmtree(scratch)
        except OSError as e:
            logger.warning('cannot remove scratch directory \'%s\': %s' % (scratch, e))


def _transient(exc):
    exc.transient = True
    return exc
