import sys, logging
from ctrdebug import errors
from ctrdebug.dockertools import docker_host

log = logging.getLogger(__name__)

class Context:
    AbortException = errors.AbortException

    def __init__(self, args, client=None):
        self.args = args
        self.hostname = getattr(args, 'hostname', None)
        self.quiet = bool(getattr(args, 'quiet', False))
        self._docker = client

    @property
    def docker(self):
        if self._docker is None:
            self._docker = docker_host(self.hostname)
        return self._docker

    @staticmethod
    def abort(*args, **kwargs):
        raise Context.AbortException(*args, **kwargs)

    def print_out(self, *args, **kwargs):
        print(*args, **kwargs)

    def print_aux(self, *args, **kwargs):
        if not self.quiet:
            print(*args, file=sys.stderr, **kwargs)

    def run(self, handler):
        try:
            handler(self)
        except Context.AbortException as err:
            log.debug('Command aborted', exc_info=True)
            print(err, file=sys.stderr)
            sys.exit(1)
