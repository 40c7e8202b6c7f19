# Docker container manipulation helpers

import os, sys, tarfile, base64, io, tempfile
import json
import logging
import docker
import atexit

from docker.errors import DockerException, ImageNotFound, NotFound
from requests.exceptions import RequestException

from ctrdebug.errors import CreateError, InspectError, PullError, ResolveError, StartError, WaitError

log = logging.getLogger(__name__)

# transport failures surface as requests exceptions, not DockerException
ENGINE_ERRORS = (DockerException, RequestException)

PRIMARY_NETWORK = 'bridge'

_cache = dict()
_localCache = None

def docker_host(hostname=None):
    global _cache, _localCache

    if hostname is None:
        if _localCache is None:
            _localCache = docker.from_env()
        return _localCache

    if hostname in _cache:
        return _cache[hostname]

    if hostname.startswith('env:'):
        # use host specification from environment variables (for CI)
        prefix = hostname[4:]
        hostvar = f'{prefix}_HOST'
        secretsvar = f'{prefix}_SECRETS'
        host, secrets = (os.environ.get(hostvar), os.environ.get(secretsvar))
        if host and secrets:
            log.debug('Using %s and %s environment variables', hostvar, secretsvar)
            tmpdir = tempfile.TemporaryDirectory()
            atexit.register(tmpdir.cleanup)
            tmpdir = tmpdir.name
            if os.path.isfile(secrets):
                with open(secrets, 'r') as f:
                    secrets = f.read()
            with io.BytesIO(base64.b64decode(secrets)) as f, tarfile.open(fileobj=f, mode='r') as tar:
                tar.extractall(path=tmpdir)
            res = docker.DockerClient(base_url=host, tls=docker.tls.TLSConfig(
                client_cert=(os.path.join(tmpdir, 'cert.pem'), os.path.join(tmpdir, 'key.pem')),
                ca_cert=os.path.join(tmpdir, 'ca.pem'),
                verify=True))
        else:
            print(f'ERROR: Both {hostvar} and {secretsvar} environment variables must be defined', file=sys.stderr)
            sys.exit(1)
    else:
        # use docker-machine host
        with open(os.path.expanduser(f'~/.docker/machine/machines/{hostname}/config.json')) as machine:
            cfg = json.load(machine)
        addr = cfg['Driver'].get('URL', None) or f"tcp://{cfg['Driver']['IPAddress']}:2376"
        certs = cfg['HostOptions']['AuthOptions']
        res = docker.DockerClient(base_url=addr, tls=docker.tls.TLSConfig(
            client_cert=(certs['ClientCertPath'], certs['ClientKeyPath']),
            ca_cert=certs['CaCertPath'],
            verify=True))

    _cache[hostname] = res
    return res

class ImageRef:
    def __init__(self, ref=''):
        self.hash = None
        self.tag = None

        i = ref.rfind('@')
        if i > 0:
            self.hash = ref[i+1:]
            ref = ref[:i]
        i = ref.rfind(':')
        if i > 0 and '/' not in ref[i+1:]:
            self.tag = ref[i+1:]
            ref = ref[:i]

        self.name = ref

    def format(self, withTag=True, withHash=True):
        res = self.name
        if withTag and self.tag:
            res = res + ':' + self.tag
        if withHash and self.hash:
            res = res + '@' + self.hash
        return res

    def __str__(self):
        return self.format()

    def find(self, docker: docker.DockerClient):
        try:
            return docker.images.get(self.format())
        except ImageNotFound:
            return None

    def ensure(self, docker: docker.DockerClient):
        """Return the local image, pulling it first if missing."""
        try:
            image = self.find(docker)
            if image is not None:
                return image
            log.info('Pulling image %s', self)
            if self.hash:
                return docker.images.pull(self.format(withTag=False))
            return docker.images.pull(self.name, tag=self.tag or 'latest')
        except ENGINE_ERRORS as err:
            raise PullError(f'cannot pull image {self}: {err}') from err

def primary_ip(container):
    """Address of ``container`` on the default network."""
    networks = container.attrs.get('NetworkSettings', {}).get('Networks') or {}
    ip = (networks.get(PRIMARY_NETWORK) or {}).get('IPAddress')
    if not ip:
        raise ResolveError(f"container {container.name} has no address on the '{PRIMARY_NETWORK}' network")
    return ip

def port_bindings(container):
    """Host bindings the engine reports, as ``{'8080/tcp': [(host_ip, host_port), ...]}``."""
    ports = container.attrs.get('NetworkSettings', {}).get('Ports') or {}
    return {port: [(b['HostIp'], b['HostPort']) for b in bindings or ()] for port, bindings in ports.items()}

class RelayContainer:
    """A detached, auto-removed helper container killed at exit unless it stops first."""

    def __init__(self, image, client, name=None, **kwargs):
        self.client = client
        log.debug('Creating container %s from %s', name, image)
        try:
            self.container = client.containers.create(str(image), name=name, detach=True, auto_remove=True, **kwargs)
        except ENGINE_ERRORS as err:
            raise CreateError(f'cannot create container {name or image}: {err}') from err

        def kill_atexit():
            try:
                self.kill()
            except ENGINE_ERRORS as err:
                log.debug('Cannot kill container %s: %s', self.short_id, err)

        self.kill_atexit = kill_atexit
        atexit.register(kill_atexit)

    @property
    def id(self):
        return self.container.id

    @property
    def short_id(self):
        return self.container.short_id

    def start(self):
        try:
            self.container.start()
        except ENGINE_ERRORS as err:
            self.forget()
            try:
                self.container.remove(force=True)
            except ENGINE_ERRORS as rmerr:
                log.debug('Cannot remove container %s: %s', self.short_id, rmerr)
            raise StartError(f'cannot start container {self.short_id}: {err}') from err

    def bindings(self):
        try:
            self.container.reload()
        except ENGINE_ERRORS as err:
            raise InspectError(f'cannot inspect container {self.short_id}: {err}') from err
        return port_bindings(self.container)

    def wait(self):
        """Block until the container stops running and return its exit status."""
        try:
            res = self.container.wait(condition='not-running')
        except NotFound:
            # already gone (auto-removed)
            res = {'StatusCode': None}
        except ENGINE_ERRORS as err:
            raise WaitError(f'waiting for container {self.short_id} failed: {err}') from err
        self.forget()
        return res.get('StatusCode')

    def forget(self):
        if self.kill_atexit:
            atexit.unregister(self.kill_atexit)
            self.kill_atexit = None

    def kill(self, signal='KILL'):
        if self.kill_atexit:
            self.forget()
            log.debug('Destroying container %s', self.short_id)
            self.container.kill(signal=signal)
