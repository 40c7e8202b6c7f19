# Relay ("port-forwarder") container orchestration

import logging
import uuid

from ctrdebug.dockertools import ENGINE_ERRORS, ImageRef, RelayContainer
from ctrdebug.errors import InspectError, ParseError
from ctrdebug.forwarding import parse_port_specs

log = logging.getLogger(__name__)

RELAY_IMAGE = 'nixery.dev/shell/socat:latest'

def relay_command(listen_port, target_ip, target_port):
    return [f'TCP-LISTEN:{listen_port},fork', f'TCP-CONNECT:{target_ip}:{target_port}']

class SocatLauncher:
    """Runs socat in a helper container, listening on a published port."""

    def __init__(self, client, image=RELAY_IMAGE):
        self.client = client
        self.image = ImageRef(image) if isinstance(image, str) else image

    def ensure_image(self):
        return self.image.ensure(self.client)

    def spawn(self, listen_port, target_ip, target_port, port_spec) -> RelayContainer:
        container = RelayContainer(self.image, client=self.client,
            name=f'port-forwarder-{uuid.uuid4().hex[:12]}',
            entrypoint=['socat'],
            command=relay_command(listen_port, target_ip, target_port),
            ports=parse_port_specs([port_spec]))
        container.start()
        return container

class RelaySession:
    CREATED = 'created'
    RUNNING = 'running'
    STOPPED = 'stopped'
    KILLED = 'killed'

    def __init__(self, handle, rules):
        self.handle = handle
        self.rules = list(rules)
        self.bindings = {}
        self.state = self.CREATED

    @property
    def id(self):
        return self.handle.id

    def wait(self):
        status = self.handle.wait()
        if self.state == self.RUNNING:
            self.state = self.STOPPED
        return status

    def kill(self):
        self.state = self.KILLED
        self.handle.kill('KILL')

class Orchestrator:
    def __init__(self, launcher, aux=None):
        self.launcher = launcher
        self.aux = aux or (lambda *args: None)

    def start(self, rules) -> RelaySession:
        rules = list(rules)
        if not rules:
            raise ValueError('at least one forwarding rule is required')

        # socat listens on TCP only
        rule = rules[0]
        if rule.protocol != 'tcp':
            raise ParseError(f'only TCP can be forwarded, not {rule.protocol}', rule.target_port)

        self.launcher.ensure_image()

        # one relay serves the first rule only
        for ignored in rules[1:]:
            self.aux(f'Ignoring forwarding {ignored}: only one forwarding per session is supported')

        handle = self.launcher.spawn(rule.port, rule.target_ip, rule.port, rule.port_spec)
        session = RelaySession(handle, [rule])
        session.state = RelaySession.RUNNING
        log.debug('Started port-forwarder %s for %s', session.id, rule)

        try:
            session.bindings = handle.bindings()
        except InspectError:
            try:
                session.kill()
            except ENGINE_ERRORS as err:
                log.debug('Cannot kill port-forwarder %s: %s', session.id, err)
            raise
        return session
