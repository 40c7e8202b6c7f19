# Forwarding specification parser
#
# Accepted forms (kinda sorta as in ssh -L):
#   TARGET_PORT                                  random localhost port -> TARGET_IP:TARGET_PORT
#   LOCAL_PORT:TARGET_PORT                       localhost:LOCAL_PORT -> TARGET_IP:TARGET_PORT
#   TARGET_IP:TARGET_PORT                        random localhost port -> TARGET_IP:TARGET_PORT
#   LOCAL_PORT:TARGET_IP:TARGET_PORT
#   LOCAL_IP:LOCAL_PORT:TARGET_IP:TARGET_PORT
#
# The two-field form is ambiguous: if the first field is a valid port number
# it is taken as LOCAL_PORT, otherwise as TARGET_IP.

import re
from collections import namedtuple

from ctrdebug.errors import ParseError

LOCALHOST = '127.0.0.1'
PROTOCOLS = ('tcp', 'udp')
DEFAULT_PROTOCOL = 'tcp'
HOSTNAME = re.compile(r'[A-Za-z0-9._-]+')

def is_port_number(value):
    """ASCII decimal in 0..65535; 0 lets the engine pick a port."""
    if not (value.isascii() and value.isdigit()):
        return False
    return int(value) <= 65535

def split_port(value):
    """Split ``PORT[/PROTO]`` into ``(port, proto)``, raising ValueError if invalid."""
    parts = value.split('/')
    if len(parts) > 2:
        raise ValueError(f'too many "/" in port {value!r}')
    if not is_port_number(parts[0]) or int(parts[0]) == 0:
        raise ValueError(f'invalid port number {parts[0]!r}')
    proto = parts[1].lower() if len(parts) > 1 else DEFAULT_PROTOCOL
    if proto not in PROTOCOLS:
        raise ValueError(f'unsupported protocol {proto!r}')
    return int(parts[0]), proto

class Forwarding(namedtuple('Forwarding', ('local_ip', 'local_port', 'target_ip', 'target_port'))):
    __slots__ = ()

    @property
    def port(self):
        return split_port(self.target_port)[0]

    @property
    def protocol(self):
        return split_port(self.target_port)[1]

    @property
    def container_port(self):
        return f'{self.port}/{self.protocol}'

    @property
    def port_spec(self):
        # ip:hostPort:containerPort, hostPort may be empty
        return f'{self.local_ip}:{self.local_port}:{self.container_port}'

    def __str__(self):
        return f'{self.local_ip}:{self.local_port or "*"} -> {self.target_ip}:{self.target_port}'

def parse_port_specs(specs):
    """Convert ``ip:hostPort:containerPort`` specs to a docker SDK ``ports`` mapping."""
    ports = {}
    for spec in specs:
        host_ip, host_port, container_port = spec.rsplit(':', 2)
        if host_ip.startswith('[') and host_ip.endswith(']'):
            host_ip = host_ip[1:-1]
        port, proto = split_port(container_port)
        binding = (host_ip or LOCALHOST, int(host_port) if host_port else None)
        ports.setdefault(f'{port}/{proto}', []).append(binding)
    return {k: v[0] if len(v) == 1 else v for k, v in ports.items()}

def _target_port(spec, value):
    if not value:
        raise ParseError('target port is required', spec)
    try:
        split_port(value)
    except ValueError as err:
        raise ParseError(str(err), spec) from err
    return value

def _local_port(spec, value):
    if value and not is_port_number(value):
        raise ParseError(f'invalid local port {value!r}', spec)
    # 0 and empty both mean engine-assigned
    return '' if value and int(value) == 0 else value

def _target_ip(spec, value):
    if not value:
        raise ParseError('target IP is required', spec)
    if not HOSTNAME.fullmatch(value):
        raise ParseError(f'invalid target IP {value!r}', spec)
    return value

def parse_forwarding(target_ip, spec):
    parts = spec.split(':') if spec else []

    if len(parts) == 1:
        return Forwarding(LOCALHOST, '', target_ip, _target_port(spec, parts[0]))

    if len(parts) == 2:
        if not parts[0] or is_port_number(parts[0]):
            return Forwarding(LOCALHOST, _local_port(spec, parts[0]), target_ip, _target_port(spec, parts[1]))
        return Forwarding(LOCALHOST, '', _target_ip(spec, parts[0]), _target_port(spec, parts[1]))

    if len(parts) == 3:
        return Forwarding(LOCALHOST, _local_port(spec, parts[0]),
            _target_ip(spec, parts[1]), _target_port(spec, parts[2]))

    if len(parts) == 4:
        return Forwarding(parts[0] or LOCALHOST, _local_port(spec, parts[1]),
            _target_ip(spec, parts[2]), _target_port(spec, parts[3]))

    raise ParseError(f'expected 1 to 4 colon-separated fields, got {len(parts)}', spec)

def parse_forwardings(target_ip, specs):
    return [parse_forwarding(target_ip, spec) for spec in specs]
