# Rendering of active forwardings

import json

OUTPUT_TEXT = 'text'
OUTPUT_JSON = 'json'
OUTPUT_FORMATS = (OUTPUT_TEXT, OUTPUT_JSON)

def join_host_port(host, port):
    return f'[{host}]:{port}' if ':' in host else f'{host}:{port}'

class Reporter:
    def __init__(self, mode=OUTPUT_TEXT, out=print):
        if mode not in OUTPUT_FORMATS:
            raise ValueError(f'unknown output format {mode!r}, expected one of {", ".join(OUTPUT_FORMATS)}')
        self.mode = mode
        self.out = out

    def records(self, target_ip, bindings):
        for remote_port, local_bindings in bindings.items():
            for host_ip, host_port in local_bindings:
                yield {
                    'localHost': host_ip,
                    'localPort': host_port,
                    'remoteHost': target_ip,
                    'remotePort': remote_port.split('/')[0],
                }

    def report(self, target_name, target_ip, bindings):
        for record in self.records(target_ip, bindings):
            if self.mode == OUTPUT_TEXT:
                local = join_host_port(record['localHost'], record['localPort'])
                remote = join_host_port(record['remoteHost'], record['remotePort'])
                self.out(f"Forwarding {local} to {target_name}'s {remote}")
            else:
                self.out(json.dumps(record))
