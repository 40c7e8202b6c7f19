"""
Shared fixtures: fake docker objects, relay launcher and handles.
"""
import sys
import threading
import types
from pathlib import Path

# make the package importable without installing it
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
from unittest.mock import MagicMock

from ctrdebug import dockertools


@pytest.fixture(autouse=True)
def registered_atexit(monkeypatch):
    """Record atexit hooks instead of registering them with the interpreter."""
    hooks = []
    fake = types.SimpleNamespace(
        register=hooks.append,
        unregister=lambda f: hooks.remove(f) if f in hooks else None,
    )
    monkeypatch.setattr(dockertools, "atexit", fake)
    return hooks


def make_container(name="web", networks=None, ports=None, short_id="0123456789ab"):
    container = MagicMock()
    container.name = name
    container.id = short_id * 5
    container.short_id = short_id
    container.attrs = {
        "Name": "/" + name,
        "NetworkSettings": {
            "Networks": networks if networks is not None else {"bridge": {"IPAddress": "172.17.0.2"}},
            "Ports": ports or {},
        },
    }
    return container


@pytest.fixture
def target_container():
    return make_container()


@pytest.fixture
def relay_container():
    return make_container(
        name="port-forwarder-abc",
        networks={"bridge": {"IPAddress": "172.17.0.3"}},
        ports={"8080/tcp": [{"HostIp": "127.0.0.1", "HostPort": "34567"}]},
    )


@pytest.fixture
def docker_client(target_container, relay_container):
    client = MagicMock()
    client.containers.get.return_value = target_container
    client.containers.create.return_value = relay_container
    relay_container.wait.return_value = {"StatusCode": 0}
    return client


class FakeHandle:
    """Stands in for a relay container; ``wait`` blocks until killed unless ``exits``."""

    id = "f0rwarder"

    def __init__(self, bindings=None, exits=False, on_wait=None, wait_error=None,
                 kill_error=None, inspect_error=None):
        self._bindings = bindings if bindings is not None else {}
        self.exits = exits
        self.on_wait = on_wait
        self.wait_error = wait_error
        self.kill_error = kill_error
        self.inspect_error = inspect_error
        self.kills = []
        self.stopped = threading.Event()

    def bindings(self):
        if self.inspect_error:
            raise self.inspect_error
        return self._bindings

    def wait(self):
        if self.on_wait:
            self.on_wait()
        if self.wait_error:
            raise self.wait_error
        if not self.exits:
            self.stopped.wait()
        return 0

    def kill(self, signal="KILL"):
        self.kills.append(signal)
        self.stopped.set()
        if self.kill_error:
            raise self.kill_error


class FakeLauncher:
    def __init__(self, handle=None, pull_error=None):
        self.handle = handle or FakeHandle()
        self.pull_error = pull_error
        self.calls = []

    def ensure_image(self):
        self.calls.append(("ensure_image",))
        if self.pull_error:
            raise self.pull_error

    def spawn(self, listen_port, target_ip, target_port, port_spec):
        self.calls.append(("spawn", listen_port, target_ip, target_port, port_spec))
        return self.handle
