import signal
import threading

import pytest
from docker.errors import APIError
from requests.exceptions import ConnectionError

from ctrdebug.dockertools import RelayContainer
from ctrdebug.errors import WaitError
from ctrdebug.relay import RelaySession
from ctrdebug.teardown import SignalSource, TeardownController

from conftest import FakeHandle


def running_session(handle):
    session = RelaySession(handle, [])
    session.state = RelaySession.RUNNING
    return session


def test_signal_kills_relay_once():
    signals = SignalSource()
    handle = FakeHandle(on_wait=signals.fire)
    session = running_session(handle)
    messages = []
    controller = TeardownController(session, signals, aux=messages.append)
    assert controller.state == TeardownController.ACTIVE

    assert controller.run() == TeardownController.SIGNALED

    assert handle.kills == ["KILL"]
    assert controller.state == TeardownController.TERMINATED
    assert session.state == RelaySession.KILLED
    assert messages == ["Exiting..."]
    assert signals.callbacks == []


def test_relay_exit_needs_no_kill():
    signals = SignalSource()
    handle = FakeHandle(exits=True)
    session = running_session(handle)
    controller = TeardownController(session, signals)

    assert controller.run() == TeardownController.EXITED

    assert handle.kills == []
    assert controller.state == TeardownController.TERMINATED
    assert session.state == RelaySession.STOPPED


def test_kill_failure_is_not_surfaced():
    signals = SignalSource()
    handle = FakeHandle(on_wait=signals.fire, kill_error=APIError("no such container"))
    controller = TeardownController(running_session(handle), signals)

    assert controller.run() == TeardownController.SIGNALED
    assert handle.kills == ["KILL"]


def test_wait_failure_is_fatal():
    signals = SignalSource()
    handle = FakeHandle(wait_error=WaitError("connection reset"))
    controller = TeardownController(running_session(handle), signals)

    with pytest.raises(WaitError):
        controller.run()
    assert handle.kills == []
    assert controller.state == TeardownController.TERMINATED


def test_signal_source_installs_process_handlers():
    signals = SignalSource(signals=(signal.SIGTERM,))
    received = []
    signals.subscribe(received.append)
    previous = signal.getsignal(signal.SIGTERM)

    signals.install()
    try:
        handler = signal.getsignal(signal.SIGTERM)
        assert handler is not previous
        handler(signal.SIGTERM, None)
    finally:
        signals.restore()

    assert received == [signal.SIGTERM]
    assert signal.getsignal(signal.SIGTERM) is previous


def test_kill_with_unreachable_daemon_is_not_surfaced(docker_client, relay_container):
    signals = SignalSource()
    stopped = threading.Event()

    def wait(**kwargs):
        signals.fire()
        stopped.wait()
        return {"StatusCode": 137}

    def kill(**kwargs):
        stopped.set()
        raise ConnectionError("daemon gone")

    relay_container.wait.side_effect = wait
    relay_container.kill.side_effect = kill
    relay = RelayContainer("alpine/socat", docker_client)
    controller = TeardownController(running_session(relay), signals)

    assert controller.run() == TeardownController.SIGNALED
    relay_container.kill.assert_called_once_with(signal="KILL")


def test_unexpected_watcher_failure_is_fatal():
    signals = SignalSource()
    handle = FakeHandle(wait_error=RuntimeError("watcher crashed"))
    controller = TeardownController(running_session(handle), signals)

    with pytest.raises(WaitError) as exc:
        controller.run()
    assert isinstance(exc.value.__cause__, RuntimeError)
    assert controller.state == TeardownController.TERMINATED


def test_signal_before_run_is_not_lost():
    signals = SignalSource()
    signals.fire(signal.SIGTERM)
    handle = FakeHandle()
    controller = TeardownController(running_session(handle), signals)

    assert controller.run() == TeardownController.SIGNALED
    assert handle.kills == ["KILL"]
