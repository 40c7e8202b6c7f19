# Teardown of a relay session: whichever comes first, an interruption signal
# or the relay container exiting on its own.

import logging
import queue
import signal
import threading

from ctrdebug.dockertools import ENGINE_ERRORS
from ctrdebug.errors import WaitError

log = logging.getLogger(__name__)

class SignalSource:
    """Process-wide interruption signals delivered to subscribed callbacks.

    Signals fired while nobody is subscribed are held and replayed to the
    next subscriber.
    """

    def __init__(self, signals=(signal.SIGINT, signal.SIGTERM)):
        self.signals = signals
        self.callbacks = []
        self.pending = []
        self.previous = {}

    def subscribe(self, callback):
        self.callbacks.append(callback)
        pending, self.pending = self.pending, []
        for signum in pending:
            callback(signum)

    def unsubscribe(self, callback):
        if callback in self.callbacks:
            self.callbacks.remove(callback)

    def fire(self, signum=signal.SIGINT):
        if not self.callbacks:
            self.pending.append(signum)
        for callback in list(self.callbacks):
            callback(signum)

    def install(self):
        for signum in self.signals:
            self.previous[signum] = signal.signal(signum, lambda signum, frame: self.fire(signum))
        return self

    def restore(self):
        for signum, handler in self.previous.items():
            signal.signal(signum, handler)
        self.previous.clear()

class TeardownController:
    ACTIVE = 'active'
    TERMINATED = 'terminated'

    SIGNALED = 'signaled'
    EXITED = 'exited'
    FAILED = 'failed'

    def __init__(self, session, signals, aux=None):
        self.session = session
        self.signals = signals
        self.aux = aux or (lambda *args: None)
        self.state = self.ACTIVE
        self.outcome = None

    def _watch(self, events):
        try:
            events.put((self.EXITED, self.session.wait()))
        except WaitError as err:
            events.put((self.FAILED, err))
        except Exception as err:
            failure = WaitError(f'waiting for port-forwarder failed: {err}')
            failure.__cause__ = err
            events.put((self.FAILED, failure))

    def run(self):
        """Block until interrupted or until the relay exits; returns the outcome."""
        events = queue.SimpleQueue()
        on_signal = lambda signum: events.put((self.SIGNALED, signum))
        self.signals.subscribe(on_signal)
        try:
            threading.Thread(target=self._watch, args=(events,), daemon=True).start()
            self.outcome, payload = events.get()
        finally:
            self.signals.unsubscribe(on_signal)

        self.state = self.TERMINATED
        if self.outcome == self.SIGNALED:
            self.aux('Exiting...')
            try:
                self.session.kill()
            except ENGINE_ERRORS as err:
                log.debug('Cannot kill port-forwarder container: %s', err)
        elif self.outcome == self.FAILED:
            raise payload
        else:
            log.debug('Port-forwarder %s exited with status %s', self.session.id, payload)
        return self.outcome
