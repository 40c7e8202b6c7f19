# Error taxonomy of the port-forward command

class AbortException(Exception):
    """Aborts the running command with a non-zero exit status."""
    pass

class ParseError(AbortException):
    def __init__(self, reason, spec):
        super().__init__(f'invalid forwarding {spec!r}: {reason}')
        self.reason = reason
        self.spec = spec

class ResolveError(AbortException):
    pass

class PullError(AbortException):
    pass

class CreateError(AbortException):
    pass

class StartError(AbortException):
    pass

class InspectError(AbortException):
    pass

class WaitError(AbortException):
    pass
