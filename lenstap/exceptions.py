"""Exception hierarchy for lenstap."""


class LensTapError(Exception):
    """Base class for all errors raised by lenstap."""
    pass
