"""
Exceptions raised by the CBN fitting routines.
"""


class MCCBNError(Exception):
    """Base class for errors raised by mccbn."""


class NotAcyclicError(MCCBNError, ValueError):
    """The poset contains a directed cycle and cannot be used."""

    def __init__(self, message: str = "The poset is not acyclic (it contains a directed cycle)."):
        super().__init__(message)


class DimensionMismatchError(MCCBNError, ValueError):
    """Input arrays disagree on the number of events or observations."""
