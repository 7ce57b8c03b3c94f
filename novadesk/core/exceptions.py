"""
Error taxonomy shared by the chat flow and the admin surface.

Parser, auth and rate-limit failures stop at the boundary that detects them.
StorageError is the only one that means something went wrong on our side.
"""


class NovaDeskError(Exception):
    """Base class for every error raised on purpose by NovaDesk."""


class ValidationError(NovaDeskError):
    """Malformed intake text or admin request parameter (id, page, size)."""


class AuthError(NovaDeskError):
    """Missing or wrong administrator credentials."""


class RateLimitError(NovaDeskError):
    def __init__(self, decision):
        super().__init__("Too many requests")
        self.decision = decision


class StorageError(NovaDeskError):
    """The record store could not complete an operation (disk, lock, corruption)."""
