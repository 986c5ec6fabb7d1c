"""Exception types raised by feedprobe.

Network failures are never raised: the classifier turns them into a negative
``ClassificationResult``.  Only bad input and internal bugs surface as
exceptions.
"""


class FeedProbeError(Exception):
    """Base exception for feedprobe failures."""
    pass


class InvalidDomainError(FeedProbeError, ValueError):
    """Domain is empty or still carries a URL scheme."""
    pass
