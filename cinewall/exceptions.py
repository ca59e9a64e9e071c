"""
Exception types for CineWall.

Only the two external boundaries (the scan store and the narrative
service) raise; the scoring pipeline itself is total over partial data.
"""


class CineWallError(Exception):
    """Base class for all CineWall errors."""


class StoreConnectionError(CineWallError):
    """
    The scan store could not be read.

    Distinct from "no data found", which is an empty result.
    """


class NarrativeGenerationError(CineWallError):
    """
    The narrative service did not produce a usable report.

    Attributes:
        retryable: True for rate-limit / unavailable failures that a
            later attempt may clear
        status: HTTP-like status code if the transport reported one
        network: True when the service could not be reached at all
    """

    def __init__(
        self,
        message: str,
        retryable: bool = False,
        status: int = None,
        network: bool = False
    ):
        super().__init__(message)
        self.retryable = retryable
        self.status = status
        self.network = network
