"""Records produced by one discovery pass."""

from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class CandidateProcess:
    """A process that looks like a companion server, not yet probed."""

    pid: int
    port: int


@dataclass(frozen=True)
class ValidatedServer:
    """A candidate that answered the identity probe."""

    pid: int
    port: int
    directory: str
