"""Probe candidate ports to confirm they are companion servers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from ..errors import BridgeError, InvalidResponseError
from ..request_client import RequestClient
from .models import CandidateProcess, ValidatedServer

logger = logging.getLogger(__name__)

DIRECTORY_KEYS = ("directory", "worktree")


def extract_directory(payload: Dict[str, Any]) -> Optional[str]:
    """Return the first non-empty working directory under ``directory`` or ``worktree``."""
    for key in DIRECTORY_KEYS:
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    return None


class ServerValidator:
    """Promotes candidates to validated servers via the identity endpoint."""

    def __init__(self, request_client: RequestClient):
        self.request_client = request_client

    async def validate(self, port: int, *, pid: int = 0) -> ValidatedServer:
        """
        Probe ``port`` and return its identity.

        Raises:
            UnreachableError: the port did not answer within the probe timeout
            InvalidResponseError: the answer carried no working directory
        """
        payload = await self.request_client.get_path(port)
        directory = extract_directory(payload)
        if directory is None:
            raise InvalidResponseError.missing_directory(port, repr(payload))
        return ValidatedServer(pid=pid, port=port, directory=directory)

    async def _validate_candidate(self, candidate: CandidateProcess) -> Optional[ValidatedServer]:
        try:
            return await self.validate(candidate.port, pid=candidate.pid)
        except BridgeError as exc:
            logger.debug("Discarding candidate pid=%s port=%s: %s", candidate.pid, candidate.port, exc.reason)
            return None

    async def validate_candidates(self, candidates: Sequence[CandidateProcess]) -> List[ValidatedServer]:
        """Validate every candidate concurrently, keeping enumeration order and dropping failures."""
        results = await asyncio.gather(*(self._validate_candidate(c) for c in candidates))
        return [server for server in results if server is not None]


__all__ = ["DIRECTORY_KEYS", "ServerValidator", "extract_directory"]
