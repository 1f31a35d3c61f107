"""Bearer credential providers for the calendar platform.

Acquiring and refreshing OAuth tokens is owned by the installation
service; this package only needs to ask for the current token and, after a
401, ask for a refresh.
"""

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class TokenProvider(Protocol):
    async def get_token(self, location_id: str) -> str:
        ...

    async def refresh(self, location_id: str) -> None:
        ...


class StaticTokenProvider:
    """A fixed token (e.g. a private integration key); refresh is a no-op."""

    def __init__(self, token: str) -> None:
        self._token = token

    async def get_token(self, location_id: str) -> str:
        return self._token

    async def refresh(self, location_id: str) -> None:
        logger.warning("Static token rejected for location %s; nothing to refresh", location_id)
