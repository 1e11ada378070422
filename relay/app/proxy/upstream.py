"""
Upstream Retell API client.

Thin wrapper over a shared httpx.AsyncClient. The credential is passed per
call so the client itself holds no secret and can be created at startup
even when the credential is missing.
"""

import logging
from typing import Any, Dict

import httpx

from ..config import Settings
from ..models import UpstreamRoute

logger = logging.getLogger(__name__)


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Create the base-URL-bound client shared by all requests."""
    return httpx.AsyncClient(
        base_url=settings.base_url_str,
        timeout=httpx.Timeout(settings.UPSTREAM_TIMEOUT_SECONDS),
    )


class RetellClient:
    """Issues the single upstream call of a proxied request."""

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings):
        self._http = http_client
        self._settings = settings

    def build_headers(self, api_key: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "User-Agent": self._settings.USER_AGENT,
        }

    async def post(
        self,
        route: UpstreamRoute,
        payload: Dict[str, Any],
        api_key: str,
    ) -> httpx.Response:
        logger.debug("Calling upstream", extra={"route": route.value})
        return await self._http.post(
            route.value,
            json=payload,
            headers=self.build_headers(api_key),
        )
