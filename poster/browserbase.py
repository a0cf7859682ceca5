"""
REST client for the remote browser cloud (Browserbase).
"""
import logging
from typing import Optional
from urllib.parse import urlencode

import httpx

from .errors import RemoteSessionError

logger = logging.getLogger(__name__)


class BrowserbaseClient:
    """Creates remote sessions and resolves their CDP and debugger URLs."""

    def __init__(
        self,
        api_key: str,
        project_id: str,
        api_url: str = "https://www.browserbase.com/v1",
        connect_url: str = "wss://connect.browserbase.com",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.project_id = project_id
        self.api_url = api_url.rstrip("/")
        self.connect_base = connect_url
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_url,
            headers={"x-bb-api-key": self.api_key},
            timeout=self.timeout,
            transport=self._transport,
        )

    async def create_session(self) -> dict:
        if not self.api_key or not self.project_id:
            raise RemoteSessionError("BROWSERBASE_API_KEY and BROWSERBASE_PROJECT_ID are required")

        logger.info("Creating Browserbase session...")
        async with self._client() as client:
            try:
                resp = await client.post("/sessions", json={"projectId": self.project_id})
            except httpx.HTTPError as e:
                raise RemoteSessionError(f"Failed to create session: {e}") from e

        if resp.status_code >= 400:
            raise RemoteSessionError(f"Failed to create session: {resp.status_code} {resp.text}")

        session = resp.json()
        if not session.get("id"):
            logger.error(f"Session response without id: {session}")
            raise RemoteSessionError("Session ID not found in response")

        logger.info(f"Browserbase session created: {session['id']}")
        return session

    def connect_url(self, session_id: str) -> str:
        query = urlencode({"apiKey": self.api_key, "sessionId": session_id, "enableProxy": "true"})
        return f"{self.connect_base}?{query}"

    async def get_debug_url(self, session_id: str) -> str:
        """Live debugger URL a human can open to take over the session."""
        async with self._client() as client:
            try:
                resp = await client.get(f"/sessions/{session_id}/debug")
            except httpx.HTTPError as e:
                raise RemoteSessionError(f"Failed to get debug URL: {e}") from e

        if resp.status_code >= 400:
            raise RemoteSessionError(f"Failed to get debug URL: {resp.status_code} {resp.text}")

        url = resp.json().get("debuggerFullscreenUrl")
        if not url:
            raise RemoteSessionError("debuggerFullscreenUrl missing from debug response")
        logger.info(f"Debug URL: {url}")
        return url
