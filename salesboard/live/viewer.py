"""TV-mode client: polls the leaderboard and follows the live sale stream.

The poll loop is the source of truth. The stream only shortens the time
between a sale being recorded and the ranking on screen changing, so losing
it degrades the viewer to polling instead of stopping it.
"""
from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import urlencode

import httpx
import websockets
from websockets.exceptions import WebSocketException

from salesboard.live.channel import EVENT_NEW_SALE


logger = logging.getLogger("salesboard.viewer")


class ReconnectPolicy:
    def __init__(
        self,
        *,
        max_attempts: int = 5,
        base_delay_seconds: float = 1.0,
        max_delay_seconds: float = 30.0,
    ) -> None:
        self.max_attempts = max_attempts
        self.base_delay_seconds = base_delay_seconds
        self.max_delay_seconds = max_delay_seconds

    def delay_for_attempt(self, attempt_number: int) -> float:
        return min(self.max_delay_seconds, self.base_delay_seconds * (2 ** (attempt_number - 1)))

    def allows(self, attempt_number: int) -> bool:
        return attempt_number <= self.max_attempts


class LeaderboardViewer:
    def __init__(
        self,
        *,
        base_url: str,
        token: str,
        campaign_id: str,
        api_prefix: str = "/api/v1",
        poll_interval_seconds: float = 5.0,
        policy: ReconnectPolicy | None = None,
        on_leaderboard: Callable[[list[dict[str, Any]]], None] | None = None,
        on_sale: Callable[[dict[str, Any]], None] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        connect: Callable[[str], Any] = websockets.connect,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.campaign_id = campaign_id
        self.api_prefix = api_prefix
        self.poll_interval_seconds = poll_interval_seconds
        self.policy = policy or ReconnectPolicy()
        self.on_leaderboard = on_leaderboard
        self.on_sale = on_sale
        self.streaming = False
        self.leaderboard: list[dict[str, Any]] = []
        self._token = token
        self._connect = connect
        self._sleep = sleep
        self._stopped = False
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=10.0,
            transport=transport,
        )

    def live_url(self) -> str:
        ws_base = "ws" + self.base_url[len("http"):] if self.base_url.startswith("http") else self.base_url
        query = urlencode({"token": self._token, "campaign_id": self.campaign_id})
        return f"{ws_base}{self.api_prefix}/live?{query}"

    def stop(self) -> None:
        self._stopped = True

    async def aclose(self) -> None:
        await self._http.aclose()

    async def fetch_leaderboard(self) -> list[dict[str, Any]]:
        response = await self._http.get(f"{self.api_prefix}/campaigns/{self.campaign_id}/leaderboard")
        response.raise_for_status()
        return response.json()["data"]["items"]

    async def refresh(self) -> bool:
        try:
            items = await self.fetch_leaderboard()
        except httpx.HTTPError as exc:
            logger.warning("viewer.refresh_failed: %s", exc)
            return False
        self.leaderboard = items
        if self.on_leaderboard is not None:
            self.on_leaderboard(items)
        return True

    async def poll_forever(self) -> None:
        while not self._stopped:
            await self.refresh()
            if self._stopped:
                break
            await self._sleep(self.poll_interval_seconds)

    async def stream(self) -> None:
        """Consume live events, reconnecting with backoff until attempts run out."""
        attempt = 0
        while not self._stopped:
            try:
                async with self._connect(self.live_url()) as connection:
                    attempt = 0
                    self.streaming = True
                    logger.info("viewer.stream_connected")
                    async for message in connection:
                        await self._handle_message(message)
                        if self._stopped:
                            return
            except (OSError, WebSocketException) as exc:
                logger.warning("viewer.stream_dropped: %s", exc)
            finally:
                self.streaming = False
            if self._stopped:
                return
            attempt += 1
            if not self.policy.allows(attempt):
                logger.warning("viewer.stream_gave_up", extra={"campaign_id": self.campaign_id})
                return
            await self._sleep(self.policy.delay_for_attempt(attempt))

    async def run(self) -> None:
        try:
            await asyncio.gather(self.poll_forever(), self.stream())
        finally:
            await self.aclose()

    async def _handle_message(self, message: str | bytes) -> None:
        try:
            event = json.loads(message)
        except ValueError:
            logger.debug("viewer.ignored_frame")
            return
        if not isinstance(event, dict) or event.get("type") != EVENT_NEW_SALE:
            return
        if self.on_sale is not None:
            self.on_sale(event.get("data") or {})
        await self.refresh()
