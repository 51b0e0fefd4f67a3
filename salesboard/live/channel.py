"""In-process publish/subscribe registry for live dashboard viewers.

Delivery is at-most-once: a viewer that is not connected when a sale is
recorded never sees that event and resyncs by polling the leaderboard.
Topics are company ids; a viewer may narrow its subscription to one campaign.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel
from starlette.websockets import WebSocket

from salesboard.core.metrics import live_delivery_failures_total, live_events_delivered_total, live_subscribers


logger = logging.getLogger("salesboard.live")

EVENT_NEW_SALE = "NEW_SALE"
EVENT_CONNECTED = "CONNECTED"
CLOSE_GOING_AWAY = 1001


class LiveEvent(BaseModel):
    type: str
    event_id: str
    timestamp: str
    company_id: str
    campaign_id: str | None = None
    data: dict[str, Any] = {}


def _event(event_type: str, *, company_id: str, campaign_id: str | None, data: dict[str, Any]) -> LiveEvent:
    return LiveEvent(
        type=event_type,
        event_id=str(uuid.uuid4()),
        timestamp=datetime.now(UTC).isoformat(),
        company_id=company_id,
        campaign_id=campaign_id,
        data=data,
    )


def new_sale_event(
    *,
    company_id: str,
    campaign_id: str,
    sale_id: str,
    seller_id: str,
    seller_name: str,
    amount: Decimal,
    customer_name: str | None,
) -> LiveEvent:
    return _event(
        EVENT_NEW_SALE,
        company_id=company_id,
        campaign_id=campaign_id,
        data={
            "sale_id": sale_id,
            "campaign_id": campaign_id,
            "seller_id": seller_id,
            "seller_name": seller_name,
            "amount": float(amount),
            "customer_name": customer_name,
        },
    )


@dataclass(eq=False)
class Subscriber:
    websocket: WebSocket
    company_id: str
    user_id: str
    campaign_id: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    connected_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def wants(self, event: LiveEvent) -> bool:
        if self.campaign_id is None or event.campaign_id is None:
            return True
        return self.campaign_id == event.campaign_id


class LiveChannel:
    def __init__(self, *, send_timeout_seconds: float = 2.0) -> None:
        self._send_timeout_seconds = send_timeout_seconds
        self._topics: dict[str, set[Subscriber]] = {}
        self._broadcast_lock = asyncio.Lock()

    def subscriber_count(self, company_id: str | None = None) -> int:
        if company_id is not None:
            return len(self._topics.get(company_id, ()))
        return sum(len(topic) for topic in self._topics.values())

    async def connect(
        self,
        websocket: WebSocket,
        *,
        company_id: str,
        user_id: str,
        campaign_id: str | None = None,
    ) -> Subscriber:
        await websocket.accept()
        subscriber = Subscriber(websocket=websocket, company_id=company_id, user_id=user_id, campaign_id=campaign_id)
        self._topics.setdefault(company_id, set()).add(subscriber)
        live_subscribers.inc()
        logger.info(
            "live.subscribed",
            extra={"company_id": company_id, "campaign_id": campaign_id, "subscribers": self.subscriber_count(company_id)},
        )
        hello = _event(
            EVENT_CONNECTED,
            company_id=company_id,
            campaign_id=campaign_id,
            data={"subscriber_id": subscriber.id},
        )
        try:
            await websocket.send_json(hello.model_dump(mode="json"))
        except Exception:
            # Client dropped during the handshake.
            self.disconnect(subscriber)
            raise
        return subscriber

    def disconnect(self, subscriber: Subscriber) -> None:
        topic = self._topics.get(subscriber.company_id)
        if topic is None or subscriber not in topic:
            return
        topic.discard(subscriber)
        if not topic:
            del self._topics[subscriber.company_id]
        live_subscribers.dec()
        logger.info("live.unsubscribed", extra={"company_id": subscriber.company_id})

    async def broadcast(self, company_id: str, event: LiveEvent) -> int:
        """Send ``event`` to every matching subscriber of ``company_id``.

        Never raises: a subscriber whose send fails or times out is dropped
        and the remaining viewers still receive the event. Returns the number
        of successful deliveries.
        """
        payload = event.model_dump(mode="json")
        async with self._broadcast_lock:
            targets = [subscriber for subscriber in self._topics.get(company_id, ()) if subscriber.wants(event)]
            results = await asyncio.gather(*(self._send(subscriber, payload, event.type) for subscriber in targets))
            for subscriber, delivered in zip(targets, results):
                if not delivered:
                    self.disconnect(subscriber)
        delivered_count = sum(1 for delivered in results if delivered)
        logger.info(
            "live.broadcast",
            extra={
                "company_id": company_id,
                "campaign_id": event.campaign_id,
                "subscribers": delivered_count,
            },
        )
        return delivered_count

    async def close(self) -> None:
        async with self._broadcast_lock:
            subscribers = [subscriber for topic in self._topics.values() for subscriber in topic]
            for subscriber in subscribers:
                self.disconnect(subscriber)
        for subscriber in subscribers:
            try:
                await subscriber.websocket.close(code=CLOSE_GOING_AWAY)
            except Exception:
                logger.debug("live.close_failed", extra={"company_id": subscriber.company_id})

    async def _send(self, subscriber: Subscriber, payload: dict[str, Any], event_type: str) -> bool:
        try:
            await asyncio.wait_for(subscriber.websocket.send_json(payload), timeout=self._send_timeout_seconds)
        except Exception:
            live_delivery_failures_total.labels(event_type=event_type).inc()
            logger.warning(
                "live.delivery_failed",
                exc_info=True,
                extra={"company_id": subscriber.company_id},
            )
            return False
        live_events_delivered_total.labels(event_type=event_type).inc()
        return True
