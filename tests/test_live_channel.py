import asyncio
from decimal import Decimal

import pytest
from starlette.websockets import WebSocketDisconnect

from salesboard.live.channel import CLOSE_GOING_AWAY, EVENT_NEW_SALE, LiveChannel, new_sale_event


def _sale(seed, **overrides):
    body = {
        "campaign_id": seed["campaign"],
        "seller_id": seed["bob"],
        "amount": "50.00",
        "customer_name": "Umbrella",
        "product_description": "Starter bundle",
    }
    body.update(overrides)
    return body


def _assert_nothing_pending(ws):
    ws.send_text("ping")
    assert ws.receive_json() == {"type": "PONG"}


def test_subscriber_receives_exactly_one_event_per_sale(client, seed, token_for, bob_headers):
    token = token_for("admin@acme.test", "pass-admin")
    with client.websocket_connect(f"/api/v1/live?token={token}") as ws:
        hello = ws.receive_json()
        assert hello["type"] == "CONNECTED"
        assert hello["company_id"] == seed["company_a"]

        created = client.post("/api/v1/sales", json=_sale(seed), headers=bob_headers)
        assert created.status_code == 201

        event = ws.receive_json()
        assert event["type"] == EVENT_NEW_SALE
        assert event["company_id"] == seed["company_a"]
        assert event["data"]["seller_name"] == "Bob"
        assert event["data"]["amount"] == 50.0
        assert event["data"]["sale_id"] == created.json()["data"]["id"]
        assert event["data"]["customer_name"] == "Umbrella"
        _assert_nothing_pending(ws)


def test_rejected_sale_is_not_broadcast(client, seed, token_for, bob_headers):
    token = token_for("admin@acme.test", "pass-admin")
    with client.websocket_connect(f"/api/v1/live?token={token}") as ws:
        ws.receive_json()

        invalid = client.post("/api/v1/sales", json=_sale(seed, amount="abc"), headers=bob_headers)
        forbidden = client.post("/api/v1/sales", json=_sale(seed, seller_id=seed["alice"]), headers=bob_headers)

        assert invalid.status_code == 422
        assert forbidden.status_code == 403
        _assert_nothing_pending(ws)


def test_events_stay_inside_the_company(client, seed, token_for, bob_headers):
    token = token_for("carol@globex.test", "pass-carol")
    with client.websocket_connect(f"/api/v1/live?token={token}") as ws:
        ws.receive_json()

        assert client.post("/api/v1/sales", json=_sale(seed), headers=bob_headers).status_code == 201

        _assert_nothing_pending(ws)


def test_campaign_filter_narrows_delivery(client, seed, token_for, admin_headers, bob_headers):
    other = client.post(
        "/api/v1/campaigns",
        json={"name": "Side Quest", "start_date": "2026-01-01T00:00:00Z", "end_date": "2026-12-31T00:00:00Z"},
        headers=admin_headers,
    )
    assert other.status_code == 201
    token = token_for("admin@acme.test", "pass-admin")
    with client.websocket_connect(f"/api/v1/live?token={token}&campaign_id={other.json()['data']['id']}") as ws:
        ws.receive_json()

        assert client.post("/api/v1/sales", json=_sale(seed), headers=bob_headers).status_code == 201

        _assert_nothing_pending(ws)


@pytest.mark.parametrize("token", ["", "not-a-jwt"])
def test_invalid_token_is_rejected_with_policy_violation(client, token):
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect(f"/api/v1/live?token={token}") as ws:
            ws.receive_json()

    assert excinfo.value.code == 1008


def test_company_less_user_is_rejected(client, token_for):
    token = token_for("loner@example.test", "pass-loner")
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect(f"/api/v1/live?token={token}") as ws:
            ws.receive_json()

    assert excinfo.value.code == 1008


def test_binary_frames_are_ignored(client, token_for):
    token = token_for("admin@acme.test", "pass-admin")
    with client.websocket_connect(f"/api/v1/live?token={token}") as ws:
        ws.receive_json()

        ws.send_bytes(b"ping")
        ws.send_text("ping")

        assert ws.receive_json() == {"type": "PONG"}
        assert client.app.state.live_channel.subscriber_count() == 1


class FakeWebSocket:
    def __init__(self, *, fail: bool = False, hang: bool = False) -> None:
        self.fail = fail
        self.hang = hang
        self.accepted = False
        self.sent: list[dict] = []
        self.closed_with: int | None = None

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, payload: dict) -> None:
        if self.fail:
            raise RuntimeError("socket gone")
        if self.hang:
            await asyncio.sleep(5)
        self.sent.append(payload)

    async def close(self, code: int = 1000) -> None:
        self.closed_with = code


def _event(company_id="company-1", campaign_id="campaign-1"):
    return new_sale_event(
        company_id=company_id,
        campaign_id=campaign_id,
        sale_id="sale-1",
        seller_id="seller-1",
        seller_name="Alice",
        amount=Decimal("99.90"),
        customer_name="X",
    )


def test_broadcast_drops_failing_subscribers_and_keeps_the_rest():
    async def scenario():
        channel = LiveChannel(send_timeout_seconds=0.05)
        healthy = FakeWebSocket()
        healthy_sub = await channel.connect(healthy, company_id="company-1", user_id="u1")
        broken_sub = await channel.connect(FakeWebSocket(), company_id="company-1", user_id="u2")
        broken_sub.websocket.fail = True
        slow_sub = await channel.connect(FakeWebSocket(), company_id="company-1", user_id="u3")
        slow_sub.websocket.hang = True

        delivered = await channel.broadcast("company-1", _event())

        assert delivered == 1
        assert channel.subscriber_count("company-1") == 1
        assert healthy.sent[-1]["type"] == EVENT_NEW_SALE
        assert healthy.sent[-1]["data"]["amount"] == 99.9
        channel.disconnect(healthy_sub)
        channel.disconnect(healthy_sub)
        assert channel.subscriber_count() == 0

    asyncio.run(scenario())


def test_broadcast_respects_company_and_campaign_scope():
    async def scenario():
        channel = LiveChannel()
        same_campaign = FakeWebSocket()
        other_campaign = FakeWebSocket()
        other_company = FakeWebSocket()
        await channel.connect(same_campaign, company_id="company-1", user_id="u1", campaign_id="campaign-1")
        await channel.connect(other_campaign, company_id="company-1", user_id="u2", campaign_id="campaign-2")
        await channel.connect(other_company, company_id="company-2", user_id="u3")

        delivered = await channel.broadcast("company-1", _event())

        assert delivered == 1
        assert [frame["type"] for frame in same_campaign.sent] == ["CONNECTED", EVENT_NEW_SALE]
        assert [frame["type"] for frame in other_campaign.sent] == ["CONNECTED"]
        assert [frame["type"] for frame in other_company.sent] == ["CONNECTED"]

    asyncio.run(scenario())


def test_broadcast_without_subscribers_delivers_nothing():
    async def scenario():
        return await LiveChannel().broadcast("company-1", _event())

    assert asyncio.run(scenario()) == 0


def test_close_disconnects_everyone_with_going_away():
    async def scenario():
        channel = LiveChannel()
        sockets = [FakeWebSocket(), FakeWebSocket()]
        for index, socket in enumerate(sockets):
            await channel.connect(socket, company_id=f"company-{index}", user_id=f"u{index}")

        await channel.close()

        assert channel.subscriber_count() == 0
        assert [socket.closed_with for socket in sockets] == [CLOSE_GOING_AWAY, CLOSE_GOING_AWAY]

    asyncio.run(scenario())


def test_failed_handshake_does_not_leave_a_subscriber_behind():
    async def scenario():
        channel = LiveChannel()
        with pytest.raises(RuntimeError):
            await channel.connect(FakeWebSocket(fail=True), company_id="c1", user_id="u1")
        return channel

    channel = asyncio.run(scenario())

    assert channel.subscriber_count("c1") == 0
    assert channel.subscriber_count() == 0
