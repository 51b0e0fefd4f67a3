from decimal import Decimal

from salesboard.services.leaderboard_service import get_leaderboard


def _record(client, headers, campaign_id, seller_id, amount, customer="X"):
    response = client.post(
        "/api/v1/sales",
        json={
            "campaign_id": campaign_id,
            "seller_id": seller_id,
            "amount": amount,
            "customer_name": customer,
            "product_description": "Annual plan",
        },
        headers=headers,
    )
    assert response.status_code == 201, response.json()
    return response.json()["data"]


def _board(client, headers, campaign_id):
    response = client.get(f"/api/v1/campaigns/{campaign_id}/leaderboard", headers=headers)
    assert response.status_code == 200
    return response.json()["data"]["items"]


def _summary(items):
    return [(item["seller"]["display_name"], Decimal(item["total"]), item["count"]) for item in items]


def test_leaderboard_follows_inserts_and_deletes(client, seed, admin_headers):
    campaign_id = seed["campaign"]
    assert _board(client, admin_headers, campaign_id) == []

    first = _record(client, admin_headers, campaign_id, seed["alice"], "100.00")
    assert _summary(_board(client, admin_headers, campaign_id)) == [("Alice", Decimal("100.00"), 1)]

    _record(client, admin_headers, campaign_id, seed["bob"], "150.00")
    assert _summary(_board(client, admin_headers, campaign_id)) == [
        ("Bob", Decimal("150.00"), 1),
        ("Alice", Decimal("100.00"), 1),
    ]

    _record(client, admin_headers, campaign_id, seed["alice"], "100.00")
    items = _board(client, admin_headers, campaign_id)
    assert _summary(items) == [
        ("Alice", Decimal("200.00"), 2),
        ("Bob", Decimal("150.00"), 1),
    ]
    assert [item["rank"] for item in items] == [1, 2]

    deleted = client.delete(f"/api/v1/sales/{first['id']}", headers=admin_headers)
    assert deleted.status_code == 200
    assert _summary(_board(client, admin_headers, campaign_id)) == [
        ("Bob", Decimal("150.00"), 1),
        ("Alice", Decimal("100.00"), 1),
    ]


def test_participant_without_sales_is_not_ranked(client, seed, admin_headers):
    _record(client, admin_headers, seed["campaign"], seed["bob"], "10.50")

    items = _board(client, admin_headers, seed["campaign"])

    assert [item["seller"]["id"] for item in items] == [seed["bob"]]


def test_ties_are_ordered_by_seller_id(client, seed, admin_headers):
    _record(client, admin_headers, seed["campaign"], seed["alice"], "75.00")
    _record(client, admin_headers, seed["campaign"], seed["bob"], "75.00")

    items = _board(client, admin_headers, seed["campaign"])

    assert [item["seller"]["id"] for item in items] == sorted([seed["alice"], seed["bob"]])
    assert [item["rank"] for item in items] == [1, 2]


def test_unknown_and_foreign_campaigns_yield_empty_ranking(client, seed, admin_headers, carol_headers):
    _record(client, carol_headers, seed["foreign_campaign"], seed["carol"], "500.00")

    assert _board(client, admin_headers, "00000000-0000-0000-0000-000000000000") == []
    assert _board(client, admin_headers, seed["foreign_campaign"]) == []
    assert len(_board(client, carol_headers, seed["foreign_campaign"])) == 1


def test_sellers_can_read_the_leaderboard(client, seed, admin_headers, bob_headers):
    _record(client, admin_headers, seed["campaign"], seed["alice"], "20.00")

    items = _board(client, bob_headers, seed["campaign"])

    assert items[0]["seller"]["display_name"] == "Alice"


def test_leaderboard_requires_authentication(client, seed):
    response = client.get(f"/api/v1/campaigns/{seed['campaign']}/leaderboard")

    assert response.status_code == 401
    assert response.json()["errors"][0]["code"] == "http_401"


def test_leaderboard_query_sums_per_seller(client, db_session, seed, admin_headers):
    for amount in ("10.10", "20.20", "30.30"):
        _record(client, admin_headers, seed["campaign"], seed["alice"], amount)

    entries = get_leaderboard(db_session, company_id=seed["company_a"], campaign_id=seed["campaign"])

    assert len(entries) == 1
    assert entries[0].total == Decimal("60.60")
    assert entries[0].count == 3
    assert entries[0].seller.id == seed["alice"]
