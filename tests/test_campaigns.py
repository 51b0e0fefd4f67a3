from salesboard.models.audit_log import AuditLog


def _campaign_body(**overrides):
    body = {
        "name": "Spring Blitz",
        "description": "Close the quarter strong",
        "prize_description": "Weekend trip",
        "start_date": "2026-03-01T00:00:00Z",
        "end_date": "2026-03-31T23:59:59Z",
        "target_amount": "10000.00",
    }
    body.update(overrides)
    return body


def test_admin_creates_campaign_with_defaults(client, db_session, seed, admin_headers):
    response = client.post("/api/v1/campaigns", json=_campaign_body(), headers=admin_headers)

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["company_id"] == seed["company_a"]
    assert data["is_active"] is True
    assert data["prize_emoji"] == "\U0001f3c6"
    assert data["target_amount"] == "10000.00"
    assert data["in_date_range"] is False
    assert db_session.query(AuditLog).filter(AuditLog.event_type == "campaign.created").count() == 1


def test_campaign_dates_must_be_ordered(client, admin_headers):
    response = client.post(
        "/api/v1/campaigns",
        json=_campaign_body(start_date="2026-04-01T00:00:00Z", end_date="2026-03-01T00:00:00Z"),
        headers=admin_headers,
    )

    assert response.status_code == 422
    assert response.json()["errors"][0]["code"] == "validation_error"


def test_campaign_target_must_be_positive(client, admin_headers):
    response = client.post("/api/v1/campaigns", json=_campaign_body(target_amount="0"), headers=admin_headers)

    assert response.status_code == 422


def test_sellers_cannot_create_campaigns(client, alice_headers):
    response = client.post("/api/v1/campaigns", json=_campaign_body(), headers=alice_headers)

    assert response.status_code == 403


def test_admin_lists_every_campaign_and_sellers_only_their_own(client, seed, admin_headers, alice_headers):
    created = client.post("/api/v1/campaigns", json=_campaign_body(is_active=False), headers=admin_headers)
    assert created.status_code == 201

    admin_items = client.get("/api/v1/campaigns", headers=admin_headers).json()["data"]["items"]
    seller_items = client.get("/api/v1/campaigns", headers=alice_headers).json()["data"]["items"]
    active_items = client.get("/api/v1/campaigns?active=true", headers=admin_headers).json()["data"]["items"]

    assert {item["id"] for item in admin_items} == {seed["campaign"], created.json()["data"]["id"]}
    assert [item["id"] for item in seller_items] == [seed["campaign"]]
    assert [item["id"] for item in active_items] == [seed["campaign"]]


def test_campaign_detail_is_company_scoped(client, seed, alice_headers):
    own = client.get(f"/api/v1/campaigns/{seed['campaign']}", headers=alice_headers)
    foreign = client.get(f"/api/v1/campaigns/{seed['foreign_campaign']}", headers=alice_headers)

    assert own.status_code == 200
    assert own.json()["data"]["name"] == "Q4 Push"
    assert own.json()["data"]["in_date_range"] is True
    assert foreign.status_code == 404


def test_patch_updates_fields_and_rechecks_dates(client, seed, admin_headers):
    renamed = client.patch(
        f"/api/v1/campaigns/{seed['campaign']}",
        json={"name": "Q4 Final Push", "prize_emoji": "\U0001f680"},
        headers=admin_headers,
    )
    reversed_dates = client.patch(
        f"/api/v1/campaigns/{seed['campaign']}",
        json={"end_date": "2000-01-01T00:00:00Z"},
        headers=admin_headers,
    )

    assert renamed.status_code == 200
    assert renamed.json()["data"]["name"] == "Q4 Final Push"
    assert renamed.json()["data"]["prize_emoji"] == "\U0001f680"
    assert reversed_dates.status_code == 400
    assert reversed_dates.json()["errors"][0]["details"]["reason_code"] == "invalid_date_range"


def test_stored_flag_wins_over_date_range(client, seed, admin_headers):
    response = client.patch(
        f"/api/v1/campaigns/{seed['campaign']}",
        json={"is_active": False},
        headers=admin_headers,
    )

    data = response.json()["data"]
    assert data["is_active"] is False
    assert data["in_date_range"] is True


def test_participants_can_be_added_listed_and_removed(client, seed, admin_headers):
    added = client.post(
        f"/api/v1/campaigns/{seed['campaign']}/participants",
        json={"user_id": seed["admin"]},
        headers=admin_headers,
    )
    again = client.post(
        f"/api/v1/campaigns/{seed['campaign']}/participants",
        json={"user_id": seed["admin"]},
        headers=admin_headers,
    )

    assert added.status_code == 201
    assert added.json()["data"]["display_name"] == "Ada Admin"
    assert again.status_code == 409
    assert again.json()["errors"][0]["details"]["reason_code"] == "participant_exists"

    listed = client.get(f"/api/v1/campaigns/{seed['campaign']}/participants", headers=admin_headers)
    assert {item["user_id"] for item in listed.json()["data"]["items"]} == {seed["alice"], seed["bob"], seed["admin"]}

    removed = client.delete(f"/api/v1/campaigns/{seed['campaign']}/participants/{seed['admin']}", headers=admin_headers)
    missing = client.delete(f"/api/v1/campaigns/{seed['campaign']}/participants/{seed['admin']}", headers=admin_headers)
    assert removed.status_code == 200
    assert missing.status_code == 404


def test_foreign_user_cannot_join_campaign(client, seed, admin_headers):
    response = client.post(
        f"/api/v1/campaigns/{seed['campaign']}/participants",
        json={"user_id": seed["carol"]},
        headers=admin_headers,
    )

    assert response.status_code == 404
    assert response.json()["errors"][0]["details"]["reason_code"] == "user_not_found"


def test_removed_participant_keeps_existing_sales_on_the_board(client, seed, admin_headers):
    client.post(
        "/api/v1/sales",
        json={
            "campaign_id": seed["campaign"],
            "seller_id": seed["alice"],
            "amount": "42.00",
            "customer_name": "Hooli",
            "product_description": "Seats",
        },
        headers=admin_headers,
    )

    client.delete(f"/api/v1/campaigns/{seed['campaign']}/participants/{seed['alice']}", headers=admin_headers)
    board = client.get(f"/api/v1/campaigns/{seed['campaign']}/leaderboard", headers=admin_headers)

    assert [item["seller"]["id"] for item in board.json()["data"]["items"]] == [seed["alice"]]
