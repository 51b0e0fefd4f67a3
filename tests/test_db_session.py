import asyncio
from types import SimpleNamespace

from fastapi import FastAPI

from salesboard.db.session import Database, get_db
from salesboard.live.channel import LiveChannel


def test_lifespan_builds_database_and_live_channel_on_app_state():
    from salesboard.main import lifespan, settings

    fresh_app = FastAPI()

    async def scenario():
        async with lifespan(fresh_app):
            assert isinstance(fresh_app.state.database, Database)
            assert isinstance(fresh_app.state.live_channel, LiveChannel)
            return fresh_app.state.database

    database = asyncio.run(scenario())

    assert database.engine.url.render_as_string(hide_password=False) == settings.database_url


def test_get_db_opens_sessions_from_the_application_database(database):
    request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(database=database)))

    sessions = get_db(request)
    db = next(sessions)
    try:
        assert db.bind is database.engine
    finally:
        sessions.close()


def test_live_socket_authenticates_against_the_application_database(client, token_for):
    token = token_for("alice@acme.test", "pass-alice")

    with client.websocket_connect(f"/api/v1/live?token={token}") as ws:
        assert ws.receive_json()["type"] == "CONNECTED"
