import logging

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from starlette.concurrency import run_in_threadpool

from salesboard.api.deps import resolve_token_user, user_context
from salesboard.db.session import Database
from salesboard.live.channel import LiveChannel

router = APIRouter(tags=["live"])

logger = logging.getLogger("salesboard.live")


def _authenticate(database: Database, token: str) -> dict:
    db = database.session()
    try:
        return user_context(resolve_token_user(db, token))
    finally:
        db.close()


async def _listen(websocket: WebSocket) -> None:
    """Answer text pings until the client goes away; anything else is ignored."""
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))
        if (message.get("text") or "").strip().lower() == "ping":
            await websocket.send_json({"type": "PONG"})


@router.websocket("/live")
async def live(
    websocket: WebSocket,
    token: str = Query(default=""),
    campaign_id: str | None = Query(default=None),
) -> None:
    try:
        user = await run_in_threadpool(_authenticate, websocket.app.state.database, token)
    except HTTPException as exc:
        logger.info("live.rejected", extra={"status_code": exc.status_code})
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    if user["company_id"] is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    channel: LiveChannel = websocket.app.state.live_channel
    subscriber = await channel.connect(
        websocket,
        company_id=user["company_id"],
        user_id=user["id"],
        campaign_id=campaign_id,
    )
    try:
        await _listen(websocket)
    except WebSocketDisconnect:
        pass
    finally:
        channel.disconnect(subscriber)
