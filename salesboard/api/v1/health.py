from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from salesboard.api.deps import get_live_channel
from salesboard.api.response import envelope
from salesboard.db.session import get_db
from salesboard.live.channel import LiveChannel

router = APIRouter(tags=["ops"])


@router.get("/health")
def health(request: Request, channel: LiveChannel = Depends(get_live_channel)) -> dict:
    return envelope(request, {"status": "ok", "live_subscribers": channel.subscriber_count()})


@router.get("/health/readiness")
def readiness(request: Request, db: Session = Depends(get_db)) -> dict:
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError:
        db_ok = False
    return envelope(
        request,
        {
            "status": "ready" if db_ok else "degraded",
            "dependencies": {"database": db_ok},
        },
    )
