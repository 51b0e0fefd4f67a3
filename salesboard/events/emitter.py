import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from salesboard.models.audit_log import AuditLog


class EventEnvelope(BaseModel):
    event_id: str = Field(min_length=1)
    company_id: str = Field(min_length=1)
    event_type: str = Field(min_length=1)
    timestamp: str = Field(min_length=1)
    actor_user_id: str | None = None
    payload: dict[str, Any]


def emit_event(
    db: Session,
    *,
    company_id: str,
    event_type: str,
    payload: dict[str, Any],
    actor_user_id: str | None = None,
) -> EventEnvelope:
    """Stage an audit row for the event; it commits with the caller's transaction."""
    event = EventEnvelope(
        event_id=str(uuid.uuid4()),
        company_id=company_id,
        event_type=event_type,
        timestamp=datetime.now(UTC).isoformat(),
        actor_user_id=actor_user_id,
        payload=payload,
    )
    db.add(
        AuditLog(
            company_id=company_id,
            actor_user_id=actor_user_id,
            event_type=event.event_type,
            payload_json=event.model_dump_json(),
            created_at=datetime.now(UTC),
        )
    )
    return event
