import logging
from datetime import UTC, datetime, timedelta

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from salesboard.core.config import get_settings
from salesboard.core.passwords import hash_password, verify_password
from salesboard.core.security import generate_invitation_token
from salesboard.events import emit_event
from salesboard.models.company import Company
from salesboard.models.invitation import Invitation
from salesboard.models.user import User
from salesboard.schemas.invitations import (
    InvitationAcceptRequest,
    InvitationCreateRequest,
    InvitationCreatedOut,
    InvitationOut,
    InvitationPreviewOut,
)
from salesboard.services.auth_service import token_payload


logger = logging.getLogger("salesboard.invitations")

STATUS_PENDING = "pending"
STATUS_USED = "used"
STATUS_EXPIRED = "expired"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def invitation_status(invitation: Invitation, *, now: datetime | None = None) -> str:
    if invitation.used_at is not None:
        return STATUS_USED
    if _as_utc(invitation.expires_at) <= (now or datetime.now(UTC)):
        return STATUS_EXPIRED
    return STATUS_PENDING


def _to_out(invitation: Invitation) -> InvitationOut:
    return InvitationOut(
        id=invitation.id,
        email=invitation.email,
        company_id=invitation.company_id,
        role=invitation.role,
        expires_at=invitation.expires_at,
        used_at=invitation.used_at,
        created_at=invitation.created_at,
        status=invitation_status(invitation),
    )


def create_invitation(db: Session, *, actor: dict, body: InvitationCreateRequest) -> InvitationCreatedOut:
    settings = get_settings()
    now = datetime.now(UTC)
    invitation = Invitation(
        email=body.email,
        company_id=actor["company_id"],
        role=body.role,
        token=generate_invitation_token(),
        expires_at=now + timedelta(hours=settings.invitation_ttl_hours),
        created_at=now,
        created_by=actor["id"],
    )
    db.add(invitation)
    db.flush()
    emit_event(
        db,
        company_id=actor["company_id"],
        event_type="invitation.created",
        actor_user_id=actor["id"],
        payload={"invitation_id": invitation.id, "email": invitation.email, "role": invitation.role},
    )
    db.commit()
    db.refresh(invitation)
    logger.info(
        "invitation.created",
        extra={"company_id": invitation.company_id, "invitation_id": invitation.id, "role": invitation.role},
    )
    return InvitationCreatedOut(**_to_out(invitation).model_dump(), token=invitation.token)


def list_invitations(db: Session, *, company_id: str) -> list[InvitationOut]:
    rows = (
        db.query(Invitation)
        .filter(Invitation.company_id == company_id)
        .order_by(Invitation.created_at.desc())
        .all()
    )
    return [_to_out(row) for row in rows]


def _get_by_token(db: Session, token: str) -> Invitation:
    invitation = db.query(Invitation).filter(Invitation.token == token).first()
    if invitation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "Invitation not found.", "reason_code": "invitation_not_found"},
        )
    return invitation


def preview_invitation(db: Session, token: str) -> InvitationPreviewOut:
    invitation = _get_by_token(db, token)
    company = db.get(Company, invitation.company_id)
    return InvitationPreviewOut(
        email=invitation.email,
        role=invitation.role,
        company_id=invitation.company_id,
        company_name=company.name if company is not None else "",
        expires_at=invitation.expires_at,
        status=invitation_status(invitation),
    )


def _raise_used() -> None:
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={"message": "Invitation has already been used.", "reason_code": "invitation_used"},
    )


def accept_invitation(db: Session, token: str, body: InvitationAcceptRequest) -> dict:
    invitation = _get_by_token(db, token)
    now = datetime.now(UTC)
    current_status = invitation_status(invitation, now=now)
    if current_status == STATUS_USED:
        _raise_used()
    if current_status == STATUS_EXPIRED:
        raise HTTPException(
            status_code=status.HTTP_410_GONE,
            detail={"message": "Invitation has expired.", "reason_code": "invitation_expired"},
        )

    user = db.query(User).filter(User.email == invitation.email).first()
    if user is not None:
        if user.company_id is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"message": "Email already belongs to a company.", "reason_code": "email_in_use"},
            )
        if user.password_hash is not None and not verify_password(body.password, user.password_hash):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    consumed = (
        db.query(Invitation)
        .filter(Invitation.id == invitation.id, Invitation.used_at.is_(None))
        .update({Invitation.used_at: now}, synchronize_session=False)
    )
    if consumed != 1:
        db.rollback()
        _raise_used()

    if user is None:
        user = User(
            email=invitation.email,
            password_hash=hash_password(body.password),
            created_at=now,
        )
        db.add(user)
    elif user.password_hash is None:
        user.password_hash = hash_password(body.password)
    if body.first_name is not None:
        user.first_name = body.first_name
    if body.last_name is not None:
        user.last_name = body.last_name
    user.company_id = invitation.company_id
    user.role = invitation.role
    user.is_active = True
    user.updated_at = now
    db.flush()
    emit_event(
        db,
        company_id=invitation.company_id,
        event_type="invitation.accepted",
        actor_user_id=user.id,
        payload={"invitation_id": invitation.id, "user_id": user.id},
    )
    db.commit()
    db.refresh(user)
    logger.info(
        "invitation.accepted",
        extra={"company_id": invitation.company_id, "invitation_id": invitation.id},
    )
    return token_payload(user)
