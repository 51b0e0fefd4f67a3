from __future__ import annotations

from datetime import UTC, datetime

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from salesboard.events import emit_event
from salesboard.models.campaign import Campaign, CampaignParticipant
from salesboard.models.user import ROLE_ADMIN, User
from salesboard.schemas.campaigns import CampaignCreateRequest, CampaignPatchRequest, ParticipantOut


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def get_campaign_or_404(db: Session, *, company_id: str, campaign_id: str) -> Campaign:
    campaign = (
        db.query(Campaign)
        .filter(Campaign.id == campaign_id, Campaign.company_id == company_id)
        .first()
    )
    if campaign is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "Campaign not found.", "reason_code": "campaign_not_found"},
        )
    return campaign


def create_campaign(db: Session, *, actor: dict, body: CampaignCreateRequest) -> Campaign:
    now = datetime.now(UTC)
    campaign = Campaign(
        company_id=actor["company_id"],
        name=body.name,
        description=body.description,
        prize_emoji=body.prize_emoji or "\U0001f3c6",
        prize_image_url=body.prize_image_url,
        prize_description=body.prize_description,
        start_date=_as_utc(body.start_date),
        end_date=_as_utc(body.end_date),
        target_amount=body.target_amount,
        is_active=body.is_active,
        created_at=now,
        updated_at=now,
    )
    db.add(campaign)
    db.flush()
    emit_event(
        db,
        company_id=actor["company_id"],
        event_type="campaign.created",
        actor_user_id=actor["id"],
        payload={"campaign_id": campaign.id, "is_active": campaign.is_active},
    )
    db.commit()
    db.refresh(campaign)
    return campaign


def list_campaigns(db: Session, *, actor: dict, active: bool | None = None) -> list[Campaign]:
    query = db.query(Campaign).filter(Campaign.company_id == actor["company_id"])
    if actor["role"] != ROLE_ADMIN:
        query = query.join(CampaignParticipant, CampaignParticipant.campaign_id == Campaign.id).filter(
            CampaignParticipant.user_id == actor["id"]
        )
    if active is not None:
        query = query.filter(Campaign.is_active.is_(active))
    return query.order_by(Campaign.created_at.desc()).all()


def update_campaign(db: Session, *, actor: dict, campaign_id: str, body: CampaignPatchRequest) -> Campaign:
    campaign = get_campaign_or_404(db, company_id=actor["company_id"], campaign_id=campaign_id)
    changes = body.model_dump(exclude_unset=True)
    for field in ("start_date", "end_date"):
        if changes.get(field) is not None:
            changes[field] = _as_utc(changes[field])
    for field in ("name", "start_date", "end_date", "is_active"):
        if field in changes and changes[field] is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"message": f"{field} cannot be cleared.", "reason_code": "field_required"},
            )

    start_date = changes.get("start_date", _as_utc(campaign.start_date))
    end_date = changes.get("end_date", _as_utc(campaign.end_date))
    if end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "end_date must not precede start_date.", "reason_code": "invalid_date_range"},
        )

    for field, value in changes.items():
        setattr(campaign, field, value)
    campaign.updated_at = datetime.now(UTC)
    emit_event(
        db,
        company_id=actor["company_id"],
        event_type="campaign.updated",
        actor_user_id=actor["id"],
        payload={"campaign_id": campaign.id, "fields": sorted(changes)},
    )
    db.commit()
    db.refresh(campaign)
    return campaign


def add_participant(db: Session, *, actor: dict, campaign_id: str, user_id: str) -> ParticipantOut:
    campaign = get_campaign_or_404(db, company_id=actor["company_id"], campaign_id=campaign_id)
    user = db.query(User).filter(User.id == user_id, User.company_id == actor["company_id"]).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "User not found.", "reason_code": "user_not_found"},
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Inactive users cannot join campaigns.", "reason_code": "user_inactive"},
        )

    participant = CampaignParticipant(campaign_id=campaign.id, user_id=user.id, joined_at=datetime.now(UTC))
    db.add(participant)
    emit_event(
        db,
        company_id=actor["company_id"],
        event_type="campaign.participant.added",
        actor_user_id=actor["id"],
        payload={"campaign_id": campaign.id, "user_id": user.id},
    )
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": "User already participates in this campaign.", "reason_code": "participant_exists"},
        ) from exc
    db.refresh(participant)
    return _participant_out(participant, user)


def remove_participant(db: Session, *, actor: dict, campaign_id: str, user_id: str) -> None:
    campaign = get_campaign_or_404(db, company_id=actor["company_id"], campaign_id=campaign_id)
    participant = (
        db.query(CampaignParticipant)
        .filter(CampaignParticipant.campaign_id == campaign.id, CampaignParticipant.user_id == user_id)
        .first()
    )
    if participant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "Participant not found.", "reason_code": "participant_not_found"},
        )
    db.delete(participant)
    emit_event(
        db,
        company_id=actor["company_id"],
        event_type="campaign.participant.removed",
        actor_user_id=actor["id"],
        payload={"campaign_id": campaign.id, "user_id": user_id},
    )
    db.commit()


def list_participants(db: Session, *, company_id: str, campaign_id: str) -> list[ParticipantOut]:
    campaign = get_campaign_or_404(db, company_id=company_id, campaign_id=campaign_id)
    rows = (
        db.query(CampaignParticipant, User)
        .join(User, User.id == CampaignParticipant.user_id)
        .filter(CampaignParticipant.campaign_id == campaign.id)
        .order_by(CampaignParticipant.joined_at.asc())
        .all()
    )
    return [_participant_out(participant, user) for participant, user in rows]


def _participant_out(participant: CampaignParticipant, user: User) -> ParticipantOut:
    return ParticipantOut(
        user_id=user.id,
        display_name=user.display_name,
        email=user.email,
        avatar_url=user.avatar_url,
        role=user.role,
        joined_at=participant.joined_at,
    )
