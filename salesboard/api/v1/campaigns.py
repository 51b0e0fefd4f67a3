from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from salesboard.api.deps import require_company_member, require_roles
from salesboard.api.response import envelope
from salesboard.db.session import get_db
from salesboard.models.user import ROLE_ADMIN
from salesboard.schemas.campaigns import CampaignCreateRequest, CampaignOut, CampaignPatchRequest, ParticipantAddRequest
from salesboard.services import campaign_service, leaderboard_service, sale_service

router = APIRouter(prefix="/campaigns", tags=["campaigns"])


@router.post("", status_code=201)
def create_campaign(
    request: Request,
    body: CampaignCreateRequest,
    user: dict = Depends(require_roles({ROLE_ADMIN})),
    db: Session = Depends(get_db),
) -> dict:
    campaign = campaign_service.create_campaign(db, actor=user, body=body)
    return envelope(request, CampaignOut.model_validate(campaign).model_dump(mode="json"))


@router.get("")
def list_campaigns(
    request: Request,
    active: bool | None = Query(default=None),
    user: dict = Depends(require_company_member),
    db: Session = Depends(get_db),
) -> dict:
    campaigns = campaign_service.list_campaigns(db, actor=user, active=active)
    data = [CampaignOut.model_validate(c).model_dump(mode="json") for c in campaigns]
    return envelope(request, {"items": data})


@router.get("/{campaign_id}")
def get_campaign(
    request: Request,
    campaign_id: str,
    user: dict = Depends(require_company_member),
    db: Session = Depends(get_db),
) -> dict:
    campaign = campaign_service.get_campaign_or_404(db, company_id=user["company_id"], campaign_id=campaign_id)
    return envelope(request, CampaignOut.model_validate(campaign).model_dump(mode="json"))


@router.patch("/{campaign_id}")
def update_campaign(
    request: Request,
    campaign_id: str,
    body: CampaignPatchRequest,
    user: dict = Depends(require_roles({ROLE_ADMIN})),
    db: Session = Depends(get_db),
) -> dict:
    campaign = campaign_service.update_campaign(db, actor=user, campaign_id=campaign_id, body=body)
    return envelope(request, CampaignOut.model_validate(campaign).model_dump(mode="json"))


@router.get("/{campaign_id}/leaderboard")
def get_leaderboard(
    request: Request,
    campaign_id: str,
    user: dict = Depends(require_company_member),
    db: Session = Depends(get_db),
) -> dict:
    entries = leaderboard_service.get_leaderboard(db, company_id=user["company_id"], campaign_id=campaign_id)
    return envelope(
        request,
        {"campaign_id": campaign_id, "items": [entry.model_dump(mode="json") for entry in entries]},
    )


@router.get("/{campaign_id}/sales")
def list_campaign_sales(
    request: Request,
    campaign_id: str,
    user: dict = Depends(require_company_member),
    db: Session = Depends(get_db),
) -> dict:
    campaign_service.get_campaign_or_404(db, company_id=user["company_id"], campaign_id=campaign_id)
    rows = sale_service.list_campaign_sales(db, company_id=user["company_id"], campaign_id=campaign_id)
    return envelope(request, {"items": [row.model_dump(mode="json") for row in rows]})


@router.post("/{campaign_id}/participants", status_code=201)
def add_participant(
    request: Request,
    campaign_id: str,
    body: ParticipantAddRequest,
    user: dict = Depends(require_roles({ROLE_ADMIN})),
    db: Session = Depends(get_db),
) -> dict:
    participant = campaign_service.add_participant(db, actor=user, campaign_id=campaign_id, user_id=body.user_id)
    return envelope(request, participant.model_dump(mode="json"))


@router.get("/{campaign_id}/participants")
def list_participants(
    request: Request,
    campaign_id: str,
    user: dict = Depends(require_company_member),
    db: Session = Depends(get_db),
) -> dict:
    rows = campaign_service.list_participants(db, company_id=user["company_id"], campaign_id=campaign_id)
    return envelope(request, {"items": [row.model_dump(mode="json") for row in rows]})


@router.delete("/{campaign_id}/participants/{user_id}")
def remove_participant(
    request: Request,
    campaign_id: str,
    user_id: str,
    user: dict = Depends(require_roles({ROLE_ADMIN})),
    db: Session = Depends(get_db),
) -> dict:
    campaign_service.remove_participant(db, actor=user, campaign_id=campaign_id, user_id=user_id)
    return envelope(request, {"campaign_id": campaign_id, "user_id": user_id, "removed": True})
