from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from salesboard.core.metrics import sales_deleted_total, sales_recorded_total
from salesboard.events import emit_event
from salesboard.live.channel import LiveEvent, new_sale_event
from salesboard.models.campaign import Campaign, CampaignParticipant
from salesboard.models.sale import Sale
from salesboard.models.user import ROLE_ADMIN, User
from salesboard.schemas.sales import CampaignSaleOut, SaleCreateRequest, SaleOut


logger = logging.getLogger("salesboard.sales")


@dataclass(frozen=True)
class RecordedSale:
    sale: Sale
    seller: User
    event: LiveEvent


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def record_sale(db: Session, *, actor: dict, body: SaleCreateRequest) -> RecordedSale:
    """Persist one sale and build the live event announcing it.

    The event is returned rather than sent: callers publish it only after
    this function returns, so a rejected or failed write never notifies.
    """
    company_id = actor["company_id"]
    if actor["role"] != ROLE_ADMIN and body.seller_id != actor["id"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": "Sellers may only record their own sales.", "reason_code": "seller_mismatch"},
        )

    campaign = (
        db.query(Campaign)
        .filter(Campaign.id == body.campaign_id, Campaign.company_id == company_id)
        .first()
    )
    if campaign is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "Campaign not found.", "reason_code": "campaign_not_found"},
        )
    seller = (
        db.query(User)
        .filter(User.id == body.seller_id, User.company_id == company_id)
        .first()
    )
    if seller is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "Seller not found.", "reason_code": "seller_not_found"},
        )
    if not seller.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Inactive users cannot record sales.", "reason_code": "user_inactive"},
        )
    if not campaign.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Campaign is not active.", "reason_code": "campaign_inactive"},
        )
    is_participant = (
        db.query(CampaignParticipant.id)
        .filter(CampaignParticipant.campaign_id == campaign.id, CampaignParticipant.user_id == seller.id)
        .first()
        is not None
    )
    if not is_participant:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Seller is not a participant of this campaign.",
                "reason_code": "seller_not_participant",
            },
        )

    now = datetime.now(UTC)
    sale = Sale(
        campaign_id=campaign.id,
        seller_id=seller.id,
        amount=body.amount,
        customer_name=body.customer_name,
        product_description=body.product_description,
        notes=body.notes,
        sale_date=_as_utc(body.sale_date) or now,
        created_at=now,
        created_by=actor["id"],
    )
    db.add(sale)
    db.flush()
    emit_event(
        db,
        company_id=company_id,
        event_type="sale.recorded",
        actor_user_id=actor["id"],
        payload={"sale_id": sale.id, "campaign_id": campaign.id, "seller_id": seller.id, "amount": str(body.amount)},
    )
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(sale)
    sales_recorded_total.inc()
    logger.info("sale.recorded", extra={"company_id": company_id, "campaign_id": campaign.id, "sale_id": sale.id})

    event = new_sale_event(
        company_id=company_id,
        campaign_id=campaign.id,
        sale_id=sale.id,
        seller_id=seller.id,
        seller_name=seller.display_name,
        amount=sale.amount,
        customer_name=sale.customer_name,
    )
    return RecordedSale(sale=sale, seller=seller, event=event)


def delete_sale(db: Session, *, actor: dict, sale_id: str) -> None:
    company_id = actor["company_id"]
    sale = (
        db.query(Sale)
        .join(Campaign, Campaign.id == Sale.campaign_id)
        .filter(Sale.id == sale_id, Campaign.company_id == company_id)
        .first()
    )
    if sale is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "Sale not found.", "reason_code": "sale_not_found"},
        )
    emit_event(
        db,
        company_id=company_id,
        event_type="sale.deleted",
        actor_user_id=actor["id"],
        payload={
            "sale_id": sale.id,
            "campaign_id": sale.campaign_id,
            "seller_id": sale.seller_id,
            "amount": str(sale.amount),
        },
    )
    db.delete(sale)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    sales_deleted_total.inc()
    logger.info("sale.deleted", extra={"company_id": company_id, "sale_id": sale_id})


def list_campaign_sales(db: Session, *, company_id: str, campaign_id: str) -> list[CampaignSaleOut]:
    rows = (
        db.query(Sale, User)
        .join(User, User.id == Sale.seller_id)
        .join(Campaign, Campaign.id == Sale.campaign_id)
        .filter(Sale.campaign_id == campaign_id, Campaign.company_id == company_id)
        .order_by(Sale.sale_date.desc(), Sale.created_at.desc())
        .all()
    )
    return [
        CampaignSaleOut(**SaleOut.model_validate(sale).model_dump(), seller_name=seller.display_name)
        for sale, seller in rows
    ]
