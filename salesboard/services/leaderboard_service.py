from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import Session

from salesboard.models.campaign import Campaign
from salesboard.models.sale import Sale
from salesboard.models.user import User
from salesboard.schemas.leaderboard import LeaderboardEntry, LeaderboardSeller


def get_leaderboard(db: Session, *, company_id: str, campaign_id: str) -> list[LeaderboardEntry]:
    """Rank sellers of a campaign by the sum of their sale amounts.

    Only sellers with at least one sale appear. A campaign that does not
    exist, or belongs to another company, produces an empty ranking.
    """
    total = func.sum(Sale.amount).label("total")
    count = func.count(Sale.id).label("count")
    rows = (
        db.query(User, total, count)
        .join(Sale, Sale.seller_id == User.id)
        .join(Campaign, Campaign.id == Sale.campaign_id)
        .filter(Sale.campaign_id == campaign_id, Campaign.company_id == company_id)
        .group_by(User.id)
        .order_by(total.desc(), User.id.asc())
        .all()
    )
    return [
        LeaderboardEntry(
            rank=position,
            seller=LeaderboardSeller(id=user.id, display_name=user.display_name, avatar_url=user.avatar_url),
            total=row_total,
            count=row_count,
        )
        for position, (user, row_total, row_count) in enumerate(rows, start=1)
    ]
