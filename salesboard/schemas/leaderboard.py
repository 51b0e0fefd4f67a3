from decimal import Decimal

from pydantic import BaseModel


class LeaderboardSeller(BaseModel):
    id: str
    display_name: str
    avatar_url: str | None


class LeaderboardEntry(BaseModel):
    rank: int
    seller: LeaderboardSeller
    total: Decimal
    count: int
