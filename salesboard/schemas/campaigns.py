from datetime import UTC, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, computed_field, model_validator

from salesboard.schemas._fields import OptionalText, RequiredText


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class CampaignCreateRequest(BaseModel):
    name: RequiredText
    description: OptionalText = None
    prize_emoji: OptionalText = None
    prize_image_url: OptionalText = None
    prize_description: OptionalText = None
    start_date: datetime
    end_date: datetime
    target_amount: Decimal | None = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    is_active: bool = True

    @model_validator(mode="after")
    def validate_date_range(self) -> "CampaignCreateRequest":
        if _as_utc(self.end_date) < _as_utc(self.start_date):
            raise ValueError("end_date must not precede start_date")
        return self


class CampaignPatchRequest(BaseModel):
    name: RequiredText | None = None
    description: OptionalText = None
    prize_emoji: OptionalText = None
    prize_image_url: OptionalText = None
    prize_description: OptionalText = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    target_amount: Decimal | None = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    is_active: bool | None = None


class CampaignOut(BaseModel):
    id: str
    company_id: str
    name: str
    description: str | None
    prize_emoji: str | None
    prize_image_url: str | None
    prize_description: str | None
    start_date: datetime
    end_date: datetime
    target_amount: Decimal | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def in_date_range(self) -> bool:
        now = datetime.now(UTC)
        return _as_utc(self.start_date) <= now <= _as_utc(self.end_date)


class ParticipantAddRequest(BaseModel):
    user_id: RequiredText


class ParticipantOut(BaseModel):
    user_id: str
    display_name: str
    email: str
    avatar_url: str | None
    role: str
    joined_at: datetime
