from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from salesboard.schemas._fields import OptionalText, RequiredText


class SaleCreateRequest(BaseModel):
    campaign_id: RequiredText
    seller_id: RequiredText
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    customer_name: RequiredText
    product_description: RequiredText
    notes: OptionalText = None
    sale_date: datetime | None = None


class SaleOut(BaseModel):
    id: str
    campaign_id: str
    seller_id: str
    amount: Decimal
    customer_name: str | None
    product_description: str | None
    notes: str | None
    sale_date: datetime
    created_at: datetime
    created_by: str

    model_config = {"from_attributes": True}


class CampaignSaleOut(SaleOut):
    seller_name: str
