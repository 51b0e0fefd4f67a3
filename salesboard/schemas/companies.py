from datetime import datetime

from pydantic import BaseModel

from salesboard.schemas._fields import HexColor, OptionalText, RequiredText


class CompanyCreateRequest(BaseModel):
    name: RequiredText
    logo_url: OptionalText = None
    primary_color: HexColor | None = None
    secondary_color: HexColor | None = None


class CompanyPatchRequest(BaseModel):
    name: RequiredText | None = None
    logo_url: OptionalText = None
    primary_color: HexColor | None = None
    secondary_color: HexColor | None = None


class CompanyOut(BaseModel):
    id: str
    name: str
    logo_url: str | None
    primary_color: str
    secondary_color: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
