from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from salesboard.schemas._fields import EmailText, OptionalText


class InvitationCreateRequest(BaseModel):
    email: EmailText
    role: Literal["admin", "seller"] = "seller"


class InvitationOut(BaseModel):
    id: str
    email: str
    company_id: str
    role: str
    expires_at: datetime
    used_at: datetime | None
    created_at: datetime
    status: str


class InvitationCreatedOut(InvitationOut):
    token: str


class InvitationPreviewOut(BaseModel):
    email: str
    role: str
    company_id: str
    company_name: str
    expires_at: datetime
    status: str


class InvitationAcceptRequest(BaseModel):
    password: str = Field(min_length=8)
    first_name: OptionalText = None
    last_name: OptionalText = None
