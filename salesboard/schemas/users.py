from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from salesboard.schemas._fields import OptionalText


class UserOut(BaseModel):
    id: str
    email: str
    first_name: str | None
    last_name: str | None
    display_name: str
    avatar_url: str | None
    role: str
    company_id: str | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ProfilePatchRequest(BaseModel):
    first_name: OptionalText = None
    last_name: OptionalText = None
    avatar_url: OptionalText = None


class UserAdminPatchRequest(BaseModel):
    role: Literal["admin", "seller"] | None = None
    is_active: bool | None = None
