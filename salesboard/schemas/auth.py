from pydantic import BaseModel, Field

from salesboard.schemas._fields import EmailText, OptionalText


class LoginRequest(BaseModel):
    email: EmailText
    password: str


class SignupRequest(BaseModel):
    email: EmailText
    password: str = Field(min_length=8)
    first_name: OptionalText = None
    last_name: OptionalText = None


class AuthTokens(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: dict
