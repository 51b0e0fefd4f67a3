from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from salesboard.api.deps import get_current_user
from salesboard.api.response import envelope
from salesboard.db.session import get_db
from salesboard.schemas.auth import LoginRequest, SignupRequest
from salesboard.services import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", status_code=201)
def signup(request: Request, body: SignupRequest, db: Session = Depends(get_db)) -> dict:
    payload = auth_service.signup(db, body)
    request.state.company_id = payload["user"]["company_id"]
    return envelope(request, payload)


@router.post("/login")
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)) -> dict:
    payload = auth_service.login(db, body.email, body.password)
    request.state.company_id = payload["user"]["company_id"]
    return envelope(request, payload)


@router.get("/me")
def me(request: Request, user: dict = Depends(get_current_user)) -> dict:
    return envelope(request, user)
