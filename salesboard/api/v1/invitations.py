from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from salesboard.api.deps import require_roles
from salesboard.api.response import envelope
from salesboard.db.session import get_db
from salesboard.models.user import ROLE_ADMIN
from salesboard.schemas.invitations import InvitationAcceptRequest, InvitationCreateRequest
from salesboard.services import invitation_service

router = APIRouter(prefix="/invitations", tags=["invitations"])


@router.post("", status_code=201)
def create_invitation(
    request: Request,
    body: InvitationCreateRequest,
    user: dict = Depends(require_roles({ROLE_ADMIN})),
    db: Session = Depends(get_db),
) -> dict:
    created = invitation_service.create_invitation(db, actor=user, body=body)
    return envelope(request, created.model_dump(mode="json"))


@router.get("")
def list_invitations(
    request: Request,
    user: dict = Depends(require_roles({ROLE_ADMIN})),
    db: Session = Depends(get_db),
) -> dict:
    rows = invitation_service.list_invitations(db, company_id=user["company_id"])
    return envelope(request, {"items": [row.model_dump(mode="json") for row in rows]})


@router.get("/{token}")
def preview_invitation(request: Request, token: str, db: Session = Depends(get_db)) -> dict:
    preview = invitation_service.preview_invitation(db, token)
    return envelope(request, preview.model_dump(mode="json"))


@router.post("/{token}/accept")
def accept_invitation(
    request: Request,
    token: str,
    body: InvitationAcceptRequest,
    db: Session = Depends(get_db),
) -> dict:
    payload = invitation_service.accept_invitation(db, token, body)
    request.state.company_id = payload["user"]["company_id"]
    return envelope(request, payload)
