from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from salesboard.api.deps import get_current_user, require_roles
from salesboard.api.response import envelope
from salesboard.db.session import get_db
from salesboard.models.user import ROLE_ADMIN
from salesboard.schemas.users import ProfilePatchRequest, UserAdminPatchRequest, UserOut
from salesboard.services import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("")
def list_users(
    request: Request,
    role: str | None = Query(default=None),
    user: dict = Depends(require_roles({ROLE_ADMIN})),
    db: Session = Depends(get_db),
) -> dict:
    rows = user_service.list_users(db, company_id=user["company_id"], role=role)
    return envelope(request, {"items": [UserOut.model_validate(row).model_dump(mode="json") for row in rows]})


@router.patch("/me")
def update_me(
    request: Request,
    body: ProfilePatchRequest,
    user: dict = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    row = user_service.update_profile(db, actor=user, body=body)
    return envelope(request, UserOut.model_validate(row).model_dump(mode="json"))


@router.patch("/{user_id}")
def update_user(
    request: Request,
    user_id: str,
    body: UserAdminPatchRequest,
    user: dict = Depends(require_roles({ROLE_ADMIN})),
    db: Session = Depends(get_db),
) -> dict:
    row = user_service.admin_update_user(db, actor=user, user_id=user_id, body=body)
    return envelope(request, UserOut.model_validate(row).model_dump(mode="json"))
