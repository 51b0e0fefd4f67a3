from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from salesboard.api.deps import get_current_user, require_company_member, require_roles
from salesboard.api.response import envelope
from salesboard.db.session import get_db
from salesboard.models.user import ROLE_ADMIN
from salesboard.schemas.companies import CompanyCreateRequest, CompanyOut, CompanyPatchRequest
from salesboard.services import company_service

router = APIRouter(prefix="/companies", tags=["companies"])


@router.post("", status_code=201)
def create_company(
    request: Request,
    body: CompanyCreateRequest,
    user: dict = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    company = company_service.create_company(db, actor=user, body=body)
    request.state.company_id = company.id
    return envelope(request, CompanyOut.model_validate(company).model_dump(mode="json"))


@router.get("/{company_id}")
def get_company(
    request: Request,
    company_id: str,
    user: dict = Depends(require_company_member),
    db: Session = Depends(get_db),
) -> dict:
    company = company_service.get_company(db, actor=user, company_id=company_id)
    return envelope(request, CompanyOut.model_validate(company).model_dump(mode="json"))


@router.patch("/{company_id}")
def update_company(
    request: Request,
    company_id: str,
    body: CompanyPatchRequest,
    user: dict = Depends(require_roles({ROLE_ADMIN})),
    db: Session = Depends(get_db),
) -> dict:
    company = company_service.update_company(db, actor=user, company_id=company_id, body=body)
    return envelope(request, CompanyOut.model_validate(company).model_dump(mode="json"))
